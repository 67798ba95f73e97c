"""
Dashboard counters.
"""
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core import config
from domain_admin.core.database.base import utcnow
from domain_admin.features.dashboard.schemas import DashboardStats
from domain_admin.features.permissions.models import Permission
from domain_admin.features.permissions.tree import STATUS_ENABLED
from domain_admin.features.roles.models import Role
from domain_admin.features.users.models import User


async def _count(db: AsyncSession, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return (await db.execute(stmt)).scalar_one()


async def get_stats(db: AsyncSession) -> DashboardStats:
    """
    Totals for users, roles and permissions.

    ``online_count`` is the number of enabled users who signed in within the
    token lifetime, so anyone who could still hold a live token.
    """
    since = utcnow() - timedelta(minutes=config.JWT_EXPIRE_MINUTES)
    return DashboardStats(
        user_count=await _count(db, User),
        role_count=await _count(db, Role),
        permission_count=await _count(db, Permission),
        online_count=await _count(
            db, User, User.status == STATUS_ENABLED, User.last_login_at >= since,
        ),
    )
