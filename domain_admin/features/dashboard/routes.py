"""
Dashboard API routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.features.auth.dependencies import require_permission
from domain_admin.features.dashboard.schemas import DashboardStats
from domain_admin.features.dashboard.service import get_stats
from domain_admin.features.users.models import User


router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("dashboard.stats"))],
):
    """Counts of users, roles and permissions, plus recently active users."""
    return await get_stats(db)
