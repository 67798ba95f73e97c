"""
User feature dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.features.roles.dependencies import get_role_registry
from domain_admin.features.roles.service import RoleRegistry
from domain_admin.features.users.service import UserDirectory


async def get_user_directory(
    db: Annotated[AsyncSession, Depends(get_db)],
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
) -> UserDirectory:
    return UserDirectory(db, roles)
