"""
Role feature dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.features.permissions.dependencies import get_permission_catalog
from domain_admin.features.permissions.service import PermissionCatalog
from domain_admin.features.roles.service import RoleRegistry


async def get_role_registry(
    db: Annotated[AsyncSession, Depends(get_db)],
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
) -> RoleRegistry:
    return RoleRegistry(db, catalog)
