"""
Permission feature dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.features.permissions.service import PermissionCatalog


async def get_permission_catalog(
    db: Annotated[AsyncSession, Depends(get_db)]
) -> PermissionCatalog:
    return PermissionCatalog(db)
