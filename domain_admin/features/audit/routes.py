"""
Audit log API routes.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.core.pagination import PageParams, page_params
from domain_admin.core.schemas import Page
from domain_admin.features.audit.schemas import AuditLogResponse
from domain_admin.features.audit.service import list_audit_logs
from domain_admin.features.auth.dependencies import require_permission
from domain_admin.features.users.models import User


router = APIRouter()


@router.get("", response_model=Page[AuditLogResponse])
async def get_audit_logs(
    params: Annotated[PageParams, Depends(page_params)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("audit.list"))],
    user_id: Optional[int] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
):
    """List audit logs, newest first, with optional filtering."""
    logs, total = await list_audit_logs(db, params, user_id, action, resource_type)
    return Page[AuditLogResponse].build(
        [AuditLogResponse.model_validate(entry) for entry in logs], total, params
    )
