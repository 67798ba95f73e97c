"""
Role management routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.core.pagination import PageParams, page_params
from domain_admin.core.schemas import Page, StatusUpdate
from domain_admin.features.audit.service import create_audit_log
from domain_admin.features.auth.dependencies import require_permission
from domain_admin.features.permissions.schemas import PermissionResponse
from domain_admin.features.roles.dependencies import get_role_registry
from domain_admin.features.roles.schemas import (
    AssignPermissions,
    RoleCreate,
    RolePermissionsResponse,
    RoleResponse,
    RoleUpdate,
    RoleWithPermissions,
)
from domain_admin.features.roles.service import RoleRegistry
from domain_admin.features.users.models import User


router = APIRouter(tags=["roles"])


async def _permissions_response(roles: RoleRegistry, role_id: int) -> RolePermissionsResponse:
    granted = await roles.permissions_of(role_id)
    effective = await roles.effective_permissions(role_id)
    return RolePermissionsResponse(
        role_id=role_id,
        permission_ids=sorted(granted),
        effective=[
            PermissionResponse.model_validate(record)
            for record in sorted(effective, key=lambda r: r.id)
        ],
    )


@router.get("", response_model=Page[RoleResponse])
async def list_roles(
    params: Annotated[PageParams, Depends(page_params)],
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    current_user: Annotated[User, Depends(require_permission("role.list"))],
):
    items, total = await roles.list(params)
    return Page[RoleResponse].build([RoleResponse.model_validate(r) for r in items], total, params)


@router.get("/{role_id}", response_model=RoleWithPermissions)
async def get_role(
    role_id: int,
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    current_user: Annotated[User, Depends(require_permission("role.detail"))],
):
    """Get a role with every permission assigned to it, disabled ones included."""
    return await roles.get(role_id)


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    request: Request,
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("role.create"))],
):
    role = await roles.create(data)
    await create_audit_log(
        db, current_user.id, "create", "role", role.id, details=data.model_dump(), request=request,
    )
    return role


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: int,
    data: RoleUpdate,
    request: Request,
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("role.update"))],
):
    role = await roles.update(role_id, data)
    await create_audit_log(
        db, current_user.id, "update", "role", role_id,
        details=data.model_dump(exclude_unset=True), request=request,
    )
    return role


@router.put("/{role_id}/status", response_model=RoleResponse)
async def update_role_status(
    role_id: int,
    data: StatusUpdate,
    request: Request,
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("role.update"))],
):
    """A disabled role grants nothing to the users holding it."""
    role = await roles.set_status(role_id, data.status)
    await create_audit_log(
        db, current_user.id, "set_status", "role", role_id, details={"status": data.status}, request=request,
    )
    return role


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: int,
    request: Request,
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("role.delete"))],
):
    """Delete a role. Built-in roles and roles still held by users are refused."""
    await roles.delete(role_id)
    await create_audit_log(db, current_user.id, "delete", "role", role_id, request=request)
    return None


@router.get("/{role_id}/permissions", response_model=RolePermissionsResponse)
async def get_role_permissions(
    role_id: int,
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    current_user: Annotated[User, Depends(require_permission("role.detail"))],
):
    return await _permissions_response(roles, role_id)


@router.put("/{role_id}/permissions", response_model=RolePermissionsResponse)
async def assign_role_permissions(
    role_id: int,
    data: AssignPermissions,
    request: Request,
    roles: Annotated[RoleRegistry, Depends(get_role_registry)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("role.update"))],
):
    """
    Replace the role's permission set.

    The body lists the complete new set. If any id is unknown nothing
    changes and the first unknown id is reported.
    """
    await roles.assign_permissions(role_id, data.permission_ids)
    await create_audit_log(
        db, current_user.id, "assign_permissions", "role", role_id,
        details={"permission_ids": sorted(set(data.permission_ids))}, request=request,
    )
    return await _permissions_response(roles, role_id)
