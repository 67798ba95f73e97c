"""
User management routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.core.pagination import PageParams, page_params
from domain_admin.core.schemas import Page, StatusUpdate
from domain_admin.features.audit.service import create_audit_log
from domain_admin.features.auth.dependencies import require_permission
from domain_admin.features.users.dependencies import get_user_directory
from domain_admin.features.users.models import User
from domain_admin.features.users.schemas import RoleChange, UserCreate, UserResponse, UserUpdate
from domain_admin.features.users.service import UserDirectory


router = APIRouter(tags=["users"])


@router.get("", response_model=Page[UserResponse])
async def list_users(
    params: Annotated[PageParams, Depends(page_params)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    current_user: Annotated[User, Depends(require_permission("user.list"))],
):
    """List users; ``keyword`` matches username, email or nickname."""
    items, total = await users.list(params)
    return Page[UserResponse].build([UserResponse.model_validate(u) for u in items], total, params)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    current_user: Annotated[User, Depends(require_permission("user.detail"))],
):
    return await users.get(user_id)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    request: Request,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("user.create"))],
):
    user = await users.create(data)
    await create_audit_log(
        db, current_user.id, "create", "user", user.id,
        details=data.model_dump(exclude={"password"}), request=request,
    )
    return user


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    request: Request,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("user.update"))],
):
    user = await users.update(user_id, data)
    await create_audit_log(
        db, current_user.id, "update", "user", user_id,
        details=data.model_dump(exclude_unset=True), request=request,
    )
    return user


@router.put("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    data: StatusUpdate,
    request: Request,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("user.update"))],
):
    """Disabling a user blocks their next login and invalidates their tokens."""
    user = await users.set_status(user_id, data.status)
    await create_audit_log(
        db, current_user.id, "set_status", "user", user_id, details={"status": data.status}, request=request,
    )
    return user


@router.put("/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: int,
    data: RoleChange,
    request: Request,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("user.update"))],
):
    user = await users.change_role(user_id, data.role_id)
    await create_audit_log(
        db, current_user.id, "change_role", "user", user_id, details={"role_id": data.role_id}, request=request,
    )
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    request: Request,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("user.delete"))],
):
    """Delete a user (not yourself)."""
    await users.delete(user_id, acting_user_id=current_user.id)
    await create_audit_log(db, current_user.id, "delete", "user", user_id, request=request)
    return None
