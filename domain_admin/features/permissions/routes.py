"""
Permission management routes.

The tree endpoint serves the whole forest for lazy-expansion views; search
hits are flat and carry ``has_children`` so a client can render expanders
without fetching the next level first.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.database.engine import get_db
from domain_admin.core.pagination import PageParams, page_params
from domain_admin.core.schemas import Page, StatusUpdate
from domain_admin.features.audit.service import create_audit_log
from domain_admin.features.auth.dependencies import require_permission
from domain_admin.features.permissions.dependencies import get_permission_catalog
from domain_admin.features.permissions.schemas import (
    PermissionCreate,
    PermissionResponse,
    PermissionSearchHit,
    PermissionTreeNode,
    PermissionUpdate,
)
from domain_admin.features.permissions.service import PermissionCatalog
from domain_admin.features.users.models import User


router = APIRouter(tags=["permissions"])


@router.get("", response_model=Page[PermissionResponse])
async def list_permissions(
    params: Annotated[PageParams, Depends(page_params)],
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    current_user: Annotated[User, Depends(require_permission("permission.list"))],
):
    items, total = await catalog.list(params)
    return Page[PermissionResponse].build(
        [PermissionResponse.model_validate(p) for p in items], total, params
    )


@router.get("/tree", response_model=List[PermissionTreeNode])
async def get_permission_tree(
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    current_user: Annotated[User, Depends(require_permission("permission.list"))],
):
    """Get the whole permission forest, siblings ordered by (sort, id)."""
    tree = await catalog.tree()
    return [PermissionTreeNode.from_node(node) for node in tree.roots]


@router.get("/search", response_model=List[PermissionSearchHit])
async def search_permissions(
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    current_user: Annotated[User, Depends(require_permission("permission.list"))],
    keyword: str = Query(..., min_length=1, max_length=100),
):
    """Every node matching ``keyword``, flat and in depth-first order."""
    tree = await catalog.tree()
    return [
        PermissionSearchHit(
            **PermissionResponse.model_validate(record).model_dump(),
            has_children=tree.has_children(record.id),
        )
        for record in tree.search(keyword)
    ]


@router.get("/{permission_id}", response_model=PermissionResponse)
async def get_permission(
    permission_id: int,
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    current_user: Annotated[User, Depends(require_permission("permission.detail"))],
):
    return await catalog.get(permission_id)


@router.post("", response_model=PermissionResponse, status_code=status.HTTP_201_CREATED)
async def create_permission(
    data: PermissionCreate,
    request: Request,
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("permission.create"))],
):
    """Create a permission; ``parent_id`` must name an existing permission or be 0."""
    permission = await catalog.create(data)
    await create_audit_log(
        db, current_user.id, "create", "permission", permission.id,
        details=data.model_dump(), request=request,
    )
    return permission


@router.put("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: int,
    data: PermissionUpdate,
    request: Request,
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("permission.update"))],
):
    """Update a permission. Moving a node under its own subtree is rejected."""
    permission = await catalog.update(permission_id, data)
    await create_audit_log(
        db, current_user.id, "update", "permission", permission_id,
        details=data.model_dump(exclude_unset=True), request=request,
    )
    return permission


@router.put("/{permission_id}/status", response_model=PermissionResponse)
async def update_permission_status(
    permission_id: int,
    data: StatusUpdate,
    request: Request,
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("permission.update"))],
):
    permission = await catalog.set_status(permission_id, data.status)
    await create_audit_log(
        db, current_user.id, "set_status", "permission", permission_id,
        details={"status": data.status}, request=request,
    )
    return permission


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: int,
    request: Request,
    catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)],
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("permission.delete"))],
):
    """Delete a leaf permission and drop it from every role that held it."""
    permission = await catalog.delete(permission_id)
    await create_audit_log(
        db, current_user.id, "delete", "permission", permission_id,
        details={"name": permission.name}, request=request,
    )
    return None
