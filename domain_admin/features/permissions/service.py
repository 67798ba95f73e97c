"""
Permission administration and the shared forest snapshot.
"""
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.errors import (
    CycleDetected,
    DuplicateName,
    PermissionHasChildren,
    ProtectedEntity,
    UnknownPermission,
)
from domain_admin.core.database.engine import is_unique_violation
from domain_admin.core.pagination import PageParams, paginate
from domain_admin.features.permissions.models import Permission, SUPERUSER_PERMISSION
from domain_admin.features.permissions.schemas import PermissionCreate, PermissionUpdate
from domain_admin.features.permissions.tree import ROOT_PARENT_ID, PermissionTree
from domain_admin.features.roles.models import role_permissions
from domain_admin.utils import get_logger


log = get_logger(__name__)


class TreeSnapshot:
    """
    Copy-on-write holder for the materialized forest.

    Readers get the last published immutable tree. Mutations call
    invalidate(), which bumps the version; a tree built from rows read
    before the bump is never published.
    """

    def __init__(self) -> None:
        self._tree: Optional[PermissionTree] = None
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def get(self) -> Optional[PermissionTree]:
        return self._tree

    def publish(self, tree: PermissionTree, version: int) -> bool:
        if version != self._version:
            return False
        self._tree = tree
        return True

    def invalidate(self) -> None:
        self._version += 1
        self._tree = None


tree_snapshot = TreeSnapshot()


class PermissionCatalog:
    """Owner of permission rows; every write invalidates the forest snapshot."""

    def __init__(self, db: AsyncSession, snapshot: TreeSnapshot = tree_snapshot):
        self.db = db
        self.snapshot = snapshot

    async def tree(self) -> PermissionTree:
        cached = self.snapshot.get()
        if cached is not None:
            return cached

        version = self.snapshot.version
        result = await self.db.execute(select(Permission))
        tree = PermissionTree.materialize(result.scalars().all())
        if self.snapshot.publish(tree, version):
            log.debug("Permission forest rebuilt (%d nodes)", len(tree))
        return tree

    async def get(self, permission_id: int) -> Permission:
        result = await self.db.execute(select(Permission).where(Permission.id == permission_id))
        permission = result.scalar_one_or_none()
        if permission is None:
            raise UnknownPermission(permission_id)
        return permission

    async def list(self, params: PageParams) -> tuple[Sequence[Permission], int]:
        """Flat administrative listing (disabled permissions included)."""
        stmt = select(Permission)
        if params.pattern:
            stmt = stmt.where(
                or_(
                    Permission.name.ilike(params.pattern),
                    Permission.display_name.ilike(params.pattern),
                    Permission.resource.ilike(params.pattern),
                )
            )
        stmt = stmt.order_by(Permission.sort, Permission.id)
        return await paginate(self.db, stmt, params)

    async def create(self, data: PermissionCreate) -> Permission:
        await self._ensure_unique_name(data.name)
        if data.parent_id != ROOT_PARENT_ID:
            await self.get(data.parent_id)

        permission = Permission(**data.model_dump())
        self.db.add(permission)
        await self._commit(data.name)
        await self.db.refresh(permission)
        log.info("Created permission %s (id=%s, parent=%s)", permission.name, permission.id, permission.parent_id)
        return permission

    async def update(self, permission_id: int, data: PermissionUpdate) -> Permission:
        permission = await self.get(permission_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes and changes["name"] != permission.name:
            await self._ensure_unique_name(changes["name"])

        new_parent = changes.get("parent_id")
        if new_parent is not None and new_parent != permission.parent_id:
            tree = await self.tree()
            if new_parent != ROOT_PARENT_ID and new_parent not in tree:
                raise UnknownPermission(new_parent)
            if tree.would_cycle(permission_id, new_parent):
                raise CycleDetected(permission_id)

        for key, value in changes.items():
            setattr(permission, key, value)

        await self._commit(permission.name)
        log.info("Updated permission %s: %s", permission_id, sorted(changes))
        return permission

    async def set_status(self, permission_id: int, status: int) -> Permission:
        permission = await self.get(permission_id)
        permission.status = status
        await self._commit(permission.name)
        log.info("Permission %s status -> %s", permission_id, status)
        return permission

    async def delete(self, permission_id: int) -> Permission:
        """Delete a leaf permission. Nodes with children are refused; there is no cascade."""
        permission = await self.get(permission_id)
        if permission.name == SUPERUSER_PERMISSION:
            raise ProtectedEntity("permission", permission.name)

        tree = await self.tree()
        if not tree.can_delete(permission_id):
            raise PermissionHasChildren(permission_id)

        # Roles only ever reference live permissions
        await self.db.execute(
            role_permissions.delete().where(role_permissions.c.permission_id == permission_id)
        )
        await self.db.delete(permission)
        await self._commit(permission.name)
        log.info("Deleted permission %s (%s)", permission_id, permission.name)
        return permission

    async def _ensure_unique_name(self, name: str) -> None:
        result = await self.db.execute(select(Permission.id).where(Permission.name == name))
        if result.first() is not None:
            raise DuplicateName("permission", name)

    async def _commit(self, name: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateName("permission", name)
        finally:
            self.snapshot.invalidate()
