"""
RoleRegistry: role CRUD and the role -> permission assignment.

The registry is the only writer of a role's permission set. Writes to one
role are serialized through ``role_locks``; different roles do not wait on
each other.
"""
from typing import Iterable, Sequence, Set

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.errors import (
    DuplicateName,
    ProtectedEntity,
    RoleInUse,
    UnknownPermission,
    UnknownRole,
)
from domain_admin.core.locks import KeyedLocks
from domain_admin.core.database.engine import is_unique_violation
from domain_admin.core.pagination import PageParams, paginate
from domain_admin.features.permissions.models import Permission
from domain_admin.features.permissions.service import PermissionCatalog
from domain_admin.features.permissions.tree import STATUS_ENABLED, PermissionRecord
from domain_admin.features.roles.models import BUILTIN_ROLES, Role
from domain_admin.features.roles.schemas import RoleCreate, RoleUpdate
from domain_admin.features.users.models import User
from domain_admin.utils import get_logger


log = get_logger(__name__)

role_locks = KeyedLocks()


class RoleRegistry:

    def __init__(self, db: AsyncSession, catalog: PermissionCatalog, locks: KeyedLocks = role_locks):
        self.db = db
        self.catalog = catalog
        self.locks = locks

    async def get(self, role_id: int) -> Role:
        result = await self.db.execute(select(Role).where(Role.id == role_id))
        role = result.scalar_one_or_none()
        if role is None:
            raise UnknownRole(role_id)
        return role

    async def get_by_name(self, name: str) -> Role:
        result = await self.db.execute(select(Role).where(Role.name == name))
        role = result.scalar_one_or_none()
        if role is None:
            raise UnknownRole(name)
        return role

    async def list(self, params: PageParams) -> tuple[Sequence[Role], int]:
        stmt = select(Role)
        if params.pattern:
            stmt = stmt.where(
                or_(Role.name.ilike(params.pattern), Role.display_name.ilike(params.pattern))
            )
        return await paginate(self.db, stmt.order_by(Role.id), params)

    async def create(self, data: RoleCreate) -> Role:
        await self._ensure_unique_name(data.name)
        role = Role(**data.model_dump(), permissions=[])
        self.db.add(role)
        await self._commit(data.name)
        await self.db.refresh(role)
        log.info("Created role %s (id=%s)", role.name, role.id)
        return role

    async def update(self, role_id: int, data: RoleUpdate) -> Role:
        async with self.locks(role_id):
            role = await self.get(role_id)
            changes = data.model_dump(exclude_unset=True)
            if "name" in changes and changes["name"] != role.name:
                if role.name in BUILTIN_ROLES:
                    raise ProtectedEntity("role", role.name, f"Built-in role '{role.name}' cannot be renamed")
                await self._ensure_unique_name(changes["name"])
            for key, value in changes.items():
                setattr(role, key, value)
            await self._commit(role.name)
            log.info("Updated role %s: %s", role_id, sorted(changes))
            return role

    async def set_status(self, role_id: int, status: int) -> Role:
        """
        Enable or disable a role.

        effective_permissions() reflects the change at once; sessions that
        already hold a hydrated profile see it on their next refresh.
        """
        async with self.locks(role_id):
            role = await self.get(role_id)
            role.status = status
            await self.db.commit()
            log.info("Role %s status -> %s", role.name, status)
            return role

    async def delete(self, role_id: int) -> None:
        async with self.locks(role_id):
            role = await self.get(role_id)
            if role.name in BUILTIN_ROLES:
                raise ProtectedEntity("role", role.name)

            in_use = await self.db.execute(
                select(func.count()).select_from(User).where(User.role_id == role_id)
            )
            user_count = in_use.scalar() or 0
            if user_count:
                raise RoleInUse(role_id, user_count)

            await self.db.delete(role)
            await self.db.commit()
            log.info("Deleted role %s (%s)", role_id, role.name)
        self.locks.discard(role_id)

    async def assign_permissions(self, role_id: int, permission_ids: Iterable[int]) -> Role:
        """
        Replace the role's permission set with ``permission_ids``.

        All ids are validated before anything is written; the first unknown
        id (in ascending order) is reported and the previous set is kept.
        """
        wanted: Set[int] = set(permission_ids)
        async with self.locks(role_id):
            role = await self.get(role_id)

            tree = await self.catalog.tree()
            for permission_id in sorted(wanted):
                if permission_id not in tree:
                    raise UnknownPermission(permission_id)

            permissions: list[Permission] = []
            if wanted:
                result = await self.db.execute(
                    select(Permission).where(Permission.id.in_(wanted)).order_by(Permission.id)
                )
                permissions = list(result.scalars().all())
                found = {p.id for p in permissions}
                missing = sorted(wanted - found)
                if missing:
                    # Snapshot was older than the rows
                    self.catalog.snapshot.invalidate()
                    raise UnknownPermission(missing[0])

            previous = role.permission_ids
            role.permissions = permissions
            try:
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
            log.info(
                "Role %s permissions replaced: +%s -%s",
                role.name,
                sorted(wanted - previous),
                sorted(previous - wanted),
            )
            return role

    async def permissions_of(self, role_id: int) -> Set[int]:
        role = await self.get(role_id)
        return role.permission_ids

    async def effective_permissions(self, role_id: int) -> Set[PermissionRecord]:
        """Enabled permissions granted by the role; empty while the role is disabled."""
        role = await self.get(role_id)
        if role.status != STATUS_ENABLED:
            return set()
        tree = await self.catalog.tree()
        return tree.effective_of(role.permission_ids)

    async def _ensure_unique_name(self, name: str) -> None:
        result = await self.db.execute(select(Role.id).where(Role.name == name))
        if result.first() is not None:
            raise DuplicateName("role", name)

    async def _commit(self, name: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateName("role", name)
