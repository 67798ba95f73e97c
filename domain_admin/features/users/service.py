"""
UserDirectory: user accounts, their single role, and credential checks.
"""
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core.errors import (
    AccountDisabled,
    DuplicateEmail,
    DuplicateUsername,
    InvalidCredentials,
    NotFound,
    ProtectedEntity,
)
from domain_admin.core.database.base import utcnow
from domain_admin.core.database.engine import is_unique_violation
from domain_admin.core.pagination import PageParams, paginate
from domain_admin.features.auth.passwords import hash_password, verify_password
from domain_admin.features.auth.schemas import ProfileUpdate, RegisterRequest, UserInfo
from domain_admin.features.permissions.tree import STATUS_ENABLED
from domain_admin.features.roles.models import DEFAULT_ROLE, Role
from domain_admin.features.roles.service import RoleRegistry
from domain_admin.features.users.models import User
from domain_admin.features.users.schemas import UserCreate, UserUpdate
from domain_admin.utils import get_logger


log = get_logger(__name__)


class UserDirectory:

    def __init__(self, db: AsyncSession, roles: RoleRegistry):
        self.db = db
        self.roles = roles

    async def get(self, user_id: int) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFound("user", user_id)
        return user

    async def find_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def list(self, params: PageParams) -> tuple[Sequence[User], int]:
        stmt = select(User)
        if params.pattern:
            stmt = stmt.where(
                or_(
                    User.username.ilike(params.pattern),
                    User.email.ilike(params.pattern),
                    User.nickname.ilike(params.pattern),
                )
            )
        return await paginate(self.db, stmt.order_by(User.id), params)

    async def create(self, data: UserCreate) -> User:
        """Create a user; fails on a taken username/email or an unknown role."""
        await self._ensure_unique(username=data.username, email=data.email)
        role = await self._resolve_role(data.role_id)

        user = User(
            username=data.username,
            email=data.email,
            password_hash=hash_password(data.password),
            nickname=data.nickname,
            phone=data.phone,
            role=role,
            status=data.status,
        )
        self.db.add(user)
        await self._commit(user)
        await self.db.refresh(user)
        log.info("Created user %s (id=%s, role=%s)", user.username, user.id, role.name)
        return user

    async def register(self, data: RegisterRequest) -> User:
        """Self-service sign-up, always with the default role."""
        return await self.create(UserCreate(**data.model_dump()))

    async def update(self, user_id: int, data: UserUpdate) -> User:
        user = await self.get(user_id)
        changes = data.model_dump(exclude_unset=True)

        if "email" in changes and changes["email"] != user.email:
            await self._ensure_unique(email=changes["email"])
        role_id = changes.pop("role_id", None)
        if role_id is not None and role_id != user.role_id:
            user.role = await self.roles.get(role_id)

        for key, value in changes.items():
            setattr(user, key, value)
        await self._commit(user)
        log.info("Updated user %s: %s", user_id, sorted(data.model_dump(exclude_unset=True)))
        return user

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        return await self.update(user.id, UserUpdate(**data.model_dump(exclude_unset=True)))

    async def change_role(self, user_id: int, role_id: int) -> User:
        """
        Point the user at another role.

        Sessions already holding a profile keep the old role until they
        hydrate again.
        """
        user = await self.get(user_id)
        user.role = await self.roles.get(role_id)
        await self.db.commit()
        log.info("User %s role -> %s", user.username, user.role.name)
        return user

    async def set_status(self, user_id: int, status: int) -> User:
        user = await self.get(user_id)
        user.status = status
        await self.db.commit()
        log.info("User %s status -> %s", user.username, status)
        return user

    async def delete(self, user_id: int, acting_user_id: Optional[int] = None) -> None:
        user = await self.get(user_id)
        if acting_user_id is not None and user.id == acting_user_id:
            raise ProtectedEntity("user", user.username, "You cannot delete your own account")
        await self.db.delete(user)
        await self.db.commit()
        log.info("Deleted user %s (%s)", user_id, user.username)

    async def authenticate(self, username: str, password: str) -> User:
        """
        Verify credentials.

        The password is checked first so that a disabled account is only
        revealed to someone who knows its password.
        """
        user = await self.find_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            log.info("Failed login for %r", username)
            raise InvalidCredentials()
        if user.status != STATUS_ENABLED:
            log.info("Login refused for disabled account %r", username)
            raise AccountDisabled()

        user.last_login_at = utcnow()
        await self.db.commit()
        return user

    async def change_password(self, user: User, old_password: str, new_password: str) -> None:
        if not verify_password(old_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        user.password_hash = hash_password(new_password)
        await self.db.commit()
        log.info("Password changed for %s", user.username)

    async def profile(self, user: User) -> UserInfo:
        """Profile with the role's effective permission names (empty for a disabled role)."""
        effective = await self.roles.effective_permissions(user.role_id)
        return UserInfo(
            id=user.id,
            username=user.username,
            email=user.email,
            nickname=user.nickname,
            avatar=user.avatar,
            role=user.role.name,
            status=user.status,
            permissions=sorted(p.name for p in effective),
        )

    async def _resolve_role(self, role_id: Optional[int]) -> Role:
        if role_id is None:
            return await self.roles.get_by_name(DEFAULT_ROLE)
        return await self.roles.get(role_id)

    async def _ensure_unique(self, username: Optional[str] = None, email: Optional[str] = None) -> None:
        if username is not None:
            result = await self.db.execute(select(User.id).where(User.username == username))
            if result.first() is not None:
                raise DuplicateUsername(username)
        if email is not None:
            result = await self.db.execute(select(User.id).where(User.email == email))
            if result.first() is not None:
                raise DuplicateEmail(email)

    async def _commit(self, user: User) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if not is_unique_violation(exc):
                raise
            if "email" in str(exc.orig):
                raise DuplicateEmail(user.email)
            raise DuplicateUsername(user.username)
