"""
Role model and the role <-> permission association table.
"""
from sqlalchemy import Column, ForeignKey, Integer, SmallInteger, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from domain_admin.core.database.base import Base, TimestampMixin
from domain_admin.features.permissions.models import Permission


# Roles created by the seed script; they can be edited but not deleted
BUILTIN_ROLES = ("admin", "user", "guest")
DEFAULT_ROLE = "user"


role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base, TimestampMixin):
    """
    Role model for grouping permissions.

    Examples: admin, user, guest, auditor
    """
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # 1 enabled, 0 disabled
    status: Mapped[int] = mapped_column(SmallInteger, default=1, nullable=False)

    permissions: Mapped[list[Permission]] = relationship(
        Permission,
        secondary=role_permissions,
        lazy="selectin",
        order_by=Permission.id,
    )

    @property
    def permission_ids(self) -> set[int]:
        return {p.id for p in self.permissions}

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r}, status={self.status})>"
