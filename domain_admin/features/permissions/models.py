"""
Permission model.

Permissions are stored flat; the hierarchy lives in ``parent_id`` and is
materialized by PermissionTree.
"""
from sqlalchemy import Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from domain_admin.core.database.base import Base, TimestampMixin


# Holding this enabled permission passes every permission check
SUPERUSER_PERMISSION = "system.all"

PERMISSION_TYPES = ("menu", "button", "api")
PERMISSION_ACTIONS = ("GET", "POST", "PUT", "DELETE", "*")


class Permission(Base, TimestampMixin):
    """
    A node of the permission forest.

    Examples:
    - name="system.users", type="menu", resource="/system/users"
    - name="user.create", type="api", resource="/api/users", action="POST"
    """
    __tablename__ = "permissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 0 = root node
    parent_id: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    resource: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="menu", nullable=False)
    action: Mapped[str | None] = mapped_column(String(20), nullable=True)

    sort: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # 1 enabled, 0 disabled
    status: Mapped[int] = mapped_column(SmallInteger, default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<Permission(id={self.id}, name={self.name!r}, parent_id={self.parent_id})>"
