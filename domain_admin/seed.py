"""
Default RBAC data: builtin roles, the permission tree and the admin account.

Every step is idempotent; rows that already exist (matched by name) are left
alone, so re-running only fills in what is missing.
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from domain_admin.core import config
from domain_admin.core.errors import UnknownRole
from domain_admin.features.permissions.models import SUPERUSER_PERMISSION
from domain_admin.features.permissions.schemas import PermissionCreate
from domain_admin.features.permissions.service import PermissionCatalog
from domain_admin.features.permissions.tree import ROOT_PARENT_ID
from domain_admin.features.roles.schemas import RoleCreate
from domain_admin.features.roles.service import RoleRegistry
from domain_admin.features.users.schemas import UserCreate
from domain_admin.features.users.service import UserDirectory
from domain_admin.utils import get_logger


log = get_logger(__name__)


DEFAULT_ROLES = [
    ("admin", "Administrator", "Super administrator holding every permission"),
    ("user", "User", "Regular user with the basic self-service permissions"),
    ("guest", "Guest", "Read-only visitor"),
]

# (name, display_name, resource, type, action, parent name)
DEFAULT_PERMISSIONS: List[Tuple[str, str, str, str, Optional[str], Optional[str]]] = [
    ("dashboard", "Dashboard", "/dashboard", "menu", None, None),
    ("dashboard.stats", "Dashboard statistics", "/api/dashboard/stats", "api", "GET", "dashboard"),
    ("system", "System", "/system", "menu", None, None),
    ("system.users", "Users", "/system/users", "menu", None, "system"),
    ("user.list", "List users", "/api/users", "api", "GET", "system.users"),
    ("user.create", "Create user", "/api/users", "api", "POST", "system.users"),
    ("user.update", "Update user", "/api/users/*", "api", "PUT", "system.users"),
    ("user.delete", "Delete user", "/api/users/*", "api", "DELETE", "system.users"),
    ("user.detail", "User detail", "/api/users/*", "api", "GET", "system.users"),
    ("system.roles", "Roles", "/system/roles", "menu", None, "system"),
    ("role.list", "List roles", "/api/roles", "api", "GET", "system.roles"),
    ("role.create", "Create role", "/api/roles", "api", "POST", "system.roles"),
    ("role.update", "Update role", "/api/roles/*", "api", "PUT", "system.roles"),
    ("role.delete", "Delete role", "/api/roles/*", "api", "DELETE", "system.roles"),
    ("role.detail", "Role detail", "/api/roles/*", "api", "GET", "system.roles"),
    ("system.permissions", "Permissions", "/system/permissions", "menu", None, "system"),
    ("permission.list", "List permissions", "/api/permissions", "api", "GET", "system.permissions"),
    ("permission.create", "Create permission", "/api/permissions", "api", "POST", "system.permissions"),
    ("permission.update", "Update permission", "/api/permissions/*", "api", "PUT", "system.permissions"),
    ("permission.delete", "Delete permission", "/api/permissions/*", "api", "DELETE", "system.permissions"),
    ("permission.detail", "Permission detail", "/api/permissions/*", "api", "GET", "system.permissions"),
    ("audit.list", "Audit log", "/api/audit-logs", "api", "GET", "system"),
    ("auth", "Account", "/profile", "menu", None, None),
    ("auth.login", "Sign in", "/api/auth/login", "api", "POST", "auth"),
    ("auth.logout", "Sign out", "/api/auth/logout", "api", "POST", "auth"),
    ("auth.profile", "View profile", "/api/auth/profile", "api", "GET", "auth"),
    ("auth.update_profile", "Update profile", "/api/auth/profile", "api", "PUT", "auth"),
    ("auth.change_password", "Change password", "/api/auth/password", "api", "PUT", "auth"),
    (SUPERUSER_PERMISSION, "All permissions", "/api/*", "api", "*", None),
]

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    "admin": [SUPERUSER_PERMISSION],
    "user": [
        "auth.login", "auth.logout", "auth.profile", "auth.update_profile", "auth.change_password",
        "dashboard.stats",
    ],
    "guest": ["auth.login", "auth.logout", "auth.profile", "dashboard.stats"],
}


async def seed_permissions(catalog: PermissionCatalog) -> Dict[str, int]:
    """
    Create the default permission tree.

    Returns:
        Mapping of permission name to id, for every default permission
    """
    log.info("Creating default permissions...")
    ids: Dict[str, int] = {}
    for sort, (name, display_name, resource, type_, action, parent) in enumerate(DEFAULT_PERMISSIONS):
        existing = (await catalog.tree()).find_by_name(name)
        if existing is not None:
            log.debug("Permission '%s' already exists, skipping", name)
            ids[name] = existing.id
            continue

        permission = await catalog.create(PermissionCreate(
            parent_id=ids[parent] if parent else ROOT_PARENT_ID,
            name=name,
            display_name=display_name,
            resource=resource,
            type=type_,
            action=action,
            sort=sort,
        ))
        ids[name] = permission.id
    log.info("Default permissions ready (%d)", len(ids))
    return ids


async def seed_roles(roles: RoleRegistry, permission_ids: Dict[str, int]) -> Dict[str, int]:
    """
    Create the builtin roles and grant their default permissions.

    A role that already exists keeps whatever permissions it has now.
    """
    log.info("Creating default roles...")
    ids: Dict[str, int] = {}
    for name, display_name, description in DEFAULT_ROLES:
        try:
            existing = await roles.get_by_name(name)
        except UnknownRole:
            existing = None
        if existing is not None:
            log.debug("Role '%s' already exists, skipping", name)
            ids[name] = existing.id
            continue

        role = await roles.create(RoleCreate(name=name, display_name=display_name, description=description))
        granted = [permission_ids[p] for p in ROLE_PERMISSIONS.get(name, []) if p in permission_ids]
        await roles.assign_permissions(role.id, granted)
        ids[name] = role.id
    return ids


async def seed_admin(users: UserDirectory, role_id: int, password: Optional[str]) -> None:
    if not password:
        log.warning("ADMIN_PASSWORD not set; skipping admin account")
        return
    existing = await users.find_by_username(config.ADMIN_USERNAME)
    if existing is not None:
        log.debug("Admin '%s' already exists, skipping", config.ADMIN_USERNAME)
        return
    await users.create(UserCreate(
        username=config.ADMIN_USERNAME,
        email=config.ADMIN_EMAIL,
        password=password,
        nickname="Administrator",
        role_id=role_id,
    ))
    log.info("Created admin account '%s'", config.ADMIN_USERNAME)


async def seed_all(db: AsyncSession, admin_password: Optional[str] = config.ADMIN_PASSWORD) -> None:
    catalog = PermissionCatalog(db)
    roles = RoleRegistry(db, catalog)
    users = UserDirectory(db, roles)

    permission_ids = await seed_permissions(catalog)
    role_ids = await seed_roles(roles, permission_ids)
    await seed_admin(users, role_ids["admin"], admin_password)
