"""
FastAPI dependencies for authentication and authorization.
"""
from typing import Annotated, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from slowapi import Limiter

from domain_admin.core.errors import Forbidden, NotFound, Unauthorized
from domain_admin.features.auth.tokens import decode_access_token
from domain_admin.features.permissions.tree import STATUS_ENABLED
from domain_admin.features.users.dependencies import get_user_directory
from domain_admin.features.users.models import User
from domain_admin.features.users.service import UserDirectory
from domain_admin.utils import get_logger


log = get_logger(__name__)

# Missing credentials are reported as Unauthorized by get_current_user
security = HTTPBearer(auto_error=False)


def get_authorization_header(request: Request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"


limiter = Limiter(key_func=get_authorization_header)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
) -> User:
    """
    Resolve the bearer token to an active user.

    Any failure (missing, malformed or expired token, deleted or disabled
    account) is Unauthorized so the client drops its session.
    """
    if credentials is None:
        raise Unauthorized()

    payload = decode_access_token(credentials.credentials)
    try:
        user = await users.get(int(payload["sub"]))
    except NotFound:
        raise Unauthorized("User no longer exists")

    if user.status != STATUS_ENABLED:
        raise Unauthorized("User account is disabled")
    return user


def require_permission(permission: str):
    """
    FastAPI dependency to require a permission on the caller's role.

    Usage:
        @router.post("/roles")
        async def create_role(
            user: User = Depends(require_permission("role.create"))
        ):
            ...

    Raises:
        Forbidden: if the role's effective permissions do not grant it
    """
    async def permission_dependency(
        current_user: Annotated[User, Depends(get_current_user)],
        users: Annotated[UserDirectory, Depends(get_user_directory)],
    ) -> User:
        info = await users.profile(current_user)
        if not info.can(permission):
            log.info("User %s denied %s", current_user.username, permission)
            raise Forbidden(f"Permission denied: {permission}")
        return current_user

    return permission_dependency
