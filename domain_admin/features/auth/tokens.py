"""
Access token issuing and verification (HS256 JWT).
"""
from datetime import timedelta

import jwt

from domain_admin.core import config
from domain_admin.core.database.base import utcnow
from domain_admin.core.errors import Unauthorized
from domain_admin.features.users.models import User


def create_access_token(user: User) -> tuple[str, int]:
    """
    Issue a token for ``user``.

    Returns:
        (token, lifetime in seconds)
    """
    issued = utcnow()
    lifetime = timedelta(minutes=config.JWT_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.name,
        "iat": issued,
        "exp": issued + lifetime,
    }
    token = jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
    return token, int(lifetime.total_seconds())


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry and return the payload.

    Raises:
        Unauthorized: If the token is invalid or expired
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise Unauthorized(f"Invalid token: {str(e)}")

    if not str(payload.get("sub", "")).isdigit():
        raise Unauthorized("Invalid token payload")
    return payload
