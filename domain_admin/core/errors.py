"""
Domain error taxonomy.

Services raise these; the API layer maps ``kind`` to an HTTP status and
``code`` to the ``error`` field of the JSON body. The client package raises
the same classes when the server reports them, so both sides share one
vocabulary.
"""
from enum import IntEnum
from typing import Any, Optional


class ErrorKind(IntEnum):
    """Semantic status signal carried across the service boundary."""
    VALIDATION = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409


class DomainError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


# Authentication / session

class InvalidCredentials(DomainError):
    kind = ErrorKind.UNAUTHORIZED
    code = "invalid_credentials"
    default_message = "Invalid username or password"


class AccountDisabled(DomainError):
    kind = ErrorKind.FORBIDDEN
    code = "account_disabled"
    default_message = "User account is disabled"


class Unauthorized(DomainError):
    kind = ErrorKind.UNAUTHORIZED
    code = "unauthorized"
    default_message = "Not authenticated"


class Forbidden(DomainError):
    kind = ErrorKind.FORBIDDEN
    code = "forbidden"
    default_message = "Permission denied"


# Lookups

class NotFound(DomainError):
    kind = ErrorKind.NOT_FOUND
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity.capitalize()} {entity_id} not found", entity=entity, id=entity_id)


class UnknownPermission(DomainError):
    kind = ErrorKind.NOT_FOUND
    code = "unknown_permission"

    def __init__(self, permission_id: int):
        self.permission_id = permission_id
        super().__init__(f"Permission {permission_id} does not exist", id=permission_id)


class UnknownRole(DomainError):
    kind = ErrorKind.NOT_FOUND
    code = "unknown_role"

    def __init__(self, role: Any):
        self.role = role
        super().__init__(f"Role {role} does not exist", role=role)


# Conflicts

class DuplicateName(DomainError):
    kind = ErrorKind.CONFLICT
    code = "duplicate_name"

    def __init__(self, entity: str, name: str):
        super().__init__(f"{entity.capitalize()} with name '{name}' already exists", entity=entity, name=name)


class DuplicateUsername(DomainError):
    kind = ErrorKind.CONFLICT
    code = "duplicate_username"

    def __init__(self, username: str):
        super().__init__(f"Username '{username}' is already taken", username=username)


class DuplicateEmail(DomainError):
    kind = ErrorKind.CONFLICT
    code = "duplicate_email"

    def __init__(self, email: str):
        super().__init__(f"Email '{email}' is already registered", email=email)


class RoleInUse(DomainError):
    kind = ErrorKind.CONFLICT
    code = "role_in_use"

    def __init__(self, role_id: int, user_count: int):
        super().__init__(
            f"Role {role_id} is still assigned to {user_count} user(s)",
            id=role_id,
            users=user_count,
        )


class PermissionHasChildren(DomainError):
    kind = ErrorKind.CONFLICT
    code = "permission_has_children"

    def __init__(self, permission_id: int):
        super().__init__(
            f"Permission {permission_id} has child permissions; delete them first",
            id=permission_id,
        )


class ProtectedEntity(DomainError):
    kind = ErrorKind.FORBIDDEN
    code = "protected"

    def __init__(self, entity: str, name: str, message: Optional[str] = None):
        super().__init__(message or f"Built-in {entity} '{name}' cannot be deleted", entity=entity, name=name)


# Validation

class CycleDetected(DomainError):
    kind = ErrorKind.VALIDATION
    code = "cycle_detected"

    def __init__(self, permission_id: int):
        self.permission_id = permission_id
        super().__init__(
            f"Parent references starting at permission {permission_id} form a cycle",
            id=permission_id,
        )


class ValidationFailed(DomainError):
    kind = ErrorKind.VALIDATION
    code = "validation"
