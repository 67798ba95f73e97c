"""
Pydantic schemas for role management.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain_admin.core.schemas import reject_null
from domain_admin.features.permissions.schemas import PermissionResponse


def _check_name(v: str) -> str:
    if not v.replace('_', '').replace('-', '').isalnum():
        raise ValueError('Role name must contain only alphanumeric characters, underscores, and hyphens')
    return v


class RoleBase(BaseModel):
    """Base role schema."""
    name: str = Field(..., min_length=1, max_length=50, description="Unique role name")
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    status: int = Field(1, ge=0, le=1)


class RoleCreate(RoleBase):
    """Schema for creating a new role."""

    @field_validator('name')
    @classmethod
    def name_alphanumeric_underscore(cls, v: str) -> str:
        return _check_name(v)


class RoleUpdate(BaseModel):
    """Schema for updating a role."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    status: Optional[int] = Field(None, ge=0, le=1)

    @field_validator('name', 'display_name', 'status')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

    @field_validator('name')
    @classmethod
    def name_alphanumeric_underscore(cls, v: Optional[str]) -> Optional[str]:
        return _check_name(v) if v is not None else v


class RoleResponse(RoleBase):
    """Schema for role response."""
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleWithPermissions(RoleResponse):
    """Schema for role with its assigned permissions (disabled ones included)."""
    permissions: List[PermissionResponse] = []

    model_config = ConfigDict(from_attributes=True)


class AssignPermissions(BaseModel):
    """Replace-all assignment: the given ids become the role's entire permission set."""
    permission_ids: List[int] = Field(default_factory=list)


class RolePermissionsResponse(BaseModel):
    role_id: int
    permission_ids: List[int]
    effective: List[PermissionResponse] = []
