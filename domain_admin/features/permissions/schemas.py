"""
Pydantic schemas for permission management.
"""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from domain_admin.core.schemas import reject_null
from domain_admin.features.permissions.tree import PermissionNode


PermissionType = Literal["menu", "button", "api"]
PermissionAction = Literal["GET", "POST", "PUT", "DELETE", "*"]


def _check_name(v: str) -> str:
    if not v.replace('_', '').replace('.', '').replace(':', '').replace('-', '').isalnum():
        raise ValueError('Permission name must contain only alphanumeric characters, underscores, dots, dashes and colons')
    return v


def _upper(v: Optional[str]) -> Optional[str]:
    return v.upper() if isinstance(v, str) else v


class PermissionBase(BaseModel):
    """Base permission schema."""
    parent_id: int = Field(0, ge=0, description="Parent permission ID (0 for a root node)")
    name: str = Field(..., min_length=1, max_length=100, description="Unique permission name")
    display_name: str = Field(..., min_length=1, max_length=100)
    resource: str = Field(..., min_length=1, max_length=100, description="Route or API path")
    type: PermissionType = "menu"
    action: Optional[PermissionAction] = None
    description: Optional[str] = Field(None, max_length=255)
    sort: int = 0
    status: int = Field(1, ge=0, le=1)


class PermissionCreate(PermissionBase):
    """Schema for creating a new permission."""

    @field_validator('name')
    @classmethod
    def name_format(cls, v: str) -> str:
        return _check_name(v)

    @field_validator('action', mode='before')
    @classmethod
    def action_uppercase(cls, v):
        return _upper(v)


class PermissionUpdate(BaseModel):
    """Schema for updating a permission. Only provided fields change."""
    parent_id: Optional[int] = Field(None, ge=0)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    resource: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[PermissionType] = None
    action: Optional[PermissionAction] = None
    description: Optional[str] = Field(None, max_length=255)
    sort: Optional[int] = None
    status: Optional[int] = Field(None, ge=0, le=1)

    @field_validator('parent_id', 'name', 'display_name', 'resource', 'type', 'sort', 'status')
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

    @field_validator('name')
    @classmethod
    def name_format(cls, v: Optional[str]) -> Optional[str]:
        return _check_name(v) if v is not None else v

    @field_validator('action', mode='before')
    @classmethod
    def action_uppercase(cls, v):
        return _upper(v)


class PermissionResponse(PermissionBase):
    """Schema for permission response."""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PermissionTreeNode(PermissionResponse):
    """A permission with its ordered children, for lazy-expansion tree views."""
    children: List["PermissionTreeNode"] = []

    @computed_field
    @property
    def has_children(self) -> bool:
        return len(self.children) > 0

    @classmethod
    def from_node(cls, node: PermissionNode) -> "PermissionTreeNode":
        base = PermissionResponse.model_validate(node.permission).model_dump()
        return cls(**base, children=[cls.from_node(child) for child in node.children])


class PermissionSearchHit(PermissionResponse):
    """A flat search result; ``has_children`` tells whether the node can be expanded."""
    has_children: bool


PermissionTreeNode.model_rebuild()
