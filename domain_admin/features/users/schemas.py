"""
Pydantic schemas for user-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

from domain_admin.core.schemas import reject_null


class UserBase(BaseModel):
    """Base user schema with common fields."""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    nickname: str | None = Field(None, max_length=50)
    phone: str | None = Field(None, max_length=20)


class UserCreate(UserBase):
    """Schema for creating a new user (admin). Role defaults to ``user``."""
    password: str = Field(..., min_length=6, max_length=128)
    role_id: int | None = None
    status: int = Field(1, ge=0, le=1)


class UserUpdate(BaseModel):
    """Schema for updating user information."""
    email: EmailStr | None = None
    nickname: str | None = Field(None, max_length=50)
    avatar: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=20)
    role_id: int | None = None
    status: int | None = Field(None, ge=0, le=1)

    @field_validator("email", "role_id", "status")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


class RoleChange(BaseModel):
    role_id: int


class RoleSummary(BaseModel):
    id: int
    name: str
    display_name: str

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    """Schema for user responses."""
    id: int
    username: str
    email: str
    nickname: str | None = None
    avatar: str | None = None
    phone: str | None = None
    role_id: int
    role: RoleSummary | None = None
    status: int
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
