"""
Schemas for login, profile and password endpoints.
"""
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from domain_admin.core.schemas import reject_null
from domain_admin.features.permissions.models import SUPERUSER_PERMISSION


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    nickname: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)


class UserInfo(BaseModel):
    """Profile served to the signed-in user; ``permissions`` are effective names."""
    id: int
    username: str
    email: str
    nickname: Optional[str] = None
    avatar: Optional[str] = None
    role: str
    status: int
    permissions: List[str] = []

    def can(self, permission: str) -> bool:
        return permission in self.permissions or SUPERUSER_PERMISSION in self.permissions


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class ProfileUpdate(BaseModel):
    email: Optional[EmailStr] = None
    nickname: Optional[str] = Field(None, max_length=50)
    avatar: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("email")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("New password and confirmation do not match")
        return self
