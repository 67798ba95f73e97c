"""
Authentication routes: register, login, logout, profile and password.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from slowapi.util import get_remote_address

from domain_admin.core import config
from domain_admin.core.schemas import MessageResponse
from domain_admin.features.auth.dependencies import get_current_user, limiter
from domain_admin.features.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    TokenResponse,
    UserInfo,
)
from domain_admin.features.auth.tokens import create_access_token
from domain_admin.features.users.dependencies import get_user_directory
from domain_admin.features.users.models import User
from domain_admin.features.users.service import UserDirectory
from domain_admin.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["auth"])


@router.post("/register", response_model=UserInfo, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
):
    """Create an account with the default role."""
    user = await users.register(data)
    return await users.profile(user)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(config.LOGIN_RATE_LIMIT, key_func=get_remote_address)
async def login(
    request: Request,
    credentials: LoginRequest,
    users: Annotated[UserDirectory, Depends(get_user_directory)],
):
    """
    Exchange username and password for a bearer token.

    Disabled accounts are refused here even with the right password.
    """
    user = await users.authenticate(credentials.username, credentials.password)
    token, expires_in = create_access_token(user)
    log.info("User %s logged in", user.username)
    return TokenResponse(token=token, expires_in=expires_in, user=await users.profile(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(user: Annotated[User, Depends(get_current_user)]):
    """Tokens are stateless; the client discards its copy."""
    log.info("User %s logged out", user.username)
    return MessageResponse(message="Logged out")


@router.get("/profile", response_model=UserInfo)
async def get_profile(
    user: Annotated[User, Depends(get_current_user)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
):
    """Current user's profile with effective permission names."""
    return await users.profile(user)


@router.put("/profile", response_model=UserInfo)
async def update_profile(
    data: ProfileUpdate,
    user: Annotated[User, Depends(get_current_user)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
):
    user = await users.update_profile(user, data)
    return await users.profile(user)


@router.put("/password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    user: Annotated[User, Depends(get_current_user)],
    users: Annotated[UserDirectory, Depends(get_user_directory)],
):
    await users.change_password(user, data.old_password, data.new_password)
    return MessageResponse(message="Password updated")
