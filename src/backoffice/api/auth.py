"""Auth API — login, token refresh, logout, own profile.

Learn: Routes for the session lifecycle:
- POST /auth/login → email/password → access + refresh token
- POST /auth/refresh → refresh token → new access token
- POST /auth/logout → audit only; tokens are stateless
- GET /auth/me, GET/PUT /auth/profile → the caller's own account
- PUT /auth/profile/password → change own password
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import authenticate_request, request_context
from backoffice.auth.jwt import extract_bearer_token
from backoffice.db.engine import get_db
from backoffice.db.models import User
from backoffice.schemas.common import MessageResponse
from backoffice.schemas.user import (
    LoginRequest,
    LoginResponse,
    PasswordChange,
    ProfileResponse,
    ProfileUpdate,
    RefreshRequest,
    RefreshResponse,
    UserRead,
)
from backoffice.services.activity_log import RequestContext
from backoffice.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    svc: AuthService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    user, token, refresh_token = await svc.login(body.email, body.password, ctx)
    return LoginResponse(
        token=token,
        refresh_token=refresh_token,
        user=UserRead.model_validate(user),
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(body: RefreshRequest, svc: AuthService = Depends(_svc)):
    token = await svc.refresh(body.refresh_token)
    return RefreshResponse(token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    authorization: Optional[str] = Header(None),
    svc: AuthService = Depends(_svc),
    ctx: RequestContext = Depends(request_context),
):
    """Always succeeds. A valid bearer token only adds an audit entry."""
    await svc.logout(extract_bearer_token(authorization), ctx)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=ProfileResponse)
async def me(user: User = Depends(authenticate_request)):
    return ProfileResponse(user=UserRead.model_validate(user))


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: User = Depends(authenticate_request)):
    return ProfileResponse(user=UserRead.model_validate(user))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(authenticate_request),
    svc: AuthService = Depends(_svc),
):
    user = await svc.update_profile(user, body)
    return ProfileResponse(
        user=UserRead.model_validate(user),
        message="Profile updated successfully",
    )


@router.put("/profile/password", response_model=MessageResponse)
async def change_password(
    body: PasswordChange,
    user: User = Depends(authenticate_request),
    svc: AuthService = Depends(_svc),
):
    await svc.change_password(user.id, body)
    return MessageResponse(message="Password changed successfully")
