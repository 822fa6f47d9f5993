"""
Auth API routes — sign-up, sign-in, guest sessions and the caller profile.

Route prefix: /api/v1/auth
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status

from auth.dependencies import get_auth_service, get_current_claims, get_current_user_id
from auth.jwt import Claims
from auth.service import AuthResult, AuthService
from utils.schemas import (
    AuthResponse,
    MeResponse,
    ProfileUpdate,
    PublicUser,
    SignInRequest,
    SignUpRequest,
)

router = APIRouter(tags=["auth"])


def _to_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(token=result.token, user=result.user)


@router.post(
    "/signup",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(
    req: SignUpRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Register a new user."""
    return _to_response(await auth.sign_up(req.name, req.email, req.password))


@router.post("/signin", response_model=AuthResponse, response_model_exclude_none=True)
async def sign_in(
    req: SignInRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Login with email + password."""
    return _to_response(await auth.sign_in(req.email, req.password))


@router.post(
    "/guest",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_guest_session(
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Create a throwaway guest account and return a guest token."""
    return _to_response(await auth.create_guest_session())


@router.get("/me", response_model=MeResponse)
async def me(claims: Claims = Depends(get_current_claims)) -> MeResponse:
    return MeResponse(
        id=claims.subject_id,
        name=claims.name,
        email=claims.email,
        is_guest=claims.is_guest,
        expires_at=datetime.fromtimestamp(claims.expires_at, tz=timezone.utc),
    )


@router.patch("/me", response_model=PublicUser, response_model_exclude_none=True)
async def update_me(
    req: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    auth: AuthService = Depends(get_auth_service),
) -> PublicUser:
    """Change the caller's display name and/or password.  Guests get a 404."""
    return await auth.update_profile(user_id, name=req.name, password=req.password)
