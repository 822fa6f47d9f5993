"""
FastAPI dependencies for authentication.

Provides ``db_session``, the per-request service builders and the
``get_current_claims`` / ``get_current_user_id`` dependencies that are used
across all protected routes.
"""

from __future__ import annotations

from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import Claims, TokenIssuer, build_token_issuer
from auth.service import AuthService
from database.accounts import AccountStore
from database.session import get_db_session
from database.tasks import TaskRepository
from utils.errors import InvalidToken

_bearer_scheme = HTTPBearer(auto_error=False)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


@lru_cache(maxsize=1)
def get_token_issuer() -> TokenIssuer:
    """The process-wide issuer, built on first use."""
    return build_token_issuer()


def get_auth_service(
    session: AsyncSession = Depends(db_session),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(AccountStore(session), tokens)


def get_task_repository(
    session: AsyncSession = Depends(db_session),
) -> TaskRepository:
    return TaskRepository(session)


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Claims:
    """Extract and verify the Bearer token, returning its claims."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise InvalidToken("Missing Bearer token")
    return await auth.authenticate(credentials.credentials)


async def get_current_user_id(
    claims: Claims = Depends(get_current_claims),
) -> int:
    """The authenticated account id."""
    return claims.subject_id
