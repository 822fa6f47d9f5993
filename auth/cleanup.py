"""
Guest account expiry sweep.

Runs once on startup and then periodically in a background task; every run
uses its own session and commits on its own.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from auth.jwt import TokenIssuer, build_token_issuer
from auth.service import AuthService
from database.accounts import AccountStore

logger = logging.getLogger(__name__)


async def sweep_expired_guests(
    session_factory: async_sessionmaker[AsyncSession],
    tokens: Optional[TokenIssuer] = None,
) -> int:
    """Deactivate expired guest accounts; returns how many were deactivated."""
    async with session_factory() as session:
        service = AuthService(AccountStore(session), tokens or build_token_issuer())
        count = await service.cleanup_expired_guests()
        await session.commit()
    return count


async def guest_sweep_loop(
    session_factory: async_sessionmaker[AsyncSession],
    interval_seconds: float,
) -> None:
    """Sweep forever, ``interval_seconds`` apart.  Errors are logged and the loop carries on."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await sweep_expired_guests(session_factory)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Guest sweep failed")
