"""
Tests for the background guest sweep.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from auth.cleanup import guest_sweep_loop, sweep_expired_guests
from database.accounts import AccountStore


async def _make_guest(session_factory, age: timedelta) -> int:
    async with session_factory() as session:
        user = await AccountStore(session).create("Guest User", f"guest_{age.days}x@temp.local", "h")
        user.created_at = datetime.now(timezone.utc) - age
        await session.commit()
        return user.id


class TestGuestSweep:
    @pytest.mark.asyncio
    async def test_sweep_commits_deactivation(self, session_factory, tokens):
        old = await _make_guest(session_factory, timedelta(days=2))
        fresh = await _make_guest(session_factory, timedelta(days=0))

        assert await sweep_expired_guests(session_factory, tokens) == 1

        async with session_factory() as session:
            store = AccountStore(session)
            assert await store.find_by_id(old) is None
            assert await store.find_by_id(fresh) is not None

    @pytest.mark.asyncio
    async def test_loop_survives_failures_and_cancels(self, session_factory):
        calls = []

        async def flaky(factory):
            calls.append(factory)
            if len(calls) == 1:
                raise RuntimeError("db down")
            return 0

        with patch("auth.cleanup.sweep_expired_guests", new=AsyncMock(side_effect=flaky)):
            task = asyncio.create_task(guest_sweep_loop(session_factory, 0.01))
            for _ in range(100):
                if len(calls) >= 2:
                    break
                await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        assert len(calls) >= 2
