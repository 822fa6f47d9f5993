"""
Account store — user rows, e-mail uniqueness and soft delete.

E-mails are normalised (stripped, lower-cased) on every write and lookup, so
uniqueness and lookup are case-insensitive.  Uniqueness is enforced by the
``users.email`` constraint alone; deactivated accounts keep their address
reserved.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User
from utils.errors import DuplicateEmail

logger = logging.getLogger(__name__)

GUEST_EMAIL_PREFIX = "guest_"
GUEST_EMAIL_DOMAIN = "@temp.local"

_GUEST_EMAIL_PATTERN = "guest\\_%@temp.local"
_UPDATABLE_FIELDS = {"name", "email", "password_hash"}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_guest_email(email: str) -> bool:
    email = normalize_email(email)
    return email.startswith(GUEST_EMAIL_PREFIX) and email.endswith(GUEST_EMAIL_DOMAIN)


class AccountStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, name: str, email: str, password_hash: str) -> User:
        """Insert an account; raises ``DuplicateEmail`` if the address is taken."""
        user = User(
            name=name,
            email=normalize_email(email),
            password_hash=password_hash,
            active=True,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(user)
                await self._session.flush()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        logger.debug("Created account %s", user.id)
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(
            select(User).where(
                User.email == normalize_email(email),
                User.active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> Optional[User]:
        result = await self._session.execute(
            select(User).where(User.id == user_id, User.active.is_(True))
        )
        return result.scalar_one_or_none()

    async def update(self, user_id: int, **fields) -> Optional[User]:
        """Update profile fields of an active account.  ``None`` if no active row matched."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update account fields: {sorted(unknown)}")
        user = await self.find_by_id(user_id)
        if user is None:
            return None
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        try:
            async with self._session.begin_nested():
                for key, value in fields.items():
                    setattr(user, key, value)
                await self._session.flush()
        except IntegrityError as exc:
            raise DuplicateEmail() from exc
        return user

    async def deactivate(self, user_id: int) -> None:
        """Soft-delete an account.  Idempotent."""
        await self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(active=False)
            .execution_options(synchronize_session="fetch")
        )

    async def find_expired_guests(self, cutoff: datetime) -> List[User]:
        """Active guest accounts created before ``cutoff``."""
        result = await self._session.execute(
            select(User).where(
                User.active.is_(True),
                User.email.like(_GUEST_EMAIL_PATTERN, escape="\\"),
                User.created_at < cutoff,
            )
        )
        return list(result.scalars().all())
