"""
Auth orchestration — sign-up, sign-in, guest sessions and guest expiry.

``AuthService`` holds no state of its own; it composes the account store,
the password codec and the token issuer handed to it.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from auth.jwt import Claims, TokenIssuer
from auth.password import hash_password, verify_password
from config.settings import config
from database.accounts import (
    GUEST_EMAIL_DOMAIN,
    GUEST_EMAIL_PREFIX,
    AccountStore,
    is_guest_email,
)
from database.models import User
from utils.errors import (
    DuplicateEmail,
    GuestSessionFailed,
    InvalidCredentials,
    InvalidToken,
    NotFoundOrForbidden,
    RegistrationFailed,
)
from utils.schemas import PublicUser

logger = logging.getLogger(__name__)

GUEST_NAME = "Guest User"
_GUEST_CREATE_ATTEMPTS = 3


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: PublicUser


def generate_guest_email() -> str:
    return f"{GUEST_EMAIL_PREFIX}{secrets.token_hex(6)}{GUEST_EMAIL_DOMAIN}"


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    """A process-wide hash nobody knows the password of, one per work factor."""
    return hash_password(secrets.token_urlsafe(16), rounds=rounds)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AuthService:
    def __init__(
        self,
        accounts: AccountStore,
        tokens: TokenIssuer,
        bcrypt_rounds: Optional[int] = None,
        guest_ttl_hours: Optional[int] = None,
    ) -> None:
        self._accounts = accounts
        self._tokens = tokens
        self._rounds = bcrypt_rounds or config.bcrypt_rounds
        self._guest_ttl = timedelta(hours=guest_ttl_hours or config.guest_ttl_hours)

    def _hash(self, password: str) -> str:
        return hash_password(password, rounds=self._rounds)

    def _issue(self, user: User, is_guest: bool = False) -> str:
        return self._tokens.issue(user.id, user.email, user.name, is_guest=is_guest)

    def _burn_verification(self, password: str) -> None:
        """Spend one bcrypt check so unknown e-mails cost as much as wrong passwords."""
        verify_password(password, _dummy_hash(self._rounds))

    async def sign_up(self, name: str, email: str, password: str) -> AuthResult:
        password_hash = self._hash(password)
        try:
            user = await self._accounts.create(name, email, password_hash)
        except DuplicateEmail as exc:
            logger.info("Sign-up rejected: e-mail already registered")
            raise RegistrationFailed("Email already exists") from exc

        token = self._issue(user)
        logger.info("Registered user %s (%s)", user.name, user.id)
        return AuthResult(
            token=token,
            user=PublicUser(id=user.id, name=user.name, email=user.email),
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        user = None
        if not is_guest_email(email):
            user = await self._accounts.find_by_email(email)

        if user is None:
            self._burn_verification(password)
            logger.warning("Failed sign-in attempt")
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.warning("Failed sign-in attempt")
            raise InvalidCredentials()

        token = self._issue(user)
        logger.info("Login: %s (%s)", user.name, user.id)
        return AuthResult(
            token=token,
            user=PublicUser(id=user.id, name=user.name, email=user.email),
        )

    async def update_profile(
        self,
        user_id: int,
        name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> PublicUser:
        """Change the display name and/or password of a registered account."""
        user = await self._accounts.find_by_id(user_id)
        if user is None or is_guest_email(user.email):
            raise NotFoundOrForbidden("Account not found")

        fields = {}
        if name is not None:
            fields["name"] = name
        if password is not None:
            fields["password_hash"] = self._hash(password)
        if fields:
            user = await self._accounts.update(user_id, **fields)
            logger.info("Updated profile of user %s (%s)", user_id, ", ".join(sorted(fields)))
        return PublicUser(id=user.id, name=user.name, email=user.email)

    async def create_guest_session(self) -> AuthResult:
        # The throwaway password is hashed and dropped; nobody can sign in with it.
        password_hash = self._hash(secrets.token_urlsafe(32))
        user = None
        for _ in range(_GUEST_CREATE_ATTEMPTS):
            try:
                user = await self._accounts.create(GUEST_NAME, generate_guest_email(), password_hash)
                break
            except DuplicateEmail:
                continue
            except Exception as exc:
                logger.exception("Guest session creation failed")
                raise GuestSessionFailed() from exc
        if user is None:
            raise GuestSessionFailed()

        token = self._issue(user, is_guest=True)
        logger.info("Created guest session (%s)", user.id)
        return AuthResult(
            token=token,
            user=PublicUser(name=user.name, is_guest=True),
        )

    async def cleanup_expired_guests(self, now: Optional[datetime] = None) -> int:
        """
        Deactivate guest accounts older than the guest TTL.

        Returns the number of accounts deactivated.
        """
        cutoff = (now or datetime.now(timezone.utc)) - self._guest_ttl
        expired = await self._accounts.find_expired_guests(cutoff)
        for user in expired:
            await self._accounts.deactivate(user.id)
        if expired:
            logger.info("Deactivated %d expired guest accounts", len(expired))
        return len(expired)

    async def authenticate(self, token: str) -> Claims:
        """
        Verify ``token`` and check its subject is still an active account.

        Guest accounts past their TTL are rejected even before the sweep
        deactivates them.
        """
        claims = self._tokens.verify(token)
        user = await self._accounts.find_by_id(claims.subject_id)
        if user is None:
            raise InvalidToken("Account is no longer active")
        if claims.is_guest and _as_utc(user.created_at) <= datetime.now(timezone.utc) - self._guest_ttl:
            logger.info("Rejected token for expired guest account %s", user.id)
            raise InvalidToken("Guest session expired")
        return claims
