"""
JWT-style token creation and verification.

Tokens are base64url-encoded JSON payloads signed with HMAC-SHA256::

    <base64url(payload)>.<hex(hmac_sha256(secret, payload))>

The secret and lifetime are loaded once at startup from ``config.jwt_secret``
(env var: ``JWT_SECRET``) and ``config.jwt_expiry_seconds``.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from dataclasses import dataclass
from typing import Any, Callable, Dict

from config.settings import config
from utils.errors import InvalidToken, TokenExpired

_REQUIRED_FIELDS = ("sub", "email", "name", "iat", "exp")


@dataclass(frozen=True)
class Claims:
    """Identity facts carried by a verified token."""

    subject_id: int
    email: str
    name: str
    is_guest: bool
    issued_at: int
    expires_at: int


class TokenIssuer:
    """Signs and verifies time-bound identity claims with a shared secret."""

    def __init__(
        self,
        secret: str,
        lifetime_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret.encode()
        self._lifetime = lifetime_seconds
        self._clock = clock

    @property
    def lifetime_seconds(self) -> int:
        return self._lifetime

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def issue(
        self,
        subject_id: int,
        email: str,
        name: str,
        is_guest: bool = False,
    ) -> str:
        """Create a signed token for ``subject_id`` valid for the configured lifetime."""
        now = int(self._clock())
        payload: Dict[str, Any] = {
            "sub": subject_id,
            "email": email,
            "name": name,
            "is_guest": is_guest,
            "iat": now,
            "exp": now + self._lifetime,
        }
        raw = json.dumps(payload, separators=(",", ":")).encode()
        return urlsafe_b64encode(raw).decode().rstrip("=") + "." + self._sign(raw)

    def verify(self, token: str) -> Claims:
        """
        Verify ``token`` and return its claims.

        Raises ``InvalidToken`` on malformed or tampered tokens and
        ``TokenExpired`` once ``exp`` has been reached.
        """
        if not isinstance(token, str) or token.count(".") != 1:
            raise InvalidToken("Malformed token")
        encoded, signature = token.split(".", 1)
        try:
            raw = urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
        except (binascii.Error, ValueError) as exc:
            raise InvalidToken("Malformed token") from exc

        if not hmac.compare_digest(signature.encode(), self._sign(raw).encode()):
            raise InvalidToken("Bad token signature")

        try:
            payload = json.loads(raw)
        except ValueError as exc:
            raise InvalidToken("Malformed token") from exc
        if not isinstance(payload, dict) or any(f not in payload for f in _REQUIRED_FIELDS):
            raise InvalidToken("Malformed token")

        if self._clock() >= payload["exp"]:
            raise TokenExpired()

        return Claims(
            subject_id=payload["sub"],
            email=payload["email"],
            name=payload["name"],
            is_guest=bool(payload.get("is_guest", False)),
            issued_at=payload["iat"],
            expires_at=payload["exp"],
        )


def build_token_issuer() -> TokenIssuer:
    """Process-wide issuer built from settings."""
    return TokenIssuer(config.jwt_secret, config.jwt_expiry_seconds)
