"""
Error taxonomy shared by the auth and task layers.

Core modules raise these; ``api.middleware`` maps them to HTTP responses
using ``status_code``.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for expected, request-level failures."""

    status_code: int = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__


class DuplicateEmail(AppError):
    status_code = 409

    def __init__(self, message: str = "Email already exists") -> None:
        super().__init__(message)


class RegistrationFailed(DuplicateEmail):
    """Sign-up could not create the account."""

    def __init__(self, message: str = "Registration failed") -> None:
        super().__init__(message)


class InvalidCredentials(AppError):
    status_code = 401

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class InvalidToken(AppError):
    status_code = 401

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class TokenExpired(InvalidToken):
    def __init__(self, message: str = "Token expired") -> None:
        super().__init__(message)


class GuestSessionFailed(AppError):
    status_code = 400

    def __init__(self, message: str = "There is an error when we create a guest session") -> None:
        super().__init__(message)


class NotFoundOrForbidden(AppError):
    """Missing, soft-deleted and foreign rows all look the same to callers."""

    status_code = 404

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message)


class ValidationFailed(AppError):
    status_code = 422

    def __init__(self, message: str = "Validation failed", errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]
