"""Error taxonomy shared by services and request handlers."""
from __future__ import annotations

from fastapi import status


class ApiError(Exception):
    """Base exception carrying the HTTP status for the error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ApiError):
    """Raised for missing or malformed input (unparsable ids, dates, fields)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(ApiError):
    """Raised when the bearer token is missing, malformed or rejected."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class AuthorizationError(ApiError):
    """Raised on insufficient permissions or a tenant mismatch."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class UnexpectedError(ApiError):
    """Store or external-service failure surfaced with a generic message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "ApiError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "NotFoundError",
    "UnexpectedError",
    "ValidationError",
]
