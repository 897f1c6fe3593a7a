"""
Error taxonomy for the authorization and query boundary.

Every error a caller can observe carries a stable ``code`` and the HTTP
status it maps to. NOT_FOUND deliberately covers both "absent" and
"present but not viewable" so restricted resources never leak existence.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error codes surfaced to callers."""

    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class LorevaultError(Exception):
    """Base class for errors that map onto an error code."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "message": self.message}


class NotFoundError(LorevaultError):
    """Resource is absent, or present but not viewable by the actor."""

    code = ErrorCode.NOT_FOUND
    status_code = 404
    default_message = "Resource not found"


class ForbiddenError(LorevaultError):
    """Resource is viewable but the actor may not modify it."""

    code = ErrorCode.FORBIDDEN
    status_code = 403
    default_message = "Not allowed"


class UnauthorizedError(LorevaultError):
    """Action requires an authenticated actor and none is present."""

    code = ErrorCode.UNAUTHORIZED
    status_code = 401
    default_message = "Authentication required"


class InvalidInputError(LorevaultError):
    """Malformed cursor, bad sort direction, or invalid literal."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 400
    default_message = "Invalid request"


class OwnershipResolutionError(RuntimeError):
    """Ownership resolution was attempted without a storage handle.

    This is a wiring bug, never a request error, so it is not a
    LorevaultError and is not translated into an HTTP status.
    """
    pass
