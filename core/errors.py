"""
core/errors.py -- Application error taxonomy.

Every failure the service reports on purpose is an AppError subclass. Each
class pins an HTTP status and a default machine-readable code; raisers may
override the code (e.g. "TARGET_NOT_FOUND") and attach a data payload that the
API layer echoes back to the client.

Rendering lives in api/main.py (one exception handler for the whole tree).
Stores and services raise these; they never build HTTP responses themselves.

Layer rule: core/ is the kernel. No imports from api/, auth/, graph/, or posts/.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for expected, client-visible failures."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, code: str | None = None, data: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": False, "code": self.code, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class ValidationError(AppError):
    """Malformed or missing input. Raised before any storage access."""

    status_code = 400
    code = "validation_error"


class AuthError(AppError):
    status_code = 401
    code = "unauthorized"


class MissingTokenError(AuthError):
    code = "no_token"


class InvalidTokenError(AuthError):
    """Bad signature, malformed token, missing subject, or expired."""

    code = "invalid_token"


class InvalidCredentialsError(AuthError):
    code = "bad_credentials"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    """Uniqueness or state violation (email taken, already following, ...)."""

    status_code = 409
    code = "conflict"
