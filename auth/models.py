"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these dataclasses own the domain shape.

Layer rule: no imports from api/, graph/, or posts/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email and username are stored trimmed and lower-cased, so equality checks
    elsewhere in the code are plain string comparisons.

    username is None for accounts that have not picked a handle yet; login
    reports needsUsername=True for them.

    hashed_password is the bcrypt digest. It never leaves the service: the
    API layer projects id/email/username/created_at only.
    """

    email: str
    hashed_password: str
    username: str | None = None
    id: str | None = None  # UUID4 hex, assigned by the store on insert
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token. All times are epoch seconds."""

    subject_id: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class SessionContext:
    """Resolved identity for one authenticated request.

    Produced by auth.dependencies.get_session() and passed to route handlers
    through Depends(); nothing is attached to the Request object.
    """

    user_id: str
    expires_at: int
    token: str
