"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper (same as graph/store.py and posts/store.py).
UserStore is the repository; _row_to_user is the mapper. Service and route
code never touches SQL directly.

Uniqueness: the store does not pre-check anything. Inserts and updates let
sqlalchemy.exc.IntegrityError propagate; auth/identity.py classifies it with
violated_constraint() and turns it into a ConflictError or ValidationError.

Transactions: methods open their own connection and commit. Methods that take
a `conn` argument run inside the caller's transaction instead (used by
graph/deletion.py).

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, graph/, or posts/.
"""

from __future__ import annotations

import uuid

from sqlalchemy import func
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.database import now_iso, users

# Constraint names from core/database.py, mapped to the column they guard.
# SQLite reports the column ("UNIQUE constraint failed: users.email");
# PostgreSQL reports the constraint name. Either text contains the key.
_CONSTRAINT_MARKERS: dict[str, tuple[str, ...]] = {
    "email": ("uq_users_email", "users.email"),
    "username": ("uq_users_username", "users.username"),
    "username_format": ("ck_users_username_format",),
}


def violated_constraint(exc: IntegrityError) -> str | None:
    """Return "email", "username" or "username_format" for a users-table
    IntegrityError, or None when the error is something else."""
    message = str(exc.orig)
    for key, markers in _CONSTRAINT_MARKERS.items():
        if any(marker in message for marker in markers):
            return key
    if "CHECK constraint failed" in message or "check constraint" in message:
        return "username_format"
    return None


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(create_db_engine("sqlite:///:memory:"))
        user = store.create_user(User(email="a@x.com", hashed_password=h, username="alice"))
        store.get_by_email("a@x.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> User:
        """Insert a new user and return it with id and created_at filled in.

        Raises sqlalchemy.exc.IntegrityError if the email or username is taken.
        """
        user_id = uuid.uuid4().hex
        created_at = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                users.insert().values(
                    id=user_id,
                    email=user.email,
                    username=user.username,
                    hashed_password=user.hashed_password,
                    created_at=created_at,
                )
            )
            conn.commit()
        return User(
            id=user_id,
            email=user.email,
            username=user.username,
            hashed_password=user.hashed_password,
            created_at=created_at,
        )

    def update_username(self, user_id: str, username: str) -> User | None:
        """Set a new username. Returns the updated user, or None if user_id is unknown.

        Raises sqlalchemy.exc.IntegrityError on a unique or check violation.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                users.update().where(users.c.id == user_id).values(username=func.lower(username))
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_by_id(user_id)

    def delete_user(self, conn: Connection, user_id: str) -> User | None:
        """Delete the user row inside the caller's transaction.

        Returns the last-known record, or None when no row matched.
        """
        row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        if row is None:
            return None
        conn.execute(users.delete().where(users.c.id == user_id))
        return _row_to_user(row)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, email: str) -> User | None:
        """Case-insensitive lookup by email. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(func.lower(users.c.email) == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Case-insensitive lookup by username. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(func.lower(users.c.username) == username.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def email_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def username_exists(self, username: str) -> bool:
        return self.get_by_username(username) is not None


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
    )
