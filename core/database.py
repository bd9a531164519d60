"""
core/database.py -- Shared SQLAlchemy Core schema and engine factory.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in auth/models.py,
graph/models.py and posts/models.py remain the authoritative domain
representation. Swapping SQLite for PostgreSQL is a connection string change.

All three tables live on one MetaData and one Engine because account deletion
must remove edges, posts and the user row inside a single transaction.

Constraints are the final arbiter of races between "does it exist" checks and
writes. Names are fixed so callers can classify an IntegrityError:
  uq_users_email, uq_users_username   -> ConflictError
  ck_users_username_format            -> ValidationError
  uq_follows_pair                     -> AlreadyFollowing
  ck_follows_not_self, ck_posts_content_length

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False),
    Column("username", String(30)),  # NULL until the account picks one
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("email", name="uq_users_email"),
    UniqueConstraint("username", name="uq_users_username"),
    # The full [a-z0-9] pattern is enforced in auth/identity.py; SQL has no
    # portable regex, so the table guards length and case only.
    CheckConstraint(
        "username IS NULL OR (length(username) BETWEEN 3 AND 30 AND username = lower(username))",
        name="ck_users_username_format",
    ),
)

follows = Table(
    "follows",
    metadata,
    Column("follower_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("following_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),
)

posts = Table(
    "posts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("author_id", String(36), ForeignKey("users.id"), nullable=False),
    Column("content", String(280), nullable=False),
    Column("created_at", String(32), nullable=False),
    CheckConstraint("length(content) BETWEEN 1 AND 280", name="ck_posts_content_length"),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys is OFF by default in SQLite.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Create an Engine for db_url and make sure every table exists.

    Usage:
        engine = create_db_engine("sqlite:///socialgraph.db")
        engine = create_db_engine("postgresql://user:pw@host/db")
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
