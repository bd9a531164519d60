"""
posts/store.py -- SQLAlchemy Core persistence and retrieval for posts.

Listing is plain filtered retrieval: newest first, a clamped limit, optional
author filter and a case-insensitive substring search. No cursors.

Security: all queries use bound parameters. The search term is passed as a
LIKE parameter with wildcards escaped, never interpolated into SQL.

Layer rule: no imports from api/ or graph/.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.engine import Connection, Engine

from core.database import follows, now_iso, posts, users
from core.errors import NotFoundError, ValidationError
from posts.models import MAX_CONTENT_LENGTH, Post

logger = logging.getLogger("socialgraph.posts")

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def clamp_limit(limit: int | None) -> int:
    """Clamp a requested page size into 1..100; missing or zero means the default."""
    if not limit:
        return DEFAULT_LIMIT
    return min(max(limit, 1), MAX_LIMIT)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


_POST_COLUMNS = (
    posts.c.id,
    posts.c.author_id,
    users.c.username.label("author_username"),
    posts.c.content,
    posts.c.created_at,
)


class PostStore:
    """Repository for Post entities.

    Usage:
        store = PostStore(engine)
        post = store.create(alice_id, "hola")
        store.list_posts(limit=20, query="hol")
        store.following_feed(bob_id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, author_id: str, content: str | None) -> Post:
        if not content or len(content) > MAX_CONTENT_LENGTH:
            raise ValidationError("content 1..280 requerido")
        post_id = uuid.uuid4().hex
        created_at = now_iso()
        with self.engine.connect() as conn:
            author = conn.execute(select(users.c.username).where(users.c.id == author_id)).fetchone()
            if author is None:
                raise NotFoundError("Usuario no encontrado", code="USER_NOT_FOUND")
            conn.execute(
                posts.insert().values(id=post_id, author_id=author_id, content=content, created_at=created_at)
            )
            conn.commit()
        logger.info("User %s created post %s", author_id, post_id)
        return Post(
            id=post_id,
            author_id=author_id,
            author_username=author.username,
            content=content,
            created_at=created_at,
        )

    def list_posts(self, limit: int | None = None, author_id: str | None = None, query: str | None = None) -> list[Post]:
        """Global listing, newest first, optionally filtered by author and text."""
        stmt = select(*_POST_COLUMNS).select_from(posts.join(users, users.c.id == posts.c.author_id))
        if author_id:
            stmt = stmt.where(posts.c.author_id == author_id)
        if query:
            pattern = f"%{_escape_like(query.lower())}%"
            stmt = stmt.where(func.lower(posts.c.content).like(pattern, escape="\\"))
        stmt = stmt.order_by(posts.c.created_at.desc()).limit(clamp_limit(limit))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_post(r) for r in rows]

    def following_feed(self, user_id: str, limit: int | None = None) -> list[Post]:
        """Posts written by accounts user_id follows, newest first."""
        stmt = (
            select(*_POST_COLUMNS)
            .select_from(
                posts.join(users, users.c.id == posts.c.author_id).join(
                    follows, follows.c.following_id == posts.c.author_id
                )
            )
            .where(follows.c.follower_id == user_id)
            .order_by(posts.c.created_at.desc())
            .limit(clamp_limit(limit))
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_post(r) for r in rows]

    def delete_by_author(self, conn: Connection, author_id: str) -> int:
        """Delete every post by author_id inside the caller's transaction. Returns the count."""
        result = conn.execute(posts.delete().where(posts.c.author_id == author_id))
        return result.rowcount


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        author_id=row.author_id,
        author_username=row.author_username,
        content=row.content,
        created_at=row.created_at,
    )
