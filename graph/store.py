"""
graph/store.py -- SQLAlchemy Core persistence for follow edges.

Pattern: Repository + Data Mapper. FollowStore is the repository;
_row_to_edge is the mapper.

create_edge() lets sqlalchemy.exc.IntegrityError propagate when the pair
already exists (uq_follows_pair); graph/service.py maps it to
ALREADY_FOLLOWING. delete_edge() reports whether a row was removed so the
service can map a lost race to NOT_FOLLOWING.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

from sqlalchemy import and_, or_
from sqlalchemy.engine import Connection, Engine

from core.database import follows, now_iso
from graph.models import FollowEdge


class FollowStore:
    """Repository for FollowEdge entities.

    Usage:
        store = FollowStore(engine)
        edge = store.create_edge(alice_id, bob_id)
        store.exists(alice_id, bob_id)   # True
        store.delete_edge(alice_id, bob_id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_edge(self, follower_id: str, following_id: str) -> FollowEdge:
        """Insert an edge. Raises IntegrityError on duplicate pair, self-edge or unknown user."""
        created_at = now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                follows.insert().values(
                    follower_id=follower_id,
                    following_id=following_id,
                    created_at=created_at,
                )
            )
            conn.commit()
        return FollowEdge(follower_id=follower_id, following_id=following_id, created_at=created_at)

    def delete_edge(self, follower_id: str, following_id: str) -> bool:
        """Delete an edge. Returns True if a row was removed."""
        with self.engine.connect() as conn:
            result = conn.execute(
                follows.delete().where(
                    and_(follows.c.follower_id == follower_id, follows.c.following_id == following_id)
                )
            )
            conn.commit()
        return result.rowcount > 0

    def exists(self, follower_id: str, following_id: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(
                follows.select().where(
                    and_(follows.c.follower_id == follower_id, follows.c.following_id == following_id)
                )
            ).fetchone()
        return row is not None

    def followers(self, user_id: str) -> list[FollowEdge]:
        """Edges pointing at user_id, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                follows.select().where(follows.c.following_id == user_id).order_by(follows.c.created_at)
            ).fetchall()
        return [_row_to_edge(r) for r in rows]

    def following(self, user_id: str) -> list[FollowEdge]:
        """Edges leaving user_id, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                follows.select().where(follows.c.follower_id == user_id).order_by(follows.c.created_at)
            ).fetchall()
        return [_row_to_edge(r) for r in rows]

    def delete_all_for(self, conn: Connection, user_id: str) -> int:
        """Delete every edge touching user_id inside the caller's transaction.

        Returns the number of edges removed.
        """
        result = conn.execute(
            follows.delete().where(or_(follows.c.follower_id == user_id, follows.c.following_id == user_id))
        )
        return result.rowcount


def _row_to_edge(row) -> FollowEdge:
    return FollowEdge(
        follower_id=row.follower_id,
        following_id=row.following_id,
        created_at=row.created_at,
    )
