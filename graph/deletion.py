"""
graph/deletion.py -- Account deletion across edges, posts and the user row.

All three deletes run inside one engine.begin() transaction: either the
account disappears together with every edge touching it and every post it
wrote, or nothing changes. A missing user raises NotFoundError inside the
transaction, which rolls it back.

Order (edges, posts, user) keeps foreign keys satisfied at every step.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from auth.models import User
from auth.store import UserStore
from core.errors import NotFoundError
from graph.store import FollowStore
from posts.store import PostStore

logger = logging.getLogger("socialgraph.graph")


class AccountDeleter:
    """Cascading, transactional self-deletion.

    Usage:
        deleter = AccountDeleter(engine, user_store, follow_store, post_store)
        removed = deleter.delete_account(user_id)   # last-known User
    """

    def __init__(self, engine: Engine, users: UserStore, follows: FollowStore, posts: PostStore) -> None:
        self.engine = engine
        self.users = users
        self.follows = follows
        self.posts = posts

    def delete_account(self, user_id: str) -> User:
        with self.engine.begin() as conn:
            edges = self.follows.delete_all_for(conn, user_id)
            authored = self.posts.delete_by_author(conn, user_id)
            removed = self.users.delete_user(conn, user_id)
            if removed is None:
                raise NotFoundError("Usuario no encontrado", code="USER_NOT_FOUND")
        logger.info("Deleted user %s (%d edges, %d posts)", user_id, edges, authored)
        return removed
