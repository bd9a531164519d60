"""
graph/models.py -- Domain dataclasses and codes for the follow graph.

Pure data containers. graph/service.py owns the rules; graph/store.py owns SQL.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FollowCode(str, Enum):
    """Stable machine-readable outcome codes. Clients branch on these, not on message text."""

    FOLLOW_CREATED = "FOLLOW_CREATED"
    FOLLOW_DELETED = "FOLLOW_DELETED"
    FOLLOW_SELF = "FOLLOW_SELF"
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    ALREADY_FOLLOWING = "ALREADY_FOLLOWING"
    NOT_FOLLOWING = "NOT_FOLLOWING"


@dataclass(frozen=True)
class FollowTarget:
    """Who to follow, addressed either by opaque id or by username handle.

    Both modes resolve to the same user lookup before any edge is touched, so
    follow/unfollow behave identically whichever one the caller used.
    """

    kind: str  # "id" | "handle"
    value: str

    @classmethod
    def by_id(cls, user_id: str) -> FollowTarget:
        return cls(kind="id", value=user_id)

    @classmethod
    def by_handle(cls, username: str) -> FollowTarget:
        return cls(kind="handle", value=str(username).strip().lower())


@dataclass
class FollowEdge:
    """follower_id follows following_id. Directed; unique per ordered pair."""

    follower_id: str
    following_id: str
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class FollowResult:
    """Successful follow/unfollow outcome, ready to be rendered by the API layer."""

    code: FollowCode
    message: str
    data: dict[str, Any]
    edge: FollowEdge | None = None
