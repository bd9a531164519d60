"""
posts/models.py -- Domain dataclass for posts.
"""

from __future__ import annotations

from dataclasses import dataclass

MAX_CONTENT_LENGTH = 280


@dataclass
class Post:
    """A short text post. author_username is joined in on read, not stored."""

    author_id: str
    content: str
    id: str | None = None  # UUID4 hex, assigned by the store on insert
    author_username: str | None = None
    created_at: str = ""  # ISO 8601, set by store on insert
