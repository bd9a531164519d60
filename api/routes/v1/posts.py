"""
api/routes/v1/posts.py -- Post creation, global listing and following feed.

Routes:
  GET  /posts             -- public; ?limit=1..100 (default 10), ?authorId=, ?q=
  GET  /posts/following   -- requires auth; posts by accounts the caller follows
  POST /posts             -- requires auth; content 1..280 characters
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import PostCreate, PostResponse
from auth.dependencies import get_session
from auth.models import SessionContext
from posts.store import PostStore

router = APIRouter()


def _posts(request: Request) -> PostStore:
    return request.app.state.posts


@router.get("/posts", response_model=list[PostResponse])
def list_posts(
    request: Request,
    limit: Optional[int] = Query(default=None),
    author_id: Optional[str] = Query(default=None, alias="authorId"),
    q: Optional[str] = Query(default=None, max_length=280),
) -> list[PostResponse]:
    """Newest posts first, optionally filtered by author and by text."""
    rows = _posts(request).list_posts(limit=limit, author_id=author_id, query=q)
    return [PostResponse.from_post(p) for p in rows]


@router.get("/posts/following", response_model=list[PostResponse])
def following_feed(
    request: Request,
    limit: Optional[int] = Query(default=None),
    session: SessionContext = Depends(get_session),
) -> list[PostResponse]:
    """Posts by accounts the caller follows, newest first."""
    rows = _posts(request).following_feed(session.user_id, limit=limit)
    return [PostResponse.from_post(p) for p in rows]


@router.post("/posts", response_model=PostResponse, status_code=201)
def create_post(
    request: Request,
    body: PostCreate,
    session: SessionContext = Depends(get_session),
) -> PostResponse:
    return PostResponse.from_post(_posts(request).create(session.user_id, body.content))
