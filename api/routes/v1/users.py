"""
api/routes/v1/users.py -- Profile, username, follow graph and account deletion.

Routes (all require a bearer token):
  GET    /users/me                          -- own profile
  PATCH  /users/me/username                 -- set or change username
  DELETE /users/me                          -- delete account, edges and posts
  POST   /users/{user_id}/follow            -- follow by id
  DELETE /users/{user_id}/follow            -- unfollow by id
  POST   /users/handle/{username}/follow    -- follow by username
  DELETE /users/handle/{username}/follow    -- unfollow by username

Follow, unfollow and delete answer with the ActionResponse envelope
{ok, code, message, data}. Failures raise AppError subclasses from the
services and are rendered by api/main.py with the same keys.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import ActionResponse, UserResponse, UsernameUpdate
from auth.dependencies import get_session
from auth.identity import IdentityRegistry
from auth.models import SessionContext
from graph.deletion import AccountDeleter
from graph.models import FollowResult, FollowTarget
from graph.service import FollowGraph

router = APIRouter()


def _registry(request: Request) -> IdentityRegistry:
    return request.app.state.identity


def _graph(request: Request) -> FollowGraph:
    return request.app.state.graph


def _to_response(result: FollowResult) -> ActionResponse:
    return ActionResponse(code=result.code.value, message=result.message, data=result.data)


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------


@router.get("/users/me", response_model=UserResponse)
def me(request: Request, session: SessionContext = Depends(get_session)) -> UserResponse:
    """Return the authenticated user's public profile."""
    return UserResponse.from_user(_registry(request).get(session.user_id))


@router.patch("/users/me/username", response_model=UserResponse)
def change_username(
    request: Request,
    body: UsernameUpdate,
    session: SessionContext = Depends(get_session),
) -> UserResponse:
    """Set a new username. Sending the current one returns the record unchanged."""
    user = _registry(request).change_username(session.user_id, body.username)
    return UserResponse.from_user(user)


@router.delete("/users/me", response_model=ActionResponse)
def delete_me(request: Request, session: SessionContext = Depends(get_session)) -> ActionResponse:
    """Delete the account together with its follow edges and posts (one transaction)."""
    deleter: AccountDeleter = request.app.state.deleter
    removed = deleter.delete_account(session.user_id)
    return ActionResponse(
        code="USER_DELETED",
        message="Usuario y datos asociados eliminados",
        data={"id": removed.id, "email": removed.email, "username": removed.username},
    )


# ---------------------------------------------------------------------------
# Follow graph
# ---------------------------------------------------------------------------


@router.post("/users/handle/{username}/follow", response_model=ActionResponse, status_code=201)
def follow_by_username(
    request: Request,
    username: str,
    session: SessionContext = Depends(get_session),
) -> ActionResponse:
    return _to_response(_graph(request).follow(session.user_id, FollowTarget.by_handle(username)))


@router.delete("/users/handle/{username}/follow", response_model=ActionResponse)
def unfollow_by_username(
    request: Request,
    username: str,
    session: SessionContext = Depends(get_session),
) -> ActionResponse:
    return _to_response(_graph(request).unfollow(session.user_id, FollowTarget.by_handle(username)))


@router.post("/users/{user_id}/follow", response_model=ActionResponse, status_code=201)
def follow_by_id(
    request: Request,
    user_id: str,
    session: SessionContext = Depends(get_session),
) -> ActionResponse:
    return _to_response(_graph(request).follow(session.user_id, FollowTarget.by_id(user_id)))


@router.delete("/users/{user_id}/follow", response_model=ActionResponse)
def unfollow_by_id(
    request: Request,
    user_id: str,
    session: SessionContext = Depends(get_session),
) -> ActionResponse:
    return _to_response(_graph(request).unfollow(session.user_id, FollowTarget.by_id(user_id)))
