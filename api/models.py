"""
API request and response models for the social graph REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py,
graph/models.py and posts/models.py, which own the internal domain
representation. Route handlers map between the two.

Request fields are Optional on purpose: presence and format rules live in the
services (auth/identity.py, posts/store.py) so every entry point reports the
same 400 messages. Pydantic only guarantees the JSON types.

Some response keys are camelCase (userId, expiresInSeconds, ...) because that
is the published wire contract; aliases keep the Python side snake_case.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from posts.models import Post

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    email: Optional[str] = None
    password: Optional[str] = None
    username: Optional[str] = None


class LoginRequest(BaseModel):
    """Request body for POST /auth/login. May be omitted when a live bearer token is sent."""

    email: Optional[str] = None
    password: Optional[str] = None


class UsernameUpdate(BaseModel):
    """Request body for PATCH /users/me/username."""

    username: Optional[str] = None


class PostCreate(BaseModel):
    """Request body for POST /posts."""

    content: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public projection of an identity. The credential hash is never included."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    username: Optional[str]
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, username=user.username, created_at=user.created_at or "")


class LoginResponse(BaseModel):
    """Response for POST /auth/login.

    token and needsUsername are omitted (not null) when login short-circuits
    on an already-valid session.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str
    token: Optional[str] = None
    user_id: str = Field(alias="userId")
    expires_in_seconds: int = Field(alias="expiresInSeconds")
    needs_username: Optional[bool] = Field(default=None, alias="needsUsername")


class ActionResponse(BaseModel):
    """Envelope for follow, unfollow and account deletion outcomes."""

    model_config = ConfigDict(frozen=True)

    ok: bool = True
    code: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class PostResponse(BaseModel):
    """One post, with the author's current username joined in."""

    model_config = ConfigDict(frozen=True)

    id: str
    author_id: str
    author_username: Optional[str]
    content: str
    created_at: str

    @classmethod
    def from_post(cls, post: Post) -> "PostResponse":
        return cls(
            id=post.id,
            author_id=post.author_id,
            author_username=post.author_username,
            content=post.content,
            created_at=post.created_at,
        )


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response.

    ok/code/message are always present so clients can branch on code without
    parsing prose. data carries extra context (e.g. the follow target).
    """

    model_config = ConfigDict(frozen=True)

    ok: bool = False
    code: str
    message: str
    data: Optional[dict[str, Any]] = None
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
