"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one auth method exists: an "Authorization: Bearer <token>" header carrying
a session token minted by auth.tokens.TokenService.

try_get_session() is the soft variant (returns None on any failure); the login
route uses it to detect an already-live session.
get_session() is the hard gate for protected routes: it raises
MissingTokenError when no bearer token is present and InvalidTokenError when
the token does not verify. api/main.py renders both as 401.

The resolved identity is returned as an explicit SessionContext value. Nothing
is written onto the Request object.

Layer rule: no imports from api/, graph/, or posts/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import SessionContext
from auth.tokens import TokenService, extract_bearer
from core.errors import InvalidTokenError, MissingTokenError


def _token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def try_get_session(request: Request) -> SessionContext | None:
    """Return the SessionContext for a valid bearer token, None otherwise. Never raises."""
    token = extract_bearer(request.headers.get("Authorization"))
    if token is None:
        return None
    try:
        claims = _token_service(request).verify(token)
    except InvalidTokenError:
        return None
    return SessionContext(user_id=claims.subject_id, expires_at=claims.expires_at, token=token)


def get_session(request: Request) -> SessionContext:
    """Require a valid session token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(session: SessionContext = Depends(get_session)): ...
    """
    token = extract_bearer(request.headers.get("Authorization"))
    if token is None:
        raise MissingTokenError("No token")
    claims = _token_service(request).verify(token)
    return SessionContext(user_id=claims.subject_id, expires_at=claims.expires_at, token=token)
