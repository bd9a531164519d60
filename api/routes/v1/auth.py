"""
api/routes/v1/auth.py -- Registration and login endpoints.

Routes:
  POST /auth/register   -- create an account; 201 with the public projection
  POST /auth/login      -- password login; returns a bearer token (300 s)

Login is idempotent under a live session: when the request already carries a
valid "Authorization: Bearer" token, the route reports that session's
remaining lifetime and does NOT mint a new token. Only a missing, invalid or
expired token falls through to the credential check. This keeps a client from
silently extending or replacing a session that is still good. The body is
only validated after that check, so a live token wins even over a malformed body.

Security:
  IdentityRegistry.authenticate() provides timing equalization and a single
  generic error for unknown email and wrong password -- use it, never inline.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from api.models import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from auth.dependencies import try_get_session
from auth.identity import IdentityRegistry
from auth.tokens import TokenService

# Auth policy: both routes are public.
router = APIRouter()


def _registry(request: Request) -> IdentityRegistry:
    return request.app.state.identity


def _tokens(request: Request) -> TokenService:
    return request.app.state.tokens


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create an account. Email and username are stored trimmed and lower-cased."""
    user = _registry(request).register(body.email, body.password, body.username)
    return UserResponse.from_user(user)


@router.post("/auth/login", response_model=LoginResponse, response_model_exclude_none=True)
def login(request: Request, body: Any = Body(default=None)) -> JSONResponse:
    """Report a live session, or authenticate with email and password."""
    tokens = _tokens(request)

    session = try_get_session(request)
    if session is not None:
        payload = LoginResponse(
            message="Ya iniciaste sesión. Tu token sigue siendo válido.",
            user_id=session.user_id,
            expires_in_seconds=tokens.seconds_remaining(session.expires_at),
        )
        return _no_store(payload)

    credentials = _parse_credentials(body)
    registry = _registry(request)
    user = registry.authenticate(credentials.email, credentials.password)
    needs_username = registry.needs_username(user)
    payload = LoginResponse(
        message=(
            "Inicio de sesión exitoso. Debes crear tu username con PATCH /users/me/username."
            if needs_username
            else "Inicio de sesión exitoso."
        ),
        token=tokens.issue(user.id),
        user_id=user.id,
        expires_in_seconds=tokens.expire_seconds,
        needs_username=needs_username,
    )
    return _no_store(payload)


def _parse_credentials(body: Any) -> LoginRequest:
    """Validate the login body. Called only once no live session was found."""
    if body is None:
        return LoginRequest()
    try:
        return LoginRequest.model_validate(body)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def _no_store(payload: LoginResponse) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=payload.model_dump(by_alias=True, exclude_none=True))
    resp.headers["Cache-Control"] = "no-store"
    return resp
