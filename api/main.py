"""
api/main.py -- FastAPI application entry point for the social graph service.

Run with:  uvicorn api.main:app --reload

Request path through the app:
  TrustedHostMiddleware -> CORSMiddleware -> log_requests -> router
  (log_requests writes one access line per request; Host and Origin are
  checked against Settings.allowed_hosts and Settings.cors_origins)

Settings are resolved at import time, so a missing SECRET_KEY in production
aborts startup before the server binds a port. The lifespan then builds the
engine and every service exactly once and parks them on app.state; routes read
them from there and never touch configuration.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.posts import router as posts_router
from api.routes.v1.users import router as users_router
from auth.identity import IdentityRegistry
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.database import create_db_engine
from core.errors import AppError
from graph.deletion import AccountDeleter
from graph.service import FollowGraph
from graph.store import FollowStore
from posts.store import PostStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("socialgraph.api")

settings = get_settings()


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def wire_services(app: FastAPI, settings: Settings, engine: Engine) -> None:
    """Build every store and service on top of one engine and attach them to app.state.

    Separate from lifespan so tests can wire an in-memory engine the same way.
    """
    users = UserStore(engine)
    follows = FollowStore(engine)
    posts = PostStore(engine)
    app.state.engine = engine
    app.state.tokens = TokenService.from_settings(settings)
    app.state.identity = IdentityRegistry(users, bcrypt_rounds=settings.bcrypt_rounds)
    app.state.graph = FollowGraph(users, follows)
    app.state.posts = posts
    app.state.deleter = AccountDeleter(engine, users, follows, posts)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the engine and services on startup; dispose the pool on shutdown."""
    logger.info("Social graph API starting up")
    engine = create_db_engine(settings.database_url)
    wire_services(app, settings, engine)
    logger.info("Database initialized (%s)", engine.url.get_backend_name())

    yield

    engine.dispose()
    logger.info("Social graph API shutdown complete")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Social Graph API",
    description="Accounts, sessions, a directed follow graph and short posts.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])
app.include_router(posts_router, tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope {ok, code, message}
# so clients can branch on code without inspecting status codes.
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an expected domain failure with its own status, code and data."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the body is not valid JSON or a field has the wrong type."""
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            code="validation_error",
            message="Cuerpo de la petición inválido.",
            detail=str(exc.errors()),
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured body for framework-level errors (unknown route, wrong method)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(code=f"http_{exc.status_code}", message=str(exc.detail)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything not modelled as an AppError becomes a generic 500; details go to the log only."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(code="internal_error", message="Error interno del servidor.").model_dump(
            exclude_none=True
        ),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Lives on the app itself rather than a router and needs no session.
# ---------------------------------------------------------------------------


@app.get("/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Return liveness plus a database round-trip check."""
    database = "ok"
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        database = "error"
    body = HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
    return JSONResponse(status_code=200 if database == "ok" else 503, content=body.model_dump())
