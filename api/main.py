"""
api/main.py -- FastAPI application entry point for AuthNest.

Run with:      python main.py
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost; Starlette puts the middleware
registered last on the outside):
  1. access_log            -- one INFO line per request on "authnest.api",
                              including requests rejected further in
  2. SessionMiddleware     -- signed cookie holding the OAuth state between
                              the provider redirect and the callback
  3. TrustedHostMiddleware -- rejects requests with unexpected Host headers

Lifespan opens the user store on startup and disposes of it on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.oauth import oauth as oauth_client
from auth.store import UserStore
from core.config import get_settings

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authnest.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the user store and expose the OAuth registry on app.state."""
    logger.info("AuthNest starting up")
    db_url = _settings.resolved_database_url()
    app.state.user_store = UserStore(db_url) if db_url is not None else UserStore()
    app.state.oauth = oauth_client
    logger.info("User store initialized (%s)", app.state.user_store.engine.url.get_backend_name())

    yield

    app.state.user_store.close()
    logger.info("AuthNest shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="AuthNest",
    description="Email/password and Google sign-in guarding a members-only page.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

# authlib keeps the OAuth state value in this session between the
# authorization redirect and the callback. The login session itself is the
# JWT cookie, not this one.
app.add_middleware(
    SessionMiddleware,
    secret_key=_settings.session_secret,
    max_age=_settings.session_max_age,
    https_only=_settings.secure_cookies,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def access_log(request: Request, call_next):
    """One line per request. Query strings are left out: they can carry OAuth codes."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    client = request.client.host if request.client else "-"
    logger.info(
        "%s %s -> %d in %.1fms from %s", request.method, request.url.path, response.status_code, elapsed_ms, client
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
# Web UI router and static files are mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error body has the shape {"error": {"code", "message", "detail"}},
# the same envelope api/routes/v1/auth.py returns for login failures.
# ---------------------------------------------------------------------------


def _envelope(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 for a body or query string that does not match the route's model."""
    return _envelope(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def on_http_error(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap HTTP errors, including routing 404/405s, in the error envelope.

    A dict detail (as raised by get_current_user) is already an error body
    and is passed through unchanged.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return _envelope(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def on_unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    # Traceback goes to the log, never to the client.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version, and database reachability."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
