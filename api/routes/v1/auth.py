"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login      -- password login; sets session cookie
  POST /api/v1/auth/register   -- create a password account; sets session cookie
  POST /api/v1/auth/logout     -- clears cookie; 200
  GET  /api/v1/auth/me         -- current user info (requires auth)
  GET  /api/v1/auth/providers  -- list enabled OAuth providers (public)

Login and register return the same generic error for an unknown email and a
wrong password ("bad_credentials"). Responses that carry a session token are
marked Cache-Control: no-store.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import Credentials, ErrorDetail, ErrorResponse, MeResponse, OAuthProviderInfo, SessionResponse
from auth.accounts import RegistrationError, UserExistsError, register_local_user
from auth.dependencies import get_current_user
from auth.models import User
from auth.oauth import get_enabled_providers
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_auth_cookie, create_access_token, set_auth_cookie
from core.config import get_settings

# Auth policy:
# - POST /api/v1/auth/login:      public
# - POST /api/v1/auth/register:   public
# - POST /api/v1/auth/logout:     public -- clearing a cookie needs no prior auth
# - GET  /api/v1/auth/providers:  public
# - GET  /api/v1/auth/me:         requires auth (get_current_user)
router = APIRouter()


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _session_response(user: User, status_code: int = 200) -> JSONResponse:
    expires_in = get_settings().session_max_age
    token = create_access_token(user.id, user.email)
    resp = JSONResponse(
        status_code=status_code,
        content=SessionResponse(
            access_token=token,
            expires_in=expires_in,
            user_id=user.id,
            email=user.email,
        ).model_dump(),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/login", response_model=SessionResponse)
def login(request: Request, body: Credentials) -> JSONResponse:
    """Authenticate with email and password; set the session cookie."""
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        return _error(401, "bad_credentials", "Invalid email or password.")
    return _session_response(user)


@router.post("/auth/register", response_model=SessionResponse, status_code=201)
def register(request: Request, body: Credentials) -> JSONResponse:
    """Create a password account and log it in."""
    user_store: UserStore = request.app.state.user_store
    try:
        user = register_local_user(user_store, body.email, body.password)
    except UserExistsError:
        return _error(409, "user_exists", "An account with that email already exists.")
    except RegistrationError as exc:
        return _error(422, "registration_failed", str(exc))
    return _session_response(user, status_code=201)


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the session cookie."""
    resp = JSONResponse(content={"message": "Logged out."})
    clear_auth_cookie(resp)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
async def list_providers() -> list[OAuthProviderInfo]:
    """Return the configured OAuth providers. Empty when none are set up."""
    return [OAuthProviderInfo(**p) for p in get_enabled_providers()]


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(
        user_id=current_user.id,
        email=current_user.email,
        oauth_provider=current_user.oauth_provider,
        has_password=current_user.has_password,
        created_at=current_user.created_at or "",
    )
