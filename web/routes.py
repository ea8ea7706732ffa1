"""
web/routes.py -- Jinja2 template routes for the AuthNest web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same user store, same OAuth registry) but answer with pages and
redirects instead of JSON.

Routes:
  GET  /                    -- landing page
  GET  /login               -- login form
  POST /login               -- handle password login
  GET  /register            -- registration form
  POST /register            -- create account, log in
  GET  /logout, POST /logout -- clear session, redirect /
  GET  /page                -- members-only page (auth required)
  GET  /auth/google         -- redirect to Google's consent screen
  GET  /auth/google/page    -- Google callback handler

The OAuth routes are generic over {provider}; Google is the only provider
that get_enabled_providers() can return, so the paths above are the only
ones that resolve.
"""

import logging
from pathlib import Path
from typing import Optional

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from httpx import HTTPError
from sqlalchemy.exc import SQLAlchemyError

from auth.accounts import RegistrationError, UserExistsError, register_local_user, resolve_oauth_user
from auth.dependencies import try_get_current_user
from auth.oauth import get_enabled_providers, get_oauth_user_info
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_auth_cookie, start_session
from core.config import get_settings

logger = logging.getLogger("authnest.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# Lets layout.html show "Log out" vs "Log in" without every handler passing
# current_user into the context.
templates.env.globals["try_get_current_user"] = try_get_current_user
router = APIRouter()

_HOME_AFTER_LOGIN = "/page"

# Whitelist mapping for ?error= query params on /login and /register.
# The raw query param is NEVER passed to templates -- only the message from
# this dict is.
_ERROR_MESSAGES: dict[str, str] = {
    "bad_credentials": "Invalid email or password.",
    "user_exists": "An account with that email already exists. Please log in.",
    "oauth_failed": "Google sign-in failed. Please try again.",
    "registration_failed": "Registration failed. Please check your details and try again.",
    "missing_fields": "Email and password are both required.",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative ones ("//host") so the
    ?next= parameter cannot send users off-site after login.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return _HOME_AFTER_LOGIN


def _require_auth(request: Request) -> Optional[RedirectResponse]:
    """Return a redirect to /login if the request has no session, else None.

    Call at the top of protected route handlers:
        if redirect := _require_auth(request):
            return redirect
    """
    if try_get_current_user(request) is None:
        return RedirectResponse(f"/login?next={request.url.path}", status_code=302)
    return None


def _form_page(request: Request, template: str) -> HTMLResponse:
    """Render the login or register page, or skip it for logged-in users."""
    if try_get_current_user(request) is not None:
        return RedirectResponse(_HOME_AFTER_LOGIN, status_code=302)
    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""))
    return templates.TemplateResponse(
        request,
        template,
        {
            "error_msg": error_msg,
            "providers": get_enabled_providers(),
            "next": _safe_next(request.query_params.get("next")),
        },
    )


# ---------------------------------------------------------------------------
# Public pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "home.html", {})


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page with the email/password form and OAuth buttons."""
    return _form_page(request, "login.html")


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request) -> HTMLResponse:
    return _form_page(request, "register.html")


# ---------------------------------------------------------------------------
# Protected page
# ---------------------------------------------------------------------------


@router.get("/page", response_class=HTMLResponse)
def members_page(request: Request) -> HTMLResponse:
    """The page everything else guards. Unauthenticated visitors go to /login."""
    if redirect := _require_auth(request):
        return redirect
    return templates.TemplateResponse(request, "page.html", {})


# ---------------------------------------------------------------------------
# Password login / registration
# ---------------------------------------------------------------------------


@router.post("/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
) -> RedirectResponse:
    """Handle the login form. The form field is named username but holds the email."""
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, username, password)
    if user is None:
        return RedirectResponse("/login?error=bad_credentials", status_code=302)

    resp = RedirectResponse(_safe_next(request.query_params.get("next")), status_code=302)
    start_session(resp, user)
    return resp


@router.post("/register", response_class=HTMLResponse)
def register_post(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
) -> RedirectResponse:
    """Create a password account and log it straight in.

    An email that is already registered is sent to the login page rather than
    treated as an error on the registration form.
    """
    user_store: UserStore = request.app.state.user_store

    if not username.strip() or not password:
        return RedirectResponse("/register?error=missing_fields", status_code=302)

    try:
        user = register_local_user(user_store, username, password)
    except UserExistsError:
        return RedirectResponse("/login?error=user_exists", status_code=302)
    except RegistrationError:
        logger.warning("Registration failed", exc_info=True)
        return RedirectResponse("/register?error=registration_failed", status_code=302)

    resp = RedirectResponse(_HOME_AFTER_LOGIN, status_code=302)
    start_session(resp, user)
    return resp


@router.api_route("/logout", methods=["GET", "POST"])
def logout(request: Request) -> RedirectResponse:
    """Clear the session cookie and go back to the landing page."""
    resp = RedirectResponse("/", status_code=302)
    clear_auth_cookie(resp)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


def _provider_enabled(provider: str) -> bool:
    return provider in {p["name"] for p in get_enabled_providers()}


@router.get("/auth/{provider}", response_class=HTMLResponse)
async def oauth_redirect(request: Request, provider: str) -> RedirectResponse:
    """Redirect the browser to the provider's authorization page.

    The provider name is checked against the enabled list first so an
    arbitrary path segment cannot reach the OAuth registry.
    """
    if not _provider_enabled(provider):
        return RedirectResponse("/login?error=oauth_failed", status_code=302)

    client = request.app.state.oauth.create_client(provider)
    redirect_uri = get_settings().google_callback_url or str(request.url_for("oauth_callback", provider=provider))
    return await client.authorize_redirect(request, redirect_uri)


@router.get("/auth/{provider}/page", response_class=HTMLResponse, name="oauth_callback")
async def oauth_callback(request: Request, provider: str) -> RedirectResponse:
    """Handle the provider callback and establish a login session.

    Flow:
      1. Exchange the authorization code for a token (authlib checks state).
      2. Extract the verified email and stable subject ID.
      3. Find or provision the matching user record.
      4. Issue the session cookie and redirect to /page.
    Any failure lands on /login?error=oauth_failed.
    """
    failure = RedirectResponse("/login?error=oauth_failed", status_code=302)
    if not _provider_enabled(provider):
        return failure

    user_store: UserStore = request.app.state.user_store
    client = request.app.state.oauth.create_client(provider)

    try:
        token = await client.authorize_access_token(request)
    except OAuthError:
        logger.exception("OAuth token exchange failed for provider %r", provider)
        return failure

    try:
        email, oauth_subject = await get_oauth_user_info(client, provider, token)
    except ValueError:
        logger.warning("OAuth login rejected: unverified or missing email from %r", provider, exc_info=True)
        return failure
    except HTTPError:
        logger.exception("OAuth userinfo request failed for provider %r", provider)
        return failure

    try:
        user = resolve_oauth_user(user_store, provider, email, oauth_subject)
    except SQLAlchemyError:
        logger.exception("Could not look up or provision the %r user", provider)
        return failure

    resp = RedirectResponse(_HOME_AFTER_LOGIN, status_code=302)
    start_session(resp, user)
    return resp
