"""
auth/oauth.py -- Authlib OAuth/OIDC provider configuration.

Reads configuration from core.config.get_settings() at module load. Google is
registered only when both client ID and secret are configured; the login and
register templates render the Google button based on get_enabled_providers().

Security notes:
  Email verification is mandatory. get_oauth_user_info() raises ValueError if
  the provider does not confirm the email is verified -- accounts are keyed by
  email, so an unverified address could take over someone else's account.

  The OAuth state parameter (CSRF protection) is handled by authlib via
  Starlette SessionMiddleware. The session stores the state between the
  authorization redirect and the callback.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

from authlib.integrations.starlette_client import OAuth

from core.config import get_settings

logger = logging.getLogger("authnest.auth.oauth")

oauth = OAuth()

_cfg = get_settings()

# Google -- OIDC discovery. "openid" makes authlib parse the id_token into
# token["userinfo"]; "email profile" are the scopes the consent screen shows.
if _cfg.google_enabled:
    oauth.register(
        name="google",
        client_id=_cfg.google_client_id,
        client_secret=_cfg.google_client_secret,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )
    logger.info("Google OAuth provider registered")


def get_enabled_providers() -> list[dict]:
    """Return {"name", "label"} for every configured OAuth provider."""
    providers: list[dict] = []
    if get_settings().google_enabled:
        providers.append({"name": "google", "label": "Google"})
    return providers


async def get_oauth_user_info(client, provider: str, token: dict) -> tuple[str, str]:
    """Extract (email, subject_id) from a provider token response.

    Claims come from the parsed id_token when present. Otherwise the
    provider's userinfo endpoint is queried with the access token.

    Raises:
        ValueError: If the provider is unknown, or a verified email and
            subject cannot be confirmed.
    """
    if provider != "google":
        raise ValueError(f"Unknown OAuth provider: {provider!r}")

    userinfo = token.get("userinfo")
    if not userinfo:
        resp = await client.get(get_settings().google_userinfo_url, token=token)
        resp.raise_for_status()
        userinfo = resp.json()
    return _claims_to_identity(userinfo, provider)


def _claims_to_identity(userinfo: dict, provider: str) -> tuple[str, str]:
    """Validate OIDC claims and return (email, sub).

    Some providers omit email_verified entirely -- that is treated as
    unverified.
    """
    if not userinfo:
        raise ValueError(f"{provider} OAuth: empty userinfo")

    if not userinfo.get("email_verified", False):
        raise ValueError(
            f"{provider} OAuth: email is not verified. "
            "The provider must confirm email ownership before login is allowed."
        )

    email = userinfo.get("email")
    subject_id = userinfo.get("sub")
    if not email or not subject_id:
        raise ValueError(f"{provider} OAuth: missing email or sub claim in userinfo")

    return email, str(subject_id)
