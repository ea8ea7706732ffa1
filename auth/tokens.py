"""
auth/tokens.py -- Password hashing, login session tokens, and cookie helpers.

Security design decisions:
  Passwords: bcrypt used directly. The cost factor comes from
       Settings.bcrypt_rounds (10 by default). Comparison timing is whatever
       bcrypt.checkpw provides; unknown emails return without hashing.

  Sessions: a login session is a python-jose HS256 JWT carrying user_id,
       the email as subject, and an expiry of Settings.session_max_age. It
       lives in an httpOnly cookie whose max_age matches the JWT expiry, so
       both lapse together. Verification returns None on any failure -- the
       route layer turns that into a redirect or a 401.

  SESSION_SECRET: sourced from core.config.get_settings(), which validates
       length and presence at startup.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("authnest.auth")

_settings = get_settings()

_ALGORITHM = "HS256"
COOKIE_NAME = "access_token"


def normalize_email(raw: str) -> str:
    """Canonical form used for every users.email lookup and insert."""
    return raw.strip().lower()


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError if bcrypt rejects the input (current bcrypt releases
    refuse passwords longer than 72 bytes instead of truncating them).
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A missing or malformed stored hash counts as a mismatch.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Password check failed on a malformed or oversized input")
        return False


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Verify a local email/password login.

    Returns the User on success, None for an unknown email, an OAuth-only
    account (no local password), or a wrong password.
    """
    user = store.get_by_email(normalize_email(email))
    if user is None:
        logger.info("Login rejected: unknown email")
        return None
    if not user.has_password:
        logger.info("Login rejected: user %d has no local password", user.id)
        return None
    if not verify_password(password, user.hashed_password):
        logger.info("Login rejected: bad password for user %d", user.id)
        return None
    return user


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, email: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT for a login session.

    expire_seconds of 0 (default) uses Settings.session_max_age.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.session_max_age
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": email,
        "user_id": user_id,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.session_secret, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.session_secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if "user_id" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str) -> None:
    """Write the session JWT as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="lax": not sent on cross-site POST.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: Settings.session_max_age, the default lifetime of
        create_access_token(), so cookie and JWT lapse together.
    """
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.session_max_age,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(COOKIE_NAME, httponly=True, samesite="lax", secure=_settings.secure_cookies)


def start_session(response, user: User) -> None:
    """Issue a session token for user and attach it to response."""
    set_auth_cookie(response, create_access_token(user.id, user.email))
    response.headers["Cache-Control"] = "no-store"
