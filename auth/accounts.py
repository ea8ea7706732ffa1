"""
auth/accounts.py -- Account registration and OAuth provisioning.

Both the web form routes and the JSON API call into this module so the
"look up or create a user by email" rules live in one place. Failures are
raised as exceptions; each caller decides whether that becomes a redirect or
a JSON error body.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password, normalize_email

logger = logging.getLogger("authnest.auth")


class RegistrationError(Exception):
    """The registration request cannot be turned into an account."""


class UserExistsError(RegistrationError):
    """An account with this email is already registered."""


def register_local_user(store: UserStore, email: str, password: str) -> User:
    """Create a password account and return the stored record.

    Raises:
        RegistrationError: email or password missing, or bcrypt rejected the password.
        UserExistsError:   the email is already registered, including the case
                           where a concurrent request inserted it first.
    """
    email = normalize_email(email)
    if not email or not password:
        raise RegistrationError("Email and password are required.")

    if store.get_by_email(email) is not None:
        logger.info("Registration refused: email already registered")
        raise UserExistsError(email)

    try:
        hashed = hash_password(password)
    except ValueError as exc:
        logger.error("Error hashing password: %s", exc)
        raise RegistrationError("Password could not be hashed.") from exc

    try:
        user_id = store.create_user(User(email=email, hashed_password=hashed))
    except IntegrityError as exc:
        raise UserExistsError(email) from exc

    logger.info("Registered local user %d", user_id)
    return store.get_by_id(user_id)


def resolve_oauth_user(store: UserStore, provider: str, email: str, subject: str) -> User:
    """Find or provision the account behind a verified OAuth identity.

    Lookup order:
      1. (provider, subject) -- returning OAuth user.
      2. email -- an existing account is reused. If it has no OAuth identity
         yet, this one is linked to it.
      3. Neither -- a new OAuth-only account (no password) is created.
    """
    user = store.get_by_oauth(provider, subject)
    if user is not None:
        return user

    email = normalize_email(email)
    user = store.get_by_email(email)
    if user is not None:
        if user.oauth_subject is None:
            store.link_oauth(user.id, provider, subject)
            logger.info("Linked %s identity to user %d", provider, user.id)
            user = store.get_by_id(user.id)
        return user

    try:
        user_id = store.create_user(User(email=email, oauth_provider=provider, oauth_subject=subject))
    except IntegrityError:
        # Lost an insert race against another callback for the same email.
        existing = store.get_by_email(email)
        if existing is None:
            raise
        return existing

    logger.info("Provisioned %s user %d", provider, user_id)
    return store.get_by_id(user_id)
