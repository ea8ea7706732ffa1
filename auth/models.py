"""
auth/models.py -- Domain dataclass for the user record.

Pattern: Data class (pure data container, zero logic). The store owns
persistence and the accounts module owns the login flows.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A row of the users table.

    email is the login identifier for both local and Google accounts, so a
    person who registered with a password and later signs in with Google lands
    on the same record.

    hashed_password is None for accounts provisioned by OAuth -- they have no
    local password and cannot use the password form until one is set.
    oauth_provider / oauth_subject are filled in the first time the account is
    reached through an OAuth provider.
    """

    email: str
    id: int | None = None
    hashed_password: str | None = None  # None = OAuth-only user
    oauth_provider: str | None = None  # "google"
    oauth_subject: str | None = None  # provider's stable user ID
    created_at: str | None = None

    @property
    def has_password(self) -> bool:
        return self.hashed_password is not None
