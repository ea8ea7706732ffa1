"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthNest happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_secret -> SESSION_SECRET, db_host -> DB_HOST).

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Dev mode generates a SESSION_SECRET with a warning,
      production mode refuses to start without one.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
or auth/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Optional, Union

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

logger = logging.getLogger("authnest.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The validator
    # below either generates a dev secret or raises.
    session_secret: str = ""

    host: str = "127.0.0.1"
    port: int = 3000
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Sessions and passwords
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_max_age: int = 60 * 60 * 24  # one day
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # Database
    #
    # DATABASE_URL wins when set. Otherwise the DB_* variables describe a
    # PostgreSQL server. With neither, the store falls back to its SQLite file.
    # ------------------------------------------------------------------

    database_url: str = ""
    db_user: str = ""
    db_password: str = ""
    db_host: str = ""
    db_port: int = 5432
    db_database: str = ""

    # ------------------------------------------------------------------
    # Google OAuth (empty client id/secret means the provider is disabled)
    # ------------------------------------------------------------------

    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = ""
    google_userinfo_url: str = "https://www.googleapis.com/oauth2/v3/userinfo"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_session_secret(self) -> "Settings":
        """Enforce the SESSION_SECRET policy.

        Dev mode (DEBUG=true): auto-generate a random secret with a warning.
            Sessions will not survive a restart.

        Production mode: refuse to start without SESSION_SECRET.

        Both modes: reject secrets shorter than 32 characters. The secret signs
            both the JWT session cookie and the OAuth state cookie.
        """
        if not self.session_secret:
            if self.debug:
                self.session_secret = secrets.token_hex(32)
                logger.warning("Using auto-generated SESSION_SECRET. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SESSION_SECRET is required in production mode. "
                    "Set SESSION_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.session_secret) < 32:
            raise ValueError("SESSION_SECRET must be at least 32 characters.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self

    def resolved_database_url(self) -> Optional[Union[str, URL]]:
        """Return the database URL to hand to UserStore, or None for the default.

        The PostgreSQL URL is built with URL.create() so credentials containing
        '@', ':' or '/' need no manual escaping.
        """
        if self.database_url:
            return self.database_url
        if self.db_host and self.db_database:
            return URL.create(
                "postgresql+psycopg2",
                username=self.db_user or None,
                password=self.db_password or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_database,
            )
        return None

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
