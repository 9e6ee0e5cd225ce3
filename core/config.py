"""
core/config.py -- Runtime configuration for Habit, read once from the environment.

Every knob the service has lives on Settings. Values come from environment
variables or a .env file in the working directory (pydantic-settings maps
field names to upper-case variables: token_ttl_seconds <- TOKEN_TTL_SECONDS).

Who reads it:
  api/main.py calls get_settings() in the lifespan and hands the instance to
      build_auth_service(). The auth components receive plain values in their
      constructors and never import this module.
  api/limiter.py reads LOGIN_RATE_LIMIT each time the login limit is evaluated.

Signing key policy:
  [M6] SECRET_KEY must be at least 32 characters. It is the HS256 key for
       every token, so its length bounds how hard forging one is.

  [M7] Without DEBUG=true a missing SECRET_KEY stops the service at startup.
       With DEBUG=true a throwaway key is generated and logged as a warning;
       tokens then die with the process.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("habit.config")

MIN_SECRET_KEY_LENGTH = 32

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'habit_auth.db'}"


class Settings(BaseSettings):
    """Environment-backed settings. Every field has a default except the key policy."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    debug: bool = False
    # "" means unset; _apply_secret_key_policy replaces it or refuses to start.
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # Token lifetime in seconds. Tokens are accepted on [iat, iat + ttl).
    token_ttl_seconds: int = Field(default=600, gt=0)
    # Column a login key is matched against.
    login_field: Literal["name", "email"] = "name"
    # bcrypt cost factor. Tests drop this to 4.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # slowapi limit string for POST /auth/log_in and /auth/update_password, per client IP.
    login_rate_limit: str = "10/minute"

    @model_validator(mode="after")
    def _apply_secret_key_policy(self) -> "Settings":
        if not self.secret_key and not self.debug:
            raise ValueError(
                "SECRET_KEY is required unless DEBUG=true. "
                "Set it in the environment or in .env before starting the service."
            )
        if not self.secret_key:
            self.secret_key = secrets.token_urlsafe(48)
            logger.warning("DEBUG is on and SECRET_KEY is unset; generated a temporary signing key.")
        if len(self.secret_key) < MIN_SECRET_KEY_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {MIN_SECRET_KEY_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, built on first call.

    Tests that change the environment must call get_settings.cache_clear().
    """
    return Settings()
