"""
core/config.py -- Service configuration, resolved once from the environment.

Every tunable of the social graph service lives on Settings. Modules never
read os.environ themselves; they receive values from the Settings instance
that api/main.py builds at import time.

How values are resolved:
  pydantic-settings maps each field to an upper-case environment variable
  (token_expire_seconds -> TOKEN_EXPIRE_SECONDS), falling back to a local .env
  file and then to the defaults below. List fields take JSON, e.g.
  ALLOWED_HOSTS='["api.example.com"]'.

  get_settings() is wrapped in lru_cache so the environment is parsed once per
  process. Tests that change variables call get_settings.cache_clear().

Signing key policy (enforced by _check_signing_key):
  DEBUG=true and no SECRET_KEY  -> a random key is generated and a warning is
                                   logged; sessions do not survive a restart.
  DEBUG unset and no SECRET_KEY -> Settings() raises, so the process exits
                                   before the server binds a port.
  any key under 32 characters   -> rejected in both modes.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
graph/, or posts/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("socialgraph.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent.parent / 'socialgraph.db'}"
_MIN_KEY_LENGTH = 32


class Settings(BaseSettings):
    """Typed view of the process environment.

    Only secret_key lacks a usable default, and debug mode fills even that in,
    so tests can build Settings(debug=True) with no environment at all.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- runtime ---------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # -- sessions and credentials ----------------------------------------

    # "" means unset; _check_signing_key replaces it or refuses to start.
    secret_key: str = ""
    # Fixed session lifetime. Tokens are never refreshed.
    token_expire_seconds: int = 300
    # bcrypt cost factor; the test suite lowers it to 4.
    bcrypt_rounds: int = 12

    # -- HTTP edge -------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    @field_validator("bcrypt_rounds")
    @classmethod
    def _check_bcrypt_rounds(cls, value: int) -> int:
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @field_validator("token_expire_seconds")
    @classmethod
    def _check_token_lifetime(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be greater than 0.")
        return value

    @model_validator(mode="after")
    def _check_signing_key(self) -> "Settings":
        if not self.secret_key and self.debug:
            self.secret_key = secrets.token_hex(_MIN_KEY_LENGTH)
            logger.warning("DEBUG is on and SECRET_KEY is unset; using a throwaway signing key.")
        elif not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required in production mode. "
                "Export SECRET_KEY (at least 32 characters) or set DEBUG=true for local runs."
            )
        if len(self.secret_key) < _MIN_KEY_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {_MIN_KEY_LENGTH} characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Build Settings on first call and hand back the same instance afterwards."""
    return Settings()
