"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the auth service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Loading:
  get_settings() builds Settings once (lru_cache) and hands the same object
      to the ASGI apps, the CLI and the route module. Each field reads the
      upper-cased env var of the same name (refresh_cookie_name ->
      REFRESH_COOKIE_NAME), falling back to .env, then to the default below.

  validate_secret_key() runs after every field is resolved. In dev mode it
      generates a signing key and warns; otherwise it refuses to start.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. The access and
       refresh tokens are HS256-signed with it, so key entropy is the only
       thing standing between an attacker and a forged session.

  [M7] In production mode (DEBUG not set or false), a missing SECRET_KEY is a
       hard startup failure. A random key would silently log every user out
       on restart.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or notify/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("vaultauth.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'vaultauth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens and sessions
    # ------------------------------------------------------------------

    access_token_expire_seconds: int = 15 * 60
    refresh_token_expire_seconds: int = 168 * 60 * 60

    refresh_cookie_name: str = "vault_rt"
    refresh_cookie_path: str = "/api/v1/auth/token"
    refresh_cookie_max_age: int = 7 * 24 * 60 * 60
    secure_cookies: bool = True

    # ------------------------------------------------------------------
    # One-time codes
    # ------------------------------------------------------------------

    code_rate_limit: str = "5/minute"
    code_purge_interval_seconds: int = 15 * 60

    # ------------------------------------------------------------------
    # Outbound email (empty host means codes are written to the log instead)
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_sender: str = "no-reply@vault.local"
    smtp_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Best-effort decorations
    # ------------------------------------------------------------------

    geo_lookup_url: str = "http://ip-api.com/json/{ip}"
    geo_timeout_seconds: float = 3.0

    # ------------------------------------------------------------------
    # Listeners (python main.py serve)
    # ------------------------------------------------------------------

    host: str = "0.0.0.0"
    port: int = 8080
    internal_host: str = "127.0.0.1"
    internal_port: int = 9090

    # ------------------------------------------------------------------
    # Remote identity verification (used by services that consume this one)
    # ------------------------------------------------------------------

    auth_service_url: str = "http://127.0.0.1:9090"
    remote_auth_timeout_seconds: float = 3.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Issued tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    All modules should call get_settings() rather than constructing Settings()
    directly. In tests: call get_settings.cache_clear() between test cases if
    you need to inject different environment variables.
    """
    return Settings()
