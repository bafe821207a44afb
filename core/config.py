"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for AuthGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  frozen=True: the settings object is immutable once loaded. The signing
      secret in particular is process-wide state that must not change while
      tokens signed with it are still valid.

Security notes:
  A missing JWT_SECRET falls back to a well-known development secret and logs
  a WARNING. Anyone holding that string can mint sessions, so providing a real
  secret is a deployment responsibility.

  An explicitly configured JWT_SECRET shorter than 32 chars is rejected.
  HS256 signing relies on key entropy -- a short key weakens it.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

DEV_FALLBACK_SECRET = "default_fallback_secret_change_me"

# 72 hours
DEFAULT_TOKEN_TTL_SECONDS = 72 * 3600


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    host: str = "0.0.0.0"  # noqa: S104 # nosec B104 -- container bind address
    port: int = 8080

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # Empty string is the "not configured" sentinel; the validator swaps in
    # the development fallback so callers never see "".
    jwt_secret: str = Field(default="", validate_default=True)
    token_ttl_seconds: int = Field(default=DEFAULT_TOKEN_TTL_SECONDS, gt=0)
    session_cookie_name: str = "token"
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///authgate.db"
    db_connect_attempts: int = Field(default=5, ge=1)
    db_connect_backoff_seconds: float = Field(default=5.0, ge=0)

    # ------------------------------------------------------------------
    # CORS
    # ------------------------------------------------------------------

    # Any origin is echoed back with credentials allowed. Tighten in
    # deployments that serve the frontend from a known host.
    cors_allow_origin_regex: str = ".*"
    cors_max_age: int = 12 * 3600

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_secret")
    @classmethod
    def resolve_jwt_secret(cls, value: str) -> str:
        """Fall back to the development secret when JWT_SECRET is unset.

        The fallback is logged loudly rather than refused: the service still
        starts, and fixing the deployment is left to the operator.
        """
        if not value:
            logger.warning(
                "WARNING: JWT_SECRET is not set -- using the built-in development secret. "
                "Sessions can be forged by anyone who knows it. Set JWT_SECRET in production."
            )
            return DEV_FALLBACK_SECRET
        if len(value) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
