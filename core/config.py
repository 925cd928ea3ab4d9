"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the catalog auth service happen here. No
module should call os.getenv() or os.environ.get() directly -- import
get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  Explicit token config: business logic never touches Settings. The
      TokenService receives a TokenConfig built by Settings.token_config(),
      so tests can construct one directly.

Security notes:
  The four token settings (two secrets, two TTLs) have NO defaults. A missing
  value is a hard startup failure -- a silently generated secret would
  invalidate every session on restart, and a silently chosen TTL would hide a
  deployment mistake.

  Each secret must be at least 32 characters, and the access and refresh
  secrets must differ. Sharing one secret would let a refresh token pass
  access-token verification.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Union

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("catalog.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'catalog_auth.db'}"

_MIN_SECRET_LENGTH = 32

# "15m", "7d", "3600s", "12h" -- the usual JWT expires-in shorthand.
_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: Union[int, str]) -> int:
    """Convert an int or a '<n>[smhd]' string to a number of seconds.

    Raises ValueError for anything else, including zero and negative values.
    """
    if isinstance(value, bool):
        raise ValueError("Duration must be a number of seconds or '<n>[smhd]'.")
    if isinstance(value, int):
        seconds = value
    else:
        match = _DURATION_RE.match(str(value).strip().lower())
        if match is None:
            raise ValueError(f"Invalid duration {value!r}. Use seconds or '<n>[smhd]', e.g. '15m' or '7d'.")
        seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    if seconds <= 0:
        raise ValueError("Duration must be greater than zero.")
    return seconds


@dataclass(frozen=True)
class TokenConfig:
    """Signing material for the two token classes. Passed into TokenService."""

    access_secret: str
    access_ttl_seconds: int
    refresh_secret: str
    refresh_ttl_seconds: int


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    The token fields are required: Settings() raises pydantic.ValidationError
    when any of them is missing, which stops the app at startup.
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
    database_url: str = _DEFAULT_DB_URL
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # ------------------------------------------------------------------
    # Tokens (required -- no defaults)
    # ------------------------------------------------------------------

    access_token_secret: str
    access_token_expires_in: int
    refresh_token_secret: str
    refresh_token_expires_in: int

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("access_token_expires_in", "refresh_token_expires_in", mode="before")
    @classmethod
    def parse_ttl(cls, value: Union[int, str]) -> int:
        return parse_duration(value)

    @field_validator("access_token_secret", "refresh_token_secret")
    @classmethod
    def check_secret_length(cls, value: str) -> str:
        if len(value) < _MIN_SECRET_LENGTH:
            raise ValueError(f"Token secrets must be at least {_MIN_SECRET_LENGTH} characters.")
        return value

    @model_validator(mode="after")
    def check_token_pair(self) -> "Settings":
        """Cross-field rules for the access/refresh pair.

        The secrets must be independent, and the access TTL must be shorter
        than the refresh TTL -- otherwise a refresh could never extend a
        session.
        """
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
        if self.access_token_expires_in >= self.refresh_token_expires_in:
            raise ValueError("ACCESS_TOKEN_EXPIRES_IN must be shorter than REFRESH_TOKEN_EXPIRES_IN.")
        if self.debug:
            logger.warning("DEBUG is enabled. Do not run with DEBUG=true in production.")
        return self

    def token_config(self) -> TokenConfig:
        return TokenConfig(
            access_secret=self.access_token_secret,
            access_ttl_seconds=self.access_token_expires_in,
            refresh_secret=self.refresh_token_secret,
            refresh_ttl_seconds=self.refresh_token_expires_in,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
