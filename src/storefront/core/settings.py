"""
Environment-driven settings shared by every storefront process.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Process settings.

    Every field maps to an upper-case environment variable
    (``PORT``, ``JWKS_URL``, ``DATABASE_URL``...). Values in a local ``.env``
    file are picked up as well.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    port: int = 8081
    host: str = "0.0.0.0"
    log_level: str = "INFO"

    # Token verification
    jwks_url: Optional[str] = None
    jwks_ttl_seconds: float = 3600.0
    jwks_fetch_timeout: float = 5.0
    require_auth: bool = False

    # Token issuance (users service)
    private_key_path: Optional[str] = None
    key_id: Optional[str] = None
    token_ttl_seconds: int = 2 * 60 * 60

    # Coprocessor
    handler_timeout: float = 10.0

    # Storage; in-memory fixtures when unset
    database_url: Optional[str] = None


@lru_cache
def get_settings() -> Settings:
    return Settings()
