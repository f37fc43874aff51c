"""Application settings and configuration.

This module defines all configuration options for the Watson auth service.
Settings are loaded from environment variables with sensible defaults where
a default is safe; the signing domain, origin, chain and RPC endpoint must be
provided explicitly.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable application settings loaded from environment variables.

    A single instance is built at startup by :func:`get_settings` and handed to
    each component, so no component reads the environment on its own.
    """

    # Application metadata
    app_name: str = Field(default="Watson Auth", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Sign-in challenge parameters
    siwe_domain: str = Field(alias="SIWE_DOMAIN")
    siwe_origin: str = Field(alias="SIWE_ORIGIN")
    siwe_chain_id: int = Field(alias="SIWE_CHAIN_ID", ge=1)
    siwe_statement: str | None = Field(default=None, alias="SIWE_STATEMENT")

    # Blockchain JSON-RPC endpoint for the configured chain
    rpc_url: str = Field(alias="RPC_URL")
    rpc_timeout_seconds: float = Field(default=10.0, alias="RPC_TIMEOUT_SECONDS", gt=0)

    # Lifetimes, in seconds
    nonce_ttl_seconds: int = Field(default=300, alias="NONCE_TTL", gt=0)
    session_ttl_seconds: int = Field(default=900, alias="SESSION_TTL", gt=0)

    # Session cookie
    cookie_name: str = Field(default="sid", alias="COOKIE_NAME")
    cookie_secure: bool = Field(default=True, alias="COOKIE_SECURE")

    # Database configuration
    database_url: str = Field(default="sqlite:///./watson.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    create_tables_on_startup: bool = Field(default=True, alias="CREATE_TABLES_ON_STARTUP")

    # Warn at startup if the RPC endpoint serves a different chain
    verify_chain_on_startup: bool = Field(default=True, alias="VERIFY_CHAIN_ON_STARTUP")

    # Expired nonce/session cleanup; 0 disables the background sweep
    sweep_interval_seconds: float = Field(default=60.0, alias="SWEEP_INTERVAL_SECONDS", ge=0)
    # Expired nonces are kept this long so late submissions report "expired"
    nonce_retention_seconds: int = Field(default=86400, alias="NONCE_RETENTION_SECONDS", ge=0)

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Cookie"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()  # type: ignore[call-arg]
