"""Application settings and configuration.

This module defines all configuration options for the Nyx server.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Nyx Server", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(
        default="nyx-secret-key-change-in-production",
        alias="SECRET_KEY",
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    # When enabled, the socket `auth` event must carry a JWT whose subject
    # matches the claimed user id.
    socket_token_required: bool = Field(default=False, alias="SOCKET_TOKEN_REQUIRED")

    # Database configuration
    database_url: str = Field(default="sqlite:///./nyx.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")
    store_timeout_seconds: float | None = Field(default=None, alias="STORE_TIMEOUT_SECONDS")

    # Messaging
    history_default_limit: int = Field(default=50, alias="HISTORY_DEFAULT_LIMIT")
    history_max_limit: int = Field(default=200, alias="HISTORY_MAX_LIMIT")
    enforce_chat_membership: bool = Field(default=True, alias="ENFORCE_CHAT_MEMBERSHIP")
    max_content_length: int = Field(default=8 * 1024 * 1024, alias="MAX_CONTENT_LENGTH")

    # User directory
    user_search_min_length: int = Field(default=3, alias="USER_SEARCH_MIN_LENGTH")
    user_search_limit: int = Field(default=20, alias="USER_SEARCH_LIMIT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        """Return True when the configured store is SQLite."""
        return self.database_url.startswith("sqlite")


settings = Settings()
