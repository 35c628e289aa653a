"""Application settings and configuration.

This module defines all configuration options for the Rolling Paper board.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Rolling Paper", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Message storage: append-only log files or a relational table
    storage_backend: Literal["log", "database"] = Field(default="log", alias="STORAGE_BACKEND")
    message_dir: str = Field(default="./messages", alias="MESSAGE_DIR")

    # Database configuration
    database_url: str = Field(default="sqlite:///./rolling_paper.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Change notifications driving the live update broadcaster
    change_feed: Literal["inprocess", "postgres"] = Field(default="inprocess", alias="CHANGE_FEED")
    notify_channel: str = Field(default="messages_changed", alias="NOTIFY_CHANNEL")
    listener_retry_seconds: float = Field(default=5.0, alias="LISTENER_RETRY_SECONDS")

    # Read cache
    cache_backend: Literal["none", "memory", "redis"] = Field(default="memory", alias="CACHE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    cache_list_ttl_seconds: int = Field(default=60, alias="CACHE_LIST_TTL_SECONDS")
    cache_message_ttl_seconds: int = Field(default=300, alias="CACHE_MESSAGE_TTL_SECONDS")

    # Server-Sent Events
    heartbeat_interval_seconds: float = Field(default=30.0, alias="HEARTBEAT_INTERVAL_SECONDS")

    # Board rules
    download_password: str = Field(default="dt2025-pw", alias="DOWNLOAD_PASSWORD")
    max_content_length: int = Field(default=500, alias="MAX_CONTENT_LENGTH")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization", "X-Requested-With"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _check_change_feed(self) -> "Settings":
        """Reject a Postgres change feed without a Postgres message table."""
        if self.change_feed == "postgres":
            if self.storage_backend != "database":
                raise ValueError("CHANGE_FEED=postgres requires STORAGE_BACKEND=database")
            if not self.is_postgres:
                raise ValueError("CHANGE_FEED=postgres requires a PostgreSQL DATABASE_URL")
        return self

    @property
    def is_postgres(self) -> bool:
        """Return True when the configured database is PostgreSQL."""
        return make_url(self.database_url).get_backend_name() == "postgresql"

    @property
    def listener_dsn(self) -> str:
        """Return a plain libpq URL for the LISTEN connection.

        SQLAlchemy driver suffixes (``postgresql+psycopg``) are stripped so the
        URL can be handed directly to ``psycopg``.
        """
        url = make_url(self.database_url).set(drivername="postgresql")
        return url.render_as_string(hide_password=False)


settings = Settings()
