"""Agora settings, read from the environment and an optional ``.env`` file."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEV_SECRET_KEY = "dev-jwt-secret-key-change-in-production-32chars!"


class Settings(BaseSettings):
    """Runtime configuration.

    Grouped by concern: service identity, token verification, Redis,
    Cassandra, moderation policy, logging and CORS.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="agora", description="Service name")
    app_version: str = Field(default="0.1.0", description="Service version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=True, description="Expose docs and debug output")

    # Tokens are issued by the identity service; Agora only verifies them
    auth_secret_key: str = Field(
        default=DEV_SECRET_KEY, min_length=32, description="JWT verification key"
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_issuer: str | None = Field(
        default=None, description="Required `iss` claim, unchecked when unset"
    )
    auth_access_token_expire_minutes: int = Field(
        default=15, ge=1, description="Lifetime of locally issued tokens"
    )

    # Role cache and unread counters
    redis_url: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    redis_max_connections: int = Field(default=10, description="Redis pool size")
    redis_socket_timeout: float = Field(default=5.0, description="Command timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Connect timeout"
    )
    redis_health_check_interval: int = Field(
        default=30, description="Seconds between idle connection checks"
    )

    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Contact points"
    )
    cassandra_port: int = Field(default=9042, description="Native protocol port")
    cassandra_keyspace: str = Field(
        default="agora", pattern=r"^[a-zA-Z][a-zA-Z0-9_]*$", description="Keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_datacenter: str = Field(
        default="datacenter1", description="Local datacenter for replication"
    )
    cassandra_replication_factor: int = Field(
        default=1, ge=1, description="Replicas per datacenter"
    )

    moderation_auto_ban_threshold: int = Field(
        default=5,
        ge=1,
        description="Distinct reporters inside the window that trigger an auto-ban",
    )
    moderation_auto_ban_window_days: int = Field(
        default=7, ge=1, description="Sliding window for counting reports (days)"
    )
    moderation_report_reason_max_length: int = Field(
        default=500, ge=1, description="Maximum length of a report reason"
    )
    moderation_appeal_description_max_length: int = Field(
        default=1000, ge=1, description="Maximum length of an appeal description"
    )
    role_cache_ttl_seconds: int = Field(
        default=3600, ge=1, description="TTL of cached community roles per user"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Renderer for stdout"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Add module, function and line to events"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Rotate log files at this size"
    )
    log_file_backup_count: int = Field(
        default=5, description="Rotated log files to keep"
    )
    log_requests: bool = Field(default=True, description="Log every HTTP request")
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths left out of request logging",
    )

    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    @model_validator(mode="after")
    def check_production_secrets(self) -> "Settings":
        """Refuse to start production with the development signing key."""
        if self.is_production and self.auth_secret_key == DEV_SECRET_KEY:
            msg = "AUTH_SECRET_KEY must be set in production"
            raise ValueError(msg)
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
