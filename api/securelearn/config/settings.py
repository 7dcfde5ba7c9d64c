"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="securelearn", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=5000, description="API port")
    api_workers: int = Field(default=1, description="Number of workers")
    api_reload: bool = Field(default=True, description="Enable auto-reload")

    # Session (signed cookie)
    auth_secret_key: str = Field(
        default="dev-session-secret-key-change-in-production-32!",
        description="Session signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_session_expire_days: int = Field(
        default=7, description="Session lifetime (days)"
    )
    auth_cookie_name: str = Field(
        default="securelearn_session", description="Session cookie name"
    )
    auth_cookie_secure: bool = Field(
        default=False, description="Secure cookie (HTTPS only)"
    )
    auth_cookie_httponly: bool = Field(
        default=True, description="HttpOnly cookie (no JS access)"
    )
    auth_cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", description="SameSite cookie policy"
    )

    # OAuth (Google)
    google_client_id: str | None = Field(default=None, description="OAuth client ID")
    google_client_secret: str | None = Field(
        default=None, description="OAuth client secret"
    )
    google_authorize_url: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth",
        description="Provider authorization endpoint",
    )
    google_token_url: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="Provider token endpoint",
    )
    google_userinfo_url: str = Field(
        default="https://openidconnect.googleapis.com/v1/userinfo",
        description="Provider userinfo endpoint",
    )
    oauth_base_url: str = Field(
        default="http://localhost:5000",
        description="Public base URL used to build the OAuth callback",
    )
    oauth_timeout_seconds: float = Field(
        default=10.0, description="Timeout for provider HTTP calls"
    )
    auth_allowed_email_domain: str | None = Field(
        default="bootlabstech.com",
        description="Only emails on this domain may sign in (None disables)",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    redis_health_check_interval: int = Field(
        default=30, description="Health check interval"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="securelearn", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Request timeout"
    )

    # Assessments
    assessment_time_limit_seconds: int = Field(
        default=30 * 60, description="Time allowed for one assessment attempt"
    )
    assessment_grace_seconds: int = Field(
        default=60, description="Extra seconds accepted for network latency"
    )
    assessment_submit_lock_seconds: int = Field(
        default=30, description="TTL of the per-user submission lock in Redis"
    )
    assessment_submits_per_hour: int = Field(
        default=20, description="Maximum submissions per user per hour"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"], description="CORS origins"
    )
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def oauth_configured(self) -> bool:
        """Check if the OAuth provider credentials are present."""
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def oauth_redirect_uri(self) -> str:
        """Callback URL registered with the provider."""
        return f"{self.oauth_base_url.rstrip('/')}/api/auth/callback/google"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
