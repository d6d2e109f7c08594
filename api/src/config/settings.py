"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEV_AUTH_SECRET_KEY = "dev-jwt-secret-key-change-in-production-32chars!"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="elira", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")
    app_url: str = Field(
        default="http://localhost:3000",
        description="Public web app URL (used in invitation links)",
    )

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Authentication
    auth_secret_key: str = Field(
        default=DEV_AUTH_SECRET_KEY,
        min_length=32,
        description="JWT signing key",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=60, description="Access token expiration (minutes)"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(default="elira", description="Cassandra keyspace")
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_local_dc: str | None = Field(
        default=None, description="Local datacenter for load balancing"
    )
    cassandra_replication_factor: int = Field(
        default=1, ge=1, description="Replication factor (3 recommended in production)"
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
    log_slow_request_ms: int = Field(
        default=1000, ge=1, description="Requests slower than this are logged as warnings"
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    # Progress tracking
    lesson_completion_threshold: int = Field(
        default=90,
        ge=1,
        le=100,
        description="Watch percentage at which a lesson counts as completed",
    )

    # Company onboarding
    invite_expiry_days: int = Field(
        default=7, description="Days before an employee invitation expires"
    )

    # Stripe
    stripe_secret_key: str | None = Field(
        default=None, description="Stripe secret API key (KEEP SECRET!)"
    )
    stripe_webhook_secret: str | None = Field(
        default=None, description="Stripe webhook signing secret"
    )
    stripe_currency: str = Field(default="huf", description="Checkout currency")
    stripe_locale: str = Field(default="hu", description="Checkout page locale")
    stripe_trial_period_days: int = Field(
        default=7, description="Trial days for subscription checkouts"
    )
    stripe_invoice_limit: int = Field(
        default=100, description="Max invoices fetched per request"
    )

    # Email (Gmail API)
    email_enabled: bool = Field(
        default=False, description="Enable email sending via Gmail API"
    )
    email_credentials_path: str = Field(
        default="credentials/google-service-account.json",
        description="Path to Google service account JSON file",
    )
    email_sender_address: str = Field(
        default="hello@elira.hu",
        description="Sender email address (must be in Google Workspace domain)",
    )
    email_sender_name: str = Field(default="Elira", description="Sender display name")
    email_reply_to: str | None = Field(
        default=None, description="Reply-To address for outgoing e-mail"
    )

    @model_validator(mode="after")
    def check_production_secrets(self) -> "Settings":
        if self.is_production and self.auth_secret_key == DEV_AUTH_SECRET_KEY:
            raise ValueError("AUTH_SECRET_KEY must be set in production")
        if self.stripe_configured and not self.stripe_webhook_secret and self.is_production:
            raise ValueError("STRIPE_WEBHOOK_SECRET must be set when Stripe is enabled")
        return self

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
    def stripe_configured(self) -> bool:
        """Check if Stripe is configured."""
        return bool(self.stripe_secret_key)

    @property
    def email_configured(self) -> bool:
        """Check if Gmail API email is configured."""
        return bool(self.email_enabled and self.email_sender_address)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
