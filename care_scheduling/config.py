"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Care Scheduling API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Redis
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # Practice
    practice_name: str = Field(default="Compassionate Care", alias="PRACTICE_NAME")
    clinic_timezone: str = Field(
        default="America/Chicago",
        alias="CLINIC_TIMEZONE",
        description="IANA timezone that appointment dates and times are expressed in",
    )
    slot_start_hour: int = Field(default=8, alias="SLOT_START_HOUR")
    slot_end_hour: int = Field(default=17, alias="SLOT_END_HOUR")
    slot_step_minutes: int = Field(default=30, alias="SLOT_STEP_MINUTES")

    # Email (Resend)
    resend_api_key: str = Field(default="", alias="RESEND_API_KEY")
    resend_api_url: str = Field(default="https://api.resend.com/emails", alias="RESEND_API_URL")
    email_from_address: str = Field(
        default="Compassionate Care <info@aradvancedwoundcaresolutions.com>",
        alias="EMAIL_FROM_ADDRESS",
    )
    email_timeout_seconds: float = Field(default=10.0, alias="EMAIL_TIMEOUT_SECONDS")

    # Reminders
    reminder_scheduler_enabled: bool = Field(default=True, alias="REMINDER_SCHEDULER_ENABLED")
    reminder_scan_interval_minutes: int = Field(default=5, alias="REMINDER_SCAN_INTERVAL_MINUTES")
    reminder_concurrency: int = Field(default=5, alias="REMINDER_CONCURRENCY")
    # A claim older than this is considered abandoned by a crashed scan
    reminder_claim_ttl_seconds: int = Field(default=600, alias="REMINDER_CLAIM_TTL_SECONDS")
    scan_lock_ttl_seconds: int = Field(default=300, alias="SCAN_LOCK_TTL_SECONDS")

    # External cron trigger secret
    cron_secret: str = Field(
        default="test-cron-secret-for-development-only",
        alias="CRON_SECRET",
        description="Secret key for the reminder trigger endpoint",
    )

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
