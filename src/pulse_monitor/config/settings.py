"""
Configuration management with environment validation.

This module provides type-safe configuration management using Pydantic,
with validation of monitoring cadences, alert thresholds and notifier
credentials.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pulse_monitor.core.exceptions import ConfigurationError


class MonitoringSettings(BaseSettings):
    """Background cadences and retention policy."""

    model_config = SettingsConfigDict(env_prefix="MONITOR_", extra="ignore")

    collection_interval_seconds: float = Field(30.0, gt=0)
    evaluation_interval_seconds: float = Field(300.0, gt=0)
    cleanup_interval_seconds: float = Field(3600.0, gt=0)
    evaluation_window_seconds: float = Field(3600.0, gt=0)
    retention_hours: float = Field(24.0, gt=0)
    max_request_records: int = Field(1000, gt=0)
    max_alerts: int = Field(50, gt=0)
    recent_alerts_preview: int = Field(5, ge=0)
    disk_path: str = "."
    suppress_duplicate_alerts: bool = False


class ThresholdSettings(BaseSettings):
    """Alert thresholds. Read once at startup."""

    model_config = SettingsConfigDict(env_prefix="THRESHOLD_", extra="ignore")

    cpu_percent: float = Field(80.0, ge=0, le=100)
    memory_percent: float = Field(85.0, ge=0, le=100)
    disk_percent: float = Field(90.0, ge=0, le=100)
    response_time_ms: float = Field(5000.0, gt=0)
    error_rate_percent: float = Field(10.0, ge=0, le=100)


class NotifierSettings(BaseSettings):
    """Outbound alert delivery configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFIER_", extra="ignore", populate_by_name=True
    )

    telegram_bot_token: Optional[SecretStr] = Field(
        None, validation_alias="TELEGRAM_BOT_TOKEN"
    )
    telegram_chat_id: Optional[str] = Field(None, validation_alias="TELEGRAM_CHAT_ID")
    timeout_seconds: float = Field(15.0, gt=0)
    max_workers: int = Field(2, gt=0)

    @property
    def telegram_configured(self) -> bool:
        """Check if both Telegram credentials are present."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


class SecuritySettings(BaseSettings):
    """HTTP operator route protection."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    api_token: Optional[SecretStr] = Field(None, validation_alias="API_TOKEN")


class WebSettings(BaseSettings):
    """Web server configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WEB_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = Field(8000, gt=0, lt=65536)
    reload: bool = False


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    # Environment Configuration
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    # Nested Settings
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    thresholds: ThresholdSettings = Field(default_factory=ThresholdSettings)
    notifier: NotifierSettings = Field(default_factory=NotifierSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    web: WebSettings = Field(default_factory=WebSettings)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed_environments = {"development", "staging", "production", "testing"}
        if v.lower() not in allowed_environments:
            raise ValueError(f"Environment must be one of: {allowed_environments}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Reject debug mode in production."""
        if self.environment == "production" and self.debug:
            raise ValueError("Debug mode must be disabled in production")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    def get_secret_value(self, secret: Optional[SecretStr]) -> str:
        """Safely get secret value."""
        return secret.get_secret_value() if secret else ""


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and reused for the lifetime of the process;
    tests call ``get_settings.cache_clear()`` to reload them.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()


def validate_required_settings(settings: Optional[Settings] = None) -> None:
    """
    Validate cross-field consistency that Pydantic cannot express per field.

    Raises:
        ConfigurationError: If settings are inconsistent.
    """
    settings = settings or get_settings()
    notifier = settings.notifier

    if bool(notifier.telegram_bot_token) != bool(notifier.telegram_chat_id):
        raise ConfigurationError(
            "TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID must be configured together"
        )

    monitoring = settings.monitoring
    if monitoring.evaluation_window_seconds > monitoring.retention_hours * 3600:
        raise ConfigurationError(
            "Evaluation window cannot be longer than the retention horizon"
        )

    if settings.is_production and not settings.security.api_token:
        raise ConfigurationError("API_TOKEN is required in production environment")


__all__ = [
    "Settings",
    "MonitoringSettings",
    "ThresholdSettings",
    "NotifierSettings",
    "SecuritySettings",
    "WebSettings",
    "get_settings",
    "validate_required_settings",
]
