"""
Application Settings - Main Layer

Use Pydantic Settings for configuration management.
This module handles configuration settings provided using
environment variables, .env files and default values.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prediction_pipeline.infrastructure.settings import (
    CelerySettings,
    DatabaseSettings,
    MarketDataSettings,
    OpenRouterSettings,
    PredictionSettings,
)
from prediction_pipeline.shared import EnumEnvironment, EnumLogLevel


class ApiSettings(BaseSettings):
    """HTTP API configuration settings."""

    title: str = Field(default="Prediction Pipeline", description="API title")
    description: str = Field(
        default="Batch prediction generation for prediction markets "
        "with session tracking and recovery",
        description="API description",
    )
    version: str = Field(default="1.0.0", description="API version")
    host: str = Field(default="0.0.0.0", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")
    reload: bool = Field(
        default=False, description="Enable auto-reload for development"
    )

    model_config = SettingsConfigDict(
        env_prefix="API_", case_sensitive=False, extra="ignore"
    )


class SecuritySettings(BaseSettings):
    """Shared secrets for scheduler-facing endpoints."""

    cron_secret: str = Field(
        default="",
        description="Secret expected from the scheduler; empty rejects every call",
        validation_alias=AliasChoices("CRON_SECRET", "SECURITY_CRON_SECRET"),
    )

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_", case_sensitive=False, extra="ignore"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    level: EnumLogLevel = Field(default=EnumLogLevel.INFO, description="Logging level")
    file_path: Optional[str] = Field(
        default=None, description="Log file path (if None, logs to console)"
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_", case_sensitive=False, extra="ignore"
    )


class AppSettings(BaseSettings):
    """Main application settings, aggregating all sub-settings."""

    environment: EnumEnvironment = Field(
        default=EnumEnvironment.DEVELOPMENT, description="Application environment"
    )

    api: ApiSettings = Field(default_factory=ApiSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    celery: CelerySettings = Field(default_factory=CelerySettings)
    prediction: PredictionSettings = Field(default_factory=PredictionSettings)
    market_data: MarketDataSettings = Field(default_factory=MarketDataSettings)
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


def get_settings() -> AppSettings:
    """
    Get application settings instance Factory.

    Used to be mocked in tests, allowing different settings based on enviroment.
    """
    return AppSettings()
