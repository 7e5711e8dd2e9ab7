"""
Application configuration management with environment variables.

This module provides centralized configuration management using Pydantic
BaseSettings for type-safe environment variable handling with validation
and default values.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables with the
    APP_ prefix (e.g., APP_LOG_LEVEL, APP_DEFAULT_DELIVERY_ETA_MINUTES).
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application logging level",
    )

    # Environment Configuration
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )

    # API Configuration
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version 1 route prefix",
    )

    cors_origins: list[str] = Field(
        default=["http://localhost:8081", "http://localhost:19006"],
        description="Allowed CORS origins",
    )

    # Application Configuration
    app_name: str = Field(
        default="Seller Order Engine",
        description="Application name",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Application version",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Delivery Configuration
    default_delivery_eta_minutes: int = Field(
        default=30,
        ge=1,
        le=24 * 60,
        description="Estimated delivery time used when an assignment omits one",
    )

    order_number_prefix: str = Field(
        default="ORD",
        min_length=1,
        max_length=10,
        description="Prefix of generated human-readable order ids",
    )

    @field_validator("api_v1_prefix")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        """
        Validate API prefix format.

        Args:
            v: API prefix value

        Returns:
            Prefix without a trailing slash

        Raises:
            ValueError: If prefix does not start with a slash
        """
        if not v.startswith("/"):
            raise ValueError("API prefix must start with '/'")
        return v.rstrip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v) -> list[str]:
        """
        Parse CORS origins from string or list.

        Args:
            v: CORS origins value (string or list)

        Returns:
            List of CORS origin URLs
        """
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
