"""
Configuration module for the catalog tree service.

This module provides centralized configuration management using Pydantic settings.
All configuration values can be overridden via environment variables or .env file.
"""

from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings for the catalog tree service.

    All settings can be configured via environment variables.
    Settings are validated on instantiation to ensure correct configuration.

    Attributes:
        CATALOG_API_URL: Base URL of the catalog backend API
        APP_NAME: Display name for the application
        DEBUG: Enable debug mode (shows API docs, console logging)
        HOST: Server bind address
        PORT: Server port number
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        REQUEST_TIMEOUT: Timeout for catalog requests in seconds
        MAX_RETRIES: Retry attempts for a failed catalog request
        AUTO_EXPAND_DEFAULT_PATH: Walk the default path after the root loads
        DEFAULT_DOMAIN_KEYWORDS: Substrings that select the default domain
        DEFAULT_TECHNOLOGY_NAME: Exact name that selects the default technology
        MAX_TREE_SESSIONS: Number of visitor trees kept in memory
    """

    # Service URLs
    CATALOG_API_URL: str = Field(
        default="http://localhost:5001/api/v1",
        description="Base URL of the catalog backend API",
    )

    # Application configuration
    APP_NAME: str = Field(
        default="CodeCraft Catalog Tree",
        description="Display name for the application",
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Server configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    PORT: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Server port number",
    )

    # Logging configuration
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # HTTP client configuration
    REQUEST_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        le=30.0,
        description="Timeout for catalog requests in seconds",
    )
    MAX_RETRIES: int = Field(
        default=0,
        ge=0,
        le=5,
        description="Maximum number of retry attempts for failed requests",
    )

    # Tree behaviour
    AUTO_EXPAND_DEFAULT_PATH: bool = Field(
        default=True,
        description="Expand the default branch once the domain list loads",
    )
    DEFAULT_DOMAIN_KEYWORDS: List[str] = Field(
        default=["web", "development"],
        description="Case-insensitive substrings selecting the default domain",
    )
    DEFAULT_TECHNOLOGY_NAME: str = Field(
        default="html",
        description="Case-insensitive exact name selecting the default technology",
    )
    MAX_TREE_SESSIONS: int = Field(
        default=500,
        ge=1,
        description="Maximum number of visitor trees held in memory",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("CATALOG_API_URL")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """
        Validate that the catalog URL is properly formatted.

        Args:
            value: The URL to validate

        Returns:
            The validated URL without trailing slash

        Raises:
            ValueError: If URL is invalid
        """
        if not value:
            raise ValueError("Service URL cannot be empty")

        value = value.rstrip("/")

        if not (value.startswith("http://") or value.startswith("https://")):
            raise ValueError(
                f"Service URL must start with http:// or https://, got: {value}"
            )

        return value

    @field_validator("DEFAULT_DOMAIN_KEYWORDS")
    @classmethod
    def normalize_keywords(cls, value: List[str]) -> List[str]:
        """Lower-case the keywords and drop blank entries."""
        return [keyword.strip().lower() for keyword in value if keyword.strip()]


# Global settings instance
settings = Settings()
