"""Configuration management using Pydantic Settings."""

import logging
from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class MongoSettings(BaseSettings):
    """MongoDB connection settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # Database
    mongodb_url: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string"
    )
    mongodb_database: str = Field(default="mongorepo", description="Database name")
    operation_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to reads (maxTimeMS) and writes (wtimeout)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    logfire_token: str = Field(default="", description="Logfire observability token")

    @field_validator("mongodb_database")
    @classmethod
    def validate_database(cls, v: str) -> str:
        """Validate that the database name is provided."""
        if not v.strip():
            raise ValueError("Database name cannot be empty")
        return v

    @field_validator("operation_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Operation timeout must be positive")
        return v

    @property
    def operation_timeout(self) -> timedelta:
        return timedelta(seconds=self.operation_timeout_seconds)

    @property
    def sanitized_url(self) -> str:
        return sanitize_mongodb_url(self.mongodb_url)


def sanitize_mongodb_url(url: str) -> str:
    """Replace the password in a MongoDB URL with *** for logging."""
    scheme, separator, rest = url.partition("://")
    if not separator:
        return url

    # The host list never contains "@", so the last one ends the credentials
    userinfo, at, hosts = rest.rpartition("@")
    if not at:
        return url

    username, colon, _ = userinfo.partition(":")
    if not colon:
        return url
    return f"{scheme}://{username}:***@{hosts}"


@lru_cache()
def get_settings() -> MongoSettings:
    """Get singleton MongoSettings instance."""
    settings = MongoSettings()
    logger.debug(f"Loaded settings for {settings.sanitized_url}/{settings.mongodb_database}")
    return settings
