"""
Application configuration using environment variables.
"""
import os
import secrets
from functools import lru_cache
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Content Review API"
    debug: bool = False
    environment: str = "development"

    # Logging
    log_level: str = os.getenv("CONTENT_REVIEW_LOG_LEVEL", "INFO")
    log_format: str = os.getenv("CONTENT_REVIEW_LOG_FORMAT", "json")

    # Security
    secret_key: str = os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60  # 1 hour
    refresh_token_expire_days: int = 7

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./content_review.db")

    # CORS
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Rate limiting
    login_rate_limit: str = "5/minute"
    register_rate_limit: str = "3/minute"

    # Sign-ups with this address get the admin flag
    admin_bootstrap_email: Optional[str] = None

    # Upper bound for a single request, including the database round trip
    request_timeout_seconds: float = 15.0

    # IANA zone for the archive day boundary; empty uses server local time
    local_timezone: str = ""

    @field_validator("local_timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        if value:
            try:
                ZoneInfo(value)
            except ZoneInfoNotFoundError:
                raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("log_format")
    @classmethod
    def known_log_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate secret key on startup
settings = get_settings()
if settings.environment == "production" and not os.getenv("SECRET_KEY"):
    raise ValueError(
        "SECRET_KEY must be set in production! "
        "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
    )
