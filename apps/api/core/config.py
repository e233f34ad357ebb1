"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the API, the Celery worker
and the admin console.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins when set (tests point it at sqlite).
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="trivia_admin")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=10)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Redis Configuration
    REDIS_URL: str = Field(default="redis://redis:6379/0")
    CACHE_ENABLED: bool = Field(default=True)

    # JWT Authentication - REQUIRED for token verification
    SECRET_KEY: str = Field(
        default=...,  # Required - no default
        description="JWT signing key shared with the identity provider (32+ chars)."
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)

    # Shared secret for scheduler-triggered endpoints (Authorization: Bearer <CRON_SECRET>)
    CRON_SECRET: Optional[str] = Field(default=None)
    # RUNNING executions older than this are marked FAILED
    CRON_JOB_TIMEOUT_MINUTES: int = Field(default=10)
    # Days covered by the internal fetch-games job
    CRON_FETCH_GAMES_LOOKBACK_DAYS: int = Field(default=7, ge=1, le=60)

    # Trivia archive (j-archive) scraping
    ARCHIVE_BASE_URL: str = Field(default="https://j-archive.com")
    ARCHIVE_TIMEOUT_S: float = Field(default=15.0)
    ARCHIVE_USER_AGENT: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    # Minimum spacing between sequential archive requests in batch loops
    ARCHIVE_REQUEST_DELAY_S: float = Field(default=0.5, ge=0.0)
    ARCHIVE_MAX_SEASONS_TO_SEARCH: int = Field(default=5, ge=1)

    # Admin console (HTTP client side)
    ADMIN_API_BASE_URL: str = Field(default="http://localhost:8000")
    ADMIN_API_TIMEOUT_S: float = Field(default=30.0)

    # API Configuration
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)
    API_RELOAD: bool = Field(default=False)

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_PER_MINUTE: int = Field(default=60)
    RATE_LIMIT_ADMIN_PER_MINUTE: int = Field(default=300)

    # Celery Configuration
    CELERY_BROKER_URL: str = Field(default="redis://redis:6379/0")
    CELERY_RESULT_BACKEND: str = Field(default="redis://redis:6379/0")

    # Email Configuration
    EMAIL_ENABLED: bool = Field(default=False)
    SMTP_SERVER: str = Field(default="localhost")
    SMTP_PORT: int = Field(default=587)
    SMTP_USERNAME: Optional[str] = Field(default=None)
    SMTP_PASSWORD: Optional[str] = Field(default=None)
    FROM_EMAIL: str = Field(default="noreply@trivia.local")
    FROM_NAME: str = Field(default="Trivia Admin")

    # Cache Configuration
    CACHE_TTL_DEFAULT: int = Field(default=300)  # 5 minutes
    CACHE_TTL_CALENDAR: int = Field(default=600)  # 10 minutes
    CACHE_TTL_METRICS: int = Field(default=120)  # 2 minutes

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)

    # CORS - comma-separated list of allowed origins for production
    CORS_ORIGINS: Optional[str] = Field(default=None)


# Global settings instance
settings = Settings()
