"""
Application settings, read from environment variables and .env
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings"""

    # Project root (the directory holding backend/)
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "NoteMeet"
    CORS_ORIGINS: List[str] = ["*"]

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./notemeet.db"
    DB_ECHO: bool = False

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Cache (same Redis, separated by key prefix)
    CACHE_ENABLED: bool = True
    CACHE_KEY_PREFIX: str = "cache:"
    CACHE_TTL_PLANS: int = 300         # public plan catalog

    # Security
    JWT_SECRET_KEY: str = "your-jwt-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080

    # Subscriptions
    EARLY_ACCESS_PLAN_ID: str = "cm5gdkrv00000le8ly7x83j8v"
    DEFAULT_BILLING_PERIOD: str = "MONTHLY"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Path = PROJECT_ROOT / "logs" / "app.log"

    # Record lifecycle and admin actions to audit_logs
    AUDIT_LOG_ENABLED: bool = True


settings = Settings()
