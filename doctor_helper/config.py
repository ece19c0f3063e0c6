from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables with local defaults"""

    # Database - SQLite for local development, override with a postgresql:// URL in production
    DATABASE_URL: str = "sqlite+aiosqlite:///./doctor_helper.db"

    # JWT Configuration
    JWT_SECRET_KEY: str = "change-this-jwt-secret-in-production-minimum-32-characters"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Generation backend (Gemini REST API)
    GENERATION_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GENERATION_API_KEY: str = ""
    GENERATION_MODEL: str = "gemini-2.5-pro"
    GENERATION_TIMEOUT_SECONDS: int = 120

    # Metering policy
    # True: a broken count query lets the interaction through
    METERING_FAIL_OPEN: bool = True
    # Plan used when a user's stored plan cannot be resolved
    DEFAULT_PLAN_TITLE: str = "Free"

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
