"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./fretboard_quiz.db"

    # Redis (empty string disables Redis-backed session locks)
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Fretboard Quiz API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:4321"]

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000

    # Quiz Settings
    QUESTIONS_PER_QUIZ: int = 10
    AUTO_ABANDON_EXPIRED_SESSIONS: bool = True
    SESSION_EXPIRY_GRACE_SECONDS: int = 300
    SESSION_LOCK_TIMEOUT_SECONDS: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
