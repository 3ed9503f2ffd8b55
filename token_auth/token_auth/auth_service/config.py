"""
Configuration management for the token auth service
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Auth service configuration loaded from environment variables"""

    # Token Configuration
    JWT_SIGNING_KEY: str
    TOKEN_LIFETIME_MINUTES: int = 60

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./app.db"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    # Password Policy
    PASSWORD_REQUIRED_LENGTH: int = 6
    PASSWORD_REQUIRED_UNIQUE_CHARS: int = 1
    PASSWORD_REQUIRE_DIGIT: bool = True
    PASSWORD_REQUIRE_LOWERCASE: bool = True
    PASSWORD_REQUIRE_UPPERCASE: bool = True
    PASSWORD_REQUIRE_NON_ALPHANUMERIC: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("JWT_SIGNING_KEY")
    @classmethod
    def signing_key_long_enough(cls, value: str) -> str:
        # HS256 keys shorter than the digest size are rejected
        if len(value) < 32:
            raise ValueError("JWT_SIGNING_KEY must be at least 32 characters")
        return value

    @field_validator("TOKEN_LIFETIME_MINUTES")
    @classmethod
    def lifetime_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("TOKEN_LIFETIME_MINUTES must be positive")
        return value


def get_settings() -> Settings:
    """Build settings from the environment (and .env, when present)."""
    return Settings()
