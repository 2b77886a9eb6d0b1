"""Configuration management for the pattern catalogue."""

import logging
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    APP_NAME: str = "pattern-catalog"

    # Logging Configuration
    LOG_LEVEL: str = "WARNING"
    LOG_JSON: bool = False

    # Simulation Configuration
    LATENCY_SCALE: float = 1.0
    RANDOM_SEED: Optional[int] = None

    # Cache / Buffer Configuration
    CACHE_DEFAULT_TTL_SECONDS: int = 300
    CACHE_MAX_SIZE: int = 1000
    LOG_BUFFER_SIZE: int = 1000
    EVENT_HISTORY_SIZE: int = 100

    # Rate Limiting
    RATE_LIMIT_MAX_REQUESTS: int = 2
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    # Authentication demos
    JWT_SECRET_KEY: str = "change-me-in-production-pattern-catalog"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 30
    BCRYPT_ROUNDS: int = 10

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known stdlib level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @field_validator("LATENCY_SCALE")
    @classmethod
    def validate_latency_scale(cls, v: float) -> float:
        """Latency scale must not be negative."""
        if v < 0:
            raise ValueError("LATENCY_SCALE must be >= 0")
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """bcrypt accepts cost factors between 4 and 16 here."""
        if not 4 <= v <= 16:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 16")
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
