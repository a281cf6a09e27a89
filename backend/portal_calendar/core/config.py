from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    PROJECT_NAME: str = "Portal Calendar API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "local"
    DATABASE_URL: str = "sqlite:///../portal_calendar.db"
    LOG_LEVEL: str = "INFO"

    # Tokens are issued by the portal's identity service; only verified here
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_ALGORITHM: str = "HS256"
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    RATE_LIMIT_DEFAULT: str = "1000/hour"
    RATE_LIMIT_CREATE_EVENT: str = "60/minute"

    # Recurrence expansion limits
    RECURRENCE_HORIZON_YEARS: int = 2
    MAX_RECURRENCE_OCCURRENCES: int = 1000
    DEFAULT_EVENT_COLOR: str = "#3788d8"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: List[str] | str) -> List[str]:
        """Allow both comma-separated strings and list inputs."""
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("RECURRENCE_HORIZON_YEARS", "MAX_RECURRENCE_OCCURRENCES")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("recurrence limits must be greater than 0")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
