"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "TrackHub"
    app_version: str = "0.1.0"
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./trackhub.db")
    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_pool_timeout: int = 30

    # JWT Settings
    jwt_secret_key: SecretStr = SecretStr("change-me-in-production")
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 7

    # Password hashing (argon2id)
    password_time_cost: int = 3
    password_memory_cost: int = 65536
    password_parallelism: int = 4

    # Tags
    default_tag_color: str = "#007bff"
    seed_default_tags: bool = False

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 100

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def expose_error_details(self) -> bool:
        """Whether 500 responses may carry the underlying error message."""
        return self.environment in ("development", "test")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
