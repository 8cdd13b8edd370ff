"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore", # Allow extra env vars without failing
    )

    # App
    app_name: str = "DisasterPaws"
    app_version: str = "0.1.0"
    service_name: str = "disasterpaws-backend"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 4000

    # API
    # Override via ALLOWED_ORIGINS env var
    allowed_origins: list[str] = ["*"]

    # Lifecycle
    default_actor: str = "system"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
