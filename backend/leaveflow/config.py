from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Leaveflow"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://leaveflow:leaveflow@db:5432/leaveflow"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Worker cadence. The sweep rules themselves live in services.policy.
    document_sweep_interval_seconds: int = 3600
    stale_sweep_interval_seconds: int = 1800


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
