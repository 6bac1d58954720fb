"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        default="sqlite:///./users.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    app_timezone: str = Field(
        default="America/Bogota",
        description="IANA timezone (or UTC±HH:MM offset) used for record timestamps",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:4200"],
        description="Origins allowed to call the API from a browser (JSON list)",
    )
    import_max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Largest accepted import payload, checked before parsing",
        gt=0,
    )
    import_chunk_rows: int = Field(
        default=500,
        description="Rows decoded per chunk when streaming import files",
        gt=0,
    )
    import_batch_size: int = Field(
        default=50,
        description="Default number of rows persisted per batch during imports",
        gt=0,
    )
    import_strict_dni: bool = Field(
        default=False,
        description="Require Spanish DNI format with checksum letter",
    )
    import_column_tolerance: int = Field(
        default=0,
        description="Rows with more populated cells than header columns tolerated per file",
        ge=0,
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
