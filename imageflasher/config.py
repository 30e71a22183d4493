"""Configuration settings for imageflasher.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Drives above this size get the "oversized" risk status (128 GB)
DEFAULT_LARGE_DRIVE_SIZE = 128_000_000_000


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "imageflasher" / "db.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the IMGFLASH_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMGFLASH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL for the attempt history",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    error_reporting: bool = Field(
        default=True,
        description="Report unanticipated flash failures as diagnostics",
    )

    # Drive constraints
    large_drive_size: int = Field(
        default=DEFAULT_LARGE_DRIVE_SIZE,
        ge=1,
        description="Drives larger than this many bytes are flagged as oversized",
    )

    # Writing
    block_size: int = Field(
        default=1024 * 1024,
        ge=4096,
        description="Chunk size in bytes for write and verification I/O",
    )
    validate_write_on_success: bool = Field(
        default=True,
        description="Read back and hash-compare each target after writing",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "DEFAULT_LARGE_DRIVE_SIZE",
    "Settings",
    "get_settings",
    "print_settings_json",
]
