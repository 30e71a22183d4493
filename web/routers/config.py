"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter

from imageflasher.config import get_settings

router = APIRouter()


@router.get("")
def get_config() -> dict[str, Any]:
    """Get effective configuration.

    Returns:
        Current configuration as JSON.
    """
    settings = get_settings()
    return {
        "db_url": settings.db_url,
        "log_level": settings.log_level,
        "error_reporting": settings.error_reporting,
        "large_drive_size": settings.large_drive_size,
        "block_size": settings.block_size,
        "validate_write_on_success": settings.validate_write_on_success,
    }
