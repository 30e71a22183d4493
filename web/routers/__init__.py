"""Router modules for FastAPI web API."""

from web.routers import config, drives, flash, health

__all__ = ["config", "drives", "flash", "health"]
