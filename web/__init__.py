"""FastAPI web application for Image Flasher.

This module provides the HTTP API for drive selection and the flash step.

All business logic is delegated to core modules in imageflasher/.
"""

from web.app import app, create_app

__all__ = ["app", "create_app"]
