"""Image Flasher - safe orchestration of image writes to removable drives.

This package provides the flash-attempt core (safety gate, single-flight
orchestration, outcome classification and recovery) together with drive
discovery, a default block-copy write engine, a CLI and an attempt history.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
