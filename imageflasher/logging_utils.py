"""Logging setup for the command-line and web entry points."""

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED_ATTR = "_imageflasher_configured"


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Install a rich handler on the root logger.

    Calling this more than once only updates the level.

    Args:
        level: Logging level name (e.g. "INFO").
        console: Console to log to; defaults to stderr.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if getattr(root, _CONFIGURED_ATTR, False):
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    setattr(root, _CONFIGURED_ATTR, True)


__all__ = ["configure_logging"]
