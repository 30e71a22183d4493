"""User-facing message texts.

All strings shown to the user by the flash core live here so that the
notification, CLI and web layers render identical wording.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from imageflasher.types import DeviceCounts

if TYPE_CHECKING:
    from imageflasher.drives.device import Target
    from imageflasher.flash.errors import FlashFailure

FLASH_COMPLETE_TITLE = "Flash complete!"
FLASH_FAILURE_TITLE = "Oops! Looks like the flash failed."

VALIDATION_ERROR = (
    "The write has been completed successfully but potential corruption "
    "issues were detected when reading the image back from the drive.\n\n"
    "Please consider writing the image to a different drive."
)
DRIVE_UNPLUGGED_ERROR = (
    "Looks like access to the drive was lost. Did it get unplugged "
    "accidentally?\n\nSometimes this error is caused by faulty readers that "
    "don't provide stable access to the drive."
)
INPUT_OUTPUT_ERROR = (
    "Looks like this location of the drive can't be written to. This error "
    "is usually caused by a faulty drive, reader, or port.\n\n"
    "Please try again with another drive, reader, or port."
)
NOT_ENOUGH_SPACE_ERROR = (
    "Not enough space on the drive. Please insert larger one and try again."
)
CHILD_WRITER_DIED_ERROR = (
    "The writer process ended unexpectedly. Please try again, and report "
    "the problem if it persists."
)

SYSTEM_DRIVE_WARNING_TITLE = "You are about to erase your computer's drives"
SYSTEM_DRIVE_WARNING = (
    "The selected drives are system drives. Erasing them can render your "
    "computer unable to boot."
)
LARGE_DRIVE_WARNING_TITLE = "You are about to erase an unusually large drive"
LARGE_DRIVE_WARNING = (
    "The selected drives are unusually large for a removable drive. "
    "Make sure none of them holds data you want to keep."
)


def _pluralize(word: str, count: int) -> str:
    return word if count == 1 else f"{word}s"


def describe_target(target: Target) -> str:
    """Return "<description> (<display name>)" for a target."""
    return f"{target.description} ({target.display_name})"


def flash_complete(
    image_basename: str, targets: Sequence[Target], counts: DeviceCounts
) -> str:
    """Build the success notification body.

    Args:
        image_basename: File name of the flashed image.
        targets: Targets the attempt wrote to.
        counts: Successful and failed target counts.

    Returns:
        Message text.
    """
    parts: list[str] = []
    if counts.successful + counts.failed == 1 and targets:
        parts.append(f"to {describe_target(targets[0])}")
    else:
        if counts.successful:
            parts.append(
                f"to {counts.successful} {_pluralize('target', counts.successful)}"
            )
        if counts.failed:
            parts.append(
                f"and failed to be flashed to {counts.failed} "
                f"{_pluralize('target', counts.failed)}"
            )
    return f"{image_basename} was successfully flashed {' '.join(parts)}"


def flash_failure(image_basename: str, targets: Sequence[Target]) -> str:
    """Build the failure notification body."""
    if len(targets) == 1:
        where = describe_target(targets[0])
    else:
        where = f"{len(targets)} targets"
    return f"Something went wrong while writing {image_basename} to {where}."


def generic_flash_error(error: FlashFailure | Exception) -> str:
    """Build the fallback message for an unanticipated failure.

    The raw failure detail and code are kept in the text for support.
    """
    detail = getattr(error, "detail", None) or str(error)
    code = getattr(error, "code", None)
    suffix = f" (code: {code})" if code else ""
    return (
        "Something went wrong. If it is a compressed image, please check that "
        f"the archive is not corrupted.\n{detail}{suffix}"
    )


def warning_text(system_drive_warning: bool) -> tuple[str, str]:
    """Return (title, body) for the drive status warning."""
    if system_drive_warning:
        return SYSTEM_DRIVE_WARNING_TITLE, SYSTEM_DRIVE_WARNING
    return LARGE_DRIVE_WARNING_TITLE, LARGE_DRIVE_WARNING


__all__ = [
    "CHILD_WRITER_DIED_ERROR",
    "DRIVE_UNPLUGGED_ERROR",
    "FLASH_COMPLETE_TITLE",
    "FLASH_FAILURE_TITLE",
    "INPUT_OUTPUT_ERROR",
    "LARGE_DRIVE_WARNING",
    "LARGE_DRIVE_WARNING_TITLE",
    "NOT_ENOUGH_SPACE_ERROR",
    "SYSTEM_DRIVE_WARNING",
    "SYSTEM_DRIVE_WARNING_TITLE",
    "VALIDATION_ERROR",
    "describe_target",
    "flash_complete",
    "flash_failure",
    "generic_flash_error",
    "warning_text",
]
