"""Flash failures and their classification.

The write engine raises `FlashFailure` with an errno-style code. The
classifier maps the codes it knows to a fixed user message; every other code
is unanticipated and yields an empty message so that the caller falls back to
the generic text and files a diagnostic report.
"""

from imageflasher import messages
from imageflasher.types import FailureKind


class FlashFailure(Exception):
    """Failure raised by the write engine.

    Attributes:
        code: Failure code (e.g. 'ENOSPC').
        detail: Human readable detail of what went wrong.
        image: Basename of the image, attached by the orchestrator when the
            failure is reported as a diagnostic.
    """

    def __init__(self, code: str, detail: str) -> None:
        super().__init__(f"{code}: {detail}")
        self.code = code
        self.detail = detail
        self.image: str | None = None

    @property
    def message(self) -> str:
        return self.detail

    @property
    def error_code(self) -> str:
        return self.code


_KIND_BY_CODE: dict[str, FailureKind] = {
    "EVALIDATION": FailureKind.VALIDATION,
    "EUNPLUGGED": FailureKind.DEVICE_UNPLUGGED,
    "EIO": FailureKind.INPUT_OUTPUT,
    "ENOSPC": FailureKind.INSUFFICIENT_SPACE,
    "ECHILDDIED": FailureKind.WORKER_PROCESS_DIED,
}

_MESSAGE_BY_KIND: dict[FailureKind, str] = {
    FailureKind.VALIDATION: messages.VALIDATION_ERROR,
    FailureKind.DEVICE_UNPLUGGED: messages.DRIVE_UNPLUGGED_ERROR,
    FailureKind.INPUT_OUTPUT: messages.INPUT_OUTPUT_ERROR,
    FailureKind.INSUFFICIENT_SPACE: messages.NOT_ENOUGH_SPACE_ERROR,
    FailureKind.WORKER_PROCESS_DIED: messages.CHILD_WRITER_DIED_ERROR,
}


def classify_failure(code: str | None) -> FailureKind:
    """Map a failure code to its category.

    Matching is exact and case-sensitive.

    Args:
        code: Failure code reported by the write engine.

    Returns:
        The failure category, UNCLASSIFIED for unknown codes.
    """
    if code is None:
        return FailureKind.UNCLASSIFIED
    return _KIND_BY_CODE.get(code, FailureKind.UNCLASSIFIED)


def get_error_message_from_code(code: str | None) -> str:
    """Return the fixed user message for a failure code.

    Args:
        code: Failure code reported by the write engine.

    Returns:
        The message, or an empty string when the code is not anticipated.
    """
    return _MESSAGE_BY_KIND.get(classify_failure(code), "")


__all__ = [
    "FlashFailure",
    "classify_failure",
    "get_error_message_from_code",
]
