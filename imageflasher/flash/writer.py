"""Write engine for flashing.

This module defines the contract the flash core expects from a write engine
and a default engine that block-copies an image file onto one or more
targets:
- Synchronous, flushed writes (conv=fsync equivalent), one thread per target
- Optional SHA-256 read-back verification
- Out-of-band cancel and skip-verification requests, polled between blocks
- errno-derived failure codes

The engine raises `FlashFailure` only when every target failed; otherwise the
per-target tally is returned and the first failure of each target is kept in
the summary.
"""

import asyncio
import errno
import hashlib
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Protocol

from imageflasher.drives.device import SourceImage, Target
from imageflasher.flash.errors import FlashFailure
from imageflasher.types import DeviceCounts

logger = logging.getLogger(__name__)

# Default block size for I/O operations (1 MiB)
DEFAULT_BLOCK_SIZE = 1024 * 1024

# errno values that mean the device went away mid-write
_UNPLUGGED_ERRNOS = {errno.ENODEV, errno.ENXIO, errno.ENOENT}


@dataclass(frozen=True)
class WriteSummary:
    """Aggregate result of a write over all targets.

    Attributes:
        success_count: Targets written (and verified, unless skipped).
        fail_count: Targets that failed.
        skip: Verification was skipped on request.
        cancelled: The write was cancelled on request.
        failures: First failure per failed device.
    """

    success_count: int = 0
    fail_count: int = 0
    skip: bool = False
    cancelled: bool = False
    failures: dict[str, FlashFailure] = field(default_factory=dict)

    @property
    def counts(self) -> DeviceCounts:
        return DeviceCounts(successful=self.success_count, failed=self.fail_count)


class WriteEngine(Protocol):
    """What the flash orchestrator needs from a write engine."""

    async def write(
        self, image: SourceImage, targets: list[Target]
    ) -> WriteSummary: ...

    def was_last_attempt_cancelled(self) -> bool: ...

    def get_last_attempt_result(self) -> WriteSummary | None: ...

    def cancel(self) -> None: ...

    def skip(self) -> None: ...


class _Interrupted(Exception):
    """Raised inside a worker thread when a cancel request is observed."""


def failure_from_os_error(device: str, exc: OSError) -> FlashFailure:
    """Translate an OSError into a FlashFailure with an errno-style code."""
    if exc.errno in _UNPLUGGED_ERRNOS:
        code = "EUNPLUGGED"
    elif exc.errno is not None:
        code = errno.errorcode.get(exc.errno, "EIO")
    else:
        code = "EIO"
    return FlashFailure(code, f"Error writing to {device}: {exc.strerror or exc}")


def compute_file_hash(
    file_path: str | Path,
    max_bytes: int | None = None,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> tuple[str, int]:
    """Compute SHA-256 hash of a file.

    Args:
        file_path: Path to the file to hash.
        max_bytes: Maximum number of bytes to hash.
        block_size: Block size for reading.

    Returns:
        Tuple of (hex hash string, bytes hashed).
    """
    hasher = hashlib.sha256()
    bytes_hashed = 0

    with open(file_path, "rb") as f:
        while True:
            if max_bytes is not None:
                remaining = max_bytes - bytes_hashed
                if remaining <= 0:
                    break
                read_size = min(block_size, remaining)
            else:
                read_size = block_size

            chunk = f.read(read_size)
            if not chunk:
                break

            hasher.update(chunk)
            bytes_hashed += len(chunk)

    return hasher.hexdigest(), bytes_hashed


class FileWriteEngine:
    """Block-copy write engine.

    Targets are opened as files, so the engine works on block devices as
    well as on regular files standing in for them.
    """

    def __init__(
        self,
        *,
        block_size: int = DEFAULT_BLOCK_SIZE,
        verify: bool = True,
    ) -> None:
        self.block_size = block_size
        self.verify = verify
        self._cancel_event = threading.Event()
        self._skip_event = threading.Event()
        self._last_result: WriteSummary | None = None
        self._last_cancelled = False

    # ---------- out-of-band requests ----------
    def cancel(self) -> None:
        """Ask the running write to stop after the current block."""
        logger.info("Cancel requested")
        self._cancel_event.set()

    def skip(self) -> None:
        """Ask the running write to skip read-back verification."""
        logger.info("Skip verification requested")
        self._skip_event.set()

    # ---------- bookkeeping ----------
    def was_last_attempt_cancelled(self) -> bool:
        return self._last_cancelled

    def get_last_attempt_result(self) -> WriteSummary | None:
        return self._last_result

    # ---------- writing ----------
    def _copy(self, source: BinaryIO, dest: BinaryIO, total_bytes: int) -> int:
        bytes_written = 0
        while bytes_written < total_bytes:
            if self._cancel_event.is_set():
                raise _Interrupted()

            chunk = source.read(self.block_size)
            if not chunk:
                break

            dest.write(chunk)
            bytes_written += len(chunk)

            # Log progress every 10 MiB
            if bytes_written % (10 * 1024 * 1024) < self.block_size:
                logger.debug(
                    "Write progress: %d / %d bytes (%.1f%%)",
                    bytes_written,
                    total_bytes,
                    bytes_written / total_bytes * 100,
                )
        return bytes_written

    def _hash_target(self, device: str, num_bytes: int) -> str | None:
        """Hash the first num_bytes of a target; None if verification was skipped."""
        hasher = hashlib.sha256()
        bytes_read = 0
        with open(device, "rb") as f:
            while bytes_read < num_bytes:
                if self._cancel_event.is_set():
                    raise _Interrupted()
                if self._skip_event.is_set():
                    return None
                chunk = f.read(min(self.block_size, num_bytes - bytes_read))
                if not chunk:
                    break
                hasher.update(chunk)
                bytes_read += len(chunk)
        return hasher.hexdigest()

    def _write_target(
        self, image: SourceImage, target: Target, source_hash: str | None
    ) -> FlashFailure | None:
        """Write one target; returns its failure or None on success.

        Raises:
            _Interrupted: A cancel request was observed.
        """
        image_size = os.path.getsize(image.path)
        if target.size_bytes is not None and image_size > target.size_bytes:
            return FlashFailure(
                "ENOSPC",
                f"Image is {image_size} bytes but {target.device} holds "
                f"only {target.size_bytes} bytes",
            )

        logger.info("Writing %s to %s", image.basename, target.device)
        try:
            with open(image.path, "rb") as src, open(target.device, "r+b") as dst:
                written = self._copy(src, dst, image_size)
                dst.flush()
                os.fsync(dst.fileno())
            logger.info("Wrote %d bytes to %s", written, target.device)

            if source_hash is None:
                return None

            device_hash = self._hash_target(target.device, image_size)
        except OSError as e:
            logger.error("I/O error on %s: %s", target.device, e)
            return failure_from_os_error(target.device, e)

        if device_hash is not None and device_hash != source_hash:
            logger.error(
                "Hash verification FAILED on %s: expected=%s, got=%s",
                target.device,
                source_hash[:16],
                device_hash[:16],
            )
            return FlashFailure(
                "EVALIDATION",
                f"Hash verification failed for {target.device}",
            )
        return None

    def _run_target(
        self, image: SourceImage, target: Target, source_hash: str | None
    ) -> FlashFailure | None | _Interrupted:
        try:
            return self._write_target(image, target, source_hash)
        except _Interrupted as interrupted:
            logger.info("Write to %s cancelled", target.device)
            return interrupted

    async def write(self, image: SourceImage, targets: list[Target]) -> WriteSummary:
        """Write the image to every target concurrently.

        Args:
            image: Image to write.
            targets: Destination targets.

        Returns:
            WriteSummary tally.

        Raises:
            FlashFailure: The image can't be read, or every target failed.
        """
        self._cancel_event.clear()
        self._skip_event.clear()
        self._last_result = None
        self._last_cancelled = False

        if not os.path.isfile(image.path):
            raise FlashFailure("ENOENT", f"Image file not found: {image.path}")

        source_hash: str | None = None
        if self.verify:
            try:
                source_hash, _ = await asyncio.to_thread(
                    compute_file_hash, image.path, None, self.block_size
                )
            except OSError as e:
                raise failure_from_os_error(image.path, e) from e

        results = await asyncio.gather(
            *(
                asyncio.to_thread(self._run_target, image, target, source_hash)
                for target in targets
            )
        )

        cancelled = self._cancel_event.is_set()
        failures: dict[str, FlashFailure] = {}
        success_count = 0
        for target, result in zip(targets, results, strict=True):
            if isinstance(result, FlashFailure):
                failures[target.device] = result
            elif result is None:
                success_count += 1

        summary = WriteSummary(
            success_count=success_count,
            fail_count=len(failures),
            skip=self._skip_event.is_set(),
            cancelled=cancelled,
            failures=failures,
        )
        self._last_result = summary
        self._last_cancelled = cancelled

        if failures and not success_count and not cancelled:
            raise next(iter(failures.values()))

        return summary


__all__ = [
    "DEFAULT_BLOCK_SIZE",
    "FileWriteEngine",
    "WriteEngine",
    "WriteSummary",
    "compute_file_hash",
    "failure_from_os_error",
]
