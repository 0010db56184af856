"""Shared utilities and error types for chunkvault."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Iterable, List, Optional


class StorageError(Exception):
    """Base exception for chunkvault errors."""


class ConfigError(StorageError):
    """Raised when configuration is invalid or missing."""


class EncryptionError(StorageError):
    """Raised when encryption fails or key material is unusable."""


class DecryptionFailure(EncryptionError):
    """Raised when ciphertext is truncated, corrupt or the key is wrong."""


class TransportError(StorageError):
    """Raised when a Discord API or CDN call fails."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class TransientOverload(TransportError):
    """Raised when the backend keeps rate limiting after all retries."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None, attempts: int = 0) -> None:
        super().__init__(message, status=status, body=body)
        self.attempts = attempts


class FileNotFound(StorageError):
    """Raised when no metadata record matches a file id."""

    def __init__(self, file_id: str) -> None:
        super().__init__(f"File {file_id} not found in channel.")
        self.file_id = file_id


class ChunksMissing(StorageError):
    """Raised when a file's chunk records are absent or have gaps."""

    def __init__(self, file_id: str, missing: Optional[List[int]] = None) -> None:
        if missing:
            detail = f"missing chunk(s) {', '.join(str(index) for index in missing)}"
        else:
            detail = "no chunks found"
        super().__init__(f"File {file_id} is incomplete: {detail}.")
        self.file_id = file_id
        self.missing = list(missing or [])


class InvalidShareCode(StorageError):
    """Raised when a share code cannot be used."""


class InvalidFormat(InvalidShareCode):
    """Raised when a share code is not base64-encoded JSON."""


class InvalidContent(InvalidShareCode):
    """Raised when a share code lacks a required field."""


class PartialDeleteFailure(StorageError):
    """Raised on request when some records could not be deleted."""

    def __init__(self, failed_ids: Iterable[str]) -> None:
        self.failed_ids = list(failed_ids)
        super().__init__(
            f"{len(self.failed_ids)} record(s) could not be deleted: "
            + ", ".join(self.failed_ids)
        )


def setup_logging(log_level: int = logging.INFO) -> None:
    """
    Configure global logging.

    Args:
        log_level: Logging verbosity level.
    """
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


def format_bytes(size: int) -> str:
    """
    Convert bytes to a human-readable string.

    Args:
        size: Size in bytes.

    Returns:
        Human-readable size string.
    """
    if size < 0:
        raise ValueError("Size must be non-negative.")

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    value = float(size)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} PB"


def sanitize_filename(name: str) -> str:
    """
    Sanitize filename to remove unsafe characters.

    Args:
        name: Original filename.

    Returns:
        Sanitized filename.
    """
    name = name.strip().replace(os.sep, "_").replace("/", "_")
    return re.sub(r"[^A-Za-z0-9._-]+", "_", name) or "file"


def atomic_write(path: Path, data: str, mode: str = "w") -> None:
    """
    Write data atomically to a file.

    Args:
        path: Destination path.
        data: Data to write.
        mode: File mode.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(path.suffix + ".tmp")
    with open(temp_path, mode, encoding="utf-8") as file_handle:
        file_handle.write(data)
        file_handle.flush()
        os.fsync(file_handle.fileno())
    temp_path.replace(path)
