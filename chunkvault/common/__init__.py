"""Common constants and data models."""

from .constants import (
    CHUNK_MARKER,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_WINDOW_SIZE,
    METADATA_PREFIX,
    PAGE_SIZE,
)
from .types import (
    Attachment,
    BlobRecord,
    DeleteReport,
    FileRecord,
    FileSummary,
    RemoteMessage,
    ShareCode,
)

__all__ = [
    "CHUNK_MARKER",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_WINDOW_SIZE",
    "METADATA_PREFIX",
    "PAGE_SIZE",
    "Attachment",
    "BlobRecord",
    "DeleteReport",
    "FileRecord",
    "FileSummary",
    "RemoteMessage",
    "ShareCode",
]
