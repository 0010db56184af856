"""Encrypted file storage on top of a Discord channel."""

from .channel_index import ChannelIndex
from .common.types import DeleteReport, FileSummary, ShareCode
from .deleter import RetentionAwareDeleter
from .discord_client import DiscordGateway
from .object_store import ObjectStore
from .utils import (
    ChunksMissing,
    ConfigError,
    DecryptionFailure,
    FileNotFound,
    InvalidContent,
    InvalidFormat,
    InvalidShareCode,
    PartialDeleteFailure,
    StorageError,
    TransientOverload,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "ChannelIndex",
    "DeleteReport",
    "FileSummary",
    "ShareCode",
    "RetentionAwareDeleter",
    "DiscordGateway",
    "ObjectStore",
    "ChunksMissing",
    "ConfigError",
    "DecryptionFailure",
    "FileNotFound",
    "InvalidContent",
    "InvalidFormat",
    "InvalidShareCode",
    "PartialDeleteFailure",
    "StorageError",
    "TransientOverload",
    "TransportError",
]
