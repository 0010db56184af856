"""Type definitions and data models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..utils import PartialDeleteFailure


@dataclass(frozen=True)
class Attachment:
    """A file attached to a Discord message."""
    filename: str
    url: str
    size: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        """Create from Discord attachment JSON."""
        return cls(
            filename=data.get("filename", ""),
            url=data.get("url", ""),
            size=int(data.get("size") or 0),
        )


@dataclass(frozen=True)
class RemoteMessage:
    """A message as returned by the channel history endpoint."""
    id: str
    content: str = ""
    attachments: List[Attachment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteMessage":
        """Create from Discord message JSON."""
        return cls(
            id=str(data["id"]),
            content=data.get("content") or "",
            attachments=[
                Attachment.from_dict(item) for item in data.get("attachments") or []
            ],
        )


@dataclass(frozen=True)
class FileRecord:
    """Metadata describing one stored file."""
    id: str
    name: str
    size: int
    media_type: str
    message_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "type": self.media_type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], message_id: Optional[str] = None) -> "FileRecord":
        """Create from the wire dictionary."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            size=int(data.get("size") or 0),
            media_type=str(data.get("type") or ""),
            message_id=message_id,
        )


@dataclass(frozen=True)
class BlobRecord:
    """One encrypted chunk of a stored file."""
    message_id: str
    file_id: str
    sequence: int
    url: str
    size: int = 0


@dataclass(frozen=True)
class FileSummary:
    """Listing entry for a stored file."""
    id: str
    name: str
    size: int
    media_type: str
    chunk_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "media_type": self.media_type,
            "chunk_count": self.chunk_count,
        }


@dataclass(frozen=True)
class ShareCode:
    """Everything needed to fetch and decrypt one file without the channel."""
    key: str
    blob_urls: List[str]
    file_name: str


@dataclass
class DeleteReport:
    """Outcome of deleting a set of message ids."""
    bulk_deleted: List[str] = field(default_factory=list)
    individually_deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def remaining_ids(self) -> List[str]:
        return list(self.failed)

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "bulk_deleted": len(self.bulk_deleted),
            "individually_deleted": len(self.individually_deleted),
            "failed": len(self.failed),
        }

    def raise_for_failures(self) -> None:
        """Raise PartialDeleteFailure if any id could not be deleted."""
        if self.failed:
            raise PartialDeleteFailure(self.failed)
