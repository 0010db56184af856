"""Channel history enumeration and record extraction."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

from .common.constants import PAGE_SIZE
from .common.types import BlobRecord, FileRecord, RemoteMessage
from .core.chunking import chunk_index_for, parse_chunk_name
from .core.metadata import is_metadata_content, parse_metadata_content


logger = logging.getLogger(__name__)


class ChannelIndex:
    """Full, uncached snapshot of a channel's message log."""

    def __init__(self, gateway: Any, page_size: int = PAGE_SIZE) -> None:
        self.gateway = gateway
        self.page_size = max(1, min(page_size, PAGE_SIZE))

    async def list_all(self, channel_id: str) -> List[RemoteMessage]:
        """
        Fetch every message in a channel, newest first.

        Pages backwards with the last id of each page as the ``before``
        cursor until a page comes back short. Any page error propagates.

        Args:
            channel_id: Discord channel id.

        Returns:
            Deduplicated list of messages.
        """
        messages: List[RemoteMessage] = []
        seen: Set[str] = set()
        cursor: Optional[str] = None
        pages = 0

        while True:
            endpoint = f"/channels/{channel_id}/messages?limit={self.page_size}"
            if cursor:
                endpoint += f"&before={cursor}"
            page = await self.gateway.send("GET", endpoint) or []
            pages += 1

            for raw in page:
                message = RemoteMessage.from_dict(raw)
                if message.id in seen:
                    continue
                seen.add(message.id)
                messages.append(message)

            logger.debug("Fetched page %s of channel %s (%s messages)", pages, channel_id, len(page))
            if len(page) < self.page_size:
                break
            cursor = str(page[-1]["id"])

        logger.info("Indexed %s messages from channel %s", len(messages), channel_id)
        return messages


def file_records(messages: List[RemoteMessage]) -> List[FileRecord]:
    """
    Extract metadata records from a snapshot.

    Malformed metadata messages are skipped with a warning.
    """
    records: List[FileRecord] = []
    for message in messages:
        if not is_metadata_content(message.content):
            continue
        try:
            records.append(parse_metadata_content(message.content, message.id))
        except ValueError as exc:
            logger.warning("Skipping malformed metadata message %s: %s", message.id, exc)
    return records


def find_file_record(messages: List[RemoteMessage], file_id: str) -> Optional[FileRecord]:
    for record in file_records(messages):
        if record.id == file_id:
            return record
    return None


def blob_records(messages: List[RemoteMessage], file_id: str) -> List[BlobRecord]:
    """
    Chunk records of one file, unordered.

    A chunk message carries exactly one attachment named
    ``{file_id}_chunk_{n}``.
    """
    blobs: List[BlobRecord] = []
    for message in messages:
        if len(message.attachments) != 1:
            continue
        attachment = message.attachments[0]
        index = chunk_index_for(attachment.filename, file_id)
        if index is None:
            continue
        blobs.append(
            BlobRecord(
                message_id=message.id,
                file_id=file_id,
                sequence=index,
                url=attachment.url,
                size=attachment.size,
            )
        )
    return blobs


def count_blobs_by_file(messages: List[RemoteMessage]) -> Dict[str, int]:
    """Number of chunk messages per file id in a snapshot."""
    counts: Dict[str, int] = {}
    for message in messages:
        if len(message.attachments) != 1:
            continue
        parsed = parse_chunk_name(message.attachments[0].filename)
        if parsed is None:
            continue
        counts[parsed[0]] = counts.get(parsed[0], 0) + 1
    return counts
