"""Metadata record encoding: ``metadata:`` followed by a JSON object."""

import json
from typing import Optional

from ..common.constants import METADATA_PREFIX
from ..common.types import FileRecord


def build_metadata_content(record: FileRecord) -> str:
    """
    Build the message content announcing a stored file.

    Args:
        record: File metadata

    Returns:
        Message content string
    """
    return METADATA_PREFIX + json.dumps(record.to_dict(), separators=(",", ":"))


def is_metadata_content(content: str) -> bool:
    return content.startswith(METADATA_PREFIX)


def parse_metadata_content(content: str, message_id: Optional[str] = None) -> FileRecord:
    """
    Parse a metadata message content.

    Args:
        content: Message content
        message_id: Id of the message carrying the record

    Returns:
        FileRecord

    Raises:
        ValueError: If content is not a well-formed metadata record
    """
    if not is_metadata_content(content):
        raise ValueError("Not a metadata record.")
    try:
        payload = json.loads(content[len(METADATA_PREFIX):])
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed metadata JSON: {exc}") from exc
    if not isinstance(payload, dict) or "id" not in payload:
        raise ValueError("Metadata record has no id.")
    try:
        return FileRecord.from_dict(payload, message_id=message_id)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid metadata field: {exc}") from exc
