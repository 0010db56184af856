"""Chunk naming, file ids and re-splitting of byte streams."""

import re
import secrets
import time
from typing import AsyncIterable, AsyncIterator, Optional, Tuple

from ..common.constants import CHUNK_MARKER
from .crypto import ciphertext_size

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_CHUNK_NAME_RE = re.compile(r"^(?P<file_id>.+)" + re.escape(CHUNK_MARKER) + r"(?P<index>\d+)$")


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_file_id(now_ms: Optional[int] = None) -> str:
    """
    Generate a file id: base36 milliseconds followed by 5 random base36 chars.

    Args:
        now_ms: Optional timestamp override in milliseconds

    Returns:
        File identifier, unique within a channel
    """
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return _to_base36(stamp) + suffix


def build_chunk_name(file_id: str, index: int) -> str:
    """Attachment filename for chunk ``index`` of ``file_id``."""
    return f"{file_id}{CHUNK_MARKER}{index}"


def parse_chunk_name(filename: str) -> Optional[Tuple[str, int]]:
    """
    Split a chunk filename into (file_id, index).

    Returns:
        Tuple of file id and sequence index, or None if the name does not
        follow the chunk convention
    """
    match = _CHUNK_NAME_RE.match(filename)
    if not match:
        return None
    return match.group("file_id"), int(match.group("index"))


def chunk_index_for(filename: str, file_id: str) -> Optional[int]:
    """Sequence index if ``filename`` is a chunk of ``file_id``."""
    prefix = f"{file_id}{CHUNK_MARKER}"
    if not filename.startswith(prefix):
        return None
    index = filename[len(prefix):]
    if not index.isdigit():
        return None
    return int(index)


def expected_chunk_count(plaintext_size: int, chunk_size: int) -> int:
    """Number of transport chunks an upload of this size produces."""
    if chunk_size <= 0:
        raise ValueError("Chunk size must be greater than 0.")
    return -(-ciphertext_size(plaintext_size) // chunk_size)


async def rechunk(stream: AsyncIterable[bytes], chunk_size: int) -> AsyncIterator[bytes]:
    """
    Re-split a byte stream into pieces of exactly ``chunk_size`` bytes.

    The final piece holds whatever remains and is never empty unless the
    stream itself produced no bytes.
    """
    if chunk_size <= 0:
        raise ValueError("Chunk size must be greater than 0.")
    buffer = bytearray()
    async for data in stream:
        buffer += data
        while len(buffer) >= chunk_size:
            yield bytes(buffer[:chunk_size])
            del buffer[:chunk_size]
    if buffer:
        yield bytes(buffer)
