"""Core protocol logic (pure Python, no network code)."""

from .chunking import build_chunk_name, expected_chunk_count, generate_file_id, parse_chunk_name, rechunk
from .crypto import StreamDecryptor, StreamEncryptor, decrypt_data, derive_key, encrypt_data
from .metadata import build_metadata_content, parse_metadata_content
from .snowflake import is_bulk_deletable, snowflake_timestamp_ms

__all__ = [
    "build_chunk_name",
    "expected_chunk_count",
    "generate_file_id",
    "parse_chunk_name",
    "rechunk",
    "StreamDecryptor",
    "StreamEncryptor",
    "decrypt_data",
    "derive_key",
    "encrypt_data",
    "build_metadata_content",
    "parse_metadata_content",
    "is_bulk_deletable",
    "snowflake_timestamp_ms",
]
