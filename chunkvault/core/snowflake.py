"""Creation time decoding for Discord snowflake ids."""

from datetime import datetime, timezone
from typing import Union

from ..common.constants import DISCORD_EPOCH_MS, RETENTION_WINDOW_MS

TIMESTAMP_SHIFT = 22


def snowflake_timestamp_ms(snowflake: Union[str, int]) -> int:
    """
    Unix time in milliseconds at which a snowflake id was created.

    The upper 42 bits of the id count milliseconds since DISCORD_EPOCH_MS.
    """
    return (int(snowflake) >> TIMESTAMP_SHIFT) + DISCORD_EPOCH_MS


def snowflake_time(snowflake: Union[str, int]) -> datetime:
    return datetime.fromtimestamp(snowflake_timestamp_ms(snowflake) / 1000, tz=timezone.utc)


def snowflake_from_timestamp_ms(timestamp_ms: int) -> int:
    """Smallest snowflake id created at ``timestamp_ms``."""
    return (timestamp_ms - DISCORD_EPOCH_MS) << TIMESTAMP_SHIFT


def is_bulk_deletable(snowflake: Union[str, int], now_ms: int) -> bool:
    """True if the id is younger than the bulk delete retention window."""
    return snowflake_timestamp_ms(snowflake) > now_ms - RETENTION_WINDOW_MS
