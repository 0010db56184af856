"""Deletion of message ids across Discord's bulk delete retention window."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, List, Optional, Tuple

from .common.constants import BULK_DELETE_MAX, BULK_DELETE_MIN
from .common.types import DeleteReport
from .core.snowflake import is_bulk_deletable
from .utils import TransportError


logger = logging.getLogger(__name__)


def partition_by_retention(ids: Iterable[str], now_ms: int) -> Tuple[List[str], List[str]]:
    """
    Split ids into (recent, old) by their embedded creation time.

    Args:
        ids: Message ids.
        now_ms: Current Unix time in milliseconds.

    Returns:
        Ids still eligible for bulk delete, and those that are not.
    """
    recent: List[str] = []
    old: List[str] = []
    for message_id in ids:
        if is_bulk_deletable(message_id, now_ms):
            recent.append(message_id)
        else:
            old.append(message_id)
    return recent, old


def batched(ids: List[str], size: int = BULK_DELETE_MAX) -> List[List[str]]:
    return [ids[offset:offset + size] for offset in range(0, len(ids), size)]


class RetentionAwareDeleter:
    """Delete message ids with bulk calls where allowed, one by one otherwise."""

    def __init__(self, gateway: Any) -> None:
        self.gateway = gateway

    async def delete(
        self, channel_id: str, message_ids: Iterable[str], now_ms: Optional[int] = None
    ) -> DeleteReport:
        """
        Delete every id, never raising for individual failures.

        Args:
            channel_id: Discord channel id.
            message_ids: Ids to delete; duplicates are ignored.
            now_ms: Optional clock override in milliseconds.

        Returns:
            DeleteReport accounting for each id exactly once.
        """
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        unique_ids = list(dict.fromkeys(str(message_id) for message_id in message_ids))
        recent, old = partition_by_retention(unique_ids, now_ms)
        logger.info(
            "Deleting %s message(s) from channel %s: %s recent, %s past retention",
            len(unique_ids), channel_id, len(recent), len(old),
        )

        report = DeleteReport()
        for batch in batched(recent):
            if len(batch) < BULK_DELETE_MIN:
                await self._delete_each(channel_id, batch, report)
                continue
            try:
                await self.gateway.send(
                    "POST",
                    f"/channels/{channel_id}/messages/bulk-delete",
                    {"messages": batch},
                )
            except TransportError as exc:
                logger.warning(
                    "Bulk delete of %s message(s) failed, falling back to single deletes: %s",
                    len(batch), exc,
                )
                await self._delete_each(channel_id, batch, report)
            else:
                report.bulk_deleted.extend(batch)

        await self._delete_each(channel_id, old, report)

        logger.info("Delete finished for channel %s: %s", channel_id, report.counts)
        return report

    async def _delete_each(self, channel_id: str, ids: List[str], report: DeleteReport) -> None:
        for message_id in ids:
            try:
                await self.gateway.send("DELETE", f"/channels/{channel_id}/messages/{message_id}")
            except TransportError as exc:
                if exc.status == 404:
                    logger.debug("Message %s already gone", message_id)
                    report.individually_deleted.append(message_id)
                    continue
                logger.error("Failed to delete message %s: %s", message_id, exc)
                report.failed[message_id] = str(exc)
            else:
                report.individually_deleted.append(message_id)
