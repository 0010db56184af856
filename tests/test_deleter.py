"""Tests for retention-aware deletion."""

from __future__ import annotations

import asyncio
import time
import unittest

from chunkvault.common.constants import DISCORD_EPOCH_MS
from chunkvault.core.snowflake import (
    is_bulk_deletable,
    snowflake_from_timestamp_ms,
    snowflake_time,
    snowflake_timestamp_ms,
)
from chunkvault.deleter import RetentionAwareDeleter, batched, partition_by_retention
from chunkvault.discord_client import DiscordGateway
from chunkvault.utils import PartialDeleteFailure

from tests.fakes import DAY_MS, FakeGateway, FakeSession

CHANNEL = "1000"


def _post(gateway: FakeGateway, count: int) -> list:
    ids = []
    for index in range(count):
        message = asyncio.run(
            gateway.send("POST", f"/channels/{CHANNEL}/messages", {"content": f"m{index}"})
        )
        ids.append(message["id"])
    return ids


class TestSnowflake(unittest.TestCase):
    def test_known_snowflake(self) -> None:
        self.assertEqual(snowflake_timestamp_ms("175928847299117063"), 1462015105796)
        self.assertEqual(snowflake_time(175928847299117063).year, 2016)

    def test_epoch(self) -> None:
        self.assertEqual(snowflake_timestamp_ms(0), DISCORD_EPOCH_MS)
        self.assertEqual(snowflake_timestamp_ms(snowflake_from_timestamp_ms(1_700_000_000_000)), 1_700_000_000_000)

    def test_retention_predicate(self) -> None:
        now = int(time.time() * 1000)
        self.assertTrue(is_bulk_deletable(snowflake_from_timestamp_ms(now - DAY_MS), now))
        self.assertFalse(is_bulk_deletable(snowflake_from_timestamp_ms(now - 15 * DAY_MS), now))

    def test_partition_and_batches(self) -> None:
        now = int(time.time() * 1000)
        fresh = str(snowflake_from_timestamp_ms(now - DAY_MS))
        stale = str(snowflake_from_timestamp_ms(now - 30 * DAY_MS))
        self.assertEqual(partition_by_retention([fresh, stale], now), ([fresh], [stale]))
        self.assertEqual([len(batch) for batch in batched([str(i) for i in range(250)])], [100, 100, 50])


class TestRetentionAwareDeleter(unittest.TestCase):
    def setUp(self) -> None:
        self.gateway = FakeGateway()
        self.deleter = RetentionAwareDeleter(self.gateway)

    def test_recent_ids_use_bulk_and_old_ids_go_one_by_one(self) -> None:
        self.gateway.age_messages(days=20)
        old_ids = _post(self.gateway, 3)
        self.gateway.now_ms = None
        recent_ids = _post(self.gateway, 5)

        report = asyncio.run(self.deleter.delete(CHANNEL, old_ids + recent_ids))

        bulk_calls = self.gateway.calls_to("POST", "/bulk-delete")
        self.assertEqual(len(bulk_calls), 1)
        self.assertEqual(sorted(bulk_calls[0][2]["messages"]), sorted(recent_ids))
        deleted_one_by_one = [call[1].rsplit("/", 1)[1] for call in self.gateway.calls_to("DELETE")]
        self.assertEqual(sorted(deleted_one_by_one), sorted(old_ids))
        self.assertEqual(sorted(report.bulk_deleted), sorted(recent_ids))
        self.assertEqual(sorted(report.individually_deleted), sorted(old_ids))
        self.assertTrue(report.ok)
        self.assertEqual(self.gateway.messages(CHANNEL), [])

    def test_bulk_batches_hold_at_most_100_ids(self) -> None:
        ids = _post(self.gateway, 230)
        report = asyncio.run(self.deleter.delete(CHANNEL, ids))
        sizes = [len(call[2]["messages"]) for call in self.gateway.calls_to("POST", "/bulk-delete")]
        self.assertEqual(sizes, [100, 100, 30])
        self.assertEqual(report.counts, {"bulk_deleted": 230, "individually_deleted": 0, "failed": 0})

    def test_bulk_failure_falls_back_to_single_deletes(self) -> None:
        ids = _post(self.gateway, 4)
        self.gateway.fail_bulk = True
        report = asyncio.run(self.deleter.delete(CHANNEL, ids))
        self.assertEqual(report.bulk_deleted, [])
        self.assertEqual(report.individually_deleted, ids)
        self.assertEqual(len(self.gateway.calls_to("DELETE")), 4)
        self.assertEqual(self.gateway.messages(CHANNEL), [])

    def test_each_id_is_accounted_for_once(self) -> None:
        ids = _post(self.gateway, 6)
        self.gateway.fail_bulk = True
        self.gateway.fail_delete = {ids[1], ids[4]}
        report = asyncio.run(self.deleter.delete(CHANNEL, ids + ids[:2]))

        self.assertEqual(len(self.gateway.calls_to("DELETE")), 6)
        buckets = report.bulk_deleted + report.individually_deleted + list(report.failed)
        self.assertEqual(sorted(buckets), sorted(ids))
        self.assertEqual(sorted(report.remaining_ids), sorted([ids[1], ids[4]]))
        self.assertFalse(report.ok)
        with self.assertRaises(PartialDeleteFailure) as ctx:
            report.raise_for_failures()
        self.assertEqual(sorted(ctx.exception.failed_ids), sorted([ids[1], ids[4]]))

    def test_single_recent_id_skips_bulk(self) -> None:
        ids = _post(self.gateway, 1)
        report = asyncio.run(self.deleter.delete(CHANNEL, ids))
        self.assertEqual(self.gateway.calls_to("POST", "/bulk-delete"), [])
        self.assertEqual(report.individually_deleted, ids)

    def test_already_deleted_message_counts_as_deleted(self) -> None:
        self.gateway.age_messages(days=30)
        ids = _post(self.gateway, 1)
        self.gateway.channels[CHANNEL] = []
        report = asyncio.run(self.deleter.delete(CHANNEL, ids))
        self.assertTrue(report.ok)
        self.assertEqual(report.individually_deleted, ids)

    def test_timed_out_requests_are_reported_not_raised(self) -> None:
        gateway = DiscordGateway("token", session=FakeSession(error=asyncio.TimeoutError()))
        now_ms = int(time.time() * 1000)
        recent_ids = [str(snowflake_from_timestamp_ms(now_ms) + offset) for offset in (1, 2)]
        old_id = "175928847299117063"

        report = asyncio.run(RetentionAwareDeleter(gateway).delete(CHANNEL, recent_ids + [old_id], now_ms=now_ms))

        self.assertEqual(sorted(report.failed), sorted(recent_ids + [old_id]))
        self.assertEqual(report.bulk_deleted, [])
        self.assertEqual(report.individually_deleted, [])
        self.assertFalse(report.ok)


if __name__ == "__main__":
    unittest.main()
