"""In-memory stand-in for the Discord REST API and CDN."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Set, Tuple
from urllib.parse import parse_qs, urlsplit

from chunkvault.common.constants import RETENTION_WINDOW_MS
from chunkvault.core.snowflake import snowflake_from_timestamp_ms, snowflake_timestamp_ms
from chunkvault.utils import TransportError

DAY_MS = 24 * 60 * 60 * 1000


class FakeGateway:
    """Emulates message history, pagination, deletes and attachment URLs."""

    def __init__(self) -> None:
        self.channels: Dict[str, List[Dict[str, Any]]] = {}
        self.blobs: Dict[str, bytes] = {}
        self.calls: List[Tuple[str, str, Any]] = []
        self.fetched: List[str] = []
        self.now_ms: Optional[int] = None
        self.fail_bulk = False
        self.fail_delete: Set[str] = set()
        self.fail_page: Optional[int] = None
        self._sequence = 0

    def _next_id(self) -> str:
        now = self.now_ms if self.now_ms is not None else int(time.time() * 1000)
        self._sequence += 1
        return str(snowflake_from_timestamp_ms(now) + self._sequence)

    def age_messages(self, days: int) -> None:
        """Post subsequent messages ``days`` in the past."""
        self.now_ms = int(time.time() * 1000) - days * DAY_MS

    def messages(self, channel_id: str) -> List[Dict[str, Any]]:
        return self.channels.setdefault(channel_id, [])

    def calls_to(self, method: str, suffix: str = "") -> List[Tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] == method and call[1].endswith(suffix)]

    async def send(
        self,
        method: str,
        endpoint: str,
        payload: Any = None,
        attachment: Optional[Tuple[str, bytes]] = None,
    ) -> Any:
        self.calls.append((method, endpoint, payload))
        parts = urlsplit(endpoint)
        segments = parts.path.strip("/").split("/")
        channel_id = segments[1]
        store = self.messages(channel_id)

        if method == "GET" and segments[2:] == ["messages"]:
            page_number = len(self.calls_to("GET"))
            if self.fail_page is not None and page_number >= self.fail_page:
                raise TransportError("page failed", status=500, body={"message": "boom"})
            query = parse_qs(parts.query)
            limit = int(query.get("limit", ["50"])[0])
            before = query.get("before", [None])[0]
            newest_first = sorted(store, key=lambda item: int(item["id"]), reverse=True)
            if before is not None:
                newest_first = [item for item in newest_first if int(item["id"]) < int(before)]
            return [dict(item) for item in newest_first[:limit]]

        if method == "POST" and segments[2:] == ["messages"]:
            message_id = self._next_id()
            attachments = []
            if attachment is not None:
                filename, data = attachment
                url = f"https://cdn.test/attachments/{channel_id}/{message_id}/{filename}"
                self.blobs[url] = bytes(data)
                attachments.append({"filename": filename, "url": url, "size": len(data)})
            message = {
                "id": message_id,
                "content": (payload or {}).get("content", ""),
                "attachments": attachments,
            }
            store.append(message)
            return dict(message)

        if method == "POST" and segments[2:] == ["messages", "bulk-delete"]:
            ids = payload["messages"]
            if self.fail_bulk:
                raise TransportError("bulk failed", status=500, body={"message": "boom"})
            if not 2 <= len(ids) <= 100:
                raise TransportError("bad bulk size", status=400, body={"code": 50016})
            cutoff = int(time.time() * 1000) - RETENTION_WINDOW_MS
            if any(snowflake_timestamp_ms(message_id) <= cutoff for message_id in ids):
                raise TransportError("too old", status=400, body={"code": 50034})
            wanted = set(ids)
            self.channels[channel_id] = [item for item in store if item["id"] not in wanted]
            return None

        if method == "DELETE" and segments[2] == "messages" and len(segments) == 4:
            message_id = segments[3]
            if message_id in self.fail_delete:
                raise TransportError("delete failed", status=500, body={"message": "boom"})
            if not any(item["id"] == message_id for item in store):
                raise TransportError("unknown message", status=404, body={"code": 10008})
            self.channels[channel_id] = [item for item in store if item["id"] != message_id]
            return None

        raise TransportError(f"unexpected {method} {endpoint}", status=404)

    async def fetch_binary(self, url: str) -> bytes:
        self.fetched.append(url)
        if url not in self.blobs:
            raise TransportError(f"Failed to download {url}: HTTP 404", status=404)
        return self.blobs[url]


class FakeResponse:
    def __init__(self, status: int, raw: bytes) -> None:
        self.status = status
        self._raw = raw

    async def read(self) -> bytes:
        return self._raw


class FakeSession:
    """Stand-in for ``aiohttp.ClientSession`` recording every request."""

    def __init__(self, status: int = 200, raw: bytes = b"", error: Optional[BaseException] = None) -> None:
        self.status = status
        self.raw = raw
        self.error = error
        self.requests: List[Tuple[str, str, Dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> "FakeSession":
        self.requests.append((method, url, kwargs))
        return self

    async def __aenter__(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        return FakeResponse(self.status, self.raw)

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False

    async def close(self) -> None:
        pass
