"""Discord REST and CDN transport for chunkvault."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional, Tuple

import aiohttp

from .common.constants import (
    DEFAULT_API_BASE,
    MAX_RETRY_ATTEMPTS,
    RATE_LIMIT_STATUS,
    RETRY_BACKOFF_SECONDS,
)
from .utils import TransientOverload, TransportError


logger = logging.getLogger(__name__)

AttachmentPayload = Tuple[str, bytes]


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


def _retry_after(body: Any) -> float:
    if isinstance(body, dict):
        try:
            return float(body.get("retry_after") or 0)
        except (TypeError, ValueError):
            return 0.0
    return 0.0


class DiscordGateway:
    """
    Authenticated bridge to the Discord HTTP API.

    Use as an async context manager so the aiohttp session is closed::

        async with DiscordGateway(token) as gateway:
            await gateway.send("GET", "/channels/123/messages?limit=100")
    """

    def __init__(
        self,
        token: str,
        api_base: str = DEFAULT_API_BASE,
        max_attempts: int = MAX_RETRY_ATTEMPTS,
        backoff: float = RETRY_BACKOFF_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        self.api_base = api_base.rstrip("/")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self._token = token
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "DiscordGateway":
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    def _auth_headers(self) -> dict:
        return {"Authorization": f"Bot {self._token}"}

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[dict] = None,
        payload: Any = None,
        attachment: Optional[AttachmentPayload] = None,
    ) -> Tuple[int, bytes]:
        kwargs: dict = {"headers": headers or {}}
        if attachment is not None:
            filename, data = attachment
            form = aiohttp.FormData()
            form.add_field(
                "payload_json",
                json.dumps(payload or {}),
                content_type="application/json",
            )
            form.add_field(
                "files[0]",
                data,
                filename=filename,
                content_type="application/octet-stream",
            )
            kwargs["data"] = form
        elif payload is not None:
            kwargs["json"] = payload

        try:
            async with self.session.request(method, url, **kwargs) as resp:
                return resp.status, await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

    async def _with_retries(self, method: str, url: str, **kwargs: Any) -> Tuple[int, bytes]:
        for attempt in range(1, self.max_attempts + 1):
            status, raw = await self._request(method, url, **kwargs)
            if status != RATE_LIMIT_STATUS:
                return status, raw
            body = _decode_body(raw)
            if attempt >= self.max_attempts:
                raise TransientOverload(
                    f"{method} {url} still rate limited after {attempt} attempts.",
                    status=status,
                    body=body,
                    attempts=attempt,
                )
            delay = max(self.backoff * attempt, _retry_after(body))
            logger.warning(
                "Rate limited on %s %s (attempt %s/%s), retrying in %.2fs",
                method, url, attempt, self.max_attempts, delay,
            )
            await asyncio.sleep(delay)
        raise TransientOverload(f"{method} {url} was not attempted.", attempts=0)

    async def send(
        self,
        method: str,
        endpoint: str,
        payload: Any = None,
        attachment: Optional[AttachmentPayload] = None,
    ) -> Any:
        """
        Call a Discord API endpoint.

        Args:
            method: GET, POST or DELETE.
            endpoint: Path below the API root, e.g. ``/channels/1/messages``.
            payload: JSON body (sent as ``payload_json`` with an attachment).
            attachment: Optional ``(filename, bytes)`` uploaded as multipart.

        Returns:
            Decoded JSON response, or None for empty responses.

        Raises:
            TransientOverload: If still rate limited after all attempts.
            TransportError: For any other non-2xx status or network failure.
        """
        url = f"{self.api_base}{endpoint}"
        status, raw = await self._with_retries(
            method,
            url,
            headers=self._auth_headers(),
            payload=payload,
            attachment=attachment,
        )
        body = _decode_body(raw)
        if not 200 <= status < 300:
            raise TransportError(
                f"{method} {endpoint} failed with HTTP {status}: {body}",
                status=status,
                body=body,
            )
        return body

    async def fetch_binary(self, url: str) -> bytes:
        """
        Download raw attachment bytes from the CDN.

        Args:
            url: Attachment URL.

        Returns:
            Attachment content.
        """
        status, raw = await self._with_retries("GET", url)
        if status != 200:
            raise TransportError(
                f"Failed to download {url}: HTTP {status}",
                status=status,
                body=_decode_body(raw),
            )
        return raw
