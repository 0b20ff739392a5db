"""HTTP transport for the remote log collector."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .base import Transport, TransportTimeout, TransportUnreachable


logger = logging.getLogger(__name__)


@dataclass
class HttpTransport(Transport):
    """
    POSTs JSON payloads to a collector endpoint.

    Config:
        endpoint_url: Collector URL (e.g., "http://collector:8050/logs")
        timeout_seconds: Client-side timeout for a normal send
        headers: Additional request headers
        best_effort_timeout_seconds: Timeout for the shutdown send
    """
    endpoint_url: str
    timeout_seconds: float = 8.0
    headers: dict[str, str] = field(default_factory=dict)
    best_effort_timeout_seconds: float = 1.0

    # Optional httpx transport (e.g. httpx.MockTransport in tests)
    http_transport: Any = None

    _client: httpx.AsyncClient | None = field(default=None, init=False)

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=self.timeout_seconds,
            headers={"Content-Type": "application/json", **self.headers},
            transport=self.http_transport,
        )
        logger.info(f"HTTP transport started for {self.endpoint_url}")

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("HTTP transport stopped")

    async def send(self, payload: bytes) -> bool:
        if self._client is None:
            await self.start()

        try:
            response = await self._client.post(self.endpoint_url, content=payload)
        except httpx.TimeoutException as e:
            raise TransportTimeout(f"Timed out posting to {self.endpoint_url}") from e
        except httpx.TransportError as e:
            raise TransportUnreachable(f"Cannot reach {self.endpoint_url}: {e}") from e

        if 200 <= response.status_code < 300:
            return True

        logger.warning(f"Collector rejected batch: HTTP {response.status_code}")
        return False

    @property
    def supports_best_effort(self) -> bool:
        return True

    async def send_best_effort(self, payload: bytes) -> None:
        if self._client is None:
            await self.start()

        try:
            await self._client.post(
                self.endpoint_url,
                content=payload,
                timeout=self.best_effort_timeout_seconds,
            )
        except httpx.HTTPError as e:
            logger.debug(f"Best-effort send to {self.endpoint_url} not confirmed: {e}")

    async def health_check(self) -> bool:
        return self._client is not None
