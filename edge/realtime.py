"""Best-effort realtime broadcast.

Messages are posted to the realtime broadcast endpoint. Nothing here retries
or orders deliveries: a failed send is logged and dropped.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from baseplate.config import settings

logger = logging.getLogger(__name__)


class RealtimeBroadcaster:
    """Send events to topic subscribers.

    Args:
        url: Broadcast endpoint
        api_key: Credential for the endpoint
        http_client: Pre-built client (tests pass one with a mock transport)
        enabled: When False every send is a logged no-op
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.url = url or settings.realtime.broadcast_url
        self.api_key = api_key if api_key is not None else settings.realtime.api_key
        self.enabled = settings.realtime.enabled if enabled is None else enabled
        self._client = http_client or httpx.AsyncClient(timeout=settings.realtime.timeout_seconds)
        self._pending: set[asyncio.Task] = set()

    async def send(self, topic: str, event: str, payload: dict[str, Any]) -> bool:
        """Broadcast ``event`` on ``topic``. Returns False when the send failed."""
        if not self.enabled:
            logger.debug(f"Realtime disabled, dropping {event} on {topic}")
            return False

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = {"messages": [{"topic": topic, "event": event, "payload": payload}]}

        try:
            response = await self._client.post(self.url, json=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Broadcast {event} on {topic} failed: {e}")
            return False
        return True

    def schedule(self, delay: float, work: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """Run ``work`` after ``delay`` seconds on the running loop.

        Exceptions from ``work`` are logged, never raised.
        """

        async def _deferred() -> None:
            await asyncio.sleep(delay)
            try:
                await work()
            except Exception as e:
                logger.error(f"Deferred broadcast failed: {e}", exc_info=True)

        task = asyncio.get_running_loop().create_task(_deferred())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled broadcast to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        await self._client.aclose()
