"""Named function invocation over HTTP.

Functions are addressed by name and take/return JSON. Transport failures and
5xx responses are retried with exponential backoff; anything else is surfaced
as ``FunctionInvocationError``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from baseplate.config import settings

logger = logging.getLogger(__name__)


class FunctionInvocationError(Exception):
    """Raised when a function call fails or returns a non-2xx response."""

    def __init__(self, name: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message
        self.status_code = status_code


class _RetryableResponse(Exception):
    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _error_message(response: httpx.Response) -> str:
    """Pull ``error``/``message`` out of a JSON error body, falling back to the text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


class FunctionsClient:
    """Invoke externally hosted functions by name.

    Args:
        base_url: Functions gateway, ``/functions/v1/<name>`` is appended
        service_key: Bearer credential sent with every call
        http_client: Pre-built client (tests pass one with a mock transport)
        max_attempts: Total attempts for retryable failures
        backoff: Multiplier for the exponential wait between attempts
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        max_attempts: int | None = None,
        backoff: float = 1.0,
    ) -> None:
        self.base_url = (base_url or settings.functions.base_url).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.functions.service_key
        self.max_attempts = max_attempts or settings.functions.max_attempts
        self.backoff = backoff
        self._client = http_client or httpx.AsyncClient(timeout=settings.functions.timeout_seconds)
        self._background: set[asyncio.Task] = set()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.service_key:
            headers["Authorization"] = f"Bearer {self.service_key}"
            headers["apikey"] = self.service_key
        return headers

    async def _post(self, name: str, payload: dict[str, Any]) -> httpx.Response:
        response = await self._client.post(
            f"{self.base_url}/functions/v1/{name}",
            json=payload,
            headers=self._headers(),
        )
        if response.status_code >= 500:
            raise _RetryableResponse(response)
        return response

    async def invoke(self, name: str, payload: dict[str, Any]) -> Any:
        """Call function ``name`` with ``payload`` and return its decoded JSON body.

        Raises:
            FunctionInvocationError: Non-2xx response, undecodable body, or
                retries exhausted
        """
        logger.debug(f"Invoking function {name}")
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.backoff, min=0, max=10),
                retry=retry_if_exception_type((httpx.TransportError, _RetryableResponse)),
                reraise=True,
            ):
                with attempt:
                    response = await self._post(name, payload)
        except _RetryableResponse as e:
            logger.error(f"Function {name} failed after {self.max_attempts} attempts: HTTP {e.response.status_code}")
            raise FunctionInvocationError(name, _error_message(e.response), e.response.status_code) from e
        except httpx.TransportError as e:
            logger.error(f"Function {name} unreachable: {e}")
            raise FunctionInvocationError(name, f"Transport error: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"Function {name} returned {response.status_code}: {message}")
            raise FunctionInvocationError(name, message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise FunctionInvocationError(name, "Response is not valid JSON", response.status_code) from e

    def fire_and_forget(self, name: str, payload: dict[str, Any]) -> asyncio.Task:
        """Schedule an invocation without awaiting it; failures are only logged."""

        async def _run() -> None:
            try:
                await self.invoke(name, payload)
            except FunctionInvocationError as e:
                logger.error(f"Background invocation of {name} failed: {e.message}")

        task = asyncio.get_running_loop().create_task(_run())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def aclose(self) -> None:
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self._client.aclose()
