"""httpx transport for OpenAI-compatible streaming chat completions.

``issue_streaming_completion_request`` resolves once response headers have
arrived with a 2xx status, and hands back an async iterator over the raw
body bytes.  Any failure up to that point is raised as ``TransportError``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Protocol

import httpx

from basilisk_stream.exceptions import TransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the stream orchestrator needs from a transport."""

    async def issue_streaming_completion_request(
        self,
        request_body: dict[str, Any],
        timeout_ms: int,
    ) -> AsyncIterator[bytes]:
        ...


def _error_body(raw: bytes) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


async def _iter_body(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            if chunk:
                yield chunk
    finally:
        await response.aclose()


class HTTPXTransport:
    """Streams ``POST /chat/completions`` through an ``httpx.AsyncClient``."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        # Read timeout is disabled: once streaming starts no per-chunk limit applies
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(None, connect=30),
        )
        self._owns_client = client is None

    async def issue_streaming_completion_request(
        self,
        request_body: dict[str, Any],
        timeout_ms: int,
    ) -> AsyncIterator[bytes]:
        request = self._client.build_request(
            "POST", "/chat/completions", json=request_body,
        )
        try:
            response = await asyncio.wait_for(
                self._client.send(request, stream=True),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Timed out after {timeout_ms}ms waiting for response",
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}") from e

        if response.is_error:
            try:
                raw = await response.aread()
            finally:
                await response.aclose()
            body = _error_body(raw)
            _logger.debug(
                "Completion request returned %d: %s",
                response.status_code, raw[:500],
            )
            raise TransportError(
                f"Request failed with status code {response.status_code}",
                status_code=response.status_code,
                response_data=body,
            )

        return _iter_body(response)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
