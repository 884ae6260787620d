"""Public client wrapping the stream orchestrator around one transport."""

from __future__ import annotations

from dataclasses import replace
from typing import AsyncIterator

from basilisk_stream import stream
from basilisk_stream.config import ClientConfig
from basilisk_stream.transport import HTTPXTransport, Transport
from basilisk_stream.types import ChatMessage, StreamRecord


class StreamClient:
    """Streams chat completions from an OpenAI-compatible API.

    Usage::

        async with create_client(api_key) as client:
            text = await client.stream_single_response(
                [{"role": "user", "content": "Hi"}],
            )
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: Transport | None = None,
    ) -> None:
        self.config = config
        self._owns_transport = transport is None
        self.transport: Transport = transport or HTTPXTransport(
            api_key=config.api_key, base_url=config.base_url,
        )

    async def get_response_stream(
        self, messages: list[ChatMessage],
    ) -> AsyncIterator[bytes]:
        return await stream.get_response_stream(
            self.transport, self.config, messages,
        )

    async def get_record_stream(
        self, messages: list[ChatMessage],
    ) -> AsyncIterator[StreamRecord]:
        return await stream.get_record_stream(
            self.transport, self.config, messages,
        )

    async def stream_single_response(
        self,
        messages: list[ChatMessage],
        on_data: stream.DataHandler | None = None,
        on_end: stream.EndHandler | None = None,
    ) -> str:
        return await stream.stream_single_response(
            self.transport, self.config, messages,
            on_data=on_data, on_end=on_end,
        )

    async def close(self) -> None:
        """Close the default transport; injected transports are left alone."""
        if self._owns_transport and isinstance(self.transport, HTTPXTransport):
            await self.transport.close()

    async def __aenter__(self) -> StreamClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_client(
    api_key: str,
    config: ClientConfig | None = None,
) -> StreamClient:
    """Build a ``StreamClient`` for *api_key*, optionally with a custom config."""
    # Copy so clients built from one config never share mutable state
    config = config or ClientConfig()
    config = replace(config, api_key=api_key, backoff=replace(config.backoff))
    return StreamClient(config)
