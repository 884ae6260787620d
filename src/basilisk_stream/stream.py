"""Stream orchestration: request, transform, and consume a completion stream.

Consumption follows a small state machine::

    READING -> DECODE -> ACCUMULATE -> (finished? STOP : READING)

with ``ENDED`` as the second terminal state when the transport closes
without ever sending a finished record.  Both terminals return the text
accumulated so far; callers cannot tell them apart from the return value.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable

from basilisk_stream.backoff import with_exponential_backoff
from basilisk_stream.config import ClientConfig
from basilisk_stream.exceptions import StreamUnavailableError, TransportError
from basilisk_stream.transformer import ChunkTransformer, RecordDecoder
from basilisk_stream.transport import Transport
from basilisk_stream.types import ChatMessage, StreamRecord

_logger = logging.getLogger(__name__)

DataHandler = Callable[[str], Any]
EndHandler = Callable[[], Any]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

def build_request_body(
    config: ClientConfig,
    messages: list[ChatMessage],
) -> dict[str, Any]:
    return {
        "model": config.model,
        "messages": messages,
        "n": config.n,
        "temperature": config.temperature,
        "stream": True,
    }


async def _get_api_stream(
    transport: Transport,
    config: ClientConfig,
    messages: list[ChatMessage],
) -> AsyncIterator[bytes]:
    body = build_request_body(config, messages)

    async def _request() -> AsyncIterator[bytes]:
        return await transport.issue_streaming_completion_request(
            body, timeout_ms=config.request_timeout_ms,
        )

    try:
        return await with_exponential_backoff(_request, config.backoff)
    except TransportError as e:
        _logger.error("Error generating response: %s", e.upstream_message)
        raise StreamUnavailableError(
            f"Error getting response from OpenAI: {e.upstream_message}",
        ) from e
    except Exception as e:
        _logger.exception("Unexpected error requesting completion stream")
        raise StreamUnavailableError(
            f"Error getting response from OpenAI: {e}",
        ) from e


async def get_response_stream(
    transport: Transport,
    config: ClientConfig,
    messages: list[ChatMessage],
) -> AsyncIterator[bytes]:
    """Request a completion and return the framed record byte stream.

    Raises ``StreamUnavailableError`` when no stream could be obtained.
    """
    raw = await _get_api_stream(transport, config, messages)
    return ChunkTransformer().pipe(raw)


async def _records(
    transformer: ChunkTransformer,
    raw: AsyncIterable[bytes],
) -> AsyncIterator[StreamRecord]:
    decoder = RecordDecoder()
    stream = transformer.pipe(raw)
    try:
        async for framed in stream:
            for record in decoder.feed(framed):
                yield record
        for record in decoder.flush():
            yield record
    finally:
        await stream.aclose()


async def get_record_stream(
    transport: Transport,
    config: ClientConfig,
    messages: list[ChatMessage],
) -> AsyncIterator[StreamRecord]:
    """Like ``get_response_stream`` but yields ``StreamRecord`` objects."""
    raw = await _get_api_stream(transport, config, messages)
    return _records(ChunkTransformer(), raw)


# ---------------------------------------------------------------------------
# Consumption
# ---------------------------------------------------------------------------

async def stream_chat_response(
    response_stream: AsyncIterable[bytes],
    on_data: DataHandler | None = None,
    on_end: EndHandler | None = None,
) -> str:
    """Drain a framed record stream into one string.

    Stops at the first finished record, or when the stream ends.
    """
    response = ""
    decoder = RecordDecoder()

    try:
        async for chunk in response_stream:
            for record in decoder.feed(chunk):
                if on_data is not None:
                    on_data(record.data)
                response += record.data
                if record.finished:
                    if on_end is not None:
                        on_end()
                    return response

        for record in decoder.flush():
            if on_data is not None:
                on_data(record.data)
            response += record.data
    finally:
        aclose = getattr(response_stream, "aclose", None)
        if aclose is not None:
            await aclose()

    _logger.debug("Stream ended without a finish signal")
    if on_end is not None:
        on_end()
    return response


async def stream_single_response(
    transport: Transport,
    config: ClientConfig,
    messages: list[ChatMessage],
    on_data: DataHandler | None = None,
    on_end: EndHandler | None = None,
) -> str:
    """Request a completion and return the full response text."""
    response_stream = await get_response_stream(transport, config, messages)
    return await stream_chat_response(
        response_stream, on_data=on_data, on_end=on_end,
    )
