"""Chunk transformer: raw SSE byte chunks in, framed ``StreamRecord`` out.

Every transport chunk produces exactly one output chunk, the JSON-encoded
record followed by ``JSON_LINE_SEPARATOR``.  Lines that fail to parse are
logged and skipped; the transformer itself never raises on bad input.

The separator is not escaped.  If a model ever emits it verbatim the
consumer will mis-split that record.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, AsyncIterable, AsyncIterator, Iterator

from basilisk_stream.exceptions import FrameParseError
from basilisk_stream.types import StreamRecord

_logger = logging.getLogger(__name__)

DATA_CHUNK_HEADER = "data: "
DATA_CHUNK_TERMINATOR = "[DONE]"
STOP_FINISH_REASON = "stop"
JSON_LINE_SEPARATOR = "___BASILISK_JSON_LINE_SEPARATOR___"


# ---------------------------------------------------------------------------
# Per-chunk parsing
# ---------------------------------------------------------------------------

def _first_choice(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise FrameParseError(f"Expected a JSON object, got {type(payload).__name__}")
    choices = payload.get("choices")
    if not isinstance(choices, list):
        raise FrameParseError("Missing choices in API response")
    if not choices:
        raise FrameParseError("No choices returned from API")
    choice = choices[0]
    if not isinstance(choice, dict):
        raise FrameParseError("Malformed choice in API response")
    return choice


def parse_chunk_text(text: str) -> StreamRecord:
    """Collect content fragments and the stop flag from one chunk of SSE text."""
    tokens: list[str] = []
    finished = False

    for line in (raw.strip() for raw in text.strip().split("\n")):
        if not line.startswith(DATA_CHUNK_HEADER):
            continue
        data = line[len(DATA_CHUNK_HEADER):]
        if data == DATA_CHUNK_TERMINATOR:
            break
        try:
            choice = _first_choice(json.loads(data))
            delta = choice.get("delta") or {}
            if not isinstance(delta, dict):
                raise FrameParseError("Malformed delta in API response")
            content = delta.get("content")
            if content:
                tokens.append(str(content))
            if choice.get("finish_reason") == STOP_FINISH_REASON:
                finished = True
        # ValueError covers JSONDecodeError and the int-digit limit
        except (ValueError, RecursionError, FrameParseError) as e:
            _logger.warning("Skipping malformed stream line %r: %s", data[:200], e)

    return StreamRecord(data="".join(tokens), finished=finished)


def encode_record(record: StreamRecord) -> bytes:
    return f"{record.to_json()}{JSON_LINE_SEPARATOR}".encode()


def modify_chunk(chunk: bytes) -> bytes:
    """Transform one self-contained transport chunk into one framed record."""
    return encode_record(parse_chunk_text(chunk.decode("utf-8", errors="replace")))


class ChunkTransformer:
    """Streaming transform stage, one instance per response stream.

    Text decoding is incremental so a multi-byte character split across two
    transport chunks is decoded whole.  SSE lines are *not* buffered across
    chunks; each chunk is parsed on its own.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.chunks_seen = 0

    def transform(self, chunk: bytes) -> bytes:
        self.chunks_seen += 1
        return encode_record(parse_chunk_text(self._decoder.decode(chunk)))

    async def pipe(self, byte_stream: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
        """Yield one framed record per chunk of *byte_stream*, in order."""
        try:
            async for chunk in byte_stream:
                yield self.transform(chunk)
        finally:
            _logger.debug("Response stream closed after %d chunks", self.chunks_seen)
            aclose = getattr(byte_stream, "aclose", None)
            if aclose is not None:
                await aclose()


# ---------------------------------------------------------------------------
# Consumer side
# ---------------------------------------------------------------------------

def decode_records(text: str) -> list[StreamRecord]:
    """Split framed text on the separator and decode every non-empty piece."""
    return [
        StreamRecord.from_json(piece)
        for piece in text.split(JSON_LINE_SEPARATOR)
        if piece
    ]


class RecordDecoder:
    """Buffer framed byte chunks and yield complete ``StreamRecord``s.

    A trailing piece with no separator yet is held until the next ``feed``.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> Iterator[StreamRecord]:
        self._buffer += self._decoder.decode(chunk)
        *complete, self._buffer = self._buffer.split(JSON_LINE_SEPARATOR)
        for piece in complete:
            if piece:
                yield StreamRecord.from_json(piece)

    def flush(self) -> Iterator[StreamRecord]:
        """Decode whatever is left once the stream has ended."""
        rest = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if rest.strip():
            try:
                yield StreamRecord.from_json(rest)
            except json.JSONDecodeError:
                _logger.warning("Discarding incomplete trailing record: %r", rest)
