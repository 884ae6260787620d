"""Streaming chat-completion client for OpenAI-compatible APIs."""

from basilisk_stream.backoff import compute_delay_ms, with_exponential_backoff
from basilisk_stream.client import StreamClient, create_client
from basilisk_stream.config import BackoffSpec, ClientConfig, load_config
from basilisk_stream.exceptions import (
    BasiliskError,
    FrameParseError,
    StreamUnavailableError,
    TransportError,
)
from basilisk_stream.transformer import (
    JSON_LINE_SEPARATOR,
    ChunkTransformer,
    RecordDecoder,
    decode_records,
    modify_chunk,
)
from basilisk_stream.types import StreamRecord

__all__ = [
    "BackoffSpec",
    "BasiliskError",
    "ChunkTransformer",
    "ClientConfig",
    "FrameParseError",
    "JSON_LINE_SEPARATOR",
    "RecordDecoder",
    "StreamClient",
    "StreamRecord",
    "StreamUnavailableError",
    "TransportError",
    "compute_delay_ms",
    "create_client",
    "decode_records",
    "load_config",
    "modify_chunk",
    "with_exponential_backoff",
]
