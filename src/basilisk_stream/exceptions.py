"""Exception hierarchy for basilisk-stream.

Only ``StreamUnavailableError`` (and ``TransportError`` for callers that use
the transport directly) ever reach user code.  ``FrameParseError`` is raised
and absorbed inside the chunk transformer.
"""

from __future__ import annotations

from typing import Any


class BasiliskError(Exception):
    """Base class for all basilisk-stream errors."""


class TransportError(BasiliskError):
    """The completion request itself failed (network, timeout, HTTP status)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data or {}

    @property
    def upstream_message(self) -> str:
        """The ``error.message`` field of the upstream body, else ``str(self)``."""
        error = self.response_data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return str(self)


class StreamUnavailableError(BasiliskError):
    """No response stream could be obtained after exhausting retries."""


class FrameParseError(BasiliskError):
    """A single SSE ``data:`` line had an unexpected shape."""
