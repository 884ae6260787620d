"""Shared data types for basilisk-stream."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any

# A chat message as sent to the completions endpoint:
# ``{"role": "user", "content": "..."}``
ChatMessage = dict[str, Any]


@dataclass(frozen=True)
class StreamRecord:
    """One normalized unit emitted per transport chunk.

    ``data`` is the token text found in the chunk (possibly empty);
    ``finished`` is true when the upstream signalled completion in it.
    """

    data: str = ""
    finished: bool = False

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> StreamRecord:
        payload = json.loads(raw)
        return cls(
            data=payload.get("data", ""),
            finished=bool(payload.get("finished", False)),
        )
