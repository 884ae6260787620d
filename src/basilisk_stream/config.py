"""Configuration for basilisk-stream.

Config discovery (first match wins):
  1. explicit ``path`` argument
  2. ``./basilisk.yaml``
  3. ``~/.config/basilisk/config.yaml``
  4. Built-in defaults

Example::

    api_key: sk-...
    model: gpt-4-1106-preview
    request_timeout_ms: 2000
    backoff:
      max_retries: 3
      initial_retry_delay_ms: 1000
      max_jitter_ms: 1000
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4-1106-preview"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_REQUEST_TIMEOUT_MS = 2000

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_RETRY_DELAY_MS = 1000
DEFAULT_MAX_JITTER_MS = 1000


# ---------------------------------------------------------------------------
# Config data structures
# ---------------------------------------------------------------------------

@dataclass
class BackoffSpec:
    """Retry budget and timing for the exponential backoff executor."""

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_retry_delay_ms: int = DEFAULT_INITIAL_RETRY_DELAY_MS
    max_jitter_ms: int = DEFAULT_MAX_JITTER_MS


@dataclass
class ClientConfig:
    """Everything a ``StreamClient`` needs, fixed at construction time."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    # Response-start timeout only; streaming itself has no per-chunk timeout
    request_timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS
    n: int = 1
    temperature: float = 1
    backoff: BackoffSpec = field(default_factory=BackoffSpec)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./basilisk.yaml"),
    Path.home() / ".config" / "basilisk" / "config.yaml",
]


def _parse_backoff(raw: dict[str, Any] | None) -> BackoffSpec:
    if not raw:
        return BackoffSpec()
    return BackoffSpec(
        max_retries=raw.get("max_retries", DEFAULT_MAX_RETRIES),
        initial_retry_delay_ms=raw.get(
            "initial_retry_delay_ms", DEFAULT_INITIAL_RETRY_DELAY_MS,
        ),
        max_jitter_ms=raw.get("max_jitter_ms", DEFAULT_MAX_JITTER_MS),
    )


def _with_env_key(config: ClientConfig) -> ClientConfig:
    if not config.api_key:
        config.api_key = os.environ.get("OPENAI_API_KEY", "")
    return config


def load_config(path: str | Path | None = None) -> ClientConfig:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.

    Returns
    -------
    ClientConfig
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            return _with_env_key(ClientConfig())
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        _logger.info("No config file found, using defaults")
        return _with_env_key(ClientConfig())

    _logger.info("Loading config from %s", config_path)
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return _with_env_key(ClientConfig(
        api_key=raw.get("api_key", ""),
        base_url=raw.get("base_url", DEFAULT_BASE_URL),
        model=raw.get("model", DEFAULT_MODEL),
        request_timeout_ms=raw.get("request_timeout_ms", DEFAULT_REQUEST_TIMEOUT_MS),
        n=raw.get("n", 1),
        temperature=raw.get("temperature", 1),
        backoff=_parse_backoff(raw.get("backoff")),
    ))
