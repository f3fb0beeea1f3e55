"""
Engine tunables and user configuration file support.

Reads/writes ``~/.edgespeed/config.json``.  Every key is optional; missing
keys fall back to the defaults in ``speedcore.constants``.

Supported keys::

    base_url = "https://speed.cloudflare.com"
    ping_count = 8
    ping_pause = 0.1           # seconds between latency trips
    workers = 4                # concurrent transfers per phase
    download_window = 8.0
    upload_window = 10.0
    download_bytes = 25000000  # bytes requested per download
    upload_bytes = 1048576     # payload size per upload
    chunk_size = 65536
    request_timeout = 2.0
    retry_backoff = 0.2
    tick_interval = 0.0167
    stop_grace = 0.25
"""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import (
    BASE_URL,
    CHUNK_SIZE,
    DEFAULT_DOWNLOAD_WINDOW,
    DEFAULT_PING_COUNT,
    DEFAULT_UPLOAD_WINDOW,
    DEFAULT_WORKERS,
    DOWNLOAD_BYTES,
    MAX_PING_COUNT,
    MAX_WINDOW,
    MAX_WORKERS,
    MIN_PING_COUNT,
    MIN_WINDOW,
    MIN_WORKERS,
    PING_PAUSE,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF,
    STOP_GRACE,
    TICK_INTERVAL,
    UPLOAD_BYTES,
)

_CONFIG_DIR = os.path.join(Path.home(), ".edgespeed")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Engine configuration
# ---------------------------------------------------------------------------

@dataclass
class EngineConfig:
    """Every tunable the engine reads.  Times are in seconds."""

    base_url: str = BASE_URL
    ping_count: int = DEFAULT_PING_COUNT
    ping_pause: float = PING_PAUSE
    workers: int = DEFAULT_WORKERS
    download_window: float = DEFAULT_DOWNLOAD_WINDOW
    upload_window: float = DEFAULT_UPLOAD_WINDOW
    download_bytes: int = DOWNLOAD_BYTES
    upload_bytes: int = UPLOAD_BYTES
    chunk_size: int = CHUNK_SIZE
    request_timeout: float = REQUEST_TIMEOUT
    retry_backoff: float = RETRY_BACKOFF
    tick_interval: float = TICK_INTERVAL
    stop_grace: float = STOP_GRACE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EngineConfig:
        """Build from a config dict, ignoring unknown and ``None`` keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """Raise ``ValueError`` if any value is out of range."""
        if not MIN_PING_COUNT <= self.ping_count <= MAX_PING_COUNT:
            raise ValueError(f"Ping count must be between {MIN_PING_COUNT} and {MAX_PING_COUNT}")
        if not MIN_WORKERS <= self.workers <= MAX_WORKERS:
            raise ValueError(f"Workers must be between {MIN_WORKERS} and {MAX_WORKERS}")
        for name in ("download_window", "upload_window"):
            value = getattr(self, name)
            if not MIN_WINDOW <= value <= MAX_WINDOW:
                label = name.replace("_", " ").capitalize()
                raise ValueError(f"{label} must be between {MIN_WINDOW} and {MAX_WINDOW} s")
        for name in ("download_bytes", "upload_bytes", "chunk_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("request_timeout", "tick_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("ping_pause", "retry_backoff", "stop_grace"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


DEFAULTS: Dict[str, Any] = EngineConfig().to_dict()


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, IOError):
        pass  # corrupt file; use defaults

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path


def get_config_value(key: str) -> Any:
    """Get a single config value."""
    return load_config().get(key, DEFAULTS.get(key))


def set_config_value(key: str, value: Any) -> str:
    """Set a single config value and persist.  Returns file path."""
    config = load_config()
    config[key] = value
    return save_config(config)


def load_engine_config(overrides: Optional[Dict[str, Any]] = None) -> EngineConfig:
    """Config file values, then *overrides*, layered over the defaults."""
    data = load_config()
    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return EngineConfig.from_dict(data)


def config_path() -> str:
    """Return the config file path (for display purposes)."""
    return _config_path()
