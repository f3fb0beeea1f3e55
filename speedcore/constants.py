"""
Shared constants used across all engine modules.

Centralises endpoints, default headers, and tunables so they live in
exactly one place.  Every tunable here is only a default; see
``speedcore.config.EngineConfig`` for the values actually used.
"""

# ---------------------------------------------------------------------------
# HTTP headers (kept minimal so the sink never needs a preflight)
# ---------------------------------------------------------------------------

USER_AGENT = "edgespeed/1.0"

UPLOAD_CONTENT_TYPE = "text/plain"

# ---------------------------------------------------------------------------
# Sink service endpoints
# ---------------------------------------------------------------------------

BASE_URL = "https://speed.cloudflare.com"
DOWNLOAD_PATH = "/__down"
UPLOAD_PATH = "/__up"

# ---------------------------------------------------------------------------
# Worker limits
# ---------------------------------------------------------------------------

MIN_WORKERS = 1
MAX_WORKERS = 32
DEFAULT_WORKERS = 4

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_PING_COUNT = 8
MIN_PING_COUNT = 1
MAX_PING_COUNT = 100
PING_PAUSE = 0.1                 # seconds between latency trips

DEFAULT_DOWNLOAD_WINDOW = 8.0    # seconds
DEFAULT_UPLOAD_WINDOW = 10.0     # seconds
MIN_WINDOW = 1.0
MAX_WINDOW = 300.0

TICK_INTERVAL = 1 / 60           # progress clock cadence (~16 ms)
REQUEST_TIMEOUT = 2.0            # per-request connect / read timeout
RETRY_BACKOFF = 0.2              # pause after a failed transfer
STOP_GRACE = 0.25                # time workers get to finish a chunk at stop

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

CHUNK_SIZE = 64 * 1024            # read granularity for download streams
DOWNLOAD_BYTES = 25_000_000       # 25 MB per download request
UPLOAD_BYTES = 1024 * 1024        # 1 MiB payload, built once per phase
