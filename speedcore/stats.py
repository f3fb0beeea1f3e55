"""
Network measurement statistics.

Pure functions -- no I/O, no side effects.  Everything here is
deterministic and easy to unit-test.
"""
from __future__ import annotations

import math
import statistics
from typing import Sequence


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def calculate_jitter(samples: Sequence[float]) -> float:
    """Population standard deviation of *samples* around their mean.

    Fewer than two samples have no spread, so the jitter is 0.
    """
    if len(samples) < 2:
        return 0.0
    return statistics.pstdev(samples)


def calculate_min_latency(samples: Sequence[float]) -> float:
    """Floor latency of the path: the fastest successful round trip."""
    if not samples:
        return 0.0
    return min(samples)


def calculate_throughput(bytes_total: int, elapsed_seconds: float) -> float:
    """Average rate in Mbps over a whole window, from wall-clock totals."""
    if elapsed_seconds <= 0 or bytes_total <= 0:
        return 0.0
    return (bytes_total * 8) / elapsed_seconds / 1_000_000


def calculate_percentile(samples: Sequence[float], percentile: float) -> float:
    """Linear-interpolation percentile."""
    if not samples:
        return 0.0

    ordered = sorted(samples)
    n = len(ordered)
    idx = (percentile / 100) * (n - 1)
    lower = int(math.floor(idx))
    upper = min(lower + 1, n - 1)
    weight = idx - lower
    return ordered[lower] * (1 - weight) + ordered[upper] * weight


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.2f} Mbps"


def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.1f} ms"
