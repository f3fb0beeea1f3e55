"""
Output formatting -- JSON result and plain text.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from speedcore.stats import calculate_percentile


def create_result_json(
    server_info: Dict[str, Any],
    latency_results: Dict[str, Any],
    download_results: Dict[str, Any],
    upload_results: Dict[str, Any],
    grade: Dict[str, Any],
) -> Dict[str, Any]:
    """Build a single JSON-serialisable dict describing a whole run."""
    pings: List[float] = latency_results.get("samples", [])
    n = len(pings)

    if pings:
        rtt_min, rtt_max = min(pings), max(pings)
        rtt_mean = sum(pings) / n
        rtt_median = calculate_percentile(pings, 50)
    else:
        rtt_min = rtt_max = rtt_mean = rtt_median = 0

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "server": server_info,
        "ping": latency_results.get("min_latency_ms", 0),
        "jitter": latency_results.get("jitter_ms", 0),
        "latency": {
            "protocol": "https",
            "rtt": {
                "min": rtt_min,
                "max": rtt_max,
                "mean": rtt_mean,
                "median": rtt_median,
            },
            "count": n,
            "attempts": latency_results.get("attempts", n),
            "samples": pings,
        },
        "download": {
            "speed_mbps": download_results.get("mbps", 0),
            "bytes": download_results.get("bytes_total", 0),
            "duration_ms": download_results.get("duration_ms", 0),
            "samples": download_results.get("samples", []),
        },
        "upload": {
            "speed_mbps": upload_results.get("mbps", 0),
            "bytes": upload_results.get("bytes_total", 0),
            "duration_ms": upload_results.get("duration_ms", 0),
            "samples": upload_results.get("samples", []),
        },
        "grade": grade,
    }


# ---------------------------------------------------------------------------
# Plain-text helpers
# ---------------------------------------------------------------------------

def format_text_result(
    ping_ms: float,
    jitter_ms: float,
    download_mbps: float,
    upload_mbps: float,
    server_name: str,
    grade: str,
) -> str:
    sep = "=" * 50
    mid = "-" * 50
    return (
        f"{sep}\n"
        f"Speed Test Results\n"
        f"{sep}\n"
        f"Server: {server_name}\n"
        f"{mid}\n"
        f"Ping: {ping_ms:.1f} ms (jitter: {jitter_ms:.2f} ms)\n"
        f"Download: {download_mbps:.2f} Mbps\n"
        f"Upload: {upload_mbps:.2f} Mbps\n"
        f"Grade: {grade}\n"
        f"{sep}"
    )
