"""
Network grading and share-text helpers.

Maps a finished run to a letter grade with streaming / gaming tiers.
Consumers call this; the engine never does.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class NetworkGrade:
    grade: str
    color: str
    label: str
    streaming: str
    gaming: str

    def to_dict(self) -> dict:
        return {
            "grade": self.grade,
            "color": self.color,
            "label": self.label,
            "streaming": self.streaming,
            "gaming": self.gaming,
        }


# ---------------------------------------------------------------------------
# Grading
# ---------------------------------------------------------------------------

# (download above, ping below, grade)
_THRESHOLDS: List[Tuple[float, float, NetworkGrade]] = [
    (300.0, 20.0, NetworkGrade("A+", "#10b981", "Elite", "8K HDR", "Pro Level")),
    (100.0, 40.0, NetworkGrade("A", "#22d3ee", "Excellent", "4K UHD", "Great")),
    (50.0, 60.0, NetworkGrade("B", "#818cf8", "Good", "4K/1080p", "Casual")),
    (25.0, float("inf"), NetworkGrade("C", "#f59e0b", "Average", "1080p", "Playable")),
]

_FALLBACK = NetworkGrade("D", "#ef4444", "Basic", "720p", "Laggy")


def grade_network(download_mbps: float, ping_ms: float) -> NetworkGrade:
    """Grade a connection from its download speed and floor latency."""
    for min_download, max_ping, grade in _THRESHOLDS:
        if download_mbps > min_download and ping_ms < max_ping:
            return grade
    return _FALLBACK


# ---------------------------------------------------------------------------
# Share result
# ---------------------------------------------------------------------------

def format_share_text(
    ping_ms: float,
    jitter_ms: float,
    download_mbps: float,
    upload_mbps: float,
    server_name: str,
) -> str:
    """Generate a plain-text shareable result block."""
    grade = grade_network(download_mbps, ping_ms)
    lines = [
        "Speed Test Results",
        f"Server: {server_name}",
        f"Ping: {ping_ms:.1f} ms (jitter: {jitter_ms:.2f} ms)",
        f"Download: {download_mbps:.2f} Mbps",
        f"Upload: {upload_mbps:.2f} Mbps",
        f"Grade: {grade.grade} ({grade.label})",
    ]
    return "\n".join(lines)
