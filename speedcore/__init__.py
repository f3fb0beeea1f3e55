"""Network measurement engine -- latency, jitter, download and upload."""

from .cancel import CancellationToken
from .clock import ProgressCallback, ProgressClock, Sample
from .config import EngineConfig, load_engine_config
from .download import DownloadSampler
from .engine import EngineState, SpeedTestEngine, SpeedTestResult
from .errors import (
    Aborted,
    InvalidStateError,
    NetworkUnavailable,
    SpeedTestError,
    TransferFailed,
)
from .grading import NetworkGrade, grade_network
from .latency import LatencyProber, LatencyResult
from .sampler import ByteCounter, ThroughputResult, ThroughputSampler
from .stats import (
    calculate_jitter,
    calculate_min_latency,
    calculate_percentile,
    calculate_throughput,
    format_latency,
    format_speed,
)
from .transport import HttpTransport
from .upload import UploadSampler

__all__ = [
    "Aborted",
    "ByteCounter",
    "CancellationToken",
    "DownloadSampler",
    "EngineConfig",
    "EngineState",
    "HttpTransport",
    "InvalidStateError",
    "LatencyProber",
    "LatencyResult",
    "NetworkGrade",
    "NetworkUnavailable",
    "ProgressCallback",
    "ProgressClock",
    "Sample",
    "SpeedTestEngine",
    "SpeedTestError",
    "SpeedTestResult",
    "ThroughputResult",
    "ThroughputSampler",
    "TransferFailed",
    "UploadSampler",
    "calculate_jitter",
    "calculate_min_latency",
    "calculate_percentile",
    "calculate_throughput",
    "format_latency",
    "format_speed",
    "grade_network",
    "load_engine_config",
]
