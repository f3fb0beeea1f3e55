"""
Engine facade: latency probe, download phase, upload phase, abort.

The caller drives the sequence one operation at a time::

    async with SpeedTestEngine(on_progress) as engine:
        latency = await engine.probe_latency()
        download = await engine.measure_download()
        upload = await engine.measure_upload()

State machine::

    IDLE -> PROBING_LATENCY -> MEASURING_DOWNLOAD -> MEASURING_UPLOAD -> COMPLETE
      any non-terminal state --abort()--> ABORTED
      any running phase --error other than Aborted--> FAILED
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .cancel import CancellationToken
from .clock import ProgressCallback
from .config import EngineConfig
from .download import DownloadSampler
from .errors import Aborted, InvalidStateError
from .latency import LatencyProber, LatencyResult
from .sampler import ThroughputResult
from .transport import HttpTransport
from .upload import UploadSampler

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EngineState(str, enum.Enum):
    IDLE = "idle"
    PROBING_LATENCY = "probing_latency"
    MEASURING_DOWNLOAD = "measuring_download"
    MEASURING_UPLOAD = "measuring_upload"
    COMPLETE = "complete"
    ABORTED = "aborted"
    FAILED = "failed"


_TERMINAL = frozenset({EngineState.COMPLETE, EngineState.ABORTED, EngineState.FAILED})

# Phase -> the state the engine must be in to start it.
_PREDECESSOR = {
    EngineState.PROBING_LATENCY: EngineState.IDLE,
    EngineState.MEASURING_DOWNLOAD: EngineState.PROBING_LATENCY,
    EngineState.MEASURING_UPLOAD: EngineState.MEASURING_DOWNLOAD,
}


@dataclass
class SpeedTestResult:
    """Summary of a completed run."""

    download_mbps: float
    upload_mbps: float
    ping_ms: float
    jitter_ms: float
    timestamp: float

    def to_dict(self) -> dict:
        return {
            "download_mbps": round(self.download_mbps, 2),
            "upload_mbps": round(self.upload_mbps, 2),
            "ping_ms": round(self.ping_ms, 1),
            "jitter_ms": round(self.jitter_ms, 3),
            "timestamp": self.timestamp,
        }


class SpeedTestEngine:
    """Runs the three measurement phases and owns the cancellation token."""

    def __init__(
        self,
        on_progress: Optional[ProgressCallback] = None,
        config: Optional[EngineConfig] = None,
        transport=None,
    ) -> None:
        self.config = config or EngineConfig()
        self.on_progress = on_progress
        self._transport = transport if transport is not None else HttpTransport(self.config)
        self._token = CancellationToken()
        self._lock = threading.Lock()
        self._state = EngineState.IDLE
        self._busy = False

        self.latency: Optional[LatencyResult] = None
        self.download: Optional[ThroughputResult] = None
        self.upload: Optional[ThroughputResult] = None
        self._completed_at: Optional[float] = None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> SpeedTestEngine:
        await self._transport.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self.state not in _TERMINAL:
            self.abort()
        await self._transport.close()

    # -- State --------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def cancelled(self) -> bool:
        return self._token.cancelled

    def abort(self) -> None:
        """Stop the current phase and refuse any further work.

        Safe to call repeatedly and from any thread.
        """
        if self._token.cancel():
            logger.info("Abort requested during %s", self._state.value)
        with self._lock:
            if self._state not in _TERMINAL:
                self._state = EngineState.ABORTED

    # -- Operations ---------------------------------------------------------

    async def probe_latency(self) -> LatencyResult:
        prober = LatencyProber(self._transport, self._token, self.config, self.on_progress)
        self.latency = await self._run(EngineState.PROBING_LATENCY, prober.probe)
        return self.latency

    async def measure_download(self, window: Optional[float] = None) -> ThroughputResult:
        """Run the download phase for *window* seconds (config default if omitted)."""
        sampler = DownloadSampler(self._transport, self._token, self.config, self.on_progress)
        self.download = await self._run(
            EngineState.MEASURING_DOWNLOAD, lambda: sampler.run(window)
        )
        return self.download

    async def measure_upload(self, window: Optional[float] = None) -> ThroughputResult:
        """Run the upload phase for *window* seconds (config default if omitted)."""
        sampler = UploadSampler(self._transport, self._token, self.config, self.on_progress)
        self.upload = await self._run(
            EngineState.MEASURING_UPLOAD, lambda: sampler.run(window)
        )
        with self._lock:
            if self._state is EngineState.MEASURING_UPLOAD:
                self._state = EngineState.COMPLETE
                self._completed_at = time.time()
        return self.upload

    def result(self) -> SpeedTestResult:
        """Summary of the run; only available once every phase completed."""
        if self._state is not EngineState.COMPLETE:
            raise InvalidStateError(f"No result in state {self._state.value}")
        return SpeedTestResult(
            download_mbps=self.download.mbps,
            upload_mbps=self.upload.mbps,
            ping_ms=self.latency.min_latency_ms,
            jitter_ms=self.latency.jitter_ms,
            timestamp=self._completed_at,
        )

    # -- Internals ----------------------------------------------------------

    def _begin(self, phase: EngineState) -> None:
        with self._lock:
            if self._token.cancelled:
                raise Aborted()
            if self._busy:
                raise InvalidStateError(f"{self._state.value} is still running")
            if self._state is not _PREDECESSOR[phase]:
                raise InvalidStateError(
                    f"Cannot start {phase.value} from {self._state.value}"
                )
            self._state = phase
            self._busy = True

    async def _run(self, phase: EngineState, operation: Callable[[], Awaitable[T]]) -> T:
        self._begin(phase)
        try:
            return await operation()
        except Aborted:
            with self._lock:
                if self._state not in _TERMINAL:
                    self._state = EngineState.ABORTED
            raise
        except Exception:
            # NetworkUnavailable or anything unexpected
            logger.info("%s failed", phase.value)
            with self._lock:
                if self._state not in _TERMINAL:
                    self._state = EngineState.FAILED
            raise
        finally:
            with self._lock:
                self._busy = False
