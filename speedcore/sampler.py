"""
Shared machinery for the download and upload throughput phases.

A phase runs ``config.workers`` worker tasks plus one ``ProgressClock``
for a fixed wall-clock window.  Workers add to a single ``ByteCounter``;
the final figure is total bits over total elapsed time, never an
average of the live samples.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .cancel import CancellationToken
from .clock import ProgressCallback, ProgressClock, Sample
from .config import EngineConfig
from .errors import Aborted
from .stats import calculate_throughput

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared counter
# ---------------------------------------------------------------------------

class ByteCounter:
    """Bytes moved so far in the current phase.

    The lock is held for the increment only, never across a network call.
    """

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def add(self, n: int) -> None:
        with self._lock:
            self._value += n

    @property
    def value(self) -> int:
        return self._value


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class ThroughputResult:
    """Download or upload phase result."""

    mbps: float = 0.0
    bytes_total: int = 0
    duration_ms: float = 0.0
    samples: List[Sample] = field(default_factory=list)

    def calculate(self) -> None:
        """Derive speed from total bytes and wall-clock duration."""
        self.mbps = calculate_throughput(self.bytes_total, self.duration_ms / 1000)

    def to_dict(self) -> dict:
        return {
            "mbps": round(self.mbps, 2),
            "bytes_total": self.bytes_total,
            "duration_ms": round(self.duration_ms, 2),
            "samples": [s.to_dict() for s in self.samples],
        }


# ---------------------------------------------------------------------------
# Sampler
# ---------------------------------------------------------------------------

class ThroughputSampler:
    """Base class; subclasses implement ``_worker``."""

    direction = "transfer"

    def __init__(
        self,
        transport,
        token: CancellationToken,
        config: Optional[EngineConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self._transport = transport
        self._token = token
        self.config = config or EngineConfig()
        self.on_progress = on_progress

    @property
    def default_window(self) -> float:
        raise NotImplementedError

    async def run(self, window: Optional[float] = None) -> ThroughputResult:
        """Measure for *window* seconds; raises ``Aborted`` on cancellation."""
        if window is None:
            window = self.default_window
        self._token.raise_if_cancelled()

        counter = ByteCounter()
        start = time.perf_counter()
        deadline = start + window
        clock = ProgressClock(
            counter,
            self._token,
            window,
            self.config.tick_interval,
            self.on_progress,
            start=start,
        )

        logger.info(
            "%s phase started: %d workers, %.1f s window",
            self.direction.capitalize(), self.config.workers, window,
        )

        workers = [
            asyncio.create_task(self._worker(i, counter, deadline))
            for i in range(self.config.workers)
        ]
        clock_task = asyncio.create_task(clock.run())

        try:
            await self._token.wait(max(deadline - time.perf_counter(), 0.0))
        finally:
            await self._stop(workers, clock_task)

        result = ThroughputResult(
            bytes_total=counter.value,
            duration_ms=(time.perf_counter() - start) * 1000,
            samples=list(clock.samples),
        )
        result.calculate()

        if self._token.cancelled:
            logger.info("%s phase aborted after %.0f ms", self.direction.capitalize(), result.duration_ms)
            raise Aborted(f"{self.direction} aborted", partial=result)

        if result.bytes_total == 0:
            logger.warning("%s phase moved no data", self.direction.capitalize())
        logger.info(
            "%s phase finished: %.2f Mbps (%d bytes in %.0f ms)",
            self.direction.capitalize(), result.mbps, result.bytes_total, result.duration_ms,
        )
        return result

    # -- Internals ----------------------------------------------------------

    def _should_stop(self, deadline: float) -> bool:
        return self._token.cancelled or time.perf_counter() >= deadline

    async def _backoff(self) -> bool:
        """Pause after a failed request.  Returns ``True`` if cancelled."""
        return await self._token.wait(self.config.retry_backoff)

    async def _stop(self, workers: List[asyncio.Task], clock_task: asyncio.Task) -> None:
        """Give workers a moment to finish their chunk, then cancel the rest."""
        _, pending = await asyncio.wait(workers, timeout=self.config.stop_grace)
        for task in pending:
            task.cancel()
        clock_task.cancel()

        await asyncio.gather(*workers, clock_task, return_exceptions=True)

        for task in [*workers, clock_task]:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _worker(self, worker_id: int, counter: ByteCounter, deadline: float) -> None:
        raise NotImplementedError
