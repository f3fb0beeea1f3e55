"""
HTTP round-trip latency measurement.

Probe flow::

    1. GET  {base}/__down?bytes=0   (zero-byte body, cache-busted)
    2. Time the full round trip with ``time.perf_counter``.
    3. Pause briefly, then repeat for ``ping_count`` trips.

Failed trips are dropped, not scored.  The reported latency is the
fastest trip; jitter is the population standard deviation of every
successful trip.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .cancel import CancellationToken
from .clock import ProgressCallback
from .config import EngineConfig
from .errors import Aborted, NetworkUnavailable, TransferFailed
from .stats import calculate_jitter, calculate_min_latency

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class LatencyResult:
    """Aggregated latency data for one probe."""

    min_latency_ms: float = 0.0
    jitter_ms: float = 0.0
    samples: List[float] = field(default_factory=list)
    attempts: int = 0

    def calculate(self) -> None:
        """Derive min-latency and jitter from the successful trips."""
        self.min_latency_ms = calculate_min_latency(self.samples)
        self.jitter_ms = calculate_jitter(self.samples)

    @property
    def failed(self) -> int:
        return max(self.attempts - len(self.samples), 0)

    def to_dict(self) -> dict:
        return {
            "min_latency_ms": round(self.min_latency_ms, 1),
            "jitter_ms": round(self.jitter_ms, 3),
            "samples": [round(s, 1) for s in self.samples],
            "attempts": self.attempts,
            "failed": self.failed,
        }


# ---------------------------------------------------------------------------
# Prober
# ---------------------------------------------------------------------------

class LatencyProber:
    """Sequential zero-payload round trips against the sink."""

    def __init__(
        self,
        transport,
        token: CancellationToken,
        config: Optional[EngineConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._transport = transport
        self._token = token
        self.config = config or EngineConfig()
        self.on_progress = on_progress
        self._timer = timer

    async def probe(self) -> LatencyResult:
        total = self.config.ping_count
        result = LatencyResult(attempts=total)

        for i in range(total):
            self._token.raise_if_cancelled()

            try:
                result.samples.append(await self._trip())
            except TransferFailed as exc:
                logger.warning("Latency trip %d/%d failed: %s", i + 1, total, exc)

            if self.on_progress:
                self.on_progress(0.0, (i + 1) / total * 100, ())

            if i < total - 1 and self.config.ping_pause > 0:
                if await self._token.wait(self.config.ping_pause):
                    raise Aborted("latency probe aborted")

        self._token.raise_if_cancelled()

        if not result.samples:
            raise NetworkUnavailable(f"All {total} latency trips failed")

        result.calculate()
        logger.info(
            "Latency probe finished: min %.1f ms, jitter %.2f ms (%d/%d trips)",
            result.min_latency_ms, result.jitter_ms, len(result.samples), total,
        )
        return result

    async def _trip(self) -> float:
        """One timed round trip in milliseconds."""
        start = self._timer()
        try:
            await self._token.guard(
                asyncio.wait_for(self._transport.ping(), timeout=self.config.request_timeout)
            )
        except asyncio.TimeoutError as exc:
            raise TransferFailed("ping timed out") from exc
        return (self._timer() - start) * 1000
