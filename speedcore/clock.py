"""
Fixed-cadence progress clock.

While a throughput phase is active the clock wakes every
``tick_interval`` seconds, reads the phase's byte counter, appends a
``Sample`` to the live rate curve and hands the caller the current rate,
the percent complete and a snapshot of the curve.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .cancel import CancellationToken
from .stats import calculate_throughput


@dataclass(frozen=True)
class Sample:
    """One point on the live rate curve."""

    elapsed_ms: float
    rate_mbps: float

    def to_dict(self) -> dict:
        return {
            "elapsed_ms": round(self.elapsed_ms, 1),
            "rate_mbps": round(self.rate_mbps, 2),
        }


# Signature: (current_rate_mbps, percent_complete, samples)
ProgressCallback = Callable[[float, float, Tuple[Sample, ...]], None]


class ProgressClock:
    """Samples ``counter.value`` until the window elapses or the token is set.

    *counter* is anything with an integer ``value`` attribute; the clock
    only ever reads it.
    """

    def __init__(
        self,
        counter,
        token: CancellationToken,
        window: float,
        interval: float,
        on_progress: Optional[ProgressCallback] = None,
        start: Optional[float] = None,
    ) -> None:
        self._counter = counter
        self._token = token
        self.window = window
        self.interval = interval
        self.on_progress = on_progress
        self.start = time.perf_counter() if start is None else start
        self.samples: List[Sample] = []

    async def run(self) -> None:
        while True:
            elapsed = time.perf_counter() - self.start
            self.tick(elapsed)

            if elapsed >= self.window or self._token.cancelled:
                break
            if await self._token.wait(self.interval):
                break

    def tick(self, elapsed: float) -> Optional[Sample]:
        """Record one sample at *elapsed* seconds into the phase."""
        if elapsed <= 0:
            return None

        elapsed_ms = elapsed * 1000
        if self.samples and elapsed_ms <= self.samples[-1].elapsed_ms:
            return None

        sample = Sample(
            elapsed_ms=elapsed_ms,
            rate_mbps=calculate_throughput(self._counter.value, elapsed),
        )
        self.samples.append(sample)

        if self.on_progress:
            percent = min(elapsed / self.window, 1.0) * 100 if self.window > 0 else 100.0
            self.on_progress(sample.rate_mbps, percent, tuple(self.samples))
        return sample
