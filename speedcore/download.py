"""
Download throughput phase.

Each worker streams a large bounded body from the sink and credits every
chunk to the shared counter as it arrives, so the live curve keeps moving
even when a request later fails.
"""
from __future__ import annotations

import logging

from .errors import TransferFailed
from .sampler import ByteCounter, ThroughputSampler

logger = logging.getLogger(__name__)


class DownloadSampler(ThroughputSampler):
    """Parallel download speed tester."""

    direction = "download"

    @property
    def default_window(self) -> float:
        return self.config.download_window

    async def _worker(self, worker_id: int, counter: ByteCounter, deadline: float) -> None:
        while not self._should_stop(deadline):
            try:
                async with self._transport.download(self.config.download_bytes) as stream:
                    while not self._should_stop(deadline):
                        chunk = await stream.read()
                        if not chunk:
                            break
                        counter.add(len(chunk))
            except TransferFailed as exc:
                logger.debug("Download worker %d: %s", worker_id, exc)
                if await self._backoff():
                    break
