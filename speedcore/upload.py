"""
Upload throughput phase.

Workers POST one pre-built payload over and over.  A request only counts
once the sink has acknowledged it, so bytes are credited per completed
request rather than per chunk.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from .cancel import CancellationToken
from .clock import ProgressCallback
from .config import EngineConfig
from .errors import TransferFailed
from .sampler import ByteCounter, ThroughputSampler

logger = logging.getLogger(__name__)


class UploadSampler(ThroughputSampler):
    """Parallel upload speed tester."""

    direction = "upload"

    def __init__(
        self,
        transport,
        token: CancellationToken,
        config: Optional[EngineConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        super().__init__(transport, token, config, on_progress)
        # Built once, reused by every request of the phase.
        self.payload = os.urandom(self.config.upload_bytes)

    @property
    def default_window(self) -> float:
        return self.config.upload_window

    async def _worker(self, worker_id: int, counter: ByteCounter, deadline: float) -> None:
        while not self._should_stop(deadline):
            try:
                await self._transport.upload(self.payload)
            except TransferFailed as exc:
                logger.debug("Upload worker %d: %s", worker_id, exc)
                if await self._backoff():
                    break
                continue
            counter.add(len(self.payload))
