"""Exception hierarchy for the measurement engine."""
from __future__ import annotations

from typing import Any, Optional


class SpeedTestError(Exception):
    """Base class for every error raised by ``speedcore``."""


class NetworkUnavailable(SpeedTestError):
    """Every round trip of a latency probe failed."""


class TransferFailed(SpeedTestError):
    """A single download / upload / ping request errored or timed out.

    Always recovered inside a phase; never leaves an engine operation.
    """


class Aborted(SpeedTestError):
    """The cancellation token was observed during a phase.

    ``partial`` holds whatever result the interrupted phase had accrued
    (a ``ThroughputResult`` for download / upload, ``None`` otherwise).
    """

    def __init__(self, message: str = "Aborted", partial: Optional[Any] = None) -> None:
        super().__init__(message)
        self.partial = partial


class InvalidStateError(SpeedTestError):
    """An engine operation was called out of sequence."""
