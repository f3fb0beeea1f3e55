"""
Cancellation token shared by every worker, the progress clock and the prober.

The flag itself is a ``threading.Event`` so ``cancel()`` may be called from
any thread.  Coroutines that want to *wait* on the token register an
``asyncio.Event`` bound to their own loop; ``cancel()`` wakes each of them
through ``call_soon_threadsafe``.
"""
from __future__ import annotations

import asyncio
import threading
from typing import Awaitable, List, Optional, Tuple, TypeVar

from .errors import Aborted

T = TypeVar("T")


class CancellationToken:
    """Set-once flag.  Observers read it; only the owner sets it."""

    def __init__(self) -> None:
        self._flag = threading.Event()
        self._lock = threading.Lock()
        self._waiters: List[Tuple[asyncio.AbstractEventLoop, asyncio.Event]] = []

    @property
    def cancelled(self) -> bool:
        return self._flag.is_set()

    def cancel(self) -> bool:
        """Set the token.  Returns ``True`` only for the call that set it."""
        with self._lock:
            if self._flag.is_set():
                return False
            self._flag.set()
            waiters = list(self._waiters)

        for loop, event in waiters:
            try:
                loop.call_soon_threadsafe(event.set)
            except RuntimeError:
                # Loop already closed: nothing left on it to wake.
                continue
        return True

    def raise_if_cancelled(self) -> None:
        if self._flag.is_set():
            raise Aborted()

    # -- Awaiting -----------------------------------------------------------

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Suspend until cancelled or *timeout* elapses.

        Returns the token state on wake-up, so ``await token.wait(dt)``
        doubles as a cancellable sleep.
        """
        if self._flag.is_set():
            return True

        entry = (asyncio.get_running_loop(), asyncio.Event())
        with self._lock:
            if self._flag.is_set():
                return True
            self._waiters.append(entry)

        try:
            await asyncio.wait_for(entry[1].wait(), timeout=timeout)
        except asyncio.TimeoutError:
            pass
        finally:
            with self._lock:
                self._waiters.remove(entry)

        return self._flag.is_set()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Run *awaitable*, abandoning it with ``Aborted`` on cancellation."""
        self.raise_if_cancelled()

        task = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            watcher.cancel()
            if not task.done():
                task.cancel()
            await asyncio.gather(watcher, return_exceptions=True)

        if task.cancelled() or not task.done():
            await asyncio.gather(task, return_exceptions=True)
            raise Aborted()
        return task.result()
