"""Tests for speedcore.cancel -- the shared cancellation token."""

import asyncio
import threading
import time
import unittest

from speedcore.cancel import CancellationToken
from speedcore.errors import Aborted


class TestCancelFlag(unittest.TestCase):
    def test_starts_clear(self):
        self.assertFalse(CancellationToken().cancelled)

    def test_cancel_is_idempotent(self):
        token = CancellationToken()
        self.assertTrue(token.cancel())
        self.assertFalse(token.cancel())
        self.assertFalse(token.cancel())
        self.assertTrue(token.cancelled)

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        with self.assertRaises(Aborted):
            token.raise_if_cancelled()


class TestCancelWait(unittest.IsolatedAsyncioTestCase):
    async def test_wait_times_out(self):
        token = CancellationToken()
        self.assertFalse(await token.wait(0.01))

    async def test_wait_returns_immediately_when_cancelled(self):
        token = CancellationToken()
        token.cancel()
        t0 = time.perf_counter()
        self.assertTrue(await token.wait(5.0))
        self.assertLess(time.perf_counter() - t0, 0.5)

    async def test_cancel_from_other_task_wakes_waiter(self):
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)
        t0 = time.perf_counter()
        self.assertTrue(await token.wait(5.0))
        self.assertLess(time.perf_counter() - t0, 1.0)

    async def test_cancel_from_other_thread_wakes_waiter(self):
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            t0 = time.perf_counter()
            self.assertTrue(await token.wait(5.0))
            self.assertLess(time.perf_counter() - t0, 1.0)
        finally:
            timer.cancel()


class TestCancelGuard(unittest.IsolatedAsyncioTestCase):
    async def test_returns_result(self):
        async def work():
            await asyncio.sleep(0.01)
            return 42

        self.assertEqual(await CancellationToken().guard(work()), 42)

    async def test_propagates_exception(self):
        async def work():
            raise ValueError("boom")

        with self.assertRaises(ValueError):
            await CancellationToken().guard(work())

    async def test_abandons_work_on_cancel(self):
        token = CancellationToken()
        finished = []

        async def work():
            await asyncio.sleep(5.0)
            finished.append(True)

        asyncio.get_running_loop().call_later(0.05, token.cancel)
        t0 = time.perf_counter()
        with self.assertRaises(Aborted):
            await token.guard(work())
        self.assertLess(time.perf_counter() - t0, 1.0)
        self.assertEqual(finished, [])

    async def test_already_cancelled_never_starts(self):
        token = CancellationToken()
        token.cancel()
        started = []

        async def work():
            started.append(True)

        coro = work()
        with self.assertRaises(Aborted):
            await token.guard(coro)
        coro.close()
        self.assertEqual(started, [])


if __name__ == "__main__":
    unittest.main()
