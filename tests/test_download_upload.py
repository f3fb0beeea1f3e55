"""Tests for the download / upload throughput phases."""

import asyncio
import time
import unittest

from fakes import FakeTransport
from speedcore.cancel import CancellationToken
from speedcore.config import EngineConfig
from speedcore.download import DownloadSampler
from speedcore.errors import Aborted
from speedcore.sampler import ByteCounter, ThroughputResult
from speedcore.stats import calculate_throughput
from speedcore.upload import UploadSampler


def _config(**overrides):
    values = {
        "workers": 2,
        "upload_bytes": 1_000,
        "tick_interval": 0.01,
        "retry_backoff": 0.01,
        "stop_grace": 0.1,
        "request_timeout": 0.5,
    }
    values.update(overrides)
    return EngineConfig(**values)


class TestThroughputResult(unittest.TestCase):
    def test_basic_speed(self):
        r = ThroughputResult(bytes_total=125_000_000, duration_ms=10_000)
        r.calculate()
        self.assertAlmostEqual(r.mbps, 100.0)

    def test_four_workers_one_second(self):
        # 4 workers x 25 MB in a 1 s window
        r = ThroughputResult(bytes_total=4 * 25_000_000, duration_ms=1_000)
        r.calculate()
        self.assertAlmostEqual(r.mbps, 800.0)

    def test_zero_duration(self):
        r = ThroughputResult(bytes_total=100, duration_ms=0)
        r.calculate()
        self.assertEqual(r.mbps, 0.0)

    def test_to_dict(self):
        r = ThroughputResult(bytes_total=1_000, duration_ms=10)
        r.calculate()
        d = r.to_dict()
        self.assertEqual(d["bytes_total"], 1_000)
        self.assertEqual(d["samples"], [])


class TestByteCounter(unittest.IsolatedAsyncioTestCase):
    async def test_concurrent_adds_not_lost(self):
        counter = ByteCounter()

        async def add_many():
            for _ in range(1_000):
                counter.add(3)
                await asyncio.sleep(0)

        await asyncio.gather(*[add_many() for _ in range(8)])
        self.assertEqual(counter.value, 8 * 1_000 * 3)


class TestDownloadSampler(unittest.IsolatedAsyncioTestCase):
    async def test_measures_window(self):
        transport = FakeTransport()
        sampler = DownloadSampler(transport, CancellationToken(), _config())
        result = await sampler.run(0.3)

        self.assertGreater(result.bytes_total, 0)
        self.assertGreaterEqual(result.duration_ms, 300.0)
        self.assertLess(result.duration_ms, 2_000.0)
        self.assertAlmostEqual(
            result.mbps, calculate_throughput(result.bytes_total, result.duration_ms / 1000)
        )

    async def test_samples_strictly_increasing(self):
        seen = []
        sampler = DownloadSampler(
            FakeTransport(), CancellationToken(), _config(),
            on_progress=lambda rate, pct, samples: seen.append(samples),
        )
        result = await sampler.run(0.3)

        stamps = [s.elapsed_ms for s in result.samples]
        self.assertGreater(len(stamps), 3)
        self.assertTrue(all(a < b for a, b in zip(stamps, stamps[1:])))
        self.assertEqual(len(seen[-1]), len(result.samples))

    async def test_every_request_fails(self):
        transport = FakeTransport(fail_downloads=True)
        sampler = DownloadSampler(transport, CancellationToken(), _config())
        t0 = time.perf_counter()
        result = await sampler.run(0.3)

        self.assertLess(time.perf_counter() - t0, 2.0)
        self.assertEqual(result.bytes_total, 0)
        self.assertEqual(result.mbps, 0.0)
        self.assertGreater(transport.download_calls, 2)

    async def test_every_stream_hangs(self):
        transport = FakeTransport(chunk_delay=60.0)
        sampler = DownloadSampler(transport, CancellationToken(), _config())
        t0 = time.perf_counter()
        result = await sampler.run(0.3)
        elapsed = time.perf_counter() - t0

        self.assertGreaterEqual(elapsed, 0.3)
        self.assertLess(elapsed, 2.0)
        self.assertEqual(result.bytes_total, 0)
        self.assertEqual(result.mbps, 0.0)
        self.assertEqual(transport.download_calls, 2)

    async def test_failed_requests_retried(self):
        transport = FakeTransport(failing_downloads=4)
        sampler = DownloadSampler(transport, CancellationToken(), _config())
        result = await sampler.run(0.3)
        self.assertGreater(result.bytes_total, 0)
        self.assertGreater(transport.download_calls, 4)

    async def test_short_streams_reopened(self):
        transport = FakeTransport(chunks_per_stream=2, chunk_delay=0.001)
        sampler = DownloadSampler(transport, CancellationToken(), _config())
        await sampler.run(0.2)
        self.assertGreater(transport.download_calls, 2)

    async def test_abort_returns_within_a_chunk(self):
        token = CancellationToken()
        sampler = DownloadSampler(FakeTransport(), token, _config(workers=4))
        asyncio.get_running_loop().call_later(0.1, token.cancel)

        t0 = time.perf_counter()
        with self.assertRaises(Aborted) as ctx:
            await sampler.run(8.0)
        elapsed = time.perf_counter() - t0

        self.assertLess(elapsed, 1.0)
        partial = ctx.exception.partial
        self.assertGreater(partial.bytes_total, 0)
        self.assertAlmostEqual(
            partial.mbps, calculate_throughput(partial.bytes_total, partial.duration_ms / 1000)
        )

    async def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        transport = FakeTransport()
        with self.assertRaises(Aborted):
            await DownloadSampler(transport, token, _config()).run(1.0)
        self.assertEqual(transport.network_calls, 0)

    async def test_callback_error_propagates(self):
        def broken(rate, pct, samples):
            raise ValueError("display broke")

        sampler = DownloadSampler(FakeTransport(), CancellationToken(), _config(), on_progress=broken)
        with self.assertRaises(ValueError):
            await sampler.run(0.2)


class TestUploadSampler(unittest.IsolatedAsyncioTestCase):
    async def test_credits_completed_uploads(self):
        transport = FakeTransport()
        sampler = UploadSampler(transport, CancellationToken(), _config())
        result = await sampler.run(0.3)

        self.assertGreater(transport.uploads_completed, 0)
        self.assertEqual(result.bytes_total, transport.uploads_completed * 1_000)

    async def test_payload_built_once(self):
        transport = FakeTransport()
        sampler = UploadSampler(transport, CancellationToken(), _config())
        payload = sampler.payload
        await sampler.run(0.2)

        self.assertEqual(len(payload), 1_000)
        self.assertIs(sampler.payload, payload)
        self.assertEqual(transport.payload_ids, {id(payload)})

    async def test_every_request_fails(self):
        transport = FakeTransport(fail_uploads=True)
        sampler = UploadSampler(transport, CancellationToken(), _config())
        t0 = time.perf_counter()
        result = await sampler.run(0.3)

        self.assertLess(time.perf_counter() - t0, 2.0)
        self.assertEqual(result.bytes_total, 0)
        self.assertEqual(result.mbps, 0.0)
        self.assertGreater(transport.upload_calls, 2)

    async def test_abort(self):
        token = CancellationToken()
        sampler = UploadSampler(FakeTransport(upload_delay=0.02), token, _config())
        asyncio.get_running_loop().call_later(0.1, token.cancel)

        t0 = time.perf_counter()
        with self.assertRaises(Aborted) as ctx:
            await sampler.run(10.0)
        self.assertLess(time.perf_counter() - t0, 1.0)
        self.assertIsInstance(ctx.exception.partial, ThroughputResult)


if __name__ == "__main__":
    unittest.main()
