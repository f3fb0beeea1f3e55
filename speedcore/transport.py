"""
HTTP transfer primitive for the sink service.

All HTTP work goes through a single ``aiohttp.ClientSession`` managed via
async-context-manager protocol (``async with HttpTransport(cfg) as t: ...``).
Every client, timeout and socket error is reported as ``TransferFailed`` so
callers only ever handle one per-request failure type.

Requests are kept deliberately plain: no custom headers beyond the
user agent, and uploads go out as ``text/plain`` bodies.
"""
from __future__ import annotations

import asyncio
import secrets
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp

from .config import EngineConfig
from .constants import DOWNLOAD_PATH, UPLOAD_CONTENT_TYPE, UPLOAD_PATH, USER_AGENT
from .errors import TransferFailed

_TRANSFER_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


def _cache_buster() -> str:
    return f"{time.time_ns()}-{secrets.token_hex(4)}"


class DownloadStream:
    """Incremental reader over one download response body."""

    def __init__(self, response: aiohttp.ClientResponse, chunk_size: int) -> None:
        self._response = response
        self._chunk_size = chunk_size

    async def read(self) -> bytes:
        """Return the next chunk, or ``b""`` once the body is exhausted."""
        return await self._response.content.read(self._chunk_size)


class HttpTransport:
    """Ping / download / upload against ``config.base_url``."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()
        self._session: Optional[aiohttp.ClientSession] = None

        t = self.config.request_timeout
        self._ping_timeout = aiohttp.ClientTimeout(total=t)
        self._stream_timeout = aiohttp.ClientTimeout(total=None, sock_connect=t, sock_read=t)

    # -- Context manager ----------------------------------------------------

    async def open(self) -> None:
        if self._session is None:
            connector = aiohttp.TCPConnector(
                limit=self.config.workers,
                limit_per_host=self.config.workers,
                force_close=False,
            )
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT},
                connector=connector,
            )

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> HttpTransport:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()

    # -- Internal helpers ---------------------------------------------------

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "HttpTransport must be opened before use "
                "(async with HttpTransport(config) as transport: ...)"
            )
        return self._session

    @property
    def download_url(self) -> str:
        return self.config.base_url.rstrip("/") + DOWNLOAD_PATH

    @property
    def upload_url(self) -> str:
        return self.config.base_url.rstrip("/") + UPLOAD_PATH

    # -- Public methods -----------------------------------------------------

    async def ping(self) -> None:
        """One zero-byte round trip."""
        session = self._ensure_session()
        params = {"bytes": "0", "t": _cache_buster()}

        try:
            async with session.get(
                self.download_url, params=params, timeout=self._ping_timeout
            ) as resp:
                resp.raise_for_status()
                await resp.read()
        except _TRANSFER_ERRORS as exc:
            raise TransferFailed(f"ping failed: {exc!r}") from exc

    @asynccontextmanager
    async def download(self, nbytes: int) -> AsyncIterator[DownloadStream]:
        """Open a stream of *nbytes* bytes from the sink."""
        session = self._ensure_session()
        params = {"bytes": str(nbytes), "t": _cache_buster()}

        try:
            async with session.get(
                self.download_url,
                params=params,
                headers={"Accept-Encoding": "identity"},
                timeout=self._stream_timeout,
            ) as resp:
                resp.raise_for_status()
                yield DownloadStream(resp, self.config.chunk_size)
        except _TRANSFER_ERRORS as exc:
            raise TransferFailed(f"download failed: {exc!r}") from exc

    async def upload(self, payload: bytes) -> None:
        """POST *payload* and wait for the sink to acknowledge it."""
        session = self._ensure_session()

        try:
            async with session.post(
                self.upload_url,
                params={"t": _cache_buster()},
                data=payload,
                headers={"Content-Type": UPLOAD_CONTENT_TYPE},
                timeout=self._stream_timeout,
            ) as resp:
                resp.raise_for_status()
                await resp.read()
        except _TRANSFER_ERRORS as exc:
            raise TransferFailed(f"upload failed: {exc!r}") from exc
