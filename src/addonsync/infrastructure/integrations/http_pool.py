"""Process-wide httpx client shared by every adapter that talks HTTP.

Hey future me - an update check touches dozens of addon origins plus the relay in
a few seconds. One AsyncClient per request would throw away keep-alive and HTTP/2
multiplexing towards the relay, so the manifest fetcher, the health probe and the
account client all borrow this one (unless a test hands them its own client).

Shutdown hook:
    await HttpClientPool.close()
"""

import asyncio
import logging
from typing import Any, ClassVar

import httpx

from addonsync import __version__
from addonsync.config import HttpPoolSettings, get_settings

logger = logging.getLogger(__name__)


class HttpClientPool:
    """Lazily created, lock-guarded singleton httpx.AsyncClient."""

    _client: ClassVar[httpx.AsyncClient | None] = None
    _lock: ClassVar[asyncio.Lock | None] = None
    _settings: ClassVar[HttpPoolSettings | None] = None

    @classmethod
    def _get_lock(cls) -> asyncio.Lock:
        # Created on first use so it binds to the running loop, not import time.
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        return cls._lock

    @classmethod
    def _build_client(cls, settings: HttpPoolSettings) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout_seconds),
            limits=httpx.Limits(
                max_keepalive_connections=settings.max_keepalive_connections,
                max_connections=settings.max_connections,
            ),
            http2=settings.http2,
            headers={"User-Agent": f"{settings.user_agent}/{__version__}"},
            # Addon hosts love redirecting http -> https and on to CDNs
            follow_redirects=True,
        )

    @classmethod
    async def get_client(cls, settings: HttpPoolSettings | None = None) -> httpx.AsyncClient:
        """Return the shared client, creating it on first call.

        Args:
            settings: Pool limits; only honoured by the call that creates the client
                (default: global settings)

        Returns:
            The shared httpx.AsyncClient
        """
        async with cls._get_lock():
            if cls._client is None:
                cls._settings = settings or get_settings().http
                cls._client = cls._build_client(cls._settings)
                logger.info(
                    "HTTP client pool ready (timeout=%.1fs, max_conn=%d, http2=%s)",
                    cls._settings.timeout_seconds,
                    cls._settings.max_connections,
                    cls._settings.http2,
                )
            return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the shared client. The next get_client() builds a new one."""
        async with cls._get_lock():
            client, cls._client = cls._client, None
            if client is not None:
                await client.aclose()
                logger.info("HTTP client pool closed")

    @classmethod
    def owns(cls, client: httpx.AsyncClient | None) -> bool:
        """True if `client` is the pooled client (callers must not close it)."""
        return client is not None and client is cls._client

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._client is not None

    @classmethod
    def get_pool_stats(cls) -> dict[str, Any]:
        """Pool status for debugging."""
        if cls._client is None or cls._settings is None:
            return {"initialized": False}
        return {
            "initialized": True,
            "timeout": cls._settings.timeout_seconds,
            "max_connections": cls._settings.max_connections,
            "max_keepalive": cls._settings.max_keepalive_connections,
            "http2": cls._settings.http2,
        }
