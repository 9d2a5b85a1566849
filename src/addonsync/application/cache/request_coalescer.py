"""Keyed cache of in-flight async operations (request coalescing).

Hey future me - this is what stops a "check updates for all accounts" burst from
hammering the relay! Five accounts with the same Torrentio install means five
identical manifest fetches within a second. With the coalescer the first caller
starts the fetch and the other four just await the SAME future.

Rules:
- one physical operation per key while an entry exists
- every waiter sees the same terminal result (success OR failure)
- failures are evicted immediately, so the next caller retries fresh
- successes stay for ttl_seconds (counted from start), then are evicted lazily on
  access or by the optional background sweeper

Two instances exist per process (see get_health_coalescer/get_manifest_coalescer):
health is keyed by ORIGIN (all addons on one domain share a probe), manifests by
full transport URL (two addons on one domain are still different manifests).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from addonsync.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CoalescedOperation[T]:
    """One shared in-flight (or recently finished) operation."""

    key: str
    pending: asyncio.Future[T]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class RequestCoalescer[T]:
    """Collapses concurrent requests for the same key into one operation."""

    def __init__(
        self,
        name: str = "default",
        ttl_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize coalescer.

        Args:
            name: Name used in log messages
            ttl_seconds: How long a started operation is shared (from start)
            clock: Monotonic time source (injectable for tests)
        """
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CoalescedOperation[T]] = {}
        self._sweeper: asyncio.Task[None] | None = None
        self._started = 0
        self._joined = 0

    # Listen up, this method is deliberately NOT async! Lookup and registration happen
    # without a single await in between, so on the event loop no other coroutine can
    # sneak in and also decide "no entry yet, I'll start one". If you ever add an await
    # before self._entries[key] = ..., you break the single-flight guarantee.
    def get_or_start(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        keep: Callable[[T], bool] | None = None,
    ) -> asyncio.Future[T]:
        """Return the shared future for `key`, starting `factory()` if needed.

        Args:
            key: Coalescing key (origin or full URL)
            factory: Zero-arg callable returning the awaitable to run
            keep: Optional predicate on the result; results it rejects are evicted
                immediately like failures (used to avoid caching "offline")

        Returns:
            Future shared by every caller of this key
        """
        entry = self._lookup(key)
        if entry is not None:
            self._joined += 1
            logger.debug("Coalescer[%s]: joining in-flight operation for %s", self.name, key)
            return entry.pending

        pending: asyncio.Future[T] = asyncio.ensure_future(factory())
        entry = CoalescedOperation(
            key=key,
            pending=pending,
            expires_at=self._clock() + self.ttl_seconds,
        )
        self._entries[key] = entry
        self._started += 1
        pending.add_done_callback(lambda fut: self._on_done(entry, keep, fut))
        logger.debug("Coalescer[%s]: started operation for %s", self.name, key)
        return pending

    async def run(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        keep: Callable[[T], bool] | None = None,
    ) -> T:
        """Await the shared result for `key`.

        The shared future is shielded: a caller that gets cancelled (dialog closed)
        stops waiting, but the operation keeps running for the other waiters.
        """
        return await asyncio.shield(self.get_or_start(key, factory, keep))

    def _lookup(self, key: str) -> CoalescedOperation[T] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        # A failure is evicted by a done-callback that only runs on the next loop pass.
        # Until then the dead entry is still registered, so drop it here instead of
        # handing the old failure to a new caller.
        if entry.pending.done() and (entry.pending.cancelled() or entry.pending.exception()):
            self._evict(entry)
            return None
        # An expired entry that is still running stays - evicting it would allow a
        # second physical request for the same key while the first is in flight.
        if entry.is_expired(self._clock()) and entry.pending.done():
            self._evict(entry)
            return None
        return entry

    def _on_done(
        self,
        entry: CoalescedOperation[T],
        keep: Callable[[T], bool] | None,
        fut: asyncio.Future[T],
    ) -> None:
        if fut.cancelled():
            self._evict(entry)
            return

        # Calling exception() also marks it retrieved, so a failure nobody awaited
        # doesn't end up as "Task exception was never retrieved" noise.
        exc = fut.exception()
        if exc is not None:
            logger.debug(
                "Coalescer[%s]: operation for %s failed (%s), evicting",
                self.name,
                entry.key,
                exc,
            )
            self._evict(entry)
            return

        if keep is not None and not keep(fut.result()):
            self._evict(entry)

    def _evict(self, entry: CoalescedOperation[T]) -> None:
        # Only remove the entry if it's still the one registered for this key.
        if self._entries.get(entry.key) is entry:
            del self._entries[entry.key]

    def invalidate(self, key: str) -> bool:
        """Drop the entry for `key` (running operations keep running for their waiters)."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()

    def sweep(self) -> int:
        """Remove expired, settled entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [
            entry
            for entry in self._entries.values()
            if entry.is_expired(now) and entry.pending.done()
        ]
        for entry in expired:
            self._evict(entry)
        return len(expired)

    def start_sweeper(self, interval_seconds: float | None = None) -> asyncio.Task[None]:
        """Start a background task calling sweep() periodically.

        Lazy eviction on access is enough for correctness; the sweeper only keeps
        memory flat when keys are never queried again.
        """
        if self._sweeper is not None and not self._sweeper.done():
            return self._sweeper

        interval = interval_seconds or get_settings().coalescing.sweep_interval_seconds

        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                removed = self.sweep()
                if removed:
                    logger.debug("Coalescer[%s]: swept %d expired entries", self.name, removed)

        self._sweeper = asyncio.create_task(_loop(), name=f"coalescer-sweeper-{self.name}")
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Stop the background sweeper if running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_stats(self) -> dict[str, Any]:
        """Get coalescer statistics (not locked, for monitoring only)."""
        pending = sum(1 for entry in self._entries.values() if not entry.pending.done())
        return {
            "name": self.name,
            "entries": len(self._entries),
            "pending": pending,
            "started": self._started,
            "joined": self._joined,
        }


# Module-level coalescers (singleton pattern), one per key space.
_health_coalescer: RequestCoalescer[Any] | None = None
_manifest_coalescer: RequestCoalescer[Any] | None = None


def get_health_coalescer() -> RequestCoalescer[Any]:
    """Get the process-wide coalescer for origin health probes (keyed by origin)."""
    global _health_coalescer
    if _health_coalescer is None:
        _health_coalescer = RequestCoalescer(
            name="health", ttl_seconds=get_settings().coalescing.ttl_seconds
        )
    return _health_coalescer


def get_manifest_coalescer() -> RequestCoalescer[Any]:
    """Get the process-wide coalescer for manifest fetches (keyed by full URL)."""
    global _manifest_coalescer
    if _manifest_coalescer is None:
        _manifest_coalescer = RequestCoalescer(
            name="manifest", ttl_seconds=get_settings().coalescing.ttl_seconds
        )
    return _manifest_coalescer


__all__ = [
    "CoalescedOperation",
    "RequestCoalescer",
    "get_health_coalescer",
    "get_manifest_coalescer",
]
