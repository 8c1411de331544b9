"""In-memory per-driver timeline cache with async-safe access and TTL expiry.

Design notes:
    - An asyncio.Lock guards all mutations so concurrent telemetry and
      WebSocket handlers never corrupt state.
    - Concurrent loads for the same DriverKey coalesce onto one in-flight
      asyncio.Task: the feed is hit once, every waiter gets the result.
    - A failed load leaves the previous timeline (if any) untouched and
      propagates the error to every waiter.
    - The last snapshot computed for a key outlives its timeline so the
      duty service can fall back to it when the feed is down.
    - The cache does NOT decide what a timeline means.  It only remembers
      which events were fetched for whom, and when.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from hos_compliance.domain.activity import ActivityEvent
from hos_compliance.domain.snapshot import ComplianceSnapshot
from hos_compliance.foundation.clock import utc_now
from hos_compliance.foundation.identifiers import DriverKey

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[list[ActivityEvent]]]


class TimelineEntry:
    """Events fetched for one driver key."""

    __slots__ = ("events", "fetched_at", "as_of")

    def __init__(
        self,
        events: list[ActivityEvent],
        fetched_at: datetime,
        as_of: datetime,
    ) -> None:
        self.events = events
        # Wall-clock time of the fetch, drives TTL expiry
        self.fetched_at = fetched_at
        # End of the range the feed was asked for
        self.as_of = as_of

    def is_expired(self, ttl: timedelta, now: datetime | None = None) -> bool:
        return (now or utc_now()) - self.fetched_at > ttl

    def to_dict(self) -> dict:
        return {
            "event_count": len(self.events),
            "fetched_at": self.fetched_at.isoformat(),
            "as_of": self.as_of.isoformat(),
        }


class TimelineCache:
    """Async-safe, in-memory cache of driver event timelines.

    Args:
        ttl: How long a fetched timeline is served before the next request
             triggers a reload.
    """

    def __init__(self, ttl: timedelta = timedelta(minutes=5)) -> None:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        self._ttl = ttl
        self._lock = asyncio.Lock()
        self._entries: dict[DriverKey, TimelineEntry] = {}
        self._snapshots: dict[DriverKey, ComplianceSnapshot] = {}
        self._inflight: dict[DriverKey, asyncio.Task[TimelineEntry]] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    # ── Public API ───────────────────────────────────────────────────────

    async def load(self, key: DriverKey, loader: Loader, as_of: datetime) -> TimelineEntry:
        """Return a fresh timeline for *key*, calling *loader* only if needed.

        If another caller is already loading *key*, wait for that load
        instead of starting a second one.

        Raises:
            Whatever *loader* raises, once per waiter.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.is_expired(self._ttl):
                return entry

            task = self._inflight.get(key)
            if task is None:
                task = asyncio.create_task(self._fill(key, loader, as_of))
                self._inflight[key] = task
            else:
                logger.debug("Joining in-flight load for %s", key)

        # A cancelled waiter must not cancel the load for everyone else
        return await asyncio.shield(task)

    async def get(self, key: DriverKey) -> TimelineEntry | None:
        """Retrieve the cached timeline for *key*, or None if absent / expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._ttl):
                return None
            return entry

    async def invalidate(self, key: DriverKey) -> None:
        """Force the next load() for *key* to hit the feed."""
        async with self._lock:
            self._entries.pop(key, None)

    async def expire_stale(self) -> list[DriverKey]:
        """Drop every timeline past its TTL.  Snapshots are kept."""
        async with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(self._ttl)]
            for key in expired:
                del self._entries[key]
            if expired:
                logger.info("Expired %d stale timeline(s)", len(expired))
            return expired

    async def store_snapshot(self, key: DriverKey, snapshot: ComplianceSnapshot) -> None:
        async with self._lock:
            self._snapshots[key] = snapshot

    async def last_snapshot(self, key: DriverKey) -> ComplianceSnapshot | None:
        async with self._lock:
            return self._snapshots.get(key)

    async def forget(self, key: DriverKey) -> None:
        """Remove everything known about *key*."""
        async with self._lock:
            self._entries.pop(key, None)
            self._snapshots.pop(key, None)

    async def summary(self) -> dict[str, dict]:
        """Cached keys with their fetch metadata, for observability."""
        async with self._lock:
            return {str(k): e.to_dict() for k, e in self._entries.items()}

    async def size(self) -> int:
        async with self._lock:
            return len(self._entries)

    # ── Internals ────────────────────────────────────────────────────────

    async def _fill(self, key: DriverKey, loader: Loader, as_of: datetime) -> TimelineEntry:
        try:
            events = await loader()
            entry = TimelineEntry(events=events, fetched_at=utc_now(), as_of=as_of)
            async with self._lock:
                self._entries[key] = entry
            logger.info("Cached %d event(s) for %s", len(events), key)
            return entry
        finally:
            async with self._lock:
                self._inflight.pop(key, None)
