"""DriverDutyService — keeps every bound display's snapshot current.

Flow for one telemetry frame:

    frame → pick_active_slot → DriverKey
          → TimelineCache.load (feed + adapters, at most once per TTL)
          → ComplianceReporter.report (live working state on top)
          → publish to every binding of that key

A vehicle without a carded-in driver resets all of its bindings to the
neutral "No active driver" snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from hos_compliance.adapters.registry import AdapterRegistry
from hos_compliance.core.overtime import OvertimeClassifier, display_range
from hos_compliance.core.reporter import ComplianceReporter
from hos_compliance.domain.activity import ActivityEvent
from hos_compliance.domain.snapshot import ComplianceSnapshot, TimelineView
from hos_compliance.domain.telemetry import TelemetryFrame, pick_active_slot
from hos_compliance.errors import FeedUnavailableError
from hos_compliance.foundation.clock import utc_now
from hos_compliance.foundation.identifiers import DriverKey
from hos_compliance.services.feed import EventFeed
from hos_compliance.store.subscriptions import Disposer, SnapshotCallback, SubscriptionRegistry
from hos_compliance.store.timeline_cache import TimelineCache

logger = logging.getLogger(__name__)


class DriverDutyService:
    """Owns the refresh / publish cycle for driver compliance snapshots.

    Args:
        feed: Source of raw driver history.
        reporter: Pure snapshot calculator.
        cache: Per-key timeline and last-snapshot cache.
        subscriptions: Display bindings per key.
        registry: Adapters turning raw history records into events.
        lookback: How far back history is requested.
    """

    def __init__(
        self,
        feed: EventFeed,
        reporter: ComplianceReporter,
        cache: TimelineCache,
        subscriptions: SubscriptionRegistry,
        registry: AdapterRegistry | None = None,
        lookback: timedelta = timedelta(days=14),
    ) -> None:
        self._feed = feed
        self._reporter = reporter
        self._cache = cache
        self._subscriptions = subscriptions
        self._registry = registry or AdapterRegistry.default()
        self._lookback = lookback
        self._classifier = OvertimeClassifier(reporter.limits)

    @property
    def cache(self) -> TimelineCache:
        return self._cache

    @property
    def subscriptions(self) -> SubscriptionRegistry:
        return self._subscriptions

    @property
    def registry(self) -> AdapterRegistry:
        return self._registry

    # ── Public API ───────────────────────────────────────────────────────

    async def refresh(
        self,
        key: DriverKey,
        current_state: Any = None,
        now: datetime | None = None,
        driver_name: str | None = None,
    ) -> ComplianceSnapshot:
        """Recompute and publish the snapshot for *key*.

        A feed failure is not fatal: the last snapshot (or an empty one)
        is published again with a warning attached.
        """
        now = now or utc_now()
        try:
            entry = await self._cache.load(key, lambda: self._fetch(key, now), as_of=now)
        except FeedUnavailableError as exc:
            logger.warning("Serving last known snapshot for %s: %s", key, exc)
            previous = await self._cache.last_snapshot(key)
            fallback = previous or ComplianceSnapshot.empty(key, now, driver_name=driver_name)
            snapshot = fallback.with_warning(str(exc))
            await self._publish(key, snapshot)
            return snapshot

        snapshot = self._reporter.report(
            key,
            entry.events,
            now,
            current_state=current_state,
            live_since=entry.as_of,
            driver_name=driver_name,
        )
        await self._cache.store_snapshot(key, snapshot)
        await self._publish(key, snapshot)
        return snapshot

    async def handle_frame(self, frame: TelemetryFrame) -> ComplianceSnapshot | None:
        """Refresh the active driver of *frame*'s vehicle.

        Returns None when no driver is carded in.
        """
        active = pick_active_slot(frame.io)
        now = frame.timestamp or utc_now()
        if active is None:
            await self.notify_no_driver(frame.vehicle_id, now)
            return None
        return await self.refresh(
            active.key(frame.vehicle_id),
            current_state=active.working_state,
            now=now,
            driver_name=active.driver_name,
        )

    async def subscribe(self, key: DriverKey, callback: SnapshotCallback) -> Disposer:
        """Bind *callback* to *key*; the last snapshot, if any, is sent at once."""
        dispose = self._subscriptions.subscribe(key, callback)
        cached = await self._cache.last_snapshot(key)
        if cached is not None:
            await callback(cached)
        return dispose

    async def notify_no_driver(self, vehicle_id: str, now: datetime | None = None) -> int:
        """Push the neutral snapshot to every binding of *vehicle_id*."""
        now = now or utc_now()
        keys = self._subscriptions.keys_for_vehicle(vehicle_id)
        for key in keys:
            await self._publish(key, ComplianceSnapshot.neutral(key, now))
        if keys:
            logger.info("No active driver on %s, reset %d binding(s)", vehicle_id, len(keys))
        return len(keys)

    async def timeline(self, key: DriverKey, now: datetime | None = None) -> TimelineView:
        """Overtime-classified segments over the display range for *key*."""
        now = now or utc_now()
        entry = await self._cache.load(key, lambda: self._fetch(key, now), as_of=now)
        tz = self._reporter.tz
        builder = self._reporter.builder
        events = builder.normalize(entry.events)
        start, end = display_range(events, tz)

        clipped = []
        for segment in builder.build(events, now):
            piece = segment.clip(start, end)
            if piece is not None:
                clipped.append(piece)
        return TimelineView(
            vehicle_id=key.vehicle_id,
            slot=key.slot,
            driver_id=key.driver_id,
            range_start=start,
            range_end=end,
            segments=self._classifier.classify(clipped, tz),
        )

    # ── Internals ────────────────────────────────────────────────────────

    async def _fetch(self, key: DriverKey, now: datetime) -> list[ActivityEvent]:
        raw = await self._feed.fetch_driver_events(key.driver_id, now - self._lookback, now)
        events = self._registry.adapt_many(raw)
        logger.debug("Adapted %d of %d record(s) for %s", len(events), len(raw), key)
        return events

    async def _publish(self, key: DriverKey, snapshot: ComplianceSnapshot) -> None:
        for callback in self._subscriptions.callbacks(key):
            try:
                await callback(snapshot)
            except Exception as exc:
                logger.warning("Dropping snapshot for a binding of %s: %s", key, exc)
