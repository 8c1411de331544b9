"""hos-compliance — Hours-of-Service compliance for live driver displays.

This is the application entry point.  It wires the event feed, adapter
registry, timeline cache, compliance reporter, duty service and the
HTTP / WebSocket endpoints together.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import FastAPI

from hos_compliance.adapters.registry import AdapterRegistry
from hos_compliance.api.compliance import create_compliance_router
from hos_compliance.api.ws_duty import create_duty_router
from hos_compliance.api.ws_telemetry import create_telemetry_router
from hos_compliance.config import settings
from hos_compliance.core.reporter import ComplianceReporter
from hos_compliance.domain.limits import HosLimits
from hos_compliance.services.countdown import CountdownTicker
from hos_compliance.services.duty import DriverDutyService
from hos_compliance.services.feed import HttpEventFeed
from hos_compliance.store.subscriptions import SubscriptionRegistry
from hos_compliance.store.timeline_cache import TimelineCache

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

# ── Compliance Engine ────────────────────────────────────────────────────────

limits = HosLimits.from_settings(settings)
reporter = ComplianceReporter(limits=limits, tz=settings.timezone)

# ── State ────────────────────────────────────────────────────────────────────

cache = TimelineCache(ttl=timedelta(minutes=settings.cache_ttl_minutes))
subscriptions = SubscriptionRegistry()

# ── Adapter Registry ────────────────────────────────────────────────────────

registry = AdapterRegistry.default()

# ── Services ─────────────────────────────────────────────────────────────────

feed = HttpEventFeed(settings.feed_url, timeout=settings.feed_timeout_seconds)
service = DriverDutyService(
    feed=feed,
    reporter=reporter,
    cache=cache,
    subscriptions=subscriptions,
    registry=registry,
    lookback=timedelta(days=settings.feed_lookback_days),
)
ticker = CountdownTicker(tick_seconds=settings.countdown_tick_seconds)

# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="Hours-of-Service windows, breaks, extensions and countdowns",
    version="0.1.0",
    debug=settings.debug,
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_telemetry_router(service))
app.include_router(create_duty_router(service, ticker))
app.include_router(create_compliance_router(service))


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "timezone": settings.timezone,
        "cached_timelines": await cache.size(),
        "bound_drivers": len(subscriptions.keys),
        "bindings": subscriptions.binding_count,
        "adapters": registry.stats,
        "total_adapted": registry.total_accepted,
        "total_rejected": registry.total_rejected,
    }
