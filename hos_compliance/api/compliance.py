"""REST endpoints for driver compliance.

Paths:
    GET /api/drivers/cache
    GET /api/drivers/{vehicle_id}/{slot}/{driver_id}/compliance
    GET /api/drivers/{vehicle_id}/{slot}/{driver_id}/timeline
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Path

from hos_compliance.errors import FeedUnavailableError
from hos_compliance.foundation.identifiers import DriverKey
from hos_compliance.services.duty import DriverDutyService

logger = logging.getLogger(__name__)


def create_compliance_router(service: DriverDutyService) -> APIRouter:
    """Factory that wires the compliance endpoints to the duty service."""

    router = APIRouter(prefix="/api/drivers", tags=["compliance"])

    @router.get("/cache")
    async def list_cached() -> dict[str, Any]:
        """Cached driver timelines, after dropping expired ones."""
        await service.cache.expire_stale()
        timelines = await service.cache.summary()
        return {
            "timelines": timelines,
            "count": len(timelines),
            "bindings": service.subscriptions.binding_count,
        }

    @router.get("/{vehicle_id}/{slot}/{driver_id}/compliance")
    async def get_compliance(
        vehicle_id: str,
        driver_id: str,
        slot: int = Path(..., ge=1, le=2),
        state: Optional[str] = None,
        name: Optional[str] = None,
    ) -> dict[str, Any]:
        """Recompute and return the driver's snapshot.

        Query params:
            state: live working-state code or name, if the caller knows it
            name: driver display name
        """
        key = DriverKey(vehicle_id, slot, driver_id)
        snapshot = await service.refresh(key, current_state=state, driver_name=name)
        return snapshot.model_dump(mode="json")

    @router.get("/{vehicle_id}/{slot}/{driver_id}/timeline")
    async def get_timeline(
        vehicle_id: str,
        driver_id: str,
        slot: int = Path(..., ge=1, le=2),
    ) -> dict[str, Any]:
        """Normal / overtime slices over the display range."""
        key = DriverKey(vehicle_id, slot, driver_id)
        try:
            view = await service.timeline(key)
        except FeedUnavailableError as exc:
            logger.warning("Timeline unavailable for %s: %s", key, exc)
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return view.model_dump(mode="json")

    return router
