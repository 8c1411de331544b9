"""WebSocket endpoint for vehicle telemetry ingestion.

Path: /ws/telemetry

Accepts tracker frames ({"imei"/"vehicle_id", "timestamp", "io"}),
validates them at the boundary, refreshes the active driver's snapshot
(which pushes it to every bound display) and acknowledges.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from hos_compliance.domain.telemetry import TelemetryFrame
from hos_compliance.services.duty import DriverDutyService

logger = logging.getLogger(__name__)


def create_telemetry_router(service: DriverDutyService) -> APIRouter:
    """Factory that wires the telemetry endpoint to the duty service."""

    router = APIRouter()

    @router.websocket("/ws/telemetry")
    async def ingest_telemetry(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Telemetry source connected")

        try:
            while True:
                raw = await websocket.receive_json()

                # ── Validate at the boundary ─────────────────────────────
                try:
                    frame = TelemetryFrame.model_validate(raw)
                except ValidationError as exc:
                    await websocket.send_json({
                        "status": "error",
                        "reason": "invalid_frame",
                        "detail": exc.errors(include_url=False, include_context=False),
                    })
                    continue

                # ── Refresh the active driver ────────────────────────────
                snapshot = await service.handle_frame(frame)

                # ── Acknowledge ──────────────────────────────────────────
                await websocket.send_json({
                    "status": "accepted",
                    "vehicle_id": frame.vehicle_id,
                    "driver_key": str(snapshot.key) if snapshot is not None else None,
                    "has_data": snapshot.has_data if snapshot is not None else False,
                    "warnings": snapshot.warnings if snapshot is not None else [],
                })

        except WebSocketDisconnect:
            logger.info("Telemetry source disconnected")

    return router
