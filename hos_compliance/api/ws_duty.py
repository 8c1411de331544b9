"""WebSocket endpoint streaming one driver's duty state to a display.

Path: /ws/duty/{vehicle_id}/{slot}/{driver_id}

Messages sent to the client:
    {"type": "snapshot", "snapshot": {...}}     on every recomputation
    {"type": "countdown", "label": "..."}       every tick while a countdown runs

Each connection owns at most one countdown ticker; it is replaced on
every new snapshot and stopped when the client goes away.  Any text the
client sends is treated as a refresh request.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from hos_compliance.domain.snapshot import ComplianceSnapshot
from hos_compliance.foundation.identifiers import DriverKey
from hos_compliance.services.countdown import CountdownTicker, TickerHandle
from hos_compliance.services.duty import DriverDutyService

logger = logging.getLogger(__name__)


class DutyBinding:
    """One display connection bound to one driver key.

    Pushes are serialised so that only the newest snapshot owns a ticker.
    """

    def __init__(self, websocket: WebSocket, ticker: CountdownTicker) -> None:
        self._websocket = websocket
        self._ticker = ticker
        self._handle: TickerHandle | None = None
        self._closed = False
        self._lock = asyncio.Lock()

    async def push(self, snapshot: ComplianceSnapshot) -> None:
        async with self._lock:
            if self._closed:
                return
            self._stop_ticker()
            await self._websocket.send_json({
                "type": "snapshot",
                "snapshot": snapshot.model_dump(mode="json"),
            })
            if snapshot.countdown is not None and not self._closed:
                self._handle = self._ticker.start(snapshot.countdown, self._send_label)

    async def _send_label(self, label: str) -> None:
        if not self._closed:
            await self._websocket.send_json({"type": "countdown", "label": label})

    def close(self) -> None:
        self._closed = True
        self._stop_ticker()

    def _stop_ticker(self) -> None:
        if self._handle is not None:
            self._handle.stop()
            self._handle = None


def create_duty_router(service: DriverDutyService, ticker: CountdownTicker) -> APIRouter:
    """Factory that wires the duty display endpoint to the duty service."""

    router = APIRouter()

    @router.websocket("/ws/duty/{vehicle_id}/{slot}/{driver_id}")
    async def stream_duty(
        websocket: WebSocket,
        vehicle_id: str,
        slot: int,
        driver_id: str,
    ) -> None:
        await websocket.accept()
        key = DriverKey(vehicle_id, slot, driver_id)
        binding = DutyBinding(websocket, ticker)
        dispose = await service.subscribe(key, binding.push)
        logger.info("Display connected for %s", key)

        try:
            if await service.cache.last_snapshot(key) is None:
                await service.refresh(key)
            while True:
                await websocket.receive_text()
                await service.refresh(key)
        except WebSocketDisconnect:
            logger.info("Display disconnected from %s", key)
        finally:
            dispose()
            binding.close()

    return router
