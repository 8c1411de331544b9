"""Telemetry frames from the vehicle tracker and driver slot selection.

A frame carries the tachograph IO block for both driver slots:

    driver1CardPresence, driver1Id, driver1Name, driver1WorkingState
    driver2CardPresence, driver2Id, driver2Name, driver2WorkingState

Only the slot holding a carded-in, identified driver is tracked; slot 1
wins when both qualify.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from hos_compliance.domain.enums import _as_code
from hos_compliance.foundation.clock import parse_timestamp
from hos_compliance.foundation.identifiers import DriverKey


class TelemetryFrame(BaseModel):
    """One tracker update for a vehicle."""

    vehicle_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("vehicle_id", "imei"),
        description="Tracker / vehicle identifier (IMEI upstream)",
    )
    timestamp: Optional[datetime] = Field(
        default=None,
        description="Frame time; the receive time is used when missing",
    )
    io: dict[str, Any] = Field(default_factory=dict, description="Raw tachograph IO block")

    model_config = {"frozen": True}

    @field_validator("timestamp", mode="before")
    @classmethod
    def parse_frame_time(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)


class ActiveSlot(BaseModel):
    """The driver slot currently in charge of the vehicle."""

    slot: int = Field(..., ge=1, le=2)
    driver_id: str
    driver_name: str
    working_state: Optional[int] = Field(
        default=None,
        description="Live tachograph working-state code for this slot",
    )

    model_config = {"frozen": True}

    def key(self, vehicle_id: str) -> DriverKey:
        return DriverKey(vehicle_id, self.slot, self.driver_id)


def pick_active_slot(io: dict[str, Any] | None) -> ActiveSlot | None:
    """Return the first slot with a card present and a driver id, else None."""
    if not io:
        return None
    for slot in (1, 2):
        prefix = f"driver{slot}"
        if not _truthy(io.get(f"{prefix}CardPresence")):
            continue
        driver_id = io.get(f"{prefix}Id")
        if driver_id in (None, ""):
            continue
        driver_id = str(driver_id)
        return ActiveSlot(
            slot=slot,
            driver_id=driver_id,
            driver_name=str(io.get(f"{prefix}Name") or driver_id),
            working_state=_as_code(io.get(f"{prefix}WorkingState")),
        )
    return None


def _truthy(value: Any) -> bool:
    code = _as_code(value)
    if code is not None:
        return code != 0
    return bool(value)
