"""Deterministic keys for per-driver state."""

from __future__ import annotations

from typing import NamedTuple


class DriverKey(NamedTuple):
    """Identifies one driver card in one tachograph slot of one vehicle."""

    vehicle_id: str
    slot: int
    driver_id: str

    def __str__(self) -> str:
        return f"{self.vehicle_id}:{self.slot}:{self.driver_id}"

    @classmethod
    def parse(cls, value: str) -> "DriverKey":
        """Inverse of ``str(key)``.  Driver ids may themselves contain ':'."""
        vehicle_id, slot, driver_id = value.split(":", 2)
        return cls(vehicle_id, int(slot), driver_id)
