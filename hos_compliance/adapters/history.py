"""HistoryRecordAdapter — numeric-code records from the driver event log.

Expected raw format:
{
    "timestamp": "2026-02-13T14:00:00Z",
    "from_state": 0,
    "to_state": 3,
    "from_state_name": "resting",
    "to_state_name": "driving",
    "eventflags": ["drive_start"],
    "elapsed": 5400000
}

Codes: 0 rest, 1 availability, 2 work, 3 driving, 5 unlogged.
"""

from __future__ import annotations

from typing import Any

from hos_compliance.adapters.base import EventAdapter
from hos_compliance.domain.activity import ActivityEvent
from hos_compliance.domain.enums import _as_code
from hos_compliance.foundation.clock import parse_timestamp


class HistoryRecordAdapter(EventAdapter):
    """Maps driver-history records carrying numeric state codes."""

    @property
    def source_name(self) -> str:
        return "driver_history"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return _as_code(raw.get("to_state")) is not None

    def adapt(self, raw: dict[str, Any]) -> ActivityEvent:
        timestamp = parse_timestamp(raw.get("timestamp"))
        if timestamp is None:
            raise ValueError(f"driver_history record has unusable timestamp {raw.get('timestamp')!r}")

        to_code = _as_code(raw.get("to_state"))
        from_code = _as_code(raw.get("from_state"))

        return ActivityEvent(
            timestamp=timestamp,
            from_state=from_code if from_code is not None else raw.get("from_state_name"),
            to_state=to_code,
            raw_state=to_code,
        )
