"""NamedStateAdapter — records that only carry a state name.

Expected raw format (timeline exports, tachograph downloads):
{
    "ts": 1760680800000,            # or "timestamp" / "time" / "date"
    "to_state_name": "driving",     # or "state_name" / "state"
    "from_state_name": "resting"
}

Names are matched by prefix ("driv…", "work…"); anything else, including
"unlogged", "error" and "unknown", is rest.
"""

from __future__ import annotations

from typing import Any

from hos_compliance.adapters.base import EventAdapter
from hos_compliance.domain.activity import ActivityEvent
from hos_compliance.foundation.clock import parse_timestamp

_TIME_KEYS = ("timestamp", "ts", "time", "date")
_STATE_KEYS = ("to_state_name", "state_name", "state")


class NamedStateAdapter(EventAdapter):
    """Maps records whose state is given by name rather than code."""

    @property
    def source_name(self) -> str:
        return "state_name"

    def can_handle(self, raw: dict[str, Any]) -> bool:
        return any(isinstance(raw.get(k), str) for k in _STATE_KEYS)

    def adapt(self, raw: dict[str, Any]) -> ActivityEvent:
        stamp = next((raw[k] for k in _TIME_KEYS if raw.get(k) is not None), None)
        timestamp = parse_timestamp(stamp)
        if timestamp is None:
            raise ValueError(f"state_name record has unusable timestamp {stamp!r}")

        name = next(raw[k] for k in _STATE_KEYS if isinstance(raw.get(k), str))

        return ActivityEvent(
            timestamp=timestamp,
            from_state=raw.get("from_state_name"),
            to_state=name,
            raw_state=name.strip().lower(),
        )
