"""Controlled enumerations for the hos-compliance domain.

Every categorical field in the domain MUST reference an enum defined here.
Raw tachograph codes are mapped onto these at the boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ActivityState(str, Enum):
    """Normalised driver activity.  Anything not driving or working is rest."""

    RESTING = "resting"
    WORKING = "working"
    DRIVING = "driving"

    @classmethod
    def from_raw(cls, raw: Any) -> "ActivityState":
        """Map a raw tachograph code or state name onto an ActivityState.

        Numeric codes: 2 = working, 3 = driving, everything else (0 rest,
        1 availability, 5 unlogged, unknown) = resting.
        """
        if isinstance(raw, cls):
            return raw
        code = _as_code(raw)
        if code is not None:
            return _CODE_MAP.get(code, cls.RESTING)
        name = str(raw or "").strip().lower()
        if name.startswith("driv"):
            return cls.DRIVING
        if name.startswith("work"):
            return cls.WORKING
        return cls.RESTING

    @property
    def is_drive_like(self) -> bool:
        """Driving and other work both count toward the overtime display."""
        return self is not ActivityState.RESTING


class SessionKind(str, Enum):
    """Accumulation windows.  All end at "now"; only the start differs."""

    SESSION = "session"
    DAILY = "daily"
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"


class DutyMode(str, Enum):
    """Primary-label state, keyed off the most recent raw activity code."""

    ACTIVE = "active"
    RESTING = "resting"
    IDLE = "idle"

    @classmethod
    def from_raw(cls, raw: Any) -> "DutyMode":
        """Driving/working → ACTIVE, explicit rest (0) → RESTING, else IDLE."""
        if raw is None:
            return cls.IDLE
        if isinstance(raw, ActivityState):
            return cls.RESTING if raw is ActivityState.RESTING else cls.ACTIVE
        code = _as_code(raw)
        if code is not None:
            if code in (2, 3):
                return cls.ACTIVE
            return cls.RESTING if code == 0 else cls.IDLE
        name = str(raw).strip().lower()
        if name.startswith(("driv", "work")):
            return cls.ACTIVE
        if name.startswith("rest"):
            return cls.RESTING
        return cls.IDLE


class CountdownMode(str, Enum):
    """What a running countdown is counting toward."""

    BREAK = "break"
    DAILY_LIMIT = "daily_limit"
    REST = "rest"


_CODE_MAP: dict[int, ActivityState] = {
    0: ActivityState.RESTING,
    2: ActivityState.WORKING,
    3: ActivityState.DRIVING,
    5: ActivityState.RESTING,
}


def _as_code(raw: Any) -> int | None:
    """Return *raw* as an int code, or None when it is not numeric."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    return None
