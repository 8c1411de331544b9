"""Calculator outputs — windows, totals, break chain and extension ledger.

These are pure data structures produced by the ``core`` calculators.
They carry durations as ``timedelta`` so arithmetic stays exact; the
presentation snapshot converts them to hours and labels.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from pydantic import BaseModel, Field

from hos_compliance.domain.enums import SessionKind

_ZERO = timedelta(0)


class Window(BaseModel):
    """An accumulation window ``[start, end)``; ``end`` is always "now"."""

    kind: SessionKind
    start: datetime
    end: datetime
    valid: bool = Field(True, description="False when the session start fell back to midnight")

    model_config = {"frozen": True}

    @property
    def span(self) -> timedelta:
        return max(_ZERO, self.end - self.start)


class WindowTotals(BaseModel):
    """Per-state durations accumulated inside one window."""

    window: Window
    driving: timedelta = _ZERO
    working: timedelta = Field(_ZERO, description="Other work only; driving is tracked separately")
    resting: timedelta = _ZERO

    model_config = {"frozen": True}

    @property
    def legal_work(self) -> timedelta:
        """Driving plus other work, the composite the work limit applies to."""
        return self.driving + self.working

    @property
    def covered(self) -> timedelta:
        return self.driving + self.working + self.resting


class BreakChainState(BaseModel):
    """Continuous driving since the last valid break, and break credit held."""

    continuous_driving: timedelta = _ZERO
    pending_breaks: list[timedelta] = Field(
        default_factory=list,
        description="Rest spans observed since the chain opened, in order",
    )
    break_credit_minutes: float = 0.0
    break_satisfied: bool = False
    remaining_until_break_required: timedelta = _ZERO
    break_remaining_minutes: float = 0.0

    model_config = {"frozen": True}


class ExtensionRecord(BaseModel):
    """Driving done on one local calendar day of the current week."""

    day: date
    driving: timedelta
    exceeded_base: bool

    model_config = {"frozen": True}


class ExtensionSummary(BaseModel):
    """Days of the current ISO week on which the base driving limit was exceeded."""

    records: list[ExtensionRecord] = Field(default_factory=list)
    used_before_today: int = 0
    used_including_today: int = 0
    allowance: int = 2
    available: int = Field(2, description="Extensions left for today, never negative")
    over_allowance: bool = False

    model_config = {"frozen": True}
