"""ComplianceSnapshot — the presentation-ready view of one driver's duty state.

Immutable and fully re-derivable from the event log: recomputing with the
same inputs yields an equal snapshot.  All durations are expressed in
hours (or minutes where the regulation speaks in minutes) so consumers
never have to do time arithmetic.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from hos_compliance.domain.activity import ClassifiedSegment
from hos_compliance.domain.enums import CountdownMode, DutyMode, SessionKind
from hos_compliance.foundation.identifiers import DriverKey

NO_DRIVER_LABEL = "No active driver"
NO_DATA_LABEL = "No activity data"


class WindowReport(BaseModel):
    """Totals for one accumulation window, in hours."""

    start: datetime
    valid: bool = True
    driving_hours: float = 0.0
    working_hours: float = Field(0.0, description="Other work only, excluding driving")
    resting_hours: float = 0.0
    legal_work_hours: float = Field(0.0, description="Driving plus other work")
    extra_driving_hours: float = Field(0.0, description="Driving beyond the window's base limit")
    extra_work_hours: float = Field(0.0, description="Legal work beyond the daily base limit")

    model_config = {"frozen": True}


class BreakReport(BaseModel):
    continuous_driving_hours: float = 0.0
    remaining_until_break_hours: float = 0.0
    break_credit_minutes: float = 0.0
    break_remaining_minutes: float = 0.0
    break_satisfied: bool = False

    model_config = {"frozen": True}


class ExtensionReport(BaseModel):
    used_before_today: int = 0
    used_including_today: int = 0
    allowance: int = 2
    available: int = 2
    over_allowance: bool = False

    model_config = {"frozen": True}


class Allowances(BaseModel):
    """Time left before each limit is reached, in hours."""

    break_remaining_hours: float = 0.0
    daily_remaining_hours: float = 0.0
    weekly_remaining_hours: float = 0.0
    fortnight_remaining_hours: float = 0.0

    model_config = {"frozen": True}


class CounterBand(BaseModel):
    """A progress bar split into used / extra-available / remaining bands.

    The three percentages are relative to the base limit and each is
    clamped to [0, 100].  ``extra_available_pct`` is relative to the extra
    allowance (e.g. the 1h driving extension).
    """

    value_hours: float = 0.0
    max_hours: float = 0.0
    base_used_pct: float = Field(0.0, ge=0.0, le=100.0)
    extra_available_pct: float = Field(0.0, ge=0.0, le=100.0)
    remaining_pct: float = Field(100.0, ge=0.0, le=100.0)
    text: str = ""

    model_config = {"frozen": True}


class Countdown(BaseModel):
    """A wall-clock target the presentation layer counts down to."""

    mode: CountdownMode
    target: datetime
    running_label: str
    expired_label: str

    model_config = {"frozen": True}


class Labels(BaseModel):
    primary: str = NO_DATA_LABEL
    secondary: str = ""

    model_config = {"frozen": True}


class ComplianceSnapshot(BaseModel):
    """Per ``(vehicle, slot, driver)`` compliance view at one instant."""

    vehicle_id: str
    slot: int
    driver_id: str
    driver_name: Optional[str] = None
    computed_at: datetime
    duty_mode: DutyMode = DutyMode.IDLE
    has_data: bool = False

    windows: dict[SessionKind, WindowReport] = Field(default_factory=dict)
    continuous_rest_hours: float = 0.0
    break_chain: BreakReport = Field(default_factory=BreakReport)
    extensions: ExtensionReport = Field(default_factory=ExtensionReport)
    daily_driving_limit_hours: float = 9.0
    allowances: Allowances = Field(default_factory=Allowances)

    counters: dict[str, CounterBand] = Field(default_factory=dict)
    labels: Labels = Field(default_factory=Labels)
    hints: dict[str, str] = Field(default_factory=dict)
    countdown: Optional[Countdown] = None
    warnings: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def key(self) -> DriverKey:
        return DriverKey(self.vehicle_id, self.slot, self.driver_id)

    def window(self, kind: SessionKind) -> WindowReport:
        return self.windows[kind]

    def with_warning(self, warning: str) -> "ComplianceSnapshot":
        """Copy of this snapshot carrying an extra recoverable warning."""
        return self.model_copy(update={"warnings": [*self.warnings, warning]})

    # ── Neutral states ───────────────────────────────────────────────────

    @classmethod
    def empty(
        cls,
        key: DriverKey,
        computed_at: datetime,
        driver_name: str | None = None,
        duty_mode: DutyMode = DutyMode.IDLE,
        windows: dict[SessionKind, WindowReport] | None = None,
    ) -> "ComplianceSnapshot":
        """All-zero snapshot for a driver with too little history."""
        return cls(
            vehicle_id=key.vehicle_id,
            slot=key.slot,
            driver_id=key.driver_id,
            driver_name=driver_name,
            computed_at=computed_at,
            duty_mode=duty_mode,
            has_data=False,
            windows=windows or {},
            labels=Labels(primary=NO_DATA_LABEL),
        )

    @classmethod
    def neutral(cls, key: DriverKey, computed_at: datetime) -> "ComplianceSnapshot":
        """Reset state pushed to bound displays when no driver is carded in."""
        return cls(
            vehicle_id=key.vehicle_id,
            slot=key.slot,
            driver_id=key.driver_id,
            computed_at=computed_at,
            duty_mode=DutyMode.IDLE,
            has_data=False,
            labels=Labels(primary=NO_DRIVER_LABEL, secondary="Week: --"),
        )


class TimelineView(BaseModel):
    """Overtime-classified slices for the timeline widget."""

    vehicle_id: str
    slot: int
    driver_id: str
    range_start: datetime
    range_end: datetime
    segments: list[ClassifiedSegment] = Field(default_factory=list)

    model_config = {"frozen": True}
