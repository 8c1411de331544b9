"""Activity events and segments — the inputs every calculator shares.

An ActivityEvent is an observed state transition.  The interval that
*follows* an event is governed by that event's ``to_state`` until the
next event arrives.

A Segment is a maximal span during which the state did not change.
Segments are produced once by the timeline builder and never mutated.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from hos_compliance.domain.enums import ActivityState
from hos_compliance.foundation.clock import ensure_aware

RawState = Union[int, str]


class ActivityEvent(BaseModel):
    """A driver activity transition observed by the tachograph."""

    timestamp: datetime = Field(..., description="When the transition happened (UTC-aware)")
    from_state: ActivityState = Field(ActivityState.RESTING, description="State before the transition")
    to_state: ActivityState = Field(..., description="State governing the interval after this event")
    raw_state: Optional[RawState] = Field(
        default=None,
        description="Upstream code or name behind to_state, kept for the duty label",
    )

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def timestamp_must_be_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @field_validator("from_state", "to_state", mode="before")
    @classmethod
    def normalise_state(cls, v: Any) -> ActivityState:
        return ActivityState.from_raw(v)

    @property
    def starts_activity(self) -> bool:
        """True for a rest → driving/working transition."""
        return (
            self.from_state is ActivityState.RESTING
            and self.to_state is not ActivityState.RESTING
        )


class Segment(BaseModel):
    """A continuous span ``[start, end)`` spent in one activity state."""

    state: ActivityState
    start: datetime
    end: datetime

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def end_after_start(self) -> "Segment":
        if self.end <= self.start:
            raise ValueError(f"segment end {self.end} must be after start {self.start}")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def clip(self, start: datetime, end: datetime) -> Optional["Segment"]:
        """Return the part of this segment inside ``[start, end)``, or None."""
        lo = max(self.start, start)
        hi = min(self.end, end)
        if hi <= lo:
            return None
        return Segment(state=self.state, start=lo, end=hi)


class ClassifiedSegment(BaseModel):
    """A display slice of a segment tagged as normal or overtime."""

    state: ActivityState
    start: datetime
    end: datetime
    overtime: bool = False

    model_config = {"frozen": True}

    @property
    def duration(self) -> timedelta:
        return self.end - self.start
