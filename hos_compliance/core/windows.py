"""WindowAccumulator — per-state totals over session / day / week / fortnight.

Every live window ends at "now"; only the start differs:

    session      most recent rest → activity transition within the lookback,
                 else local midnight (flagged ``valid=False``)
    daily        local midnight
    weekly       local Monday 00:00
    fortnightly  local Monday 00:00 of the previous week

Bucketing rule: a segment contributes its *whole* duration to every
window whose start is at or before the segment's start.  A segment that
began before a window's start is left out of that window entirely; it is
not pro-rated.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo

from hos_compliance.domain.activity import ActivityEvent, Segment
from hos_compliance.domain.compliance import Window, WindowTotals
from hos_compliance.domain.enums import ActivityState, SessionKind
from hos_compliance.domain.limits import HosLimits
from hos_compliance.foundation.clock import start_of_day, start_of_week


def session_start(
    events: Iterable[ActivityEvent],
    now: datetime,
    lookback: timedelta,
) -> datetime | None:
    """Timestamp of the latest rest → activity transition in the lookback."""
    horizon = now - lookback
    latest: datetime | None = None
    for event in events:
        if not event.starts_activity:
            continue
        if event.timestamp < horizon or event.timestamp > now:
            continue
        if latest is None or event.timestamp > latest:
            latest = event.timestamp
    return latest


def build_windows(
    events: Iterable[ActivityEvent],
    now: datetime,
    limits: HosLimits,
    tz: tzinfo,
) -> list[Window]:
    """Construct the four live windows ending at *now*."""
    day = start_of_day(now, tz)
    week = start_of_week(now, tz)
    fortnight = start_of_week(week - timedelta(days=1), tz)
    session = session_start(events, now, limits.session_lookback)

    return [
        Window(
            kind=SessionKind.SESSION,
            start=session if session is not None else day,
            end=now,
            valid=session is not None,
        ),
        Window(kind=SessionKind.DAILY, start=day, end=now),
        Window(kind=SessionKind.WEEKLY, start=week, end=now),
        Window(kind=SessionKind.FORTNIGHTLY, start=fortnight, end=now),
    ]


class WindowAccumulator:
    """Sums segment durations per state into each requested window."""

    def accumulate(
        self,
        segments: Iterable[Segment],
        windows: Iterable[Window],
    ) -> dict[SessionKind, WindowTotals]:
        windows = list(windows)
        buckets: dict[SessionKind, dict[ActivityState, timedelta]] = {
            w.kind: {state: timedelta(0) for state in ActivityState} for w in windows
        }

        for segment in segments:
            for window in windows:
                if window.start <= segment.start and segment.end <= window.end:
                    buckets[window.kind][segment.state] += segment.duration

        return {
            w.kind: WindowTotals(
                window=w,
                driving=buckets[w.kind][ActivityState.DRIVING],
                working=buckets[w.kind][ActivityState.WORKING],
                resting=buckets[w.kind][ActivityState.RESTING],
            )
            for w in windows
        }
