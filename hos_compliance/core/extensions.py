"""ExtensionLedger — weekly count of days driven beyond the base limit.

Driving is bucketed per local calendar day of the current ISO week.
Segments that cross midnight are split so each day gets its true share,
and segments that began last week are clipped at Monday 00:00.  A day
counts as an extension only when its driving is *strictly* greater than
the base daily limit: exactly 9h00m00s is not an extension.

The ledger reports usage against the weekly allowance; it does not cap
it.  Going over the allowance is flagged, not hidden.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, tzinfo

from hos_compliance.domain.activity import Segment
from hos_compliance.domain.compliance import ExtensionRecord, ExtensionSummary
from hos_compliance.domain.enums import ActivityState
from hos_compliance.domain.limits import HosLimits
from hos_compliance.foundation.clock import local_date, split_at_midnights, start_of_week


class ExtensionLedger:
    """Counts driving-extension days in the week containing *now*."""

    def __init__(self, limits: HosLimits | None = None) -> None:
        self._limits = limits or HosLimits()

    def driving_per_day(
        self,
        segments: Iterable[Segment],
        now: datetime,
        tz: tzinfo,
    ) -> dict[date, timedelta]:
        """Driving per local day of the current week, in calendar order."""
        week_start = start_of_week(now, tz)
        per_day: dict[date, timedelta] = {}

        for segment in segments:
            if segment.state is not ActivityState.DRIVING:
                continue
            clipped = segment.clip(week_start, now)
            if clipped is None:
                continue
            for lo, hi in split_at_midnights(clipped.start, clipped.end, tz):
                day = local_date(lo, tz)
                per_day[day] = per_day.get(day, timedelta(0)) + (hi - lo)

        return dict(sorted(per_day.items()))

    def summarize(
        self,
        segments: Iterable[Segment],
        now: datetime,
        tz: tzinfo,
    ) -> ExtensionSummary:
        base = self._limits.base_daily_driving
        allowance = self._limits.weekly_extension_allowance
        today = local_date(now, tz)

        records = [
            ExtensionRecord(day=day, driving=driving, exceeded_base=driving > base)
            for day, driving in self.driving_per_day(segments, now, tz).items()
        ]
        including = sum(1 for r in records if r.exceeded_base)
        before = sum(1 for r in records if r.exceeded_base and r.day != today)

        return ExtensionSummary(
            records=records,
            used_before_today=before,
            used_including_today=including,
            allowance=allowance,
            available=max(0, allowance - before),
            over_allowance=including > allowance,
        )
