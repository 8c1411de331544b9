"""OvertimeClassifier — normal vs. overtime slices for the timeline view.

Display only: nothing here feeds the compliance snapshot.  Driving and
other work are both "drive-like" for this purpose.  Per local day, the
first 10 hours of drive-like time are normal; anything beyond is
overtime.  Rest is never overtime.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo

from hos_compliance.domain.activity import ActivityEvent, ClassifiedSegment, Segment
from hos_compliance.domain.limits import HosLimits
from hos_compliance.foundation.clock import next_midnight, start_of_day, utc_now


class OvertimeClassifier:
    def __init__(self, limits: HosLimits | None = None) -> None:
        self._threshold = (limits or HosLimits()).extended_daily_driving

    def classify(
        self,
        segments: Iterable[Segment],
        tz: tzinfo,
    ) -> list[ClassifiedSegment]:
        """Split segments at local midnight, then at the daily threshold."""
        result: list[ClassifiedSegment] = []
        day_end: datetime | None = None
        used = timedelta(0)

        for segment in segments:
            cursor = segment.start
            while cursor < segment.end:
                if day_end is None or cursor >= day_end:
                    day_end = next_midnight(cursor, tz)
                    used = timedelta(0)
                slice_end = min(segment.end, day_end)

                if not segment.state.is_drive_like:
                    result.append(_slice(segment, cursor, slice_end, overtime=False))
                else:
                    headroom = max(timedelta(0), self._threshold - used)
                    split = min(slice_end, cursor + headroom)
                    if split > cursor:
                        result.append(_slice(segment, cursor, split, overtime=False))
                    if slice_end > split:
                        result.append(_slice(segment, split, slice_end, overtime=True))
                    used += slice_end - cursor

                cursor = slice_end

        return result


def display_range(
    events: list[ActivityEvent],
    tz: tzinfo,
) -> tuple[datetime, datetime]:
    """Range the timeline widget shows for *events* (sorted ascending).

    First to last event when they span a positive interval; otherwise the
    local day containing the last event, or today when there are none.
    """
    if len(events) >= 2 and events[-1].timestamp > events[0].timestamp:
        return events[0].timestamp, events[-1].timestamp
    reference = events[-1].timestamp if events else utc_now()
    return start_of_day(reference, tz), next_midnight(reference, tz)


def _slice(segment: Segment, start: datetime, end: datetime, overtime: bool) -> ClassifiedSegment:
    return ClassifiedSegment(state=segment.state, start=start, end=end, overtime=overtime)
