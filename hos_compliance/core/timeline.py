"""ActivityTimelineBuilder — turns transition events into gap-free segments.

For consecutive events ``(prev, curr)`` the span ``[prev, curr)`` belongs
to ``prev.to_state``.  A trailing segment carries the last state up to
"now".  Segment boundaries always come from consecutive timestamps, so
the output never overlaps and sums exactly to ``now - events[0]``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from typing import Any, Union

from pydantic import ValidationError

from hos_compliance.domain.activity import ActivityEvent, Segment
from hos_compliance.domain.enums import ActivityState
from hos_compliance.foundation.clock import parse_timestamp

logger = logging.getLogger(__name__)

EventLike = Union[ActivityEvent, Mapping[str, Any]]


class ActivityTimelineBuilder:
    """Stateless builder; safe to share between drivers."""

    def normalize(
        self,
        events: Iterable[EventLike],
        until: datetime | None = None,
    ) -> list[ActivityEvent]:
        """Validate, drop unusable events and sort ascending by timestamp.

        Mappings are accepted with ``timestamp`` as a datetime, ISO string
        or epoch milliseconds.  Callers never have to pre-sort.  Events
        later than *until* are dropped.
        """
        usable: list[ActivityEvent] = []
        dropped = 0
        future = 0
        for item in events:
            event = item if isinstance(item, ActivityEvent) else self._coerce(item)
            if event is None:
                dropped += 1
                continue
            if until is not None and event.timestamp > until:
                future += 1
                continue
            usable.append(event)
        if dropped:
            logger.debug("Dropped %d event(s) with unusable timestamps", dropped)
        if future:
            logger.debug("Ignored %d event(s) after %s", future, until)
        # sorted() is stable: equal timestamps keep feed order
        return sorted(usable, key=lambda e: e.timestamp)

    def build(self, events: Iterable[EventLike], now: datetime) -> list[Segment]:
        """Build the ordered segment list covering ``[events[0], now]``.

        Events after *now* are ignored.  Fewer than two usable events
        yields an empty list.
        """
        ordered = self.normalize(events, until=now)
        if len(ordered) < 2:
            return []

        segments: list[Segment] = []
        for prev, curr in zip(ordered, ordered[1:]):
            if curr.timestamp <= prev.timestamp:
                continue
            segments.append(
                Segment(state=prev.to_state, start=prev.timestamp, end=curr.timestamp)
            )

        last = ordered[-1]
        if now > last.timestamp:
            segments.append(Segment(state=last.to_state, start=last.timestamp, end=now))
        return segments

    @staticmethod
    def _coerce(raw: Mapping[str, Any]) -> ActivityEvent | None:
        timestamp = parse_timestamp(raw.get("timestamp"))
        if timestamp is None:
            return None
        try:
            return ActivityEvent(
                timestamp=timestamp,
                from_state=raw.get("from_state", ActivityState.RESTING),
                to_state=raw.get("to_state"),
                raw_state=raw.get("raw_state", raw.get("to_state")),
            )
        except ValidationError:
            return None


def continuous_rest(segments: list[Segment]) -> timedelta:
    """Length of the trailing run of resting segments.

    Zero when the most recent segment is driving or working.
    """
    total = timedelta(0)
    for segment in reversed(segments):
        if segment.state is not ActivityState.RESTING:
            break
        total += segment.duration
    return total
