"""Timezone-aware clock and calendar utilities.

All timestamps in hos-compliance MUST be timezone-aware.  ``utc_now`` is
the single source of "now" so tests can monkey-patch it trivially.  Day
and week boundaries are computed in a configurable local zone because
the regulation counts calendar days where the driver is, not in UTC.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def resolve_zone(name: str | None) -> tzinfo:
    """Return the tzinfo for an IANA name, UTC when *name* is empty."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (common in upstream exports)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> datetime | None:
    """Best-effort conversion of an upstream timestamp to an aware datetime.

    Accepts datetimes, epoch milliseconds (int/float or numeric strings)
    and ISO-8601 strings.  Returns None for anything missing, non-finite
    or unparsable so callers can drop the record.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(float(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _from_epoch_ms(float(text))
        except ValueError:
            pass
        try:
            return ensure_aware(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def _from_epoch_ms(ms: float) -> datetime | None:
    if not math.isfinite(ms):
        return None
    try:
        return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _utc(moment: datetime) -> datetime:
    # Aware datetimes sharing one ZoneInfo subtract as wall-clock time;
    # normalising to UTC keeps durations exact across DST changes.
    return moment.astimezone(timezone.utc)


def start_of_day(moment: datetime, tz: tzinfo) -> datetime:
    """Local midnight of the day containing *moment*."""
    local = moment.astimezone(tz)
    return _utc(datetime.combine(local.date(), time.min, tzinfo=tz))


def next_midnight(moment: datetime, tz: tzinfo) -> datetime:
    """Local midnight following *moment*.

    Built from the calendar date rather than by adding 24h so DST
    transitions yield 23h / 25h days.
    """
    local_day = moment.astimezone(tz).date()
    return _utc(datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=tz))


def start_of_week(moment: datetime, tz: tzinfo) -> datetime:
    """Local Monday 00:00 of the ISO week containing *moment*."""
    local_day = moment.astimezone(tz).date()
    monday = local_day - timedelta(days=local_day.weekday())
    return _utc(datetime.combine(monday, time.min, tzinfo=tz))


def local_date(moment: datetime, tz: tzinfo) -> date:
    return moment.astimezone(tz).date()


def split_at_midnights(
    start: datetime, end: datetime, tz: tzinfo
) -> Iterator[tuple[datetime, datetime]]:
    """Yield ``(slice_start, slice_end)`` pieces of ``[start, end)``.

    Each piece lies within a single local calendar day.  The pieces are
    contiguous and their durations sum to ``end - start``.
    """
    cursor = start
    while cursor < end:
        boundary = next_midnight(cursor, tz)
        slice_end = min(end, boundary)
        yield cursor, slice_end
        cursor = slice_end
