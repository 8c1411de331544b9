"""Duration formatting and percentage helpers for presentation values."""

from __future__ import annotations

import math
from datetime import timedelta

HOUR = timedelta(hours=1)


def format_clock(value: timedelta | None, include_seconds: bool = True) -> str:
    """Render a duration as ``HH:MM:SS`` (or ``HH:MM``).

    Negative, zero and missing durations render as all zeros.  Seconds are
    truncated, never rounded up, so a countdown never shows time that is
    not left.  Hours are not wrapped at 24.
    """
    total = 0 if value is None else max(0, math.floor(value.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if include_seconds:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}"


def format_limit(value: timedelta) -> str:
    """Compact limit label: ``4h30``, ``9h``, ``10h``."""
    total_minutes = int(value.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h{minutes:02d}" if minutes else f"{hours}h"


def to_hours(value: timedelta) -> float:
    """Non-negative hours, rounded for transport."""
    return round(max(0.0, value / HOUR), 4)


def clamp_pct(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return round(max(0.0, min(value, 100.0)), 2)


def pct(part: timedelta, whole: timedelta) -> float:
    """*part* as a clamped percentage of *whole*; zero-length wholes give 0."""
    if whole <= timedelta(0):
        return 0.0
    return clamp_pct(part / whole * 100.0)
