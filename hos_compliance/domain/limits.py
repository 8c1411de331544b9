"""Regulatory limits used by every calculator.

Kept as an explicit, frozen value object so tests can run the engine
against alternative rule sets without touching environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hos_compliance.config import Settings


@dataclass(frozen=True)
class HosLimits:
    """EU-style driving, work and rest limits."""

    base_daily_driving: timedelta = timedelta(hours=9)
    extended_daily_driving: timedelta = timedelta(hours=10)
    weekly_driving: timedelta = timedelta(hours=56)
    fortnightly_driving: timedelta = timedelta(hours=90)
    weekly_extension_allowance: int = 2

    base_daily_work: timedelta = timedelta(hours=13)
    extra_daily_work: timedelta = timedelta(hours=2)

    continuous_driving: timedelta = timedelta(hours=4, minutes=30)
    single_break: timedelta = timedelta(minutes=45)
    split_break_first: timedelta = timedelta(minutes=15)
    split_break_second: timedelta = timedelta(minutes=30)

    daily_rest: timedelta = timedelta(hours=11)
    session_lookback: timedelta = timedelta(hours=48)

    @property
    def extra_daily_driving(self) -> timedelta:
        """Driving an extension day adds on top of the base limit."""
        return self.extended_daily_driving - self.base_daily_driving

    @classmethod
    def from_settings(cls, settings: "Settings") -> "HosLimits":
        return cls(
            base_daily_driving=timedelta(hours=settings.base_daily_driving_hours),
            extended_daily_driving=timedelta(hours=settings.extended_daily_driving_hours),
            weekly_driving=timedelta(hours=settings.weekly_driving_hours),
            fortnightly_driving=timedelta(hours=settings.fortnightly_driving_hours),
            weekly_extension_allowance=settings.weekly_extension_allowance,
            base_daily_work=timedelta(hours=settings.base_daily_work_hours),
            extra_daily_work=timedelta(hours=settings.extra_daily_work_hours),
            continuous_driving=timedelta(hours=settings.continuous_driving_hours),
            single_break=timedelta(minutes=settings.single_break_minutes),
            split_break_first=timedelta(minutes=settings.split_break_first_minutes),
            split_break_second=timedelta(minutes=settings.split_break_second_minutes),
            daily_rest=timedelta(hours=settings.daily_rest_hours),
            session_lookback=timedelta(hours=settings.session_lookback_hours),
        )
