"""ComplianceReporter — merges the calculators into one ComplianceSnapshot.

Design principles:
    1. Pure function of (events, now, live state): no I/O, no clock reads.
    2. The window, chain and extension calculators run independently over
       the same segment list; this module only combines their outputs.
    3. Everything the presentation layer needs is precomputed here:
       hours, clamped percentages, formatted durations, countdown target.

Primary label state machine (keyed off the most recent raw activity code):

    ACTIVE   driving / working → countdown to the break or the daily
             limit, whichever comes first; "Break required now" once the
             4h30 chain is exhausted
    RESTING  → countdown to 11h of continuous rest; "Rest complete" after
    IDLE     → neutral "Waiting for activity"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, tzinfo
from typing import Any

from hos_compliance.core.breaks import ContinuousDrivingTracker
from hos_compliance.core.extensions import ExtensionLedger
from hos_compliance.core.formatting import format_clock, format_limit, pct, to_hours
from hos_compliance.core.timeline import ActivityTimelineBuilder, EventLike, continuous_rest
from hos_compliance.core.windows import WindowAccumulator, build_windows
from hos_compliance.domain.activity import ActivityEvent
from hos_compliance.domain.compliance import (
    BreakChainState,
    ExtensionSummary,
    WindowTotals,
)
from hos_compliance.domain.enums import ActivityState, CountdownMode, DutyMode, SessionKind
from hos_compliance.domain.limits import HosLimits
from hos_compliance.domain.snapshot import (
    Allowances,
    BreakReport,
    ComplianceSnapshot,
    Countdown,
    CounterBand,
    ExtensionReport,
    Labels,
    WindowReport,
)
from hos_compliance.foundation.clock import resolve_zone
from hos_compliance.foundation.identifiers import DriverKey

logger = logging.getLogger(__name__)

_ZERO = timedelta(0)

BREAK_RUNNING_LABEL = "Break in"
BREAK_REQUIRED_LABEL = "Break required now"
DAILY_RUNNING_LABEL = "Daily limit in"
DAILY_REACHED_LABEL = "Daily driving limit reached"
REST_RUNNING_LABEL = "Rest remaining"
REST_COMPLETE_LABEL = "Rest complete"
WAITING_LABEL = "Waiting for activity"


class ComplianceReporter:
    """Builds ComplianceSnapshots from a driver's activity events.

    Stateless apart from its configuration: safe to share between drivers
    and to call concurrently.
    """

    def __init__(
        self,
        limits: HosLimits | None = None,
        tz: tzinfo | str | None = None,
        builder: ActivityTimelineBuilder | None = None,
        accumulator: WindowAccumulator | None = None,
        tracker: ContinuousDrivingTracker | None = None,
        ledger: ExtensionLedger | None = None,
    ) -> None:
        self._limits = limits or HosLimits()
        self._tz = tz if isinstance(tz, tzinfo) else resolve_zone(tz)
        self._builder = builder or ActivityTimelineBuilder()
        self._accumulator = accumulator or WindowAccumulator()
        self._tracker = tracker or ContinuousDrivingTracker(self._limits)
        self._ledger = ledger or ExtensionLedger(self._limits)

    @property
    def limits(self) -> HosLimits:
        return self._limits

    @property
    def tz(self) -> tzinfo:
        return self._tz

    @property
    def builder(self) -> ActivityTimelineBuilder:
        return self._builder

    # ── Public API ───────────────────────────────────────────────────────

    def report(
        self,
        key: DriverKey,
        events: Iterable[EventLike],
        now: datetime,
        current_state: Any = None,
        live_since: datetime | None = None,
        driver_name: str | None = None,
    ) -> ComplianceSnapshot:
        """Produce the snapshot for *key* at *now*.

        Args:
            events: Raw or validated activity events, in any order.
            current_state: Live working-state code from telemetry, if known.
            live_since: From when *current_state* is trusted (usually the
                end of the range the history was fetched for).  When the live state
                differs from the last logged one, it takes over from here.
        """
        ordered = self._with_live_state(
            self._builder.normalize(events, until=now), current_state, live_since, now
        )
        duty_mode = self._duty_mode(ordered, current_state)
        windows = build_windows(ordered, now, self._limits, self._tz)
        segments = self._builder.build(ordered, now)

        if not segments:
            logger.debug("No usable timeline for %s (%d event(s))", key, len(ordered))
            zero = self._accumulator.accumulate([], windows)
            return ComplianceSnapshot.empty(
                key,
                now,
                driver_name=driver_name,
                duty_mode=duty_mode,
                windows={kind: self._window_report(t) for kind, t in zero.items()},
            )

        totals = self._accumulator.accumulate(segments, windows)
        chain = self._tracker.track(segments)
        extensions = self._ledger.summarize(segments, now, self._tz)
        rest = continuous_rest(segments)

        return self._assemble(
            key=key,
            now=now,
            driver_name=driver_name,
            duty_mode=duty_mode,
            totals=totals,
            chain=chain,
            extensions=extensions,
            rest=rest,
        )

    # ── Live state ───────────────────────────────────────────────────────

    @staticmethod
    def _with_live_state(
        ordered: list[ActivityEvent],
        current_state: Any,
        live_since: datetime | None,
        now: datetime,
    ) -> list[ActivityEvent]:
        if current_state is None or not ordered:
            return ordered
        last = ordered[-1]
        live = ActivityState.from_raw(current_state)
        since = max(live_since or now, last.timestamp)
        if live is last.to_state or since >= now:
            return ordered
        synthetic = ActivityEvent(
            timestamp=since,
            from_state=last.to_state,
            to_state=live,
            raw_state=current_state,
        )
        return [*ordered, synthetic]

    @staticmethod
    def _duty_mode(ordered: list[ActivityEvent], current_state: Any) -> DutyMode:
        if current_state is not None:
            return DutyMode.from_raw(current_state)
        if not ordered:
            return DutyMode.IDLE
        last = ordered[-1]
        return DutyMode.from_raw(last.raw_state if last.raw_state is not None else last.to_state)

    # ── Assembly ─────────────────────────────────────────────────────────

    def _assemble(
        self,
        key: DriverKey,
        now: datetime,
        driver_name: str | None,
        duty_mode: DutyMode,
        totals: dict[SessionKind, WindowTotals],
        chain: BreakChainState,
        extensions: ExtensionSummary,
        rest: timedelta,
    ) -> ComplianceSnapshot:
        limits = self._limits
        daily = totals[SessionKind.DAILY]
        session = totals[SessionKind.SESSION]

        daily_limit = self.daily_driving_limit(daily.driving, extensions)
        daily_left = max(_ZERO, daily_limit - daily.driving)
        weekly_left = max(_ZERO, limits.weekly_driving - totals[SessionKind.WEEKLY].driving)
        fortnight_left = max(
            _ZERO, limits.fortnightly_driving - totals[SessionKind.FORTNIGHTLY].driving
        )
        break_left = chain.remaining_until_break_required

        # Session when one was found, otherwise the calendar day
        bucket = session if session.window.valid else daily
        stint = chain.continuous_driving if duty_mode is DutyMode.ACTIVE else _ZERO

        counters = {
            "driving": self._band(
                bucket.driving,
                limits.base_daily_driving,
                extra=self._available_extra_driving(bucket.driving, extensions),
                extra_max=limits.extra_daily_driving,
            ),
            "work": self._band(
                bucket.legal_work,
                limits.base_daily_work,
                extra=self._available_extra_work(bucket.legal_work),
                extra_max=limits.extra_daily_work,
            ),
            "rest": self._band(
                rest,
                limits.daily_rest,
                text=f"{to_hours(rest):.1f}h continuous / {to_hours(limits.daily_rest):.1f}h",
            ),
            "stint": self._band(stint, limits.continuous_driving),
            "daily": self._band(daily.driving, daily_limit),
            "weekly": self._band(totals[SessionKind.WEEKLY].driving, limits.weekly_driving),
        }

        labels, hints, countdown = self._labels(
            duty_mode=duty_mode,
            now=now,
            break_left=break_left,
            daily_left=daily_left,
            daily_limit=daily_limit,
            weekly_left=weekly_left,
            rest=rest,
        )

        return ComplianceSnapshot(
            vehicle_id=key.vehicle_id,
            slot=key.slot,
            driver_id=key.driver_id,
            driver_name=driver_name,
            computed_at=now,
            duty_mode=duty_mode,
            has_data=True,
            windows={kind: self._window_report(t) for kind, t in totals.items()},
            continuous_rest_hours=to_hours(rest),
            break_chain=BreakReport(
                continuous_driving_hours=to_hours(chain.continuous_driving),
                remaining_until_break_hours=to_hours(break_left),
                break_credit_minutes=chain.break_credit_minutes,
                break_remaining_minutes=chain.break_remaining_minutes,
                break_satisfied=chain.break_satisfied,
            ),
            extensions=ExtensionReport(
                used_before_today=extensions.used_before_today,
                used_including_today=extensions.used_including_today,
                allowance=extensions.allowance,
                available=extensions.available,
                over_allowance=extensions.over_allowance,
            ),
            daily_driving_limit_hours=to_hours(daily_limit),
            allowances=Allowances(
                break_remaining_hours=to_hours(break_left),
                daily_remaining_hours=to_hours(daily_left),
                weekly_remaining_hours=to_hours(weekly_left),
                fortnight_remaining_hours=to_hours(fortnight_left),
            ),
            counters=counters,
            labels=labels,
            hints=hints,
            countdown=countdown,
        )

    def daily_driving_limit(self, driven_today: timedelta, extensions: ExtensionSummary) -> timedelta:
        """9h, or 10h once today goes past 9h and an extension is still available."""
        limits = self._limits
        if driven_today > limits.base_daily_driving and extensions.available > 0:
            return limits.extended_daily_driving
        return limits.base_daily_driving

    def _available_extra_driving(self, used: timedelta, extensions: ExtensionSummary) -> timedelta:
        limits = self._limits
        if extensions.available <= 0:
            return _ZERO
        if used < limits.base_daily_driving:
            return limits.extra_daily_driving
        return max(_ZERO, limits.extended_daily_driving - used)

    def _available_extra_work(self, used: timedelta) -> timedelta:
        limits = self._limits
        over_base = max(_ZERO, used - limits.base_daily_work)
        return max(_ZERO, limits.extra_daily_work - over_base)

    def _window_report(self, totals: WindowTotals) -> WindowReport:
        limits = self._limits
        kind = totals.window.kind
        if kind is SessionKind.WEEKLY:
            base_driving, base_work = limits.weekly_driving, None
        elif kind is SessionKind.FORTNIGHTLY:
            base_driving, base_work = limits.fortnightly_driving, None
        else:
            base_driving, base_work = limits.base_daily_driving, limits.base_daily_work

        extra_work = max(_ZERO, totals.legal_work - base_work) if base_work is not None else _ZERO
        return WindowReport(
            start=totals.window.start,
            valid=totals.window.valid,
            driving_hours=to_hours(totals.driving),
            working_hours=to_hours(totals.working),
            resting_hours=to_hours(totals.resting),
            legal_work_hours=to_hours(totals.legal_work),
            extra_driving_hours=to_hours(max(_ZERO, totals.driving - base_driving)),
            extra_work_hours=to_hours(extra_work),
        )

    @staticmethod
    def _band(
        used: timedelta,
        base: timedelta,
        extra: timedelta = _ZERO,
        extra_max: timedelta = _ZERO,
        text: str | None = None,
    ) -> CounterBand:
        base_used = min(used, base)
        return CounterBand(
            value_hours=to_hours(used),
            max_hours=to_hours(base),
            base_used_pct=pct(base_used, base),
            extra_available_pct=pct(extra, extra_max),
            remaining_pct=pct(max(_ZERO, base - base_used), base),
            text=text if text is not None else f"{to_hours(used):.1f}h / {to_hours(base):.1f}h",
        )

    # ── Labels ───────────────────────────────────────────────────────────

    def _labels(
        self,
        duty_mode: DutyMode,
        now: datetime,
        break_left: timedelta,
        daily_left: timedelta,
        daily_limit: timedelta,
        weekly_left: timedelta,
        rest: timedelta,
    ) -> tuple[Labels, dict[str, str], Countdown | None]:
        limits = self._limits
        secondary = f"Week: {format_clock(weekly_left, include_seconds=False)} left"
        hints = {
            "daily": f"Limit {to_hours(daily_limit):.1f}h - {format_clock(daily_left, include_seconds=False)} left",
            "weekly": (
                f"Limit {format_limit(limits.weekly_driving)} - "
                f"{format_clock(weekly_left, include_seconds=False)} left"
            ),
            "stint": f"Limit {format_limit(limits.continuous_driving)}",
        }
        countdown: Countdown | None = None

        if duty_mode is DutyMode.ACTIVE:
            secondary = f"Day: {format_clock(daily_left, include_seconds=False)} left"
            if break_left <= _ZERO:
                primary = BREAK_REQUIRED_LABEL
                hints["stint"] = f"Limit {format_limit(limits.continuous_driving)} - over the limit"
            elif daily_left <= _ZERO:
                primary = DAILY_REACHED_LABEL
                hints["stint"] = (
                    f"Limit {format_limit(limits.continuous_driving)} - "
                    f"{format_clock(break_left, include_seconds=False)} left"
                )
            else:
                if daily_left < break_left:
                    mode, left = CountdownMode.DAILY_LIMIT, daily_left
                    running, expired = DAILY_RUNNING_LABEL, DAILY_REACHED_LABEL
                else:
                    mode, left = CountdownMode.BREAK, break_left
                    running, expired = BREAK_RUNNING_LABEL, BREAK_REQUIRED_LABEL
                primary = f"{running}: {format_clock(left)}"
                countdown = Countdown(
                    mode=mode,
                    target=now + left,
                    running_label=running,
                    expired_label=expired,
                )
                hints["stint"] = (
                    f"Limit {format_limit(limits.continuous_driving)} - "
                    f"{format_clock(break_left, include_seconds=False)} left"
                )
        elif duty_mode is DutyMode.RESTING:
            rest_left = max(_ZERO, limits.daily_rest - rest)
            if rest_left > _ZERO:
                primary = f"{REST_RUNNING_LABEL}: {format_clock(rest_left)}"
                countdown = Countdown(
                    mode=CountdownMode.REST,
                    target=now + rest_left,
                    running_label=REST_RUNNING_LABEL,
                    expired_label=REST_COMPLETE_LABEL,
                )
                hints["stint"] = f"{REST_RUNNING_LABEL} {format_clock(rest_left, include_seconds=False)}"
                secondary = f"Rest: {format_clock(rest_left, include_seconds=False)} left"
            else:
                primary = REST_COMPLETE_LABEL
                hints["stint"] = REST_COMPLETE_LABEL
        else:
            primary = WAITING_LABEL
            hints["stint"] = "Waiting"

        return Labels(primary=primary, secondary=secondary), hints, countdown
