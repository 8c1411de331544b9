"""Tests for the ComplianceReporter: snapshots, counters, labels and countdowns."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from hos_compliance.core.reporter import (
    BREAK_REQUIRED_LABEL,
    BREAK_RUNNING_LABEL,
    DAILY_REACHED_LABEL,
    DAILY_RUNNING_LABEL,
    REST_COMPLETE_LABEL,
    REST_RUNNING_LABEL,
    WAITING_LABEL,
    ComplianceReporter,
)
from hos_compliance.domain.enums import CountdownMode, DutyMode, SessionKind
from hos_compliance.domain.limits import HosLimits
from hos_compliance.domain.snapshot import NO_DATA_LABEL, NO_DRIVER_LABEL, ComplianceSnapshot
from hos_compliance.foundation.identifiers import DriverKey

from tests.test_timeline import D, R, W, _at, _event

_KEY = DriverKey("356789123456789", 1, "I100000569493003")


@pytest.fixture
def reporter() -> ComplianceReporter:
    return ComplianceReporter(HosLimits(), tz=timezone.utc)


def _driving_from(start_hours: float) -> list:
    return [_event(0, R, R), _event(start_hours, D)]


class TestEmptySnapshots:
    def test_no_events_gives_zero_snapshot(self, reporter: ComplianceReporter) -> None:
        snapshot = reporter.report(_KEY, [], _at(12))
        assert snapshot.has_data is False
        assert snapshot.labels.primary == NO_DATA_LABEL
        assert set(snapshot.windows) == set(SessionKind)
        assert all(w.driving_hours == 0 for w in snapshot.windows.values())
        assert snapshot.countdown is None

    def test_single_event_gives_zero_snapshot(self, reporter: ComplianceReporter) -> None:
        snapshot = reporter.report(_KEY, [_event(8, D)], _at(12))
        assert snapshot.has_data is False
        assert snapshot.duty_mode is DutyMode.ACTIVE

    def test_neutral_snapshot(self) -> None:
        snapshot = ComplianceSnapshot.neutral(_KEY, _at(1))
        assert snapshot.labels.primary == NO_DRIVER_LABEL
        assert snapshot.duty_mode is DutyMode.IDLE
        assert snapshot.key == _KEY


class TestEndToEnd:
    def test_four_and_a_half_hours_requires_break(self, reporter: ComplianceReporter) -> None:
        snapshot = reporter.report(_KEY, _driving_from(8), _at(12, 30))

        assert snapshot.has_data is True
        assert snapshot.duty_mode is DutyMode.ACTIVE
        assert snapshot.break_chain.continuous_driving_hours == pytest.approx(4.5)
        assert snapshot.break_chain.remaining_until_break_hours == 0
        assert snapshot.allowances.break_remaining_hours == 0
        assert snapshot.labels.primary == BREAK_REQUIRED_LABEL
        assert snapshot.countdown is None

    def test_window_totals(self, reporter: ComplianceReporter) -> None:
        snapshot = reporter.report(_KEY, _driving_from(8), _at(12, 30))
        daily = snapshot.window(SessionKind.DAILY)
        assert daily.driving_hours == pytest.approx(4.5)
        assert daily.resting_hours == pytest.approx(8.0)
        session = snapshot.window(SessionKind.SESSION)
        assert session.valid is True
        assert session.start == _at(8)
        assert snapshot.allowances.daily_remaining_hours == pytest.approx(4.5)
        assert snapshot.allowances.weekly_remaining_hours == pytest.approx(51.5)

    def test_later_history_does_not_count_before_it_happens(self, reporter: ComplianceReporter) -> None:
        events = [*_driving_from(8), _event(12, R, D)]
        snapshot = reporter.report(_KEY, events, _at(9))
        assert snapshot.break_chain.continuous_driving_hours == pytest.approx(1.0)
        assert snapshot.duty_mode is DutyMode.ACTIVE
        assert snapshot.window(SessionKind.DAILY).driving_hours == pytest.approx(1.0)


class TestLabels:
    def test_break_countdown_while_driving(self, reporter: ComplianceReporter) -> None:
        now = _at(10)
        snapshot = reporter.report(_KEY, _driving_from(8), now)
        assert snapshot.labels.primary == f"{BREAK_RUNNING_LABEL}: 02:30:00"
        assert snapshot.countdown is not None
        assert snapshot.countdown.mode is CountdownMode.BREAK
        assert snapshot.countdown.target == now + timedelta(hours=2, minutes=30)
        assert snapshot.countdown.expired_label == BREAK_REQUIRED_LABEL
        assert snapshot.labels.secondary == "Day: 07:00 left"

    def test_daily_limit_countdown_when_nearer_than_break(self, reporter: ComplianceReporter) -> None:
        events = [
            _event(0, R, R), _event(1, D), _event(5, R, D),     # 4h
            _event(6, D), _event(10, R, D),                     # 4h
            _event(11, D),                                      # live
        ]
        snapshot = reporter.report(_KEY, events, _at(11, 30))
        # 8h30 driven today, 30 min left before 9h; break is 4h away
        assert snapshot.countdown is not None
        assert snapshot.countdown.mode is CountdownMode.DAILY_LIMIT
        assert snapshot.labels.primary == f"{DAILY_RUNNING_LABEL}: 00:30:00"

    def test_daily_limit_reached(self, reporter: ComplianceReporter) -> None:
        limits = HosLimits(weekly_extension_allowance=0)
        strict = ComplianceReporter(limits, tz=timezone.utc)
        events = [
            _event(0, R, R), _event(1, D), _event(5, R, D),
            _event(6, D), _event(10, R, D),
            _event(11, D),
        ]
        snapshot = strict.report(_KEY, events, _at(12, 30))
        assert snapshot.daily_driving_limit_hours == pytest.approx(9.0)
        assert snapshot.labels.primary == DAILY_REACHED_LABEL

    def test_extension_raises_daily_limit(self, reporter: ComplianceReporter) -> None:
        events = [
            _event(0, R, R), _event(1, D), _event(5, R, D),
            _event(6, D), _event(10, R, D),
            _event(11, D),
        ]
        snapshot = reporter.report(_KEY, events, _at(12, 30))
        assert snapshot.daily_driving_limit_hours == pytest.approx(10.0)
        assert snapshot.extensions.used_including_today == 1
        assert snapshot.allowances.daily_remaining_hours == pytest.approx(0.5)

    def test_rest_countdown(self, reporter: ComplianceReporter) -> None:
        events = [_event(0, D), _event(4, R, D)]
        snapshot = reporter.report(_KEY, events, _at(7))
        assert snapshot.duty_mode is DutyMode.RESTING
        assert snapshot.continuous_rest_hours == pytest.approx(3.0)
        assert snapshot.labels.primary == f"{REST_RUNNING_LABEL}: 08:00:00"
        assert snapshot.countdown is not None
        assert snapshot.countdown.mode is CountdownMode.REST

    def test_rest_complete(self, reporter: ComplianceReporter) -> None:
        events = [_event(0, D), _event(2, R, D)]
        snapshot = reporter.report(_KEY, events, _at(14))
        assert snapshot.labels.primary == REST_COMPLETE_LABEL
        assert snapshot.countdown is None

    def test_idle_for_unknown_live_code(self, reporter: ComplianceReporter) -> None:
        snapshot = reporter.report(_KEY, _driving_from(8), _at(9), current_state=1)
        assert snapshot.duty_mode is DutyMode.IDLE
        assert snapshot.labels.primary == WAITING_LABEL


class TestCounters:
    def test_percentages_are_clamped(self, reporter: ComplianceReporter) -> None:
        events = [_event(0, R, R), _event(1, D)]
        snapshot = reporter.report(_KEY, events, _at(14))
        for band in snapshot.counters.values():
            for value in (band.base_used_pct, band.extra_available_pct, band.remaining_pct):
                assert 0.0 <= value <= 100.0
        assert snapshot.counters["driving"].base_used_pct == 100.0
        assert snapshot.counters["driving"].remaining_pct == 0.0

    def test_work_band_includes_driving(self, reporter: ComplianceReporter) -> None:
        events = [_event(0, R, R), _event(2, W), _event(4, D, W)]
        snapshot = reporter.report(_KEY, events, _at(6))
        work = snapshot.counters["work"]
        assert work.value_hours == pytest.approx(4.0)
        assert work.max_hours == pytest.approx(13.0)

    def test_rest_band_text(self, reporter: ComplianceReporter) -> None:
        events = [_event(0, D), _event(4, R, D)]
        snapshot = reporter.report(_KEY, events, _at(9, 30))
        assert snapshot.counters["rest"].text == "5.5h continuous / 11.0h"


class TestLiveState:
    def test_live_state_extends_the_timeline(self, reporter: ComplianceReporter) -> None:
        events = [_event(0, R, R), _event(6, D), _event(8, R, D)]
        # History fetched at 09:00; telemetry says driving at 10:00
        snapshot = reporter.report(
            _KEY, events, _at(10), current_state=3, live_since=_at(9)
        )
        assert snapshot.duty_mode is DutyMode.ACTIVE
        assert snapshot.window(SessionKind.DAILY).driving_hours == pytest.approx(3.0)

    def test_matching_live_state_changes_nothing(self, reporter: ComplianceReporter) -> None:
        events = _driving_from(8)
        with_live = reporter.report(_KEY, events, _at(10), current_state=3, live_since=_at(9))
        without = reporter.report(_KEY, events, _at(10))
        assert with_live.windows == without.windows

    def test_recompute_is_idempotent(self, reporter: ComplianceReporter) -> None:
        events = _driving_from(8)
        assert reporter.report(_KEY, events, _at(10)) == reporter.report(_KEY, events, _at(10))
