"""Tests for window construction and the WindowAccumulator."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from hos_compliance.core.timeline import ActivityTimelineBuilder
from hos_compliance.core.windows import WindowAccumulator, build_windows, session_start
from hos_compliance.domain.enums import SessionKind
from hos_compliance.domain.limits import HosLimits

from tests.test_timeline import D, R, W, _at, _chain, _event

UTC = timezone.utc

# Wednesday 4 March 2026, 12:00 UTC
_NOW = _at(hours=2 * 24 + 12)


def _by_kind(windows):
    return {w.kind: w for w in windows}


class TestBuildWindows:
    def test_calendar_starts(self) -> None:
        windows = _by_kind(build_windows([], _NOW, HosLimits(), UTC))
        assert windows[SessionKind.DAILY].start == datetime(2026, 3, 4, tzinfo=UTC)
        assert windows[SessionKind.WEEKLY].start == datetime(2026, 3, 2, tzinfo=UTC)
        assert windows[SessionKind.FORTNIGHTLY].start == datetime(2026, 2, 23, tzinfo=UTC)
        assert all(w.end == _NOW for w in windows.values())

    def test_session_falls_back_to_midnight(self) -> None:
        windows = _by_kind(build_windows([], _NOW, HosLimits(), UTC))
        session = windows[SessionKind.SESSION]
        assert session.start == windows[SessionKind.DAILY].start
        assert session.valid is False

    def test_session_starts_at_latest_rest_to_activity(self) -> None:
        events = [
            _event(24, D),              # Tuesday 00:00
            _event(30, R, D),
            _event(2 * 24 + 6, W),      # Wednesday 06:00
            _event(2 * 24 + 8, D, W),   # work → drive is not a session start
        ]
        windows = _by_kind(build_windows(events, _NOW, HosLimits(), UTC))
        session = windows[SessionKind.SESSION]
        assert session.valid is True
        assert session.start == _at(2 * 24 + 6)

    def test_session_ignores_transitions_outside_lookback(self) -> None:
        events = [_event(0, D)]  # Monday 00:00, 60h before now
        assert session_start(events, _NOW, timedelta(hours=48)) is None

    def test_local_midnight_in_zone(self) -> None:
        rome = ZoneInfo("Europe/Rome")
        windows = _by_kind(build_windows([], _NOW, HosLimits(), rome))
        # 00:00 CET is 23:00 UTC the day before
        assert windows[SessionKind.DAILY].start == datetime(2026, 3, 3, 23, tzinfo=UTC)
        assert windows[SessionKind.WEEKLY].start == datetime(2026, 3, 1, 23, tzinfo=UTC)


class TestWindowAccumulator:
    def test_fully_covered_window_sums_to_span(self) -> None:
        day = datetime(2026, 3, 4, tzinfo=UTC)
        segments = _chain((R, 360), (D, 200), (W, 40), (R, 45), (D, 75), start=day)
        windows = build_windows([], segments[-1].end, HosLimits(), UTC)
        totals = WindowAccumulator().accumulate(segments, windows)

        daily = totals[SessionKind.DAILY]
        assert daily.covered == daily.window.span
        assert daily.driving == timedelta(minutes=275)
        assert daily.working == timedelta(minutes=40)
        assert daily.legal_work == timedelta(minutes=315)

    def test_segment_starting_before_window_is_excluded(self) -> None:
        # 22:00 Tuesday → 02:00 Wednesday driving, then rest to 12:00
        segments = _chain((D, 240), (R, 600), start=datetime(2026, 3, 3, 22, tzinfo=UTC))
        windows = build_windows([], _NOW, HosLimits(), UTC)
        totals = WindowAccumulator().accumulate(segments, windows)

        assert totals[SessionKind.DAILY].driving == timedelta(0)
        assert totals[SessionKind.DAILY].resting == timedelta(minutes=600)
        assert totals[SessionKind.WEEKLY].driving == timedelta(minutes=240)

    def test_every_window_present_even_when_empty(self) -> None:
        windows = build_windows([], _NOW, HosLimits(), UTC)
        totals = WindowAccumulator().accumulate([], windows)
        assert set(totals) == set(SessionKind)
        assert all(t.covered == timedelta(0) for t in totals.values())

    def test_built_timeline_covers_week(self) -> None:
        events = [_event(0, R, R), _event(6, D), _event(10, R, D), _event(30, D), _event(35, W, D)]
        segments = ActivityTimelineBuilder().build(events, _NOW)
        windows = build_windows(events, _NOW, HosLimits(), UTC)
        weekly = WindowAccumulator().accumulate(segments, windows)[SessionKind.WEEKLY]
        assert weekly.covered == _NOW - _at(0)
        assert weekly.driving == timedelta(hours=9)
