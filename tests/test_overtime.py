"""Tests for the OvertimeClassifier and the timeline display range."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from hos_compliance.core.overtime import OvertimeClassifier, display_range
from hos_compliance.domain.limits import HosLimits

from tests.test_timeline import D, R, W, _at, _event, _seg

UTC = timezone.utc


@pytest.fixture
def classifier() -> OvertimeClassifier:
    return OvertimeClassifier(HosLimits())


def _sum(slices) -> timedelta:
    return sum((s.duration for s in slices), timedelta(0))


class TestClassify:
    def test_eleven_hours_from_midnight(self, classifier: OvertimeClassifier) -> None:
        slices = classifier.classify([_seg(D, _at(0), _at(11))], UTC)
        assert [(s.start, s.end, s.overtime) for s in slices] == [
            (_at(0), _at(10), False),
            (_at(10), _at(11), True),
        ]

    def test_working_counts_as_drive_like(self, classifier: OvertimeClassifier) -> None:
        segments = [_seg(D, _at(0), _at(6)), _seg(W, _at(6), _at(12))]
        slices = classifier.classify(segments, UTC)
        overtime = [s for s in slices if s.overtime]
        assert _sum(overtime) == timedelta(hours=2)
        assert overtime[0].state is W

    def test_rest_is_never_overtime(self, classifier: OvertimeClassifier) -> None:
        segments = [_seg(D, _at(0), _at(10)), _seg(R, _at(10), _at(20))]
        slices = classifier.classify(segments, UTC)
        assert not any(s.overtime for s in slices if s.state is R)

    def test_midnight_resets_the_counter(self, classifier: OvertimeClassifier) -> None:
        # 14:00 → 12:00 next day: 10h on day one, 12h on day two
        slices = classifier.classify([_seg(D, _at(14), _at(36))], UTC)
        assert [(s.start, s.end, s.overtime) for s in slices] == [
            (_at(14), _at(24), False),
            (_at(24), _at(34), False),
            (_at(34), _at(36), True),
        ]

    def test_duration_preserved(self, classifier: OvertimeClassifier) -> None:
        segments = [_seg(D, _at(2), _at(9)), _seg(R, _at(9), _at(10)), _seg(W, _at(10), _at(27))]
        slices = classifier.classify(segments, UTC)
        assert _sum(slices) == _sum(segments)


class TestDisplayRange:
    def test_first_to_last_event(self) -> None:
        events = [_event(3, D), _event(9, R, D)]
        assert display_range(events, UTC) == (_at(3), _at(9))

    def test_single_event_shows_its_day(self) -> None:
        assert display_range([_event(15, D)], UTC) == (_at(0), _at(24))
