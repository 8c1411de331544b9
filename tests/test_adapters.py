"""Tests for history record adapters and the AdapterRegistry.

Tests adapter selection, record rejection, state normalisation and
registry stats.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from hos_compliance.adapters.history import HistoryRecordAdapter
from hos_compliance.adapters.named import NamedStateAdapter
from hos_compliance.adapters.registry import (
    AdaptationError,
    AdapterRegistry,
    NoAdapterFoundError,
)
from hos_compliance.domain.enums import ActivityState


# ── Realistic Raw Records ────────────────────────────────────────────────────

def _history_record(**overrides) -> dict:
    base = {
        "timestamp": "2025-10-20T04:14:00.863Z",
        "from_state": 0,
        "to_state": 3,
        "from_state_name": "resting",
        "to_state_name": "driving",
        "lat": 43.721905,
        "lng": 10.7719833,
        "eventflags": ["drive_start", "rest_stop"],
        "elapsed": 7642,
    }
    base.update(overrides)
    return base


def _named_record(**overrides) -> dict:
    base = {
        "ts": 1760933640000,
        "to_state_name": "working",
        "from_state_name": "driving",
    }
    base.update(overrides)
    return base


@pytest.fixture
def registry() -> AdapterRegistry:
    return AdapterRegistry.default()


class TestHistoryRecordAdapter:
    def test_maps_codes(self) -> None:
        event = HistoryRecordAdapter().adapt(_history_record())
        assert event.timestamp == datetime(2025, 10, 20, 4, 14, 0, 863000, tzinfo=timezone.utc)
        assert event.from_state is ActivityState.RESTING
        assert event.to_state is ActivityState.DRIVING
        assert event.raw_state == 3

    def test_unlogged_code_is_rest(self) -> None:
        event = HistoryRecordAdapter().adapt(_history_record(to_state=5))
        assert event.to_state is ActivityState.RESTING
        assert event.raw_state == 5

    def test_does_not_mutate_input(self) -> None:
        record = _history_record()
        snapshot = dict(record)
        HistoryRecordAdapter().adapt(record)
        assert record == snapshot

    def test_rejects_bad_timestamp(self) -> None:
        with pytest.raises(ValueError):
            HistoryRecordAdapter().adapt(_history_record(timestamp="yesterday"))


class TestNamedStateAdapter:
    def test_maps_names(self) -> None:
        event = NamedStateAdapter().adapt(_named_record())
        assert event.to_state is ActivityState.WORKING
        assert event.from_state is ActivityState.DRIVING
        assert event.raw_state == "working"

    @pytest.mark.parametrize("name", ["unlogged", "error", "unknown", "resting"])
    def test_non_activity_names_are_rest(self, name: str) -> None:
        event = NamedStateAdapter().adapt(_named_record(to_state_name=name))
        assert event.to_state is ActivityState.RESTING

    def test_alternative_keys(self) -> None:
        event = NamedStateAdapter().adapt({"time": "2026-03-02T08:00:00Z", "state": "Driving"})
        assert event.to_state is ActivityState.DRIVING


class TestAdapterRegistry:
    def test_codes_win_over_names(self, registry: AdapterRegistry) -> None:
        registry.adapt(_history_record())
        stats = {s["adapter_name"]: s for s in registry.stats}
        assert stats["driver_history"]["accepted_count"] == 1
        assert stats["state_name"]["accepted_count"] == 0

    def test_name_only_record_uses_named_adapter(self, registry: AdapterRegistry) -> None:
        event = registry.adapt(_named_record())
        assert event.to_state is ActivityState.WORKING

    def test_no_adapter(self, registry: AdapterRegistry) -> None:
        with pytest.raises(NoAdapterFoundError):
            registry.adapt({"timestamp": "2026-03-02T08:00:00Z"})

    def test_adaptation_error_carries_adapter_name(self, registry: AdapterRegistry) -> None:
        with pytest.raises(AdaptationError) as excinfo:
            registry.adapt(_history_record(timestamp=None))
        assert excinfo.value.adapter_name == "driver_history"
        assert registry.total_rejected == 1

    def test_adapt_many_skips_unusable_records(self, registry: AdapterRegistry) -> None:
        records = [
            _history_record(),
            _history_record(timestamp="garbage"),
            {"foo": "bar"},
            "not a dict",
            _named_record(),
        ]
        events = registry.adapt_many(records)
        assert len(events) == 2
        assert registry.total_accepted == 2

    def test_adapter_names_in_order(self, registry: AdapterRegistry) -> None:
        assert registry.adapter_names == ["driver_history", "state_name"]
