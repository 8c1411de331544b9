"""Adapter Registry — discovers and selects event adapters.

The registry holds a list of registered EventAdapters.  When a raw
record arrives, it iterates through adapters in registration order
and selects the first one whose can_handle() returns True.

No heuristics.  No guessing.  ``adapt`` fails fast if nothing matches;
``adapt_many`` drops the offending record and carries on, because one
corrupt tachograph entry must not blank a driver's whole history.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from hos_compliance.adapters.base import EventAdapter
from hos_compliance.adapters.history import HistoryRecordAdapter
from hos_compliance.adapters.named import NamedStateAdapter
from hos_compliance.domain.activity import ActivityEvent

logger = logging.getLogger(__name__)


class AdapterStats:
    """Per-adapter ingestion statistics for observability."""

    __slots__ = ("adapter_name", "accepted_count", "rejected_count")

    def __init__(self, adapter_name: str) -> None:
        self.adapter_name = adapter_name
        self.accepted_count: int = 0
        self.rejected_count: int = 0

    def to_dict(self) -> dict:
        return {
            "adapter_name": self.adapter_name,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
        }


class NoAdapterFoundError(Exception):
    """Raised when no registered adapter can handle a record."""


class AdaptationError(Exception):
    """Raised when a matched adapter fails to translate the record."""

    def __init__(self, adapter_name: str, reason: str) -> None:
        self.adapter_name = adapter_name
        self.reason = reason
        super().__init__(f"Adapter '{adapter_name}' failed: {reason}")


class AdapterRegistry:
    """Registry of event adapters with selection and stats tracking.

    Usage:
        registry = AdapterRegistry()
        registry.register(HistoryRecordAdapter())
        registry.register(NamedStateAdapter())

        events = registry.adapt_many(raw_records)
    """

    def __init__(self) -> None:
        self._adapters: list[EventAdapter] = []
        self._stats: dict[str, AdapterStats] = {}

    @classmethod
    def default(cls) -> "AdapterRegistry":
        """Registry with the built-in upstream formats, codes first."""
        registry = cls()
        registry.register(HistoryRecordAdapter())
        registry.register(NamedStateAdapter())
        return registry

    def register(self, adapter: EventAdapter) -> None:
        """Add an adapter to the registry."""
        self._adapters.append(adapter)
        self._stats[adapter.source_name] = AdapterStats(adapter.source_name)
        logger.info("Registered adapter: %s", adapter.source_name)

    def adapt(self, raw: dict[str, Any]) -> ActivityEvent:
        """Route a raw record through the first matching adapter.

        Raises:
            NoAdapterFoundError: If no adapter's can_handle() returns True.
            AdaptationError: If the matched adapter fails to translate.
        """
        for adapter in self._adapters:
            if adapter.can_handle(raw):
                stats = self._stats[adapter.source_name]
                try:
                    event = adapter.adapt(raw)
                except ValueError as exc:
                    stats.rejected_count += 1
                    logger.debug(
                        "Adapter '%s' rejected record: %s",
                        adapter.source_name,
                        exc,
                    )
                    raise AdaptationError(adapter.source_name, str(exc)) from exc
                stats.accepted_count += 1
                return event

        raise NoAdapterFoundError(
            f"No adapter can handle record with keys: {sorted(raw.keys())}"
        )

    def adapt_many(self, records: Iterable[Any]) -> list[ActivityEvent]:
        """Adapt every usable record; unusable ones are logged and skipped."""
        events: list[ActivityEvent] = []
        skipped = 0
        for raw in records:
            if not isinstance(raw, dict):
                skipped += 1
                continue
            try:
                events.append(self.adapt(raw))
            except (NoAdapterFoundError, AdaptationError) as exc:
                skipped += 1
                logger.debug("Skipping record: %s", exc)
        if skipped:
            logger.info("Skipped %d unusable history record(s)", skipped)
        return events

    @property
    def adapter_names(self) -> list[str]:
        """List of registered adapter names in registration order."""
        return [a.source_name for a in self._adapters]

    @property
    def stats(self) -> list[dict]:
        """Per-adapter stats for observability endpoints."""
        return [s.to_dict() for s in self._stats.values()]

    @property
    def total_accepted(self) -> int:
        return sum(s.accepted_count for s in self._stats.values())

    @property
    def total_rejected(self) -> int:
        return sum(s.rejected_count for s in self._stats.values())
