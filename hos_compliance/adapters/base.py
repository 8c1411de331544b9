"""Abstract base for event adapters.

The driver-history endpoint and older exports do not agree on a record
shape: some rows carry numeric tachograph codes, others only a state
name, and timestamps arrive as epoch milliseconds or ISO strings.  An
adapter recognises one of those shapes and maps it onto ActivityEvent.

Adapters only map fields.  They leave the record untouched and know
nothing about windows, breaks or limits; the registry tries them in
registration order and the first one that claims a record wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from hos_compliance.domain.activity import ActivityEvent


class EventAdapter(ABC):
    """Maps one upstream history-record shape onto ActivityEvent."""

    @abstractmethod
    def can_handle(self, raw: dict[str, Any]) -> bool:
        """True when *raw* has the keys this record shape is identified by."""
        ...

    @abstractmethod
    def adapt(self, raw: dict[str, Any]) -> ActivityEvent:
        """Build the ActivityEvent for *raw*.

        Raises:
            ValueError: If the timestamp or state cannot be read.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Name reported in registry stats, e.g. ``driver_history``."""
        ...
