"""Registry of presentation bindings per driver key.

A binding is an async callback that receives every snapshot published
for its key.  ``subscribe`` returns a disposer; calling it removes exactly
that binding and is safe to call more than once.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Awaitable, Callable

from hos_compliance.domain.snapshot import ComplianceSnapshot
from hos_compliance.foundation.identifiers import DriverKey

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[ComplianceSnapshot], Awaitable[None]]
Disposer = Callable[[], None]


class SubscriptionRegistry:
    def __init__(self) -> None:
        self._bindings: dict[DriverKey, dict[int, SnapshotCallback]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, key: DriverKey, callback: SnapshotCallback) -> Disposer:
        token = next(self._ids)
        self._bindings.setdefault(key, {})[token] = callback
        logger.info("Bound display to %s (%d binding(s))", key, len(self._bindings[key]))

        def dispose() -> None:
            bindings = self._bindings.get(key)
            if bindings is None or bindings.pop(token, None) is None:
                return
            if not bindings:
                del self._bindings[key]
            logger.info("Unbound display from %s", key)

        return dispose

    def callbacks(self, key: DriverKey) -> list[SnapshotCallback]:
        return list(self._bindings.get(key, {}).values())

    def keys_for_vehicle(self, vehicle_id: str) -> list[DriverKey]:
        return [k for k in self._bindings if k.vehicle_id == vehicle_id]

    @property
    def keys(self) -> list[DriverKey]:
        return list(self._bindings)

    @property
    def binding_count(self) -> int:
        return sum(len(b) for b in self._bindings.values())
