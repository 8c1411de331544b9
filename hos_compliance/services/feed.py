"""Driver event feeds — where raw activity history comes from.

The engine never stores history; it asks a feed for one driver's records
over a bounded range and hands them to the adapter registry.

GUARANTEES:
    1. fetch_driver_events() returns a list of raw dict records, unordered.
    2. Transport failures, non-2xx answers and non-list payloads all raise
       FeedUnavailableError; nothing else escapes.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Protocol

import httpx

from hos_compliance.errors import FeedUnavailableError
from hos_compliance.foundation.clock import parse_timestamp

logger = logging.getLogger(__name__)


class EventFeed(Protocol):
    async def fetch_driver_events(
        self, driver_id: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        ...


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class HttpEventFeed:
    """Pulls history from the dashboard's driver-history endpoint.

    Request:  POST {url}  {"d": driver_id, "from": <epoch ms>, "to": <epoch ms>}
    Response: JSON array of driver event records.

    Args:
        url: Absolute history endpoint URL.
        timeout: Per-request timeout in seconds.
        headers: Extra headers (auth cookies / tokens) sent on every call.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 15.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._transport = transport

    async def fetch_driver_events(
        self, driver_id: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        body = {"d": driver_id, "from": _epoch_ms(start), "to": _epoch_ms(end)}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                response = await client.post(self._url, json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FeedUnavailableError(
                driver_id, f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FeedUnavailableError(driver_id, f"{type(exc).__name__}: {exc}") from exc
        except ValueError as exc:
            raise FeedUnavailableError(driver_id, "response is not valid JSON") from exc

        if not isinstance(payload, list):
            raise FeedUnavailableError(
                driver_id, f"expected a JSON array, got {type(payload).__name__}"
            )
        logger.debug("Fetched %d record(s) for driver %s", len(payload), driver_id)
        return payload


class InMemoryEventFeed:
    """Feed backed by a dict of driver id → records.  Used in tests and demos.

    Records whose timestamp falls outside ``[start, end]`` are filtered
    out; records without a parsable timestamp are passed through so the
    adapter layer can decide what to do with them.
    """

    def __init__(self, records: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._records: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for driver_id, items in (records or {}).items():
            self._records[driver_id].extend(items)
        self.calls: int = 0
        self.failure: Exception | None = None

    def add(self, driver_id: str, *records: dict[str, Any]) -> None:
        self._records[driver_id].extend(records)

    async def fetch_driver_events(
        self, driver_id: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        self.calls += 1
        if self.failure is not None:
            raise FeedUnavailableError(driver_id, str(self.failure)) from self.failure

        selected = []
        for record in self._records.get(driver_id, []):
            stamp = parse_timestamp(record.get("timestamp", record.get("ts")))
            if stamp is not None and not (start <= stamp <= end):
                continue
            selected.append(dict(record))
        return selected
