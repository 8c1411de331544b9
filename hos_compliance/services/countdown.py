"""Cooperative countdown tickers for live duty displays.

A ticker is bound to a wall-clock target, not to a decrementing counter,
so a late tick never drifts: every label is recomputed from ``target - now``.
Once the target passes the ticker sends the expired label and stops.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from hos_compliance.core.formatting import format_clock
from hos_compliance.domain.snapshot import Countdown
from hos_compliance.foundation.clock import utc_now

logger = logging.getLogger(__name__)

LabelSink = Callable[[str], Awaitable[None]]


def countdown_label(countdown: Countdown, now: datetime) -> str:
    """``"Break in: 01:12:09"`` while running, the expired label afterwards."""
    left = countdown.target - now
    if left.total_seconds() <= 0:
        return countdown.expired_label
    return f"{countdown.running_label}: {format_clock(left)}"


class TickerHandle:
    """Stops one running ticker.  stop() may be called any number of times."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def stop(self) -> None:
        if not self._task.done():
            self._task.cancel()

    @property
    def running(self) -> bool:
        return not self._task.done()

    async def wait(self) -> None:
        """Wait until the ticker ends on its own or is stopped."""
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise


class CountdownTicker:
    """Starts per-binding countdown tasks.

    Args:
        tick_seconds: Interval between labels.
    """

    def __init__(self, tick_seconds: float = 1.0) -> None:
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be positive")
        self._tick = tick_seconds

    def start(self, countdown: Countdown, sink: LabelSink) -> TickerHandle:
        """Send a label to *sink* every tick until *countdown* expires."""
        task = asyncio.create_task(self._run(countdown, sink))
        return TickerHandle(task)

    async def _run(self, countdown: Countdown, sink: LabelSink) -> None:
        logger.debug("Countdown started (%s → %s)", countdown.mode.value, countdown.target)
        while True:
            now = utc_now()
            try:
                await sink(countdown_label(countdown, now))
            except Exception as exc:
                logger.warning("Countdown stopped, label could not be sent: %s", exc)
                return
            if countdown.target <= now:
                logger.debug("Countdown expired (%s)", countdown.mode.value)
                return
            await asyncio.sleep(self._tick)
