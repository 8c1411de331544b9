"""ContinuousDrivingTracker — the 4h30 driving chain and break validation.

Break rule:
    A chain of continuous driving is closed only by a *valid* break:
    - one rest of at least 45 minutes, or
    - a rest of at least 15 minutes followed, later in time, by a rest of
      at least 30 minutes (together at least 45).
    The order matters: 30 then 15 is not a valid split, and neither is
    20 + 20 + 20.

Walk:
    driving  validity is checked *before* the span is added, so a break
             taken just before this stint opens a fresh chain
    resting  appended to the pending break list while a chain is open,
             then validity is checked
    working  neither extends the chain nor earns credit, but does not
             discard credit already earned; validity is checked
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timedelta

from hos_compliance.domain.activity import Segment
from hos_compliance.domain.compliance import BreakChainState
from hos_compliance.domain.enums import ActivityState
from hos_compliance.domain.limits import HosLimits

logger = logging.getLogger(__name__)

_ZERO = timedelta(0)


def _minutes(value: timedelta) -> float:
    return value.total_seconds() / 60.0


class ContinuousDrivingTracker:
    """Walks segments forward and reports the current driving chain."""

    def __init__(self, limits: HosLimits | None = None) -> None:
        self._limits = limits or HosLimits()

    # ── Public API ───────────────────────────────────────────────────────

    def track(self, segments: Iterable[Segment]) -> BreakChainState:
        chain = _ZERO
        pending: list[timedelta] = []
        # Credit of the break that last closed the chain, held until the
        # next driving span so "break satisfied" survives the reset.
        closing_credit: timedelta | None = None

        for segment in segments:
            if segment.state is ActivityState.DRIVING:
                if self.is_valid_break(pending):
                    chain, pending = _ZERO, []
                chain += segment.duration
                closing_credit = None
                continue

            if segment.state is ActivityState.RESTING and chain > _ZERO:
                pending.append(segment.duration)

            if self.is_valid_break(pending):
                logger.debug(
                    "Valid break %s closes a %s driving chain",
                    [round(_minutes(p), 1) for p in pending],
                    chain,
                )
                closing_credit = self.break_credit(pending)
                chain, pending = _ZERO, []

        satisfied = closing_credit is not None
        credit = closing_credit if satisfied else self.break_credit(pending)
        remaining_break = max(_ZERO, self._limits.single_break - credit)
        if satisfied or chain == _ZERO:
            remaining_break = _ZERO

        return BreakChainState(
            continuous_driving=chain,
            pending_breaks=list(pending),
            break_credit_minutes=round(_minutes(credit), 4),
            break_satisfied=satisfied,
            remaining_until_break_required=max(
                _ZERO, self._limits.continuous_driving - chain
            ),
            break_remaining_minutes=round(_minutes(remaining_break), 4),
        )

    # ── Break rule ───────────────────────────────────────────────────────

    def is_valid_break(self, pending: list[timedelta]) -> bool:
        """True when *pending* rests satisfy the single or ordered-split rule."""
        limits = self._limits
        if any(rest >= limits.single_break for rest in pending):
            return True
        return self._split_credit(pending) >= limits.single_break

    def break_credit(self, pending: list[timedelta]) -> timedelta:
        """Best credit currently held: longest single rest or ordered split."""
        single = max(pending, default=_ZERO)
        return max(single, self._split_credit(pending))

    def _split_credit(self, pending: list[timedelta]) -> timedelta:
        """Largest ``first + second`` for an ordered 15'-then-30' pair, else zero."""
        limits = self._limits
        best_first: timedelta | None = None
        best = _ZERO
        for rest in pending:
            if best_first is not None and rest >= limits.split_break_second:
                best = max(best, best_first + rest)
            if rest >= limits.split_break_first:
                best_first = rest if best_first is None else max(best_first, rest)
        return best
