"""Exceptions raised across layer boundaries."""

from __future__ import annotations


class FeedUnavailableError(Exception):
    """The driver event feed could not be reached or answered with an error.

    Recoverable: the duty service keeps serving the last known snapshot.
    """

    def __init__(self, driver_id: str, reason: str) -> None:
        self.driver_id = driver_id
        self.reason = reason
        super().__init__(f"Event feed unavailable for driver '{driver_id}': {reason}")
