"""
Custom exceptions for the event store boundary and the aggregation engine.
"""
from __future__ import annotations

from typing import Optional


class MatchspaceError(RuntimeError):
    """
    Base class for every error raised by the package.
    """


class EventStoreError(MatchspaceError):
    """
    Generic event store error.
    """

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EventStoreRateLimitError(EventStoreError):
    """
    Raised when the event store indicates that a rate limit has been hit.
    """


class EventStoreNotFoundError(EventStoreError):
    """
    Raised when a requested match, team or page is not found.
    """


class InvalidEventError(MatchspaceError, ValueError):
    """
    Raised when a raw event row cannot be turned into a MatchEvent.
    """

    def __init__(self, message: str, *, event_id: Optional[str] = None):
        super().__init__(message)
        self.event_id = event_id


class AggregationError(MatchspaceError):
    """
    Raised when an aggregation call cannot produce a complete result.
    """

    def __init__(self, message: str, *, match_id: Optional[str] = None):
        super().__init__(message)
        self.match_id = match_id


class AggregationCancelled(AggregationError):
    """
    Raised when a caller cancels an aggregation between page fetches.
    """
