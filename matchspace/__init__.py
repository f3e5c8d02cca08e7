"""
Matchspace football event aggregation package.
"""

from .config import EngineSettings
from .exceptions import (
    AggregationCancelled,
    AggregationError,
    EventStoreError,
    EventStoreNotFoundError,
    EventStoreRateLimitError,
    InvalidEventError,
    MatchspaceError,
)
from .models import MatchEvent, MatchMetadata, PlayerRef, RosterEntry

__all__ = [
    "EngineSettings",
    "AggregationCancelled",
    "AggregationError",
    "EventStoreError",
    "EventStoreNotFoundError",
    "EventStoreRateLimitError",
    "InvalidEventError",
    "MatchspaceError",
    "MatchEvent",
    "MatchMetadata",
    "PlayerRef",
    "RosterEntry",
]
