"""Fetching match data from the event store."""

from .data_fetch import (
    CancellationToken,
    EventBatch,
    fetch_all_events,
    fetch_event_timestamps,
    fetch_events_for_matches,
    fetch_match_metadata,
    fetch_roster,
    get_event_store,
    get_settings,
    resolve_team_match_ids,
)

__all__ = [
    "CancellationToken",
    "EventBatch",
    "fetch_all_events",
    "fetch_event_timestamps",
    "fetch_events_for_matches",
    "fetch_match_metadata",
    "fetch_roster",
    "get_event_store",
    "get_settings",
    "resolve_team_match_ids",
]
