"""
Facade helpers for pulling complete event batches out of the event store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Protocol, Sequence, Tuple

from ..clients.event_store import EventStore, EventStoreClient
from ..config import EngineSettings
from ..exceptions import AggregationCancelled, AggregationError, InvalidEventError
from ..models import MatchEvent, MatchMetadata, RosterEntry

LOGGER = logging.getLogger(__name__)


class CancellationToken(Protocol):
    """
    Anything with ``is_set()``; ``threading.Event`` is the usual choice.
    """

    def is_set(self) -> bool:
        ...


@dataclass(frozen=True)
class EventBatch:
    match_id: str
    events: Tuple[MatchEvent, ...]
    raw_count: int
    skipped: int
    pages: int


@lru_cache(maxsize=1)
def _settings() -> EngineSettings:
    return EngineSettings.from_env()


@lru_cache(maxsize=1)
def _event_store() -> EventStoreClient:
    return EventStoreClient(settings=_settings())


def get_settings() -> EngineSettings:
    """
    Return cached settings read from the environment.
    """
    return _settings()


def get_event_store() -> EventStoreClient:
    """
    Return a cached event store client instance.
    """
    return _event_store()


def _check_cancelled(cancel: Optional[CancellationToken], match_id: str) -> None:
    if cancel is not None and cancel.is_set():
        raise AggregationCancelled(
            f"Aggregation for match {match_id} was cancelled", match_id=match_id
        )


def fetch_all_events(
    store: EventStore,
    match_id: str,
    *,
    settings: Optional[EngineSettings] = None,
    event_types: Optional[Sequence[str]] = None,
    player_id: Optional[str] = None,
    team_id: Optional[str] = None,
    cancel: Optional[CancellationToken] = None,
) -> EventBatch:
    """
    Page through every event of a match until a short page is returned.

    Malformed rows are logged and counted, never guessed at. Any page failure aborts
    the whole batch with ``AggregationError``; cancellation is checked before each page.
    """
    settings = settings or get_settings()
    page_size = settings.page_size
    events: List[MatchEvent] = []
    offset = 0
    skipped = 0
    pages = 0

    while True:
        _check_cancelled(cancel, match_id)
        try:
            page = store.fetch_events(
                match_id,
                event_types=event_types,
                player_id=player_id,
                team_id=team_id,
                offset=offset,
                limit=page_size,
            )
        except Exception as exc:
            LOGGER.warning(
                "Event page fetch failed for match %s at offset %s: %s", match_id, offset, exc
            )
            raise AggregationError(
                f"Failed to fetch events for match {match_id} at offset {offset}",
                match_id=match_id,
            ) from exc

        page = page or []
        pages += 1
        LOGGER.debug("Fetched %s events for match %s at offset %s", len(page), match_id, offset)
        for row in page:
            try:
                events.append(MatchEvent.from_dict(row))
            except InvalidEventError as exc:
                skipped += 1
                LOGGER.warning("Skipping event %s in match %s: %s", exc.event_id, match_id, exc)
        offset += len(page)
        if len(page) < page_size:
            break

    return EventBatch(
        match_id=str(match_id),
        events=tuple(events),
        raw_count=offset,
        skipped=skipped,
        pages=pages,
    )


def fetch_events_for_matches(
    store: EventStore,
    match_ids: Sequence[str],
    *,
    settings: Optional[EngineSettings] = None,
    event_types: Optional[Sequence[str]] = None,
    player_id: Optional[str] = None,
    team_id: Optional[str] = None,
    cancel: Optional[CancellationToken] = None,
) -> List[EventBatch]:
    """
    Fetch complete batches for several matches, in the order given.
    """
    return [
        fetch_all_events(
            store,
            match_id,
            settings=settings,
            event_types=event_types,
            player_id=player_id,
            team_id=team_id,
            cancel=cancel,
        )
        for match_id in match_ids
    ]


def fetch_match_metadata(store: EventStore, match_id: str) -> MatchMetadata:
    """
    Retrieve match metadata, failing the aggregation when it is unavailable.
    """
    try:
        row = store.fetch_match_metadata(match_id)
    except Exception as exc:
        raise AggregationError(
            f"Failed to fetch metadata for match {match_id}", match_id=match_id
        ) from exc
    metadata = MatchMetadata.from_dict(row)
    if not metadata.match_id:
        metadata = MatchMetadata.from_dict({**row, "id": match_id})
    return metadata


def fetch_roster(store: EventStore, team_id: str) -> List[RosterEntry]:
    """
    Retrieve a team's roster as typed entries.
    """
    try:
        rows = store.fetch_player_roster(team_id)
    except Exception as exc:
        raise AggregationError(f"Failed to fetch roster for team {team_id}") from exc
    return [RosterEntry.from_dict(row) for row in rows or []]


def fetch_event_timestamps(
    store: EventStore,
    match_id: str,
    *,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> List[int]:
    """
    Ingestion timestamps (epoch milliseconds) of a match's events, ascending.
    """
    batch = fetch_all_events(store, match_id, settings=settings, cancel=cancel)
    return sorted(
        event.created_at_ms for event in batch.events if event.created_at_ms is not None
    )


# Named match filters and how many of the most recent completed matches they keep.
MATCH_FILTER_LIMITS = {"last1": 1, "last3": 3, "all": None}


def resolve_team_match_ids(store: EventStore, team_id: str, match_filter: str = "last1") -> List[str]:
    """
    Match ids selected by ``match_filter`` for a team, most recent first.

    ``last1``, ``last3`` and ``all`` select from the team's completed matches;
    any other value is taken as one specific match id.
    """
    if match_filter not in MATCH_FILTER_LIMITS:
        return [str(match_filter)]
    try:
        rows = store.fetch_team_matches(team_id, limit=MATCH_FILTER_LIMITS[match_filter])
    except Exception as exc:
        raise AggregationError(f"Failed to list matches for team {team_id}") from exc
    return [str(row["id"]) for row in rows or [] if row.get("id") is not None]
