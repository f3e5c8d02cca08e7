"""
Event store client implementation.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..config import EngineSettings
from ..exceptions import EventStoreError
from ..http import EventStoreTransport
from ..models import dict_without_none


class EventStore(Protocol):
    """
    Contract the engine consumes. Rows are plain JSON-like mappings.
    """

    def fetch_events(
        self,
        match_id: str,
        *,
        event_types: Optional[Sequence[str]] = None,
        player_id: Optional[str] = None,
        team_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 1000,
    ) -> List[Dict[str, Any]]:
        ...

    def fetch_match_metadata(self, match_id: str) -> Dict[str, Any]:
        ...

    def fetch_player_roster(self, team_id: str) -> List[Dict[str, Any]]:
        ...

    def fetch_player_match_stats(self, match_id: str) -> List[Dict[str, Any]]:
        ...

    def fetch_team_matches(self, team_id: str, *, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        ...


class EventStoreClient:
    """
    Provide typed wrappers around the event store REST endpoints.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        http: Optional[EventStoreTransport] = None,
    ):
        self.settings = settings or EngineSettings.from_env()
        self.http = http or EventStoreTransport(self.settings)

    def fetch_events(
        self,
        match_id: str,
        *,
        event_types: Optional[Sequence[str]] = None,
        player_id: Optional[str] = None,
        team_id: Optional[str] = None,
        offset: int = 0,
        limit: int = 1000,
    ) -> List[Dict[str, Any]]:
        """
        Fetch one window of events for a match, in creation order.
        """
        params = dict_without_none(
            {
                "event_type": ",".join(event_types) if event_types else None,
                "player_id": player_id,
                "team_id": team_id,
                "order": "created_at.asc,id.asc",
            }
        )
        return self.http.get_rows(
            f"matches/{match_id}/events", params=params, offset=offset, limit=limit
        )

    def fetch_match_metadata(self, match_id: str) -> Dict[str, Any]:
        """
        Fetch home/away identifiers, names and playing direction for a match.
        """
        payload = self.http.get_json(f"matches/{match_id}")
        if not isinstance(payload, dict):
            raise EventStoreError(f"Match '{match_id}' returned no metadata")
        return payload

    def fetch_player_roster(self, team_id: str) -> List[Dict[str, Any]]:
        """
        Fetch the registered players of a team.
        """
        return self.http.get_rows(f"teams/{team_id}/players")

    def fetch_player_match_stats(self, match_id: str) -> List[Dict[str, Any]]:
        """
        Fetch pre-aggregated per-player per-half stats stored for a match.
        """
        return self.http.get_rows(f"matches/{match_id}/player-stats")

    def fetch_team_matches(self, team_id: str, *, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Fetch a team's completed matches, most recent first.
        """
        return self.http.get_rows(
            f"teams/{team_id}/matches",
            params={"status": "completed", "order": "match_date.desc"},
            limit=limit,
        )
