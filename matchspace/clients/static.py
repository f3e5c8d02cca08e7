"""
Event store backed by rows already held in memory.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..exceptions import EventStoreNotFoundError


def _match_team_ids(row: Mapping[str, Any]) -> Tuple[str, str]:
    home = row.get("home_team") if isinstance(row.get("home_team"), Mapping) else {}
    away = row.get("away_team") if isinstance(row.get("away_team"), Mapping) else {}
    return (
        str(row.get("home_team_id") or home.get("id") or ""),
        str(row.get("away_team_id") or away.get("id") or ""),
    )


def _row_team_id(row: Mapping[str, Any]) -> Optional[str]:
    player = row.get("player") or {}
    team_id = player.get("team_id") if isinstance(player, Mapping) else None
    return str(team_id) if team_id is not None else None


class StaticEventStore:
    """
    Serve pre-loaded rows (an export, a fixture file) with the same pagination
    semantics as the remote store: stable creation order, offset/limit windows.
    """

    def __init__(
        self,
        events: Iterable[Mapping[str, Any]] = (),
        *,
        matches: Optional[Mapping[str, Mapping[str, Any]]] = None,
        rosters: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
        player_match_stats: Optional[Mapping[str, Sequence[Mapping[str, Any]]]] = None,
    ):
        # Input order is treated as creation order.
        self._events: List[Dict[str, Any]] = [dict(row) for row in events]
        self._matches = {str(key): dict(value) for key, value in (matches or {}).items()}
        self._rosters = {str(key): [dict(r) for r in value] for key, value in (rosters or {}).items()}
        self._player_match_stats = {
            str(key): [dict(r) for r in value] for key, value in (player_match_stats or {}).items()
        }

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
        wanted_types = set(event_types) if event_types else None
        selected = []
        for row in self._events:
            if str(row.get("match_id")) != str(match_id):
                continue
            if wanted_types is not None and row.get("event_type") not in wanted_types:
                continue
            if player_id is not None and str(row.get("player_id")) != str(player_id):
                continue
            if team_id is not None and _row_team_id(row) != str(team_id):
                continue
            selected.append(dict(row))
        return selected[offset : offset + limit]

    def fetch_match_metadata(self, match_id: str) -> Dict[str, Any]:
        try:
            return dict(self._matches[str(match_id)])
        except KeyError:
            raise EventStoreNotFoundError(f"Match '{match_id}' not found", status_code=404) from None

    def fetch_player_roster(self, team_id: str) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._rosters.get(str(team_id), [])]

    def fetch_player_match_stats(self, match_id: str) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._player_match_stats.get(str(match_id), [])]

    def fetch_team_matches(self, team_id: str, *, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        # Rows without a status count as completed; undated matches sort last.
        played = [
            {**row, "id": row.get("id") or match_id}
            for match_id, row in self._matches.items()
            if str(team_id) in _match_team_ids(row)
            and (row.get("status") or "completed") == "completed"
        ]
        played.sort(key=lambda row: str(row.get("match_date") or ""), reverse=True)
        return played if limit is None else played[:limit]
