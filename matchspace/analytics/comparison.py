"""
Side-by-side player stats for two matches.

Each side prefers the pre-aggregated per-half rows held by the event store.
When a match has none, the side is recomputed from raw events through the
orchestrator; both paths produce the same record types.
"""
from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..clients.event_store import EventStore
from ..config import EngineSettings
from ..exceptions import AggregationError
from ..models import MatchMetadata
from ..services.data_fetch import CancellationToken, get_event_store, get_settings
from .geometry import safe_percent
from .orchestrator import MatchAnalysis, aggregate_match
from .player_stats import DerivedPlayerStats

LOGGER = logging.getLogger(__name__)

# Stat field -> column in the pre-aggregated rows, also the DerivedPlayerStats attribute.
LEGACY_COLUMNS: Dict[str, str] = {
    "goals": "goals",
    "pass_count": "pass_count",
    "successful_pass": "successful_pass",
    "shots": "shots_attempted",
    "shots_on_target": "shots_on_target",
    "tackles": "tackles",
    "fouls": "fouls",
    "saves": "saves",
    "crosses": "crosses",
    "corners": "corners",
    "corner_success": "corner_success",
    "penalty_area_entry": "penalty_area_entry",
    "penalty_area_pass": "penalty_area_pass",
    "aerial_duels_won": "aerial_duels_won",
    "aerial_duels_lost": "aerial_duels_lost",
    "free_kicks": "free_kicks",
    "throw_ins": "throw_ins",
    "ti_success": "ti_success",
    "cut_backs": "cut_backs",
    "run_in_behind": "run_in_behind",
    "overlaps": "overlaps",
    "minutes_played": "minutes_played",
}


@dataclass(frozen=True)
class PlayerMatchStats:
    goals: int = 0
    pass_count: int = 0
    successful_pass: int = 0
    shots: int = 0
    shots_on_target: int = 0
    tackles: int = 0
    fouls: int = 0
    saves: int = 0
    crosses: int = 0
    corners: int = 0
    corner_success: int = 0
    penalty_area_entry: int = 0
    penalty_area_pass: int = 0
    aerial_duels_won: int = 0
    aerial_duels_lost: int = 0
    free_kicks: int = 0
    throw_ins: int = 0
    ti_success: int = 0
    cut_backs: int = 0
    run_in_behind: int = 0
    overlaps: int = 0
    minutes_played: int = 0

    @property
    def pass_accuracy(self) -> int:
        return safe_percent(self.successful_pass, self.pass_count)

    def __add__(self, other: "PlayerMatchStats") -> "PlayerMatchStats":
        return PlayerMatchStats(
            **{
                item.name: getattr(self, item.name) + getattr(other, item.name)
                for item in dataclasses.fields(self)
            }
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PlayerMatchStats":
        return cls(**{name: int(row.get(column) or 0) for name, column in LEGACY_COLUMNS.items()})

    @classmethod
    def from_derived(cls, stats: DerivedPlayerStats) -> "PlayerMatchStats":
        return cls(**{name: getattr(stats, attr) for name, attr in LEGACY_COLUMNS.items()})


def empty_stats() -> PlayerMatchStats:
    """The all-zero record used for a player missing from one side."""
    return PlayerMatchStats()


@dataclass(frozen=True)
class PlayerIdentity:
    player_id: str
    name: str
    jersey_number: int = 0
    role: str = ""
    team_id: Optional[str] = None
    team_name: str = ""
    team_slug: str = ""


@dataclass(frozen=True)
class PlayerEntry:
    player: PlayerIdentity
    stats: PlayerMatchStats


@dataclass(frozen=True)
class ComparisonPlayer:
    player_id: str
    player_name: str
    jersey_number: int
    role: str
    team_name: str
    team_slug: str
    match1_stats: PlayerMatchStats
    match2_stats: PlayerMatchStats


def _identity_from_row(row: Mapping[str, Any]) -> PlayerIdentity:
    player = row.get("players") or row.get("player") or {}
    team = player.get("teams") or player.get("team") or {}
    team_id = player.get("team_id") or team.get("id")
    return PlayerIdentity(
        player_id=str(row.get("player_id") or player.get("id") or ""),
        name=str(player.get("name") or ""),
        jersey_number=int(player.get("jersey_number") or 0),
        role=str(player.get("role") or ""),
        team_id=str(team_id) if team_id is not None else None,
        team_name=str(team.get("name") or ""),
        team_slug=str(team.get("slug") or ""),
    )


def aggregate_stat_rows(rows: Iterable[Mapping[str, Any]]) -> Dict[str, PlayerEntry]:
    """Sum pre-aggregated rows per player; a player may have one row per half."""
    players: Dict[str, PlayerEntry] = {}
    for row in rows:
        identity = _identity_from_row(row)
        stats = PlayerMatchStats.from_row(row)
        existing = players.get(identity.player_id)
        if existing is None:
            players[identity.player_id] = PlayerEntry(player=identity, stats=stats)
        else:
            players[identity.player_id] = PlayerEntry(player=existing.player, stats=existing.stats + stats)
    return players


def entries_from_analysis(analysis: MatchAnalysis) -> Dict[str, PlayerEntry]:
    match: MatchMetadata = analysis.match
    players: Dict[str, PlayerEntry] = {}
    for side, side_players in analysis.players.items():
        for stats in side_players:
            identity = PlayerIdentity(
                player_id=stats.player_id,
                name=stats.name,
                jersey_number=stats.jersey_number,
                role=stats.role,
                team_id=stats.team_id,
                team_name=match.team_name(side),
                team_slug=match.team_slug(side),
            )
            players[stats.player_id] = PlayerEntry(player=identity, stats=PlayerMatchStats.from_derived(stats))
    return players


def load_match_player_stats(
    match_id: str,
    *,
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> Dict[str, PlayerEntry]:
    """Per-player stats for one match, from stored rows or recomputed from events."""
    store = store or get_event_store()
    try:
        rows = store.fetch_player_match_stats(match_id)
    except Exception as exc:
        raise AggregationError(
            f"Failed to fetch player stats for match {match_id}", match_id=match_id
        ) from exc
    if rows:
        return aggregate_stat_rows(rows)
    LOGGER.info("No stored player stats for match %s; recomputing from events", match_id)
    analysis = aggregate_match(match_id, store=store, settings=settings, cancel=cancel)
    return entries_from_analysis(analysis)


def merge_comparison(
    first: Mapping[str, PlayerEntry],
    second: Mapping[str, PlayerEntry],
    *,
    team_slug: Optional[str] = None,
) -> List[ComparisonPlayer]:
    """
    Union of both player sets, sorted by team name then jersey number.

    A player missing from one side gets ``empty_stats()`` there.
    """
    players: List[ComparisonPlayer] = []
    for player_id in list(first) + [pid for pid in second if pid not in first]:
        left = first.get(player_id)
        right = second.get(player_id)
        identity = (left or right).player
        if team_slug and team_slug != "all" and identity.team_slug != team_slug:
            continue
        players.append(
            ComparisonPlayer(
                player_id=player_id,
                player_name=identity.name,
                jersey_number=identity.jersey_number,
                role=identity.role,
                team_name=identity.team_name,
                team_slug=identity.team_slug,
                match1_stats=left.stats if left else empty_stats(),
                match2_stats=right.stats if right else empty_stats(),
            )
        )
    players.sort(key=lambda p: (p.team_name, p.jersey_number))
    return players


def compare_matches(
    match1_id: str,
    match2_id: str,
    *,
    team_slug: Optional[str] = None,
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> List[ComparisonPlayer]:
    """Load both sides in parallel and merge them."""
    store = store or get_event_store()
    settings = settings or get_settings()
    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = [
            executor.submit(load_match_player_stats, match_id, store=store, settings=settings, cancel=cancel)
            for match_id in (match1_id, match2_id)
        ]
        first, second = (future.result() for future in futures)
    return merge_comparison(first, second, team_slug=team_slug)
