"""Tabular views over parsed events and derived player stats."""
from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from ..config import EngineSettings
from ..models import MatchEvent
from ..services.data_fetch import get_settings
from .comparison import ComparisonPlayer
from .geometry import classify_lane, classify_zone
from .player_stats import DerivedPlayerStats

EVENT_COLUMNS = [
    "event_id",
    "match_id",
    "event_type",
    "half",
    "minute",
    "seconds",
    "x",
    "y",
    "end_x",
    "end_y",
    "successful",
    "shot_outcome",
    "aerial_outcome",
    "phase_id",
    "player_id",
    "player_name",
    "jersey_number",
    "team_id",
    "zone",
    "lane",
]

DEFAULT_LEADERBOARD_GROUPS: Mapping[str, Sequence[str]] = {
    "shooting": ("goals", "shots_attempted", "shots_on_target", "conversion_rate"),
    "passing": ("successful_pass", "pass_count", "forward_pass", "pass_accuracy"),
    "chance_creation": ("crosses", "penalty_area_pass", "cut_backs", "penalty_area_entry"),
    "defending": ("tackles", "interceptions", "clearances", "blocks"),
    "aerial": ("aerial_duels_won", "aerial_success_rate"),
    "set_pieces": ("corners", "free_kicks", "throw_ins", "throw_in_success_rate"),
}

# Percentage column -> attempts column that must reach the minimum.
ATTEMPT_COLUMNS: Mapping[str, str] = {
    "pass_accuracy": "pass_count",
    "miss_pass_percent": "pass_count",
    "forward_pass_percent": "pass_count",
    "backward_pass_percent": "pass_count",
    "shot_accuracy": "shots_attempted",
    "conversion_rate": "shots_attempted",
    "corner_success_rate": "corners",
    "throw_in_success_rate": "throw_ins",
}


def events_to_dataframe(
    events: Iterable[MatchEvent], settings: Optional[EngineSettings] = None
) -> pd.DataFrame:
    """Flatten parsed events into one row each, with absolute zone and lane tags."""
    settings = settings or get_settings()
    records: List[dict] = []
    for event in events:
        player = event.player
        records.append(
            {
                "event_id": event.id,
                "match_id": event.match_id,
                "event_type": event.event_type,
                "half": event.half,
                "minute": event.minute,
                "seconds": event.seconds,
                "x": event.x,
                "y": event.y,
                "end_x": event.end_x,
                "end_y": event.end_y,
                "successful": event.successful,
                "shot_outcome": event.shot_outcome,
                "aerial_outcome": event.aerial_outcome,
                "phase_id": event.phase_id,
                "player_id": event.player_id or (player.player_id if player else None),
                "player_name": player.name if player else None,
                "jersey_number": player.jersey_number if player else None,
                "team_id": event.team_id,
                "zone": classify_zone(event.x, settings.zone_defensive_max, settings.zone_middle_max),
                "lane": classify_lane(event.y, settings.lane_left_max, settings.lane_right_min),
            }
        )
    return pd.DataFrame.from_records(records, columns=EVENT_COLUMNS)


def player_stats_to_dataframe(
    players: Iterable[DerivedPlayerStats],
    extra: Optional[Mapping[str, object]] = None,
) -> pd.DataFrame:
    """
    One row per player with zone breakdowns expanded into columns.

    Percentage columns are recomputed from the counters in each row, so a frame
    built from merged stats never averages percentages.
    """
    records = []
    for stats in players:
        record = stats.as_record()
        if extra:
            record.update(extra)
        records.append(record)
    if not records:
        return pd.DataFrame(columns=list(DerivedPlayerStats(player_id="", name="").as_record()))
    return pd.DataFrame.from_records(records)


def comparison_to_dataframe(players: Sequence[ComparisonPlayer]) -> pd.DataFrame:
    """Wide comparison table: identity columns then ``match1_*`` and ``match2_*`` stats."""
    records = []
    for player in players:
        record: Dict[str, object] = {
            "player_id": player.player_id,
            "player_name": player.player_name,
            "jersey_number": player.jersey_number,
            "role": player.role,
            "team_name": player.team_name,
            "team_slug": player.team_slug,
        }
        for prefix, stats in (("match1", player.match1_stats), ("match2", player.match2_stats)):
            for name, value in dataclasses.asdict(stats).items():
                record[f"{prefix}_{name}"] = value
            record[f"{prefix}_pass_accuracy"] = stats.pass_accuracy
        records.append(record)
    return pd.DataFrame.from_records(records)


def build_player_leaderboards(
    player_frame: pd.DataFrame,
    groups: Mapping[str, Sequence[str]] = DEFAULT_LEADERBOARD_GROUPS,
    top_n: int = 5,
    min_attempts: int = 20,
) -> Dict[str, Dict[str, pd.DataFrame]]:
    """Top players per metric, grouped by category."""

    if player_frame.empty:
        return {}

    leaderboards: Dict[str, Dict[str, pd.DataFrame]] = {}
    base = player_frame.sort_values(["jersey_number", "name"])

    for category, metrics in groups.items():
        metric_tables: Dict[str, pd.DataFrame] = {}
        for metric in metrics:
            if metric not in base.columns:
                continue
            table = base[["player_id", "name", "team_id", metric]]
            attempts = ATTEMPT_COLUMNS.get(metric)
            if attempts in base.columns:
                threshold = min_attempts if attempts == "pass_count" else max(1, min_attempts / 4)
                table = table[base[attempts] >= threshold]
            if metric == "aerial_success_rate":
                duels = base["aerial_duels_won"] + base["aerial_duels_lost"]
                table = table[duels >= max(1, min_attempts / 4)]
            if table.empty:
                continue
            table = table.sort_values(metric, ascending=False, kind="mergesort").head(top_n)
            metric_tables[metric] = table.reset_index(drop=True)
        if metric_tables:
            leaderboards[category] = metric_tables
    return leaderboards
