from __future__ import annotations

import pandas as pd
import pytest

from matchspace.analytics.comparison import ComparisonPlayer, PlayerMatchStats, empty_stats
from matchspace.analytics.frames import (
    EVENT_COLUMNS,
    build_player_leaderboards,
    comparison_to_dataframe,
    events_to_dataframe,
    player_stats_to_dataframe,
)
from matchspace.analytics.player_stats import DerivedPlayerStats
from matchspace.models import MatchEvent, PlayerRef


def _player(player_id: str, jersey: int, **counters) -> DerivedPlayerStats:
    return DerivedPlayerStats(player_id=player_id, name=player_id.title(), jersey_number=jersey, team_id="t1", **counters)


def test_events_to_dataframe_tags_zone_and_lane():
    player = PlayerRef(player_id="p1", name="Ann", jersey_number=8, team_id="t1")
    events = [
        MatchEvent(id="e1", match_id="m1", event_type="pass", x=80.0, y=10.0, half=1, minute=3, player=player),
        MatchEvent(id="e2", match_id="m1", event_type="tackle", x=20.0, y=50.0, half=2, minute=70),
    ]

    df = events_to_dataframe(events)

    assert list(df.columns) == EVENT_COLUMNS
    assert df["zone"].tolist() == ["final", "defensive"]
    assert df["lane"].tolist() == ["left", "center"]
    assert df.loc[0, "player_name"] == "Ann"
    assert df.loc[0, "team_id"] == "t1"
    assert df.loc[1, "player_name"] is None


def test_events_to_dataframe_empty():
    df = events_to_dataframe([])
    assert df.empty
    assert list(df.columns) == EVENT_COLUMNS


def test_player_stats_frame_recomputes_percentages():
    stats = _player("ann", 8, pass_count=4, successful_pass=3)
    stats.passes_by_zone.add("middle", 4)

    df = player_stats_to_dataframe([stats], extra={"match_id": "m1"})

    row = df.iloc[0]
    assert row["pass_accuracy"] == pytest.approx(75.0)
    assert row["passes_middle_third"] == 4
    assert row["match_id"] == "m1"


def test_player_stats_frame_empty_has_columns():
    df = player_stats_to_dataframe([])
    assert df.empty
    assert {"pass_accuracy", "passes_defensive_third", "player_id"} <= set(df.columns)


def test_comparison_frame_is_wide():
    players = [
        ComparisonPlayer(
            player_id="p1",
            player_name="Ann",
            jersey_number=8,
            role="MF",
            team_name="Home FC",
            team_slug="home-fc",
            match1_stats=PlayerMatchStats(goals=1, pass_count=4, successful_pass=3),
            match2_stats=empty_stats(),
        )
    ]

    df = comparison_to_dataframe(players)

    assert df.loc[0, "match1_goals"] == 1
    assert df.loc[0, "match1_pass_accuracy"] == 75
    assert df.loc[0, "match2_pass_accuracy"] == 0
    assert "match2_minutes_played" in df.columns


def test_leaderboards_apply_minimum_attempts():
    players = [
        _player("ann", 8, pass_count=5, successful_pass=5, goals=3, shots_attempted=5),
        _player("bo", 10, pass_count=30, successful_pass=27, goals=1, shots_attempted=10),
        _player("cal", 4, pass_count=40, successful_pass=20, goals=2, shots_attempted=2),
    ]
    frame = player_stats_to_dataframe(players)

    boards = build_player_leaderboards(frame, top_n=2, min_attempts=20)

    accuracy = boards["passing"]["pass_accuracy"]
    assert accuracy["name"].tolist() == ["Bo", "Cal"]
    assert boards["shooting"]["goals"]["name"].tolist() == ["Ann", "Cal"]
    conversion = boards["shooting"]["conversion_rate"]
    assert conversion["name"].tolist() == ["Ann", "Bo"]
    assert "aerial_success_rate" not in boards.get("aerial", {})


def test_leaderboards_of_empty_frame():
    assert build_player_leaderboards(pd.DataFrame()) == {}
