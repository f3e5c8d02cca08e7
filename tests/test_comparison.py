from __future__ import annotations

import logging

import pytest

from matchspace.analytics.comparison import (
    PlayerEntry,
    PlayerIdentity,
    PlayerMatchStats,
    aggregate_stat_rows,
    compare_matches,
    empty_stats,
    load_match_player_stats,
    merge_comparison,
)
from matchspace.clients.static import StaticEventStore
from matchspace.config import EngineSettings
from matchspace.exceptions import AggregationError, EventStoreError

MATCHES = {
    "m1": {
        "id": "m1",
        "home_team_id": "t1",
        "away_team_id": "t2",
        "home_team_name": "Home FC",
        "away_team_name": "Away FC",
        "home_team_slug": "home-fc",
        "away_team_slug": "away-fc",
    },
    "m2": {
        "id": "m2",
        "home_team_id": "t2",
        "away_team_id": "t1",
        "home_team_name": "Away FC",
        "away_team_name": "Home FC",
        "home_team_slug": "away-fc",
        "away_team_slug": "home-fc",
    },
}


def _stat_row(player_id: str, name: str, jersey: int, half: int, **stats):
    row = {
        "player_id": player_id,
        "half": half,
        "players": {
            "id": player_id,
            "name": name,
            "jersey_number": jersey,
            "role": "MF",
            "teams": {"id": "t1", "name": "Home FC", "slug": "home-fc"},
        },
    }
    row.update(stats)
    return row


def _entry(player_id: str, team_name: str, jersey: int, slug: str = "", **stats) -> PlayerEntry:
    identity = PlayerIdentity(
        player_id=player_id, name=player_id.upper(), jersey_number=jersey, team_name=team_name, team_slug=slug
    )
    return PlayerEntry(player=identity, stats=PlayerMatchStats(**stats))


class _BrokenStatsStore(StaticEventStore):
    def fetch_player_match_stats(self, match_id):
        raise EventStoreError("down", status_code=500)


def test_player_missing_from_second_match_gets_empty_stats():
    merged = merge_comparison({"x": _entry("x", "Home FC", 9, goals=5)}, {})

    assert len(merged) == 1
    assert merged[0].match1_stats.goals == 5
    assert merged[0].match2_stats == empty_stats()


def test_union_sorted_by_team_then_jersey():
    first = {"b1": _entry("b1", "B Town", 1), "a9": _entry("a9", "A City", 9)}
    second = {"a2": _entry("a2", "A City", 2), "a9": _entry("a9", "A City", 9, goals=1)}

    merged = merge_comparison(first, second)

    assert [p.player_id for p in merged] == ["a2", "a9", "b1"]
    assert merged[0].match1_stats == empty_stats()
    assert merged[1].match2_stats.goals == 1


def test_team_slug_filter():
    first = {"a": _entry("a", "A City", 1, slug="a-city"), "b": _entry("b", "B Town", 2, slug="b-town")}

    assert [p.player_id for p in merge_comparison(first, {}, team_slug="b-town")] == ["b"]
    assert len(merge_comparison(first, {}, team_slug="all")) == 2


def test_stat_rows_are_summed_per_player():
    rows = [
        _stat_row("p1", "Ann", 8, 1, goals=1, pass_count=10, successful_pass=7, shots_attempted=2),
        _stat_row("p1", "Ann", 8, 2, goals=1, pass_count=10, successful_pass=9, shots_attempted=1),
    ]

    players = aggregate_stat_rows(rows)

    ann = players["p1"]
    assert ann.player.name == "Ann"
    assert ann.player.team_slug == "home-fc"
    assert ann.player.team_id == "t1"
    assert ann.stats.goals == 2
    assert ann.stats.shots == 3
    assert ann.stats.pass_accuracy == 80
    assert isinstance(ann.stats.pass_accuracy, int)


def test_pass_accuracy_without_passes_is_zero():
    assert PlayerMatchStats().pass_accuracy == 0


def test_stats_add_fieldwise():
    total = PlayerMatchStats(goals=1, tackles=2) + PlayerMatchStats(goals=2, minutes_played=90)
    assert (total.goals, total.tackles, total.minutes_played) == (3, 2, 90)


def test_fallback_recomputes_from_events(caplog):
    events = [
        {
            "id": "e1",
            "match_id": "m1",
            "event_type": "shot",
            "x": 90,
            "y": 50,
            "half": 1,
            "minute": 3,
            "shot_outcome": "goal",
            "player_id": "p1",
            "player": {"id": "p1", "name": "Ann", "jersey_number": 8, "role": "FW", "team_id": "t1"},
        }
    ]
    store = StaticEventStore(events, matches=MATCHES)

    with caplog.at_level(logging.INFO, logger="matchspace.analytics.comparison"):
        players = load_match_player_stats("m1", store=store, settings=EngineSettings())

    ann = players["p1"]
    assert ann.player == PlayerIdentity(
        player_id="p1",
        name="Ann",
        jersey_number=8,
        role="FW",
        team_id="t1",
        team_name="Home FC",
        team_slug="home-fc",
    )
    assert ann.stats.goals == 1
    assert ann.stats.shots == 1
    assert ann.stats.shots_on_target == 1
    assert ann.stats.minutes_played == 90
    assert "recomputing" in caplog.text


def test_stats_fetch_failure_is_an_aggregation_error():
    store = _BrokenStatsStore(matches=MATCHES)

    with pytest.raises(AggregationError) as excinfo:
        load_match_player_stats("m1", store=store, settings=EngineSettings())

    assert excinfo.value.match_id == "m1"


def test_compare_matches_mixes_stored_and_recomputed_sides():
    events = [
        {
            "id": "e1",
            "match_id": "m2",
            "event_type": "tackle",
            "x": 20,
            "y": 50,
            "half": 1,
            "minute": 3,
            "player_id": "p2",
            "player": {"id": "p2", "name": "Bo", "jersey_number": 3, "team_id": "t1"},
        }
    ]
    stored = {"m1": [_stat_row("p1", "Ann", 8, 1, goals=2, tackles=1)]}
    store = StaticEventStore(events, matches=MATCHES, player_match_stats=stored)

    players = compare_matches("m1", "m2", store=store, settings=EngineSettings())

    assert [(p.player_name, p.team_name) for p in players] == [("Bo", "Home FC"), ("Ann", "Home FC")]
    bo, ann = players
    assert bo.match1_stats == empty_stats()
    assert bo.match2_stats.tackles == 1
    assert ann.match1_stats.goals == 2
    assert ann.match2_stats == empty_stats()
