from __future__ import annotations

import logging
import threading

import pytest

from matchspace.analytics.orchestrator import (
    aggregate_match,
    aggregate_player_advanced_stats,
    aggregate_team_across_matches,
    dedupe_events,
)
from matchspace.clients.static import StaticEventStore
from matchspace.config import EngineSettings
from matchspace.exceptions import AggregationCancelled, AggregationError, EventStoreError
from matchspace.models import MatchEvent

PLAYERS = {
    "p1": {"id": "p1", "name": "Ann", "jersey_number": 8, "team_id": "t-home"},
    "p2": {"id": "p2", "name": "Bo", "jersey_number": 10, "team_id": "t-away"},
    "p3": {"id": "p3", "name": "Cal", "jersey_number": 4, "team_id": "t-third"},
}

MATCHES = {
    "m1": {
        "id": "m1",
        "home_team_id": "t-home",
        "away_team_id": "t-away",
        "home_team_name": "Home FC",
        "away_team_name": "Away FC",
        "home_attacks_left": False,
    },
    "m2": {
        "id": "m2",
        "home_team_id": "t-third",
        "away_team_id": "t-home",
        "h1_playing_time_seconds": 2700,
        "h1_injury_time_seconds": 120,
        "h2_playing_time_seconds": 2700,
        "h2_injury_time_seconds": 180,
    },
}


def _row(event_id: str, event_type: str = "pass", player: str = "p1", match_id: str = "m1", **overrides):
    row = {
        "id": event_id,
        "match_id": match_id,
        "event_type": event_type,
        "x": 50,
        "y": 50,
        "half": 1,
        "minute": 10,
        "successful": True,
        "player_id": player,
        "player": PLAYERS[player],
    }
    row.update(overrides)
    return row


def _bulk_rows(count: int):
    rows = []
    for index in range(count):
        player = "p1" if index % 2 else "p2"
        rows.append(
            _row(
                f"e{index}",
                event_type=("pass", "shot", "tackle", "corner", "dispossession")[index % 5],
                player=player,
                x=(index * 7) % 100,
                y=(index * 13) % 100,
                half=1 if index < count // 2 else 2,
                minute=index % 90,
                successful=index % 3 != 0,
                shot_outcome="goal" if index % 5 == 1 and index % 4 == 1 else None,
                phase_id=f"ph{index // 10}",
            )
        )
    return rows


class _FailingStore(StaticEventStore):
    def fetch_events(self, match_id, **kwargs):
        if kwargs.get("offset", 0) > 0:
            raise EventStoreError("timeout", status_code=504)
        return super().fetch_events(match_id, **kwargs)


def test_aggregate_match_is_idempotent():
    store = StaticEventStore(_bulk_rows(300), matches=MATCHES)
    settings = EngineSettings()

    first = aggregate_match("m1", store=store, settings=settings)
    second = aggregate_match("m1", store=store, settings=settings)

    assert first == second
    assert first.event_count == 300


def test_result_does_not_depend_on_page_size():
    store = StaticEventStore(_bulk_rows(2500), matches=MATCHES)

    paged = aggregate_match("m1", store=store, settings=EngineSettings(page_size=1000))
    single = aggregate_match("m1", store=store, settings=EngineSettings(page_size=2500))

    assert paged == single
    assert paged.event_count == 2500
    assert paged.match.home_team_name == "Home FC"


def test_page_failure_returns_no_partial_result():
    store = _FailingStore(_bulk_rows(20), matches=MATCHES)

    with pytest.raises(AggregationError) as excinfo:
        aggregate_match("m1", store=store, settings=EngineSettings(page_size=10))

    assert excinfo.value.match_id == "m1"
    assert isinstance(excinfo.value.__cause__, EventStoreError)


def test_cancellation_aborts_aggregation():
    cancel = threading.Event()
    cancel.set()
    store = StaticEventStore(_bulk_rows(5), matches=MATCHES)

    with pytest.raises(AggregationCancelled):
        aggregate_match("m1", store=store, settings=EngineSettings(), cancel=cancel)


def test_unknown_match_fails():
    store = StaticEventStore(_bulk_rows(5), matches=MATCHES)

    with pytest.raises(AggregationError):
        aggregate_match("m404", store=store, settings=EngineSettings())


def test_skipped_and_duplicate_rows_are_counted(caplog):
    rows = [_row("e1"), _row("e2", x=101), _row("e1"), _row("e3", event_type="tackle")]
    store = StaticEventStore(rows, matches=MATCHES)

    with caplog.at_level(logging.INFO, logger="matchspace.analytics.orchestrator"):
        analysis = aggregate_match("m1", store=store, settings=EngineSettings())

    assert analysis.event_count == 2
    assert analysis.skipped_events == 1
    assert analysis.duplicate_events == 1
    assert "Aggregated match m1" in caplog.text


def test_dedupe_keeps_first_occurrence():
    first = MatchEvent(id="a", match_id="m1", event_type="pass", x=1.0, y=1.0, half=1, minute=1)
    again = MatchEvent(id="a", match_id="m1", event_type="shot", x=2.0, y=2.0, half=1, minute=2)
    other = MatchEvent(id="b", match_id="m1", event_type="pass", x=1.0, y=1.0, half=1, minute=3)

    unique, duplicates = dedupe_events([first, again, other])

    assert unique == [first, other]
    assert duplicates == 1


def test_team_aggregation_across_matches():
    rows = [
        _row("a1", x=40, end_x=60),
        _row("a2", x=40, end_x=60),
        _row("a3", successful=False),
        _row("a4", player="p2"),
        _row("b1", match_id="m2"),
        _row("b2", match_id="m2"),
        _row("b3", player="p3", match_id="m2"),
    ]
    store = StaticEventStore(rows, matches=MATCHES)

    players = aggregate_team_across_matches(["m1", "m2"], "t-home", store=store, settings=EngineSettings())

    assert list(players) == ["p1"]
    ann = players["p1"]
    assert ann.pass_count == 5
    assert ann.successful_pass == 4
    assert ann.pass_accuracy == pytest.approx(80.0)
    # 90 minutes in the first match, 95 in the second.
    assert ann.minutes_played == 185


def test_team_aggregation_rejects_team_not_in_match():
    store = StaticEventStore([_row("a1")], matches=MATCHES)

    with pytest.raises(AggregationError) as excinfo:
        aggregate_team_across_matches(["m1"], "t-third", store=store, settings=EngineSettings())

    assert excinfo.value.match_id == "m1"


def test_player_advanced_view_uses_zone_cutoffs_for_lanes():
    rows = [
        _row("a1", y=33.31),
        _row("a2", y=50),
        _row("a3", y=80, successful=False),
        _row("a4", event_type="dispossession", x=70),
        _row("a5", event_type="shot", x=90),
        _row("a6", player="p2", y=10),
        _row("b1", match_id="m2", y=50, half=2),
    ]
    store = StaticEventStore(rows, matches=MATCHES)

    view = aggregate_player_advanced_stats("p1", ["m1", "m2"], store=store, settings=EngineSettings())

    assert view.event_count == 5
    assert [lane.pass_count for lane in view.attacking_threat.all] == [1, 2, 1]
    assert [lane.threat_percent for lane in view.attacking_threat.all] == [25, 50, 25]
    assert [lane.pass_count for lane in view.attacking_threat.second_half] == [0, 1, 0]
    assert all(lane.xg == 0 for lane in view.attacking_threat.all)
    assert [(loss.event_id, loss.zone) for loss in view.possession_losses] == [
        ("a3", "middle"),
        ("a4", "final"),
    ]
