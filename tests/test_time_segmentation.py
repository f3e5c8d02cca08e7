from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from matchspace.analytics.time_segmentation import (
    WorkSegments,
    collect_match_entry_stats,
    compute_day_work_stats,
    format_duration,
    match_entry_stats,
    segment_timestamps,
    summarise_entry_stats,
)
from matchspace import config
from matchspace.clients.static import StaticEventStore
from matchspace.config import EngineSettings
from matchspace.models import MatchMetadata
from matchspace.services import data_fetch

HOUR = 3_600_000


def _ms(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def test_long_gap_is_a_break():
    assert segment_timestamps([0, 1_000_000, 5_000_000]) == WorkSegments(
        active_ms=1_000_000, break_ms=4_000_000, break_count=1
    )


def test_input_order_does_not_matter():
    assert segment_timestamps([5_000_000, 0, 1_000_000]) == segment_timestamps([0, 1_000_000, 5_000_000])


def test_gap_equal_to_threshold_is_active():
    assert segment_timestamps([0, HOUR]) == WorkSegments(active_ms=HOUR, break_ms=0, break_count=0)


def test_custom_threshold():
    assert segment_timestamps([0, 10, 100], threshold_ms=50) == WorkSegments(10, 90, 1)


@pytest.mark.parametrize("timestamps", [[], [42]])
def test_fewer_than_two_timestamps(timestamps):
    assert segment_timestamps(timestamps) == WorkSegments(0, 0, 0)


def test_active_plus_breaks_cover_the_whole_span():
    timestamps = [0, 100, 2 * HOUR, 2 * HOUR + 500, 5 * HOUR]
    segments = segment_timestamps(timestamps)
    assert segments.active_ms + segments.break_ms == 5 * HOUR
    assert segments.break_count == 2


def test_match_entry_stats():
    match = MatchMetadata(
        match_id="m1", home_team_id="t1", away_team_id="t2", home_team_name="Home FC", match_date="2024-03-01"
    )
    start = _ms(2024, 3, 1, 10)
    stats = match_entry_stats("m1", [start + 60_000, start, start + 2 * HOUR], match=match)

    assert stats.event_count == 3
    assert stats.first_event_at == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
    assert stats.last_event_at == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)
    assert stats.duration_ms == 2 * HOUR
    assert (stats.active_ms, stats.break_ms, stats.break_count) == (60_000, 2 * HOUR - 60_000, 1)
    assert stats.home_team == "Home FC"
    assert stats.match_date == "2024-03-01"
    assert stats.seconds_per_event == 2400


def test_match_without_events_has_no_entry_stats():
    assert match_entry_stats("m1", []) is None


def test_day_stats_group_by_first_event():
    entries = [
        match_entry_stats("m1", [_ms(2024, 3, 1, 9), _ms(2024, 3, 1, 9, 30)]),
        match_entry_stats("m2", [_ms(2024, 3, 1, 14), _ms(2024, 3, 1, 16)]),
        match_entry_stats("m3", [_ms(2024, 2, 29, 23, 50), _ms(2024, 3, 1, 0, 10)]),
    ]

    days = compute_day_work_stats(entries)

    assert [d.day for d in days] == [date(2024, 2, 29), date(2024, 3, 1)]
    leap, first = days
    assert (leap.match_count, leap.event_count, leap.active_ms) == (1, 2, 20 * 60_000)
    assert (first.match_count, first.event_count) == (2, 4)
    assert first.active_ms == 30 * 60_000
    assert (first.break_ms, first.break_count) == (2 * HOUR, 1)


def test_day_stats_respect_timezone():
    entries = [match_entry_stats("m1", [_ms(2024, 3, 1, 23, 30), _ms(2024, 3, 1, 23, 45)])]

    days = compute_day_work_stats(entries, tz=timezone(timedelta(hours=2)))

    assert days[0].day == date(2024, 3, 2)


@pytest.mark.parametrize(
    "ms,text",
    [(0, "0m 00s"), (123_000, "2m 03s"), (3_723_000, "1h 02m 03s"), (36_000_999, "10h 00m 00s")],
)
def test_format_duration(ms, text):
    assert format_duration(ms) == text


def test_summary_averages():
    entries = [
        match_entry_stats("m1", [0, 100_000]),
        match_entry_stats("m2", [0, 150_000, 300_000, 400_000]),
    ]

    summary = summarise_entry_stats(entries)

    assert summary.average_duration_ms == pytest.approx(250_000)
    assert summary.average_events_per_match == 3
    # 50 s and 100 s per event.
    assert summary.average_seconds_per_event == 75


def test_summary_of_nothing():
    summary = summarise_entry_stats([])
    assert (summary.average_duration_ms, summary.average_events_per_match) == (0.0, 0)


def test_collect_from_store_skips_matches_without_timestamps():
    player = {"id": "p1", "name": "Ann", "jersey_number": 8, "team_id": "t1"}
    rows = [
        {
            "id": f"e{i}",
            "match_id": "m1",
            "event_type": "pass",
            "x": 50,
            "y": 50,
            "half": 1,
            "minute": i,
            "player": player,
            "created_at": created_at,
        }
        for i, created_at in enumerate(["2024-03-01T10:00:00Z", "2024-03-01T10:05:00Z", "2024-03-01T12:00:00Z"])
    ]
    rows.append(
        {"id": "x1", "match_id": "m2", "event_type": "pass", "x": 1, "y": 1, "half": 1, "minute": 1}
    )
    matches = {
        "m1": {"id": "m1", "home_team_id": "t1", "away_team_id": "t2", "away_team_name": "Away FC"},
        "m2": {"id": "m2", "home_team_id": "t1", "away_team_id": "t2"},
    }
    store = StaticEventStore(rows, matches=matches)

    entries = collect_match_entry_stats(["m1", "m2"], store=store, settings=EngineSettings())

    assert [e.match_id for e in entries] == ["m1"]
    entry = entries[0]
    assert entry.away_team == "Away FC"
    assert (entry.active_ms, entry.break_ms, entry.break_count) == (300_000, 6_900_000, 1)


def test_break_threshold_defaults_to_configured_value(monkeypatch):
    monkeypatch.setattr(config, "_ENV_LOADED", True)
    monkeypatch.delenv("MATCHSPACE_CONFIG", raising=False)
    monkeypatch.setenv("MATCHSPACE_BREAK_THRESHOLD_MS", "60000")
    data_fetch._settings.cache_clear()
    try:
        assert segment_timestamps([0, 30_000, 120_000]) == WorkSegments(30_000, 90_000, 1)
        stats = match_entry_stats("m1", [0, 30_000, 120_000])
        assert (stats.active_ms, stats.break_count) == (30_000, 1)
    finally:
        data_fetch._settings.cache_clear()
