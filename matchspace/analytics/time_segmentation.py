"""
Active work time versus breaks for event data entry.

Gaps between consecutive ingestion timestamps longer than the break threshold
count as breaks; every other gap counts as active time.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

from ..clients.event_store import EventStore
from ..config import EngineSettings
from ..models import MatchMetadata
from ..services.data_fetch import (
    CancellationToken,
    fetch_event_timestamps,
    fetch_match_metadata,
    get_event_store,
    get_settings,
)

@dataclass(frozen=True)
class WorkSegments:
    active_ms: int = 0
    break_ms: int = 0
    break_count: int = 0


@dataclass(frozen=True)
class MatchEntryStats:
    match_id: str
    event_count: int
    first_event_at: datetime
    last_event_at: datetime
    duration_ms: int
    active_ms: int
    break_ms: int
    break_count: int
    match_date: Optional[str] = None
    home_team: str = ""
    away_team: str = ""

    @property
    def seconds_per_event(self) -> Optional[int]:
        if self.event_count <= 1:
            return None
        return int(self.duration_ms / self.event_count / 1000 + 0.5)


@dataclass(frozen=True)
class DayWorkStats:
    day: date
    active_ms: int
    break_ms: int
    break_count: int
    event_count: int
    match_count: int


@dataclass(frozen=True)
class EntrySummary:
    average_duration_ms: float
    average_events_per_match: int
    average_seconds_per_event: int


def segment_timestamps(
    timestamps: Iterable[int], threshold_ms: Optional[int] = None
) -> WorkSegments:
    """
    Split the span of ``timestamps`` (epoch ms) into active time and breaks.

    ``threshold_ms`` defaults to the configured ``break_threshold_ms``.
    """
    if threshold_ms is None:
        threshold_ms = get_settings().break_threshold_ms
    ordered = sorted(timestamps)
    if len(ordered) < 2:
        return WorkSegments()
    active = pause = breaks = 0
    for previous, current in zip(ordered, ordered[1:]):
        gap = current - previous
        if gap > threshold_ms:
            pause += gap
            breaks += 1
        else:
            active += gap
    return WorkSegments(active_ms=active, break_ms=pause, break_count=breaks)


def _from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def match_entry_stats(
    match_id: str,
    timestamps: Sequence[int],
    *,
    match: Optional[MatchMetadata] = None,
    threshold_ms: Optional[int] = None,
) -> Optional[MatchEntryStats]:
    """Entry stats for one match; None when it has no events."""
    if not timestamps:
        return None
    ordered = sorted(timestamps)
    segments = segment_timestamps(ordered, threshold_ms)
    return MatchEntryStats(
        match_id=str(match_id),
        event_count=len(ordered),
        first_event_at=_from_ms(ordered[0]),
        last_event_at=_from_ms(ordered[-1]),
        duration_ms=ordered[-1] - ordered[0],
        active_ms=segments.active_ms,
        break_ms=segments.break_ms,
        break_count=segments.break_count,
        match_date=match.match_date if match else None,
        home_team=match.home_team_name if match else "",
        away_team=match.away_team_name if match else "",
    )


def compute_day_work_stats(
    entries: Iterable[MatchEntryStats], tz: tzinfo = timezone.utc
) -> List[DayWorkStats]:
    """
    Sum per-match segments by the calendar day of each match's first event.

    Days are returned oldest first.
    """
    days: Dict[date, List[MatchEntryStats]] = {}
    for entry in entries:
        days.setdefault(entry.first_event_at.astimezone(tz).date(), []).append(entry)
    return [
        DayWorkStats(
            day=day,
            active_ms=sum(e.active_ms for e in grouped),
            break_ms=sum(e.break_ms for e in grouped),
            break_count=sum(e.break_count for e in grouped),
            event_count=sum(e.event_count for e in grouped),
            match_count=len(grouped),
        )
        for day, grouped in sorted(days.items())
    ]


def summarise_entry_stats(entries: Sequence[MatchEntryStats]) -> EntrySummary:
    if not entries:
        return EntrySummary(0.0, 0, 0)
    count = len(entries)
    per_event = sum(e.duration_ms / e.event_count if e.event_count > 1 else 0 for e in entries)
    return EntrySummary(
        average_duration_ms=sum(e.duration_ms for e in entries) / count,
        average_events_per_match=int(sum(e.event_count for e in entries) / count + 0.5),
        average_seconds_per_event=int(per_event / count / 1000 + 0.5),
    )


def format_duration(ms: int) -> str:
    """``1h 02m 03s`` or ``2m 03s``."""
    total_seconds = ms // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m {seconds:02d}s"
    return f"{minutes}m {seconds:02d}s"


def collect_match_entry_stats(
    match_ids: Sequence[str],
    *,
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> List[MatchEntryStats]:
    """Entry stats for every match that has at least one timestamped event."""
    store = store or get_event_store()
    settings = settings or get_settings()
    results: List[MatchEntryStats] = []
    for match_id in match_ids:
        timestamps = fetch_event_timestamps(store, match_id, settings=settings, cancel=cancel)
        if not timestamps:
            continue
        match = fetch_match_metadata(store, match_id)
        stats = match_entry_stats(
            match_id, timestamps, match=match, threshold_ms=settings.break_threshold_ms
        )
        if stats is not None:
            results.append(stats)
    return results
