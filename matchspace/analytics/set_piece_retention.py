"""
Set-piece retention for one team: how often throw-ins, corners and free kicks
keep the ball, where they are taken from, and where possession is given away.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..clients.event_store import EventStore
from ..config import EngineSettings
from ..models import MatchEvent
from ..services.data_fetch import CancellationToken, fetch_all_events, get_event_store, get_settings
from .geometry import (
    FINAL,
    LEFT,
    RIGHT,
    RETENTION_LOSS_EVENTS,
    ZONES,
    classify_zone,
    is_failed_pass_family,
    safe_percent,
    side_of_pitch,
)
from .orchestrator import dedupe_events

RETENTION_TYPES = ("throw_in", "corner", "free_kick")
FAILED_PASS = "failed_pass"


@dataclass(frozen=True)
class RetentionStats:
    type: str
    total: int
    successful: int
    failed: int
    success_rate: int


@dataclass(frozen=True)
class ZoneRetention:
    zone: str
    side: str
    total: int
    successful: int
    failed: int
    success_rate: int


@dataclass(frozen=True)
class SuccessCount:
    total: int = 0
    successful: int = 0

    @property
    def rate(self) -> int:
        return safe_percent(self.successful, self.total)


@dataclass(frozen=True)
class PlayerRetention:
    player_id: str
    player_name: str
    jersey_number: int
    throw_ins: SuccessCount
    corners: SuccessCount
    free_kicks: SuccessCount


@dataclass(frozen=True)
class RetentionLoss:
    event_id: str
    x: float
    y: float
    zone: str
    type: str
    player_name: str
    jersey_number: int
    minute: int
    half: int


@dataclass(frozen=True)
class ZoneLossShare:
    zone: str
    count: int
    percentage: int


@dataclass(frozen=True)
class SetPieceRetention:
    overview: Tuple[RetentionStats, ...]
    throw_ins_by_zone: Tuple[ZoneRetention, ...]
    corners_by_side: Tuple[ZoneRetention, ...]
    players: Tuple[PlayerRetention, ...]
    possession_losses: Tuple[RetentionLoss, ...]
    possession_loss_by_zone: Tuple[ZoneLossShare, ...]


def _tally(events: Iterable[MatchEvent]) -> Tuple[int, int]:
    total = successful = 0
    for event in events:
        total += 1
        if event.successful:
            successful += 1
    return total, successful


def _zone_row(zone: str, side: str, events: List[MatchEvent]) -> ZoneRetention:
    total, successful = _tally(events)
    return ZoneRetention(
        zone=zone,
        side=side,
        total=total,
        successful=successful,
        failed=total - successful,
        success_rate=safe_percent(successful, total),
    )


def set_piece_retention(
    events: Iterable[MatchEvent],
    team_id: str,
    *,
    half: Optional[int] = None,
    settings: Optional[EngineSettings] = None,
) -> SetPieceRetention:
    """Retention view for ``team_id``, optionally limited to one half."""
    settings = settings or get_settings()

    def zone_of(event: MatchEvent) -> str:
        return classify_zone(event.x, settings.zone_defensive_max, settings.zone_middle_max)

    team_events = [
        e for e in events if e.team_id == team_id and (half is None or e.half == half)
    ]
    by_type: Dict[str, List[MatchEvent]] = {kind: [] for kind in RETENTION_TYPES}
    for event in team_events:
        if event.event_type in by_type:
            by_type[event.event_type].append(event)

    overview = []
    for kind in RETENTION_TYPES:
        total, successful = _tally(by_type[kind])
        overview.append(
            RetentionStats(kind, total, successful, total - successful, safe_percent(successful, total))
        )

    throw_ins_by_zone = tuple(
        _zone_row(
            zone,
            side,
            [e for e in by_type["throw_in"] if zone_of(e) == zone and side_of_pitch(e.y) == side],
        )
        for zone in ZONES
        for side in (LEFT, RIGHT)
    )
    corners_by_side = tuple(
        _zone_row(FINAL, side, [e for e in by_type["corner"] if side_of_pitch(e.y) == side])
        for side in (LEFT, RIGHT)
    )

    players: Dict[str, Dict[str, object]] = {}
    for kind in RETENTION_TYPES:
        for event in by_type[kind]:
            if event.player is None:
                continue
            entry = players.setdefault(
                event.player.player_id,
                {"player": event.player, "throw_in": [0, 0], "corner": [0, 0], "free_kick": [0, 0]},
            )
            counts = entry[kind]
            counts[0] += 1
            if event.successful:
                counts[1] += 1
    player_rows = [
        PlayerRetention(
            player_id=player_id,
            player_name=entry["player"].name,
            jersey_number=entry["player"].jersey_number,
            throw_ins=SuccessCount(*entry["throw_in"]),
            corners=SuccessCount(*entry["corner"]),
            free_kicks=SuccessCount(*entry["free_kick"]),
        )
        for player_id, entry in players.items()
    ]
    player_rows.sort(key=lambda row: row.throw_ins.total + row.corners.total, reverse=True)

    # Explicit loss types first, then failed passes.
    flagged = [e for e in team_events if is_failed_pass_family(e)]
    ordered = [e for e in flagged if e.event_type in RETENTION_LOSS_EVENTS] + [
        e for e in flagged if e.event_type not in RETENTION_LOSS_EVENTS
    ]
    losses = tuple(
        RetentionLoss(
            event_id=e.id,
            x=e.x,
            y=e.y,
            zone=zone_of(e),
            type=e.event_type if e.event_type in RETENTION_LOSS_EVENTS else FAILED_PASS,
            player_name=e.player.name if e.player else "Unknown",
            jersey_number=e.player.jersey_number if e.player else 0,
            minute=e.minute,
            half=e.half,
        )
        for e in ordered
    )
    loss_by_zone = tuple(
        ZoneLossShare(
            zone=zone,
            count=sum(1 for loss in losses if loss.zone == zone),
            percentage=safe_percent(sum(1 for loss in losses if loss.zone == zone), len(losses)),
        )
        for zone in ZONES
    )

    return SetPieceRetention(
        overview=tuple(overview),
        throw_ins_by_zone=throw_ins_by_zone,
        corners_by_side=corners_by_side,
        players=tuple(player_rows),
        possession_losses=losses,
        possession_loss_by_zone=loss_by_zone,
    )


def fetch_set_piece_retention(
    match_id: str,
    team_id: str,
    *,
    half: Optional[int] = None,
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> SetPieceRetention:
    store = store or get_event_store()
    settings = settings or get_settings()
    batch = fetch_all_events(store, match_id, settings=settings, team_id=team_id, cancel=cancel)
    events, _ = dedupe_events(batch.events)
    return set_piece_retention(events, team_id, half=half, settings=settings)
