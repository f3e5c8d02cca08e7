"""
Per-player pass profiles with a first/second half breakdown.

Direction is read on absolute pitch coordinates here: a pass ending at higher x
is forward, one ending at lower x is backward, and a pass with no end point or
an unchanged x is neither. Origin thirds use inclusive upper bounds.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..clients.event_store import EventStore
from ..config import EngineSettings
from ..models import MatchEvent, RosterEntry
from ..services.data_fetch import (
    CancellationToken,
    fetch_events_for_matches,
    fetch_roster,
    get_event_store,
    get_settings,
    resolve_team_match_ids,
)
from .geometry import DEFENSIVE, MIDDLE, classify_origin_third
from .orchestrator import dedupe_events

PASS_PROFILE_EVENTS = (
    "pass",
    "key_pass",
    "assist",
    "cross",
    "cut_back",
    "penalty_area_pass",
    "throw_in",
    "corner",
    "free_kick",
    "goal_kick",
    "kick_off",
    "goal_restart",
)


@dataclass(frozen=True)
class PassRecord:
    event_id: str
    event_type: str
    x: float
    y: float
    end_x: Optional[float]
    end_y: Optional[float]
    successful: bool
    half: int

    @classmethod
    def from_event(cls, event: MatchEvent) -> "PassRecord":
        return cls(
            event_id=event.id,
            event_type=event.event_type,
            x=event.x,
            y=event.y,
            end_x=event.end_x,
            end_y=event.end_y,
            successful=event.successful,
            half=event.half,
        )


@dataclass
class PassCounts:
    total: int = 0
    successful: int = 0
    unsuccessful: int = 0
    forward: int = 0
    backward: int = 0
    defensive_third: int = 0
    middle_third: int = 0
    final_third: int = 0

    def add(self, record: PassRecord, third: str) -> None:
        self.total += 1
        if record.successful:
            self.successful += 1
        else:
            self.unsuccessful += 1
        if record.end_x is not None:
            if record.end_x > record.x:
                self.forward += 1
            elif record.end_x < record.x:
                self.backward += 1
        if third == DEFENSIVE:
            self.defensive_third += 1
        elif third == MIDDLE:
            self.middle_third += 1
        else:
            self.final_third += 1


def _halves() -> Dict[int, PassCounts]:
    return {1: PassCounts(), 2: PassCounts()}


@dataclass
class PlayerPassProfile:
    player_id: str
    player_name: str
    jersey_number: int = 0
    passes: List[PassRecord] = field(default_factory=list)
    totals: PassCounts = field(default_factory=PassCounts)
    by_half: Dict[int, PassCounts] = field(default_factory=_halves)

    def passes_in_half(self, half: int) -> List[PassRecord]:
        return [record for record in self.passes if record.half == half]

    def add(self, event: MatchEvent, settings: EngineSettings) -> None:
        record = PassRecord.from_event(event)
        third = classify_origin_third(
            event.x, settings.pass_origin_defensive_max, settings.pass_origin_middle_max
        )
        self.passes.append(record)
        self.totals.add(record, third)
        self.by_half[1 if event.half == 1 else 2].add(record, third)


def _event_player_id(event: MatchEvent) -> Optional[str]:
    if event.player_id:
        return event.player_id
    return event.player.player_id if event.player else None


def build_pass_profiles(
    events: Iterable[MatchEvent],
    *,
    team_id: Optional[str] = None,
    settings: Optional[EngineSettings] = None,
) -> List[PlayerPassProfile]:
    """
    One profile per player with at least one pass-type event, by jersey number.

    Events without a linked player are ignored, as are other teams' players
    when ``team_id`` is given.
    """
    settings = settings or get_settings()
    profiles: Dict[str, PlayerPassProfile] = {}
    for event in events:
        player = event.player
        if event.event_type not in PASS_PROFILE_EVENTS or player is None:
            continue
        if team_id is not None and player.team_id != team_id:
            continue
        profile = profiles.get(player.player_id)
        if profile is None:
            profile = PlayerPassProfile(player.player_id, player.name, player.jersey_number)
            profiles[player.player_id] = profile
        profile.add(event, settings)
    return sorted(profiles.values(), key=lambda profile: profile.jersey_number)


def player_pass_profile(
    events: Iterable[MatchEvent],
    player: RosterEntry,
    *,
    settings: Optional[EngineSettings] = None,
) -> PlayerPassProfile:
    """Profile of one rostered player; empty when they made no passes."""
    settings = settings or get_settings()
    profile = PlayerPassProfile(player.player_id, player.name, player.jersey_number)
    for event in events:
        if event.event_type in PASS_PROFILE_EVENTS and _event_player_id(event) == player.player_id:
            profile.add(event, settings)
    return profile


def fetch_team_pass_profiles(
    team_id: str,
    *,
    match_filter: str = "last1",
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> List[PlayerPassProfile]:
    """Pass profiles of a team's players over the matches ``match_filter`` selects."""
    store = store or get_event_store()
    settings = settings or get_settings()
    match_ids = resolve_team_match_ids(store, team_id, match_filter)
    if not match_ids:
        return []
    batches = fetch_events_for_matches(
        store,
        match_ids,
        settings=settings,
        event_types=PASS_PROFILE_EVENTS,
        team_id=team_id,
        cancel=cancel,
    )
    events, _ = dedupe_events(event for batch in batches for event in batch.events)
    return build_pass_profiles(events, team_id=team_id, settings=settings)


def fetch_player_pass_profile(
    team_id: str,
    player_name: str,
    *,
    match_filter: str = "last1",
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> Optional[PlayerPassProfile]:
    """
    Pass profile of one player looked up by name in the team's roster.

    None when the name is not on the roster or the filter selects no match.
    """
    store = store or get_event_store()
    settings = settings or get_settings()
    player = next((entry for entry in fetch_roster(store, team_id) if entry.name == player_name), None)
    if player is None:
        return None
    match_ids = resolve_team_match_ids(store, team_id, match_filter)
    if not match_ids:
        return None
    batches = fetch_events_for_matches(
        store,
        match_ids,
        settings=settings,
        event_types=PASS_PROFILE_EVENTS,
        player_id=player.player_id,
        cancel=cancel,
    )
    events, _ = dedupe_events(event for batch in batches for event in batch.events)
    return player_pass_profile(events, player, settings=settings)
