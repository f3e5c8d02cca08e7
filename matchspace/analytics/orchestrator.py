"""
Entry points that turn a match's events into the complete set of derived views.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..clients.event_store import EventStore
from ..config import EngineSettings
from ..exceptions import AggregationError
from ..models import PASS_FAMILY_EVENTS, MatchEvent, MatchMetadata
from ..services.data_fetch import (
    CancellationToken,
    fetch_all_events,
    fetch_events_for_matches,
    fetch_match_metadata,
    get_event_store,
    get_settings,
)
from .accumulators import (
    Accumulator,
    AttackingPhase,
    DefensiveAction,
    EventTypeTally,
    FoldContext,
    LaneStats,
    LaneThreatAccumulator,
    PossessionLoss,
    Scoped,
    SetPieceSummary,
    ShotRecord,
    TeamPassesByThird,
    default_accumulators,
    half_scope,
    possession_loss_from_event,
)
from .geometry import is_possession_loss
from .player_stats import DerivedPlayerStats, aggregate_player_stats, merge_player_maps
from .xg import TeamXGSummary

LOGGER = logging.getLogger(__name__)

ADVANCED_VIEW_EVENTS = tuple(sorted(PASS_FAMILY_EVENTS | {"dispossession", "dribble"}))


@dataclass(frozen=True)
class MatchAnalysis:
    match: MatchMetadata
    phases: Dict[str, Tuple[AttackingPhase, ...]]
    shots: Tuple[ShotRecord, ...]
    xg: Dict[str, TeamXGSummary]
    goals: Dict[str, int]
    defensive_events: Tuple[DefensiveAction, ...]
    possession_losses: Dict[str, Tuple[PossessionLoss, ...]]
    attacking_threat: Dict[str, Scoped[Tuple[LaneStats, ...]]]
    set_pieces: Dict[str, Scoped[SetPieceSummary]]
    passes_by_third: Dict[str, TeamPassesByThird]
    event_stats: Dict[str, EventTypeTally]
    players: Dict[str, Tuple[DerivedPlayerStats, ...]]
    event_count: int
    skipped_events: int = 0
    duplicate_events: int = 0


@dataclass(frozen=True)
class PlayerAdvancedStats:
    player_id: str
    possession_losses: Tuple[PossessionLoss, ...]
    attacking_threat: Scoped[Tuple[LaneStats, ...]]
    event_count: int


def dedupe_events(events: Iterable[MatchEvent]) -> Tuple[List[MatchEvent], int]:
    """Keep the first occurrence of every event id, preserving order."""
    seen = set()
    unique: List[MatchEvent] = []
    duplicates = 0
    for event in events:
        if event.id in seen:
            duplicates += 1
            continue
        seen.add(event.id)
        unique.append(event)
    return unique, duplicates


def fold_events(
    events: Sequence[MatchEvent],
    match: MatchMetadata,
    accumulators: Sequence[Accumulator],
    settings: EngineSettings,
) -> Dict[str, Any]:
    """Route every event once through every accumulator that accepts it, then finalize."""
    states = [acc.initial() for acc in accumulators]
    for event in events:
        ctx = FoldContext(
            match=match,
            settings=settings,
            side=match.side_for_team(event.team_id),
            scope=half_scope(event.half),
        )
        for index, acc in enumerate(accumulators):
            if acc.accepts(event, ctx):
                states[index] = acc.fold(states[index], event, ctx)
    return {
        acc.name: acc.finalize(state, match, settings) for acc, state in zip(accumulators, states)
    }


def analyse_events(
    events: Iterable[MatchEvent],
    match: MatchMetadata,
    *,
    settings: Optional[EngineSettings] = None,
    skipped_events: int = 0,
) -> MatchAnalysis:
    """
    Build every view for one match from an already fetched batch of events.

    Events are deduplicated by id before folding.
    """
    settings = settings or get_settings()
    unique, duplicates = dedupe_events(events)
    views = fold_events(unique, match, default_accumulators(), settings)
    shots = views["shots"]
    return MatchAnalysis(
        match=match,
        phases=views["phases"],
        shots=shots.shots,
        xg=shots.xg,
        goals=shots.goals,
        defensive_events=views["defensive_events"],
        possession_losses=views["possession_losses"],
        attacking_threat=views["attacking_threat"],
        set_pieces=views["set_pieces"],
        passes_by_third=views["passes_by_third"],
        event_stats=views["event_stats"],
        players=views["players"],
        event_count=len(unique),
        skipped_events=skipped_events,
        duplicate_events=duplicates,
    )


def aggregate_match(
    match_id: str,
    *,
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> MatchAnalysis:
    """
    Fetch a match's metadata and every event page, then build the full analysis.

    Any failed page aborts with ``AggregationError``; nothing partial is returned.
    """
    store = store or get_event_store()
    settings = settings or get_settings()
    match = fetch_match_metadata(store, match_id)
    batch = fetch_all_events(store, match_id, settings=settings, cancel=cancel)
    analysis = analyse_events(batch.events, match, settings=settings, skipped_events=batch.skipped)
    LOGGER.info(
        "Aggregated match %s: %s events folded, %s skipped, %s duplicates",
        match_id,
        analysis.event_count,
        analysis.skipped_events,
        analysis.duplicate_events,
    )
    return analysis


def aggregate_team_across_matches(
    match_ids: Sequence[str],
    team_id: str,
    *,
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> Dict[str, DerivedPlayerStats]:
    """
    Per-player stats for one team summed over several matches.

    Each match is aggregated with its own attacking directions and length before
    the counters are summed; percentages recompute from the merged counters.
    """
    store = store or get_event_store()
    settings = settings or get_settings()
    per_match: List[Dict[str, DerivedPlayerStats]] = []
    for match_id in match_ids:
        match = fetch_match_metadata(store, match_id)
        side = match.side_for_team(team_id)
        if side is None:
            raise AggregationError(
                f"Team {team_id} did not play in match {match_id}", match_id=match_id
            )
        batch = fetch_all_events(store, match_id, settings=settings, team_id=team_id, cancel=cancel)
        events, _ = dedupe_events(batch.events)
        per_match.append(
            aggregate_player_stats(
                events,
                total_match_minutes=match.total_match_minutes(settings.default_half_seconds),
                home_attacks_left=match.home_attacks_left,
                is_home_team=match.home_team_id == team_id,
                team_id=team_id,
                settings=settings,
            )
        )
    return merge_player_maps(per_match)


def aggregate_player_advanced_stats(
    player_id: str,
    match_ids: Sequence[str],
    *,
    store: Optional[EventStore] = None,
    settings: Optional[EngineSettings] = None,
    cancel: Optional[CancellationToken] = None,
) -> PlayerAdvancedStats:
    """
    One player's possession losses and lane distribution across matches.

    Every pass-family event counts towards the lanes here, split at the zone
    cutoffs rather than the lane cutoffs used by the team view.
    """
    store = store or get_event_store()
    settings = settings or get_settings()
    batches = fetch_events_for_matches(
        store,
        match_ids,
        settings=settings,
        event_types=ADVANCED_VIEW_EVENTS,
        player_id=player_id,
        cancel=cancel,
    )
    events, _ = dedupe_events(event for batch in batches for event in batch.events)

    lanes = LaneThreatAccumulator(
        successful_only=False,
        left_max=settings.zone_defensive_max,
        right_min=settings.zone_middle_max,
        track_threat=False,
        team_scoped=False,
    )
    state = lanes.initial()
    losses: List[PossessionLoss] = []
    placeholder = MatchMetadata(match_id="", home_team_id="", away_team_id="")
    for event in events:
        ctx = FoldContext(match=placeholder, settings=settings, side=None, scope=half_scope(event.half))
        if lanes.accepts(event, ctx):
            state = lanes.fold(state, event, ctx)
        if is_possession_loss(event):
            losses.append(possession_loss_from_event(event, settings))

    return PlayerAdvancedStats(
        player_id=str(player_id),
        possession_losses=tuple(losses),
        attacking_threat=lanes.finalize(state, placeholder, settings)[None],
        event_count=len(events),
    )
