"""
Reducers that each fold one event at a time into a running aggregate.

Every accumulator declares the event types it cares about and whether it is
team scoped. Team scoped accumulators never see an event whose player cannot be
linked to the home or away side; the others receive it with ``side=None``.
Half partitioning happens inside the accumulators so one pass over the events
fills the "all", first-half and second-half views together.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field, fields
from typing import Any, Dict, FrozenSet, Generic, List, Optional, Tuple, TypeVar

from ..config import EngineSettings
from ..models import (
    AWAY,
    DEFENSIVE_EVENTS,
    HOME,
    PASS_FAMILY_EVENTS,
    MatchEvent,
    MatchMetadata,
)
from .geometry import (
    BACKWARD,
    LANES,
    ZONES,
    classify_lane,
    classify_pass_direction,
    classify_zone,
    does_team_attack_right,
    is_possession_loss,
    round_half_up,
    safe_percent,
)
from .player_stats import DerivedPlayerStats, aerial_won, fold_player_event, sort_players
from .xg import GOAL_OUTCOMES, Shot, TeamXGSummary, XGResult, compute_xg, summarise_team_xg

ALL = "all"
FIRST_HALF = "first_half"
SECOND_HALF = "second_half"
SCOPES = (ALL, FIRST_HALF, SECOND_HALF)
SIDES = (HOME, AWAY)

T = TypeVar("T")


def half_scope(half: int) -> str:
    return FIRST_HALF if half == 1 else SECOND_HALF


@dataclass(frozen=True)
class Scoped(Generic[T]):
    """The same view computed over the whole match and over each half."""

    all: T
    first_half: T
    second_half: T

    def get(self, scope: str) -> T:
        if scope not in SCOPES:
            raise KeyError(scope)
        return getattr(self, scope)


@dataclass(frozen=True)
class FoldContext:
    match: MatchMetadata
    settings: EngineSettings
    side: Optional[str]
    scope: str


class Accumulator:
    """
    Base reducer. Subclasses implement ``initial``, ``fold`` and ``finalize``.
    """

    name: str = ""
    event_types: Optional[FrozenSet[str]] = None
    team_scoped: bool = True

    def accepts(self, event: MatchEvent, ctx: FoldContext) -> bool:
        if self.event_types is not None and event.event_type not in self.event_types:
            return False
        if self.team_scoped and ctx.side is None:
            return False
        return True

    def initial(self) -> Any:
        raise NotImplementedError

    def fold(self, state: Any, event: MatchEvent, ctx: FoldContext) -> Any:
        raise NotImplementedError

    def finalize(self, state: Any, match: MatchMetadata, settings: EngineSettings) -> Any:
        raise NotImplementedError


# ----- Passes by third -----


@dataclass(frozen=True)
class ThirdCounts:
    half: int
    defensive: int = 0
    middle: int = 0
    final: int = 0

    @property
    def total(self) -> int:
        return self.defensive + self.middle + self.final


@dataclass(frozen=True)
class TeamPassesByThird:
    team_id: str
    team_name: str
    halves: Tuple[ThirdCounts, ThirdCounts]


class PassesByThirdAccumulator(Accumulator):
    """Successful pass-family events counted by the third they started in."""

    name = "passes_by_third"
    event_types = PASS_FAMILY_EVENTS

    def initial(self) -> Dict[str, List[Dict[str, int]]]:
        return {side: [dict.fromkeys(ZONES, 0), dict.fromkeys(ZONES, 0)] for side in SIDES}

    def fold(self, state, event, ctx):
        if not event.successful:
            return state
        zone = classify_zone(event.x, ctx.settings.zone_defensive_max, ctx.settings.zone_middle_max)
        state[ctx.side][0 if event.half == 1 else 1][zone] += 1
        return state

    def finalize(self, state, match, settings) -> Dict[str, TeamPassesByThird]:
        result = {}
        for side in SIDES:
            first, second = state[side]
            result[side] = TeamPassesByThird(
                team_id=match.team_id_for(side),
                team_name=match.team_name(side),
                halves=(ThirdCounts(half=1, **first), ThirdCounts(half=2, **second)),
            )
        return result


# ----- Lane threat -----


@dataclass(frozen=True)
class LaneStats:
    lane: str
    pass_count: int
    threat_percent: int
    xg: float


def lane_stats_from_counts(passes: Dict[str, int], threat: Dict[str, float]) -> Tuple[LaneStats, ...]:
    """Lane shares of one snapshot; all zero when no passes were counted."""
    total = sum(passes.values())
    return tuple(
        LaneStats(
            lane=lane,
            pass_count=passes[lane],
            threat_percent=safe_percent(passes[lane], total),
            xg=round_half_up(threat[lane], 2),
        )
        for lane in LANES
    )


class LaneThreatAccumulator(Accumulator):
    """
    Pass-family events counted per lane of origin.

    Each qualifying pass updates the "all" bucket and its half bucket. Passes
    starting beyond ``threat_min_x`` add a fixed threat increment to their lane.
    """

    name = "attacking_threat"
    event_types = PASS_FAMILY_EVENTS

    def __init__(
        self,
        *,
        successful_only: bool = True,
        left_max: Optional[float] = None,
        right_min: Optional[float] = None,
        track_threat: bool = True,
        team_scoped: bool = True,
    ):
        self.successful_only = successful_only
        self.left_max = left_max
        self.right_min = right_min
        self.track_threat = track_threat
        self.team_scoped = team_scoped

    def _key(self, ctx: FoldContext) -> Optional[str]:
        return ctx.side if self.team_scoped else None

    def initial(self) -> Dict[Optional[str], Dict[str, Dict[str, Dict[str, float]]]]:
        return {}

    def fold(self, state, event, ctx):
        if self.successful_only and not event.successful:
            return state
        settings = ctx.settings
        left_max = self.left_max if self.left_max is not None else settings.lane_left_max
        right_min = self.right_min if self.right_min is not None else settings.lane_right_min
        lane = classify_lane(event.y, left_max, right_min)
        threat = settings.threat_per_pass if self.track_threat and event.x > settings.threat_min_x else 0.0

        scopes = state.setdefault(self._key(ctx), {})
        for scope in (ALL, ctx.scope):
            bucket = scopes.setdefault(
                scope, {"passes": dict.fromkeys(LANES, 0), "threat": dict.fromkeys(LANES, 0.0)}
            )
            bucket["passes"][lane] += 1
            bucket["threat"][lane] += threat
        return state

    def finalize(self, state, match, settings) -> Dict[Optional[str], Scoped[Tuple[LaneStats, ...]]]:
        keys = list(SIDES) if self.team_scoped else [None]
        result = {}
        for key in keys:
            scopes = state.get(key, {})
            views = {}
            for scope in SCOPES:
                bucket = scopes.get(scope)
                if bucket is None:
                    views[scope] = lane_stats_from_counts(dict.fromkeys(LANES, 0), dict.fromkeys(LANES, 0.0))
                else:
                    views[scope] = lane_stats_from_counts(bucket["passes"], bucket["threat"])
            result[key] = Scoped(**views)
        return result


# ----- Set pieces -----


@dataclass(frozen=True)
class SetPieceRow:
    type: str
    total: int
    shots: int
    goals: int
    conversion_rate: int


@dataclass(frozen=True)
class PlayerSetPieceRow:
    player_id: str
    player_name: str
    jersey_number: int
    corners_taken: int
    free_kicks_taken: int
    shots_created: int
    goals_created: int


@dataclass(frozen=True)
class SetPieceSummary:
    team: Tuple[SetPieceRow, ...]
    players: Tuple[PlayerSetPieceRow, ...]


@dataclass
class _SetPieceTally:
    corners: int = 0
    free_kicks: int = 0
    penalties: int = 0
    penalty_goals: int = 0
    # (name, jersey) -> [player_id, corners, free_kicks]
    players: Dict[Tuple[str, int], List[Any]] = field(default_factory=dict)


class SetPieceAttributionAccumulator(Accumulator):
    """
    Corners, free kicks and penalties per team and scope.

    Shots and goals created from corners and free kicks are credited with the
    configured fixed ratios, not traced through linked events.
    """

    name = "set_pieces"
    event_types = frozenset({"corner", "free_kick", "penalty"})

    def initial(self) -> Dict[str, Dict[str, _SetPieceTally]]:
        return {side: {scope: _SetPieceTally() for scope in SCOPES} for side in SIDES}

    def fold(self, state, event, ctx):
        player = event.player
        if player is None:
            return state
        for scope in (ALL, ctx.scope):
            tally = state[ctx.side][scope]
            if event.event_type == "penalty":
                tally.penalties += 1
                if event.shot_outcome in GOAL_OUTCOMES:
                    tally.penalty_goals += 1
                continue
            entry = tally.players.setdefault((player.name, player.jersey_number), [player.player_id, 0, 0])
            if event.event_type == "corner":
                tally.corners += 1
                entry[1] += 1
            else:
                tally.free_kicks += 1
                entry[2] += 1
        return state

    def _credited(self, taken: int, ratio: float) -> int:
        return int(round_half_up(taken * ratio))

    def _summary(self, tally: _SetPieceTally, settings: EngineSettings) -> SetPieceSummary:
        rows = []
        for kind, taken in (("corner", tally.corners), ("free_kick", tally.free_kicks)):
            shots = self._credited(taken, settings.corner_shot_ratio)
            goals = self._credited(taken, settings.corner_goal_ratio)
            rows.append(SetPieceRow(kind, taken, shots, goals, safe_percent(goals, taken)))
        rows.append(
            SetPieceRow(
                "penalty",
                tally.penalties,
                tally.penalties,
                tally.penalty_goals,
                safe_percent(tally.penalty_goals, tally.penalties),
            )
        )
        players = [
            PlayerSetPieceRow(
                player_id=player_id,
                player_name=name,
                jersey_number=jersey,
                corners_taken=corners,
                free_kicks_taken=free_kicks,
                shots_created=self._credited(corners, settings.corner_shot_ratio),
                goals_created=self._credited(corners, settings.corner_goal_ratio),
            )
            for (name, jersey), (player_id, corners, free_kicks) in tally.players.items()
        ]
        players.sort(key=lambda row: (-(row.corners_taken + row.free_kicks_taken), row.jersey_number))
        return SetPieceSummary(team=tuple(rows), players=tuple(players))

    def finalize(self, state, match, settings) -> Dict[str, Scoped[SetPieceSummary]]:
        return {
            side: Scoped(**{scope: self._summary(state[side][scope], settings) for scope in SCOPES})
            for side in SIDES
        }


# ----- Possession losses -----


@dataclass(frozen=True)
class PossessionLoss:
    event_id: str
    event_type: str
    x: float
    y: float
    zone: str
    half: int
    minute: int
    player_id: Optional[str]
    player_name: str
    jersey_number: int
    team_id: Optional[str]


def possession_loss_from_event(event: MatchEvent, settings: EngineSettings) -> PossessionLoss:
    player = event.player
    return PossessionLoss(
        event_id=event.id,
        event_type=event.event_type,
        x=event.x,
        y=event.y,
        zone=classify_zone(event.x, settings.zone_defensive_max, settings.zone_middle_max),
        half=event.half,
        minute=event.minute,
        player_id=event.player_id or (player.player_id if player else None),
        player_name=player.name if player else "Unknown",
        jersey_number=player.jersey_number if player else 0,
        team_id=event.team_id,
    )


class PossessionLossAccumulator(Accumulator):
    name = "possession_losses"

    def initial(self) -> Dict[str, List[PossessionLoss]]:
        return {side: [] for side in SIDES}

    def fold(self, state, event, ctx):
        if is_possession_loss(event):
            state[ctx.side].append(possession_loss_from_event(event, ctx.settings))
        return state

    def finalize(self, state, match, settings) -> Dict[str, Tuple[PossessionLoss, ...]]:
        return {side: tuple(losses) for side, losses in state.items()}


# ----- Event-type tally -----


@dataclass(frozen=True)
class EventTypeTally:
    corners_successful: int = 0
    corners_failed: int = 0
    throw_ins_successful: int = 0
    throw_ins_failed: int = 0
    aerial_duels_won: int = 0
    aerial_duels_lost: int = 0
    backward_passes: int = 0
    incomplete_passes: int = 0


class EventTypeTallyAccumulator(Accumulator):
    """Counters behind the match summary panels, per team."""

    name = "event_stats"
    event_types = PASS_FAMILY_EVENTS | frozenset({"corner", "aerial_duel"})

    def initial(self) -> Dict[str, Dict[str, int]]:
        return {side: {item.name: 0 for item in fields(EventTypeTally)} for side in SIDES}

    def fold(self, state, event, ctx):
        counts = state[ctx.side]
        kind = event.event_type
        if kind == "corner":
            counts["corners_successful" if event.successful else "corners_failed"] += 1
            return state
        if kind == "aerial_duel":
            counts["aerial_duels_won" if aerial_won(event) else "aerial_duels_lost"] += 1
            return state
        if kind == "throw_in":
            counts["throw_ins_successful" if event.successful else "throw_ins_failed"] += 1
        if not event.successful:
            counts["incomplete_passes"] += 1
        attacks_right = does_team_attack_right(event.half, ctx.side == HOME, ctx.match.home_attacks_left)
        if classify_pass_direction(event.x, event.end_x, attacks_right) == BACKWARD:
            counts["backward_passes"] += 1
        return state

    def finalize(self, state, match, settings) -> Dict[str, EventTypeTally]:
        return {side: EventTypeTally(**counts) for side, counts in state.items()}


# ----- Shots and xG -----


@dataclass(frozen=True)
class ShotRecord:
    event_id: str
    x: float
    y: float
    half: int
    minute: int
    side: Optional[str]
    player_id: Optional[str]
    player_name: str
    shot_outcome: Optional[str]
    is_header: bool
    is_penalty: bool
    xg: XGResult


@dataclass(frozen=True)
class ShotsView:
    shots: Tuple[ShotRecord, ...]
    xg: Dict[str, TeamXGSummary]

    @property
    def goals(self) -> Dict[str, int]:
        return {side: summary.goals for side, summary in self.xg.items()}


class ShotsAccumulator(Accumulator):
    """
    Every shot with its xG. Shots from unlinked players stay on the shot map
    but are left out of the per-team xG summaries.
    """

    name = "shots"
    event_types = frozenset({"shot", "penalty"})
    team_scoped = False

    def initial(self) -> List[Tuple[ShotRecord, Shot]]:
        return []

    def fold(self, state, event, ctx):
        shot = Shot.from_event(event)
        player = event.player
        record = ShotRecord(
            event_id=event.id,
            x=event.x,
            y=event.y,
            half=event.half,
            minute=event.minute,
            side=ctx.side,
            player_id=event.player_id,
            player_name=player.name if player else "Unknown",
            shot_outcome=event.shot_outcome,
            is_header=shot.is_header,
            is_penalty=shot.is_penalty,
            xg=compute_xg(shot),
        )
        state.append((record, shot))
        return state

    def finalize(self, state, match, settings) -> ShotsView:
        by_side: Dict[str, List[Shot]] = {side: [] for side in SIDES}
        for record, shot in state:
            if record.side is not None:
                by_side[record.side].append(shot)
        return ShotsView(
            shots=tuple(record for record, _ in state),
            xg={side: summarise_team_xg(shots) for side, shots in by_side.items()},
        )


# ----- Defensive actions -----


@dataclass(frozen=True)
class DefensiveAction:
    event_id: str
    event_type: str
    x: float
    y: float
    half: int
    minute: int
    successful: bool
    side: Optional[str]
    player_id: Optional[str]
    player_name: str


class DefensiveEventsAccumulator(Accumulator):
    name = "defensive_events"
    event_types = DEFENSIVE_EVENTS
    team_scoped = False

    def initial(self) -> List[DefensiveAction]:
        return []

    def fold(self, state, event, ctx):
        player = event.player
        state.append(
            DefensiveAction(
                event_id=event.id,
                event_type=event.event_type,
                x=event.x,
                y=event.y,
                half=event.half,
                minute=event.minute,
                successful=event.successful,
                side=ctx.side,
                player_id=event.player_id,
                player_name=player.name if player else "Unknown",
            )
        )
        return state

    def finalize(self, state, match, settings) -> Tuple[DefensiveAction, ...]:
        return tuple(state)


# ----- Attacking phases -----

GOAL = "goal"
SHOT = "shot"
LOST_POSSESSION = "lost_possession"


@dataclass(frozen=True)
class AttackingPhase:
    phase_id: str
    phase_number: int
    half: int
    outcome: str
    team_id: str
    events: Tuple[MatchEvent, ...]


def phase_outcome(events: Tuple[MatchEvent, ...]) -> str:
    if any(e.event_type == "goal" or e.shot_outcome in GOAL_OUTCOMES for e in events):
        return GOAL
    if any(e.event_type in ("shot", "penalty") for e in events):
        return SHOT
    return LOST_POSSESSION


class PhasesAccumulator(Accumulator):
    """
    Events grouped by ``phase_id``. A phase belongs to the team of its first
    linked event; phases with no linked event are dropped.
    """

    name = "phases"
    team_scoped = False

    def accepts(self, event, ctx):
        return event.phase_id is not None

    def initial(self) -> "OrderedDict[str, Dict[str, Any]]":
        return OrderedDict()

    def fold(self, state, event, ctx):
        phase = state.setdefault(event.phase_id, {"side": None, "events": []})
        if phase["side"] is None:
            phase["side"] = ctx.side
        phase["events"].append(event)
        return state

    def finalize(self, state, match, settings) -> Dict[str, Tuple[AttackingPhase, ...]]:
        numbers: Dict[Tuple[str, int], int] = {}
        result: Dict[str, List[AttackingPhase]] = {side: [] for side in SIDES}
        for phase_id, phase in state.items():
            side = phase["side"]
            if side is None:
                continue
            events = tuple(phase["events"])
            half = events[0].half
            numbers[(side, half)] = numbers.get((side, half), 0) + 1
            result[side].append(
                AttackingPhase(
                    phase_id=phase_id,
                    phase_number=numbers[(side, half)],
                    half=half,
                    outcome=phase_outcome(events),
                    team_id=match.team_id_for(side),
                    events=events,
                )
            )
        return {
            side: tuple(sorted(phases, key=lambda p: (p.half, p.phase_number)))
            for side, phases in result.items()
        }


# ----- Player stats -----


class PlayerStatsAccumulator(Accumulator):
    """Direction-aware per-player tallies for both teams."""

    name = "players"

    def initial(self) -> Dict[str, Dict[str, DerivedPlayerStats]]:
        return {side: {} for side in SIDES}

    def fold(self, state, event, ctx):
        fold_player_event(
            state[ctx.side],
            event,
            total_match_minutes=ctx.match.total_match_minutes(ctx.settings.default_half_seconds),
            home_attacks_left=ctx.match.home_attacks_left,
            is_home_team=ctx.side == HOME,
            settings=ctx.settings,
        )
        return state

    def finalize(self, state, match, settings) -> Dict[str, Tuple[DerivedPlayerStats, ...]]:
        return {side: tuple(sort_players(players.values())) for side, players in state.items()}


def default_accumulators() -> List[Accumulator]:
    return [
        PhasesAccumulator(),
        ShotsAccumulator(),
        DefensiveEventsAccumulator(),
        PossessionLossAccumulator(),
        LaneThreatAccumulator(),
        SetPieceAttributionAccumulator(),
        PassesByThirdAccumulator(),
        EventTypeTallyAccumulator(),
        PlayerStatsAccumulator(),
    ]
