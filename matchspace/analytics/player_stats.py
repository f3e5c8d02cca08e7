"""
Per-player tallies of every recorded event type.

Zones and pass directions are read relative to the attacking direction of the
player's team in the half the event happened in. Counters are running sums;
every percentage is a property recomputed from them.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..config import EngineSettings
from ..models import MatchEvent, PlayerRef
from ..services.data_fetch import get_settings
from .geometry import (
    BACKWARD,
    DEFENSIVE,
    FINAL,
    FORWARD,
    MIDDLE,
    classify_pass_direction,
    classify_zone_for_direction,
    does_team_attack_right,
    safe_percent,
)

LOGGER = logging.getLogger(__name__)

OPEN_PLAY_PASSES = frozenset({"pass", "key_pass", "assist", "long_ball", "through_ball"})
SHOT_ON_TARGET_OUTCOMES = frozenset({"goal", "on_target", "penalty_goal"})
SHOT_GOAL_OUTCOMES = frozenset({"goal", "penalty_goal"})


@dataclass
class ZoneCounts:
    defensive: int = 0
    middle: int = 0
    final: int = 0

    def add(self, zone: str, amount: int = 1) -> None:
        if zone == DEFENSIVE:
            self.defensive += amount
        elif zone == MIDDLE:
            self.middle += amount
        elif zone == FINAL:
            self.final += amount
        else:
            raise ValueError(f"Unknown zone '{zone}'")

    @property
    def total(self) -> int:
        return self.defensive + self.middle + self.final

    def __add__(self, other: "ZoneCounts") -> "ZoneCounts":
        return ZoneCounts(
            defensive=self.defensive + other.defensive,
            middle=self.middle + other.middle,
            final=self.final + other.final,
        )


@dataclass
class DerivedPlayerStats:
    player_id: str
    name: str
    jersey_number: int = 0
    role: str = ""
    team_id: Optional[str] = None

    # ----- Passing -----
    pass_count: int = 0
    successful_pass: int = 0
    miss_pass: int = 0
    forward_pass: int = 0
    backward_pass: int = 0
    crosses: int = 0
    penalty_area_pass: int = 0
    cut_backs: int = 0
    passes_by_zone: ZoneCounts = field(default_factory=ZoneCounts)

    # ----- Attacking -----
    goals: int = 0
    shots_attempted: int = 0
    shots_on_target: int = 0
    shots_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    penalty_area_entry: int = 0
    run_in_behind: int = 0
    overlaps: int = 0
    offside: int = 0
    bad_touches: int = 0
    bad_touches_by_zone: ZoneCounts = field(default_factory=ZoneCounts)

    # ----- Defending -----
    tackles: int = 0
    tackles_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    clearances: int = 0
    clearances_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    blocks: int = 0
    blocks_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    interceptions: int = 0
    interceptions_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    aerial_duels_won: int = 0
    aerial_duels_lost: int = 0
    aerials_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    saves: int = 0
    defensive_errors: int = 0

    # ----- Discipline -----
    fouls: int = 0
    fouls_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    fouls_won: int = 0
    fouls_won_by_zone: ZoneCounts = field(default_factory=ZoneCounts)
    yellow_cards: int = 0
    red_cards: int = 0

    # ----- Set pieces -----
    corners: int = 0
    corner_success: int = 0
    corner_failed: int = 0
    free_kicks: int = 0
    throw_ins: int = 0
    ti_success: int = 0
    ti_failed: int = 0

    # ----- Appearance -----
    minutes_played: int = 0
    substitute_appearances: int = 0

    @classmethod
    def for_player(cls, player: PlayerRef, minutes_played: int = 0) -> "DerivedPlayerStats":
        return cls(
            player_id=player.player_id,
            name=player.name,
            jersey_number=player.jersey_number,
            role=player.role,
            team_id=player.team_id,
            minutes_played=minutes_played,
        )

    # ----- Read-time percentages -----

    @property
    def pass_accuracy(self) -> float:
        return safe_percent(self.successful_pass, self.pass_count, 2)

    @property
    def miss_pass_percent(self) -> float:
        return safe_percent(self.miss_pass, self.pass_count, 2)

    @property
    def forward_pass_percent(self) -> float:
        return safe_percent(self.forward_pass, self.pass_count, 2)

    @property
    def backward_pass_percent(self) -> float:
        return safe_percent(self.backward_pass, self.pass_count, 2)

    @property
    def shot_accuracy(self) -> float:
        return safe_percent(self.shots_on_target, self.shots_attempted, 2)

    @property
    def conversion_rate(self) -> float:
        return safe_percent(self.goals, self.shots_attempted, 2)

    @property
    def aerial_success_rate(self) -> float:
        return safe_percent(self.aerial_duels_won, self.aerial_duels_won + self.aerial_duels_lost, 2)

    @property
    def corner_success_rate(self) -> float:
        return safe_percent(self.corner_success, self.corners, 2)

    @property
    def throw_in_success_rate(self) -> float:
        return safe_percent(self.ti_success, self.throw_ins, 2)

    def as_record(self) -> Dict[str, Any]:
        """Flat mapping with zone breakdowns expanded and percentages included."""
        record: Dict[str, Any] = {}
        for item in dataclasses.fields(self):
            value = getattr(self, item.name)
            if isinstance(value, ZoneCounts):
                prefix = item.name[: -len("_by_zone")]
                record[f"{prefix}_defensive_third"] = value.defensive
                record[f"{prefix}_middle_third"] = value.middle
                record[f"{prefix}_final_third"] = value.final
            else:
                record[item.name] = value
        for name in PERCENTAGE_FIELDS:
            record[name] = getattr(self, name)
        return record


PERCENTAGE_FIELDS = (
    "pass_accuracy",
    "miss_pass_percent",
    "forward_pass_percent",
    "backward_pass_percent",
    "shot_accuracy",
    "conversion_rate",
    "aerial_success_rate",
    "corner_success_rate",
    "throw_in_success_rate",
)

_IDENTITY_FIELDS = frozenset({"player_id", "name", "jersey_number", "role", "team_id"})


def _count_pass(stats: DerivedPlayerStats, zone: str) -> None:
    stats.pass_count += 1
    stats.passes_by_zone.add(zone)


def apply_event(
    stats: DerivedPlayerStats,
    event: MatchEvent,
    *,
    attacks_right: bool,
    settings: EngineSettings,
) -> None:
    """Fold one event into a player's running tallies."""
    kind = event.event_type
    zone = classify_zone_for_direction(
        event.x, attacks_right, settings.zone_defensive_max, settings.zone_middle_max
    )
    direction = classify_pass_direction(event.x, event.end_x, attacks_right)

    if kind in OPEN_PLAY_PASSES:
        _count_pass(stats, zone)
        if event.successful:
            stats.successful_pass += 1
            if direction == FORWARD:
                stats.forward_pass += 1
            elif direction == BACKWARD:
                stats.backward_pass += 1
        else:
            stats.miss_pass += 1
    elif kind == "cross":
        stats.crosses += 1
        _count_pass(stats, zone)
        if event.successful:
            stats.successful_pass += 1
            stats.forward_pass += 1
        else:
            stats.miss_pass += 1
    elif kind == "penalty_area_pass":
        stats.penalty_area_pass += 1
        stats.pass_count += 1
        # Played into the box: final third.
        stats.passes_by_zone.add(FINAL)
        if event.successful:
            stats.successful_pass += 1
            stats.forward_pass += 1
        else:
            stats.miss_pass += 1
    elif kind == "throw_in":
        stats.throw_ins += 1
        _count_pass(stats, zone)
        if event.successful:
            stats.ti_success += 1
            stats.successful_pass += 1
            if direction == FORWARD:
                stats.forward_pass += 1
        else:
            stats.ti_failed += 1
            stats.miss_pass += 1
    elif kind == "cut_back":
        stats.cut_backs += 1
    elif kind == "shot":
        stats.shots_attempted += 1
        stats.shots_by_zone.add(zone)
        if event.shot_outcome in SHOT_ON_TARGET_OUTCOMES:
            stats.shots_on_target += 1
        if event.shot_outcome in SHOT_GOAL_OUTCOMES:
            stats.goals += 1
    elif kind == "goal":
        stats.goals += 1
        stats.shots_attempted += 1
        stats.shots_on_target += 1
        stats.shots_by_zone.add(FINAL)
    elif kind in ("tackle", "tackle_won"):
        stats.tackles += 1
        stats.tackles_by_zone.add(zone)
    elif kind == "clearance":
        stats.clearances += 1
        stats.clearances_by_zone.add(zone)
    elif kind == "block":
        stats.blocks += 1
        stats.blocks_by_zone.add(zone)
    elif kind == "interception":
        stats.interceptions += 1
        stats.interceptions_by_zone.add(zone)
    elif kind == "bad_touch":
        stats.bad_touches += 1
        stats.bad_touches_by_zone.add(zone)
    elif kind == "aerial_duel":
        if aerial_won(event):
            stats.aerial_duels_won += 1
        else:
            stats.aerial_duels_lost += 1
        stats.aerials_by_zone.add(zone)
    elif kind == "save":
        stats.saves += 1
    elif kind == "foul_committed":
        stats.fouls += 1
        stats.fouls_by_zone.add(zone)
    elif kind == "foul_won":
        stats.fouls_won += 1
        stats.fouls_won_by_zone.add(zone)
    elif kind == "corner":
        stats.corners += 1
        if event.successful:
            stats.corner_success += 1
        else:
            stats.corner_failed += 1
    elif kind == "free_kick":
        stats.free_kicks += 1
    elif kind == "penalty_area_entry":
        stats.penalty_area_entry += 1
    elif kind == "run_in_behind":
        stats.run_in_behind += 1
    elif kind == "overlap":
        stats.overlaps += 1
    elif kind == "offside":
        stats.offside += 1
    elif kind == "defensive_error":
        stats.defensive_errors += 1
    elif kind == "yellow_card":
        stats.yellow_cards += 1
    elif kind == "red_card":
        stats.red_cards += 1


def aerial_won(event: MatchEvent) -> bool:
    """An explicit aerial outcome wins over the generic success flag."""
    if event.aerial_outcome is not None:
        return event.aerial_outcome == "won"
    return event.successful


def fold_player_event(
    players: Dict[str, DerivedPlayerStats],
    event: MatchEvent,
    *,
    total_match_minutes: int,
    home_attacks_left: Optional[bool],
    is_home_team: bool,
    settings: EngineSettings,
) -> None:
    """
    Fold one event into a mapping of player id to stats, creating entries as needed.

    Players are assumed to play the whole match until a substitution says
    otherwise: the outgoing player keeps the substitution minute, the incoming
    player gets the remaining minutes. Events without a linked player are ignored.
    """
    player = event.player
    if player is None:
        return

    stats = players.get(player.player_id)
    if stats is None:
        stats = DerivedPlayerStats.for_player(player, minutes_played=total_match_minutes)
        players[player.player_id] = stats

    if event.event_type == "substitution":
        _apply_substitution(players, stats, event, total_match_minutes)
        return

    attacks_right = does_team_attack_right(event.half, is_home_team, home_attacks_left)
    apply_event(stats, event, attacks_right=attacks_right, settings=settings)


def aggregate_player_stats(
    events: Iterable[MatchEvent],
    *,
    total_match_minutes: Optional[int] = None,
    home_attacks_left: Optional[bool] = True,
    is_home_team: bool = True,
    team_id: Optional[str] = None,
    settings: Optional[EngineSettings] = None,
) -> Dict[str, DerivedPlayerStats]:
    """Build per-player stats for one team in one match, keyed by player id."""
    settings = settings or get_settings()
    if total_match_minutes is None:
        total_match_minutes = settings.default_match_minutes
    players: Dict[str, DerivedPlayerStats] = {}
    for event in events:
        if team_id is not None and event.team_id != team_id:
            continue
        fold_player_event(
            players,
            event,
            total_match_minutes=total_match_minutes,
            home_attacks_left=home_attacks_left,
            is_home_team=is_home_team,
            settings=settings,
        )
    return players


def _apply_substitution(
    players: Dict[str, DerivedPlayerStats],
    outgoing: DerivedPlayerStats,
    event: MatchEvent,
    total_match_minutes: int,
) -> None:
    outgoing.minutes_played = event.minute
    incoming_id = event.substitute_player_id
    if not incoming_id:
        return
    incoming = players.get(incoming_id)
    if incoming is None:
        if event.substitute is None:
            LOGGER.debug("Substitution %s names unknown player %s", event.id, incoming_id)
            return
        incoming = DerivedPlayerStats.for_player(event.substitute)
        players[incoming_id] = incoming
    incoming.substitute_appearances += 1
    incoming.minutes_played = total_match_minutes - event.minute


def merge_player_stats(first: DerivedPlayerStats, second: DerivedPlayerStats) -> DerivedPlayerStats:
    """Sum every counter of two snapshots; identity comes from ``first``."""
    changes: Dict[str, Any] = {}
    for item in dataclasses.fields(first):
        if item.name in _IDENTITY_FIELDS:
            continue
        changes[item.name] = getattr(first, item.name) + getattr(second, item.name)
    return dataclasses.replace(first, **changes)


def merge_player_maps(maps: Iterable[Mapping[str, DerivedPlayerStats]]) -> Dict[str, DerivedPlayerStats]:
    merged: Dict[str, DerivedPlayerStats] = {}
    for players in maps:
        for player_id, stats in players.items():
            existing = merged.get(player_id)
            merged[player_id] = stats if existing is None else merge_player_stats(existing, stats)
    return merged


def sort_players(players: Iterable[DerivedPlayerStats]) -> List[DerivedPlayerStats]:
    return sorted(players, key=lambda stats: (stats.jersey_number, stats.name))
