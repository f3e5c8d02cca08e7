"""
Player ratings on a 1-10 scale and composite per-player metrics.

Ratings normalise counting stats to a per-90-minute rate, score four
components (passing, attacking, defending, discipline) against baselines that
depend on the player's position group, then blend the components with
position weights. Short appearances are pulled towards 6.0.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional

from ..config import EngineSettings
from ..services.data_fetch import get_settings
from .geometry import round_half_up
from .player_stats import DerivedPlayerStats

GOALKEEPER = "GK"
DEFENDER = "DEF"
MIDFIELDER = "MID"
FORWARD = "FWD"
GENERAL = "GENERAL"

MIN_RATED_MINUTES = 15
AVERAGE_RATING = 6.0

# Role substrings checked in order; the first group with a match wins.
_POSITION_MARKERS = (
    (GOALKEEPER, ("GK", "GOALKEEPER")),
    (DEFENDER, ("CB", "LB", "RB", "DEFENSE", "DEF")),
    (MIDFIELDER, ("CM", "CAM", "CDM", "DM", "MIDFIELD", "MID")),
    (FORWARD, ("FW", "LW", "RW", "CF", "ST", "FORWARD", "WINGER")),
)

# passing, attacking, defending, discipline
POSITION_WEIGHTS: Dict[str, Dict[str, float]] = {
    GOALKEEPER: {"passing": 0.20, "attacking": 0.05, "defending": 0.60, "discipline": 0.15},
    DEFENDER: {"passing": 0.25, "attacking": 0.10, "defending": 0.50, "discipline": 0.15},
    MIDFIELDER: {"passing": 0.35, "attacking": 0.25, "defending": 0.25, "discipline": 0.15},
    FORWARD: {"passing": 0.20, "attacking": 0.55, "defending": 0.10, "discipline": 0.15},
    GENERAL: {"passing": 0.30, "attacking": 0.30, "defending": 0.25, "discipline": 0.15},
}


@dataclass(frozen=True)
class RatingComponents:
    passing: float
    attacking: float
    defending: float
    discipline: float


@dataclass(frozen=True)
class Per90Stats:
    passes: float
    successful_passes: float
    tackles: float
    goals: float
    shots_on_target: float
    clearances: float
    aerial_wins: float


@dataclass(frozen=True)
class PlayerRating:
    overall: float
    components: RatingComponents
    position_group: str
    minutes_played: int
    minutes_adjustment: float
    per_90: Per90Stats


@dataclass(frozen=True)
class AdvancedMetrics:
    shot_conversion_rate: float
    shot_accuracy: float
    aerial_duel_success_rate: float
    corner_success_rate: float
    throw_in_success_rate: float
    progressive_pass_rate: float
    attacking_contribution: int
    defensive_contribution: int
    discipline_score: int
    foul_rate: int
    fouls_committed_vs_won_ratio: float
    performance_rating: float


def position_group(role: Optional[str]) -> str:
    upper = (role or "").upper()
    for group, markers in _POSITION_MARKERS:
        if any(marker in upper for marker in markers):
            return group
    return GENERAL


def per_90(value: float, minutes: float) -> float:
    """``value`` scaled to a 90-minute rate; 0 below the minimum rated minutes."""
    if minutes < MIN_RATED_MINUTES:
        return 0.0
    return value / minutes * 90


def _to_scale(raw: float, baseline: float, spread: float) -> float:
    return max(1.0, min(10.0, 5 + 5 * math.tanh((raw - baseline) / spread)))


def _ratio_percent(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def _passing_score(stats: DerivedPlayerStats, minutes: float) -> float:
    accuracy = _ratio_percent(stats.successful_pass, stats.pass_count)
    progressive = _ratio_percent(stats.forward_pass, stats.pass_count)
    raw = accuracy * 0.5 + progressive * 0.3 + per_90(stats.penalty_area_pass, minutes) * 2
    return _to_scale(raw, 50, 25)


def _attacking_score(stats: DerivedPlayerStats, minutes: float, group: str) -> float:
    goals = per_90(stats.goals, minutes)
    on_target = per_90(stats.shots_on_target, minutes)
    entries = per_90(stats.penalty_area_entry, minutes)
    cut_backs = per_90(stats.cut_backs, minutes)
    runs = per_90(stats.run_in_behind, minutes)

    if group == FORWARD:
        raw = goals * 8 + on_target * 3 + entries * 2 + cut_backs * 1.5 + runs * 2
        baseline = 3.0
    elif group == MIDFIELDER:
        raw = goals * 10 + on_target * 2 + entries * 3 + cut_backs * 2
        baseline = 2.0
    elif group in (DEFENDER, GOALKEEPER):
        raw = goals * 15 + on_target * 3 + entries * 2
        baseline = 0.5
    else:
        raw = goals * 10 + on_target * 2.5 + entries * 2 + cut_backs * 1.5
        baseline = 0.5
    return _to_scale(raw, baseline, baseline * 2 + 1)


def _defending_score(stats: DerivedPlayerStats, minutes: float, group: str) -> float:
    tackles = per_90(stats.tackles, minutes)
    clearances = per_90(stats.clearances, minutes)
    aerials = per_90(stats.aerial_duels_won, minutes)
    saves = per_90(stats.saves, minutes)
    errors = per_90(stats.defensive_errors, minutes)

    if group == GOALKEEPER:
        raw = saves * 4 - errors * 5
        baseline = 2.0
    elif group == DEFENDER:
        raw = tackles * 2 + clearances * 2 + aerials * 2.5 - errors * 4
        baseline = 4.0
    elif group == MIDFIELDER:
        raw = tackles * 2.5 + clearances + aerials * 1.5 - errors * 3
        baseline = 2.0
    else:
        raw = tackles * 3 + clearances + aerials - errors * 2
        baseline = 0.5
    return _to_scale(raw, baseline, baseline * 1.5 + 1)


def _discipline_score(stats: DerivedPlayerStats, minutes: float) -> float:
    raw = 8 - per_90(stats.fouls, minutes) * 0.8 + per_90(stats.fouls_won, minutes) * 0.3
    return max(1.0, min(10.0, raw))


def minutes_adjustment(minutes_played: int, match_minutes: int) -> float:
    if minutes_played >= match_minutes * 0.8:
        return 1.0
    if minutes_played >= match_minutes * 0.5:
        return 0.95
    if minutes_played >= MIN_RATED_MINUTES:
        return 0.9
    return 0.8


def rate_player(
    stats: DerivedPlayerStats,
    *,
    match_minutes: Optional[int] = None,
    settings: Optional[EngineSettings] = None,
) -> PlayerRating:
    """
    Rate one player's stat line.

    Appearances shorter than the minimum rated minutes are normalised as if
    that minimum was played. ``match_minutes`` defaults to the configured
    match length.
    """
    settings = settings or get_settings()
    if match_minutes is None:
        match_minutes = settings.default_match_minutes
    minutes = max(stats.minutes_played, MIN_RATED_MINUTES)
    group = position_group(stats.role)
    adjustment = minutes_adjustment(stats.minutes_played, match_minutes)

    scores = {
        "passing": _passing_score(stats, minutes),
        "attacking": _attacking_score(stats, minutes, group),
        "defending": _defending_score(stats, minutes, group),
        "discipline": _discipline_score(stats, minutes),
    }
    weights = POSITION_WEIGHTS[group]
    blended = sum(scores[name] * weights[name] for name in scores)
    overall = AVERAGE_RATING + (blended - AVERAGE_RATING) * adjustment

    return PlayerRating(
        overall=round_half_up(overall, 1),
        components=RatingComponents(**{name: round_half_up(value, 1) for name, value in scores.items()}),
        position_group=group,
        minutes_played=stats.minutes_played,
        minutes_adjustment=adjustment,
        per_90=Per90Stats(
            passes=round_half_up(per_90(stats.pass_count, minutes), 1),
            successful_passes=round_half_up(per_90(stats.successful_pass, minutes), 1),
            tackles=round_half_up(per_90(stats.tackles, minutes), 1),
            goals=round_half_up(per_90(stats.goals, minutes), 2),
            shots_on_target=round_half_up(per_90(stats.shots_on_target, minutes), 1),
            clearances=round_half_up(per_90(stats.clearances, minutes), 1),
            aerial_wins=round_half_up(per_90(stats.aerial_duels_won, minutes), 1),
        ),
    )


def advanced_metrics(
    stats: DerivedPlayerStats, *, settings: Optional[EngineSettings] = None
) -> AdvancedMetrics:
    """Composite contribution scores and one-decimal rates for one player."""
    attacking = (
        stats.penalty_area_pass
        + stats.penalty_area_entry
        + stats.cut_backs
        + stats.crosses
        + stats.run_in_behind * 2
        + stats.overlaps * 2
        + stats.goals * 3
        + stats.shots_on_target * 2
    )
    defensive = stats.tackles * 2 + stats.clearances + stats.aerial_duels_won + stats.saves * 3
    fouls_ratio = stats.fouls_won / stats.fouls if stats.fouls > 0 else stats.fouls_won
    return AdvancedMetrics(
        shot_conversion_rate=round_half_up(_ratio_percent(stats.goals, stats.shots_attempted), 1),
        shot_accuracy=round_half_up(_ratio_percent(stats.shots_on_target, stats.shots_attempted), 1),
        aerial_duel_success_rate=round_half_up(
            _ratio_percent(stats.aerial_duels_won, stats.aerial_duels_won + stats.aerial_duels_lost), 1
        ),
        corner_success_rate=round_half_up(_ratio_percent(stats.corner_success, stats.corners), 1),
        throw_in_success_rate=round_half_up(_ratio_percent(stats.ti_success, stats.throw_ins), 1),
        progressive_pass_rate=round_half_up(_ratio_percent(stats.forward_pass, stats.pass_count), 1),
        attacking_contribution=attacking,
        defensive_contribution=defensive,
        discipline_score=max(0, 100 - (stats.fouls * 5 + stats.defensive_errors * 10)),
        foul_rate=stats.fouls,
        fouls_committed_vs_won_ratio=round_half_up(fouls_ratio, 1),
        performance_rating=rate_player(stats, settings=settings).overall,
    )
