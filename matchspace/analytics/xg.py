"""
Closed-form expected goals model.

Coordinates are normalised (0-100 on both axes) with the attacked goal centred at
x=100, y=50. Positions are converted to metres on a 105 x 68 pitch before any
geometry is computed.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence, Tuple

from ..models import MatchEvent
from .geometry import round_half_up

PITCH_LENGTH = 105.0
PITCH_WIDTH = 68.0
GOAL_WIDTH = 7.32

SIX_YARD_BOX = "six_yard_box"
PENALTY_BOX = "penalty_box"
OUTSIDE_BOX = "outside_box"

ZONE_MULTIPLIERS: Dict[str, float] = {
    SIX_YARD_BOX: 1.8,
    PENALTY_BOX: 1.3,
    OUTSIDE_BOX: 0.7,
}
HEADER_MULTIPLIER = 0.7
DISTANCE_DECAY = 0.1
FULL_ANGLE = 45.0
XG_MIN = 0.01
XG_MAX = 0.95

PENALTY_XG = 0.76
PENALTY_DISTANCE = 11.0
PENALTY_ANGLE = 45.0

GOAL_OUTCOMES = frozenset({"goal", "penalty_goal"})
PENALTY_OUTCOMES = frozenset({"penalty_goal", "penalty_miss"})

_SIX_YARD_X = 100 - (5.5 / PITCH_LENGTH) * 100
_SIX_YARD_Y_MIN = 50 - (9.16 / PITCH_WIDTH) * 50
_SIX_YARD_Y_MAX = 50 + (9.16 / PITCH_WIDTH) * 50
_PENALTY_BOX_X = 100 - (16.5 / PITCH_LENGTH) * 100
_PENALTY_BOX_Y_MIN = 50 - (20.16 / PITCH_WIDTH) * 50
_PENALTY_BOX_Y_MAX = 50 + (20.16 / PITCH_WIDTH) * 50


@dataclass(frozen=True)
class Shot:
    x: float
    y: float
    is_header: bool = False
    is_penalty: bool = False
    shot_outcome: Optional[str] = None

    @property
    def is_goal(self) -> bool:
        return self.shot_outcome in GOAL_OUTCOMES

    @classmethod
    def from_event(cls, event: MatchEvent) -> "Shot":
        """
        A header is any shot with an aerial outcome recorded; a penalty is either
        the penalty event type or a penalty outcome on a shot.
        """
        return cls(
            x=event.x,
            y=event.y,
            is_header=event.aerial_outcome is not None,
            is_penalty=event.event_type == "penalty" or event.shot_outcome in PENALTY_OUTCOMES,
            shot_outcome=event.shot_outcome,
        )


@dataclass(frozen=True)
class XGResult:
    xg: float
    distance: float
    angle: float
    zone: str


@dataclass(frozen=True)
class ShotXG:
    shot: Shot
    xg: float


@dataclass(frozen=True)
class PlayerXGStats:
    total_xg: float
    actual_goals: int
    overperformance: float
    shot_count: int
    xg_per_shot: float
    shots: Tuple[ShotXG, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TeamXGSummary:
    total_xg: float = 0.0
    shot_count: int = 0
    goals: int = 0
    xg_per_shot: float = 0.0


def _to_metres(x: float, y: float) -> Tuple[float, float]:
    return (x / 100) * PITCH_LENGTH, (y / 100) * PITCH_WIDTH


def shot_distance(x: float, y: float) -> float:
    """Distance in metres from the shot to the centre of the goal line."""
    xm, ym = _to_metres(x, y)
    return math.hypot(PITCH_LENGTH - xm, PITCH_WIDTH / 2 - ym)


def shot_angle(x: float, y: float) -> float:
    """Angle in degrees subtended by the two posts, clamped to 0-180."""
    xm, ym = _to_metres(x, y)
    near_post = (PITCH_WIDTH - GOAL_WIDTH) / 2
    far_post = (PITCH_WIDTH + GOAL_WIDTH) / 2
    to_near = math.atan2(near_post - ym, PITCH_LENGTH - xm)
    to_far = math.atan2(far_post - ym, PITCH_LENGTH - xm)
    angle = math.degrees(abs(to_far - to_near))
    return min(180.0, max(0.0, angle))


def shot_zone(x: float, y: float) -> str:
    if x >= _SIX_YARD_X and _SIX_YARD_Y_MIN <= y <= _SIX_YARD_Y_MAX:
        return SIX_YARD_BOX
    if x >= _PENALTY_BOX_X and _PENALTY_BOX_Y_MIN <= y <= _PENALTY_BOX_Y_MAX:
        return PENALTY_BOX
    return OUTSIDE_BOX


def compute_xg(shot: Shot) -> XGResult:
    """Goal probability for a single shot, clamped to [0.01, 0.95]."""
    if shot.is_penalty:
        return XGResult(xg=PENALTY_XG, distance=PENALTY_DISTANCE, angle=PENALTY_ANGLE, zone=PENALTY_BOX)

    distance = shot_distance(shot.x, shot.y)
    angle = shot_angle(shot.x, shot.y)
    zone = shot_zone(shot.x, shot.y)

    value = math.exp(-DISTANCE_DECAY * distance)
    value *= min(1.0, angle / FULL_ANGLE)
    value *= ZONE_MULTIPLIERS[zone]
    if shot.is_header:
        value *= HEADER_MULTIPLIER
    value = max(XG_MIN, min(XG_MAX, value))

    return XGResult(
        xg=round_half_up(value, 2),
        distance=round_half_up(distance, 1),
        angle=round_half_up(angle, 1),
        zone=zone,
    )


def compute_total_xg(shots: Iterable[Shot]) -> float:
    return sum(compute_xg(shot).xg for shot in shots)


def compute_overperformance(shots: Sequence[Shot], actual_goals: int) -> float:
    """Goals minus expected goals; positive means finishing above expectation."""
    return round_half_up(actual_goals - compute_total_xg(shots), 2)


def compute_xg_quality(shots: Sequence[Shot]) -> float:
    """Average xG per shot, 0 for no shots."""
    if not shots:
        return 0.0
    return round_half_up(compute_total_xg(shots) / len(shots), 2)


def compute_player_xg_stats(shots: Sequence[Shot], actual_goals: int) -> PlayerXGStats:
    scored = tuple(ShotXG(shot=shot, xg=compute_xg(shot).xg) for shot in shots)
    total = sum(item.xg for item in scored)
    return PlayerXGStats(
        total_xg=round_half_up(total, 2),
        actual_goals=actual_goals,
        overperformance=round_half_up(actual_goals - total, 2),
        shot_count=len(scored),
        xg_per_shot=round_half_up(total / len(scored), 2) if scored else 0.0,
        shots=scored,
    )


def summarise_team_xg(shots: Sequence[Shot]) -> TeamXGSummary:
    if not shots:
        return TeamXGSummary()
    total = compute_total_xg(shots)
    return TeamXGSummary(
        total_xg=round_half_up(total, 2),
        shot_count=len(shots),
        goals=sum(1 for shot in shots if shot.is_goal),
        xg_per_shot=round_half_up(total / len(shots), 2),
    )
