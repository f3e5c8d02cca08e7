"""Pitch geometry, classification rules and numeric helpers shared by every view."""
from __future__ import annotations

import math
from typing import Optional

from ..models import MatchEvent

DEFENSIVE = "defensive"
MIDDLE = "middle"
FINAL = "final"
ZONES = (DEFENSIVE, MIDDLE, FINAL)

LEFT = "left"
CENTER = "center"
RIGHT = "right"
LANES = (LEFT, CENTER, RIGHT)

FORWARD = "forward"
BACKWARD = "backward"
LATERAL = "lateral"

DEFENSIVE_THIRD_MAX = 33.33
MIDDLE_THIRD_MAX = 66.66
LANE_LEFT_MAX = 33.3
LANE_RIGHT_MIN = 66.6
PASS_ORIGIN_DEFENSIVE_MAX = 33.0
PASS_ORIGIN_MIDDLE_MAX = 66.0

EXPLICIT_LOSS_EVENTS = frozenset({"offside", "bad_touch", "dispossession", "turnover"})
LOSS_ON_FAILURE_EVENTS = frozenset({"pass", "dribble"})

RETENTION_LOSS_EVENTS = frozenset({"dispossession", "turnover", "bad_touch"})
RETENTION_FAILED_PASS_EVENTS = frozenset({"pass", "throw_in", "cross"})


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a scoreboard does: halves always go up, including for negatives."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def safe_percent(numerator: float, denominator: float, digits: int = 0) -> float:
    """
    ``numerator / denominator`` as a percentage, 0 when the denominator is 0.

    Whole percentages come back as ``int``, anything with decimals as ``float``.
    """
    if not denominator:
        return 0 if digits == 0 else 0.0
    result = round_half_up(numerator / denominator * 100, digits)
    return int(result) if digits == 0 else result


def classify_zone(
    x: float,
    defensive_max: float = DEFENSIVE_THIRD_MAX,
    middle_max: float = MIDDLE_THIRD_MAX,
) -> str:
    """Third of the pitch along the attacking axis; upper bounds are exclusive."""
    if x < defensive_max:
        return DEFENSIVE
    if x < middle_max:
        return MIDDLE
    return FINAL


def classify_zone_for_direction(
    x: float,
    attacks_right: bool,
    defensive_max: float = DEFENSIVE_THIRD_MAX,
    middle_max: float = MIDDLE_THIRD_MAX,
) -> str:
    """
    Third of the pitch relative to the team's attacking direction.

    When the team attacks towards low x the thirds mirror: high x is defensive.
    """
    if attacks_right:
        return classify_zone(x, defensive_max, middle_max)
    if x > middle_max:
        return DEFENSIVE
    if x > defensive_max:
        return MIDDLE
    return FINAL


def classify_lane(
    y: float,
    left_max: float = LANE_LEFT_MAX,
    right_min: float = LANE_RIGHT_MIN,
) -> str:
    if y < left_max:
        return LEFT
    if y > right_min:
        return RIGHT
    return CENTER


def classify_pass_direction(x: float, end_x: Optional[float], attacks_right: bool = True) -> str:
    """Forward, backward or lateral; a pass without an end point is lateral."""
    if end_x is None or end_x == x:
        return LATERAL
    gained = end_x > x if attacks_right else end_x < x
    return FORWARD if gained else BACKWARD


def classify_origin_third(
    x: float,
    defensive_max: float = PASS_ORIGIN_DEFENSIVE_MAX,
    middle_max: float = PASS_ORIGIN_MIDDLE_MAX,
) -> str:
    """Third a pass starts from; unlike ``classify_zone`` the upper bounds are inclusive."""
    if x <= defensive_max:
        return DEFENSIVE
    if x <= middle_max:
        return MIDDLE
    return FINAL


def side_of_pitch(y: float) -> str:
    return LEFT if y < 50 else RIGHT


def does_team_attack_right(half: int, is_home: bool, home_attacks_left: Optional[bool]) -> bool:
    """
    Whether a team attacks towards high x in the given half.

    ``home_attacks_left`` describes the first half (unknown means True); the
    directions swap at half-time and the away side always faces the home side.
    """
    hal = True if home_attacks_left is None else home_attacks_left
    if is_home:
        return (not hal) if half == 1 else hal
    return hal if half == 1 else (not hal)


def is_possession_loss(event: MatchEvent) -> bool:
    """Explicit loss types, plus any unsuccessful pass or dribble."""
    if event.event_type in EXPLICIT_LOSS_EVENTS:
        return True
    return event.event_type in LOSS_ON_FAILURE_EVENTS and not event.successful


def is_failed_pass_family(event: MatchEvent) -> bool:
    """Retention rule: dispossession, turnover, bad touch, or a failed pass, throw-in or cross."""
    if event.event_type in RETENTION_LOSS_EVENTS:
        return True
    return event.event_type in RETENTION_FAILED_PASS_EVENTS and not event.successful
