from __future__ import annotations

import pytest

from matchspace.analytics.geometry import (
    BACKWARD,
    CENTER,
    DEFENSIVE,
    FINAL,
    FORWARD,
    LATERAL,
    LEFT,
    MIDDLE,
    RIGHT,
    classify_lane,
    classify_origin_third,
    classify_pass_direction,
    classify_zone,
    classify_zone_for_direction,
    does_team_attack_right,
    is_failed_pass_family,
    is_possession_loss,
    round_half_up,
    safe_percent,
    side_of_pitch,
)
from matchspace.models import MatchEvent


def _event(event_type: str, successful: bool = True) -> MatchEvent:
    return MatchEvent(
        id="e1", match_id="m1", event_type=event_type, x=50.0, y=50.0, half=1, minute=1, successful=successful
    )


@pytest.mark.parametrize(
    "x,zone",
    [(0, DEFENSIVE), (33.32, DEFENSIVE), (33.33, MIDDLE), (66.65, MIDDLE), (66.66, FINAL), (80, FINAL), (100, FINAL)],
)
def test_classify_zone_upper_bounds_are_exclusive(x, zone):
    assert classify_zone(x) == zone


def test_zones_mirror_when_attacking_left():
    assert classify_zone_for_direction(80, attacks_right=False) == DEFENSIVE
    assert classify_zone_for_direction(50, attacks_right=False) == MIDDLE
    assert classify_zone_for_direction(10, attacks_right=False) == FINAL
    assert classify_zone_for_direction(80, attacks_right=True) == FINAL


@pytest.mark.parametrize("y,lane", [(20, LEFT), (33.3, CENTER), (50, CENTER), (66.6, CENTER), (66.7, RIGHT)])
def test_classify_lane(y, lane):
    assert classify_lane(y) == lane


def test_lane_cutoffs_are_configurable():
    assert classify_lane(33.31) == CENTER
    assert classify_lane(33.31, 33.33, 66.66) == LEFT


def test_pass_direction():
    assert classify_pass_direction(50, None) == LATERAL
    assert classify_pass_direction(50, 50) == LATERAL
    assert classify_pass_direction(50, 60) == FORWARD
    assert classify_pass_direction(50, 40) == BACKWARD
    assert classify_pass_direction(50, 60, attacks_right=False) == BACKWARD
    assert classify_pass_direction(50, 40, attacks_right=False) == FORWARD


def test_side_of_pitch():
    assert side_of_pitch(49.9) == LEFT
    assert side_of_pitch(50) == RIGHT


@pytest.mark.parametrize(
    "half,is_home,home_attacks_left,expected",
    [
        (1, True, True, False),
        (2, True, True, True),
        (1, False, True, True),
        (2, False, True, False),
        (1, True, False, True),
        (2, True, False, False),
        (1, True, None, False),
        (1, False, None, True),
    ],
)
def test_attacking_direction_swaps_at_half_time(half, is_home, home_attacks_left, expected):
    assert does_team_attack_right(half, is_home, home_attacks_left) is expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-2.5) == -2
    assert round_half_up(0.125, 2) == pytest.approx(0.13)


def test_safe_percent():
    assert safe_percent(1, 0) == 0
    assert safe_percent(0, 0, 2) == 0
    assert safe_percent(1, 3) == 33
    assert safe_percent(2, 3) == 67
    assert isinstance(safe_percent(2, 3), int)
    assert safe_percent(1, 3, 2) == pytest.approx(33.33)


def test_safe_percent_type_does_not_depend_on_denominator():
    assert isinstance(safe_percent(1, 0, 2), float)
    assert isinstance(safe_percent(1, 4, 2), float)
    assert isinstance(safe_percent(1, 0), int)
    assert isinstance(safe_percent(1, 4), int)


@pytest.mark.parametrize(
    "x,third",
    [(0, DEFENSIVE), (33, DEFENSIVE), (33.5, MIDDLE), (66, MIDDLE), (66.5, FINAL), (100, FINAL)],
)
def test_origin_third_bounds_are_inclusive(x, third):
    assert classify_origin_third(x) == third


def test_possession_loss_rule():
    assert is_possession_loss(_event("offside"))
    assert is_possession_loss(_event("bad_touch"))
    assert is_possession_loss(_event("pass", successful=False))
    assert is_possession_loss(_event("dribble", successful=False))
    assert not is_possession_loss(_event("pass"))
    assert not is_possession_loss(_event("cross", successful=False))


def test_failed_pass_family_rule():
    assert is_failed_pass_family(_event("dispossession"))
    assert is_failed_pass_family(_event("cross", successful=False))
    assert is_failed_pass_family(_event("throw_in", successful=False))
    assert not is_failed_pass_family(_event("throw_in"))
    assert not is_failed_pass_family(_event("offside"))
