"""
Typed records for match events, match metadata and rosters.

Raw rows come from the event store in its join shape (nested ``player`` and
``substitute`` objects); ``from_dict`` constructors validate them and raise
``InvalidEventError`` for rows the engine must skip.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .exceptions import InvalidEventError

HOME = "home"
AWAY = "away"

PASS_FAMILY_EVENTS: FrozenSet[str] = frozenset(
    {
        "pass",
        "key_pass",
        "assist",
        "cross",
        "penalty_area_pass",
        "long_ball",
        "through_ball",
        "throw_in",
        "cut_back",
    }
)

SET_PIECE_EVENTS: FrozenSet[str] = frozenset({"corner", "free_kick", "throw_in", "penalty"})

DEFENSIVE_EVENTS: FrozenSet[str] = frozenset(
    {
        "tackle",
        "tackle_won",
        "tackle_not_won",
        "interception",
        "clearance",
        "block",
        "recovery",
        "aerial_duel",
    }
)

# Events recorded without a pitch location.
NON_SPATIAL_EVENTS: FrozenSet[str] = frozenset({"substitution", "yellow_card", "red_card"})

KNOWN_EVENT_TYPES: FrozenSet[str] = (
    PASS_FAMILY_EVENTS
    | SET_PIECE_EVENTS
    | DEFENSIVE_EVENTS
    | NON_SPATIAL_EVENTS
    | frozenset(
        {
            "shot",
            "goal",
            "save",
            "foul_committed",
            "foul_won",
            "carry",
            "dribble",
            "dispossession",
            "turnover",
            "bad_touch",
            "offside",
            "run_in_behind",
            "overlap",
            "penalty_area_entry",
            "defensive_error",
            "goal_kick",
            "kick_off",
            "goal_restart",
        }
    )
)

SHOT_OUTCOMES: FrozenSet[str] = frozenset(
    {"goal", "on_target", "off_target", "blocked", "penalty_goal", "penalty_miss"}
)
AERIAL_OUTCOMES: FrozenSet[str] = frozenset({"won", "lost"})


@dataclass(frozen=True)
class PlayerRef:
    player_id: str
    name: str
    jersey_number: int = 0
    role: str = ""
    team_id: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "PlayerRef":
        team_id = row.get("team_id")
        return cls(
            player_id=str(row.get("id") or row.get("player_id") or ""),
            name=str(row.get("name") or ""),
            jersey_number=_as_int(row.get("jersey_number"), default=0),
            role=str(row.get("role") or ""),
            team_id=str(team_id) if team_id is not None else None,
        )


@dataclass(frozen=True)
class MatchEvent:
    """
    A single recorded on-pitch action. Immutable once parsed.
    """

    id: str
    match_id: Optional[str]
    event_type: str
    x: float
    y: float
    half: int
    minute: int
    successful: bool = True
    player_id: Optional[str] = None
    end_x: Optional[float] = None
    end_y: Optional[float] = None
    shot_outcome: Optional[str] = None
    aerial_outcome: Optional[str] = None
    seconds: Optional[int] = None
    created_at: Optional[datetime] = None
    phase_id: Optional[str] = None
    player: Optional[PlayerRef] = None
    substitute_player_id: Optional[str] = None
    substitute: Optional[PlayerRef] = None

    @property
    def team_id(self) -> Optional[str]:
        if self.player is None:
            return None
        return self.player.team_id

    @property
    def created_at_ms(self) -> Optional[int]:
        if self.created_at is None:
            return None
        return int(round(self.created_at.timestamp() * 1000))

    @property
    def is_pass_family(self) -> bool:
        return self.event_type in PASS_FAMILY_EVENTS

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "MatchEvent":
        """
        Validate a raw event row and build a MatchEvent from it.
        """
        raw_id = row.get("id")
        if raw_id is None or str(raw_id) == "":
            raise InvalidEventError("Event row has no id")
        event_id = str(raw_id)

        event_type = str(row.get("event_type") or "").strip().lower()
        if not event_type:
            raise InvalidEventError("Event row has no event_type", event_id=event_id)
        if event_type not in KNOWN_EVENT_TYPES:
            raise InvalidEventError(f"Unknown event type '{event_type}'", event_id=event_id)

        spatial = event_type not in NON_SPATIAL_EVENTS
        x = _coordinate(row.get("x"), "x", event_id, required=spatial)
        y = _coordinate(row.get("y"), "y", event_id, required=spatial)
        end_x = _coordinate(row.get("end_x"), "end_x", event_id, required=False)
        end_y = _coordinate(row.get("end_y"), "end_y", event_id, required=False)

        half = _as_int(row.get("half"), default=None)
        if half not in (1, 2):
            raise InvalidEventError(f"Invalid half {row.get('half')!r}", event_id=event_id)

        shot_outcome = _lower_or_none(row.get("shot_outcome"))
        if shot_outcome is not None and shot_outcome not in SHOT_OUTCOMES:
            raise InvalidEventError(f"Unknown shot outcome '{shot_outcome}'", event_id=event_id)
        aerial_outcome = _lower_or_none(row.get("aerial_outcome"))
        if aerial_outcome is not None and aerial_outcome not in AERIAL_OUTCOMES:
            raise InvalidEventError(f"Unknown aerial outcome '{aerial_outcome}'", event_id=event_id)

        player_row = row.get("player")
        substitute_row = row.get("substitute")
        player_id = row.get("player_id")
        substitute_id = row.get("substitute_player_id")
        return cls(
            id=event_id,
            match_id=_str_or_none(row.get("match_id")),
            event_type=event_type,
            x=x if x is not None else 0.0,
            y=y if y is not None else 0.0,
            end_x=end_x,
            end_y=end_y,
            half=half,
            minute=_as_int(row.get("minute"), default=0),
            seconds=_as_int(row.get("seconds"), default=None),
            successful=_as_bool(row.get("successful"), default=True),
            shot_outcome=shot_outcome,
            aerial_outcome=aerial_outcome,
            created_at=_parse_timestamp(row.get("created_at"), event_id),
            phase_id=_str_or_none(row.get("phase_id")),
            player_id=_str_or_none(player_id),
            player=PlayerRef.from_dict(player_row) if isinstance(player_row, Mapping) else None,
            substitute_player_id=_str_or_none(substitute_id),
            substitute=(
                PlayerRef.from_dict(substitute_row) if isinstance(substitute_row, Mapping) else None
            ),
        )


@dataclass(frozen=True)
class MatchMetadata:
    match_id: str
    home_team_id: str
    away_team_id: str
    home_team_name: str = ""
    away_team_name: str = ""
    home_team_slug: str = ""
    away_team_slug: str = ""
    home_attacks_left: Optional[bool] = None
    match_date: Optional[str] = None
    h1_playing_time_seconds: Optional[int] = None
    h2_playing_time_seconds: Optional[int] = None
    h1_injury_time_seconds: Optional[int] = None
    h2_injury_time_seconds: Optional[int] = None

    def side_for_team(self, team_id: Optional[str]) -> Optional[str]:
        if team_id is None:
            return None
        if team_id == self.home_team_id:
            return HOME
        if team_id == self.away_team_id:
            return AWAY
        return None

    def team_name(self, side: str) -> str:
        return self.home_team_name if side == HOME else self.away_team_name

    def team_id_for(self, side: str) -> str:
        return self.home_team_id if side == HOME else self.away_team_id

    def team_slug(self, side: str) -> str:
        return self.home_team_slug if side == HOME else self.away_team_slug

    def total_match_minutes(self, default_half_seconds: int = 2700) -> int:
        """
        Playing time plus injury time for both halves, in whole minutes.
        """
        h1 = self.h1_playing_time_seconds if self.h1_playing_time_seconds is not None else default_half_seconds
        h2 = self.h2_playing_time_seconds if self.h2_playing_time_seconds is not None else default_half_seconds
        total = h1 + h2 + (self.h1_injury_time_seconds or 0) + (self.h2_injury_time_seconds or 0)
        return int(math.floor(total / 60 + 0.5))

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "MatchMetadata":
        home = row.get("home_team") if isinstance(row.get("home_team"), Mapping) else {}
        away = row.get("away_team") if isinstance(row.get("away_team"), Mapping) else {}
        home_attacks_left = row.get("home_attacks_left")
        return cls(
            match_id=str(row.get("id") or row.get("match_id") or ""),
            home_team_id=str(row.get("home_team_id") or home.get("id") or ""),
            away_team_id=str(row.get("away_team_id") or away.get("id") or ""),
            home_team_name=str(row.get("home_team_name") or home.get("name") or ""),
            away_team_name=str(row.get("away_team_name") or away.get("name") or ""),
            home_team_slug=str(row.get("home_team_slug") or home.get("slug") or ""),
            away_team_slug=str(row.get("away_team_slug") or away.get("slug") or ""),
            home_attacks_left=_as_bool(home_attacks_left, default=None),
            match_date=_str_or_none(row.get("match_date")),
            h1_playing_time_seconds=_as_int(row.get("h1_playing_time_seconds"), default=None),
            h2_playing_time_seconds=_as_int(row.get("h2_playing_time_seconds"), default=None),
            h1_injury_time_seconds=_as_int(row.get("h1_injury_time_seconds"), default=None),
            h2_injury_time_seconds=_as_int(row.get("h2_injury_time_seconds"), default=None),
        )


@dataclass(frozen=True)
class RosterEntry:
    player_id: str
    name: str
    jersey_number: int
    role: str = ""
    team_id: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "RosterEntry":
        team_id = row.get("team_id")
        return cls(
            player_id=str(row.get("player_id") or row.get("id") or ""),
            name=str(row.get("name") or ""),
            jersey_number=_as_int(row.get("jersey_number"), default=0),
            role=str(row.get("role") or ""),
            team_id=str(team_id) if team_id is not None else None,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coordinate(value: Any, name: str, event_id: str, *, required: bool) -> Optional[float]:
    if value is None or value == "":
        if required:
            raise InvalidEventError(f"Missing {name} coordinate", event_id=event_id)
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidEventError(f"Non-numeric {name} coordinate {value!r}", event_id=event_id) from None
    if math.isnan(number) or number < 0.0 or number > 100.0:
        raise InvalidEventError(f"{name} coordinate {number} outside [0, 100]", event_id=event_id)
    return number


def _parse_timestamp(value: Any, event_id: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidEventError(f"Unparseable created_at {value!r}", event_id=event_id) from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _as_int(value: Any, *, default: Optional[int]) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "1"})
_FALSE_STRINGS = frozenset({"false", "f", "no", "n", "0"})


def _as_bool(value: Any, *, default: Optional[bool]) -> Optional[bool]:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return default


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _lower_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value).strip().lower()


def dict_without_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}
