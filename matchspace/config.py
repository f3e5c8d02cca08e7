"""
Configuration for the event store client and the aggregation engine.
"""
from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Union

import yaml

_ENV_LOADED = False

ENV_PREFIX = "MATCHSPACE_"
CONFIG_ENV_VAR = "MATCHSPACE_CONFIG"


def _ensure_env_loaded() -> None:
    """
    Load environment variables from a .env file if present.
    """
    global _ENV_LOADED  # noqa: PLW0603 - intentional module level state
    if _ENV_LOADED:
        return

    candidates = []
    explicit = os.getenv("MATCHSPACE_ENV_FILE")
    if explicit:
        candidates.append(Path(explicit))
    cwd_env = Path.cwd() / ".env"
    candidates.append(cwd_env)
    repo_env = Path(__file__).resolve().parents[1] / ".env"
    if repo_env != cwd_env:
        candidates.append(repo_env)

    for path in candidates:
        if not path or not path.exists():
            continue
        try:
            for line in path.read_text().splitlines():
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or "=" not in stripped:
                    continue
                key, value = stripped.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
        except OSError:
            continue

    _ENV_LOADED = True


@dataclass(frozen=True)
class EngineSettings:
    """
    Runtime configuration for the event store client and every threshold the engine uses.

    Defaults reproduce the production numbers exactly; callers override them through a
    YAML file, ``MATCHSPACE_*`` environment variables, or by constructing the dataclass.
    """

    event_store_base_url: str = "http://localhost:54321/rest/v1"
    event_store_token: Optional[str] = None
    event_store_timeout: float = 30.0
    event_store_max_retries: int = 3
    event_store_backoff_factor: float = 0.5

    page_size: int = 1000
    break_threshold_ms: int = 3_600_000

    zone_defensive_max: float = 33.33
    zone_middle_max: float = 66.66
    # Lane cutoffs differ from the zone cutoffs in the second decimal.
    lane_left_max: float = 33.3
    lane_right_min: float = 66.6
    # Pass origins use inclusive bounds on whole-number cutoffs.
    pass_origin_defensive_max: float = 33.0
    pass_origin_middle_max: float = 66.0

    threat_min_x: float = 70.0
    threat_per_pass: float = 0.02
    corner_shot_ratio: float = 0.3
    corner_goal_ratio: float = 0.1

    default_match_minutes: int = 90
    default_half_seconds: int = 2700

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "EngineSettings":
        """
        Build settings from a mapping, ignoring unknown keys and coercing types.
        """
        return cls().merged(values)

    def merged(self, values: Mapping[str, Any]) -> "EngineSettings":
        known = {f.name: f for f in dataclasses.fields(self)}
        changes: Dict[str, Any] = {}
        for key, raw in values.items():
            field = known.get(key)
            if field is None or raw is None:
                continue
            changes[key] = _coerce(raw, _CASTS.get(key, str))
        if not changes:
            return self
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineSettings":
        """
        Load settings from a YAML file containing a flat mapping of field names.
        """
        return cls().merged(_load_yaml(Path(path)))

    @classmethod
    def from_env(cls, config_path: Optional[Union[str, Path]] = None) -> "EngineSettings":
        """
        Construct settings from defaults, an optional YAML file, then environment variables.
        """
        _ensure_env_loaded()
        settings = cls()
        path = config_path or os.getenv(CONFIG_ENV_VAR)
        if path:
            settings = settings.merged(_load_yaml(Path(path)))

        env_values: Dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            value = os.getenv(f"{ENV_PREFIX}{field.name.upper()}")
            if value is not None and value != "":
                env_values[field.name] = value
        return settings.merged(env_values)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Engine config not found at {path}")
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Engine config at {path} must be a mapping")
    return raw


def _coerce(value: Any, cast: Callable[[Any], Any]) -> Any:
    if cast is int and isinstance(value, str):
        return int(value.replace("_", ""))
    return cast(value)


_CASTS: Dict[str, Callable[[Any], Any]] = {
    "event_store_base_url": str,
    "event_store_token": str,
    "event_store_timeout": float,
    "event_store_max_retries": int,
    "event_store_backoff_factor": float,
    "page_size": int,
    "break_threshold_ms": int,
    "zone_defensive_max": float,
    "zone_middle_max": float,
    "lane_left_max": float,
    "lane_right_min": float,
    "pass_origin_defensive_max": float,
    "pass_origin_middle_max": float,
    "threat_min_x": float,
    "threat_per_pass": float,
    "corner_shot_ratio": float,
    "corner_goal_ratio": float,
    "default_match_minutes": int,
    "default_half_seconds": int,
}
