from __future__ import annotations

import pytest

from matchspace import config
from matchspace.config import EngineSettings


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch):
    monkeypatch.setattr(config, "_ENV_LOADED", True)
    monkeypatch.delenv("MATCHSPACE_CONFIG", raising=False)


def test_defaults_match_production_thresholds():
    settings = EngineSettings()

    assert settings.page_size == 1000
    assert settings.break_threshold_ms == 3_600_000
    assert settings.zone_defensive_max == 33.33
    assert settings.zone_middle_max == 66.66
    assert settings.lane_left_max == 33.3
    assert settings.lane_right_min == 66.6
    assert settings.threat_min_x == 70.0
    assert settings.threat_per_pass == 0.02
    assert settings.corner_shot_ratio == 0.3
    assert settings.corner_goal_ratio == 0.1
    assert settings.default_match_minutes == 90
    assert settings.default_half_seconds == 2700


def test_from_yaml_overrides_known_keys_and_ignores_the_rest(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text("page_size: 250\nzone_defensive_max: 30\nsomething_else: 1\n")

    settings = EngineSettings.from_yaml(path)

    assert settings.page_size == 250
    assert settings.zone_defensive_max == pytest.approx(30.0)
    assert settings.zone_middle_max == 66.66


def test_environment_takes_precedence_over_yaml(tmp_path, monkeypatch):
    path = tmp_path / "engine.yaml"
    path.write_text("page_size: 250\nthreat_per_pass: 0.04\n")
    monkeypatch.setenv("MATCHSPACE_CONFIG", str(path))
    monkeypatch.setenv("MATCHSPACE_PAGE_SIZE", "500")
    monkeypatch.setenv("MATCHSPACE_BREAK_THRESHOLD_MS", "1_800_000")
    monkeypatch.setenv("MATCHSPACE_EVENT_STORE_TOKEN", "secret")

    settings = EngineSettings.from_env()

    assert settings.page_size == 500
    assert settings.threat_per_pass == pytest.approx(0.04)
    assert settings.break_threshold_ms == 1_800_000
    assert settings.event_store_token == "secret"


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        EngineSettings.from_yaml(tmp_path / "missing.yaml")


def test_config_must_be_a_mapping(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text("- page_size\n- 10\n")

    with pytest.raises(ValueError):
        EngineSettings.from_yaml(path)


def test_merged_without_changes_returns_same_instance():
    settings = EngineSettings()
    assert settings.merged({"unknown": 3, "page_size": None}) is settings
