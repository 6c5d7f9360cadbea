import os

import pytest

from signal_engine.config import (DEFAULT_WEIGHTS, MODE_WEIGHTS, ActionBand, EngineConfig, GapConfig, OrderFlowConfig,
                                  ScoringConfig, TrendConfig)
from signal_engine.errors import ConfigurationOutOfRange
from signal_engine.utils.config_loader import load_config, load_engine_config, load_environment

PROJECT_CONFIG = os.path.join(os.path.dirname(__file__), "..", "config.yaml")


@pytest.mark.parametrize("factory", [
    lambda: OrderFlowConfig(method="guess"),
    lambda: OrderFlowConfig(lookback=0),
    lambda: OrderFlowConfig(imbalance_ratio=0.5),
    lambda: GapConfig(threshold_percent=-1),
    lambda: GapConfig(fill_mode="partial"),
    lambda: TrendConfig(macd_fast=30, macd_slow=26),
    lambda: TrendConfig(ma_periods=(9, 21, 50)),
    lambda: ActionBand(50, "strong", "HIGH", 60),
    lambda: ScoringConfig(weights={"sentiment": 5.0}),
    lambda: ScoringConfig(mode="scalping"),
    lambda: ScoringConfig(bands=(ActionBand(20, "normal", "MED", 50), ActionBand(70, "strong", "MAX", 100))),
])
def test_out_of_range_values_rejected(factory):
    with pytest.raises(ConfigurationOutOfRange):
        factory()


def test_error_names_the_field():
    with pytest.raises(ConfigurationOutOfRange) as exc:
        GapConfig(max_age=0)
    assert exc.value.field == "gaps.max_age"
    assert exc.value.value == 0


def test_from_dict_merges_defaults():
    config = EngineConfig.from_dict({
        "gaps": {"threshold_percent": 1.0},
        "scoring": {"weights": {"trend": 30}, "bands": [
            {"threshold": 60, "strength": "strong", "confidence": "MAX", "size_percent": 100},
        ]},
        "trend": {"ma_periods": [5, 10, 20, 100]},
    })
    assert config.gaps.threshold_percent == 1.0
    assert config.gaps.max_age == 50
    assert config.scoring.weights["trend"] == 30
    assert config.scoring.weights["magnet"] == DEFAULT_WEIGHTS["magnet"]
    assert config.scoring.bands == (ActionBand(60, "strong", "MAX", 100),)
    assert config.trend.ma_periods == (5, 10, 20, 100)
    assert config.trend.min_bars == 100


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationOutOfRange):
        EngineConfig.from_dict({"tarot": {}})
    with pytest.raises(ConfigurationOutOfRange):
        EngineConfig.from_dict({"gaps": {"threshold": 1.0}})


def test_with_overrides_returns_a_copy():
    base = EngineConfig()
    updated = base.with_overrides({"gaps.threshold_percent": 2.0, "trend.min_adx": 25})
    assert updated.gaps.threshold_percent == 2.0
    assert updated.trend.min_adx == 25
    assert base.gaps.threshold_percent == 0.5
    assert updated.patterns is base.patterns


@pytest.mark.parametrize("mode", sorted(MODE_WEIGHTS))
def test_mode_presets_cover_every_component(mode):
    weights = ScoringConfig(mode=mode).weights
    assert set(weights) == set(DEFAULT_WEIGHTS)
    assert sum(weights.values()) == pytest.approx(100)


def test_mode_preset_with_weight_override():
    config = EngineConfig.from_dict({"scoring": {"mode": "liquidity", "weights": {"trend": 20}}})
    assert config.scoring.weights["gaps"] == 25.0
    assert config.scoring.weights["trend"] == 20
    assert config.scoring.weights["fear"] == DEFAULT_WEIGHTS["fear"]


def test_mode_override_starts_from_the_preset():
    base = EngineConfig().with_overrides({"scoring.weights": {"trend": 40.0}})
    swing = base.with_overrides({"scoring.mode": "swing"})
    assert swing.scoring.weights == MODE_WEIGHTS["swing"]
    assert base.scoring.weights["trend"] == 40.0
    assert base.scoring.weights["pattern"] == DEFAULT_WEIGHTS["pattern"]


def test_with_overrides_validates():
    with pytest.raises(ConfigurationOutOfRange):
        EngineConfig().with_overrides({"squeeze.length": 1})
    with pytest.raises(ConfigurationOutOfRange):
        EngineConfig().with_overrides({"threshold_percent": 1.0})
    with pytest.raises(ConfigurationOutOfRange):
        EngineConfig().with_overrides({"gaps.size": 1.0})


def test_enabled_components():
    config = EngineConfig().with_overrides({"magnet.enabled": False, "fear.enabled": False})
    enabled = config.enabled_components()
    assert "magnet" not in enabled
    assert "fear" not in enabled
    assert "trend" in enabled


def test_project_config_loads():
    config = load_engine_config(PROJECT_CONFIG)
    assert config.scoring.scale == "weighted"
    assert config.order_flow.method == "directional"
    assert sum(config.scoring.weights.values()) == 100


def test_engine_config_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("engine:\n  gaps:\n    max_age: 20\n  scoring:\n    scale: alignment\n")
    config = load_engine_config(str(path), overrides={"gaps.unfilled_only": False})
    assert config.gaps.max_age == 20
    assert not config.gaps.unfilled_only
    assert config.scoring.scale == "alignment"


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == {}
    assert load_engine_config(str(path)) == EngineConfig()


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_environment(tmp_path, monkeypatch):
    # setenv first so monkeypatch removes whatever load_dotenv writes
    for name in ("SIGNAL_ENGINE_CONFIG", "SIGNAL_ENGINE_LOG_LEVEL", "SIGNAL_ENGINE_MAX_WORKERS"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("SIGNAL_ENGINE_LOG_LEVEL=DEBUG\nSIGNAL_ENGINE_MAX_WORKERS=8\n")

    env = load_environment(str(env_file))
    assert env["log_level"] == "DEBUG"
    assert env["max_workers"] == 8
    assert env["config_path"] == "config.yaml"


def test_environment_ignores_bad_worker_count(tmp_path, monkeypatch):
    monkeypatch.setenv("SIGNAL_ENGINE_MAX_WORKERS", "many")
    env = load_environment(str(tmp_path / "missing.env"))
    assert env["max_workers"] is None
