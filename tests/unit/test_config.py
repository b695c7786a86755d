"""Tests for configuration module."""

import json
from pathlib import Path

import pytest

from weathr.config import (
    DEFAULT_FPS,
    DisplayConfig,
    LocationConfig,
    ResolvedConfig,
    SimulateOverride,
    UnitsConfig,
    WeathrConfig,
    clamp_fps,
    default_config_path,
    parse_flag,
    parse_seed,
    resolve,
)
from weathr.core.conditions import WeatherCondition
from weathr.core.scene import ExtraEffect
from weathr.services.location import DEFAULT_LATITUDE, DEFAULT_LONGITUDE
from weathr.simulation.engine import ParticleEngine


class TestConfigPath:
    """Tests for the config file location."""

    def test_xdg_config_home(self):
        path = default_config_path({"XDG_CONFIG_HOME": "/tmp/xdg"})
        assert path == Path("/tmp/xdg/weathr/config.json")

    def test_home_fallback(self):
        path = default_config_path({})
        assert path == Path.home() / ".config" / "weathr" / "config.json"


class TestLocationConfig:
    """Tests for LocationConfig dataclass."""

    def test_defaults(self):
        config = LocationConfig()
        assert (config.latitude, config.longitude) == (DEFAULT_LATITUDE, DEFAULT_LONGITUDE)
        assert not config.auto
        assert not config.hide

    def test_from_dict(self):
        config = LocationConfig.from_dict({"latitude": "48.85", "longitude": 2.35, "hide": True})
        assert config.latitude == 48.85
        assert config.longitude == 2.35
        assert config.hide

    def test_invalid_coordinates(self):
        config = LocationConfig.from_dict({"latitude": "north", "longitude": 2.35})
        assert (config.latitude, config.longitude) == (DEFAULT_LATITUDE, DEFAULT_LONGITUDE)

    def test_out_of_range_coordinates(self):
        config = LocationConfig.from_dict({"latitude": 91.0, "longitude": 0.0})
        assert (config.latitude, config.longitude) == (DEFAULT_LATITUDE, DEFAULT_LONGITUDE)

    def test_not_a_dict(self):
        assert LocationConfig.from_dict("Berlin") == LocationConfig()


class TestWeathrConfig:
    """Tests for WeathrConfig dataclass."""

    def test_load_missing_file(self, tmp_path):
        assert WeathrConfig.load(tmp_path / "missing.json") == WeathrConfig()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "weathr" / "config.json"
        config = WeathrConfig()
        config.location.latitude = -33.87
        config.units.temperature = "fahrenheit"
        config.display.leaves = True
        config.save(path)

        assert WeathrConfig.load(path) == config
        assert not path.with_suffix(".tmp").exists()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"hud": {"hide": True, "theme": "dark"}, "plugins": []}))
        config = WeathrConfig.load(path)
        assert config.hud.hide
        assert config.display == DisplayConfig()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert WeathrConfig.load(path) == WeathrConfig()

    def test_top_level_not_an_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        assert WeathrConfig.load(path) == WeathrConfig()

    def test_to_dict_sections(self):
        assert set(WeathrConfig().to_dict()) == {"location", "hud", "units", "display"}

    def test_invalid_units_fall_back(self):
        units = UnitsConfig.from_dict({"temperature": "kelvin", "wind_speed": "mph"}).to_units()
        assert units.temperature == "celsius"
        assert units.wind_speed == "mph"


class TestResolve:
    """Tests for merging flags over the config file."""

    def test_config_values_used(self):
        config = WeathrConfig()
        config.hud.hide = True
        config.display.airplanes = True
        config.display.seed = 7
        resolved = resolve(config)
        assert resolved.hide_hud
        assert resolved.airplanes
        assert resolved.seed == 7
        assert resolved.extras == frozenset({ExtraEffect.AIRPLANES})

    def test_flags_override(self):
        config = WeathrConfig()
        config.hud.hide = True
        config.location.hide = True
        resolved = resolve(config, hide_hud=False, hide_location=False, leaves=True, fps=30)
        assert not resolved.hide_hud
        assert not resolved.hide_location
        assert resolved.leaves
        assert resolved.fps == 30

    def test_auto_location_flag(self):
        assert resolve(WeathrConfig(), auto_location=True).auto_location

    def test_fps_clamped(self):
        assert resolve(WeathrConfig(), fps=500).fps == 60

    def test_frame_interval(self):
        assert ResolvedConfig(fps=20).frame_interval == pytest.approx(0.05)


class TestDisplayValidation:
    """Tests for bad values in the display and flag sections."""

    def test_bad_seed_is_random(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"display": {"seed": "abc"}}))
        config = WeathrConfig.load(path)
        assert config.display.seed is None
        assert resolve(config).seed is None

    def test_bad_seed_engine_starts(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"display": {"seed": "abc"}}))
        resolved = resolve(WeathrConfig.load(path))
        engine = ParticleEngine(seed=resolved.seed)
        assert engine.seed is None
        assert engine.snapshot() == ()

    @pytest.mark.parametrize("value,expected", [(7, 7), ("12", 12), (3.0, 3), (None, None), (2.5, None), (-1, None), (True, None), ([1], None)])
    def test_parse_seed(self, value, expected):
        assert parse_seed(value) == expected

    def test_string_flags_parsed_strictly(self):
        config = WeathrConfig.from_dict({
            "location": {"hide": "false", "auto": "no"},
            "hud": {"hide": "true"},
            "display": {"airplanes": "false", "leaves": "yes", "watch_elements": "maybe"},
        })
        assert config.location.hide is False
        assert config.location.auto is False
        assert config.hud.hide is True
        assert config.display.airplanes is False
        assert config.display.leaves is True
        assert config.display.watch_elements is False

    @pytest.mark.parametrize("value,expected", [(True, True), (0, False), (1, True), ("ON", True), ("off", False), (2, False), (None, False)])
    def test_parse_flag(self, value, expected):
        assert parse_flag(value, "test") is expected

    def test_bad_fps_and_elements_dir(self):
        display = DisplayConfig.from_dict({"fps": "fast", "elements_dir": 42})
        assert display.fps == DEFAULT_FPS
        assert display.elements_dir is None


class TestClampFps:
    """Tests for frame rate validation."""

    @pytest.mark.parametrize("value,expected", [(15, 15), (0, 1), (-3, 1), (61, 60), ("24", 24), ("fast", DEFAULT_FPS), (None, DEFAULT_FPS)])
    def test_clamp(self, value, expected):
        assert clamp_fps(value) == expected


class TestSimulateOverride:
    """Tests for the simulation override."""

    def test_create(self):
        override = SimulateOverride.create("thunderstorm-hail", True, [ExtraEffect.LEAVES])
        assert override.condition is WeatherCondition.THUNDERSTORM_HAIL
        assert override.force_night
        assert override.extras == frozenset({ExtraEffect.LEAVES})

    def test_unknown_condition_is_clear(self):
        assert SimulateOverride.create("tornado").condition is WeatherCondition.CLEAR
