"""Tests for weather conditions and the scene descriptor builder."""

import pytest

from weathr.core.conditions import WeatherCondition, parse_condition
from weathr.core.scene import ExtraEffect, LayerKind, LayerSpec, build


class TestParseCondition:
    """Tests for condition name parsing."""

    def test_exact_value(self):
        assert parse_condition("thunderstorm-hail") is WeatherCondition.THUNDERSTORM_HAIL

    def test_separators_and_case_ignored(self):
        assert parse_condition("Rain_Showers") is WeatherCondition.RAIN_SHOWERS
        assert parse_condition("partly cloudy") is WeatherCondition.PARTLY_CLOUDY

    def test_aliases(self):
        assert parse_condition("showers") is WeatherCondition.RAIN_SHOWERS
        assert parse_condition("sunny") is WeatherCondition.CLEAR
        assert parse_condition("hail") is WeatherCondition.THUNDERSTORM_HAIL

    def test_enum_passes_through(self):
        assert parse_condition(WeatherCondition.SNOW) is WeatherCondition.SNOW

    def test_unknown_falls_back_to_clear(self):
        assert parse_condition("tornado") is WeatherCondition.CLEAR
        assert parse_condition(None) is WeatherCondition.CLEAR
        assert parse_condition(42) is WeatherCondition.CLEAR

    def test_display_names(self):
        assert WeatherCondition.PARTLY_CLOUDY.display_name == "Partly Cloudy"
        assert WeatherCondition.THUNDERSTORM_HAIL.display_name == "Thunderstorm with Hail"

    def test_categories(self):
        assert WeatherCondition.DRIZZLE.is_rainy
        assert WeatherCondition.SNOW_GRAINS.is_snowy
        assert WeatherCondition.THUNDERSTORM.is_stormy
        assert not WeatherCondition.FOG.is_rainy


class TestLayerSpec:
    """Tests for layer parameter clamping."""

    def test_intensity_clamped(self):
        assert LayerSpec(LayerKind.RAIN, 1.7).intensity == 1.0
        assert LayerSpec(LayerKind.RAIN, -0.5).intensity == 0.0

    def test_nan_intensity_is_zero(self):
        assert LayerSpec(LayerKind.RAIN, float("nan")).intensity == 0.0

    def test_wind_clamped(self):
        assert LayerSpec(LayerKind.RAIN, 0.5, wind_bias=-3.0).wind_bias == -1.0


class TestBuild:
    """Tests for condition -> descriptor mapping."""

    def test_clear_day(self):
        scene = build(WeatherCondition.CLEAR, is_day=True)
        assert len(scene.precipitation) == 1
        assert scene.intensity(LayerKind.RAIN) == 0.0
        assert scene.is_active(LayerKind.BIRDS)
        assert not scene.is_active(LayerKind.CLOUDS)

    def test_clear_night_has_no_birds(self):
        scene = build(WeatherCondition.CLEAR, is_day=False)
        assert LayerKind.BIRDS not in scene.kinds
        assert scene.is_day is False

    def test_rain(self):
        scene = build("rain")
        assert scene.is_active(LayerKind.RAIN)
        assert scene.is_active(LayerKind.CLOUDS)
        assert scene.layer(LayerKind.RAIN).continuous
        assert LayerKind.BIRDS not in scene.kinds

    def test_showers_are_not_continuous(self):
        scene = build(WeatherCondition.RAIN_SHOWERS)
        assert not scene.layer(LayerKind.RAIN).continuous

    def test_snow_replaces_rain(self):
        scene = build(WeatherCondition.SNOW)
        assert scene.is_active(LayerKind.SNOW)
        assert LayerKind.RAIN not in scene.kinds
        assert len(scene.precipitation) == 1

    def test_thunderstorm_hail_is_compound(self):
        scene = build(WeatherCondition.THUNDERSTORM_HAIL, is_day=False)
        for kind in (LayerKind.RAIN, LayerKind.HAIL, LayerKind.LIGHTNING, LayerKind.CLOUDS):
            assert scene.is_active(kind), kind

    def test_fog(self):
        scene = build(WeatherCondition.FOG)
        assert scene.is_active(LayerKind.FOG)
        assert LayerKind.BIRDS not in scene.kinds

    def test_unknown_condition_builds_clear(self):
        assert build("tornado") == build(WeatherCondition.CLEAR)

    def test_extras(self):
        scene = build(WeatherCondition.CLEAR, extras={"leaves", ExtraEffect.AIRPLANES})
        assert scene.is_active(LayerKind.LEAVES)
        assert scene.is_active(LayerKind.AIRPLANES)
        assert scene.extras == frozenset({ExtraEffect.LEAVES, ExtraEffect.AIRPLANES})

    def test_unknown_extra_ignored(self):
        scene = build(WeatherCondition.CLEAR, extras=["sparkles"])
        assert scene.extras == frozenset()

    def test_wind_applied_and_clamped(self):
        scene = build(WeatherCondition.FOG, wind=5.0)
        assert scene.layer(LayerKind.CLOUDS).wind_bias == 1.0
        assert scene.layer(LayerKind.FOG).wind_bias == 0.5

    def test_lightning_ignores_wind(self):
        scene = build(WeatherCondition.THUNDERSTORM, wind=-0.8)
        assert scene.layer(LayerKind.LIGHTNING).wind_bias == 0.0

    def test_descriptor_is_immutable(self):
        scene = build(WeatherCondition.RAIN)
        with pytest.raises(AttributeError):
            scene.is_day = False

    @pytest.mark.parametrize("condition", list(WeatherCondition))
    def test_every_condition_has_one_precipitation_layer(self, condition):
        scene = build(condition)
        assert len(scene.precipitation) == 1
        assert scene.condition is condition
