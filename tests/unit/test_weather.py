"""Tests for weather service."""

from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from weathr.core.conditions import WeatherCondition
from weathr.services.weather import (
    API_URL,
    CURRENT_FIELDS,
    Units,
    condition_from_code,
    fetch_observation,
    format_coordinates,
    format_hud,
    parse_current,
    wind_bias,
)


class TestConditionFromCode:
    """Tests for WMO code mapping."""

    @pytest.mark.parametrize("code,condition", [
        (0, WeatherCondition.CLEAR),
        (2, WeatherCondition.CLOUDY),
        (48, WeatherCondition.FOG),
        (53, WeatherCondition.DRIZZLE),
        (63, WeatherCondition.RAIN),
        (66, WeatherCondition.FREEZING_RAIN),
        (75, WeatherCondition.SNOW),
        (77, WeatherCondition.SNOW_GRAINS),
        (81, WeatherCondition.RAIN_SHOWERS),
        (86, WeatherCondition.SNOW_SHOWERS),
        (95, WeatherCondition.THUNDERSTORM),
        (99, WeatherCondition.THUNDERSTORM_HAIL),
    ])
    def test_known_codes(self, code, condition):
        assert condition_from_code(code) is condition

    def test_unknown_code_is_clear(self):
        assert condition_from_code(999) is WeatherCondition.CLEAR
        assert condition_from_code(None) is WeatherCondition.CLEAR
        assert condition_from_code("rain") is WeatherCondition.CLEAR

    def test_string_code(self):
        assert condition_from_code("61") is WeatherCondition.RAIN


class TestFormatting:
    """Tests for HUD formatting."""

    def test_coordinates(self):
        assert format_coordinates(52.52, 13.41) == "52.52°N, 13.41°E"
        assert format_coordinates(-33.8688, -151.2093) == "33.87°S, 151.21°W"

    def test_format_hud(self, sample_observation):
        hud = format_hud(sample_observation)
        assert hud.summary() == "Weather: Rain | Temp: 12.3°C | Wind: 10 km/h | Precip: 2.5 mm"
        assert hud.location == "52.52°N, 13.41°E"

    def test_format_hud_imperial(self, sample_observation):
        hud = format_hud(sample_observation, Units("fahrenheit", "mph", "inch"))
        assert hud.temperature == "12.3°F"
        assert hud.wind == "10 mph"
        assert hud.precipitation == "2.5 in"


class TestUnits:
    """Tests for unit selection."""

    def test_defaults(self):
        assert Units().query_params() == {
            "temperature_unit": "celsius",
            "wind_speed_unit": "kmh",
            "precipitation_unit": "mm",
        }

    def test_unknown_unit_falls_back(self):
        assert Units(temperature="kelvin").temperature == "celsius"

    def test_case_insensitive(self):
        assert Units(wind_speed="MPH").wind_speed == "mph"


class TestWindBias:
    """Tests for wind drift."""

    def test_west_wind_pushes_right(self):
        assert wind_bias(25.0, 270.0) == pytest.approx(0.5)

    def test_east_wind_pushes_left(self):
        assert wind_bias(50.0, 90.0) == pytest.approx(-1.0)

    def test_saturates(self):
        assert wind_bias(500.0, 270.0) == pytest.approx(1.0)

    def test_calm(self):
        assert wind_bias(0.0, 270.0) == 0.0

    def test_units_converted(self):
        assert wind_bias(12.5, 270.0, Units(wind_speed="ms")) == pytest.approx(0.9)

    def test_invalid_input(self):
        assert wind_bias(float("nan"), 270.0) == 0.0
        assert wind_bias("fast", 270.0) == 0.0


class TestParseCurrent:
    """Tests for response parsing."""

    def test_snow_night(self, mock_weather_response_snow):
        observation = parse_current(mock_weather_response_snow)
        assert observation.condition is WeatherCondition.SNOW
        assert observation.is_day is False
        assert observation.temperature == -2.0

    def test_missing_fields_default(self):
        observation = parse_current({})
        assert observation.condition is WeatherCondition.CLEAR
        assert observation.is_day is True
        assert observation.precipitation == 0.0

    @pytest.mark.parametrize("body", [[], "sunny", None, {"current": [1, 2]}])
    def test_unexpected_shape_raises(self, body):
        with pytest.raises(requests.RequestException):
            parse_current(body)


class TestFetchObservation:
    """Tests for fetching weather."""

    @responses.activate
    def test_fetch_success(self, mock_weather_response):
        responses.add(responses.GET, API_URL, json=mock_weather_response, status=200)

        observation = fetch_observation(52.52, 13.41)

        assert observation.condition is WeatherCondition.RAIN
        assert observation.temperature == 12.3
        assert observation.wind_speed == 10.4
        assert observation.is_day is True
        assert observation.location_label == "52.52°N, 13.41°E"

    @responses.activate
    def test_query_parameters(self, mock_weather_response):
        responses.add(responses.GET, API_URL, json=mock_weather_response, status=200)

        fetch_observation(1.5, -2.25, Units(temperature="fahrenheit"), location_label="Home")

        query = parse_qs(urlparse(responses.calls[0].request.url).query)
        assert query["latitude"] == ["1.5"]
        assert query["longitude"] == ["-2.25"]
        assert query["current"] == [",".join(CURRENT_FIELDS)]
        assert query["temperature_unit"] == ["fahrenheit"]
        assert query["timezone"] == ["auto"]

    @responses.activate
    def test_server_error_raises(self):
        responses.add(responses.GET, API_URL, status=500)

        with pytest.raises(requests.RequestException):
            fetch_observation(52.52, 13.41)

    @responses.activate
    def test_invalid_json_raises(self):
        responses.add(responses.GET, API_URL, body="not json", status=200)

        with pytest.raises(requests.RequestException):
            fetch_observation(52.52, 13.41)

    @responses.activate
    def test_non_object_body_raises(self):
        responses.add(responses.GET, API_URL, json=[], status=200)

        with pytest.raises(requests.RequestException):
            fetch_observation(52.52, 13.41)

    @responses.activate
    def test_timeout_raises(self):
        responses.add(responses.GET, API_URL, body=requests.Timeout("slow"))

        with pytest.raises(requests.Timeout):
            fetch_observation(52.52, 13.41)
