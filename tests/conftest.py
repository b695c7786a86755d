"""Shared test fixtures."""

from datetime import datetime, timezone

import pytest

from weathr.config import ResolvedConfig
from weathr.core.conditions import WeatherCondition
from weathr.core.sky import GRADIENT_STOPS, SkyState
from weathr.elements.registry import default_registry
from weathr.services.weather import WeatherObservation
from weathr.widget.hud import HudData


class FakeSession:
    """Stands in for TerminalSession: fixed size, scripted keys, captured writes."""

    def __init__(self, size=(80, 24), keys=()):
        self._size = size
        self.keys = list(keys)
        self.writes = []

    def resize(self, width, height):
        self._size = (width, height)

    def size(self):
        return self._size

    def read_key(self, timeout=0.0):
        return self.keys.pop(0) if self.keys else None

    def write(self, text):
        self.writes.append(text)


@pytest.fixture
def registry():
    """Registry over the packaged element definitions."""
    return default_registry()


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def make_session():
    """Factory for sessions with a custom size or scripted keys."""
    return FakeSession


@pytest.fixture
def truecolor_env():
    return {"COLORTERM": "truecolor", "TERM": "xterm-256color"}


@pytest.fixture
def resolved_config():
    """Session settings for the default location with a fixed seed."""
    return ResolvedConfig(seed=42)


@pytest.fixture
def noon_utc():
    return datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def day_sky():
    """Daylight sky without a sun, so nothing but the gradient is drawn."""
    day = GRADIENT_STOPS[-1]
    return SkyState(45.0, day.zenith, day.horizon, day.name)


@pytest.fixture
def sample_hud():
    return HudData(
        condition="Rain",
        temperature="12.3°C",
        wind="10 km/h",
        precipitation="2.5 mm",
        location="52.52°N, 13.41°E",
    )


@pytest.fixture
def sample_observation():
    return WeatherObservation(
        condition=WeatherCondition.RAIN,
        is_day=True,
        temperature=12.3,
        apparent_temperature=10.9,
        humidity=81.0,
        wind_speed=10.0,
        wind_direction=270.0,
        precipitation=2.5,
        location_label="52.52°N, 13.41°E",
    )


@pytest.fixture
def mock_weather_response():
    """Mock Open-Meteo API response."""
    return {
        "latitude": 52.52,
        "longitude": 13.41,
        "current": {
            "time": "2024-03-20T12:00",
            "temperature_2m": 12.3,
            "apparent_temperature": 10.9,
            "relative_humidity_2m": 81,
            "is_day": 1,
            "precipitation": 2.5,
            "weather_code": 63,
            "wind_speed_10m": 10.4,
            "wind_direction_10m": 270,
        },
    }


@pytest.fixture
def mock_weather_response_snow():
    """Mock Open-Meteo API response for a snowy night."""
    return {
        "current": {
            "temperature_2m": -2.0,
            "apparent_temperature": -6.5,
            "relative_humidity_2m": 90,
            "is_day": 0,
            "precipitation": 0.4,
            "weather_code": 75,
            "wind_speed_10m": 22.0,
            "wind_direction_10m": 45,
        },
    }
