"""Current weather via the Open-Meteo API."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import requests

from ..core.conditions import WeatherCondition
from ..widget.hud import HudData

logger = logging.getLogger(__name__)

API_URL = "https://api.open-meteo.com/v1/forecast"
REQUEST_TIMEOUT = 10

CURRENT_FIELDS = (
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "is_day",
    "precipitation",
    "weather_code",
    "wind_speed_10m",
    "wind_direction_10m",
)

# WMO Weather interpretation codes
# https://open-meteo.com/en/docs
WMO_CONDITIONS = {
    0: WeatherCondition.CLEAR,
    1: WeatherCondition.PARTLY_CLOUDY,
    2: WeatherCondition.CLOUDY,
    3: WeatherCondition.OVERCAST,
    45: WeatherCondition.FOG,
    48: WeatherCondition.FOG,
    51: WeatherCondition.DRIZZLE,
    53: WeatherCondition.DRIZZLE,
    55: WeatherCondition.DRIZZLE,
    56: WeatherCondition.FREEZING_RAIN,
    57: WeatherCondition.FREEZING_RAIN,
    61: WeatherCondition.RAIN,
    63: WeatherCondition.RAIN,
    65: WeatherCondition.RAIN,
    66: WeatherCondition.FREEZING_RAIN,
    67: WeatherCondition.FREEZING_RAIN,
    71: WeatherCondition.SNOW,
    73: WeatherCondition.SNOW,
    75: WeatherCondition.SNOW,
    77: WeatherCondition.SNOW_GRAINS,
    80: WeatherCondition.RAIN_SHOWERS,
    81: WeatherCondition.RAIN_SHOWERS,
    82: WeatherCondition.RAIN_SHOWERS,
    85: WeatherCondition.SNOW_SHOWERS,
    86: WeatherCondition.SNOW_SHOWERS,
    95: WeatherCondition.THUNDERSTORM,
    96: WeatherCondition.THUNDERSTORM_HAIL,
    99: WeatherCondition.THUNDERSTORM_HAIL,
}

TEMPERATURE_UNITS = {"celsius": "°C", "fahrenheit": "°F"}
WIND_SPEED_UNITS = {"kmh": "km/h", "mph": "mph", "ms": "m/s", "kn": "kn"}
PRECIPITATION_UNITS = {"mm": "mm", "inch": "in"}

# Factor to km/h for each wind speed unit
_TO_KMH = {"kmh": 1.0, "mph": 1.609344, "ms": 3.6, "kn": 1.852}

# Wind speed (km/h) at which the drift bias saturates
FULL_WIND_KMH = 50.0


@dataclass(frozen=True)
class Units:
    """Open-Meteo unit selection."""
    temperature: str = "celsius"
    wind_speed: str = "kmh"
    precipitation: str = "mm"

    def __post_init__(self):
        for name, allowed in (
            ("temperature", TEMPERATURE_UNITS),
            ("wind_speed", WIND_SPEED_UNITS),
            ("precipitation", PRECIPITATION_UNITS),
        ):
            value = str(getattr(self, name)).lower()
            if value not in allowed:
                default = next(iter(allowed))
                logger.warning("Unknown %s unit %r, using %s", name, value, default)
                value = default
            object.__setattr__(self, name, value)

    @property
    def temperature_label(self) -> str:
        return TEMPERATURE_UNITS[self.temperature]

    @property
    def wind_speed_label(self) -> str:
        return WIND_SPEED_UNITS[self.wind_speed]

    @property
    def precipitation_label(self) -> str:
        return PRECIPITATION_UNITS[self.precipitation]

    def query_params(self) -> dict:
        return {
            "temperature_unit": self.temperature,
            "wind_speed_unit": self.wind_speed,
            "precipitation_unit": self.precipitation,
        }


@dataclass(frozen=True)
class WeatherObservation:
    """One reading of current conditions. Replaced wholesale on refresh."""
    condition: WeatherCondition
    is_day: bool
    temperature: float
    apparent_temperature: float
    humidity: float
    wind_speed: float
    wind_direction: float
    precipitation: float
    location_label: str = ""


def condition_from_code(code) -> WeatherCondition:
    """Map a WMO code to a condition (unknown codes are clear)."""
    try:
        return WMO_CONDITIONS[int(code)]
    except (KeyError, TypeError, ValueError):
        logger.warning("Unknown WMO weather code %r, showing clear sky", code)
        return WeatherCondition.CLEAR


def format_coordinates(latitude: float, longitude: float) -> str:
    """``52.52°N, 13.41°E``"""
    ns = "N" if latitude >= 0 else "S"
    ew = "E" if longitude >= 0 else "W"
    return f"{abs(latitude):.2f}°{ns}, {abs(longitude):.2f}°{ew}"


def wind_bias(speed: float, direction: float, units: Optional[Units] = None) -> float:
    """Horizontal drift in -1..1 for the scene.

    ``direction`` is meteorological (where the wind blows from), so a west
    wind (270°) pushes particles to the right.
    """
    unit = units.wind_speed if units else "kmh"
    try:
        kmh = max(float(speed), 0.0) * _TO_KMH[unit]
        angle = math.radians(float(direction))
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(kmh) or math.isnan(angle):
        return 0.0
    bias = -math.sin(angle) * min(kmh / FULL_WIND_KMH, 1.0)
    return max(-1.0, min(1.0, bias))


def format_hud(observation: WeatherObservation, units: Optional[Units] = None) -> HudData:
    """Preformat an observation for the HUD."""
    units = units or Units()
    return HudData(
        condition=observation.condition.display_name,
        temperature=f"{observation.temperature:.1f}{units.temperature_label}",
        wind=f"{observation.wind_speed:.0f} {units.wind_speed_label}",
        precipitation=f"{observation.precipitation:.1f} {units.precipitation_label}",
        location=observation.location_label,
    )


def _number(current: dict, key: str, default: float = 0.0) -> float:
    value = current.get(key)
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def parse_current(data: dict, location_label: str = "") -> WeatherObservation:
    """
    Build an observation from an Open-Meteo ``/forecast`` response body.

    Raises:
        requests.RequestException: If the body or its ``current`` block is not an object
    """
    if not isinstance(data, dict):
        raise requests.RequestException(f"unexpected weather API response: {type(data).__name__}")
    current = data.get("current") or {}
    if not isinstance(current, dict):
        raise requests.RequestException(f"unexpected 'current' block: {type(current).__name__}")
    return WeatherObservation(
        condition=condition_from_code(current.get("weather_code", 0)),
        is_day=bool(current.get("is_day", 1)),
        temperature=_number(current, "temperature_2m"),
        apparent_temperature=_number(current, "apparent_temperature"),
        humidity=_number(current, "relative_humidity_2m"),
        wind_speed=_number(current, "wind_speed_10m"),
        wind_direction=_number(current, "wind_direction_10m"),
        precipitation=_number(current, "precipitation"),
        location_label=location_label,
    )


def fetch_observation(
    latitude: float,
    longitude: float,
    units: Optional[Units] = None,
    location_label: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> WeatherObservation:
    """
    Fetch current weather from Open-Meteo API.

    Args:
        latitude: Location latitude
        longitude: Location longitude
        units: Unit selection (metric by default)
        location_label: HUD label (defaults to the formatted coordinates)
        session: Optional requests session

    Returns:
        WeatherObservation with current conditions

    Raises:
        requests.RequestException: On network/API errors
    """
    units = units or Units()
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": ",".join(CURRENT_FIELDS),
        "timezone": "auto",
        **units.query_params(),
    }
    http = session or requests
    response = http.get(API_URL, params=params, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError as exc:
        raise requests.RequestException(f"invalid JSON from weather API: {exc}") from exc

    if location_label is None:
        location_label = format_coordinates(latitude, longitude)
    observation = parse_current(data, location_label)
    logger.info("Weather at %s: %s", location_label, observation.condition.value)
    return observation
