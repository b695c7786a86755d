"""Weather conditions understood by the animation engine."""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class WeatherCondition(Enum):
    """Closed set of conditions the scene builder knows how to draw."""
    CLEAR = "clear"
    PARTLY_CLOUDY = "partly-cloudy"
    CLOUDY = "cloudy"
    OVERCAST = "overcast"
    FOG = "fog"
    DRIZZLE = "drizzle"
    RAIN = "rain"
    FREEZING_RAIN = "freezing-rain"
    RAIN_SHOWERS = "rain-showers"
    SNOW = "snow"
    SNOW_GRAINS = "snow-grains"
    SNOW_SHOWERS = "snow-showers"
    THUNDERSTORM = "thunderstorm"
    THUNDERSTORM_HAIL = "thunderstorm-hail"

    @property
    def display_name(self) -> str:
        """Human-readable label for the HUD."""
        return {
            WeatherCondition.THUNDERSTORM_HAIL: "Thunderstorm with Hail",
        }.get(self, self.value.replace("-", " ").title())

    @property
    def is_rainy(self) -> bool:
        return self in _RAINY

    @property
    def is_snowy(self) -> bool:
        return self in _SNOWY

    @property
    def is_stormy(self) -> bool:
        return self in (WeatherCondition.THUNDERSTORM, WeatherCondition.THUNDERSTORM_HAIL)


_RAINY = frozenset({
    WeatherCondition.DRIZZLE,
    WeatherCondition.RAIN,
    WeatherCondition.FREEZING_RAIN,
    WeatherCondition.RAIN_SHOWERS,
    WeatherCondition.THUNDERSTORM,
    WeatherCondition.THUNDERSTORM_HAIL,
})

_SNOWY = frozenset({
    WeatherCondition.SNOW,
    WeatherCondition.SNOW_GRAINS,
    WeatherCondition.SNOW_SHOWERS,
})

# Extra spellings accepted on the command line
_ALIASES = {
    "sunny": WeatherCondition.CLEAR,
    "foggy": WeatherCondition.FOG,
    "rainy": WeatherCondition.RAIN,
    "snowy": WeatherCondition.SNOW,
    "showers": WeatherCondition.RAIN_SHOWERS,
    "thunder": WeatherCondition.THUNDERSTORM,
    "hail": WeatherCondition.THUNDERSTORM_HAIL,
}


def _normalize(text: str) -> str:
    return text.strip().lower().replace("_", "").replace("-", "").replace(" ", "")


_LOOKUP = {_normalize(c.value): c for c in WeatherCondition}
_LOOKUP.update({_normalize(k): v for k, v in _ALIASES.items()})


def parse_condition(text: str | WeatherCondition | None) -> WeatherCondition:
    """Parse a condition name, falling back to CLEAR for anything unknown."""
    if isinstance(text, WeatherCondition):
        return text
    if not isinstance(text, str):
        logger.warning("Unknown weather condition %r, defaulting to clear", text)
        return WeatherCondition.CLEAR
    condition = _LOOKUP.get(_normalize(text))
    if condition is None:
        logger.warning("Unknown weather condition %r, defaulting to clear", text)
        return WeatherCondition.CLEAR
    return condition
