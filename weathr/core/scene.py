"""
Scene descriptor builder - maps a weather condition to declarative animation layers.

The descriptor is the only thing the particle engine and the compositor know
about the weather. Every descriptor carries exactly one precipitation layer
(rain or snow, possibly at intensity 0.0); cloud cover, fog, hail, lightning
and the optional extras are independent layers on top of it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .conditions import WeatherCondition, parse_condition

logger = logging.getLogger(__name__)


class LayerKind(Enum):
    """Visually distinct animation layers."""
    RAIN = "rain"
    SNOW = "snow"
    HAIL = "hail"
    LIGHTNING = "lightning"
    CLOUDS = "clouds"
    FOG = "fog"
    BIRDS = "birds"
    LEAVES = "leaves"
    AIRPLANES = "airplanes"

    @property
    def is_precipitation(self) -> bool:
        """Rain and snow exclude each other; at most one is ever present."""
        return self in (LayerKind.RAIN, LayerKind.SNOW)


class ExtraEffect(Enum):
    """Optional effects independent of the weather."""
    LEAVES = "leaves"
    AIRPLANES = "airplanes"


_EXTRA_LAYERS = {
    ExtraEffect.LEAVES: (LayerKind.LEAVES, 0.5),
    ExtraEffect.AIRPLANES: (LayerKind.AIRPLANES, 0.3),
}


@dataclass(frozen=True)
class LayerSpec:
    """One active layer and its parameters."""
    kind: LayerKind
    intensity: float
    wind_bias: float = 0.0
    # Precipitation that keeps falling wraps from the bottom edge back to the top
    continuous: bool = False

    def __post_init__(self):
        object.__setattr__(self, "intensity", _clamp(self.intensity, 0.0, 1.0))
        object.__setattr__(self, "wind_bias", _clamp(self.wind_bias, -1.0, 1.0))


@dataclass(frozen=True)
class SceneDescriptor:
    """Read-only set of layers derived from the weather."""
    layers: tuple[LayerSpec, ...]
    is_day: bool = True
    extras: frozenset = field(default_factory=frozenset)
    condition: WeatherCondition = WeatherCondition.CLEAR

    def layer(self, kind: LayerKind) -> Optional[LayerSpec]:
        for spec in self.layers:
            if spec.kind is kind:
                return spec
        return None

    def intensity(self, kind: LayerKind) -> float:
        spec = self.layer(kind)
        return spec.intensity if spec else 0.0

    def is_active(self, kind: LayerKind) -> bool:
        return self.intensity(kind) > 0.0

    @property
    def kinds(self) -> frozenset:
        return frozenset(spec.kind for spec in self.layers)

    @property
    def precipitation(self) -> tuple[LayerSpec, ...]:
        return tuple(spec for spec in self.layers if spec.kind.is_precipitation)

    @property
    def active_layers(self) -> tuple[LayerSpec, ...]:
        return tuple(spec for spec in self.layers if spec.intensity > 0.0)


@dataclass(frozen=True)
class _ConditionProfile:
    """Layer intensities for one condition."""
    precipitation: LayerKind = LayerKind.RAIN
    amount: float = 0.0
    continuous: bool = True
    clouds: float = 0.0
    fog: float = 0.0
    hail: float = 0.0
    lightning: float = 0.0


PROFILES: dict[WeatherCondition, _ConditionProfile] = {
    WeatherCondition.CLEAR: _ConditionProfile(),
    WeatherCondition.PARTLY_CLOUDY: _ConditionProfile(clouds=0.3),
    WeatherCondition.CLOUDY: _ConditionProfile(clouds=0.6),
    WeatherCondition.OVERCAST: _ConditionProfile(clouds=0.9),
    WeatherCondition.FOG: _ConditionProfile(clouds=0.4, fog=0.7),
    WeatherCondition.DRIZZLE: _ConditionProfile(amount=0.25, clouds=0.6),
    WeatherCondition.RAIN: _ConditionProfile(amount=0.6, clouds=0.8),
    WeatherCondition.FREEZING_RAIN: _ConditionProfile(amount=0.5, clouds=0.8, fog=0.2),
    WeatherCondition.RAIN_SHOWERS: _ConditionProfile(amount=0.8, continuous=False, clouds=0.7),
    WeatherCondition.SNOW: _ConditionProfile(LayerKind.SNOW, 0.6, clouds=0.8),
    WeatherCondition.SNOW_GRAINS: _ConditionProfile(LayerKind.SNOW, 0.3, clouds=0.7),
    WeatherCondition.SNOW_SHOWERS: _ConditionProfile(LayerKind.SNOW, 0.8, continuous=False, clouds=0.7),
    WeatherCondition.THUNDERSTORM: _ConditionProfile(amount=0.9, clouds=1.0, lightning=0.6),
    WeatherCondition.THUNDERSTORM_HAIL: _ConditionProfile(amount=0.9, clouds=1.0, hail=0.5, lightning=0.8),
}

# Birds only fly on dry days
_BIRD_INTENSITY = 0.3


def _clamp(value: float, low: float, high: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return low
    if value != value:  # NaN
        return low
    return min(max(value, low), high)


def _normalize_extras(extras: Optional[Iterable]) -> frozenset:
    result = set()
    for extra in extras or ():
        if isinstance(extra, ExtraEffect):
            result.add(extra)
            continue
        try:
            result.add(ExtraEffect(str(extra).strip().lower()))
        except ValueError:
            logger.warning("Ignoring unknown extra effect %r", extra)
    return frozenset(result)


def build(
    condition,
    is_day: bool = True,
    extras: Optional[Iterable] = None,
    *,
    wind: float = 0.0,
) -> SceneDescriptor:
    """Build the scene descriptor for a condition.

    Args:
        condition: WeatherCondition or its name; anything unrecognized
            produces the clear descriptor.
        is_day: Daylight flag (controls birds and window lighting).
        extras: ExtraEffect values or their names (unknown names are ignored).
        wind: Horizontal drift bias in -1..1 (negative blows left).

    Returns:
        A new immutable SceneDescriptor.
    """
    condition = parse_condition(condition)
    profile = PROFILES.get(condition, PROFILES[WeatherCondition.CLEAR])
    extras = _normalize_extras(extras)
    wind = _clamp(wind, -1.0, 1.0)

    layers = [
        LayerSpec(profile.precipitation, profile.amount, wind, profile.continuous),
        LayerSpec(LayerKind.CLOUDS, profile.clouds, wind),
    ]
    if profile.fog:
        layers.append(LayerSpec(LayerKind.FOG, profile.fog, wind * 0.5))
    if profile.hail:
        layers.append(LayerSpec(LayerKind.HAIL, profile.hail, wind * 0.5))
    if profile.lightning:
        layers.append(LayerSpec(LayerKind.LIGHTNING, profile.lightning))
    if is_day and profile.amount == 0.0 and not profile.fog:
        layers.append(LayerSpec(LayerKind.BIRDS, _BIRD_INTENSITY))

    for extra in sorted(extras, key=lambda e: e.value):
        kind, intensity = _EXTRA_LAYERS[extra]
        layers.append(LayerSpec(kind, intensity, wind))

    return SceneDescriptor(
        layers=tuple(layers),
        is_day=bool(is_day),
        extras=extras,
        condition=condition,
    )
