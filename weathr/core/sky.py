"""
Sky / day-night model.

Solar elevation uses the NOAA general solar position approximation
(fractional year -> declination + equation of time -> hour angle). Elevation
maps onto a short list of gradient stops with linear interpolation, so the
sky fades smoothly through dawn and dusk instead of switching.
"""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .colors import RGB, lerp_rgb

# Sun is drawn above this elevation (degrees), the moon otherwise
SUN_THRESHOLD = 1.0

# Fixed elevation used by the --night override and the no-coordinates fallback
NIGHT_ELEVATION = -30.0
DAY_ELEVATION = 45.0


class Celestial(Enum):
    NONE = "none"
    SUN = "sun"
    MOON = "moon"


@dataclass(frozen=True)
class GradientStop:
    name: str
    elevation: float
    zenith: RGB
    horizon: RGB


# Ordered by elevation
GRADIENT_STOPS: tuple[GradientStop, ...] = (
    GradientStop("night", -18.0, (4, 6, 20), (10, 14, 36)),
    GradientStop("twilight", -6.0, (16, 20, 58), (62, 48, 96)),
    GradientStop("dawn", 0.0, (40, 54, 112), (228, 126, 76)),
    GradientStop("golden", 6.0, (66, 116, 186), (248, 188, 122)),
    GradientStop("day", 15.0, (46, 116, 206), (150, 200, 240)),
)


@dataclass(frozen=True)
class SkyState:
    """Sky for one tick."""
    elevation: float
    zenith: RGB
    horizon: RGB
    stop: str
    body: Celestial = Celestial.NONE
    # Position of the visible body along its arc: x 0 (east) .. 1 (west), y 0 (horizon) .. 1 (zenith)
    arc_x: float = 0.5
    arc_y: float = 0.0

    @property
    def is_day(self) -> bool:
        return self.elevation > SUN_THRESHOLD

    def row_color(self, row: int, rows: int) -> RGB:
        """Background color of a sky row (0 = top)."""
        if rows <= 1:
            return self.zenith
        return lerp_rgb(self.zenith, self.horizon, row / (rows - 1))

    def body_cell(self, width: int, sky_rows: int, art_width: int = 1, art_height: int = 1) -> Optional[tuple[int, int]]:
        """Top-left cell of the body's art inside a sky area of ``sky_rows`` rows."""
        if self.body is Celestial.NONE or width <= 0 or sky_rows <= 0:
            return None
        span_x = max(width - art_width, 0)
        span_y = max(sky_rows - art_height, 0)
        col = int(round(self.arc_x * span_x))
        row = int(round((1.0 - self.arc_y) * span_y))
        return col, row


def _wrap_degrees(angle: float) -> float:
    """Wrap to [-180, 180)."""
    return (angle + 180.0) % 360.0 - 180.0


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def solar_position(latitude: float, longitude: float, when: datetime) -> tuple[float, float]:
    """Approximate solar (elevation, hour angle) in degrees.

    Naive datetimes are taken as system local time.
    """
    utc = when.astimezone(timezone.utc)
    day_of_year = utc.timetuple().tm_yday
    hours = utc.hour + utc.minute / 60.0 + utc.second / 3600.0

    gamma = 2.0 * math.pi / 365.0 * (day_of_year - 1 + (hours - 12.0) / 24.0)
    eq_time = 229.18 * (
        0.000075
        + 0.001868 * math.cos(gamma)
        - 0.032077 * math.sin(gamma)
        - 0.014615 * math.cos(2 * gamma)
        - 0.040849 * math.sin(2 * gamma)
    )
    declination = (
        0.006918
        - 0.399912 * math.cos(gamma)
        + 0.070257 * math.sin(gamma)
        - 0.006758 * math.cos(2 * gamma)
        + 0.000907 * math.sin(2 * gamma)
        - 0.002697 * math.cos(3 * gamma)
        + 0.00148 * math.sin(3 * gamma)
    )

    solar_minutes = hours * 60.0 + eq_time + 4.0 * longitude
    hour_angle = _wrap_degrees(solar_minutes / 4.0 - 180.0)

    lat = math.radians(latitude)
    cos_zenith = (
        math.sin(lat) * math.sin(declination)
        + math.cos(lat) * math.cos(declination) * math.cos(math.radians(hour_angle))
    )
    cos_zenith = min(max(cos_zenith, -1.0), 1.0)
    elevation = 90.0 - math.degrees(math.acos(cos_zenith))
    return elevation, hour_angle


def gradient_for(elevation: float) -> tuple[RGB, RGB, str]:
    """Interpolated (zenith, horizon, stop name) for an elevation."""
    elevations = [stop.elevation for stop in GRADIENT_STOPS]
    if elevation <= elevations[0]:
        first = GRADIENT_STOPS[0]
        return first.zenith, first.horizon, first.name
    if elevation >= elevations[-1]:
        last = GRADIENT_STOPS[-1]
        return last.zenith, last.horizon, last.name

    i = bisect_right(elevations, elevation) - 1
    low, high = GRADIENT_STOPS[i], GRADIENT_STOPS[i + 1]
    t = (elevation - low.elevation) / (high.elevation - low.elevation)
    return lerp_rgb(low.zenith, high.zenith, t), lerp_rgb(low.horizon, high.horizon, t), low.name


def _state(elevation: float, hour_angle: Optional[float]) -> SkyState:
    zenith, horizon, stop = gradient_for(elevation)
    if hour_angle is None:
        return SkyState(elevation, zenith, horizon, stop)
    if elevation > SUN_THRESHOLD:
        return SkyState(
            elevation, zenith, horizon, stop,
            body=Celestial.SUN,
            arc_x=_clamp01(0.5 + hour_angle / 180.0),
            arc_y=_clamp01(elevation / 90.0),
        )
    # Moon mirrored across the same arc
    moon_angle = _wrap_degrees(hour_angle + 180.0)
    return SkyState(
        elevation, zenith, horizon, stop,
        body=Celestial.MOON,
        arc_x=_clamp01(0.5 + moon_angle / 180.0),
        arc_y=_clamp01(-elevation / 90.0),
    )


def compute(
    latitude: Optional[float],
    longitude: Optional[float],
    when: Optional[datetime] = None,
    *,
    force_night: bool = False,
    fallback_is_day: bool = True,
) -> SkyState:
    """Compute the sky for a place and time.

    Args:
        latitude, longitude: Degrees; when either is None no sun or moon is drawn.
        when: Moment to evaluate (defaults to now).
        force_night: Fix elevation at NIGHT_ELEVATION with the moon high in the sky.
        fallback_is_day: Gradient to use when coordinates are missing.
    """
    if force_night:
        # Solar midnight: the mirrored moon sits in the middle of the arc
        return _state(NIGHT_ELEVATION, 180.0 if latitude is not None and longitude is not None else None)

    if latitude is None or longitude is None:
        return _state(DAY_ELEVATION if fallback_is_day else NIGHT_ELEVATION, None)

    if when is None:
        when = datetime.now(timezone.utc)
    elevation, hour_angle = solar_position(latitude, longitude, when)
    return _state(elevation, hour_angle)
