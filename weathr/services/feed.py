"""Weather producers that publish into the render loop's latest-value channel."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

import requests

from ..core.channel import LatestValue
from ..core.conditions import WeatherCondition
from ..widget.hud import HudData
from .location import GeoLocation, lookup_location
from .weather import WeatherObservation, fetch_observation, format_coordinates, format_hud

if TYPE_CHECKING:
    from ..config import ResolvedConfig, SimulateOverride

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 300.0

# Sample readings shown in simulation mode
SIMULATED_TEMPERATURE = 20.0
SIMULATED_APPARENT_TEMPERATURE = 19.0
SIMULATED_HUMIDITY = 65.0
SIMULATED_WIND_SPEED = 10.0
SIMULATED_WIND_DIRECTION = 180.0
SIMULATED_PRECIPITATION = 2.5
_WET_CONDITIONS = (WeatherCondition.RAIN, WeatherCondition.DRIZZLE, WeatherCondition.RAIN_SHOWERS)


@dataclass(frozen=True)
class FeedUpdate:
    """One publication. ``observation`` is None when only the HUD status changed."""
    observation: Optional[WeatherObservation]
    hud: HudData
    generation: int = 0


class WeatherFeed:
    """
    Background refresher for live weather.

    Fetches immediately, then every ``interval`` seconds, on a daemon thread.
    Each request gets a generation number; a result whose generation was
    superseded by ``refresh()`` while it was in flight is dropped.
    Failures keep the last observation and only change the HUD status line.
    """

    def __init__(
        self,
        config: "ResolvedConfig",
        channel: LatestValue,
        interval: float = REFRESH_INTERVAL,
        fetch: Callable[..., WeatherObservation] = fetch_observation,
        locate: Callable[[], Optional[GeoLocation]] = lookup_location,
    ):
        self.config = config
        self.channel = channel
        self.interval = interval
        self._fetch = fetch
        self._locate = locate

        # (latitude, longitude), replaced as one tuple so readers never see a mixed pair
        self.coordinates: tuple = (config.latitude, config.longitude)
        self._located = not config.auto_location

        self._lock = threading.Lock()
        self._generation = 0
        self._last_hud: Optional[HudData] = None
        self._wake = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def latitude(self) -> Optional[float]:
        return self.coordinates[0]

    @property
    def longitude(self) -> Optional[float]:
        return self.coordinates[1]

    def location_label(self) -> str:
        latitude, longitude = self.coordinates
        if latitude is None or longitude is None:
            return ""
        return format_coordinates(latitude, longitude)

    def start(self) -> None:
        if self._thread is not None:
            return
        self.channel.publish(FeedUpdate(None, HudData.loading(self.location_label())))
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="weather-feed", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def refresh(self) -> int:
        """Request a fetch now; results of older requests are discarded."""
        with self._lock:
            self._generation += 1
            generation = self._generation
        self._wake.set()
        return generation

    def _run(self) -> None:
        while not self._stop.is_set():
            with self._lock:
                self._generation += 1
                generation = self._generation
            self.fetch_once(generation)
            self._wake.wait(self.interval)
            self._wake.clear()

    def resolve_location(self) -> None:
        """Apply the IP lookup once, when auto location is on."""
        if self._located:
            return
        self._located = True
        found = self._locate()
        if found is not None:
            self.coordinates = (found.latitude, found.longitude)
        else:
            logger.info("Keeping configured location %s", self.location_label())

    def fetch_once(self, generation: Optional[int] = None) -> Optional[FeedUpdate]:
        """Fetch and publish one update. Returns what was published (None if superseded)."""
        if generation is None:
            generation = self.generation
        self.resolve_location()
        latitude, longitude = self.coordinates
        label = self.location_label()

        try:
            observation = self._fetch(latitude, longitude, self.config.units, label)
        except requests.RequestException as exc:
            logger.warning("Error fetching weather: %s", exc)
            base = self._last_hud or HudData(location=label)
            update = FeedUpdate(None, base.with_status(f"Error fetching weather: {exc}", error=True), generation)
        else:
            hud = format_hud(observation, self.config.units)
            update = FeedUpdate(observation, hud, generation)

        with self._lock:
            if generation < self._generation:
                logger.debug("Dropping superseded weather result (generation %d < %d)", generation, self._generation)
                return None
            if update.observation is not None:
                self._last_hud = update.hud
        self.channel.publish(update)
        return update


def simulated_observation(override: "SimulateOverride", location_label: str = "") -> WeatherObservation:
    """Fixed sample readings for ``--simulate``."""
    condition = override.condition
    return WeatherObservation(
        condition=condition,
        is_day=not override.force_night,
        temperature=SIMULATED_TEMPERATURE,
        apparent_temperature=SIMULATED_APPARENT_TEMPERATURE,
        humidity=SIMULATED_HUMIDITY,
        wind_speed=SIMULATED_WIND_SPEED,
        wind_direction=SIMULATED_WIND_DIRECTION,
        precipitation=SIMULATED_PRECIPITATION if condition in _WET_CONDITIONS else 0.0,
        location_label=location_label,
    )


class SimulatedFeed:
    """Publishes one simulated observation; no network, no thread."""

    def __init__(self, config: "ResolvedConfig", channel: LatestValue, override: "SimulateOverride"):
        self.config = config
        self.channel = channel
        self.override = override

    def start(self) -> None:
        label = ""
        if self.config.latitude is not None and self.config.longitude is not None:
            label = format_coordinates(self.config.latitude, self.config.longitude)
        observation = simulated_observation(self.override, label)
        logger.info("Simulating %s", observation.condition.value)
        self.channel.publish(FeedUpdate(observation, format_hud(observation, self.config.units)))

    def stop(self) -> None:
        pass
