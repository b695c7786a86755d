"""Configuration file and the per-session resolved settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Iterable, Optional

from .core.conditions import WeatherCondition, parse_condition
from .core.scene import ExtraEffect
from .services.location import DEFAULT_LATITUDE, DEFAULT_LONGITUDE
from .services.weather import Units

logger = logging.getLogger(__name__)

DEFAULT_FPS = 15
MIN_FPS = 1
MAX_FPS = 60


def default_config_path(env: Optional[dict] = None) -> Path:
    """``$XDG_CONFIG_HOME/weathr/config.json``, falling back to ``~/.config``."""
    env = os.environ if env is None else env
    base = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "weathr" / "config.json"


def _known(cls, d: dict) -> dict:
    """Keep only the keys ``cls`` declares."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in d.items() if k in names}


_TRUE = ("true", "yes", "on", "1")
_FALSE = ("false", "no", "off", "0")


def parse_flag(value, name: str, default: bool = False) -> bool:
    """Strict boolean: JSON booleans, 0/1 and the usual words; anything else is the default."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE:
            return True
        if word in _FALSE:
            return False
    logger.warning("Invalid value %r for %s, using %s", value, name, default)
    return default


def parse_seed(value) -> Optional[int]:
    """An integer seed, or None for a random one."""
    if value is None:
        return None
    if isinstance(value, bool):
        logger.warning("Invalid seed %r, using a random seed", value)
        return None
    try:
        seed = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid seed %r, using a random seed", value)
        return None
    if isinstance(value, float) and seed != value:
        logger.warning("Invalid seed %r, using a random seed", value)
        return None
    if seed < 0:
        logger.warning("Negative seed %d, using a random seed", seed)
        return None
    return seed


@dataclass
class LocationConfig:
    """Where to show the weather for."""
    latitude: float = DEFAULT_LATITUDE
    longitude: float = DEFAULT_LONGITUDE
    auto: bool = False  # look the location up by IP at startup
    hide: bool = False  # keep the coordinates off the HUD

    @classmethod
    def from_dict(cls, d: dict) -> "LocationConfig":
        if not isinstance(d, dict):
            return cls()
        config = cls(**_known(cls, d))
        try:
            config.latitude = float(config.latitude)
            config.longitude = float(config.longitude)
        except (TypeError, ValueError):
            logger.warning("Invalid coordinates in config, using defaults")
            config.latitude, config.longitude = DEFAULT_LATITUDE, DEFAULT_LONGITUDE
        if not (-90.0 <= config.latitude <= 90.0 and -180.0 <= config.longitude <= 180.0):
            logger.warning("Coordinates out of range in config, using defaults")
            config.latitude, config.longitude = DEFAULT_LATITUDE, DEFAULT_LONGITUDE
        config.auto = parse_flag(config.auto, "location.auto")
        config.hide = parse_flag(config.hide, "location.hide")
        return config


@dataclass
class HudConfig:
    hide: bool = False

    @classmethod
    def from_dict(cls, d: dict) -> "HudConfig":
        if not isinstance(d, dict):
            return cls()
        config = cls(**_known(cls, d))
        config.hide = parse_flag(config.hide, "hud.hide")
        return config


@dataclass
class UnitsConfig:
    temperature: str = "celsius"
    wind_speed: str = "kmh"
    precipitation: str = "mm"

    @classmethod
    def from_dict(cls, d: dict) -> "UnitsConfig":
        if not isinstance(d, dict):
            return cls()
        return cls(**_known(cls, d))

    def to_units(self) -> Units:
        return Units(self.temperature, self.wind_speed, self.precipitation)


@dataclass
class DisplayConfig:
    """Animation settings."""
    fps: int = DEFAULT_FPS
    seed: Optional[int] = None
    airplanes: bool = False
    leaves: bool = False

    # Extra element directory layered over the packaged art and particle tuning
    elements_dir: Optional[str] = None
    watch_elements: bool = False

    @classmethod
    def from_dict(cls, d: dict) -> "DisplayConfig":
        if not isinstance(d, dict):
            return cls()
        config = cls(**_known(cls, d))
        config.fps = clamp_fps(config.fps)
        config.seed = parse_seed(config.seed)
        config.airplanes = parse_flag(config.airplanes, "display.airplanes")
        config.leaves = parse_flag(config.leaves, "display.leaves")
        config.watch_elements = parse_flag(config.watch_elements, "display.watch_elements")
        if config.elements_dir is not None and not isinstance(config.elements_dir, str):
            logger.warning("Invalid elements_dir %r, ignoring", config.elements_dir)
            config.elements_dir = None
        return config


@dataclass
class WeathrConfig:
    """Main configuration combining all sections."""
    location: LocationConfig = field(default_factory=LocationConfig)
    hud: HudConfig = field(default_factory=HudConfig)
    units: UnitsConfig = field(default_factory=UnitsConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    def to_dict(self) -> dict:
        return {
            "location": asdict(self.location),
            "hud": asdict(self.hud),
            "units": asdict(self.units),
            "display": asdict(self.display),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WeathrConfig":
        if not isinstance(d, dict):
            return cls()
        return cls(
            location=LocationConfig.from_dict(d.get("location", {})),
            hud=HudConfig.from_dict(d.get("hud", {})),
            units=UnitsConfig.from_dict(d.get("units", {})),
            display=DisplayConfig.from_dict(d.get("display", {})),
        )

    def save(self, path: Optional[Path] = None) -> None:
        path = path or default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        temp = path.with_suffix(".tmp")
        temp.write_text(json.dumps(self.to_dict(), indent=2))
        temp.replace(path)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "WeathrConfig":
        """Load from ``path``; a missing or unreadable file gives the defaults."""
        path = path or default_config_path()
        try:
            if path.exists():
                return cls.from_dict(json.loads(path.read_text()))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Could not read config %s: %s; using defaults", path, exc)
            return cls()
        logger.debug("No config file at %s, using defaults", path)
        return cls()


@dataclass(frozen=True)
class ResolvedConfig:
    """Settings for one session: config file merged with command-line flags."""
    hide_hud: bool = False
    hide_location: bool = False
    latitude: Optional[float] = DEFAULT_LATITUDE
    longitude: Optional[float] = DEFAULT_LONGITUDE
    auto_location: bool = False
    units: Units = field(default_factory=Units)
    fps: int = DEFAULT_FPS
    seed: Optional[int] = None
    airplanes: bool = False
    leaves: bool = False
    elements_dir: Optional[str] = None
    watch_elements: bool = False

    @property
    def extras(self) -> frozenset:
        extras = set()
        if self.leaves:
            extras.add(ExtraEffect.LEAVES)
        if self.airplanes:
            extras.add(ExtraEffect.AIRPLANES)
        return frozenset(extras)

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.fps


@dataclass(frozen=True)
class SimulateOverride:
    """``--simulate``: fixed weather instead of the live feed."""
    condition: WeatherCondition = WeatherCondition.CLEAR
    force_night: bool = False
    extras: frozenset = frozenset()

    @classmethod
    def create(cls, condition, force_night: bool = False, extras: Iterable = ()) -> "SimulateOverride":
        return cls(parse_condition(condition), bool(force_night), frozenset(extras))


def clamp_fps(fps) -> int:
    try:
        fps = int(fps)
    except (TypeError, ValueError):
        logger.warning("Invalid fps %r, using %d", fps, DEFAULT_FPS)
        return DEFAULT_FPS
    if not MIN_FPS <= fps <= MAX_FPS:
        clamped = min(max(fps, MIN_FPS), MAX_FPS)
        logger.warning("fps %d out of range, using %d", fps, clamped)
        return clamped
    return fps


def resolve(
    config: WeathrConfig,
    *,
    hide_hud: Optional[bool] = None,
    hide_location: Optional[bool] = None,
    fps: Optional[int] = None,
    seed: Optional[int] = None,
    airplanes: Optional[bool] = None,
    leaves: Optional[bool] = None,
    auto_location: Optional[bool] = None,
) -> ResolvedConfig:
    """Merge flags over the config file. ``None`` means "flag not given"."""

    def pick(flag, value):
        return value if flag is None else flag

    return ResolvedConfig(
        hide_hud=bool(pick(hide_hud, config.hud.hide)),
        hide_location=bool(pick(hide_location, config.location.hide)),
        latitude=config.location.latitude,
        longitude=config.location.longitude,
        auto_location=bool(pick(auto_location, config.location.auto)),
        units=config.units.to_units(),
        fps=clamp_fps(pick(fps, config.display.fps)),
        seed=parse_seed(pick(seed, config.display.seed)),
        airplanes=bool(pick(airplanes, config.display.airplanes)),
        leaves=bool(pick(leaves, config.display.leaves)),
        elements_dir=config.display.elements_dir,
        watch_elements=bool(config.display.watch_elements),
    )
