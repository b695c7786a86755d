"""
Base classes for archetypes.

An archetype is the runtime behavior of one particle kind: how many should
be on screen, where new ones appear, how fast they move and what they look
like. Tuning comes from ``elements/archetypes/<kind>.yaml`` and is reloaded
when the file changes.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.colors import RGB, ColorDef
from ..core.scene import LayerSpec
from ..elements.registry import ElementRegistry
from ..simulation.particle import Bounds, Particle, ParticleKind
from ..simulation.pool import ParticlePool

logger = logging.getLogger(__name__)

_SEED_LIMIT = 2 ** 31


@dataclass(frozen=True)
class Shape:
    """Multi-character pattern for a particle."""
    pattern: tuple[str, ...]
    width: int
    height: int

    @classmethod
    def parse(cls, text: str) -> "Shape":
        """Parse text into a shape. Each line becomes a row."""
        if not text:
            raise ValueError("Shape text cannot be empty")
        if "\n" in text:
            pattern = tuple(line for line in text.split("\n") if line)
        else:
            pattern = (text,)
        height = len(pattern)
        width = max(len(line) for line in pattern) if pattern else 0
        return cls(pattern=pattern, width=width, height=height)

    def cells(self):
        """Yield (dx, dy, char) for every non-blank cell."""
        for dy, row in enumerate(self.pattern):
            for dx, char in enumerate(row):
                if char != " ":
                    yield dx, dy, char


class Archetype(ABC):
    """
    Base class for behaviors configured from the element registry.

    Subclasses must implement:
    - _on_element_change(): Handle hot-reload notifications
    """

    def __init__(self, registry: ElementRegistry, config_name: str):
        """
        Args:
            registry: Element registry for loading definitions
            config_name: Name of archetype config in elements/archetypes/
        """
        self.registry = registry
        self.config_name = config_name
        self._load_config()
        registry.on_change(self._handle_change)

    def _load_config(self) -> None:
        """Load archetype configuration from registry."""
        self.config = self.registry.get("archetypes", self.config_name) or {}
        if not self.config:
            logger.warning("No archetype config for %r, using defaults", self.config_name)

    def _handle_change(self, kind: str, name: str) -> None:
        if kind == "archetypes" and name == self.config_name:
            self._load_config()
        self._on_element_change(kind, name)

    def detach(self) -> None:
        """Stop following registry changes."""
        self.registry.remove_listener(self._handle_change)

    @abstractmethod
    def _on_element_change(self, kind: str, name: str) -> None:
        """
        Handle element change notification.

        Called when any element in the registry changes.
        Subclasses should check if the change is relevant and rebuild caches.
        """
        ...


def _range(value, default: tuple[float, float]) -> tuple[float, float]:
    try:
        low, high = (float(v) for v in value)
    except (TypeError, ValueError):
        return default
    return (low, high) if low <= high else (high, low)


def _parse_color(value, default: RGB) -> RGB:
    if isinstance(value, str):
        try:
            return ColorDef.from_hex(value).rgb
        except ValueError:
            logger.warning("Bad color %r, using default", value)
    return default


class ParticleArchetype(Archetype):
    """
    Behavior of one particle kind.

    The engine calls, once per tick and in this order: ``speed_scale``/
    ``wind_shift``/``wraps`` to advance the pool, then ``spawn_count`` and
    ``spawn`` to top it up. All randomness is drawn from the generator the
    engine passes in.
    """

    kind: ParticleKind

    # Defaults used when the YAML leaves a key out
    default_cap = 100
    default_velocity = {"vx": (0.0, 0.0), "vy": (0.0, 0.0)}
    default_color: RGB = (255, 255, 255)
    settle_time = 0.2
    # Folded back into the grid on resize instead of dropped
    wrap_enabled = False

    def __init__(self, registry: ElementRegistry):
        super().__init__(registry, self.kind.value)
        self._apply_config()

    def _on_element_change(self, kind: str, name: str) -> None:
        if kind == "archetypes" and name == self.config_name:
            self._apply_config()
            logger.info("Reloaded %s archetype", self.config_name)

    def _apply_config(self) -> None:
        """Derive runtime parameters from ``self.config``."""
        cfg = self.config
        self.cap = max(int(cfg.get("cap", self.default_cap)), 0)
        self.density = float(cfg.get("density", 0.0))
        self.count = int(cfg.get("count", 0))
        self.spawn_rate = float(cfg.get("spawn_rate", 0.0))
        self.speed_gain = float(cfg.get("speed_gain", 0.0))
        self.wind_drift = float(cfg.get("wind_drift", 0.0))
        self.animate = float(cfg.get("animate", 0.0))
        self.band = _range(cfg.get("band"), (0.0, 1.0))

        velocity = cfg.get("velocity") or {}
        self.vx_range = _range(velocity.get("vx"), self.default_velocity["vx"])
        self.vy_range = _range(velocity.get("vy"), self.default_velocity["vy"])

        sway = cfg.get("sway") or {}
        self.sway_amp = float(sway.get("amplitude", 0.0))
        self.sway_freq = float(sway.get("frequency", 0.0))

        self.color = _parse_color(cfg.get("color"), self.default_color)
        self.night_color = _parse_color(cfg.get("night_color"), self.color)
        self.colors = tuple(_parse_color(c, self.color) for c in cfg.get("colors") or ())

        shapes = []
        for text in cfg.get("glyphs") or ("*",):
            try:
                shapes.append(Shape.parse(str(text)))
            except ValueError:
                logger.warning("Skipping empty glyph in %s", self.config_name)
        self.shapes = tuple(shapes) or (Shape.parse("*"),)

    # -------------------------------------------------------------------------
    # Physics parameters
    # -------------------------------------------------------------------------

    def speed_scale(self, spec: Optional[LayerSpec]) -> float:
        """Velocity multiplier; heavier layers move faster."""
        intensity = spec.intensity if spec else 0.0
        return 1.0 + self.speed_gain * intensity

    def wind_shift(self, spec: Optional[LayerSpec]) -> float:
        """Horizontal drift (cells/s) added to every particle of the kind."""
        return (spec.wind_bias if spec else 0.0) * self.wind_drift

    def wraps(self, spec: Optional[LayerSpec]) -> bool:
        """Whether particles leaving the bottom edge re-enter at the top."""
        return False

    # -------------------------------------------------------------------------
    # Population
    # -------------------------------------------------------------------------

    def target(self, spec: Optional[LayerSpec], bounds: Bounds) -> int:
        """Population the layer intensity asks for (before the cap)."""
        if spec is None or spec.intensity <= 0.0 or bounds.empty:
            return 0
        if self.density > 0.0:
            return int(spec.intensity * bounds.area / self.density)
        return int(math.ceil(spec.intensity * self.count))

    def spawn_count(
        self,
        pool: ParticlePool,
        spec: Optional[LayerSpec],
        bounds: Bounds,
        dt: float,
        rng: np.random.Generator,
        initial: bool,
    ) -> int:
        """How many particles to spawn this tick. Defaults to filling the deficit."""
        return max(self.target(spec, bounds) - pool.count, 0)

    def spawn(
        self,
        pool: ParticlePool,
        count: int,
        spec: Optional[LayerSpec],
        bounds: Bounds,
        rng: np.random.Generator,
        first_serial: int,
        initial: bool,
    ) -> int:
        """Spawn up to ``count`` particles into ``pool``. Returns how many were added."""
        count = pool.reserve(count)
        if count == 0 or bounds.empty:
            return 0
        vx, vy = self.velocities(count, spec, rng)
        heading = vx * self.speed_scale(spec) + self.wind_shift(spec)
        x, y = self.positions(count, bounds, rng, initial, heading)
        seed = rng.integers(0, _SEED_LIMIT, size=count).astype(np.float64)
        sway = rng.uniform(0.0, 2.0 * np.pi, size=count) if self.sway_amp else 0.0
        serial = np.arange(first_serial, first_serial + count, dtype=np.float64)
        return pool.add(
            x, y, vx, vy, seed, serial,
            lifetime=self.lifetime(count, rng),
            sway=sway,
        )

    def velocities(self, count: int, spec: Optional[LayerSpec], rng: np.random.Generator):
        vx = rng.uniform(*self.vx_range, size=count)
        vy = rng.uniform(*self.vy_range, size=count)
        return vx, vy

    @abstractmethod
    def positions(self, count: int, bounds: Bounds, rng: np.random.Generator, initial: bool, heading: np.ndarray):
        """Spawn positions (x, y arrays) inside ``bounds``.

        ``heading`` is each new particle's net horizontal velocity, so movers can
        enter from the side they travel away from.
        """
        ...

    def lifetime(self, count: int, rng: np.random.Generator):
        """Lifetime in seconds (0 = until the particle leaves the grid)."""
        return 0.0

    def band_rows(self, bounds: Bounds) -> tuple[float, float]:
        """Vertical spawn band in rows, always a non-empty range inside the grid."""
        top = min(self.band[0] * bounds.height, bounds.height - 1)
        bottom = max(min(self.band[1] * bounds.height, bounds.height), top + 1)
        return max(top, 0.0), bottom

    # -------------------------------------------------------------------------
    # Appearance
    # -------------------------------------------------------------------------

    def shape_for(self, particle: Particle) -> Shape:
        """Glyph for a particle: fixed by its seed, cycling with age when animated."""
        frame = int(particle.age * self.animate) if self.animate else 0
        return self.shapes[(particle.seed + frame) % len(self.shapes)]

    def color_for(self, particle: Particle, is_day: bool = True) -> RGB:
        if self.colors:
            return self.colors[particle.seed % len(self.colors)]
        return self.color if is_day else self.night_color


def edge_x(count: int, bounds: Bounds, heading: np.ndarray) -> np.ndarray:
    """Entry column on the upwind edge: left for rightward movers, right otherwise."""
    right = np.nextafter(float(bounds.width), 0.0)
    return np.where(heading >= 0.0, 0.0, right)[:count]
