"""Things that fall from the top edge: rain, snow, hail and autumn leaves."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..core.scene import LayerSpec
from ..simulation.particle import Bounds, ParticleKind
from .base import ParticleArchetype


class FallingArchetype(ParticleArchetype):
    """
    Population is ``intensity * grid area / density``.

    The first fill is scattered over the whole grid so the scene starts out
    full; later spawns enter along the top row.
    """

    default_velocity = {"vx": (0.0, 0.0), "vy": (10.0, 20.0)}
    default_density = 40.0

    def _apply_config(self) -> None:
        super()._apply_config()
        if self.density <= 0.0:
            self.density = self.default_density
        self.wrap_enabled = bool(self.config.get("wraps", True))

    def wraps(self, spec: Optional[LayerSpec]) -> bool:
        return self.wrap_enabled and spec is not None and spec.continuous

    def positions(self, count, bounds: Bounds, rng: np.random.Generator, initial: bool, heading):
        x = rng.uniform(0.0, bounds.width, size=count)
        top = bounds.height if initial else min(1.0, bounds.height)
        y = rng.uniform(0.0, top, size=count)
        return _inside(x, bounds.width), _inside(y, bounds.height)


def _inside(values: np.ndarray, limit: int) -> np.ndarray:
    """Clamp to [0, limit) (uniform() may return the upper bound after rounding)."""
    return np.minimum(values, np.nextafter(float(limit), 0.0))


class Raindrop(FallingArchetype):
    kind = ParticleKind.RAINDROP
    default_cap = 4000
    default_color = (111, 159, 216)


class Snowflake(FallingArchetype):
    kind = ParticleKind.SNOWFLAKE
    default_cap = 3000
    default_velocity = {"vx": (-0.5, 0.5), "vy": (2.5, 5.0)}
    default_density = 55.0
    default_color = (238, 242, 255)


class Hailstone(FallingArchetype):
    kind = ParticleKind.HAILSTONE
    default_cap = 600
    default_velocity = {"vx": (0.0, 0.0), "vy": (22.0, 30.0)}
    default_density = 140.0
    default_color = (223, 232, 240)


class Leaf(FallingArchetype):
    """Autumn leaves: slow, swaying, gone once they reach the ground."""
    kind = ParticleKind.LEAF
    default_cap = 80
    default_velocity = {"vx": (-0.4, 0.4), "vy": (1.5, 3.0)}
    default_density = 300.0
    default_color = (210, 105, 30)

    def wraps(self, spec: Optional[LayerSpec]) -> bool:
        return False
