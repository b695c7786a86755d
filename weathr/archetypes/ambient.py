"""Things that drift across the sky: clouds, fog banks, birds and airplanes."""

from __future__ import annotations

import numpy as np

from ..simulation.particle import Bounds, ParticleKind
from .base import ParticleArchetype, edge_x


class DrifterArchetype(ParticleArchetype):
    """
    Fixed-count movers that enter from the upwind edge of a horizontal band.

    At most one new drifter enters per tick, with probability
    ``spawn_rate * dt``, so they arrive spaced out rather than in a column.
    """

    default_velocity = {"vx": (0.5, 1.5), "vy": (0.0, 0.0)}

    def spawn_count(self, pool, spec, bounds, dt, rng, initial):
        deficit = max(self.target(spec, bounds) - pool.count, 0)
        if initial or deficit == 0:
            return deficit
        return 1 if rng.random() < self.spawn_rate * dt else 0

    def positions(self, count, bounds: Bounds, rng: np.random.Generator, initial: bool, heading):
        top, bottom = self.band_rows(bounds)
        if initial:
            x = rng.uniform(0.0, bounds.width, size=count)
            x = np.minimum(x, np.nextafter(float(bounds.width), 0.0))
        else:
            x = edge_x(count, bounds, heading)
        y = rng.uniform(top, bottom, size=count)
        y = np.minimum(y, np.nextafter(float(bounds.height), 0.0))
        return x, y


class Cloud(DrifterArchetype):
    kind = ParticleKind.CLOUD
    default_cap = 8
    default_color = (212, 216, 224)


class FogBank(DrifterArchetype):
    kind = ParticleKind.FOG_BANK
    default_cap = 10
    default_color = (156, 164, 174)


class Bird(DrifterArchetype):
    """Birds fly either way; half of them head left."""
    kind = ParticleKind.BIRD
    default_cap = 5
    default_velocity = {"vx": (3.0, 5.0), "vy": (-0.2, 0.2)}
    default_color = (48, 56, 64)

    def velocities(self, count, spec, rng):
        vx, vy = super().velocities(count, spec, rng)
        direction = np.where(rng.random(count) < 0.5, -1.0, 1.0)
        return vx * direction, vy


class Airplane(DrifterArchetype):
    """Crosses the grid on a straight diagonal and leaves.

    Airplanes always start from a side edge, even on the first fill.
    """
    kind = ParticleKind.AIRPLANE
    default_cap = 1
    default_velocity = {"vx": (6.0, 9.0), "vy": (0.3, 0.8)}
    default_color = (192, 200, 208)

    def velocities(self, count, spec, rng):
        vx, vy = super().velocities(count, spec, rng)
        direction = np.where(rng.random(count) < 0.5, -1.0, 1.0)
        climb = np.where(rng.random(count) < 0.5, -1.0, 1.0)
        return vx * direction, vy * climb

    def speed_scale(self, spec) -> float:
        return 1.0

    def spawn_count(self, pool, spec, bounds, dt, rng, initial):
        return super().spawn_count(pool, spec, bounds, dt, rng, False)

    def positions(self, count, bounds, rng, initial, heading):
        return super().positions(count, bounds, rng, False, heading)
