"""Lightning: bolts that flash, hold and expire without moving."""

from __future__ import annotations

import numpy as np

from ..simulation.particle import Bounds, Particle, ParticleKind, Phase
from .base import ParticleArchetype, _parse_color


class Lightning(ParticleArchetype):
    kind = ParticleKind.LIGHTNING_FLASH
    default_cap = 2
    default_color = (255, 247, 176)
    settle_time = 0.0

    def _apply_config(self) -> None:
        super()._apply_config()
        self.rate = float(self.config.get("rate", 0.9))
        self.hold = float(self.config.get("hold", 0.2))
        self.flash_color = _parse_color(self.config.get("flash_color"), (216, 216, 255))
        # Bolts are anchored to the sky; wind never moves them
        self.wind_drift = 0.0

    def target(self, spec, bounds: Bounds) -> int:
        if spec is None or spec.intensity <= 0.0 or bounds.empty:
            return 0
        return self.cap

    def spawn_count(self, pool, spec, bounds, dt, rng, initial):
        if pool.count >= self.target(spec, bounds):
            return 0
        chance = self.rate * spec.intensity * dt
        return 1 if rng.random() < chance else 0

    def velocities(self, count, spec, rng):
        return np.zeros(count), np.zeros(count)

    def speed_scale(self, spec) -> float:
        return 0.0

    def positions(self, count, bounds: Bounds, rng: np.random.Generator, initial: bool, heading):
        x = rng.uniform(0.0, bounds.width, size=count)
        x = np.minimum(x, np.nextafter(float(bounds.width), 0.0))
        return x, np.zeros(count)

    def lifetime(self, count, rng):
        return self.hold

    @staticmethod
    def is_flashing(particle: Particle) -> bool:
        """Bolts brighten the sky until they start expiring."""
        return particle.phase is not Phase.EXPIRING
