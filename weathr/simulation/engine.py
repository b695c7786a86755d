"""
Particle/ensemble engine - advances every active layer of a scene one tick at a time.

Each particle kind has its own dense arena (``ParticlePool``) and its own
behavior (``ParticleArchetype``). Per tick and per kind, in a fixed order:

1. prune particles that finished expiring or sit outside the grid
2. advance by velocity * dt, update phases, wrap continuous precipitation,
   drop whatever left the grid
3. spawn up to the population the layer intensity asks for

All randomness comes from one seeded ``numpy.random.Generator``, so the same
seed, descriptors and tick sequence always give the same snapshots.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..archetypes import ParticleArchetype, create_archetypes
from ..core.scene import SceneDescriptor
from ..elements.registry import ElementRegistry
from . import kernels
from .particle import AGE, PHASE, SEED, SERIAL, VX, VY, X, Y, Bounds, Particle, ParticleKind, Phase
from .pool import ParticlePool

logger = logging.getLogger(__name__)

# Longer gaps (a suspended process, a slow terminal) are simulated as one max-size step
MAX_DT = 0.25


class ParticleEngine:
    """
    Stateful simulation of every particle kind.

    Usage:
        engine = ParticleEngine(seed=42)
        engine.tick(descriptor, 1 / 15, Bounds(80, 24))
        for particle in engine.snapshot():
            ...
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        registry: Optional[ElementRegistry] = None,
        archetypes: Optional[dict[ParticleKind, ParticleArchetype]] = None,
    ):
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self._owns_archetypes = archetypes is None
        self.archetypes = archetypes if archetypes is not None else create_archetypes(registry)
        self.pools = {kind: ParticlePool(arch.cap) for kind, arch in self.archetypes.items()}
        self.bounds: Optional[Bounds] = None
        self.ticks = 0
        self._serial = 0
        self._primed: set[ParticleKind] = set()

    # -------------------------------------------------------------------------
    # Ticking
    # -------------------------------------------------------------------------

    def tick(self, descriptor: SceneDescriptor, dt: float, bounds: Bounds) -> None:
        """Advance the simulation by ``dt`` seconds on a grid of ``bounds``."""
        if bounds != self.bounds:
            self.resize(bounds)
        dt = min(max(float(dt), 0.0), MAX_DT)

        for kind in ParticleKind:
            archetype = self.archetypes.get(kind)
            if archetype is not None:
                self._tick_kind(kind, archetype, descriptor, dt, bounds)
        self.ticks += 1

    def _tick_kind(
        self,
        kind: ParticleKind,
        archetype: ParticleArchetype,
        descriptor: SceneDescriptor,
        dt: float,
        bounds: Bounds,
    ) -> None:
        pool = self.pools[kind]
        spec = descriptor.layer(kind.layer)

        # Hot-reloaded caps apply immediately
        if pool.cap != archetype.cap:
            pool.cap = archetype.cap
            pool.count = min(pool.count, pool.cap)

        # 1. prune
        pool.prune(bounds, drop_expiring=True)

        # 2. advance
        if pool.count:
            kernels.advance(
                pool.data, pool.count, dt,
                archetype.speed_scale(spec),
                archetype.wind_shift(spec),
                archetype.sway_amp, archetype.sway_freq,
            )
            kernels.update_phases(pool.data, pool.count, archetype.settle_time)
            if archetype.wraps(spec):
                kernels.wrap_bottom(pool.data, pool.count, bounds.width, bounds.height)
                # A lighter layer sheds the newest drops
                target = archetype.target(spec, bounds)
                if pool.count > target:
                    pool.count = target
            pool.prune(bounds, drop_expiring=False)

        # 3. spawn
        if spec is None or spec.intensity <= 0.0:
            if pool.count == 0:
                self._primed.discard(kind)
            return

        initial = kind not in self._primed
        count = archetype.spawn_count(pool, spec, bounds, dt, self.rng, initial)
        if count > 0:
            added = archetype.spawn(pool, count, spec, bounds, self.rng, self._serial, initial)
            self._serial += added
        self._primed.add(kind)

    # -------------------------------------------------------------------------
    # Resizing
    # -------------------------------------------------------------------------

    def resize(self, bounds: Bounds) -> None:
        """Fit every particle into a new grid.

        Precipitation is folded back into the new grid (it is spread evenly
        anyway); everything else that no longer fits is dropped.
        """
        old = self.bounds
        self.bounds = bounds
        for kind, pool in self.pools.items():
            if pool.count == 0:
                continue
            if bounds.empty:
                pool.clear()
                continue
            archetype = self.archetypes[kind]
            if archetype.wrap_enabled:
                xs = pool.column(X)
                ys = pool.column(Y)
                xs %= bounds.width
                ys %= bounds.height
                np.minimum(xs, np.nextafter(float(bounds.width), 0.0), out=xs)
                np.minimum(ys, np.nextafter(float(bounds.height), 0.0), out=ys)
            pool.prune(bounds, drop_expiring=False)
        if old is not None:
            logger.debug("Resized particle grid %dx%d -> %dx%d", old.width, old.height, bounds.width, bounds.height)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def snapshot(self) -> tuple[Particle, ...]:
        """Frozen copies of every live particle, oldest first."""
        particles = []
        for kind, pool in self.pools.items():
            n = pool.count
            if n == 0:
                continue
            d = pool.data
            for i in range(n):
                particles.append(Particle(
                    kind=kind,
                    x=float(d[X, i]),
                    y=float(d[Y, i]),
                    vx=float(d[VX, i]),
                    vy=float(d[VY, i]),
                    phase=Phase(int(d[PHASE, i])),
                    seed=int(d[SEED, i]),
                    age=float(d[AGE, i]),
                    serial=int(d[SERIAL, i]),
                ))
        particles.sort(key=lambda p: p.serial)
        return tuple(particles)

    def count(self, kind: ParticleKind) -> int:
        pool = self.pools.get(kind)
        return pool.count if pool else 0

    def counts(self) -> dict[ParticleKind, int]:
        return {kind: pool.count for kind, pool in self.pools.items()}

    def cap(self, kind: ParticleKind) -> int:
        pool = self.pools.get(kind)
        return pool.cap if pool else 0

    def clear(self) -> None:
        for pool in self.pools.values():
            pool.clear()
        self._primed.clear()

    def close(self) -> None:
        """Detach the archetypes this engine created from their registry."""
        if not self._owns_archetypes:
            return
        for archetype in self.archetypes.values():
            archetype.detach()
