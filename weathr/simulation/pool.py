"""Dense per-kind particle storage."""

from __future__ import annotations

import numpy as np

from . import kernels
from .particle import AGE, FIELDS, LIFETIME, PHASE, SEED, SERIAL, SWAY, VX, VY, X, Y, Bounds, Phase


class ParticlePool:
    """
    One kind's particles in a single (FIELDS, capacity) float64 array.

    Live particles occupy slots ``[0, count)`` in spawn order; pruning
    compacts survivors to the front, so freed slots at the tail are reused
    by the next spawn. Capacity doubles on demand up to ``cap``.
    """

    def __init__(self, cap: int, capacity: int = 64):
        self.cap = max(int(cap), 0)
        self.data = np.zeros((FIELDS, max(min(capacity, self.cap), 1)), dtype=np.float64)
        self.count = 0

    @property
    def capacity(self) -> int:
        return self.data.shape[1]

    @property
    def free(self) -> int:
        return self.cap - self.count

    def _grow_arrays(self) -> None:
        """Double array capacity."""
        old_size = self.capacity
        new = np.zeros((FIELDS, old_size * 2), dtype=np.float64)
        new[:, :old_size] = self.data
        self.data = new

    def reserve(self, count: int) -> int:
        """Make room for up to ``count`` new particles; returns how many fit under the cap."""
        count = max(0, min(int(count), self.free))
        while self.count + count > self.capacity:
            self._grow_arrays()
        return count

    def add(
        self,
        x: np.ndarray,
        y: np.ndarray,
        vx: np.ndarray,
        vy: np.ndarray,
        seed: np.ndarray,
        serial: np.ndarray,
        lifetime: float | np.ndarray = 0.0,
        sway: float | np.ndarray = 0.0,
    ) -> int:
        """Append particles in the SPAWNING phase. Anything over the cap is dropped."""
        count = self.reserve(len(x))
        if count == 0:
            return 0
        s = slice(self.count, self.count + count)
        d = self.data
        d[X, s] = x[:count]
        d[Y, s] = y[:count]
        d[VX, s] = vx[:count]
        d[VY, s] = vy[:count]
        d[AGE, s] = 0.0
        d[LIFETIME, s] = lifetime if np.isscalar(lifetime) else lifetime[:count]
        d[PHASE, s] = float(Phase.SPAWNING)
        d[SEED, s] = seed[:count]
        d[SERIAL, s] = serial[:count]
        d[SWAY, s] = sway if np.isscalar(sway) else sway[:count]
        self.count += count
        return count

    def prune(self, bounds: Bounds, drop_expiring: bool) -> None:
        if self.count == 0:
            return
        if bounds.empty:
            self.count = 0
            return
        self.count = kernels.prune(self.data, self.count, bounds.width, bounds.height, drop_expiring)

    def column(self, field: int) -> np.ndarray:
        """Live slice of one field (a view, not a copy)."""
        return self.data[field, :self.count]

    def clear(self) -> None:
        self.count = 0
