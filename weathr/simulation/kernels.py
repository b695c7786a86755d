"""
Numba JIT-compiled particle physics.

Every kernel works in place on one kind's arena (``data[field, i]`` for the
first ``n`` slots) and never draws random numbers, so a run is fully
determined by the spawns the engine feeds in.
"""

import numpy as np
from numba import njit

from .particle import AGE, FIELDS, LIFETIME, PHASE, SWAY, VX, VY, X, Y

_SPAWNING = 0.0
_ACTIVE = 1.0
_EXPIRING = 2.0


@njit(cache=True)
def advance(
    data: np.ndarray, n: int, dt: float,
    speed_scale: float, wind_shift: float,
    sway_amp: float, sway_freq: float,
):
    """Move particles by velocity * dt and age them."""
    for i in range(n):
        age = data[AGE, i]
        drift = data[VX, i] * speed_scale + wind_shift
        if sway_amp != 0.0:
            drift += sway_amp * np.sin(age * sway_freq + data[SWAY, i])
        data[X, i] += drift * dt
        data[Y, i] += data[VY, i] * speed_scale * dt
        data[AGE, i] = age + dt


@njit(cache=True)
def update_phases(data: np.ndarray, n: int, settle_time: float):
    """SPAWNING -> ACTIVE after ``settle_time``; anything past its lifetime -> EXPIRING."""
    for i in range(n):
        age = data[AGE, i]
        if data[PHASE, i] == _SPAWNING and age >= settle_time:
            data[PHASE, i] = _ACTIVE
        lifetime = data[LIFETIME, i]
        if lifetime > 0.0 and age >= lifetime:
            data[PHASE, i] = _EXPIRING


@njit(cache=True)
def wrap_bottom(data: np.ndarray, n: int, width: int, height: int):
    """Bring particles that fell past the bottom edge back in at the top.

    The column is scrambled so the same drops don't repeat the same path.
    """
    for i in range(n):
        y = data[Y, i]
        if y >= height:
            data[Y, i] = y % height
            data[X, i] = float((int(data[X, i]) * 13 + 7) % width)


@njit(cache=True)
def prune(data: np.ndarray, n: int, width: int, height: int, drop_expiring: bool) -> int:
    """Compact survivors to the front, keeping their order. Returns the new count."""
    write_idx = 0
    for i in range(n):
        x = data[X, i]
        y = data[Y, i]
        alive = x >= 0.0 and x < width and y >= 0.0 and y < height
        if drop_expiring and data[PHASE, i] == _EXPIRING:
            alive = False
        if alive:
            if write_idx != i:
                for f in range(FIELDS):
                    data[f, write_idx] = data[f, i]
            write_idx += 1
    return write_idx

