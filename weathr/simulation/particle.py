"""Particle records and the arena field layout."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

from ..core.scene import LayerKind


class ParticleKind(Enum):
    RAINDROP = "raindrop"
    SNOWFLAKE = "snowflake"
    HAILSTONE = "hailstone"
    LIGHTNING_FLASH = "lightning"
    AIRPLANE = "airplane"
    LEAF = "leaf"
    CLOUD = "cloud"
    FOG_BANK = "fog"
    BIRD = "bird"

    @property
    def layer(self) -> LayerKind:
        """Scene layer that drives this kind."""
        return _LAYER_FOR_KIND[self]


_LAYER_FOR_KIND = {
    ParticleKind.RAINDROP: LayerKind.RAIN,
    ParticleKind.SNOWFLAKE: LayerKind.SNOW,
    ParticleKind.HAILSTONE: LayerKind.HAIL,
    ParticleKind.LIGHTNING_FLASH: LayerKind.LIGHTNING,
    ParticleKind.AIRPLANE: LayerKind.AIRPLANES,
    ParticleKind.LEAF: LayerKind.LEAVES,
    ParticleKind.CLOUD: LayerKind.CLOUDS,
    ParticleKind.FOG_BANK: LayerKind.FOG,
    ParticleKind.BIRD: LayerKind.BIRDS,
}


class Phase(IntEnum):
    SPAWNING = 0
    ACTIVE = 1
    EXPIRING = 2


# Rows of the (FIELDS, capacity) arena array
X = 0
Y = 1
VX = 2
VY = 3
AGE = 4
LIFETIME = 5   # seconds; 0 means no age limit
PHASE = 6
SEED = 7
SERIAL = 8
SWAY = 9       # per-particle sway phase offset (radians)
FIELDS = 10


@dataclass(frozen=True)
class Bounds:
    """Grid size in cells."""
    width: int
    height: int

    def __post_init__(self):
        object.__setattr__(self, "width", max(int(self.width), 0))
        object.__setattr__(self, "height", max(int(self.height), 0))

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def contains(self, x: float, y: float) -> bool:
        return 0.0 <= x < self.width and 0.0 <= y < self.height


@dataclass(frozen=True)
class Particle:
    """Read-only copy of one particle, as handed out by ``ParticleEngine.snapshot``."""
    kind: ParticleKind
    x: float
    y: float
    vx: float
    vy: float
    phase: Phase
    seed: int
    age: float
    serial: int

    @property
    def cell(self) -> tuple[int, int]:
        return int(self.x), int(self.y)
