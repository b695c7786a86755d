"""Centralized color definitions and terminal color quantization.

Colors are defined once as 24-bit RGB and reduced to whatever the terminal
can show at composition time:

- truecolor: packed 0xRRGGBB code
- 256-color: nearest entry of the xterm 6x6x6 cube or 24-step gray ramp
- no-color:  DEFAULT (-1), i.e. the terminal's own foreground/background
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

if TYPE_CHECKING:
    from .terminal import TerminalCapability

RGB = Tuple[int, int, int]

# Code meaning "leave the terminal default in place"
DEFAULT = -1


@dataclass(frozen=True)
class ColorDef:
    """Color definition with 8-bit RGB channels."""
    rgb: RGB

    @property
    def hex(self) -> str:
        """Get hex color string."""
        r, g, b = self.rgb
        return f"#{r:02x}{g:02x}{b:02x}"

    @classmethod
    def from_hex(cls, value: str) -> "ColorDef":
        value = value.lstrip("#")
        if len(value) != 6:
            raise ValueError(f"Bad hex color: {value!r}")
        return cls(tuple(int(value[i:i + 2], 16) for i in (0, 2, 4)))

    def lerp(self, other: "ColorDef", t: float) -> "ColorDef":
        """Linear interpolation towards ``other`` (t clamped to 0..1)."""
        return ColorDef(lerp_rgb(self.rgb, other.rgb, t))


def lerp_rgb(a: RGB, b: RGB, t: float) -> RGB:
    t = min(max(t, 0.0), 1.0)
    return tuple(int(round(x + (y - x) * t)) for x, y in zip(a, b))


# =============================================================================
# Palette
# =============================================================================

class Palette:
    """Colors for static art and the HUD. Particle colors live with their archetypes."""
    BLACK = ColorDef((0, 0, 0))
    WHITE = ColorDef((255, 255, 255))

    # House
    WALL = ColorDef((196, 164, 132))
    ROOF = ColorDef((168, 62, 50))
    CHIMNEY = ColorDef((120, 72, 56))
    WINDOW_DAY = ColorDef((150, 200, 230))
    WINDOW_LIT = ColorDef((255, 214, 120))
    DOOR = ColorDef((110, 70, 40))
    SMOKE = ColorDef((170, 170, 180))

    # Ground strip
    GRASS = ColorDef((86, 156, 64))
    GRASS_NIGHT = ColorDef((34, 70, 40))
    SOIL = ColorDef((102, 78, 52))

    # Celestial bodies
    SUN = ColorDef((255, 220, 80))
    SUN_RAYS = ColorDef((255, 170, 40))
    MOON = ColorDef((230, 230, 210))

    # HUD
    HUD_TEXT = ColorDef((0, 215, 255))
    HUD_DIM = ColorDef((120, 140, 160))
    HUD_BORDER = ColorDef((80, 110, 140))
    HUD_ERROR = ColorDef((255, 110, 90))
    HUD_BACKGROUND = ColorDef((12, 16, 28))

    @classmethod
    def get(cls, name: str, default: Optional[ColorDef] = None) -> ColorDef:
        """Look up a palette entry by (case-insensitive) attribute name."""
        value = getattr(cls, name.upper(), None)
        if isinstance(value, ColorDef):
            return value
        return default if default is not None else cls.WHITE


# =============================================================================
# Quantization
# =============================================================================

# xterm 256-color cube channel levels (indices 16-231)
CUBE_LEVELS = (0, 95, 135, 175, 215, 255)

# Nearest cube level index for every 8-bit channel value (ties go to the lower level)
_CUBE_INDEX = tuple(
    min(range(len(CUBE_LEVELS)), key=lambda i: abs(v - CUBE_LEVELS[i]))
    for v in range(256)
)
_CUBE_INDEX_ARRAY = np.array(_CUBE_INDEX, dtype=np.int32)
_CUBE_LEVELS_ARRAY = np.array(CUBE_LEVELS, dtype=np.int32)


def _clamp8(v) -> int:
    return max(0, min(255, int(v)))


def _gray_index(total: int) -> int:
    """Nearest step of the gray ramp (8, 18, ..., 238) for a channel sum."""
    return max(0, min(23, (total - 24 + 15) // 30))


def rgb_to_ansi256(rgb: RGB) -> int:
    """Map an RGB triple to the nearest xterm-256 index (cube or gray ramp)."""
    r, g, b = (_clamp8(c) for c in rgb)
    ri, gi, bi = _CUBE_INDEX[r], _CUBE_INDEX[g], _CUBE_INDEX[b]
    cr, cg, cb = CUBE_LEVELS[ri], CUBE_LEVELS[gi], CUBE_LEVELS[bi]

    gray = _gray_index(r + g + b)
    gv = 8 + gray * 10

    cube_dist = (r - cr) ** 2 + (g - cg) ** 2 + (b - cb) ** 2
    gray_dist = (r - gv) ** 2 + (g - gv) ** 2 + (b - gv) ** 2
    if cube_dist <= gray_dist:
        return 16 + 36 * ri + 6 * gi + bi
    return 232 + gray


def ansi256_to_rgb(index: int) -> RGB:
    """Approximate RGB of an xterm-256 cube or gray entry."""
    if index >= 232:
        v = 8 + (index - 232) * 10
        return (v, v, v)
    if index >= 16:
        index -= 16
        return (CUBE_LEVELS[index // 36], CUBE_LEVELS[(index // 6) % 6], CUBE_LEVELS[index % 6])
    return (0, 0, 0)


def pack_rgb(rgb: RGB) -> int:
    r, g, b = (_clamp8(c) for c in rgb)
    return (r << 16) | (g << 8) | b


def unpack_rgb(code: int) -> RGB:
    return ((code >> 16) & 0xFF, (code >> 8) & 0xFF, code & 0xFF)


def quantize(color: RGB | ColorDef, capability: "TerminalCapability") -> int:
    """Reduce a color to the code the compositor stores for ``capability``.

    Total over every input (channels are clamped to 0..255) and deterministic.
    """
    from .terminal import TerminalCapability

    rgb = color.rgb if isinstance(color, ColorDef) else color
    if capability is TerminalCapability.TRUECOLOR:
        return pack_rgb(rgb)
    if capability is TerminalCapability.ANSI_256:
        return rgb_to_ansi256(rgb)
    return DEFAULT


def quantize_array(rgb: np.ndarray, capability: "TerminalCapability") -> np.ndarray:
    """Vectorized ``quantize`` over an (..., 3) array of channels."""
    from .terminal import TerminalCapability

    channels = np.clip(np.asarray(rgb, dtype=np.int32), 0, 255)
    r, g, b = channels[..., 0], channels[..., 1], channels[..., 2]

    if capability is TerminalCapability.TRUECOLOR:
        return (r << 16) | (g << 8) | b
    if capability is not TerminalCapability.ANSI_256:
        return np.full(channels.shape[:-1], DEFAULT, dtype=np.int32)

    ri, gi, bi = _CUBE_INDEX_ARRAY[r], _CUBE_INDEX_ARRAY[g], _CUBE_INDEX_ARRAY[b]
    cr, cg, cb = _CUBE_LEVELS_ARRAY[ri], _CUBE_LEVELS_ARRAY[gi], _CUBE_LEVELS_ARRAY[bi]

    gray = np.clip((r + g + b - 24 + 15) // 30, 0, 23)
    gv = 8 + gray * 10

    cube_dist = (r - cr) ** 2 + (g - cg) ** 2 + (b - cb) ** 2
    gray_dist = (r - gv) ** 2 + (g - gv) ** 2 + (b - gv) ** 2
    cube_code = 16 + 36 * ri + 6 * gi + bi
    return np.where(cube_dist <= gray_dist, cube_code, 232 + gray).astype(np.int32)
