"""
Frame compositor - turns the sky, the particle snapshot and the HUD into one frame.

Layers, back to front:

    sky        gradient background (brightened while lightning flashes)
    house      static art centered on the ground, claims its cells
    celestial  sun (animated rays) or moon on its arc, claims its cells
    particles  every particle glyph, never drawn onto claimed cells
    ground     foreground strip along the bottom edge
    hud        boxed weather readout, skipped when hidden
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..archetypes import Lightning, ParticleArchetype, Shape, create_archetypes
from ..core.colors import RGB, ColorDef, Palette, quantize, quantize_array
from ..core.sky import Celestial, SkyState
from ..core.terminal import TerminalCapability
from ..elements.registry import ElementRegistry, default_registry
from ..simulation.particle import Particle, ParticleKind
from .hud import HudData, HudStyle, paint_hud
from .pipeline import FrameBuffer, Layer, RenderPipeline

logger = logging.getLogger(__name__)

# Layer priorities
SKY = 0
HOUSE = 10
CELESTIAL = 20
PARTICLES = 30
GROUND = 40
HUD = 50

# How far the sky moves towards the flash color during a lightning strike
FLASH_STRENGTH = 0.45


@dataclass(frozen=True)
class ArtPiece:
    """Static ASCII art with a palette name per cell."""
    shape: Shape
    colors: tuple[tuple[Optional[str], ...], ...]
    solid: bool = False

    @property
    def width(self) -> int:
        return self.shape.width

    @property
    def height(self) -> int:
        return self.shape.height


def load_art(definition: Optional[dict], pattern: Optional[str] = None) -> Optional[ArtPiece]:
    """Build an ArtPiece from an ``elements/art`` definition.

    Cell colors come from ``char_colors`` first, then the row's entry in
    ``row_colors``, then ``color``.
    """
    if not definition:
        return None
    text = pattern if pattern is not None else definition.get("pattern", "")
    try:
        shape = Shape.parse(str(text).rstrip("\n"))
    except ValueError:
        logger.warning("Art definition has an empty pattern")
        return None

    default = definition.get("color", "white")
    row_colors = definition.get("row_colors") or []
    char_colors = definition.get("char_colors") or {}
    colors = []
    for dy, row in enumerate(shape.pattern):
        row_default = row_colors[dy] if dy < len(row_colors) else default
        colors.append(tuple(
            None if char == " " else char_colors.get(char, row_default)
            for char in row
        ))
    return ArtPiece(shape, tuple(colors), bool(definition.get("solid", False)))


@dataclass
class _FrameInputs:
    sky: SkyState
    particles: Sequence[Particle]
    hud: HudData
    capability: TerminalCapability
    location_visible: bool
    elapsed: float


class FrameCompositor:
    """
    Owns the layer pipeline and the static art; one ``compose`` per tick.

    Usage:
        compositor = FrameCompositor(80, 24)
        frame = compositor.compose(sky, engine.snapshot(), hud, capability)
    """

    def __init__(
        self,
        width: int,
        height: int,
        registry: Optional[ElementRegistry] = None,
        archetypes: Optional[dict[ParticleKind, ParticleArchetype]] = None,
    ):
        self.registry = registry if registry is not None else default_registry()
        self._owns_archetypes = archetypes is None
        self.archetypes = archetypes if archetypes is not None else create_archetypes(self.registry)
        self._colors: dict[tuple, int] = {}
        self._frame: Optional[_FrameInputs] = None

        self.pipeline = RenderPipeline(width, height)
        self.pipeline.add_layer("sky", SKY, self._render_sky)
        self.pipeline.add_layer("house", HOUSE, self._render_house, claims=True)
        self.pipeline.add_layer("celestial", CELESTIAL, self._render_celestial, claims=True)
        self.pipeline.add_layer("particles", PARTICLES, self._render_particles, respect_claims=True)
        self.pipeline.add_layer("ground", GROUND, self._render_ground, claims=True)
        self.pipeline.add_layer("hud", HUD, self._render_hud, claims=True)

        self._load_art()
        self.registry.on_change(self._on_element_change)

    @property
    def width(self) -> int:
        return self.pipeline.width

    @property
    def height(self) -> int:
        return self.pipeline.height

    def resize(self, width: int, height: int) -> None:
        """Reallocate the grid for a new terminal size."""
        self.pipeline.resize(max(width, 0), max(height, 0))

    # -------------------------------------------------------------------------
    # Art
    # -------------------------------------------------------------------------

    def _load_art(self) -> None:
        self.house = load_art(self.registry.get("art", "house"))
        self.moon = load_art(self.registry.get("art", "moon"))

        sun = self.registry.get("art", "sun") or {}
        self.sun_frame_time = float(sun.get("frame_time", 0.5))
        self.sun_frames = tuple(
            art for art in (load_art(sun, frame) for frame in sun.get("frames") or ()) if art
        )
        self.sun_core = str(sun.get("core", "O"))
        self.sun_rays_color = sun.get("rays_color", "sun_rays")

        ground = self.registry.get("art", "ground") or {}
        self.ground_rows = tuple(row for row in ground.get("rows") or () if row.get("pattern"))

    def _on_element_change(self, kind: str, name: str) -> None:
        if kind == "art":
            self._load_art()

    def close(self) -> None:
        """Stop following registry changes (and detach archetypes created here)."""
        self.registry.remove_listener(self._on_element_change)
        if self._owns_archetypes:
            for archetype in self.archetypes.values():
                archetype.detach()

    @property
    def ground_height(self) -> int:
        return len(self.ground_rows)

    def house_origin(self) -> Optional[tuple[int, int]]:
        """Top-left cell of the house, centered and standing on the ground strip."""
        if self.house is None:
            return None
        x = (self.width - self.house.width) // 2
        y = self.height - self.ground_height - self.house.height
        return x, y

    def sky_rows(self) -> int:
        """Rows available to the sun and moon (above the house)."""
        origin = self.house_origin()
        top = origin[1] if origin else self.height - self.ground_height
        return max(top, 0)

    # -------------------------------------------------------------------------
    # Composition
    # -------------------------------------------------------------------------

    def compose(
        self,
        sky: SkyState,
        particles: Sequence[Particle],
        hud: HudData,
        capability: TerminalCapability,
        hud_visible: bool = True,
        location_visible: bool = True,
        elapsed: float = 0.0,
    ) -> FrameBuffer:
        """Compose one frame.

        Args:
            sky: Sky for this tick
            particles: Engine snapshot
            hud: Current HUD strings
            capability: Terminal color depth the codes are quantized for
            hud_visible: Skip the HUD layer entirely when False
            location_visible: Omit the location line from the HUD
            elapsed: Seconds since start (drives the sun animation)
        """
        self._frame = _FrameInputs(sky, particles, hud, capability, location_visible, elapsed)
        enabled = None if hud_visible else set(self.pipeline.layers) - {"hud"}
        try:
            return self.pipeline.render(capability, enabled)
        finally:
            self._frame = None

    def _code(self, color: RGB | ColorDef) -> int:
        capability = self._frame.capability
        rgb = color.rgb if isinstance(color, ColorDef) else tuple(color)
        key = (rgb, capability)
        code = self._colors.get(key)
        if code is None:
            code = self._colors[key] = quantize(rgb, capability)
        return code

    def _palette_code(self, name: Optional[str]) -> int:
        name = (name or "white").lower()
        if name == "window":
            name = "window_day" if self._frame.sky.is_day else "window_lit"
        return self._code(Palette.get(name))

    def _flashing(self) -> bool:
        return any(
            p.kind is ParticleKind.LIGHTNING_FLASH and Lightning.is_flashing(p)
            for p in self._frame.particles
        )

    # -------------------------------------------------------------------------
    # Layer renderers
    # -------------------------------------------------------------------------

    def _render_sky(self, layer: Layer) -> None:
        frame = self._frame
        if layer.height == 0 or layer.width == 0:
            return
        rows = np.array([frame.sky.row_color(y, layer.height) for y in range(layer.height)], dtype=np.int32)
        if self._flashing():
            lightning = self.archetypes.get(ParticleKind.LIGHTNING_FLASH)
            flash = np.array(lightning.flash_color if lightning else (216, 216, 255), dtype=np.float64)
            rows = np.rint(rows + (flash - rows) * FLASH_STRENGTH).astype(np.int32)
        codes = quantize_array(rows, frame.capability)
        layer.paint_background(np.broadcast_to(codes[:, None], (layer.height, layer.width)))

    def _draw_art(self, layer: Layer, art: ArtPiece, x: int, y: int, color_for=None) -> None:
        for dy, row in enumerate(art.shape.pattern):
            if art.solid:
                stripped = row.strip()
                if stripped:
                    first = len(row) - len(row.lstrip())
                    layer.fill(x + first, y + dy, len(stripped), 1, " ", self._palette_code("wall"))
            for dx, char in enumerate(row):
                if char == " ":
                    continue
                name = art.colors[dy][dx]
                code = color_for(char) if color_for else self._palette_code(name)
                layer.put(x + dx, y + dy, char, code)

    def _render_house(self, layer: Layer) -> None:
        origin = self.house_origin()
        if origin is not None:
            self._draw_art(layer, self.house, *origin)

    def _render_celestial(self, layer: Layer) -> None:
        sky = self._frame.sky
        if sky.body is Celestial.SUN and self.sun_frames:
            index = int(self._frame.elapsed / self.sun_frame_time) % len(self.sun_frames) if self.sun_frame_time > 0 else 0
            art = self.sun_frames[index]
            core = self._palette_code("sun")
            rays = self._palette_code(self.sun_rays_color)

            def color_for(char):
                return core if char == self.sun_core else rays
        elif sky.body is Celestial.MOON and self.moon is not None:
            art = self.moon
            color_for = None
        else:
            return

        cell = sky.body_cell(layer.width, self.sky_rows(), art.width, art.height)
        if cell is not None:
            self._draw_art(layer, art, cell[0], cell[1], color_for)

    def _render_particles(self, layer: Layer) -> None:
        frame = self._frame
        is_day = frame.sky.is_day
        for particle in frame.particles:
            archetype = self.archetypes.get(particle.kind)
            if archetype is None:
                continue
            shape = archetype.shape_for(particle)
            code = self._code(archetype.color_for(particle, is_day))
            px, py = particle.cell
            for dx, dy, char in shape.cells():
                layer.put(px + dx, py + dy, char, code)

    def _render_ground(self, layer: Layer) -> None:
        is_day = self._frame.sky.is_day
        top = layer.height - self.ground_height
        for i, row in enumerate(self.ground_rows):
            pattern = str(row["pattern"])
            text = (pattern * (layer.width // len(pattern) + 1))[:layer.width]
            name = row.get("color", "grass") if is_day else row.get("night_color", row.get("color", "grass"))
            layer.put_text(0, top + i, text, self._palette_code(name))

    def _render_hud(self, layer: Layer) -> None:
        frame = self._frame
        style = HudStyle(
            text=self._code(Palette.HUD_TEXT),
            dim=self._code(Palette.HUD_DIM),
            error=self._code(Palette.HUD_ERROR),
            border=self._code(Palette.HUD_BORDER),
            background=self._code(Palette.HUD_BACKGROUND),
        )
        paint_hud(layer, frame.hud, style, frame.location_visible)
