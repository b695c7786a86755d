"""
Layered rendering pipeline with vectorized compositing.

Each layer holds glyphs, foreground and (optionally) background color codes
plus a mask of the cells it wrote. Layers are composited by priority; a
layer overwrites exactly the cells it wrote. Layers marked ``claims`` also
reserve their cells, and layers marked ``respect_claims`` never draw onto
a reserved cell.
"""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from ..core.colors import DEFAULT
from ..core.terminal import TerminalCapability

# Space character code - background fill
SPACE = ord(" ")

# Owner code of cells no layer wrote
NO_OWNER = -1


class Layer:
    """A single rendering layer with char and color arrays and bounding box tracking."""

    def __init__(
        self,
        name: str,
        priority: int,
        width: int,
        height: int,
        render_func: Callable[["Layer"], None] | None = None,
        claims: bool = False,
        respect_claims: bool = False,
    ):
        self.name = name
        self.priority = priority
        self.width = width
        self.height = height
        self.render_func = render_func
        self.claims = claims
        self.respect_claims = respect_claims

        self.chars = np.full((height, width), SPACE, dtype=np.uint32)
        self.fg = np.full((height, width), DEFAULT, dtype=np.int32)
        self.bg = np.full((height, width), DEFAULT, dtype=np.int32)
        self.mask = np.zeros((height, width), dtype=bool)
        self.bg_mask = np.zeros((height, width), dtype=bool)

        # Bounding box of rendered content (None = empty layer)
        self._bbox: tuple[int, int, int, int] | None = None  # (x1, y1, x2, y2)

        # Cells reserved by lower layers (set by the pipeline before render_func runs)
        self.blocked: Optional[np.ndarray] = None

    def _expand_bbox_rect(self, x: int, y: int, w: int, h: int) -> None:
        if w <= 0 or h <= 0:
            return
        if self._bbox is None:
            self._bbox = (x, y, x + w, y + h)
        else:
            x1, y1, x2, y2 = self._bbox
            self._bbox = (min(x1, x), min(y1, y), max(x2, x + w), max(y2, y + h))

    @property
    def bbox(self) -> tuple[int, int, int, int] | None:
        """Get bounding box (x1, y1, x2, y2) or None if empty."""
        return self._bbox

    def clear(self):
        """Clear layer and reset bounding box."""
        self.chars.fill(SPACE)
        self.fg.fill(DEFAULT)
        self.bg.fill(DEFAULT)
        self.mask.fill(False)
        self.bg_mask.fill(False)
        self._bbox = None

    def is_blocked(self, x: int, y: int) -> bool:
        return self.respect_claims and self.blocked is not None and bool(self.blocked[y, x])

    def put(self, x: int, y: int, char: str, fg: int = DEFAULT, bg: Optional[int] = None) -> bool:
        """Put a single character at position. Returns False if clipped or blocked."""
        if not (0 <= x < self.width and 0 <= y < self.height) or self.is_blocked(x, y):
            return False
        self.chars[y, x] = ord(char)
        self.fg[y, x] = fg
        self.mask[y, x] = True
        if bg is not None:
            self.bg[y, x] = bg
            self.bg_mask[y, x] = True
        self._expand_bbox_rect(x, y, 1, 1)
        return True

    def put_text(self, x: int, y: int, text: str, fg: int = DEFAULT, bg: Optional[int] = None):
        """Put a string horizontally, clipped to the layer."""
        if not text or y < 0 or y >= self.height:
            return
        x1 = max(0, x)
        x2 = min(self.width, x + len(text))
        if x1 >= x2:
            return
        row = np.array([[ord(c) for c in text[x1 - x:x2 - x]]], dtype=np.uint32)
        self.blit(x1, y, row, fg, bg)

    def blit(
        self,
        x: int,
        y: int,
        char_matrix: np.ndarray,
        fg: int | np.ndarray = DEFAULT,
        bg: Optional[int] = None,
        transparent: bool = False,
    ):
        """
        Blit a 2D character matrix to the layer at position.

        Args:
            x, y: Top-left position
            char_matrix: 2D numpy array of uint32 char codes (shape: height, width)
            fg: Single color code or 2D array matching char_matrix shape
            bg: Optional background code for every blitted cell
            transparent: Skip spaces so lower content shows through
        """
        src_h, src_w = char_matrix.shape

        src_x1 = max(0, -x)
        src_y1 = max(0, -y)
        src_x2 = min(src_w, self.width - x)
        src_y2 = min(src_h, self.height - y)

        dst_x1 = max(0, x)
        dst_y1 = max(0, y)
        dst_x2 = dst_x1 + (src_x2 - src_x1)
        dst_y2 = dst_y1 + (src_y2 - src_y1)

        if dst_x1 >= dst_x2 or dst_y1 >= dst_y2:
            return  # Completely off-screen

        src = char_matrix[src_y1:src_y2, src_x1:src_x2]
        region = np.ones(src.shape, dtype=bool)
        if transparent:
            region &= src != SPACE
        if self.respect_claims and self.blocked is not None:
            region &= ~self.blocked[dst_y1:dst_y2, dst_x1:dst_x2]

        dst = (slice(dst_y1, dst_y2), slice(dst_x1, dst_x2))
        self.chars[dst] = np.where(region, src, self.chars[dst])
        colors = fg[src_y1:src_y2, src_x1:src_x2] if isinstance(fg, np.ndarray) else fg
        self.fg[dst] = np.where(region, colors, self.fg[dst])
        self.mask[dst] |= region
        if bg is not None:
            self.bg[dst] = np.where(region, bg, self.bg[dst])
            self.bg_mask[dst] |= region

        self._expand_bbox_rect(dst_x1, dst_y1, dst_x2 - dst_x1, dst_y2 - dst_y1)

    def fill(self, x: int, y: int, w: int, h: int, char: str = " ", fg: int = DEFAULT, bg: Optional[int] = None):
        """Fill a rectangle."""
        x1, y1 = max(0, x), max(0, y)
        x2, y2 = min(self.width, x + w), min(self.height, y + h)
        if x1 < x2 and y1 < y2:
            matrix = np.full((y2 - y1, x2 - x1), ord(char), dtype=np.uint32)
            self.blit(x1, y1, matrix, fg, bg)

    def paint_background(self, bg: np.ndarray) -> None:
        """Set the background of every cell (shape must match the layer)."""
        self.bg[:, :] = bg
        self.bg_mask.fill(True)
        self.mask.fill(True)
        self._expand_bbox_rect(0, 0, self.width, self.height)


class FrameBuffer:
    """
    Read-only result of one composition.

    ``chars`` holds code points, ``fg``/``bg`` hold color codes for
    ``capability`` (packed RGB, xterm-256 index, or DEFAULT), and
    ``owners`` holds the index into ``owner_names`` of the layer that last
    wrote each cell.
    """

    def __init__(
        self,
        chars: np.ndarray,
        fg: np.ndarray,
        bg: np.ndarray,
        owners: np.ndarray,
        owner_names: tuple[str, ...],
        capability: TerminalCapability,
    ):
        self.chars = chars
        self.fg = fg
        self.bg = bg
        self.owners = owners
        self.owner_names = owner_names
        self.capability = capability
        for array in (self.chars, self.fg, self.bg, self.owners):
            array.setflags(write=False)

    @property
    def width(self) -> int:
        return self.chars.shape[1]

    @property
    def height(self) -> int:
        return self.chars.shape[0]

    def rows(self) -> list[str]:
        return ["".join(chr(c) for c in row) for row in self.chars]

    def cell(self, x: int, y: int) -> tuple[str, int, int]:
        """(glyph, fg code, bg code) at a position."""
        return chr(self.chars[y, x]), int(self.fg[y, x]), int(self.bg[y, x])

    def owner(self, x: int, y: int) -> Optional[str]:
        code = int(self.owners[y, x])
        return self.owner_names[code] if code != NO_OWNER else None

    def cells_owned_by(self, name: str) -> int:
        if name not in self.owner_names:
            return 0
        return int(np.count_nonzero(self.owners == self.owner_names.index(name)))

    def same_cells(self, other: "FrameBuffer") -> np.ndarray:
        """Boolean grid of cells identical in glyph and colors."""
        return (self.chars == other.chars) & (self.fg == other.fg) & (self.bg == other.bg)


class RenderPipeline:
    """Manages layers and composites them with vectorized operations."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.layers: dict[str, Layer] = {}

    def add_layer(
        self,
        name: str,
        priority: int,
        render_func: Callable[[Layer], None] | None = None,
        claims: bool = False,
        respect_claims: bool = False,
    ) -> Layer:
        """Create and register a new layer."""
        layer = Layer(name, priority, self.width, self.height, render_func, claims, respect_claims)
        self.layers[name] = layer
        return layer

    def get_layer(self, name: str) -> Layer | None:
        return self.layers.get(name)

    def resize(self, width: int, height: int) -> None:
        """Reallocate every layer at a new size (content is discarded)."""
        self.width = width
        self.height = height
        self.layers = {
            name: Layer(name, layer.priority, width, height, layer.render_func, layer.claims, layer.respect_claims)
            for name, layer in self.layers.items()
        }

    def render(self, capability: TerminalCapability, enabled: Optional[set[str]] = None) -> FrameBuffer:
        """
        Render all layers and flatten.

        1. Call each layer's render_func (if set), in priority order
        2. Each layer overwrites the cells it wrote; ``claims`` layers reserve them
        3. Return an immutable FrameBuffer

        Args:
            capability: Stored on the buffer for the writer
            enabled: Names of layers to include (default: all)
        """
        out_chars = np.full((self.height, self.width), SPACE, dtype=np.uint32)
        out_fg = np.full((self.height, self.width), DEFAULT, dtype=np.int32)
        out_bg = np.full((self.height, self.width), DEFAULT, dtype=np.int32)
        owners = np.full((self.height, self.width), NO_OWNER, dtype=np.int16)
        claimed = np.zeros((self.height, self.width), dtype=bool)

        sorted_layers = sorted(self.layers.values(), key=lambda layer: layer.priority)
        names = tuple(layer.name for layer in sorted_layers)

        for index, layer in enumerate(sorted_layers):
            if enabled is not None and layer.name not in enabled:
                continue
            if layer.render_func:
                layer.clear()
                layer.blocked = claimed
                layer.render_func(layer)
                layer.blocked = None

            bbox = layer.bbox
            if bbox is None:
                continue
            x1, y1, x2, y2 = bbox
            region = (slice(y1, y2), slice(x1, x2))
            mask = layer.mask[region]
            bg_mask = layer.bg_mask[region]

            out_chars[region] = np.where(mask, layer.chars[region], out_chars[region])
            out_fg[region] = np.where(mask, layer.fg[region], out_fg[region])
            out_bg[region] = np.where(bg_mask, layer.bg[region], out_bg[region])
            owners[region] = np.where(mask, index, owners[region])
            if layer.claims:
                claimed[region] |= mask

        return FrameBuffer(out_chars, out_fg, out_bg, owners, names, capability)
