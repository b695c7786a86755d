"""HUD data record and the boxed overlay painter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .pipeline import Layer

QUIT_HINT = "Press 'q' to quit"
LOADING = "Loading..."

# Box drawing
TOP_LEFT, TOP_RIGHT, BOTTOM_LEFT, BOTTOM_RIGHT = "┌", "┐", "└", "┘"
HORIZONTAL, VERTICAL = "─", "│"

# Offset of the box from the top-left corner of the screen
MARGIN_X = 1
MARGIN_Y = 0


@dataclass(frozen=True)
class HudData:
    """Preformatted HUD strings. Replaced wholesale, never mutated."""
    condition: str = ""
    temperature: str = ""
    wind: str = ""
    precipitation: str = ""
    location: str = ""
    status: str = ""
    error: bool = False

    @classmethod
    def loading(cls, location: str = "") -> "HudData":
        return cls(location=location, status=LOADING)

    def with_status(self, status: str, error: bool = False) -> "HudData":
        return HudData(
            self.condition, self.temperature, self.wind, self.precipitation,
            self.location, status, error,
        )

    def summary(self) -> str:
        """``Weather: Rain | Temp: 12.3°C | Wind: 10 km/h | Precip: 2.5 mm`` (empty fields omitted)."""
        parts = [
            (label, value) for label, value in (
                ("Weather", self.condition),
                ("Temp", self.temperature),
                ("Wind", self.wind),
                ("Precip", self.precipitation),
            ) if value
        ]
        return " | ".join(f"{label}: {value}" for label, value in parts)

    def lines(self, location_visible: bool = True) -> list[tuple[str, str]]:
        """HUD lines as (text, role), role being 'text', 'dim' or 'error'."""
        result = []
        summary = self.summary()
        if summary:
            result.append((summary, "text"))
        if location_visible and self.location:
            result.append((f"Location: {self.location}", "dim"))
        if self.status:
            result.append((self.status, "error" if self.error else "dim"))
        result.append((QUIT_HINT, "dim"))
        return result


@dataclass(frozen=True)
class HudStyle:
    """Color codes for the overlay (already quantized)."""
    text: int
    dim: int
    error: int
    border: int
    background: Optional[int] = None


def box_size(hud: HudData, location_visible: bool, max_width: int) -> tuple[int, int]:
    """(width, height) of the HUD box, clipped to ``max_width``."""
    lines = hud.lines(location_visible)
    width = min(max(len(text) for text, _ in lines) + 4, max(max_width - MARGIN_X, 0))
    return width, len(lines) + 2


def paint_hud(layer: Layer, hud: HudData, style: HudStyle, location_visible: bool = True) -> None:
    """Draw the boxed HUD in the top-left corner of ``layer``."""
    lines = hud.lines(location_visible)
    width, height = box_size(hud, location_visible, layer.width)
    if width < 4 or layer.height < 1:
        return

    x, y = MARGIN_X, MARGIN_Y
    inner = width - 2
    layer.fill(x, y, width, height, " ", style.text, style.background)

    layer.put_text(x, y, TOP_LEFT + HORIZONTAL * inner + TOP_RIGHT, style.border, style.background)
    for i, (text, role) in enumerate(lines, start=1):
        layer.put(x, y + i, VERTICAL, style.border, style.background)
        text = text[:inner - 2]
        layer.put_text(x + 2, y + i, text, getattr(style, role), style.background)
        layer.put(x + width - 1, y + i, VERTICAL, style.border, style.background)
    layer.put_text(x, y + height - 1, BOTTOM_LEFT + HORIZONTAL * inner + BOTTOM_RIGHT, style.border, style.background)
