"""ANSI encoding of composed frames."""

from __future__ import annotations

from typing import Optional

from ..core.colors import DEFAULT, unpack_rgb
from ..core.terminal import RESET_STYLE, TerminalCapability
from .pipeline import FrameBuffer


def _sgr(fg: int, bg: int, capability: TerminalCapability) -> str:
    """Select Graphic Rendition sequence for a (fg, bg) code pair."""
    params = ["0"]
    if capability is TerminalCapability.TRUECOLOR:
        if fg != DEFAULT:
            params.append("38;2;%d;%d;%d" % unpack_rgb(fg))
        if bg != DEFAULT:
            params.append("48;2;%d;%d;%d" % unpack_rgb(bg))
    elif capability is TerminalCapability.ANSI_256:
        if fg != DEFAULT:
            params.append(f"38;5;{fg}")
        if bg != DEFAULT:
            params.append(f"48;5;{bg}")
    return "\033[" + ";".join(params) + "m"


def encode_row(buffer: FrameBuffer, y: int) -> str:
    """One row with color changes only where the style changes."""
    capability = buffer.capability
    colored = capability is not TerminalCapability.NO_COLOR
    chars = buffer.chars[y].tolist()
    fgs = buffer.fg[y].tolist()
    bgs = buffer.bg[y].tolist()

    parts = []
    current: Optional[tuple[int, int]] = None
    for char, fg, bg in zip(chars, fgs, bgs):
        if colored and (fg, bg) != current:
            current = (fg, bg)
            parts.append(_sgr(fg, bg, capability))
        parts.append(chr(char))
    return "".join(parts)


def encode_frame(buffer: FrameBuffer) -> str:
    """Full-screen redraw: every row addressed absolutely, style reset at the end."""
    out = []
    for y in range(buffer.height):
        out.append(f"\033[{y + 1};1H")
        out.append(encode_row(buffer, y))
    out.append(RESET_STYLE)
    return "".join(out)
