"""Frame composition: layers, HUD overlay and ANSI output."""

from .compositor import FrameCompositor
from .hud import HudData
from .output import encode_frame
from .pipeline import FrameBuffer, Layer, RenderPipeline

__all__ = ["FrameBuffer", "FrameCompositor", "HudData", "Layer", "RenderPipeline", "encode_frame"]
