"""Core model - conditions, scene descriptors, sky, colors and the terminal."""

from .channel import LatestValue
from .colors import ColorDef, Palette
from .conditions import WeatherCondition, parse_condition
from .scene import ExtraEffect, LayerKind, LayerSpec, SceneDescriptor
from .sky import Celestial, SkyState
from .terminal import TerminalCapability, TerminalError, TerminalSession

__all__ = [
    # Conditions
    "WeatherCondition",
    "parse_condition",
    # Scene
    "ExtraEffect",
    "LayerKind",
    "LayerSpec",
    "SceneDescriptor",
    # Sky
    "Celestial",
    "SkyState",
    # Output
    "ColorDef",
    "Palette",
    "TerminalCapability",
    "TerminalError",
    "TerminalSession",
    "LatestValue",
]
