"""
Data-driven element definitions.

Particle tuning and glyph sets (``archetypes/``) and static ASCII art
(``art/``) are loaded from YAML files and can be hot-reloaded while the
animation runs.
"""

from .registry import ElementRegistry, default_registry

__all__ = ["ElementRegistry", "default_registry"]
