"""
Archetypes - runtime behavior for each particle kind.

Archetypes consume tuning and glyphs from YAML (``elements/archetypes``)
and add the spawning and motion rules the particle engine applies.
"""

from typing import Optional

from ..elements.registry import ElementRegistry, default_registry
from ..simulation.particle import ParticleKind
from .ambient import Airplane, Bird, Cloud, DrifterArchetype, FogBank
from .base import Archetype, ParticleArchetype, Shape
from .falling import FallingArchetype, Hailstone, Leaf, Raindrop, Snowflake
from .lightning import Lightning

ARCHETYPE_CLASSES = (
    Raindrop,
    Snowflake,
    Hailstone,
    Lightning,
    Airplane,
    Leaf,
    Cloud,
    FogBank,
    Bird,
)


def create_archetypes(registry: Optional[ElementRegistry] = None) -> dict[ParticleKind, ParticleArchetype]:
    """One archetype per particle kind, configured from ``registry``."""
    if registry is None:
        registry = default_registry()
    return {cls.kind: cls(registry) for cls in ARCHETYPE_CLASSES}


__all__ = [
    "ARCHETYPE_CLASSES",
    "Airplane",
    "Archetype",
    "Bird",
    "Cloud",
    "DrifterArchetype",
    "FallingArchetype",
    "FogBank",
    "Hailstone",
    "Leaf",
    "Lightning",
    "ParticleArchetype",
    "Raindrop",
    "Shape",
    "Snowflake",
    "create_archetypes",
]
