"""
Particle simulation.

``weathr.simulation.engine.ParticleEngine`` ticks the particles; this package
also holds the shared records (``Particle``, ``Bounds``) and the numpy arena
(``ParticlePool``) the archetypes spawn into.
"""

from .particle import Bounds, Particle, ParticleKind, Phase
from .pool import ParticlePool

__all__ = ["Bounds", "Particle", "ParticleKind", "ParticlePool", "Phase"]
