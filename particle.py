# particle.py

import numpy as np

class Particle:
    """
    Represents a single circular node in a cluster layout.

    Data Contract:
    - Inputs:
        - anchor (sequence of 2 floats): The fixed cluster focus the particle is pulled toward.
        - radius (float): The collision radius. Must be positive and finite.
        - group (hashable): Category discriminator. Particles of different groups keep
          extra padding between them.
        - position (sequence of 2 floats, optional): Starting coordinates. When omitted,
          the owning ParticleSet assigns its spawn position on add.
        - metadata (any, optional): The catalog record the particle was built from.
    - Invariants: The simulation never writes to anchor.
    """
    def __init__(self, anchor, radius: float, group, position=None, metadata=None):
        self.anchor = _as_point(anchor, 'anchor')
        self.position = None if position is None else _as_point(position, 'position')
        radius = float(radius)
        if not np.isfinite(radius) or radius <= 0:
            raise ValueError(f"Particle radius must be positive and finite, got {radius}")
        self.radius = radius
        self.group = group
        self.metadata = metadata

    def __repr__(self):
        return (
            f"Particle(anchor={tuple(self.anchor)}, radius={self.radius}, "
            f"group={self.group!r}, position={None if self.position is None else tuple(self.position)})"
        )

def _as_point(value, name: str) -> np.ndarray:
    point = np.array(value, dtype=np.float64)
    if point.shape != (2,) or not np.all(np.isfinite(point)):
        raise ValueError(f"Particle {name} must be two finite coordinates, got {value!r}")
    return point
