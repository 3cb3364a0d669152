# forces.py

"""
Force Model

Displacement rules that move particles each tick. There are exactly two:
a gravity pull toward each particle's fixed anchor, and a pairwise
collision push between overlapping particles. Neither keeps velocity or
any other state between ticks; both return or apply plain position offsets.

The scalar collision rule is compiled with Numba so the collision kernel
can call it from nopython mode. The Python-facing helpers below call the
same compiled function, so both paths share one piece of arithmetic.
"""

import numpy as np
import numba


@numba.jit(nopython=True)
def _pair_offset_jit(dx, dy, required, strength):
    """
    Offset to subtract from the first particle and add to the second.
    (dx, dy) is first minus second. Returns zeros when the pair is already
    far enough apart, or when the points coincide and no direction exists.
    """
    dist = np.sqrt(dx * dx + dy * dy)
    if dist >= required or dist == 0.0:
        return 0.0, 0.0
    scale = (dist - required) / dist * strength
    return dx * scale, dy * scale


@numba.jit(nopython=True)
def _resolve_pair_jit(i, j, positions, radii, group_codes, padding, strength):
    """In-place collision correction for particles i and j. Returns True if they moved."""
    dx = positions[i, 0] - positions[j, 0]
    dy = positions[i, 1] - positions[j, 1]
    required = radii[i] + radii[j]
    if group_codes[i] != group_codes[j]:
        required += padding

    offset_x, offset_y = _pair_offset_jit(dx, dy, required, strength)
    if offset_x == 0.0 and offset_y == 0.0:
        return False

    positions[i, 0] -= offset_x
    positions[i, 1] -= offset_y
    positions[j, 0] += offset_x
    positions[j, 1] += offset_y
    return True


def required_separation(a, b, padding: float = 0.0) -> float:
    """Minimum centre distance for two particles; padding only applies across groups."""
    required = a.radius + b.radius
    if a.group != b.group:
        required += padding
    return required


def gravity(particle, strength: float) -> np.ndarray:
    """
    Displacement pulling a particle toward its anchor.

    Each axis moves by `strength` times the remaining distance, so a strength
    of 0.5 closes half the gap. The loop passes 0.5 * alpha.
    """
    return strength * (np.asarray(particle.anchor, dtype=np.float64) - np.asarray(particle.position, dtype=np.float64))


def apply_gravity(positions: np.ndarray, anchors: np.ndarray, strength: float):
    """Vectorized in-place gravity step for a whole set."""
    positions += strength * (anchors - positions)


def resolve_pair(a, b, strength: float, padding: float = 0.0):
    """
    Collision displacements (delta_a, delta_b) for two particles.

    Data Contract:
    - Inputs: two particles with position, radius and group; the collision
      strength; the padding added when the groups differ.
    - Outputs: two displacement vectors. They always sum to zero.
    - Side Effects: None. The caller applies the displacements.
    - Invariants: zero displacements when the particles already meet the
      required separation or sit exactly on top of each other.
    """
    d = np.asarray(a.position, dtype=np.float64) - np.asarray(b.position, dtype=np.float64)
    offset_x, offset_y = _pair_offset_jit(d[0], d[1], required_separation(a, b, padding), strength)
    offset = np.array([offset_x, offset_y], dtype=np.float64)
    return -offset, offset
