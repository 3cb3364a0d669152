# particle_set.py

import numpy as np
import logging
from collections import namedtuple
from particle import Particle

logger = logging.getLogger("cluster_layout")

# Read-only view of a set handed to tick callbacks and renderers.
TickSnapshot = namedtuple('TickSnapshot', ['tick', 'alpha', 'positions', 'radii', 'groups', 'metadata'])

class InvalidIndex(IndexError):
    """Raised when a particle index is outside the current bounds of a set."""

class ParticleSet:
    """
    Ordered population of particles simulated together, stored as parallel
    NumPy arrays (Structure of Arrays).

    Data Contract:
    - Inputs:
        - padding (float): Extra separation between particles of different groups.
        - spawn_point (tuple): Where particles added without a position appear.
        - spawn_jitter (float): Half-width of the uniform offset applied at spawn,
          so particles spawned together never coincide exactly.
        - rng (np.random.Generator): Seeded generator for the spawn offsets.
        - name (str): Label used in log messages.
    - Outputs: None. This class owns and modifies its particle arrays.
    - Side Effects: Logs lifecycle events.
    - Invariants: All arrays have the same length. Identity is positional:
      removing index i shifts every later particle down by one.
    """
    def __init__(self, padding: float = 0.0, spawn_point=(0.0, 0.0), spawn_jitter: float = 1.0,
                 rng: np.random.Generator = None, name: str = "particles"):
        self.padding = float(padding)
        self.spawn_point = np.array(spawn_point, dtype=np.float64)
        self.spawn_jitter = float(spawn_jitter)
        self.rng = rng if rng is not None else np.random.default_rng()
        self.name = name

        # --- Particle state ---
        self.positions = np.zeros((0, 2), dtype=np.float64)
        self.anchors = np.zeros((0, 2), dtype=np.float64)
        self.radii = np.zeros(0, dtype=np.float64)
        self.group_codes = np.zeros(0, dtype=np.int64)
        self.groups = []
        self.metadata = []

        # Groups are opaque to the kernels; each distinct value gets an integer code.
        self._group_codes = {}

    def __len__(self):
        return len(self.radii)

    def __getitem__(self, index: int) -> Particle:
        index = self._check_index(index)
        return Particle(
            anchor=self.anchors[index],
            radius=self.radii[index],
            group=self.groups[index],
            position=self.positions[index],
            metadata=self.metadata[index],
        )

    def particles(self):
        """Detached copies of every particle, in insertion order."""
        return [self[i] for i in range(len(self))]

    @property
    def max_radius(self) -> float:
        return float(self.radii.max()) if len(self.radii) else 0.0

    def _check_index(self, index) -> int:
        if isinstance(index, (bool, np.bool_)) or not isinstance(index, (int, np.integer)):
            raise TypeError(f"Particle index must be an integer, got {type(index).__name__}")
        if not 0 <= index < len(self):
            raise InvalidIndex(f"Index {index} out of range for {self.name} with {len(self)} particle(s).")
        return int(index)

    def _code_for(self, group) -> int:
        if group not in self._group_codes:
            self._group_codes[group] = len(self._group_codes)
        return self._group_codes[group]

    def spawn_position(self) -> np.ndarray:
        offset = self.rng.uniform(-self.spawn_jitter, self.spawn_jitter, 2)
        return self.spawn_point + offset

    def add(self, particle: Particle) -> int:
        """Append a particle and return its index. Particles without a position spawn."""
        position = particle.position if particle.position is not None else self.spawn_position()

        self.positions = np.vstack([self.positions, position[np.newaxis, :]])
        self.anchors = np.vstack([self.anchors, particle.anchor[np.newaxis, :]])
        self.radii = np.append(self.radii, particle.radius)
        self.group_codes = np.append(self.group_codes, self._code_for(particle.group))
        self.groups.append(particle.group)
        self.metadata.append(particle.metadata)

        index = len(self) - 1
        logger.info(f"{self.name}: added particle {index} (group={particle.group!r}). Count: {len(self)}.")
        return index

    def remove(self, index: int) -> Particle:
        """Delete the particle at index and return it. Later indices shift down by one."""
        try:
            index = self._check_index(index)
        except InvalidIndex:
            logger.warning(f"{self.name}: refusing to remove index {index}; set holds {len(self)} particle(s).")
            raise
        removed = self[index]

        survival_mask = np.ones(len(self), dtype=np.bool_)
        survival_mask[index] = False
        self.positions = self.positions[survival_mask]
        self.anchors = self.anchors[survival_mask]
        self.radii = self.radii[survival_mask]
        self.group_codes = self.group_codes[survival_mask]
        del self.groups[index]
        del self.metadata[index]

        logger.info(f"{self.name}: removed particle {index}. Count: {len(self)}.")
        return removed

    def clear(self):
        old_count = len(self)
        self.positions = np.zeros((0, 2), dtype=np.float64)
        self.anchors = np.zeros((0, 2), dtype=np.float64)
        self.radii = np.zeros(0, dtype=np.float64)
        self.group_codes = np.zeros(0, dtype=np.int64)
        self.groups = []
        self.metadata = []
        logger.info(f"{self.name}: cleared {old_count} particle(s).")

    def find_at(self, point):
        """
        Index of the particle whose circle contains the point, or None.
        The most recently added particle wins where circles overlap.
        """
        if len(self) == 0:
            return None
        diffs = self.positions - np.asarray(point, dtype=np.float64)
        inside = np.sum(diffs**2, axis=1) <= self.radii**2
        hits = np.nonzero(inside)[0]
        return int(hits[-1]) if len(hits) else None

    def snapshot(self, tick: int = 0, alpha: float = 0.0) -> TickSnapshot:
        positions = self.positions.copy()
        positions.flags.writeable = False
        radii = self.radii.copy()
        radii.flags.writeable = False
        return TickSnapshot(
            tick=tick,
            alpha=alpha,
            positions=positions,
            radii=radii,
            groups=tuple(self.groups),
            metadata=tuple(self.metadata),
        )
