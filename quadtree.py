# quadtree.py

import numpy as np
from collections import namedtuple
import logging
import numba

logger = logging.getLogger("cluster_layout")

# A simple structure for defining the bounding box of a QuadTree node.
BoundingBox = namedtuple('BoundingBox', ['x', 'y', 'width', 'height'])

# Deepest level a leaf may be split to. Leaves at this depth chain every
# particle that lands in them instead of subdividing further.
MAX_DEPTH = 24

# Pre-order traversal never holds more than three siblings per level plus the
# node being expanded.
_STACK_SIZE = 4 * (MAX_DEPTH + 1)

@numba.jit(nopython=True)
def _get_quadrant(pos, center_x, center_y):
    """Determine which of the four quadrants a particle belongs to."""
    if pos[0] < center_x:
        return 0 if pos[1] < center_y else 2 # NW or SW
    else:
        return 1 if pos[1] < center_y else 3 # NE or SE

@numba.jit(nopython=True)
def _subdivide_jit(node_idx, next_node_idx, node_boundaries, node_children, node_depth):
    """JIT-friendly subdivision of a node."""
    x = node_boundaries[node_idx, 0]
    y = node_boundaries[node_idx, 1]
    half_w = node_boundaries[node_idx, 2] / 2
    half_h = node_boundaries[node_idx, 3] / 2
    depth = node_depth[node_idx] + 1

    # Assign children indices from the pre-allocated pool
    for q in range(4):
        node_children[node_idx, q] = next_node_idx + q
        node_depth[next_node_idx + q] = depth

    # Define boundaries for the new children (NW, NE, SW, SE)
    node_boundaries[next_node_idx, 0] = x
    node_boundaries[next_node_idx, 1] = y
    node_boundaries[next_node_idx + 1, 0] = x + half_w
    node_boundaries[next_node_idx + 1, 1] = y
    node_boundaries[next_node_idx + 2, 0] = x
    node_boundaries[next_node_idx + 2, 1] = y + half_h
    node_boundaries[next_node_idx + 3, 0] = x + half_w
    node_boundaries[next_node_idx + 3, 1] = y + half_h
    for q in range(4):
        node_boundaries[next_node_idx + q, 2] = half_w
        node_boundaries[next_node_idx + q, 3] = half_h

    return next_node_idx + 4

@numba.jit(nopython=True)
def _insert_jit(p_idx, positions, next_node_idx, max_nodes, node_boundaries, node_children, node_is_leaf, node_depth, node_head, particle_next):
    """
    JIT-friendly iterative insertion.
    Returns the next free node index, or -1 when the node pool is exhausted.
    """
    node_idx = 0
    while True:
        if node_is_leaf[node_idx]:
            head = node_head[node_idx]
            # Empty leaf: place the particle here
            if head == -1:
                node_head[node_idx] = p_idx
                particle_next[p_idx] = -1
                return next_node_idx

            # Coincident points can never be separated by splitting, and the
            # depth limit stops runaway splits for near-coincident ones.
            same_point = positions[head, 0] == positions[p_idx, 0] and positions[head, 1] == positions[p_idx, 1]
            if same_point or node_depth[node_idx] >= MAX_DEPTH:
                particle_next[p_idx] = head
                node_head[node_idx] = p_idx
                return next_node_idx

            if next_node_idx + 4 > max_nodes:
                return -1

            # Leaf is occupied by a different point, so we must subdivide
            next_node_idx = _subdivide_jit(node_idx, next_node_idx, node_boundaries, node_children, node_depth)
            node_is_leaf[node_idx] = False
            node_head[node_idx] = -1

            # Move the existing chain (all at one position) into its child
            center_x = node_boundaries[node_idx, 0] + node_boundaries[node_idx, 2] / 2
            center_y = node_boundaries[node_idx, 1] + node_boundaries[node_idx, 3] / 2
            quadrant = _get_quadrant(positions[head], center_x, center_y)
            node_head[node_children[node_idx, quadrant]] = head
            # Loop again: the node is internal now and the new particle descends
            continue

        center_x = node_boundaries[node_idx, 0] + node_boundaries[node_idx, 2] / 2
        center_y = node_boundaries[node_idx, 1] + node_boundaries[node_idx, 3] / 2
        quadrant = _get_quadrant(positions[p_idx], center_x, center_y)
        node_idx = node_children[node_idx, quadrant] # Tail-recursion optimization

@numba.jit(nopython=True)
def _build_tree_jit(positions, max_nodes, node_boundaries, node_children, node_is_leaf, node_depth, node_head, particle_next):
    """Main JIT function to build the tree. Returns the number of active nodes or -1."""
    next_node_idx = 1 # Start allocating from index 1 (0 is root)
    for i in range(len(positions)):
        next_node_idx = _insert_jit(i, positions, next_node_idx, max_nodes, node_boundaries, node_children, node_is_leaf, node_depth, node_head, particle_next)
        if next_node_idx == -1:
            return -1
    return next_node_idx

@numba.jit(nopython=True)
def _query_jit(x1, y1, x2, y2, node_boundaries, node_children, node_is_leaf, node_head, particle_next, stack, out):
    """
    Pruned pre-order traversal. Writes the indices held by every leaf whose
    region intersects [x1, x2] x [y1, y2] into `out` and returns their count.
    Subtrees whose region lies entirely outside the box are never expanded.
    """
    count = 0
    stack[0] = 0
    top = 1
    while top > 0:
        top -= 1
        node_idx = stack[top]
        nx1 = node_boundaries[node_idx, 0]
        ny1 = node_boundaries[node_idx, 1]
        nx2 = nx1 + node_boundaries[node_idx, 2]
        ny2 = ny1 + node_boundaries[node_idx, 3]
        if nx1 > x2 or nx2 < x1 or ny1 > y2 or ny2 < y1:
            continue

        if node_is_leaf[node_idx]:
            p_idx = node_head[node_idx]
            while p_idx != -1:
                out[count] = p_idx
                count += 1
                p_idx = particle_next[p_idx]
        else:
            # Push in reverse so NW is expanded first
            for q in range(3, -1, -1):
                stack[top] = node_children[node_idx, q]
                top += 1
    return count

def bounding_square(positions: np.ndarray) -> BoundingBox:
    """
    Square region covering every position, anchored at the minimum corner.
    The longer side of the extents decides the square's size.
    """
    if len(positions) == 0:
        return BoundingBox(x=0.0, y=0.0, width=0.0, height=0.0)
    x1, y1 = positions.min(axis=0)
    x2, y2 = positions.max(axis=0)
    size = max(x2 - x1, y2 - y1)
    return BoundingBox(x=float(x1), y=float(y1), width=float(size), height=float(size))

class QuadTree:
    """
    Region quadtree over a snapshot of particle positions, stored as flat
    NumPy arrays so the build and the pruned visit can run in nopython mode.

    Data Contract:
    - Inputs: positions (np.ndarray, shape (n, 2)) passed to build().
    - Outputs: particle indices from visit().
    - Side Effects: build() overwrites the node arrays in place.
    - Invariants: the tree stores indices only. Node regions reflect the
      positions at build time; callers read live positions themselves.
    """
    def __init__(self, capacity_multiplier: int = 4):
        self.capacity_multiplier = capacity_multiplier
        self.boundary = BoundingBox(x=0.0, y=0.0, width=0.0, height=0.0)
        self.num_particles = 0

        # Pre-allocate arrays for the tree. Heuristic: max_nodes is ~4*num_particles
        # This avoids costly re-allocation. build() doubles the pool if it ever fails.
        self.max_nodes = 0
        self.node_boundaries = np.empty((0, 4), dtype=np.float64)
        self.node_children = np.empty((0, 4), dtype=np.int32)
        self.node_is_leaf = np.empty(0, dtype=np.bool_)
        self.node_depth = np.empty(0, dtype=np.int32)
        self.node_head = np.empty(0, dtype=np.int32)
        self.particle_next = np.empty(0, dtype=np.int32)
        self.num_active_nodes = 0
        self.stack = np.zeros(_STACK_SIZE, dtype=np.int32)
        self.candidates = np.empty(0, dtype=np.int32)

    def _allocate(self, max_nodes: int, num_particles: int):
        self.max_nodes = max_nodes
        self.node_boundaries = np.zeros((max_nodes, 4), dtype=np.float64)
        self.node_children = np.full((max_nodes, 4), -1, dtype=np.int32)
        self.node_is_leaf = np.ones(max_nodes, dtype=np.bool_)
        self.node_depth = np.zeros(max_nodes, dtype=np.int32)
        self.node_head = np.full(max_nodes, -1, dtype=np.int32)
        self.particle_next = np.full(max(num_particles, 1), -1, dtype=np.int32)
        self.candidates = np.empty(max(num_particles, 1), dtype=np.int32)

    def _ensure_capacity(self, num_particles: int):
        """Ensure arrays are large enough for the current number of particles."""
        required_nodes = num_particles * self.capacity_multiplier + 1
        if required_nodes > self.max_nodes or len(self.particle_next) < num_particles:
            self._allocate(max(required_nodes, self.max_nodes), num_particles)

    def _reset(self):
        self.node_children.fill(-1)
        self.node_is_leaf.fill(True)
        self.node_depth.fill(0)
        self.node_head.fill(-1)
        self.particle_next.fill(-1)
        self.node_boundaries[0] = self.boundary

    def build(self, positions: np.ndarray):
        positions = np.ascontiguousarray(positions, dtype=np.float64)
        num_particles = len(positions)
        self.num_particles = num_particles
        self.boundary = bounding_square(positions)
        self._ensure_capacity(num_particles)
        self._reset()

        if num_particles == 0:
            self.num_active_nodes = 1
            return self

        while True:
            active = _build_tree_jit(
                positions, self.max_nodes, self.node_boundaries, self.node_children,
                self.node_is_leaf, self.node_depth, self.node_head, self.particle_next
            )
            if active != -1:
                self.num_active_nodes = active
                return self
            # Clustered input split deeper than the heuristic allowed for.
            logger.debug(f"QuadTree node pool of {self.max_nodes} exhausted; doubling.")
            self._allocate(self.max_nodes * 2, num_particles)
            self._reset()

    def visit(self, x1: float, y1: float, x2: float, y2: float) -> np.ndarray:
        """Indices of particles in every leaf intersecting the box, in traversal order."""
        if self.num_particles == 0:
            return np.empty(0, dtype=np.int32)
        count = _query_jit(
            x1, y1, x2, y2, self.node_boundaries, self.node_children,
            self.node_is_leaf, self.node_head, self.particle_next, self.stack, self.candidates
        )
        return self.candidates[:count].copy()

    def get_flattened_tree(self):
        """Returns the flattened tree arrays, trimmed to the number of active nodes."""
        n = self.num_active_nodes
        return (
            self.node_boundaries[:n],
            self.node_children[:n],
            self.node_is_leaf[:n],
            self.node_head[:n],
            self.particle_next[:self.num_particles],
        )

def build(positions: np.ndarray) -> QuadTree:
    """Build a fresh QuadTree from a snapshot of positions."""
    return QuadTree().build(positions)
