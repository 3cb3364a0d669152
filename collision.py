# collision.py

import numba
from quadtree import QuadTree, _query_jit
from forces import _resolve_pair_jit

# --- JIT-Compiled Collision Pass ---
# Operates only on NumPy arrays and scalars, as required by Numba's nopython mode.

@numba.jit(nopython=True)
def _resolve_all_jit(positions, radii, group_codes, padding, strength, max_radius,
                     node_boundaries, node_children, node_is_leaf, node_head, particle_next,
                     stack, candidates):
    """
    Gauss-Seidel style relaxation over every particle in insertion order.
    Each particle queries the tree with a box wide enough to hold any partner
    it could still overlap, and corrections are applied immediately, so later
    particles see the positions earlier ones produced.
    """
    corrections = 0
    for i in range(positions.shape[0]):
        r = radii[i] + max_radius + padding
        x = positions[i, 0]
        y = positions[i, 1]
        count = _query_jit(x - r, y - r, x + r, y + r, node_boundaries, node_children,
                           node_is_leaf, node_head, particle_next, stack, candidates)
        for k in range(count):
            j = candidates[k]
            if j != i:
                if _resolve_pair_jit(i, j, positions, radii, group_codes, padding, strength):
                    corrections += 1
    return corrections

def resolve_all(particle_set, strength: float, tree: QuadTree = None, iterations: int = 1) -> int:
    """
    Pushes overlapping particles of a set apart, in place.

    Data Contract:
    - Inputs:
        - particle_set (ParticleSet): The population to relax.
        - strength (float): Fraction of each overlap corrected per pair visit.
        - tree (QuadTree, optional): Reused node storage; rebuilt from the current positions.
        - iterations (int): Number of full passes, each with a fresh tree.
    - Outputs: The number of pair corrections applied.
    - Side Effects: Mutates particle_set.positions.
    - Invariants: No particle is resolved against itself. Coincident pairs
      are left alone.
    """
    if len(particle_set) == 0:
        return 0
    if tree is None:
        tree = QuadTree()

    total_corrections = 0
    for _ in range(iterations):
        tree.build(particle_set.positions)
        node_boundaries, node_children, node_is_leaf, node_head, particle_next = tree.get_flattened_tree()
        total_corrections += _resolve_all_jit(
            particle_set.positions,
            particle_set.radii,
            particle_set.group_codes,
            particle_set.padding,
            strength,
            particle_set.max_radius,
            node_boundaries,
            node_children,
            node_is_leaf,
            node_head,
            particle_next,
            tree.stack,
            tree.candidates,
        )
    return total_corrections
