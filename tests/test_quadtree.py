import numpy as np
from quadtree import QuadTree, BoundingBox, bounding_square, build


def _brute_force_in_box(positions, x1, y1, x2, y2):
    inside = (
        (positions[:, 0] >= x1) & (positions[:, 0] <= x2) &
        (positions[:, 1] >= y1) & (positions[:, 1] <= y2)
    )
    return set(np.nonzero(inside)[0].tolist())


def test_bounding_square_uses_longer_side():
    positions = np.array([[0.0, 0.0], [10.0, 4.0], [2.0, -1.0]])
    assert bounding_square(positions) == BoundingBox(x=0.0, y=-1.0, width=10.0, height=10.0)


def test_full_visit_returns_every_particle_once():
    rng = np.random.default_rng(3)
    positions = rng.random((200, 2)) * 500.0
    tree = build(positions)
    box = tree.boundary
    found = tree.visit(box.x, box.y, box.x + box.width, box.y + box.height)
    assert sorted(found.tolist()) == list(range(200))


def test_visit_is_superset_of_points_in_box():
    rng = np.random.default_rng(11)
    positions = rng.random((300, 2)) * 1000.0
    tree = build(positions)
    for _ in range(20):
        cx, cy = rng.random(2) * 1000.0
        r = 60.0
        found = tree.visit(cx - r, cy - r, cx + r, cy + r)
        assert len(set(found.tolist())) == len(found)
        assert _brute_force_in_box(positions, cx - r, cy - r, cx + r, cy + r) <= set(found.tolist())


def test_visit_prunes_distant_cluster():
    near = np.array([[10.0, 10.0], [12.0, 14.0], [15.0, 11.0]])
    far = np.array([[900.0, 900.0], [905.0, 902.0], [910.0, 896.0]])
    tree = build(np.vstack([near, far]))
    found = set(tree.visit(0.0, 0.0, 30.0, 30.0).tolist())
    assert found == {0, 1, 2}


def test_coincident_points_share_a_leaf():
    positions = np.full((5, 2), 42.0)
    tree = build(positions)
    found = tree.visit(40.0, 40.0, 44.0, 44.0)
    assert sorted(found.tolist()) == [0, 1, 2, 3, 4]


def test_near_coincident_points_grow_the_node_pool():
    positions = np.array([[0.0, 0.0], [1e-9, 1e-9], [2e-9, 0.0], [100.0, 100.0]])
    tree = QuadTree(capacity_multiplier=1)
    tree.build(positions)
    assert tree.max_nodes > 1 * len(positions) + 1
    found = tree.visit(-1.0, -1.0, 1.0, 1.0)
    assert sorted(found.tolist()) == [0, 1, 2]


def test_empty_tree_visits_nothing():
    tree = build(np.zeros((0, 2)))
    assert len(tree.visit(-10.0, -10.0, 10.0, 10.0)) == 0


def test_rebuild_reuses_tree_for_new_positions():
    tree = QuadTree()
    tree.build(np.array([[0.0, 0.0], [50.0, 50.0]]))
    tree.build(np.array([[500.0, 500.0], [510.0, 505.0], [0.0, 0.0]]))
    found = set(tree.visit(490.0, 490.0, 520.0, 520.0).tolist())
    assert found == {0, 1}
