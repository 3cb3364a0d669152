import numpy as np
import pytest
from layout import (
    Category, load_categories, cluster_focus, label_position,
    menu_particles, plate_particle, default_selection,
)

CATEGORIES = load_categories([
    {"name": "Programming Introduction", "type": "programming", "row": 1, "col": 1, "color": "#b5bd68"},
    {"name": "Statistics", "type": "statistics", "row": 1, "col": 3, "color": "#81a2be"},
    {"name": "", "type": "other", "row": 2, "col": 3, "color": "#b294bb"},
])

CATALOG = [
    {"name": "CMPS 5J", "type": "programming"},
    {"name": "AMS 131", "type": "statistics"},
    {"name": "CMPE 107", "type": "other"},
]


def test_load_categories_keys_by_type():
    assert set(CATEGORIES) == {"programming", "statistics", "other"}
    assert CATEGORIES["statistics"] == Category("Statistics", "statistics", 1, 3, "#81a2be")


def test_cluster_focus_matches_grid_cells():
    assert cluster_focus(1, 1, 840, 600) == (140.0, 150.0)
    assert cluster_focus(2, 3, 840, 600) == (700.0, 450.0)
    # Integer pixel steps on sizes that do not divide evenly
    assert cluster_focus(1, 2, 100, 50) == (50.0, 13.0)


def test_label_sits_outside_its_cluster():
    assert label_position(CATEGORIES["programming"], 840, 600) == (140.0, 15.0)
    assert label_position(CATEGORIES["other"], 840, 600) == (700.0, 585.0)


def test_menu_particles_are_anchored_by_category():
    rng = np.random.default_rng(0)
    particles = menu_particles(CATALOG, CATEGORIES, 840, 600, 32, rng)
    assert [p.group for p in particles] == ["programming", "statistics", "other"]
    assert np.allclose(particles[1].anchor, [700.0, 150.0])
    assert all(0 <= p.position[0] <= 840 and 0 <= p.position[1] <= 600 for p in particles)
    assert particles[2].metadata is CATALOG[2]


def test_menu_particles_reject_unknown_type():
    with pytest.raises(ValueError):
        menu_particles([{"name": "X", "type": "pastry"}], CATEGORIES, 840, 600, 32, np.random.default_rng(0))


def test_plate_particle_is_anchored_at_centre_without_position():
    p = plate_particle(CATALOG[0], 440, 600, 32)
    assert np.allclose(p.anchor, [220.0, 300.0])
    assert p.position is None
    assert p.group == "programming"


def test_default_selection_counts_occurrences():
    selection = default_selection(CATALOG, ["CMPE 107", "AMS 131", "CMPE 107", "missing"])
    assert [r["name"] for r in selection] == ["AMS 131", "CMPE 107", "CMPE 107"]
