import numpy as np
import pytest
from particle import Particle
from particle_set import ParticleSet, InvalidIndex


def _three():
    particle_set = ParticleSet(rng=np.random.default_rng(1))
    for k in range(3):
        particle_set.add(Particle(anchor=(k * 100.0, 0.0), radius=10.0, group="a",
                                  position=(k * 100.0, 5.0), metadata={"name": f"p{k}"}))
    return particle_set


def _names(particle_set):
    return [p.metadata["name"] for p in particle_set.particles()]


def test_add_keeps_given_position():
    particle_set = ParticleSet()
    index = particle_set.add(Particle(anchor=(1.0, 2.0), radius=3.0, group="g", position=(7.0, 8.0)))
    assert index == 0
    assert np.allclose(particle_set.positions[0], [7.0, 8.0])
    assert np.allclose(particle_set.anchors[0], [1.0, 2.0])


def test_add_without_position_spawns_near_spawn_point():
    particle_set = ParticleSet(spawn_point=(220.0, 300.0), spawn_jitter=1.0, rng=np.random.default_rng(2))
    for _ in range(5):
        particle_set.add(Particle(anchor=(220.0, 300.0), radius=32.0, group="g"))
    offsets = particle_set.positions - np.array([220.0, 300.0])
    assert np.all(np.abs(offsets) <= 1.0)
    # Jitter keeps particles spawned together from coinciding
    assert len({tuple(p) for p in particle_set.positions}) == 5


def test_remove_shifts_later_indices():
    particle_set = _three()
    removed = particle_set.remove(1)
    assert removed.metadata["name"] == "p1"
    assert _names(particle_set) == ["p0", "p2"]
    assert np.allclose(particle_set.anchors, [[0.0, 0.0], [200.0, 0.0]])
    assert len(particle_set.radii) == len(particle_set.group_codes) == 2


@pytest.mark.parametrize("index", [5, 3, -1])
def test_remove_out_of_range_raises_without_mutation(index):
    particle_set = _three()
    before = particle_set.positions.copy()
    with pytest.raises(InvalidIndex):
        particle_set.remove(index)
    assert _names(particle_set) == ["p0", "p1", "p2"]
    assert np.array_equal(particle_set.positions, before)


def test_invalid_index_is_an_index_error():
    with pytest.raises(IndexError):
        ParticleSet().remove(0)


def test_clear_removes_everything():
    particle_set = _three()
    particle_set.clear()
    assert len(particle_set) == 0
    assert particle_set.positions.shape == (0, 2)
    assert particle_set.max_radius == 0.0


def test_group_codes_follow_group_values():
    particle_set = ParticleSet()
    for group in ["fruit", "cereal", "fruit"]:
        particle_set.add(Particle(anchor=(0.0, 0.0), radius=1.0, group=group, position=(0.0, 0.0)))
    codes = particle_set.group_codes
    assert codes[0] == codes[2] != codes[1]
    assert particle_set.groups == ["fruit", "cereal", "fruit"]


def test_getitem_returns_a_detached_copy():
    particle_set = _three()
    p = particle_set[0]
    p.position[0] = 999.0
    assert particle_set.positions[0, 0] == 0.0


def test_find_at_prefers_latest_particle():
    particle_set = ParticleSet()
    particle_set.add(Particle(anchor=(0.0, 0.0), radius=10.0, group="a", position=(0.0, 0.0)))
    particle_set.add(Particle(anchor=(0.0, 0.0), radius=10.0, group="a", position=(5.0, 0.0)))
    assert particle_set.find_at((2.0, 0.0)) == 1
    assert particle_set.find_at((-8.0, 0.0)) == 0
    assert particle_set.find_at((100.0, 100.0)) is None
    assert ParticleSet().find_at((0.0, 0.0)) is None


def test_snapshot_is_read_only_copy():
    particle_set = _three()
    snapshot = particle_set.snapshot(tick=4, alpha=0.5)
    assert snapshot.tick == 4 and snapshot.alpha == 0.5
    with pytest.raises(ValueError):
        snapshot.positions[0, 0] = 1.0
    particle_set.positions[0, 0] = 123.0
    assert snapshot.positions[0, 0] == 0.0


@pytest.mark.parametrize("radius", [0.0, -1.0, float("nan")])
def test_particle_rejects_bad_radius(radius):
    with pytest.raises(ValueError):
        Particle(anchor=(0.0, 0.0), radius=radius, group="a")


def test_particle_rejects_malformed_anchor():
    with pytest.raises(ValueError):
        Particle(anchor=(0.0, 0.0, 1.0), radius=1.0, group="a")
