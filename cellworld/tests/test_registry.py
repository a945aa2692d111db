"""
Organism registry: batch removal, aggregates and extinction notification.

Verifies:
- total_mutability tracks the live population across add/remove
- Population cap gate and duplicate rejection
- Swap-remove batch eviction keeps the spatial index consistent
- Extinction is announced exactly once per emptying
"""

import pytest

from cellworld.data_types import CellState, Hyperparameters
from cellworld.organism import Organism
from cellworld.registry import DuplicateOrganismError, OrganismRegistry, PopulationCapError
from cellworld.spatial import SpatialIndex
from cellworld.spawning import default_anatomy


def _registry(max_organisms=-1, **kwargs):
    return OrganismRegistry(Hyperparameters(max_organisms=max_organisms, **kwargs), SpatialIndex(bucket_size=20))


def _organism(c, r, mutability=5.0):
    return Organism(c, r, world=None, mutability=mutability, anatomy=default_anatomy())


def _populate(registry, count, mutability=5.0):
    organisms = [_organism(10 + i * 7, 10 + i * 3, mutability + i) for i in range(count)]
    for organism in organisms:
        registry.add(organism)
    return organisms


def test_mutability_conservation():
    """total_mutability equals the live sum after adds and removals"""
    registry = _registry()
    organisms = _populate(registry, 6)

    assert registry.total_mutability == pytest.approx(sum(o.mutability for o in organisms))

    removed = registry.remove_batch([1, 4])
    alive = [o for o in organisms if o not in removed]

    assert len(registry) == 4
    assert registry.total_mutability == pytest.approx(sum(o.mutability for o in alive))
    registry.check_invariants()
    print(f"[OK] total_mutability = {registry.total_mutability:.1f} after removing 2 of 6")


def test_remove_batch_removes_exact_set():
    registry = _registry()
    organisms = _populate(registry, 5)

    removed = registry.remove_batch([0, 2, 4])

    assert set(removed) == {organisms[0], organisms[2], organisms[4]}
    assert set(registry) == {organisms[1], organisms[3]}
    for organism in removed:
        assert organism not in registry
        assert organism not in registry.spatial
        assert registry.spatial.buckets_containing(organism) == set()
    registry.check_invariants()


def test_remove_batch_ignores_duplicate_indices():
    registry = _registry()
    organisms = _populate(registry, 3)

    removed = registry.remove_batch([1, 1, 1])

    assert removed == [organisms[1]]
    assert len(registry) == 2
    registry.check_invariants()


def test_remove_batch_empty_is_noop():
    registry = _registry()
    _populate(registry, 4)
    before_list = list(registry.organisms)
    before_buckets = {key: set(bucket) for key, bucket in registry.spatial._buckets.items()}
    before_mutability = registry.total_mutability

    assert registry.remove_batch([]) == []

    assert registry.organisms == before_list
    assert registry.spatial._buckets == before_buckets
    assert registry.total_mutability == before_mutability


def test_remove_batch_out_of_range_changes_nothing():
    registry = _registry()
    _populate(registry, 3)

    with pytest.raises(IndexError):
        registry.remove_batch([0, 3])

    assert len(registry) == 3
    registry.check_invariants()


@pytest.mark.parametrize("cap, existing, allowed", [
    pytest.param(-1, 50, True, id="uncapped"),
    pytest.param(0, 0, False, id="zero_cap"),
    pytest.param(3, 2, True, id="below_cap"),
    pytest.param(3, 3, False, id="at_cap"),
])
def test_capacity_gate(cap, existing, allowed):
    registry = _registry(max_organisms=-1)
    _populate(registry, existing)
    registry.hyperparams.max_organisms = cap

    assert registry.can_add() is allowed

    extra = _organism(500, 500)
    if allowed:
        registry.add(extra)
        assert extra in registry
    else:
        with pytest.raises(PopulationCapError):
            registry.add(extra)
        assert len(registry) == existing


def test_duplicate_add_rejected():
    registry = _registry()
    organism = _organism(5, 5)
    registry.add(organism)

    with pytest.raises(DuplicateOrganismError):
        registry.add(organism)

    assert len(registry) == 1
    assert registry.total_mutability == pytest.approx(organism.mutability)


def test_extinction_emitted_once():
    registry = _registry()
    _populate(registry, 3)
    calls = []
    registry.subscribe_extinction(lambda: calls.append(len(registry)))

    registry.remove_batch([0, 1])
    assert calls == []

    registry.remove_batch([0])
    assert calls == [0]

    # Already empty: no second notification
    registry.remove_batch([])
    assert calls == [0]


def test_clear_is_silent():
    registry = _registry()
    _populate(registry, 3)
    calls = []
    registry.subscribe_extinction(lambda: calls.append(1))

    registry.clear()

    assert len(registry) == 0
    assert registry.total_mutability == 0.0
    assert len(registry.spatial) == 0
    assert calls == []


def test_unsubscribe_extinction():
    registry = _registry()
    _populate(registry, 1)
    calls = []

    def listener():
        calls.append(1)

    registry.subscribe_extinction(listener)
    registry.subscribe_extinction(listener)
    registry.unsubscribe_extinction(listener)
    registry.remove_batch([0])

    assert calls == []


def test_largest_cell_count_tracks_adds():
    registry = _registry()
    small = Organism(5, 5, world=None, anatomy=default_anatomy())
    big_anatomy = default_anatomy()
    big_anatomy.add_default_cell(CellState.ARMOR, 2, 2)
    big = Organism(50, 50, world=None, anatomy=big_anatomy)

    registry.add(small)
    assert registry.largest_cell_count == 3
    registry.add(big)
    assert registry.largest_cell_count == 4

    # Historical maximum survives removal
    registry.remove_batch([registry.index_of(big)])
    assert registry.largest_cell_count == 4


def test_average_mutability_modes():
    registry = _registry(global_mutability=12.0)
    assert registry.average_mutability() == 0.0

    registry.add(_organism(5, 5, mutability=4.0))
    registry.add(_organism(50, 50, mutability=8.0))
    assert registry.average_mutability() == pytest.approx(6.0)

    registry.hyperparams.use_global_mutability = True
    assert registry.average_mutability() == 12.0


def test_relocate_reindexes():
    registry = _registry()
    organism = _organism(25, 25)
    registry.add(organism)

    registry.relocate(organism, 5, 5)

    assert registry.spatial.anchor_of(organism) == (0, 0)
    registry.check_invariants()


def test_mutability_underflow_clamps(monkeypatch):
    monkeypatch.delenv("SIM_DEBUG_INVARIANTS", raising=False)
    registry = _registry()
    organism = _organism(5, 5, mutability=2.0)
    registry.add(organism)

    # Mutability raised behind the registry's back
    organism.mutability = 10.0
    registry.remove_batch([0])

    assert registry.total_mutability == 0.0


def test_mutability_underflow_asserts_in_debug(monkeypatch):
    monkeypatch.setenv("SIM_DEBUG_INVARIANTS", "1")
    registry = _registry()
    organism = _organism(5, 5, mutability=2.0)
    registry.add(organism)

    organism.mutability = 10.0
    with pytest.raises(AssertionError):
        registry.remove_batch([0])


def test_debug_invariants_pass_through_churn(monkeypatch):
    monkeypatch.setenv("SIM_DEBUG_INVARIANTS", "1")
    registry = _registry()
    _populate(registry, 10)

    registry.remove_batch([9, 0, 5])
    registry.add(_organism(300, 300))
    registry.remove_batch(range(len(registry)))

    assert len(registry) == 0
    assert registry.total_mutability == 0.0
    assert list(registry.spatial.bucket_keys()) == []
