"""
Spatial bucket index: addressing, 3x3 registration and idempotent removal.
"""

from cellworld.organism import Organism
from cellworld.spatial import SpatialIndex, bucket_key, neighborhood_keys


def _organism(c, r):
    return Organism(c, r, world=None)


def test_bucket_key_floor_division():
    assert bucket_key(0, 0, 20) == (0, 0)
    assert bucket_key(19, 19, 20) == (0, 0)
    assert bucket_key(20, 39, 20) == (1, 1)
    assert bucket_key(-1, -20, 20) == (-1, -1)
    assert bucket_key(-21, 5, 20) == (-2, 0)


def test_neighborhood_keys():
    keys = neighborhood_keys((1, 1))
    assert len(keys) == 9
    assert set(keys) == {(c, r) for c in (0, 1, 2) for r in (0, 1, 2)}


def test_insert_registers_full_neighborhood():
    index = SpatialIndex(bucket_size=20)
    org = _organism(25, 25)

    index.insert(org)

    assert index.buckets_containing(org) == set(neighborhood_keys((1, 1)))
    assert org in index
    assert len(index) == 1


def test_query_is_single_bucket():
    index = SpatialIndex(bucket_size=20)
    org = _organism(25, 25)
    index.insert(org)

    assert org in index.query(25, 25)
    assert org in index.query(0, 0)        # bucket (0, 0) is a neighbor of (1, 1)
    assert org in index.query(59, 59)      # bucket (2, 2)
    assert org not in index.query(60, 25)  # bucket (3, 1)


def test_query_returns_copy():
    index = SpatialIndex(bucket_size=20)
    org = _organism(5, 5)
    index.insert(org)

    found = index.query(5, 5)
    found.clear()

    assert org in index.query(5, 5)


def test_neighbors_across_bucket_boundary():
    index = SpatialIndex(bucket_size=20)
    left = _organism(19, 10)
    right = _organism(20, 10)
    index.insert(left)
    index.insert(right)

    assert {left, right} <= index.query(19, 10)
    assert {left, right} <= index.query(20, 10)


def test_bucket_addressing_after_move():
    """Organism moved from (25, 25) to (5, 5) is re-addressed to bucket (0, 0)"""
    index = SpatialIndex(bucket_size=20)
    org = _organism(25, 25)
    index.insert(org)
    assert org in index.query_neighborhood(25, 25)
    assert org in index.query(45, 45)  # bucket (2, 2) only covers (1, 1)'s neighborhood

    org.c, org.r = 5, 5
    index.relocate(org)

    assert org in index.query_neighborhood(5, 5)
    assert org in index.query(5, 5)
    assert org not in index.query(45, 45)
    assert index.buckets_containing(org) == set(neighborhood_keys((0, 0)))


def test_remove_uses_insert_anchor():
    """Moving without re-indexing must not strand the organism in old buckets"""
    index = SpatialIndex(bucket_size=20)
    org = _organism(25, 25)
    index.insert(org)

    org.c, org.r = 105, 105
    index.remove(org)

    assert index.buckets_containing(org) == set()
    assert len(index) == 0
    assert list(index.bucket_keys()) == []


def test_remove_is_idempotent():
    index = SpatialIndex(bucket_size=20)
    org = _organism(25, 25)
    other = _organism(26, 26)
    index.insert(other)

    index.remove(org)
    index.insert(org)
    index.remove(org)
    index.remove(org)

    assert org not in index
    assert other in index.query(25, 25)


def test_double_insert_does_not_duplicate():
    index = SpatialIndex(bucket_size=20)
    org = _organism(25, 25)
    index.insert(org)
    org.c = 65
    index.insert(org)

    assert len(index) == 1
    assert index.buckets_containing(org) == set(neighborhood_keys((3, 1)))


def test_clear():
    index = SpatialIndex(bucket_size=20)
    for i in range(5):
        index.insert(_organism(i * 30, i * 30))

    index.clear()

    assert len(index) == 0
    assert index.query(0, 0) == set()
