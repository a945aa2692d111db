"""
Spatial bucket index for organism neighbor queries.

A uniform bucket hash over organism anchor positions, independent of the
grid. Every organism is registered in the full 3x3 neighborhood of buckets
around its anchor so that organisms near a bucket boundary still find each
other with a single-bucket lookup.
"""

from typing import Dict, Iterator, List, Optional, Set, Tuple

from .constants import BUCKET_SIZE

BucketKey = Tuple[int, int]


def bucket_key(c: int, r: int, size: int = BUCKET_SIZE) -> BucketKey:
    """
    Bucket containing grid coordinate (c, r).

    Uses floor division, so negative coordinates map to negative buckets.
    """
    return (c // size, r // size)


def neighborhood_keys(key: BucketKey) -> List[BucketKey]:
    """The 9 bucket keys of the 3x3 neighborhood centered on key"""
    bc, br = key
    return [(bc + dc, br + dr) for dc in (-1, 0, 1) for dr in (-1, 0, 1)]


class SpatialIndex:
    """
    Bucket hash from (bucket_col, bucket_row) to a set of organisms.

    The anchor bucket used at insert time is remembered per organism, so
    removal cleans the same 9 buckets even if the organism moved without
    being re-indexed. Removal of an absent organism is a no-op.
    """

    def __init__(self, bucket_size: Optional[int] = None):
        """
        Args:
            bucket_size: Override BUCKET_SIZE constant (for testing)
        """
        self.bucket_size = bucket_size if bucket_size is not None else BUCKET_SIZE
        self._buckets: Dict[BucketKey, Set] = {}
        self._anchor_of: Dict[int, BucketKey] = {}  # id(organism) -> anchor key

    def key_for(self, c: int, r: int) -> BucketKey:
        return bucket_key(c, r, self.bucket_size)

    def insert(self, organism):
        """Add organism to every bucket in the 3x3 neighborhood of its anchor"""
        if id(organism) in self._anchor_of:
            self.remove(organism)

        anchor = self.key_for(organism.c, organism.r)
        for key in neighborhood_keys(anchor):
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = set()
                self._buckets[key] = bucket
            bucket.add(organism)
        self._anchor_of[id(organism)] = anchor

    def remove(self, organism):
        """Remove organism from the 3x3 neighborhood it was inserted into"""
        anchor = self._anchor_of.pop(id(organism), None)
        if anchor is None:
            anchor = self.key_for(organism.c, organism.r)

        for key in neighborhood_keys(anchor):
            bucket = self._buckets.get(key)
            if bucket is None:
                continue
            bucket.discard(organism)
            if not bucket:
                del self._buckets[key]

    def relocate(self, organism):
        """Re-index organism at its current anchor position"""
        self.remove(organism)
        self.insert(organism)

    def query(self, c: int, r: int) -> Set:
        """Organisms registered in the single bucket containing (c, r)"""
        return set(self._buckets.get(self.key_for(c, r), ()))

    def query_neighborhood(self, c: int, r: int) -> Set:
        """Union of the 3x3 bucket neighborhood around (c, r)"""
        found = set()
        for key in neighborhood_keys(self.key_for(c, r)):
            bucket = self._buckets.get(key)
            if bucket:
                found |= bucket
        return found

    def buckets_containing(self, organism) -> Set[BucketKey]:
        return {key for key, bucket in self._buckets.items() if organism in bucket}

    def anchor_of(self, organism) -> Optional[BucketKey]:
        return self._anchor_of.get(id(organism))

    def clear(self):
        self._buckets.clear()
        self._anchor_of.clear()

    def bucket_keys(self) -> Iterator[BucketKey]:
        return iter(self._buckets)

    def __contains__(self, organism) -> bool:
        return id(organism) in self._anchor_of

    def __len__(self) -> int:
        """Number of indexed organisms"""
        return len(self._anchor_of)
