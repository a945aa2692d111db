"""
Organism registry: the live population and its derived aggregates.

The registry is the only writer of total_mutability and population count.
It keeps the spatial index in step with membership and notifies
subscribers when the population goes extinct, leaving the response
(pause, reset) to external control logic.
"""

import os
from typing import Callable, Iterable, Iterator, List

from loguru import logger

from .constants import DEBUG_INVARIANTS_ENV
from .spatial import SpatialIndex, neighborhood_keys


class PopulationCapError(RuntimeError):
    """Raised when add() is called while the population is at its cap"""
    pass


class DuplicateOrganismError(ValueError):
    """Raised when an organism is added to the registry twice"""
    pass


def _debug_invariants() -> bool:
    return os.getenv(DEBUG_INVARIANTS_ENV) == '1'


class OrganismRegistry:
    """
    Live organism collection.

    Invariants after every mutation:
    - total_mutability == max(0, sum of live mutability)
    - every organism is in exactly the 9 buckets around its anchor bucket
    - no organism appears twice
    """

    def __init__(self, hyperparams, spatial: SpatialIndex = None):
        """
        Args:
            hyperparams: Hyperparameters (population cap, global mutability)
            spatial: Spatial index to maintain (default: new SpatialIndex)
        """
        self.hyperparams = hyperparams
        self.spatial = spatial if spatial is not None else SpatialIndex()
        self.organisms: List = []
        self._members = set()
        self.total_mutability: float = 0.0
        self.largest_cell_count: int = 0
        self._extinction_listeners: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.organisms)

    def __iter__(self) -> Iterator:
        return iter(self.organisms)

    def __getitem__(self, index: int):
        return self.organisms[index]

    def __contains__(self, organism) -> bool:
        return organism in self._members

    def index_of(self, organism) -> int:
        for i, candidate in enumerate(self.organisms):
            if candidate is organism:
                return i
        raise ValueError("Organism is not registered")

    # ------------------------------------------------------------------
    # Extinction notification
    # ------------------------------------------------------------------

    def subscribe_extinction(self, callback: Callable[[], None]):
        if callback not in self._extinction_listeners:
            self._extinction_listeners.append(callback)

    def unsubscribe_extinction(self, callback: Callable[[], None]):
        if callback in self._extinction_listeners:
            self._extinction_listeners.remove(callback)

    def _emit_extinction(self):
        logger.info("Population extinct")
        for callback in list(self._extinction_listeners):
            callback()

    # ------------------------------------------------------------------
    # Add / remove
    # ------------------------------------------------------------------

    def can_add(self) -> bool:
        cap = self.hyperparams.max_organisms
        return cap < 0 or len(self.organisms) < cap

    def add(self, organism):
        """
        Register a live organism.

        Raises:
            PopulationCapError: If can_add() is False
            DuplicateOrganismError: If organism is already registered
        """
        if not self.can_add():
            raise PopulationCapError(
                f"Population cap {self.hyperparams.max_organisms} reached; check can_add() first")
        if organism in self._members:
            raise DuplicateOrganismError("Organism is already registered")

        self.organisms.append(organism)
        self._members.add(organism)
        self.spatial.insert(organism)
        self.total_mutability += organism.mutability

        cell_count = len(organism.anatomy.cells)
        if cell_count > self.largest_cell_count:
            self.largest_cell_count = cell_count

        if _debug_invariants():
            self.check_invariants()

    def remove_batch(self, indices: Iterable[int]) -> List:
        """
        Evict organisms by position in the live collection, in one pass.

        Indices are applied in descending order with swap-remove, so
        removing one never shifts a position still waiting to be removed.

        Args:
            indices: Positions into self.organisms (duplicates ignored)

        Returns:
            Removed organisms
        """
        ordered = sorted(set(indices), reverse=True)
        if not ordered:
            return []
        if ordered[0] >= len(self.organisms) or ordered[-1] < 0:
            raise IndexError(f"Removal indices {ordered[-1]}..{ordered[0]} outside population of {len(self.organisms)}")

        start_pop = len(self.organisms)
        removed = []
        removed_mutability = 0.0

        for i in ordered:
            organism = self.organisms[i]
            last = self.organisms.pop()
            if i < len(self.organisms):
                self.organisms[i] = last

            self._members.discard(organism)
            self.spatial.remove(organism)
            removed_mutability += organism.mutability
            removed.append(organism)

        self.total_mutability -= removed_mutability
        if self.total_mutability < 0:
            # Anything beyond float drift means double accounting somewhere
            if self.total_mutability < -1e-9:
                if _debug_invariants():
                    raise AssertionError(f"total_mutability underflow: {self.total_mutability}")
                logger.warning(f"total_mutability underflow ({self.total_mutability:.6f}), clamping to 0")
            self.total_mutability = 0.0

        if _debug_invariants():
            self.check_invariants()

        if start_pop > 0 and not self.organisms:
            self._emit_extinction()

        return removed

    def clear(self):
        """Drop every organism without notifying (reset and restore)"""
        self.organisms = []
        self._members = set()
        self.spatial.clear()
        self.total_mutability = 0.0

    def relocate(self, organism, c: int, r: int):
        """Move a registered organism's anchor and re-index it"""
        organism.c = c
        organism.r = r
        if organism in self._members:
            self.spatial.relocate(organism)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def average_mutability(self) -> float:
        if not self.organisms:
            return 0.0
        if self.hyperparams.use_global_mutability:
            return self.hyperparams.global_mutability
        return self.total_mutability / len(self.organisms)

    def recompute_aggregates(self):
        """Recompute cached aggregates from the live collection"""
        self.total_mutability = max(0.0, sum(o.mutability for o in self.organisms))
        biggest = max((len(o.anatomy.cells) for o in self.organisms), default=0)
        self.largest_cell_count = max(self.largest_cell_count, biggest)

    def check_invariants(self):
        """Assert registry invariants (used when SIM_DEBUG_INVARIANTS=1 and in tests)"""
        assert len(self._members) == len(self.organisms), "duplicate organism in registry"

        expected = max(0.0, sum(o.mutability for o in self.organisms))
        assert abs(self.total_mutability - expected) < 1e-6, \
            f"total_mutability ({self.total_mutability}) != sum ({expected})"

        assert len(self.spatial) == len(self.organisms), \
            f"spatial index size ({len(self.spatial)}) != population ({len(self.organisms)})"
        for organism in self.organisms:
            anchor = self.spatial.anchor_of(organism)
            assert anchor is not None, "registered organism missing from spatial index"
            assert self.spatial.buckets_containing(organism) == set(neighborhood_keys(anchor)), \
                "organism bucket membership does not match its anchor neighborhood"
