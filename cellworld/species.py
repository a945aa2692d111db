"""
Species lineage record.

A species groups organisms sharing an anatomy template. Species outlive
individual organisms and are owned by the fossil record.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


# Fields copied verbatim to and from snapshots
SPECIES_STAT_FIELDS = (
    'species_id', 'name', 'population', 'cumulative_pop',
    'start_tick', 'end_tick', 'extinct', 'ancestor_name', 'cell_counts'
)


@dataclass(eq=False)
class Species:
    """
    Named lineage grouping.

    Attributes:
        anatomy: Anatomy template (None until backfilled during restore)
        ancestor: Parent Species, or None for origin species
        start_tick: World tick at first appearance
        species_id: Stable numeric id assigned by the fossil record (-1 = unassigned)
        name: Human-readable unique name
        population: Live organisms of this species
        cumulative_pop: Organisms ever born into this species
        end_tick: Tick of extinction (None while extant)
        extinct: True once fossilized
        cell_counts: {state value: count} over the anatomy template
    """
    anatomy: Optional[Any]
    ancestor: Optional['Species']
    start_tick: int
    species_id: int = -1
    name: str = ""
    population: int = 0
    cumulative_pop: int = 0
    end_tick: Optional[int] = None
    extinct: bool = False
    ancestor_name: Optional[str] = None
    cell_counts: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        if self.ancestor is not None and self.ancestor_name is None:
            self.ancestor_name = self.ancestor.name
        if self.anatomy is not None:
            self.calc_anatomy_details()

    def calc_anatomy_details(self):
        """Recompute per-state cell counts from the anatomy template"""
        counts: Dict[str, int] = {}
        if self.anatomy is not None:
            for anatomy_cell in self.anatomy.cells:
                counts[anatomy_cell.state.value] = counts.get(anatomy_cell.state.value, 0) + 1
        self.cell_counts = counts

    def add_pop(self):
        self.population += 1
        self.cumulative_pop += 1

    def decrease_pop(self) -> int:
        """Decrement population; returns the new population"""
        self.population = max(0, self.population - 1)
        return self.population

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in SPECIES_STAT_FIELDS}

    def overwrite_stats(self, data: Dict[str, Any]):
        """Copy scalar stats from serialized form (anatomy is untouched)"""
        for name in SPECIES_STAT_FIELDS:
            if name in data:
                value = data[name]
                setattr(self, name, dict(value) if isinstance(value, dict) else value)
