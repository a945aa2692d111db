"""
Fossil record: lineage and population statistics over time.

Tracks extant and extinct species and appends a statistics row every
data_update_rate ticks. The world calls into the record; the record only
reads world aggregates back.
"""

from typing import Dict, List, Optional

from loguru import logger

from .constants import FOSSIL_MIN_POPULATION, FOSSIL_RECORD_SIZE, SPECIES_NAME_LENGTH
from .rng import random_name
from .species import Species

RECORD_FIELDS = ('ticks', 'population', 'species_count', 'average_mutability', 'largest_cell_count')


class FossilRecord:
    """
    Lineage collaborator for a single world.

    Species are keyed by their stable numeric species_id. Names are unique
    among species the record currently holds.
    """

    def __init__(self, world, min_population: int = FOSSIL_MIN_POPULATION,
                 record_size: int = FOSSIL_RECORD_SIZE):
        """
        Args:
            world: Owning CellWorld (read for tick, population and rng)
            min_population: Extinct species below this cumulative population are discarded
            record_size: Maximum statistics rows kept
        """
        self.world = world
        self.min_population = min_population
        self.record_size = record_size
        self.extant_species: Dict[int, Species] = {}
        self.extinct_species: Dict[int, Species] = {}
        self.records: Dict[str, List] = {}
        self.next_species_id = 0
        self.clear_record()

    def clear_record(self):
        self.extant_species = {}
        self.extinct_species = {}
        self.records = {name: [] for name in RECORD_FIELDS}
        self.next_species_id = 0

    # ------------------------------------------------------------------
    # Species bookkeeping
    # ------------------------------------------------------------------

    def _assign_id(self, species: Species):
        if species.species_id < 0:
            species.species_id = self.next_species_id
        self.next_species_id = max(self.next_species_id, species.species_id + 1)

    def _unique_name(self) -> str:
        taken = self.species_names()
        while True:
            name = random_name(self.world.rng, SPECIES_NAME_LENGTH)
            if name not in taken:
                return name

    def species_names(self) -> set:
        names = {s.name for s in self.extant_species.values()}
        names.update(s.name for s in self.extinct_species.values())
        return names

    def add_species(self, organism, ancestor: Optional[Species]) -> Species:
        """
        Start a new species with organism as its first member.

        Args:
            organism: Founding organism (its anatomy becomes the template)
            ancestor: Parent species, or None for origin of life

        Returns:
            The new Species (also assigned to organism.species)
        """
        species = Species(organism.anatomy.copy(), ancestor, self.world.total_ticks)
        self._assign_id(species)
        species.name = self._unique_name()
        species.add_pop()
        self.extant_species[species.species_id] = species
        organism.species = species
        return species

    def add_species_obj(self, species: Species):
        """Register an already-built species (used when restoring snapshots)"""
        self._assign_id(species)
        if not species.name:
            species.name = self._unique_name()
        if species.extinct:
            self.extinct_species[species.species_id] = species
        else:
            self.extant_species[species.species_id] = species

    def fossilize(self, species: Species) -> bool:
        """
        Move an extant species to the extinct set.

        Returns:
            True if kept as a fossil, False if discarded for low population
        """
        self.extant_species.pop(species.species_id, None)
        species.extinct = True
        species.end_tick = self.world.total_ticks
        if species.cumulative_pop < self.min_population:
            return False
        self.extinct_species[species.species_id] = species
        return True

    def species_by_id(self, species_id: int) -> Optional[Species]:
        species = self.extant_species.get(species_id)
        if species is None:
            species = self.extinct_species.get(species_id)
        return species

    def species_by_name(self, name: str) -> Optional[Species]:
        for species in self.extant_species.values():
            if species.name == name:
                return species
        for species in self.extinct_species.values():
            if species.name == name:
                return species
        return None

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def update_data(self):
        """Append a statistics row for the current tick"""
        registry = self.world.registry
        row = {
            'ticks': self.world.total_ticks,
            'population': len(registry),
            'species_count': len(self.extant_species),
            'average_mutability': float(registry.average_mutability()),
            'largest_cell_count': registry.largest_cell_count,
        }
        for name, value in row.items():
            column = self.records[name]
            column.append(value)
            if len(column) > self.record_size:
                del column[0]

        logger.debug(f"Stats @ tick {row['ticks']}: pop={row['population']} "
                     f"species={row['species_count']} mut={row['average_mutability']:.2f}")

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self) -> dict:
        return {
            'species': {s.name: s.to_dict() for s in self.extant_species.values()},
            'extinct_species': {s.name: s.to_dict() for s in self.extinct_species.values()},
            'records': {name: list(values) for name, values in self.records.items()},
            'next_species_id': self.next_species_id,
        }

    def load_raw(self, data: dict):
        """
        Load bookkeeping other than the extant species table.

        Extant species are rebuilt and registered by the serializer via
        add_species_obj before this is called.
        """
        for name, stats in data.get('extinct_species', {}).items():
            species = Species(None, None, stats.get('start_tick', 0))
            species.overwrite_stats(stats)
            species.name = name
            species.extinct = True
            species.population = 0
            if species.species_id < 0 or self.species_by_id(species.species_id) is None:
                self.add_species_obj(species)

        records = data.get('records', {})
        for name in RECORD_FIELDS:
            self.records[name] = list(records.get(name, []))[-self.record_size:]

        self.next_species_id = max(self.next_species_id, data.get('next_species_id', 0))
