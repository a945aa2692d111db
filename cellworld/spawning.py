"""
Organism spawning helpers.

Origin-of-life anatomy and deterministic population seeding on empty
grid locations (tests, scripts and world setup).
"""

from typing import List

from loguru import logger

from .data_types import CellState
from .organism import Anatomy, Organism
from .rng import make_rng


def default_anatomy() -> Anatomy:
    """Founding anatomy: a mouth flanked by two diagonal producers"""
    anatomy = Anatomy()
    anatomy.add_default_cell(CellState.MOUTH, 0, 0)
    anatomy.add_default_cell(CellState.PRODUCER, 1, 1)
    anatomy.add_default_cell(CellState.PRODUCER, -1, -1)
    return anatomy


def seed_population(world, count: int, seed: int = 0, max_attempts_factor: int = 20) -> List[Organism]:
    """
    Scatter default-anatomy organisms over clear grid locations.

    All seeded organisms share one new species. Placement stops early when
    the population cap is reached or no clear location is found.

    Args:
        world: CellWorld to populate
        count: Number of organisms wanted
        seed: RNG seed for placement
        max_attempts_factor: Placement attempts allowed per organism

    Returns:
        List of organisms added
    """
    rng = make_rng(seed, "seed_population", count)
    grid_map = world.grid_map
    spawned = []
    species = None

    attempts = 0
    while len(spawned) < count and attempts < count * max_attempts_factor:
        attempts += 1
        if not world.can_add_organism():
            logger.warning(f"Seeding stopped at {len(spawned)} organisms: population cap reached")
            break

        c = int(rng.integers(1, max(2, grid_map.cols - 1)))
        r = int(rng.integers(1, max(2, grid_map.rows - 1)))
        organism = Organism(c, r, world, anatomy=default_anatomy())
        if not organism.is_clear():
            continue

        world.add_organism(organism)
        if species is None:
            species = world.fossil_record.add_species(organism, None)
        else:
            organism.species = species
            species.add_pop()
        spawned.append(organism)

    if len(spawned) < count:
        logger.warning(f"Seeded {len(spawned)}/{count} organisms (grid too crowded)")

    return spawned
