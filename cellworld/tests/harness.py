"""
Synthetic world test harness.

Builds small, seeded worlds and organisms for tests and performance runs
without loading a settings file.
"""

from pathlib import Path
from typing import Optional

from cellworld.data_types import CellState, Hyperparameters, WorldConfig
from cellworld.organism import Anatomy, Organism
from cellworld.simulation import SimulationClock
from cellworld.spawning import default_anatomy, seed_population
from cellworld.world import CellWorld

DATA_ROOT = Path(__file__).parent.parent.parent / "data"


def build_world(
    cols: int = 60,
    rows: int = 60,
    seed: int = 42,
    bucket_size: Optional[int] = None,
    config: Optional[dict] = None,
    **hyperparams
) -> CellWorld:
    """
    Build an empty world.

    Args:
        cols, rows: Grid dimensions
        seed: World seed
        bucket_size: Spatial bucket size override
        config: Extra WorldConfig fields (auto_reset, confirm_reset, ...)
        **hyperparams: Hyperparameters overrides (food_drop_prob=0.5, ...)

    Returns:
        CellWorld with no organisms
    """
    hp = Hyperparameters()
    hp.load_json_obj(hyperparams)
    world_config = WorldConfig(cols=cols, rows=rows, cell_size=5, seed=seed, **(config or {}))
    return CellWorld(hp, world_config, bucket_size=bucket_size)


def build_clock(**kwargs) -> SimulationClock:
    """World + clock, no controller attached"""
    return SimulationClock(build_world(**kwargs))


def make_organism(
    world: CellWorld,
    c: int,
    r: int,
    mutability: float = 5.0,
    anatomy: Optional[Anatomy] = None,
    add: bool = True
) -> Organism:
    """
    Create an organism; by default add it to the world with a fresh species.
    """
    organism = Organism(c, r, world, mutability=mutability,
                        anatomy=anatomy if anatomy is not None else default_anatomy())
    if add:
        world.add_organism(organism)
        world.fossil_record.add_species(organism, None)
    return organism


def single_cell_anatomy(state: CellState = CellState.MOUTH) -> Anatomy:
    anatomy = Anatomy()
    anatomy.add_default_cell(state, 0, 0)
    return anatomy


def build_perf_scenario(N: int, cols: int = 200, rows: int = 200, seed: int = 42) -> SimulationClock:
    """
    Build a seeded scenario with up to N default-anatomy organisms.

    Args:
        N: Organism count wanted
        cols, rows: Grid dimensions
        seed: Placement seed

    Returns:
        SimulationClock over the populated world
    """
    world = build_world(cols=cols, rows=rows, seed=seed, food_drop_prob=0.2)
    spawned = seed_population(world, N, seed=seed)
    print(f"[Perf Harness] Seeded {len(spawned)}/{N} organisms on {cols}x{rows} grid")
    return SimulationClock(world)


if __name__ == "__main__":
    # Quick test
    clock = build_perf_scenario(N=500)

    print(f"\n[Test] Running 10 ticks...")
    for i in range(10):
        clock.tick()

    stats = clock.get_tick_stats()
    print(f"[OK] {stats['tick_count']} ticks completed")
    print(f"  Avg tick: {stats['avg_tick_time_ms']:.3f} ms")
