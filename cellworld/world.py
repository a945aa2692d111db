"""
Cellworld world state.

Holds the grid, the organism registry and its spatial index, the fossil
record, wall bookkeeping and world-level counters. The SimulationClock
advances it; the WorldSerializer saves and restores it.
"""

from typing import List, Optional, Set, Tuple

from loguru import logger

from .data_types import Cell, CellState, Hyperparameters, WorldConfig
from .fossil_record import FossilRecord
from .grid import GridMap
from .organism import Organism
from .registry import OrganismRegistry
from .render import HeadlessRenderer
from .rng import make_rng
from .spatial import SpatialIndex
from .spawning import default_anatomy


class CellWorld:
    """
    World environment for cellworld simulation.

    Shared aggregates (total_mutability, population) are owned by the
    registry; this class exposes them read-only.
    """

    def __init__(
        self,
        hyperparams: Optional[Hyperparameters] = None,
        config: Optional[WorldConfig] = None,
        renderer=None,
        bucket_size: Optional[int] = None
    ):
        """
        Args:
            hyperparams: Evolution controls (default: Hyperparameters())
            config: World switches and dimensions (default: WorldConfig())
            renderer: Render collaborator (default: HeadlessRenderer)
            bucket_size: Override spatial bucket size (for testing)
        """
        self.hyperparams = hyperparams if hyperparams is not None else Hyperparameters()
        self.config = config if config is not None else WorldConfig()
        self.renderer = renderer if renderer is not None else HeadlessRenderer()
        self.rng = make_rng(self.config.seed, "world")

        self.grid_map = GridMap(self.config.cols, self.config.rows, self.config.cell_size)
        self.registry = OrganismRegistry(self.hyperparams, SpatialIndex(bucket_size))
        self.walls: List[Cell] = []
        self.reset_count: int = 0
        self.total_ticks: int = 0
        self.fossil_record = FossilRecord(self)

        logger.info(f"World created: {self.grid_map.cols}x{self.grid_map.rows} "
                    f"cell_size={self.grid_map.cell_size} seed={self.config.seed}")

    # ------------------------------------------------------------------
    # Read-only aggregates
    # ------------------------------------------------------------------

    @property
    def organisms(self) -> List[Organism]:
        return self.registry.organisms

    @property
    def total_mutability(self) -> float:
        return self.registry.total_mutability

    @property
    def largest_cell_count(self) -> int:
        return self.registry.largest_cell_count

    # ------------------------------------------------------------------
    # Organisms
    # ------------------------------------------------------------------

    def can_add_organism(self) -> bool:
        return self.registry.can_add()

    def add_organism(self, organism: Organism):
        """Register organism, then stamp its footprint onto the grid"""
        self.registry.add(organism)
        organism.update_grid()

    def average_mutability(self) -> float:
        return self.registry.average_mutability()

    def nearby_organisms(self, c: int, r: int) -> Set[Organism]:
        """Organisms anchored within the 3x3 bucket neighborhood of (c, r)"""
        return self.registry.spatial.query_neighborhood(c, r)

    def origin_of_life(self) -> Optional[Organism]:
        """
        Plant a founding organism at the grid center.

        Returns:
            The organism, or None if the population cap forbids it
        """
        if not self.can_add_organism():
            logger.warning("Origin of life skipped: population cap reached")
            return None

        c, r = self.grid_map.get_center()
        organism = Organism(c, r, self, anatomy=default_anatomy())
        self.add_organism(organism)
        self.fossil_record.add_species(organism, None)
        return organism

    def clear_organisms(self):
        """Kill every organism and empty the registry"""
        for organism in list(self.registry):
            organism.die()
        self.registry.clear()

    def clear_dead_organisms(self) -> int:
        """Remove organisms whose living flag is False; returns count removed"""
        to_remove = [i for i, organism in enumerate(self.registry) if not organism.living]
        self.registry.remove_batch(to_remove)
        return len(to_remove)

    # ------------------------------------------------------------------
    # Grid
    # ------------------------------------------------------------------

    def change_cell(self, c: int, r: int, state: CellState, owner=None):
        """Set cell state/owner and queue it for rendering"""
        cell = self.grid_map.cell_at(c, r)
        cell.state = state
        cell.owner = owner
        self.renderer.add_to_render(cell)
        if state == CellState.WALL and cell not in self.walls:
            self.walls.append(cell)

    def clear_walls(self):
        for wall in self.walls:
            if wall.state == CellState.WALL:
                self.change_cell(wall.col, wall.row, CellState.EMPTY, None)
        self.walls = []

    def wall_coords(self) -> Set[Tuple[int, int]]:
        return {(wall.col, wall.row) for wall in self.walls if wall.state == CellState.WALL}

    def resize_grid(self, cols: int, rows: int, cell_size: int):
        """
        Reallocate the grid. Organisms and walls are dropped with it.

        Raises:
            ValueError: If dimensions are not positive
        """
        self.grid_map.resize(cols, rows, cell_size)
        self.registry.clear()
        self.walls = []
        self.render_full()

    def render_full(self):
        self.renderer.render_full_grid(self.grid_map.all_cells())


