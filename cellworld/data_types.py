"""
Data types mirroring the YAML config and snapshot structures.

These dataclasses are populated by loader.py from YAML files and by
serializer.py from world snapshots.
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Optional
from enum import Enum

from .constants import (
    DEFAULT_COLS,
    DEFAULT_ROWS,
    DEFAULT_CELL_SIZE,
    MAX_ORGANISMS_DEFAULT,
    FOOD_DROP_PROB_DEFAULT,
    USE_GLOBAL_MUTABILITY_DEFAULT,
    GLOBAL_MUTABILITY_DEFAULT,
    LIFESPAN_MULTIPLIER_DEFAULT,
    FOOD_PROD_PROB_DEFAULT,
    ADD_PROB_DEFAULT,
    CHANGE_PROB_DEFAULT,
    REMOVE_PROB_DEFAULT,
    DATA_UPDATE_RATE_DEFAULT,
)


# ============================================================================
# Cell States
# ============================================================================

class CellState(str, Enum):
    """State tag of a grid cell. Values are the names used in snapshots."""
    EMPTY = "empty"
    FOOD = "food"
    WALL = "wall"
    MOUTH = "mouth"
    PRODUCER = "producer"
    MOVER = "mover"
    KILLER = "killer"
    ARMOR = "armor"
    EYE = "eye"

    @property
    def is_organism_part(self) -> bool:
        return self not in (CellState.EMPTY, CellState.FOOD, CellState.WALL)


ORGANISM_STATES = [s for s in CellState if s.is_organism_part]


@dataclass(eq=False)
class Cell:
    """
    Addressable grid cell.

    Cells never move; only state and owner change. Equality is identity so
    cells can live in the renderer's dirty set.

    Attributes:
        col: Column index (matches position in GridMap.grid)
        row: Row index
        state: Current CellState
        owner: Organism that placed this cell, if any
    """
    col: int
    row: int
    state: CellState = CellState.EMPTY
    owner: Optional[Any] = None


# ============================================================================
# Runtime Configuration
# ============================================================================

@dataclass
class Hyperparameters:
    """Evolution controls read by the world every tick"""
    max_organisms: int = MAX_ORGANISMS_DEFAULT  # Negative = uncapped
    food_drop_prob: float = FOOD_DROP_PROB_DEFAULT
    use_global_mutability: bool = USE_GLOBAL_MUTABILITY_DEFAULT
    global_mutability: float = GLOBAL_MUTABILITY_DEFAULT
    lifespan_multiplier: int = LIFESPAN_MULTIPLIER_DEFAULT
    food_prod_prob: float = FOOD_PROD_PROB_DEFAULT  # Percent
    add_prob: float = ADD_PROB_DEFAULT
    change_prob: float = CHANGE_PROB_DEFAULT
    remove_prob: float = REMOVE_PROB_DEFAULT
    data_update_rate: int = DATA_UPDATE_RATE_DEFAULT

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def load_json_obj(self, data: Dict[str, Any]):
        """
        Overwrite known fields from a plain dict.

        Unknown keys are ignored so snapshots from other versions still load.
        """
        known = {f.name for f in fields(self)}
        for key, value in data.items():
            if key in known:
                setattr(self, key, value)


@dataclass
class WorldConfig:
    """World-level switches that are not evolution controls"""
    cols: int = DEFAULT_COLS
    rows: int = DEFAULT_ROWS
    cell_size: int = DEFAULT_CELL_SIZE
    seed: Optional[int] = None
    headless: bool = True
    clear_walls_on_reset: bool = False
    auto_pause: bool = False
    auto_reset: bool = True
    confirm_reset: bool = True  # Destructive resets need explicit confirmation
    start_with_life: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SimulationSettings:
    """Complete runtime settings bundle returned by the loader"""
    hyperparameters: Hyperparameters = field(default_factory=Hyperparameters)
    world: WorldConfig = field(default_factory=WorldConfig)
    description: Optional[str] = None
