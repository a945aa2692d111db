"""
Organism runtime representation.

Organisms are created by the world (origin of life, seeding, reproduction)
and exist on the grid as a footprint of owned cells around an anchor
position. Behavior is deliberately simple: organisms age, mouths eat
adjacent food, producers grow food, and well-fed organisms reproduce with
mutation.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .constants import STARTING_MUTABILITY
from .data_types import Cell, CellState, ORGANISM_STATES

NEIGHBOR_OFFSETS = [(0, -1), (1, 0), (0, 1), (-1, 0)]


@dataclass
class AnatomyCell:
    """A cell of the anatomy template, relative to the organism anchor"""
    state: CellState
    loc_col: int
    loc_row: int

    def to_dict(self) -> dict:
        return {'state': self.state.value, 'loc_col': self.loc_col, 'loc_row': self.loc_row}


@dataclass
class Anatomy:
    """Footprint template: the organism's cells and their states"""
    cells: List[AnatomyCell] = field(default_factory=list)

    def has_cell_at(self, loc_col: int, loc_row: int) -> bool:
        return any(c.loc_col == loc_col and c.loc_row == loc_row for c in self.cells)

    def add_default_cell(self, state: CellState, loc_col: int, loc_row: int) -> AnatomyCell:
        """Add a cell, replacing any existing cell at the same location"""
        self.cells = [c for c in self.cells if not (c.loc_col == loc_col and c.loc_row == loc_row)]
        anatomy_cell = AnatomyCell(state, loc_col, loc_row)
        self.cells.append(anatomy_cell)
        return anatomy_cell

    def remove_cell(self, loc_col: int, loc_row: int) -> bool:
        """Remove cell at location; the last remaining cell is never removed"""
        if len(self.cells) <= 1:
            return False
        before = len(self.cells)
        self.cells = [c for c in self.cells if not (c.loc_col == loc_col and c.loc_row == loc_row)]
        return len(self.cells) != before

    def radius(self) -> int:
        """Largest Chebyshev distance from the anchor"""
        return max((max(abs(c.loc_col), abs(c.loc_row)) for c in self.cells), default=0)

    def count(self, state: CellState) -> int:
        return sum(1 for c in self.cells if c.state == state)

    def copy(self) -> 'Anatomy':
        return Anatomy([AnatomyCell(c.state, c.loc_col, c.loc_row) for c in self.cells])

    def to_dict(self) -> dict:
        return {'cells': [c.to_dict() for c in self.cells]}

    @classmethod
    def from_dict(cls, data: dict) -> 'Anatomy':
        return cls([AnatomyCell(CellState(c['state']), c['loc_col'], c['loc_row'])
                    for c in data.get('cells', [])])


@dataclass(eq=False)
class Organism:
    """
    Runtime organism in a CellWorld.

    Equality and hashing are by identity so organisms can live in sets.

    Attributes:
        c: Anchor column
        r: Anchor row
        world: Owning CellWorld
        mutability: Propensity to mutate (percent chance per reproduction)
        living: False once the organism has died
        lifetime: Ticks lived
        food_collected: Food eaten since last reproduction
        anatomy: Footprint template
        species: Species record (set by the fossil record or on restore)
    """
    c: int
    r: int
    world: Any
    mutability: float = STARTING_MUTABILITY
    living: bool = True
    lifetime: int = 0
    food_collected: int = 0
    anatomy: Anatomy = field(default_factory=Anatomy)
    species: Optional[Any] = None

    # ------------------------------------------------------------------
    # Footprint
    # ------------------------------------------------------------------

    def real_cell(self, anatomy_cell: AnatomyCell) -> Optional[Cell]:
        """Grid cell under an anatomy cell, or None if off-grid"""
        c = self.c + anatomy_cell.loc_col
        r = self.r + anatomy_cell.loc_row
        grid_map = self.world.grid_map
        if not grid_map.is_valid_loc(c, r):
            return None
        return grid_map.cell_at(c, r)

    def footprint(self) -> List[Cell]:
        """Grid cells currently owned by this organism"""
        cells = []
        for anatomy_cell in self.anatomy.cells:
            cell = self.real_cell(anatomy_cell)
            if cell is not None and cell.owner is self:
                cells.append(cell)
        return cells

    def cell_count(self) -> int:
        return len(self.anatomy.cells)

    def update_grid(self):
        """Stamp the anatomy onto the grid"""
        for anatomy_cell in self.anatomy.cells:
            c = self.c + anatomy_cell.loc_col
            r = self.r + anatomy_cell.loc_row
            if self.world.grid_map.is_valid_loc(c, r):
                self.world.change_cell(c, r, anatomy_cell.state, self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def lifespan(self) -> int:
        return self.cell_count() * self.world.hyperparams.lifespan_multiplier

    def update(self) -> bool:
        """
        Advance one tick.

        Returns:
            True if the organism is still alive
        """
        if not self.living:
            return False

        self.lifetime += 1
        if self.lifetime > self.lifespan():
            self.die()
            return False

        self._produce_food()
        self._eat_food()

        if self.food_collected >= self.cell_count():
            self.reproduce()

        return self.living

    def die(self):
        """Turn the footprint into food and leave the species"""
        if not self.living:
            return
        for cell in self.footprint():
            self.world.change_cell(cell.col, cell.row, CellState.FOOD, None)
        self.living = False

        if self.species is not None and self.species.decrease_pop() == 0:
            self.world.fossil_record.fossilize(self.species)

    def _adjacent_cells(self, anatomy_cell: AnatomyCell) -> List[Cell]:
        grid_map = self.world.grid_map
        cells = []
        for dc, dr in NEIGHBOR_OFFSETS:
            c = self.c + anatomy_cell.loc_col + dc
            r = self.r + anatomy_cell.loc_row + dr
            if grid_map.is_valid_loc(c, r):
                cells.append(grid_map.cell_at(c, r))
        return cells

    def _produce_food(self):
        rng = self.world.rng
        prob = self.world.hyperparams.food_prod_prob
        for anatomy_cell in self.anatomy.cells:
            if anatomy_cell.state != CellState.PRODUCER:
                continue
            if rng.random() * 100 > prob:
                continue
            empties = [cell for cell in self._adjacent_cells(anatomy_cell) if cell.state == CellState.EMPTY]
            if empties:
                cell = empties[int(rng.integers(len(empties)))]
                self.world.change_cell(cell.col, cell.row, CellState.FOOD, None)

    def _eat_food(self):
        for anatomy_cell in self.anatomy.cells:
            if anatomy_cell.state != CellState.MOUTH:
                continue
            for cell in self._adjacent_cells(anatomy_cell):
                if cell.state == CellState.FOOD:
                    self.world.change_cell(cell.col, cell.row, CellState.EMPTY, None)
                    self.food_collected += 1

    # ------------------------------------------------------------------
    # Reproduction
    # ------------------------------------------------------------------

    def reproduce(self) -> Optional['Organism']:
        """
        Spend collected food on one offspring placed near the parent.

        Returns:
            The offspring, or None if it could not be placed
        """
        self.food_collected = max(0, self.food_collected - self.cell_count())
        world = self.world
        if not world.can_add_organism():
            return None

        rng = world.rng
        offspring = Organism(self.c, self.r, world, anatomy=self.anatomy.copy())
        offspring.mutability = max(1.0, self.mutability + (1.0 if rng.random() <= 0.5 else -1.0))
        mutated = rng.random() * 100 <= self.mutability and offspring.mutate()

        # Birth distance clears both footprints
        distance = self.anatomy.radius() + offspring.anatomy.radius() + 1 + int(rng.integers(3))
        dc, dr = NEIGHBOR_OFFSETS[int(rng.integers(len(NEIGHBOR_OFFSETS)))]
        offspring.c = self.c + dc * distance
        offspring.r = self.r + dr * distance
        if not offspring.is_clear():
            return None

        world.add_organism(offspring)
        if mutated:
            world.fossil_record.add_species(offspring, self.species)
        elif self.species is not None:
            offspring.species = self.species
            self.species.add_pop()
        return offspring

    def is_clear(self) -> bool:
        """True if every footprint location is on-grid and empty or food"""
        grid_map = self.world.grid_map
        for anatomy_cell in self.anatomy.cells:
            c = self.c + anatomy_cell.loc_col
            r = self.r + anatomy_cell.loc_row
            if not grid_map.is_valid_loc(c, r):
                return False
            if grid_map.cell_at(c, r).state not in (CellState.EMPTY, CellState.FOOD):
                return False
        return True

    def mutate(self) -> bool:
        """
        Apply one weighted add / change / remove mutation to the anatomy.

        Returns:
            True if the anatomy changed
        """
        hp = self.world.hyperparams
        rng = self.world.rng
        weights = [hp.add_prob, hp.change_prob, hp.remove_prob]
        total = sum(weights)
        if total <= 0 or not self.anatomy.cells:
            return False

        roll = rng.random() * total
        cells = self.anatomy.cells
        target = cells[int(rng.integers(len(cells)))]
        new_state = ORGANISM_STATES[int(rng.integers(len(ORGANISM_STATES)))]

        if roll < weights[0]:
            dc, dr = NEIGHBOR_OFFSETS[int(rng.integers(len(NEIGHBOR_OFFSETS)))]
            loc = (target.loc_col + dc, target.loc_row + dr)
            if self.anatomy.has_cell_at(*loc):
                return False
            self.anatomy.add_default_cell(new_state, *loc)
            return True
        if roll < weights[0] + weights[1]:
            if target.state == new_state:
                return False
            target.state = new_state
            return True
        return self.anatomy.remove_cell(target.loc_col, target.loc_row)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """
        Serialize organism to JSON-compatible dict.

        Returns:
            Dict with col, row, species_name, species_id and the organism payload
        """
        return {
            'col': self.c,
            'row': self.r,
            'species_name': self.species.name if self.species is not None else None,
            'species_id': self.species.species_id if self.species is not None else None,
            'mutability': self.mutability,
            'living': self.living,
            'lifetime': self.lifetime,
            'food_collected': self.food_collected,
            'anatomy': self.anatomy.to_dict()
        }

    @classmethod
    def from_dict(cls, data: dict, world) -> 'Organism':
        """
        Deserialize organism from dict (species is linked by the caller).

        Args:
            data: Dict with organism fields
            world: World the organism will live in

        Returns:
            Organism instance, not yet placed on the grid
        """
        return cls(
            c=data['col'],
            r=data['row'],
            world=world,
            mutability=data.get('mutability', STARTING_MUTABILITY),
            living=data.get('living', True),
            lifetime=data.get('lifetime', 0),
            food_collected=data.get('food_collected', 0),
            anatomy=Anatomy.from_dict(data.get('anatomy', {}))
        )
