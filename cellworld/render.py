"""
Headless render collaborator.

Collects cells whose state changed during a tick. A pixel renderer (or a
network publisher) drains the dirty set between ticks; the world never
reads render state back.
"""

from typing import Iterable, Set

from .data_types import Cell


class HeadlessRenderer:
    """Dirty-cell accumulator with no drawing backend"""

    def __init__(self):
        self.cells_to_render: Set[Cell] = set()
        self.full_renders = 0

    def add_to_render(self, cell: Cell):
        self.cells_to_render.add(cell)

    def render_full_grid(self, cells: Iterable[Cell]):
        """Full redraw supersedes any pending partial updates"""
        self.cells_to_render.clear()
        self.full_renders += 1

    def drain(self) -> Set[Cell]:
        """Hand the dirty set to the consumer and start a fresh one"""
        dirty = self.cells_to_render
        self.cells_to_render = set()
        return dirty
