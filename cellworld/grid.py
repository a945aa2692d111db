"""
Grid map: the authoritative store of addressable cells.

The grid is column-major (grid[col][row]) and dense. Cells keep their
identity until the grid is resized, which reallocates every cell.
"""

from typing import Dict, Iterator, List, Tuple

from .data_types import Cell, CellState


class CellOutOfRangeError(IndexError):
    """Raised when a cell is addressed outside the grid bounds"""
    pass


class GridMap:
    """
    Dense 2-D array of Cell plus (cols, rows, cell_size).

    Invariant: grid[c][r].col == c and grid[c][r].row == r.
    """

    def __init__(self, cols: int, rows: int, cell_size: int):
        self.grid: List[List[Cell]] = []
        self.cols = 0
        self.rows = 0
        self.cell_size = cell_size
        self.resize(cols, rows, cell_size)

    def resize(self, cols: int, rows: int, cell_size: int):
        """
        Reallocate the grid, discarding prior cell identity.

        Callers re-populate organisms and walls afterwards.
        """
        if cols <= 0 or rows <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {cols}x{rows}")
        self.cols = cols
        self.rows = rows
        self.cell_size = cell_size
        self.grid = [[Cell(c, r) for r in range(rows)] for c in range(cols)]

    def is_valid_loc(self, c: int, r: int) -> bool:
        return 0 <= c < self.cols and 0 <= r < self.rows

    def cell_at(self, c: int, r: int) -> Cell:
        """
        Get cell at (c, r).

        Raises:
            CellOutOfRangeError: If (c, r) is outside the grid
        """
        if not self.is_valid_loc(c, r):
            raise CellOutOfRangeError(f"Cell ({c}, {r}) outside {self.cols}x{self.rows} grid")
        return self.grid[c][r]

    def fill_grid(self, state: CellState, ignore_walls: bool = False):
        """
        Reset every cell to state and clear its owner.

        Args:
            state: State to fill with
            ignore_walls: If True, wall cells keep their state
        """
        for column in self.grid:
            for cell in column:
                if ignore_walls and cell.state == CellState.WALL:
                    continue
                cell.state = state
                cell.owner = None

    def get_center(self) -> Tuple[int, int]:
        return self.cols // 2, self.rows // 2

    def all_cells(self) -> Iterator[Cell]:
        """Iterate cells column-major"""
        for column in self.grid:
            yield from column

    def wall_coords(self) -> List[Dict[str, int]]:
        return [{'c': cell.col, 'r': cell.row}
                for cell in self.all_cells() if cell.state == CellState.WALL]

    def serialize(self) -> dict:
        """
        Serialize dimensions, cell size, per-cell state and wall coordinates.

        Returns:
            Dict {cols, rows, cell_size, cells, walls}; cells are column-major
        """
        return {
            'cols': self.cols,
            'rows': self.rows,
            'cell_size': self.cell_size,
            'cells': [cell.state.value for cell in self.all_cells()],
            'walls': self.wall_coords()
        }

    def load_raw(self, data: dict):
        """
        Load per-cell states from serialized form.

        The grid must already have the snapshot's dimensions (resize first).
        Owners are cleared; organisms re-place their own footprint.
        """
        if data['cols'] != self.cols or data['rows'] != self.rows:
            raise ValueError(f"Grid is {self.cols}x{self.rows}, data is {data['cols']}x{data['rows']}")

        states = data['cells']
        if len(states) != self.cols * self.rows:
            raise ValueError(f"Expected {self.cols * self.rows} cells, got {len(states)}")

        for cell, state in zip(self.all_cells(), states):
            cell.state = CellState(state)
            cell.owner = None
