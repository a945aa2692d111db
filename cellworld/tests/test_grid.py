import pytest

from cellworld.data_types import CellState
from cellworld.grid import CellOutOfRangeError, GridMap


def test_cell_coordinates_match_position():
    grid_map = GridMap(7, 4, 3)
    for c in range(7):
        for r in range(4):
            cell = grid_map.cell_at(c, r)
            assert (cell.col, cell.row) == (c, r)
            assert cell.state == CellState.EMPTY
            assert cell.owner is None


@pytest.mark.parametrize("c, r", [(-1, 0), (0, -1), (7, 0), (0, 4), (100, 100)])
def test_cell_at_out_of_range(c, r):
    grid_map = GridMap(7, 4, 3)
    with pytest.raises(CellOutOfRangeError):
        grid_map.cell_at(c, r)
    assert not grid_map.is_valid_loc(c, r)


def test_out_of_range_error_is_index_error():
    grid_map = GridMap(2, 2, 1)
    with pytest.raises(IndexError):
        grid_map.cell_at(2, 2)


def test_fill_grid_preserves_walls():
    grid_map = GridMap(5, 5, 1)
    grid_map.cell_at(1, 1).state = CellState.WALL
    grid_map.cell_at(2, 2).state = CellState.FOOD
    grid_map.cell_at(3, 3).owner = object()

    grid_map.fill_grid(CellState.EMPTY, ignore_walls=True)

    assert grid_map.cell_at(1, 1).state == CellState.WALL
    assert grid_map.cell_at(2, 2).state == CellState.EMPTY
    assert grid_map.cell_at(3, 3).owner is None


def test_fill_grid_overwrites_walls():
    grid_map = GridMap(5, 5, 1)
    grid_map.cell_at(1, 1).state = CellState.WALL

    grid_map.fill_grid(CellState.FOOD)

    assert all(cell.state == CellState.FOOD for cell in grid_map.all_cells())


def test_resize_reallocates_cells():
    grid_map = GridMap(5, 5, 1)
    old_cell = grid_map.cell_at(2, 2)
    old_cell.state = CellState.WALL

    grid_map.resize(10, 3, 4)

    assert (grid_map.cols, grid_map.rows, grid_map.cell_size) == (10, 3, 4)
    assert grid_map.cell_at(9, 2).col == 9
    assert grid_map.cell_at(2, 2) is not old_cell
    assert grid_map.cell_at(2, 2).state == CellState.EMPTY
    with pytest.raises(CellOutOfRangeError):
        grid_map.cell_at(2, 3)


def test_resize_rejects_empty_grid():
    grid_map = GridMap(5, 5, 1)
    with pytest.raises(ValueError):
        grid_map.resize(0, 5, 1)


def test_center():
    assert GridMap(10, 7, 1).get_center() == (5, 3)


def test_serialize_and_load_raw():
    grid_map = GridMap(4, 3, 6)
    grid_map.cell_at(0, 2).state = CellState.WALL
    grid_map.cell_at(3, 0).state = CellState.WALL
    grid_map.cell_at(1, 1).state = CellState.FOOD

    data = grid_map.serialize()

    assert data['cols'] == 4 and data['rows'] == 3 and data['cell_size'] == 6
    assert len(data['cells']) == 12
    assert {(w['c'], w['r']) for w in data['walls']} == {(0, 2), (3, 0)}
    # Column-major: index = c * rows + r
    assert data['cells'][1 * 3 + 1] == 'food'

    restored = GridMap(4, 3, 6)
    restored.load_raw(data)
    assert [c.state for c in restored.all_cells()] == [c.state for c in grid_map.all_cells()]


def test_load_raw_dimension_mismatch():
    data = GridMap(4, 3, 6).serialize()
    with pytest.raises(ValueError):
        GridMap(3, 4, 6).load_raw(data)
