from tilecanvas.core.compat import CompatibilityTables
from tilecanvas.core.connections import E, N, NE, S, W
from tilecanvas.core.draw_stroke import (
    get_direction_from_to, get_stroke_neighbor_directions, is_adjacent, path_role_directions,
    split_into_adjacent_runs, validate_draw_stroke,
)
from tilecanvas.core.grid import EMPTY_TILE, Tile

from helpers import PATH_SOURCES

STRAIGHT, CORNER, END, BLANK = range(4)


def test_direction_between_adjacent_cells():
    assert get_direction_from_to(5, 1, 4) == N
    assert get_direction_from_to(5, 2, 4) == NE
    assert get_direction_from_to(5, 4, 4) == W
    assert get_direction_from_to(5, 7, 4) == -1
    assert is_adjacent(0, 5, 4)
    assert not is_adjacent(3, 4, 4)


def test_stroke_neighbor_directions():
    stroke = [4, 5, 9]
    assert get_stroke_neighbor_directions(5, stroke, 1, 4) == {W, S}
    assert get_stroke_neighbor_directions(4, stroke, 0, 4) == {E}
    assert path_role_directions([6], 0, 4) == set()
    assert path_role_directions(stroke, 2, 4) == {N}


def test_split_into_adjacent_runs():
    assert split_into_adjacent_runs([0, 1, 2, 8, 9, 3], 4) == [[0, 1, 2], [8, 9], [3]]
    assert split_into_adjacent_runs([], 4) == []


def _grid(placements, size=16):
    tiles = [EMPTY_TILE] * size
    for index, tile in placements.items():
        tiles[index] = tile
    return tiles


def test_validate_draw_stroke_accepts_well_formed_stroke():
    tables = CompatibilityTables(PATH_SOURCES)
    tiles = _grid({
        4: Tile(END, 90),        # E only
        5: Tile(STRAIGHT, 90),   # E + W
        6: Tile(STRAIGHT, 90),   # last tile: two connectors, one toward 5
    })
    assert validate_draw_stroke([4, 5, 6], tiles, 4, tables.get_connections_for_placement)


def test_validate_draw_stroke_rejects_bad_shapes():
    tables = CompatibilityTables(PATH_SOURCES)
    get_conn = tables.get_connections_for_placement
    # First tile with two connectors
    assert not validate_draw_stroke([4, 5], _grid({4: Tile(STRAIGHT, 90), 5: Tile(STRAIGHT, 90)}),
                                    4, get_conn)
    # Interior tile turning away from its next cell
    assert not validate_draw_stroke(
        [4, 5, 6], _grid({4: Tile(END, 90), 5: Tile(CORNER, 270), 6: Tile(STRAIGHT, 90)}),
        4, get_conn)
    # Empty cell inside the stroke
    assert not validate_draw_stroke([4, 5], _grid({4: Tile(END, 90)}), 4, get_conn)
