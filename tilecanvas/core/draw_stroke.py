"""
Draw-stroke geometry and validation.

A completed draw stroke is a path of cells where the first tile has
exactly one connector and every other tile connects only toward its
neighbors in the stroke.
"""
from typing import Callable, List, Optional, Sequence, Set

from .connections import DIRECTION_OFFSETS, Connections
from .grid import Tile


GetConnectionsForPlacement = Callable[[int, int, bool, bool], Optional[Connections]]


def get_direction_from_to(from_cell: int, to_cell: int, columns: int) -> int:
    """
    Direction index (N=0 ... NW=7) from one cell to an adjacent cell.

    Returns:
        -1 when the cells are not 8-adjacent
    """
    from_row, from_col = divmod(from_cell, columns)
    to_row, to_col = divmod(to_cell, columns)
    delta = (to_row - from_row, to_col - from_col)
    for direction, offset in enumerate(DIRECTION_OFFSETS):
        if offset == delta:
            return direction
    return -1


def get_stroke_neighbor_directions(cell_index: int, stroke_order: Sequence[int],
                                   stroke_index: int, columns: int) -> Set[int]:
    """Directions from a stroke cell toward its previous and next stroke cells"""
    directions = set()
    if stroke_index > 0:
        d = get_direction_from_to(cell_index, stroke_order[stroke_index - 1], columns)
        if d >= 0:
            directions.add(d)
    if stroke_index < len(stroke_order) - 1:
        d = get_direction_from_to(cell_index, stroke_order[stroke_index + 1], columns)
        if d >= 0:
            directions.add(d)
    return directions


def is_adjacent(a: int, b: int, columns: int) -> bool:
    return get_direction_from_to(a, b, columns) >= 0


def validate_draw_stroke(stroke_order: Sequence[int], tiles: Sequence[Tile], columns: int,
                         get_connections_for_placement: GetConnectionsForPlacement) -> bool:
    """
    Check an in-progress stroke.

    1. The first tile has exactly one connector.
    2. Interior tiles connect exactly toward their previous and next cells.
    3. The last tile (stroke length >= 2) has two connectors, one of them
       toward its predecessor; its free end is closed on finalization.
    """
    last = len(stroke_order) - 1
    for i, cell_index in enumerate(stroke_order):
        if cell_index < 0 or cell_index >= len(tiles):
            return False
        tile = tiles[cell_index]
        if tile is None or tile.image_index < 0:
            return False
        conn = get_connections_for_placement(tile.image_index, tile.rotation,
                                              tile.mirror_x, tile.mirror_y)
        if conn is None:
            return False
        count = sum(1 for value in conn if value)
        if i == 0:
            if count != 1:
                return False
            continue
        allowed = get_stroke_neighbor_directions(cell_index, stroke_order, i, columns)
        if i == last:
            if count != 2:
                return False
            if not all(conn[d] for d in allowed):
                return False
            continue
        for d in range(8):
            if conn[d] != (d in allowed):
                return False
    return True


def path_role_directions(order: Sequence[int], position: int, columns: int) -> Set[int]:
    """
    Connectors a tile needs at a position of a finished path.

    A single-cell path needs none; endpoints need one toward their only
    neighbor; interior cells need both neighbors.
    """
    if len(order) <= 1:
        return set()
    return get_stroke_neighbor_directions(order[position], order, position, columns)


def split_into_adjacent_runs(order: Sequence[int], columns: int) -> List[List[int]]:
    """Break an ordered cell list wherever consecutive cells are not adjacent"""
    runs: List[List[int]] = []
    for cell in order:
        if runs and is_adjacent(runs[-1][-1], cell, columns):
            runs[-1].append(cell)
        else:
            runs.append([cell])
    return runs
