"""
Grid layout - rows, columns and tile pixel size from viewport constraints.

Every layout is capped at MAX_CELLS cells; when the cap bites, the grid
shrinks to the squarest shape that fits.
"""
import math
from typing import Tuple
from dataclasses import dataclass


# Maximum number of tiles allowed on one canvas
MAX_CELLS = 512


@dataclass(frozen=True)
class GridLayout:
    """Grid dimensions and the pixel size of one tile"""
    columns: int = 0
    rows: int = 0
    tile_size: int = 0

    @property
    def cell_count(self) -> int:
        return max(0, self.rows) * max(0, self.columns)


def get_squarest_dimensions(max_cells: int) -> Tuple[int, int]:
    """Squarest (rows, columns) with rows * columns <= max_cells"""
    columns = max(1, math.isqrt(max_cells))
    rows = max_cells // columns
    return rows, columns


def _fit_tile_size(width: float, height: float, gap: float, rows: int, columns: int) -> int:
    return math.floor(min(
        (width - gap * (columns - 1)) / columns,
        (height - gap * (rows - 1)) / rows,
    ))


def _even_count(length: float, gap: float, tile_size: int) -> int:
    count = max(1, math.floor((length + gap) / (tile_size + gap)))
    if count > 1 and count % 2 == 1:
        count -= 1
    return count


def compute_grid_layout(available_width: float, available_height: float,
                        grid_gap: float, preferred_tile_size: float) -> GridLayout:
    """
    Pick a grid for a free-sized canvas.

    Tile sizes are tried from the preferred size downwards; the first one
    that leaves room for at least two (even) rows and columns wins, with as
    many cells as fit at that size. The tile size never exceeds the
    preferred size.

    Args:
        available_width: Viewport width in pixels
        available_height: Viewport height in pixels
        grid_gap: Gap between tiles in pixels
        preferred_tile_size: Upper bound on the tile size in pixels

    Returns:
        GridLayout (all zero when any input is non-positive)
    """
    if available_width <= 0 or available_height <= 0 or preferred_tile_size <= 0:
        return GridLayout(0, 0, 0)

    for tile_size in range(math.floor(preferred_tile_size), 0, -1):
        columns = _even_count(available_width, grid_gap, tile_size)
        rows = _even_count(available_height, grid_gap, tile_size)
        if rows < 2 or columns < 2:
            continue
        if rows * columns > MAX_CELLS:
            rows, columns = get_squarest_dimensions(MAX_CELLS)
            tile_size = min(tile_size, _fit_tile_size(available_width, available_height, grid_gap, rows, columns))
            if tile_size <= 0:
                continue
        return GridLayout(columns, rows, tile_size)

    # Viewport too small for a 2x2 grid
    max_columns = max(
        1,
        math.floor((available_width + grid_gap) / (max(1, preferred_tile_size) + grid_gap)),
    )
    columns = max_columns
    tile_size = math.floor((available_width - grid_gap * (columns - 1)) / columns)
    rows = max(1, math.floor((available_height + grid_gap) / (max(1, tile_size) + grid_gap)))
    if rows * columns > MAX_CELLS:
        rows, columns = get_squarest_dimensions(MAX_CELLS)
        tile_size = _fit_tile_size(available_width, available_height, grid_gap, rows, columns)
    return GridLayout(columns, rows, min(tile_size, math.floor(preferred_tile_size)))


def compute_fixed_grid_layout(available_width: float, available_height: float,
                              grid_gap: float, rows: int, columns: int) -> GridLayout:
    """Fit a fixed rows x columns grid; only the tile size is free"""
    if available_width <= 0 or available_height <= 0 or rows <= 0 or columns <= 0:
        return GridLayout(columns, rows, 0)
    capped_rows, capped_columns = rows, columns
    if capped_rows * capped_columns > MAX_CELLS:
        capped_rows, capped_columns = get_squarest_dimensions(MAX_CELLS)
    max_tile_width = (available_width - grid_gap * max(0, capped_columns - 1)) / capped_columns
    max_tile_height = (available_height - grid_gap * max(0, capped_rows - 1)) / capped_rows
    tile_size = max(0, math.floor(min(max_tile_width, max_tile_height)))
    return GridLayout(capped_columns, capped_rows, tile_size)
