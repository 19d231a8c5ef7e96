"""
Rectangular regions of the grid: selections, zoom views and locked areas.

Regions are stored either as row/column bounds (CellRect) or, the way the
editor records them, as a pair of corner cell indices (LockedRegion).
"""
from typing import Iterable, List, Optional
from dataclasses import dataclass


@dataclass(frozen=True)
class CellRect:
    """Inclusive row/column bounds in full-grid coordinates"""
    min_row: int
    max_row: int
    min_col: int
    max_col: int

    @property
    def rows(self) -> int:
        return self.max_row - self.min_row + 1

    @property
    def columns(self) -> int:
        return self.max_col - self.min_col + 1

    @property
    def is_valid(self) -> bool:
        return self.min_row <= self.max_row and self.min_col <= self.max_col

    def contains(self, row: int, col: int) -> bool:
        return self.min_row <= row <= self.max_row and self.min_col <= col <= self.max_col

    def contains_index(self, index: int, grid_columns: int) -> bool:
        return self.contains(index // grid_columns, index % grid_columns)

    def intersect(self, other: 'CellRect') -> Optional['CellRect']:
        rect = CellRect(
            max(self.min_row, other.min_row),
            min(self.max_row, other.max_row),
            max(self.min_col, other.min_col),
            min(self.max_col, other.max_col),
        )
        return rect if rect.is_valid else None

    def indices(self, grid_columns: int) -> List[int]:
        """Row-major full-grid indices covered by the rectangle"""
        return [
            row * grid_columns + col
            for row in range(self.min_row, self.max_row + 1)
            for col in range(self.min_col, self.max_col + 1)
        ]


@dataclass(frozen=True)
class LockedRegion:
    """A rectangle given by two corner cell indices"""
    start: int
    end: int


def get_region_bounds(start: int, end: int, columns: int) -> CellRect:
    start_row, start_col = divmod(start, columns)
    end_row, end_col = divmod(end, columns)
    return CellRect(
        min(start_row, end_row),
        max(start_row, end_row),
        min(start_col, end_col),
        max(start_col, end_col),
    )


def get_cell_indices_in_region(start: int, end: int, columns: int) -> List[int]:
    return get_region_bounds(start, end, columns).indices(columns)


def regions_overlap(a: LockedRegion, b: LockedRegion, columns: int) -> bool:
    """True if the two rectangles share any cell"""
    ba = get_region_bounds(a.start, a.end, columns)
    bb = get_region_bounds(b.start, b.end, columns)
    return not (ba.max_row < bb.min_row or bb.max_row < ba.min_row or
                ba.max_col < bb.min_col or bb.max_col < ba.min_col)


def is_cell_in_region(cell_index: int, start: int, end: int, columns: int) -> bool:
    return get_region_bounds(start, end, columns).contains_index(cell_index, columns)


def find_locked_region_containing_cell(cell_index: int, locked_regions: Iterable[LockedRegion],
                                       columns: int) -> Optional[LockedRegion]:
    for region in locked_regions:
        if is_cell_in_region(cell_index, region.start, region.end, columns):
            return region
    return None


def normalize_region(start: int, end: int, columns: int) -> LockedRegion:
    """Canonical form: top-left corner to bottom-right corner"""
    bounds = get_region_bounds(start, end, columns)
    return LockedRegion(
        bounds.min_row * columns + bounds.min_col,
        bounds.max_row * columns + bounds.max_col,
    )


def regions_equal(a: LockedRegion, b: LockedRegion, columns: int) -> bool:
    return normalize_region(a.start, a.end, columns) == normalize_region(b.start, b.end, columns)


def locked_cells_from_regions(regions: Iterable[LockedRegion], columns: int) -> List[int]:
    cells = set()
    for region in regions:
        cells.update(get_cell_indices_in_region(region.start, region.end, columns))
    return sorted(cells)

