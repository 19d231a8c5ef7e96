"""
Edit scope - which cells an operation may touch and where mirrors land.

An EditScope is a snapshot of the grid geometry (full grid size, zoom
view, selection, locked cells, mirror toggles). It answers:

- visible <-> full index remapping for the zoom view
- the driven (writable) cell set: the selection, else the zoom region's or
  grid's independent half/quadrant when mirroring
- the mirror projection of a placement onto its 0-3 counterpart cells
"""
from typing import Dict, FrozenSet, Iterable, List, Optional, Set
from dataclasses import dataclass, field, replace

from .grid import Tile
from .regions import CellRect, LockedRegion, get_region_bounds


@dataclass(frozen=True)
class EditScope:
    """
    Grid geometry for one operation.

    Attributes:
        rows: Full-grid rows
        columns: Full-grid columns
        zoom: Optional zoom view in full-grid coordinates
        selection: Optional selection (corner cell indices, full grid)
        locked: Locked full-grid cell indices
        mirror_horizontal: Mirror about the vertical midline
        mirror_vertical: Mirror about the horizontal midline
    """
    rows: int
    columns: int
    zoom: Optional[CellRect] = None
    selection: Optional[LockedRegion] = None
    locked: FrozenSet[int] = field(default_factory=frozenset)
    mirror_horizontal: bool = False
    mirror_vertical: bool = False

    def __post_init__(self):
        # Derived values are cached on the frozen instance
        object.__setattr__(self, '_zoom_bounds', self._compute_zoom_bounds())
        object.__setattr__(self, '_selection_bounds', self._compute_selection_bounds())
        driven = self._compute_driven_indices()
        object.__setattr__(self, '_driven_list', driven)
        object.__setattr__(self, '_driven_set', frozenset(driven))
        object.__setattr__(self, '_non_locked', frozenset(self._compute_all_non_locked()))

    # =========================================================================
    # Geometry
    # =========================================================================

    @property
    def cell_count(self) -> int:
        return max(0, self.rows) * max(0, self.columns)

    @property
    def full_rect(self) -> CellRect:
        return CellRect(0, self.rows - 1, 0, self.columns - 1)

    def _compute_zoom_bounds(self) -> Optional[CellRect]:
        if self.zoom is None or self.rows <= 0 or self.columns <= 0 or not self.zoom.is_valid:
            return None
        return self.zoom.intersect(self.full_rect)

    @property
    def zoom_bounds(self) -> Optional[CellRect]:
        return self._zoom_bounds

    @property
    def is_zoomed(self) -> bool:
        return self._zoom_bounds is not None

    @property
    def view_rect(self) -> CellRect:
        """The zoom region, or the whole grid"""
        return self._zoom_bounds if self._zoom_bounds is not None else self.full_rect

    @property
    def display_rows(self) -> int:
        return self.view_rect.rows if self.cell_count else 0

    @property
    def display_columns(self) -> int:
        return self.view_rect.columns if self.cell_count else 0

    @property
    def mirror_on(self) -> bool:
        return self.mirror_horizontal or self.mirror_vertical

    def visible_to_full(self, visible_index: int) -> int:
        if not self.is_zoomed:
            return visible_index
        view = self._zoom_bounds
        visible_row, visible_col = divmod(visible_index, view.columns)
        return (view.min_row + visible_row) * self.columns + view.min_col + visible_col

    def full_to_visible(self, full_index: int) -> Optional[int]:
        """Display index of a full-grid cell, None when outside the zoom view"""
        if not self.is_zoomed:
            return full_index
        view = self._zoom_bounds
        row, col = divmod(full_index, self.columns)
        if not view.contains(row, col):
            return None
        return (row - view.min_row) * view.columns + (col - view.min_col)

    # =========================================================================
    # Writable sets
    # =========================================================================

    def _compute_selection_bounds(self) -> Optional[CellRect]:
        if self.selection is None or self.columns <= 0 or self.rows <= 0:
            return None
        bounds = get_region_bounds(self.selection.start, self.selection.end, self.columns)
        return bounds.intersect(self.view_rect)

    @property
    def selection_bounds(self) -> Optional[CellRect]:
        """Selection clamped to the zoom view (None when empty or absent)"""
        return self._selection_bounds

    def _driven_rect(self) -> CellRect:
        view = self.view_rect
        rows = view.rows // 2 if self.mirror_vertical else view.rows
        columns = view.columns // 2 if self.mirror_horizontal else view.columns
        return CellRect(view.min_row, view.min_row + rows - 1,
                        view.min_col, view.min_col + columns - 1)

    def _compute_driven_indices(self) -> List[int]:
        if self.cell_count == 0:
            return []
        rect = self._selection_bounds if self._selection_bounds is not None else self._driven_rect()
        if not rect.is_valid:
            return []
        return [i for i in rect.indices(self.columns) if i not in self.locked]

    @property
    def driven_indices(self) -> List[int]:
        """Writable cells in row-major order (locked cells excluded)"""
        return list(self._driven_list)

    @property
    def driven_set(self) -> FrozenSet[int]:
        return self._driven_set

    def _compute_all_non_locked(self) -> List[int]:
        if self.cell_count == 0:
            return []
        return [i for i in self.view_rect.indices(self.columns) if i not in self.locked]

    @property
    def all_non_locked(self) -> FrozenSet[int]:
        """Every unlocked cell of the zoom view (or grid)"""
        return self._non_locked

    @property
    def placement_allow_set(self) -> FrozenSet[int]:
        """Where placement results may be written; mirror halves included when mirroring"""
        return self._non_locked if self.mirror_on else self._driven_set

    def clear_set(self) -> Set[int]:
        """Cells a flood clears before refilling"""
        if not self.mirror_on:
            return set(self._driven_set)
        if self._selection_bounds is None:
            return set(self._non_locked)
        cells = set(self._driven_set)
        for index in self._driven_list:
            cells.update(self.mirror_targets(index))
        return {i for i in cells if i not in self.locked}

    def is_locked(self, index: int) -> bool:
        return index in self.locked

    # =========================================================================
    # Mirror projection
    # =========================================================================

    def _mirror_frame(self, cell_index: int):
        view = self.view_rect
        row, col = divmod(cell_index, self.columns)
        return view, row - view.min_row, col - view.min_col

    def _index_in_view(self, view: CellRect, r: int, c: int) -> int:
        return (view.min_row + r) * self.columns + view.min_col + c

    def mirror_targets(self, cell_index: int) -> List[int]:
        """Counterpart cells of cell_index under the active mirror toggles"""
        view, row, col = self._mirror_frame(cell_index)
        targets = []
        if self.mirror_horizontal:
            targets.append(self._index_in_view(view, row, view.columns - 1 - col))
        if self.mirror_vertical:
            targets.append(self._index_in_view(view, view.rows - 1 - row, col))
        if self.mirror_horizontal and self.mirror_vertical:
            targets.append(self._index_in_view(view, view.rows - 1 - row, view.columns - 1 - col))
        unique = []
        for target in targets:
            if target != cell_index and target not in unique:
                unique.append(target)
        return unique

    def mirrored_placements(self, cell_index: int, placement: Tile) -> Dict[int, Tile]:
        """
        The driver placement plus its mirror images.

        H-target flips mirror_x, V-target flips mirror_y, the diagonal target
        turns 180 degrees with mirrors unchanged. A target that coincides
        with the driver (center row/column) keeps the driver's placement.
        """
        placements = {cell_index: placement}
        view, row, col = self._mirror_frame(cell_index)
        mirror_col = view.columns - 1 - col
        mirror_row = view.rows - 1 - row
        if self.mirror_horizontal:
            placements.setdefault(self._index_in_view(view, row, mirror_col),
                                  replace(placement, mirror_x=not placement.mirror_x))
        if self.mirror_vertical:
            placements.setdefault(self._index_in_view(view, mirror_row, col),
                                  replace(placement, mirror_y=not placement.mirror_y))
        if self.mirror_horizontal and self.mirror_vertical:
            placements.setdefault(self._index_in_view(view, mirror_row, mirror_col),
                                  replace(placement, rotation=(placement.rotation + 180) % 360))
        return placements

    def full_grid_mirror_targets(self, cell_index: int, placement: Tile) -> Dict[int, Tile]:
        """Mirror images across the whole grid, ignoring the zoom view"""
        row, col = divmod(cell_index, self.columns)
        mirror_row = self.rows - 1 - row
        mirror_col = self.columns - 1 - col
        targets = {}
        if self.mirror_horizontal:
            targets[row * self.columns + mirror_col] = replace(placement, mirror_x=not placement.mirror_x)
        if self.mirror_vertical:
            targets[mirror_row * self.columns + col] = replace(placement, mirror_y=not placement.mirror_y)
        if self.mirror_horizontal and self.mirror_vertical:
            targets[mirror_row * self.columns + mirror_col] = replace(
                placement, rotation=(placement.rotation + 180) % 360)
        return targets


def apply_placements(tiles: List[Tile], placements: Dict[int, Tile], driver_index: int,
                     placed_order: int, allow: Optional[Iterable[int]] = None,
                     override: bool = True) -> int:
    """
    Write a placement map into tiles in place.

    Without override, non-driver targets are written only when empty, so
    manual edits on the mirrored side survive. Only placed tiles take the
    placed_order stamp; empty and error sentinels are written bare.

    Returns:
        Number of cells written
    """
    allow_set = allow if allow is None or isinstance(allow, (set, frozenset)) else set(allow)
    written = 0
    for index, placement in placements.items():
        if index < 0 or index >= len(tiles):
            continue
        if allow_set is not None and index not in allow_set:
            continue
        if not override and index != driver_index and tiles[index].image_index >= 0:
            continue
        if placement.image_index < 0:
            tiles[index] = Tile(placement.image_index)
        else:
            tiles[index] = replace(placement, placed_order=placed_order)
        written += 1
    return written
