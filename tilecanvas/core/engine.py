"""
Tile Grid Engine - the canvas state machine

This module owns one canvas:
- The full grid of tiles and its layout (free or fixed rows/columns)
- Brush presses for the six brush modes (random, fixed, erase, clone,
  pattern, draw) with mirror projection
- Batch operations delegated to the FillEngine (flood, flood complete,
  reconcile, controlled randomize, random fill)
- Region edits (move, rotate, mirror the zoom region out)
- Undo/redo snapshots
- Zoom view remapping: every index coming from the display is a visible
  index and is mapped to the full grid before any algorithm runs

Gesture timing (tap vs long-press vs double-tap) belongs to the caller.
The engine only tells a gesture's first press from its continuation via
part_of_drag and the transient GestureState.
"""
import math
import random
import time
from typing import Callable, Iterable, List, Optional, Sequence, Set
from dataclasses import dataclass, field, replace

from PyQt6 import QtCore

from .brush import Brush, BrushMode, Pattern
from .compat import CompatibilityCache, CompatibilityTables
from .connections import opposite_direction, to_connection_key
from .draw_stroke import get_direction_from_to, validate_draw_stroke
from .fill_engine import FillContext, FillEngine
from .grid import (
    Tile, EMPTY_TILE, ERROR_TILE, ERROR_INDEX, build_initial_tiles, count_changed,
    hydrate_tiles_with_source_names, normalize_tiles,
)
from .history import UndoHistory, MAX_UNDO_STEPS
from .layout import GridLayout, compute_fixed_grid_layout, compute_grid_layout
from .logging import log_engine
from .placement import PlacementValidator
from .presets import CanvasSettings
from .regions import CellRect, LockedRegion
from .scope import EditScope, apply_placements
from .tool_manager import ToolManager
from .transforms import apply_group_rotation_to_tile, rotate_cell


# A random press on the same cell within this window reuses the last pick
RANDOM_PRESS_CACHE_SECONDS = 0.150


@dataclass
class LastPress:
    """Most recent random-brush result"""
    cell_index: int
    tile: Tile
    time: float


@dataclass
class GestureState:
    """Transient per-gesture state; every index is a full-grid index"""
    clone_source: Optional[int] = None
    clone_anchor: Optional[int] = None
    clone_sample: Optional[int] = None
    clone_cursor: Optional[int] = None
    pattern_anchor: Optional[int] = None
    draw_stroke: List[int] = field(default_factory=list)
    last_press: Optional[LastPress] = None

    def reset(self):
        """Reset everything, clone source included"""
        self.clone_source = None
        self.clone_anchor = None
        self.clone_sample = None
        self.clone_cursor = None
        self.pattern_anchor = None
        self.draw_stroke = []
        self.last_press = None

    def end_stroke(self):
        """Forget the per-stroke anchors and stroke buffer; the clone source stays"""
        self.clone_anchor = None
        self.clone_cursor = None
        self.pattern_anchor = None
        self.draw_stroke = []


class TileGridEngine(QtCore.QObject):
    """
    One tile canvas.

    Signals:
        tiles_changed: The grid changed
        layout_changed: The display layout changed (GridLayout)
        history_changed: Undo/redo availability changed (can_undo, can_redo)
        clone_state_changed: Clone overlay indices changed
    """

    tiles_changed = QtCore.pyqtSignal()
    layout_changed = QtCore.pyqtSignal(object)
    history_changed = QtCore.pyqtSignal(bool, bool)
    clone_state_changed = QtCore.pyqtSignal()

    def __init__(self, source_names: Sequence[str] = (),
                 available_width: float = 0, available_height: float = 0,
                 grid_gap: int = 0, preferred_tile_size: int = 48,
                 fixed_rows: int = 0, fixed_columns: int = 0,
                 allow_edge_connections: bool = False,
                 random_requires_legal: bool = False,
                 random_source_indices: Optional[Iterable[int]] = None,
                 brush: Optional[Brush] = None,
                 pattern: Optional[Pattern] = None,
                 mirror_horizontal: bool = False, mirror_vertical: bool = False,
                 locked_cells: Iterable[int] = (),
                 selection: Optional[LockedRegion] = None,
                 zoom_region: Optional[CellRect] = None,
                 initial_tiles: Optional[Sequence[Tile]] = None,
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], float]] = None,
                 tool_manager: Optional[ToolManager] = None,
                 suspend_remap: bool = False):
        super().__init__()
        self._rng = rng or random.Random()
        self._clock = clock or time.monotonic

        self._cache = CompatibilityCache()
        self._source_names: List[str] = list(source_names)
        self._tables: CompatibilityTables = self._cache.get(self._source_names)
        self.suspend_remap = suspend_remap

        # Layout inputs
        self._available_width = available_width
        self._available_height = available_height
        self._grid_gap = grid_gap
        self._preferred_tile_size = preferred_tile_size
        self._fixed_rows = fixed_rows
        self._fixed_columns = fixed_columns

        # Placement rules
        self._allow_edge_connections = allow_edge_connections
        self._random_requires_legal = random_requires_legal
        self._random_source_indices = (set(random_source_indices)
                                       if random_source_indices is not None else None)

        # Tool state
        self._brush = brush or Brush.random()
        self._pattern = pattern
        self._mirror_horizontal = mirror_horizontal
        self._mirror_vertical = mirror_vertical
        self._locked: frozenset = frozenset(locked_cells)
        self._selection = selection
        self._zoom = zoom_region

        self.gesture = GestureState()
        self.bulk_update = False
        self._replaying = False
        self._placed_order = 0

        self._history = UndoHistory(MAX_UNDO_STEPS)
        self._history.add_listener(self._on_history_changed)
        self._fill_engine = FillEngine()

        self._layout = GridLayout()
        self._tiles: List[Tile] = list(initial_tiles or [])
        self._relayout(emit=False, force=True)
        if initial_tiles:
            self._placed_order = max((t.placed_order for t in self._tiles), default=0)

        self._tool_manager = tool_manager
        if tool_manager is not None:
            tool_manager.tool_changed.connect(self._on_tool_changed)

    # =========================================================================
    # Read-only status
    # =========================================================================

    @property
    def rows(self) -> int:
        return self._layout.rows

    @property
    def columns(self) -> int:
        return self._layout.columns

    @property
    def source_names(self) -> List[str]:
        return list(self._source_names)

    @property
    def tables(self) -> CompatibilityTables:
        return self._tables

    @property
    def full_grid_layout(self) -> GridLayout:
        return self._layout

    @property
    def grid_layout(self) -> GridLayout:
        """Display layout: the zoom region's shape when zoomed"""
        scope = self.scope()
        if not scope.is_zoomed:
            return self._layout
        view = scope.view_rect
        fitted = compute_fixed_grid_layout(self._available_width, self._available_height,
                                           self._grid_gap, view.rows, view.columns)
        return GridLayout(view.columns, view.rows, fitted.tile_size)

    @property
    def total_cells(self) -> int:
        return len(self._tiles)

    @property
    def tiles(self) -> List[Tile]:
        """Displayable tiles, remapped to the zoom view when zoomed"""
        scope = self.scope()
        if not scope.is_zoomed:
            return list(self._tiles)
        return [self._tiles[i] for i in scope.view_rect.indices(self.columns)]

    @property
    def full_tiles(self) -> List[Tile]:
        """The whole grid, for saving"""
        return list(self._tiles)

    @property
    def brush(self) -> Brush:
        return self._brush

    @property
    def pattern(self) -> Optional[Pattern]:
        return self._pattern

    @property
    def locked_cells(self) -> frozenset:
        return self._locked

    @property
    def selection(self) -> Optional[LockedRegion]:
        return self._selection

    @property
    def zoom_region(self) -> Optional[CellRect]:
        return self._zoom

    @property
    def placed_order(self) -> int:
        return self._placed_order

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo()

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo()

    def _clone_display_index(self, full_index: Optional[int]) -> Optional[int]:
        if self._brush.mode is not BrushMode.CLONE or full_index is None:
            return None
        return self.full_to_visible(full_index)

    @property
    def clone_source_index(self) -> Optional[int]:
        return self._clone_display_index(self.gesture.clone_source)

    @property
    def clone_sample_index(self) -> Optional[int]:
        return self._clone_display_index(self.gesture.clone_sample)

    @property
    def clone_anchor_index(self) -> Optional[int]:
        return self._clone_display_index(self.gesture.clone_anchor)

    @property
    def clone_cursor_index(self) -> Optional[int]:
        return self._clone_display_index(self.gesture.clone_cursor)

    def visible_to_full(self, visible_index: int) -> int:
        return self.scope().visible_to_full(visible_index)

    def full_to_visible(self, full_index: int) -> Optional[int]:
        return self.scope().full_to_visible(full_index)

    def current_settings(self) -> CanvasSettings:
        """Snapshot of the configuration, for PresetManager.save_settings()"""
        return CanvasSettings(
            allow_edge_connections=self._allow_edge_connections,
            random_requires_legal=self._random_requires_legal,
            mirror_horizontal=self._mirror_horizontal,
            mirror_vertical=self._mirror_vertical,
            grid_gap=self._grid_gap,
            preferred_tile_size=self._preferred_tile_size,
            fixed_rows=self._fixed_rows,
            fixed_columns=self._fixed_columns,
            random_source_indices=(sorted(self._random_source_indices)
                                   if self._random_source_indices is not None else None),
        )

    # =========================================================================
    # Derived helpers
    # =========================================================================

    def scope(self) -> EditScope:
        """Geometry snapshot for the current grid, zoom, selection, locks and mirrors"""
        return EditScope(self.rows, self.columns, self._zoom, self._selection, self._locked,
                         self._mirror_horizontal, self._mirror_vertical)

    def validator(self) -> PlacementValidator:
        return PlacementValidator(self._tables, self.rows, self.columns,
                                  self._allow_edge_connections, self._rng)

    def _random_sources(self) -> Optional[Set[int]]:
        if self._random_source_indices is None:
            return None
        sources = {i for i in self._random_source_indices if 0 <= i < self._tables.source_count}
        return sources or None

    def _next_order(self) -> int:
        self._placed_order += 1
        return self._placed_order

    def _push_undo(self):
        if not self._replaying:
            self._history.push(self._tiles)

    def _commit(self, next_tiles: List[Tile], push_undo: bool = False):
        if push_undo:
            self._push_undo()
        self._tiles = next_tiles
        self.tiles_changed.emit()

    def _commit_if_changed(self, next_tiles: Optional[List[Tile]], operation: str) -> bool:
        """Push one undo step and apply a batch result; False when nothing changed"""
        if next_tiles is None:
            return False
        changed = count_changed(self._tiles, next_tiles)
        if changed == 0:
            return False
        self._commit(next_tiles, push_undo=True)
        log_engine(f"{operation}: {changed} cell(s) changed")
        return True

    def _resolve_fixed_tile(self) -> Optional[Tile]:
        """The FIXED brush's tile; the source name wins over the index"""
        brush = self._brush
        if brush.mode is not BrushMode.FIXED:
            return None
        index = self._tables.index_of_name(brush.source_name) if brush.source_name else -1
        if index < 0:
            index = brush.index
        if index < 0 or index >= self._tables.source_count:
            return None
        return Tile(index, brush.rotation, brush.mirror_x, brush.mirror_y,
                    self._tables.name_at(index))

    def _resolve_names(self, tiles: Sequence[Tile]) -> List[Tile]:
        """Point named tiles at their source's current index"""
        resolved = []
        for tile in tiles:
            if tile.image_index >= 0 and tile.name:
                index = self._tables.index_of_name(tile.name)
                if index >= 0 and index != tile.image_index:
                    tile = replace(tile, image_index=index)
            resolved.append(tile)
        return resolved

    # =========================================================================
    # Layout
    # =========================================================================

    def _compute_layout(self) -> GridLayout:
        if self._fixed_rows > 0 and self._fixed_columns > 0:
            return compute_fixed_grid_layout(self._available_width, self._available_height,
                                             self._grid_gap, self._fixed_rows, self._fixed_columns)
        return compute_grid_layout(self._available_width, self._available_height,
                                   self._grid_gap, self._preferred_tile_size)

    def _relayout(self, emit: bool = True, force: bool = False):
        layout = self._compute_layout()
        if not force and layout == self._layout and len(self._tiles) == layout.cell_count:
            return
        shape_changed = (layout.rows, layout.columns) != (self._layout.rows, self._layout.columns)
        self._layout = layout
        self._tiles = normalize_tiles(self._resolve_names(self._tiles), layout.cell_count,
                                      self._tables.source_count)
        self._locked = frozenset(i for i in self._locked if 0 <= i < layout.cell_count)
        if shape_changed:
            self.gesture.reset()
            log_engine(f"Layout {layout.rows}x{layout.columns} @ {layout.tile_size}px")
        if emit:
            self.layout_changed.emit(self.grid_layout)
            self.tiles_changed.emit()

    def set_viewport(self, available_width: float, available_height: float):
        self._available_width = available_width
        self._available_height = available_height
        self._relayout()

    def set_grid_constraints(self, grid_gap: Optional[int] = None,
                             preferred_tile_size: Optional[int] = None,
                             fixed_rows: Optional[int] = None,
                             fixed_columns: Optional[int] = None):
        """Change sizing inputs; None leaves a value unchanged"""
        if grid_gap is not None:
            self._grid_gap = grid_gap
        if preferred_tile_size is not None:
            self._preferred_tile_size = preferred_tile_size
        if fixed_rows is not None:
            self._fixed_rows = fixed_rows
        if fixed_columns is not None:
            self._fixed_columns = fixed_columns
        self._relayout()

    # =========================================================================
    # Configuration
    # =========================================================================

    def apply_settings(self, settings: CanvasSettings):
        """Push a CanvasSettings object into the engine"""
        self._allow_edge_connections = settings.allow_edge_connections
        self._random_requires_legal = settings.random_requires_legal
        self._random_source_indices = (set(settings.random_source_indices)
                                       if settings.random_source_indices is not None else None)
        self.set_mirror(settings.mirror_horizontal, settings.mirror_vertical)
        self.set_grid_constraints(settings.grid_gap, settings.preferred_tile_size,
                                  settings.fixed_rows, settings.fixed_columns)

    def set_allow_edge_connections(self, allow: bool):
        self._allow_edge_connections = allow

    def set_random_requires_legal(self, requires_legal: bool):
        self._random_requires_legal = requires_legal

    def set_random_source_indices(self, indices: Optional[Iterable[int]]):
        self._random_source_indices = set(indices) if indices is not None else None

    def set_brush(self, brush: Brush):
        """Change the brush; a mode change drops all gesture state"""
        mode_changed = brush.mode is not self._brush.mode
        self._brush = brush
        if mode_changed:
            self.gesture.reset()
            self.clone_state_changed.emit()
            if self._tool_manager is not None:
                self._tool_manager.activate(brush.mode)

    def _on_tool_changed(self, new_mode: BrushMode, old_mode: BrushMode):
        if self._brush.mode is not new_mode:
            self._brush = Brush(new_mode)
        self.gesture.reset()
        self.clone_state_changed.emit()

    def set_pattern(self, pattern: Optional[Pattern]):
        self._pattern = pattern
        self.gesture.pattern_anchor = None

    def set_mirror(self, horizontal: bool, vertical: bool):
        self._mirror_horizontal = horizontal
        self._mirror_vertical = vertical

    def set_locked_cells(self, cells: Iterable[int]):
        count = len(self._tiles)
        self._locked = frozenset(i for i in cells if 0 <= i < count)

    def set_selection(self, selection: Optional[LockedRegion]):
        self._selection = selection

    def set_zoom_region(self, zoom_region: Optional[CellRect]):
        """Enter (or with None, leave) a zoom view given in full-grid rows/columns"""
        self._zoom = zoom_region
        self.gesture.end_stroke()
        self.layout_changed.emit(self.grid_layout)
        self.tiles_changed.emit()
        self.clone_state_changed.emit()

    def set_tile_sources(self, source_names: Sequence[str]):
        """
        Switch to a new ordered source list and remap the grid onto it.

        Error markers become empty. Named tiles follow their name (and are
        kept untouched when the name is gone). Unnamed tiles take the first
        variant realising their old transformed signature, or become empty.
        An empty source list empties every placed tile.
        """
        names = list(source_names)
        if names == self._source_names:
            return
        old_tables = self._tables
        new_tables = self._cache.get(names)
        self._source_names = names
        self._tables = new_tables

        if not self.suspend_remap:
            remapped = []
            for tile in self._tiles:
                remapped.append(self._remap_tile(tile, old_tables, new_tables))
            self._tiles = remapped
        self._tiles = normalize_tiles(self._tiles, self._layout.cell_count,
                                      new_tables.source_count)
        log_engine(f"Tile sources changed: {old_tables.source_count} -> {new_tables.source_count}")
        self.tiles_changed.emit()

    @staticmethod
    def _remap_tile(tile: Tile, old_tables: CompatibilityTables,
                    new_tables: CompatibilityTables) -> Tile:
        if tile.image_index == ERROR_INDEX:
            return EMPTY_TILE
        if tile.image_index < 0:
            return tile
        if new_tables.source_count == 0:
            return EMPTY_TILE
        if tile.name:
            index = new_tables.index_of_name(tile.name)
            return replace(tile, image_index=index) if index >= 0 else tile
        if tile.image_index >= old_tables.source_count:
            return EMPTY_TILE
        key = to_connection_key(old_tables.get_connections_for_placement(
            tile.image_index, tile.rotation, tile.mirror_x, tile.mirror_y))
        if key is None:
            # Non-directional: keep it only if the same source sits at the same index
            old_name = old_tables.name_at(tile.image_index)
            if new_tables.name_at(tile.image_index) == old_name:
                return replace(tile, name=old_name)
            return EMPTY_TILE
        variants = new_tables.variants_by_key.get(key)
        if not variants:
            return EMPTY_TILE
        variant = variants[0]
        return Tile(variant.index, variant.rotation, variant.mirror_x, variant.mirror_y,
                    new_tables.name_at(variant.index), tile.placed_order)

    def end_frame(self):
        """Called by the host once per frame; re-enables single presses"""
        self.bulk_update = False
        self._replaying = False

    def _on_history_changed(self, can_undo: bool, can_redo: bool):
        self.history_changed.emit(can_undo, can_redo)

    # =========================================================================
    # Presses
    # =========================================================================

    def handle_press(self, cell_index: int, part_of_drag: bool = False):
        """
        Apply the active brush at a display cell.

        Args:
            cell_index: Visible (zoom-local) cell index
            part_of_drag: True for every press after the first of a drag;
                the undo snapshot is then the one taken at drag start
        """
        if self.bulk_update:
            return
        scope = self.scope()
        if cell_index < 0 or cell_index >= scope.display_rows * scope.display_columns:
            return
        full_index = scope.visible_to_full(cell_index)
        if full_index >= len(self._tiles) or scope.is_locked(full_index):
            return

        mode = self._brush.mode
        if mode is BrushMode.CLONE and self.gesture.clone_source is None:
            self.set_clone_source(cell_index)
            return

        if not part_of_drag:
            self._push_undo()
            self.gesture.end_stroke()

        if mode is BrushMode.ERASE:
            self._press_erase(full_index, scope)
        elif mode is BrushMode.RANDOM:
            self._press_random(full_index, scope)
        elif mode is BrushMode.FIXED:
            tile = self._resolve_fixed_tile()
            if tile is not None:
                self._paint(full_index, scope, tile)
        elif mode is BrushMode.CLONE:
            self._press_clone(full_index, scope)
        elif mode is BrushMode.PATTERN:
            self._press_pattern(full_index, scope)
        elif mode is BrushMode.DRAW:
            self._press_draw(full_index, scope)

    def _paint(self, full_index: int, scope: EditScope, placement: Tile):
        """Write a placement; mirror targets only where they are empty"""
        next_tiles = list(self._tiles)
        apply_placements(next_tiles, scope.mirrored_placements(full_index, placement),
                         full_index, self._next_order(), scope.all_non_locked, override=False)
        self._commit(next_tiles)

    def _press_erase(self, full_index: int, scope: EditScope):
        next_tiles = list(self._tiles)
        apply_placements(next_tiles, scope.mirrored_placements(full_index, EMPTY_TILE),
                         full_index, self._next_order(), scope.all_non_locked)
        self._commit(next_tiles)

    def _press_random(self, full_index: int, scope: EditScope):
        now = self._clock()
        last = self.gesture.last_press
        if (last is not None and last.cell_index == full_index
                and now - last.time < RANDOM_PRESS_CACHE_SECONDS):
            self._paint(full_index, scope, last.tile)
            return

        validator = self.validator()
        treat_empty = (not self._allow_edge_connections and
                       validator.initialized_neighbor_count(full_index, self._tiles) > 0)
        placement = validator.select_compatible_tile(full_index, self._tiles,
                                                     self._random_sources(), treat_empty)
        if placement is None:
            if self._random_requires_legal:
                return
            next_tiles = list(self._tiles)
            apply_placements(next_tiles, {full_index: ERROR_TILE}, full_index, self._next_order())
            self._commit(next_tiles)
            return
        self.gesture.last_press = LastPress(full_index, placement, now)
        self._paint(full_index, scope, placement)

    def _press_clone(self, full_index: int, scope: EditScope):
        gesture = self.gesture
        if gesture.clone_anchor is None:
            gesture.clone_anchor = full_index
        view = scope.view_rect
        columns = self.columns
        source_row, source_col = divmod(gesture.clone_source, columns)
        anchor_row, anchor_col = divmod(gesture.clone_anchor, columns)
        row, col = divmod(full_index, columns)
        sample_row = view.min_row + (source_row - view.min_row + row - anchor_row) % view.rows
        sample_col = view.min_col + (source_col - view.min_col + col - anchor_col) % view.columns
        sample_index = sample_row * columns + sample_col

        gesture.clone_sample = sample_index
        gesture.clone_cursor = full_index
        self._paint(full_index, scope, self._tiles[sample_index])
        self.clone_state_changed.emit()

    def _press_pattern(self, full_index: int, scope: EditScope):
        if self._pattern is None or not self._pattern.is_usable:
            return
        if self.gesture.pattern_anchor is None:
            self.gesture.pattern_anchor = full_index
        anchor_row, anchor_col = divmod(self.gesture.pattern_anchor, self.columns)
        row, col = divmod(full_index, self.columns)
        tile = self._pattern.tile_for_offset(row - anchor_row, col - anchor_col)
        if tile is not None:
            self._paint(full_index, scope, tile)

    # =========================================================================
    # Draw brush
    # =========================================================================

    def _edge_legal(self, validator: PlacementValidator, cell_index: int,
                    candidates: List[Tile]) -> List[Tile]:
        """Drop candidates whose connectors point off the grid"""
        blank = build_initial_tiles(len(self._tiles))
        return [tile for tile in candidates if validator.is_placement_valid(cell_index, tile, blank)]

    def _press_draw(self, full_index: int, scope: EditScope):
        stroke = self.gesture.draw_stroke
        if full_index in stroke:
            return
        validator = self.validator()
        sources = self._random_sources()
        next_tiles = list(self._tiles)
        if stroke:
            direction = get_direction_from_to(stroke[-1], full_index, self.columns)
            if direction >= 0:
                self._extend_draw_stroke(full_index, direction, scope, validator, sources)
                return
            # Jumped away: close the old stroke and start a new one here
            self._finalize_draw_stroke(next_tiles, scope, validator, sources)

        candidates = self._edge_legal(validator, full_index, validator.with_palette_fallback(
            validator.candidates_with_connection_count, 1, allowed_indices=sources))
        first = validator.pick(candidates)
        if first is None:
            self.gesture.draw_stroke = []
        else:
            apply_placements(next_tiles, scope.mirrored_placements(full_index, first),
                             full_index, self._next_order(), scope.all_non_locked)
            self.gesture.draw_stroke = [full_index]
        if count_changed(self._tiles, next_tiles):
            self._commit(next_tiles)

    def _extend_draw_stroke(self, full_index: int, direction: int, scope: EditScope,
                            validator: PlacementValidator, sources: Optional[Set[int]]):
        """
        Add an adjacent cell: the new tile points back at the previous one
        plus one free end, and the previous tile is rewritten to connect
        exactly to its own predecessor and the new tile.
        """
        stroke = self.gesture.draw_stroke
        previous = stroke[-1]
        new_candidates = self._edge_legal(validator, full_index, validator.with_palette_fallback(
            validator.candidates_with_two_connections_one_being, opposite_direction(direction),
            allowed_indices=sources))
        previous_directions = {direction}
        if len(stroke) >= 2:
            back = get_direction_from_to(previous, stroke[-2], self.columns)
            if back >= 0:
                previous_directions.add(back)
        previous_candidates = validator.with_palette_fallback(
            validator.candidates_with_exact_connections, previous_directions,
            allowed_indices=sources)

        new_tile = validator.pick(new_candidates)
        previous_tile = validator.pick(previous_candidates)
        if new_tile is None or previous_tile is None:
            return

        trial = list(self._tiles)
        order = self._next_order()
        apply_placements(trial, scope.mirrored_placements(previous, previous_tile), previous,
                         order, scope.all_non_locked)
        apply_placements(trial, scope.mirrored_placements(full_index, new_tile), full_index,
                         order, scope.all_non_locked)
        extended = stroke + [full_index]
        if not validate_draw_stroke(extended, trial, self.columns,
                                    self._tables.get_connections_for_placement):
            return
        self.gesture.draw_stroke = extended
        self._commit(trial)

    def _finalize_draw_stroke(self, next_tiles: List[Tile], scope: EditScope,
                              validator: PlacementValidator, sources: Optional[Set[int]]):
        """Close the stroke's free end in place; clears the stroke buffer"""
        stroke = self.gesture.draw_stroke
        self.gesture.draw_stroke = []
        if not stroke:
            return
        last = stroke[-1]
        if len(stroke) == 1:
            directions = set()
        else:
            directions = {get_direction_from_to(last, stroke[-2], self.columns)}
        candidates = validator.with_palette_fallback(
            validator.candidates_with_exact_connections, directions, allowed_indices=sources)
        tile = validator.pick(candidates)
        if tile is None:
            if len(stroke) > 1:
                return
            tile = EMPTY_TILE
        apply_placements(next_tiles, scope.mirrored_placements(last, tile), last,
                         self._next_order(), scope.all_non_locked)

    def clear_draw_stroke(self):
        """End the draw gesture, giving the last tile a single connector toward its neighbor"""
        if not self.gesture.draw_stroke:
            return
        next_tiles = list(self._tiles)
        self._finalize_draw_stroke(next_tiles, self.scope(), self.validator(),
                                   self._random_sources())
        if count_changed(self._tiles, next_tiles):
            self._commit(next_tiles)

    # =========================================================================
    # Clone source
    # =========================================================================

    def set_clone_source(self, cell_index: int):
        """Make a display cell the clone source; the next press re-anchors"""
        scope = self.scope()
        if cell_index < 0 or cell_index >= scope.display_rows * scope.display_columns:
            return
        full_index = scope.visible_to_full(cell_index)
        self.gesture.clone_source = full_index
        self.gesture.clone_anchor = None
        self.gesture.clone_sample = full_index
        self.gesture.clone_cursor = None
        self.clone_state_changed.emit()

    def clear_clone_source(self):
        self.gesture.clone_source = None
        self.gesture.clone_anchor = None
        self.gesture.clone_sample = None
        self.gesture.clone_cursor = None
        self.clone_state_changed.emit()

    # =========================================================================
    # Batch operations
    # =========================================================================

    def _fill_context(self) -> FillContext:
        return FillContext(
            scope=self.scope(),
            validator=self.validator(),
            tiles=list(self._tiles),
            placed_order=self._next_order(),
            random_sources=self._random_sources(),
            random_requires_legal=self._random_requires_legal,
            pattern=self._pattern,
            fixed_tile=self._resolve_fixed_tile(),
        )

    def _begin_batch(self):
        self.bulk_update = True
        self.gesture.end_stroke()

    def flood_fill(self) -> bool:
        """
        Tap action: clear the writable set and refill it with the brush.

        Returns:
            True if the grid changed
        """
        self._begin_batch()
        return self._commit_if_changed(
            self._fill_engine.flood(self._fill_context(), self._brush.mode), "Flood")

    def flood_complete(self) -> bool:
        """Long-press action: fill only empty writable cells"""
        self._begin_batch()
        return self._commit_if_changed(
            self._fill_engine.flood_complete(self._fill_context(), self._brush.mode),
            "Flood complete")

    def reconcile_tiles(self) -> bool:
        self._begin_batch()
        return self._commit_if_changed(self._fill_engine.reconcile(self._fill_context()),
                                       "Reconcile")

    def controlled_randomize(self) -> bool:
        self._begin_batch()
        return self._commit_if_changed(
            self._fill_engine.controlled_randomize(self._fill_context()), "Controlled randomize")

    def random_fill(self) -> bool:
        self._begin_batch()
        return self._commit_if_changed(self._fill_engine.random_fill(self._fill_context()),
                                       "Random fill")

    def reset_tiles(self) -> bool:
        """
        Clear the selection (with its mirror images), else every unlocked
        cell of the zoom view or grid. One undo step.
        """
        self._begin_batch()
        scope = self.scope()
        cells = scope.clear_set() if scope.selection_bounds is not None else scope.all_non_locked
        next_tiles = list(self._tiles)
        for index in cells:
            next_tiles[index] = EMPTY_TILE
        return self._commit_if_changed(next_tiles, "Reset")

    def load_tiles(self, tiles: Sequence) -> None:
        """
        Replace the grid with saved content (Tile objects or their dicts).

        Names are re-resolved against the current sources, the grid is
        normalized to the current size and both history stacks are cleared.
        """
        parsed = [tile if isinstance(tile, Tile) else (Tile.from_json(tile) or EMPTY_TILE)
                  for tile in tiles]
        normalized = normalize_tiles(self._resolve_names(parsed), self._layout.cell_count,
                                     self._tables.source_count)
        self._history.clear()
        self.gesture.reset()
        self._placed_order = max([self._placed_order] + [t.placed_order for t in normalized])
        self._tiles = hydrate_tiles_with_source_names(normalized, self._source_names)
        log_engine(f"Loaded {len(self._tiles)} tile(s)")
        self.tiles_changed.emit()
        self.clone_state_changed.emit()

    # =========================================================================
    # Undo / Redo
    # =========================================================================

    def push_undo_for_drag_start(self):
        self._push_undo()

    def _restore(self, restored: Optional[List[Tile]]) -> bool:
        if restored is None:
            return False
        self._tiles = normalize_tiles(restored, self._layout.cell_count, self._tables.source_count)
        self.gesture.end_stroke()
        self.tiles_changed.emit()
        return True

    def undo(self) -> bool:
        self._replaying = True
        try:
            return self._restore(self._history.undo(self._tiles))
        finally:
            self._replaying = False

    def redo(self) -> bool:
        self._replaying = True
        try:
            return self._restore(self._history.redo(self._tiles))
        finally:
            self._replaying = False

    # =========================================================================
    # Region edits
    # =========================================================================

    def move_region(self, from_indices: Sequence[int], to_indices: Sequence[int]) -> bool:
        """
        Move tiles between full-grid cells, pairwise.

        Unlocked sources are cleared first, then each moved tile lands on its
        target unless the target is locked or off the grid. Locked sources
        are neither cleared nor moved.
        """
        self._begin_batch()
        if not from_indices or len(from_indices) != len(to_indices):
            return False
        count = len(self._tiles)
        moving = [self._tiles[i] if 0 <= i < count and i not in self._locked else None
                  for i in from_indices]
        next_tiles = list(self._tiles)
        for index in from_indices:
            if 0 <= index < count and index not in self._locked:
                next_tiles[index] = EMPTY_TILE
        order = self._next_order()
        for tile, target in zip(moving, to_indices):
            if tile is None or target < 0 or target >= count or target in self._locked:
                continue
            next_tiles[target] = tile if tile.image_index < 0 else replace(tile, placed_order=order)
        return self._commit_if_changed(next_tiles, "Move region")

    def rotate_region(self, min_row: int, max_row: int, min_col: int, max_col: int) -> bool:
        """
        Rotate a rectangle 90 degrees clockwise about its center.

        The rotated block is re-centered (half cells round up) and clamped
        into the grid; each tile turns with the block.
        """
        self._begin_batch()
        bounds = CellRect(min_row, max_row, min_col, max_col).intersect(
            CellRect(0, self.rows - 1, 0, self.columns - 1))
        if bounds is None:
            return False
        height, width = bounds.rows, bounds.columns
        new_height, new_width = width, height
        center_row = (bounds.min_row + bounds.max_row) / 2
        center_col = (bounds.min_col + bounds.max_col) / 2
        new_min_row = math.floor(center_row - (new_height - 1) / 2 + 0.5)
        new_min_col = math.floor(center_col - (new_width - 1) / 2 + 0.5)
        new_min_row = max(0, min(new_min_row, self.rows - new_height))
        new_min_col = max(0, min(new_min_col, self.columns - new_width))

        columns = self.columns
        next_tiles = list(self._tiles)
        for index in bounds.indices(columns):
            if index not in self._locked:
                next_tiles[index] = EMPTY_TILE
        order = self._next_order()
        for r in range(height):
            for c in range(width):
                source = (bounds.min_row + r) * columns + bounds.min_col + c
                if source in self._locked:
                    continue
                new_r, new_c = rotate_cell(r, c, height, width, 90)
                target_row, target_col = new_min_row + new_r, new_min_col + new_c
                if not (0 <= target_row < self.rows and 0 <= target_col < columns):
                    continue
                target = target_row * columns + target_col
                if target in self._locked:
                    continue
                tile = self._tiles[source]
                if tile.image_index >= 0:
                    rotation, mirror_x, mirror_y = apply_group_rotation_to_tile(
                        tile.rotation, tile.mirror_x, tile.mirror_y, 90)
                    tile = replace(tile, rotation=rotation, mirror_x=mirror_x,
                                   mirror_y=mirror_y, placed_order=order)
                next_tiles[target] = tile
        return self._commit_if_changed(next_tiles, "Rotate region")

    def mirror_zoom_region_to_rest_of_grid(self) -> bool:
        """
        Copy the zoom region's unlocked cells to their whole-grid mirror
        images (outside the zoom region, unlocked targets only).
        """
        self._begin_batch()
        scope = self.scope()
        if not scope.is_zoomed or not scope.mirror_on:
            return False
        view = scope.view_rect
        columns = self.columns
        next_tiles = list(self._tiles)
        order = self._next_order()
        for index in view.indices(columns):
            if index in self._locked:
                continue
            tile = self._tiles[index]
            for target, placement in scope.full_grid_mirror_targets(index, tile).items():
                if target in self._locked or view.contains_index(target, columns):
                    continue
                next_tiles[target] = (EMPTY_TILE if tile.image_index < 0
                                      else replace(placement, placed_order=order))
        return self._commit_if_changed(next_tiles, "Mirror zoom region")
