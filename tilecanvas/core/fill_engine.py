"""
Fill Engine - Grid-wide batch operations.

Provides:
- Flood: clear the writable set and refill it with the active brush
- Flood Complete: fill only empty cells (plus empty mirror counterparts)
- Reconcile: best-effort repair of invalid placements, oldest edits first
- Controlled Randomize: reshuffle tiles while keeping every signature
- Random Fill: clear and refill with random legal tiles

Every operation works on a copy of the grid and returns the new grid; the
caller owns undo and notification.
"""
from typing import Iterable, List, Optional, Set
from dataclasses import dataclass

from PyQt6 import QtCore

from .brush import BrushMode, Pattern
from .connections import to_connection_key
from .draw_stroke import path_role_directions, split_into_adjacent_runs
from .grid import Tile, EMPTY_TILE, EMPTY_INDEX, count_changed, get_spiral_cell_order_in_rect
from .logging import log_fill
from .placement import PlacementValidator
from .scope import EditScope, apply_placements


# Upper bound on reconcile passes regardless of grid size
MAX_RECONCILE_PASSES = 50
MIN_RECONCILE_PASSES = 8


@dataclass
class FillContext:
    """
    Everything a batch operation needs.

    Attributes:
        scope: Grid geometry, writable sets and mirror projection
        validator: Placement rules for the full grid
        tiles: The normalized full grid (not modified)
        placed_order: Edit counter value stamped on written tiles
        random_sources: Optional sub-palette for random picks
        random_requires_legal: Failed random picks leave cells empty instead of erroring
        pattern: Active pattern for PATTERN floods
        fixed_tile: Resolved tile for FIXED floods (None disables them)
    """
    scope: EditScope
    validator: PlacementValidator
    tiles: List[Tile]
    placed_order: int
    random_sources: Optional[Set[int]] = None
    random_requires_legal: bool = False
    pattern: Optional[Pattern] = None
    fixed_tile: Optional[Tile] = None

    @property
    def restrict_to(self) -> Set[int]:
        """Cells treated as real neighbors: the writable area plus locked cells"""
        return set(self.scope.placement_allow_set) | set(self.scope.locked)


class FillEngine(QtCore.QObject):
    """
    Engine for batch fill operations.

    Signals:
        operation_finished: Emitted after each operation (name, changed cell count)
    """

    operation_finished = QtCore.pyqtSignal(str, int)

    def __init__(self):
        super().__init__()

    # =========================================================================
    # Flood
    # =========================================================================

    def flood(self, ctx: FillContext, mode: BrushMode) -> Optional[List[Tile]]:
        """
        Clear the writable set and refill it.

        Returns:
            The new grid, or None when the brush has no flood (clone) or
            nothing can be painted
        """
        if ctx.scope.cell_count <= 0 or mode is BrushMode.CLONE:
            return None

        next_tiles = list(ctx.tiles)
        for index in ctx.scope.clear_set():
            next_tiles[index] = EMPTY_TILE

        if mode is BrushMode.ERASE:
            pass
        elif mode is BrushMode.RANDOM:
            if ctx.validator.tables.source_count <= 0:
                return None
            order = ctx.scope.driven_indices
            ctx.validator.rng.shuffle(order)
            self._fill_random(ctx, next_tiles, order)
        elif mode is BrushMode.DRAW:
            if ctx.validator.tables.source_count <= 0:
                return None
            self._fill_draw_paths(ctx, next_tiles, self._draw_order(ctx.scope))
        elif mode is BrushMode.PATTERN:
            if ctx.pattern is None or not ctx.pattern.is_usable:
                return None
            self._fill_pattern(ctx, next_tiles, ctx.scope.driven_indices)
        elif mode is BrushMode.FIXED:
            if ctx.fixed_tile is None:
                return None
            for index in ctx.scope.driven_indices:
                apply_placements(next_tiles, ctx.scope.mirrored_placements(index, ctx.fixed_tile),
                                 index, ctx.placed_order, ctx.scope.placement_allow_set)

        self._finish('flood', mode, ctx.tiles, next_tiles)
        return next_tiles

    def random_fill(self, ctx: FillContext) -> Optional[List[Tile]]:
        """Clear the writable set and fill it with random legal tiles from a random start"""
        if ctx.scope.cell_count <= 0 or ctx.validator.tables.source_count <= 0:
            return None
        next_tiles = list(ctx.tiles)
        for index in ctx.scope.clear_set():
            next_tiles[index] = EMPTY_TILE
        driven = ctx.scope.driven_indices
        if driven:
            start = ctx.validator.rng.randrange(len(driven))
            driven = driven[start:] + driven[:start]
        self._fill_random(ctx, next_tiles, driven)
        self._finish('random_fill', BrushMode.RANDOM, ctx.tiles, next_tiles)
        return next_tiles

    def _fill_random(self, ctx: FillContext, next_tiles: List[Tile], order: Iterable[int]):
        restrict = ctx.restrict_to
        allow = ctx.scope.placement_allow_set
        for index in order:
            placement = ctx.validator.get_random_placement(
                index, next_tiles, ctx.random_sources, ctx.random_requires_legal,
                False, restrict)
            apply_placements(next_tiles, ctx.scope.mirrored_placements(index, placement),
                             index, ctx.placed_order, allow)

    def _fill_pattern(self, ctx: FillContext, next_tiles: List[Tile], order: Iterable[int],
                      override: bool = True):
        columns = ctx.scope.columns
        for index in order:
            row, col = divmod(index, columns)
            tile = ctx.pattern.tile_for_offset(row, col)
            if tile is None or (not override and tile.image_index == EMPTY_INDEX):
                continue
            apply_placements(next_tiles, ctx.scope.mirrored_placements(index, tile), index,
                             ctx.placed_order, ctx.scope.placement_allow_set, override)

    @staticmethod
    def _draw_order(scope: EditScope, eligible: Optional[Set[int]] = None) -> List[int]:
        """Spiral over the selection (or view), keeping writable cells"""
        rect = scope.selection_bounds or scope.view_rect
        keep = scope.driven_set if eligible is None else eligible
        return [i for i in get_spiral_cell_order_in_rect(rect.min_row, rect.min_col,
                                                         rect.max_row, rect.max_col,
                                                         scope.columns)
                if i in keep]

    def _fill_draw_paths(self, ctx: FillContext, next_tiles: List[Tile], order: List[int],
                         override: bool = True) -> int:
        """
        Lay one path through order, split wherever consecutive cells are not
        adjacent. Endpoints get one connector, interior cells two, and an
        isolated cell the empty signature.
        """
        columns = ctx.scope.columns
        validator = ctx.validator
        written = 0
        for run in split_into_adjacent_runs(order, columns):
            for position, cell_index in enumerate(run):
                directions = path_role_directions(run, position, columns)
                candidates = validator.with_palette_fallback(
                    validator.candidates_with_exact_connections, directions,
                    allowed_indices=ctx.random_sources)
                placement = validator.pick(candidates) or EMPTY_TILE
                if placement.image_index == EMPTY_INDEX and not override:
                    continue
                written += apply_placements(
                    next_tiles, ctx.scope.mirrored_placements(cell_index, placement),
                    cell_index, ctx.placed_order, ctx.scope.placement_allow_set, override)
        return written

    # =========================================================================
    # Flood Complete
    # =========================================================================

    def _complete_eligible(self, scope: EditScope, tiles: List[Tile]) -> List[int]:
        eligible = [i for i in scope.driven_indices if tiles[i].image_index == EMPTY_INDEX]
        if scope.mirror_on:
            seen = set(eligible)
            scan = scope.driven_indices if scope.selection_bounds else sorted(scope.all_non_locked)
            for index in scan:
                if index in seen or tiles[index].image_index != EMPTY_INDEX:
                    continue
                if any(tiles[t].image_index >= 0 for t in scope.mirror_targets(index)):
                    eligible.append(index)
                    seen.add(index)
        return eligible

    def flood_complete(self, ctx: FillContext, mode: BrushMode) -> Optional[List[Tile]]:
        """
        Fill only empty writable cells.

        Passes repeat until one writes nothing, so a second call with no
        edits in between finds nothing left to fill.
        """
        if ctx.scope.cell_count <= 0 or mode is BrushMode.CLONE:
            return None
        if mode is BrushMode.ERASE:
            return self.flood(ctx, mode)
        if mode in (BrushMode.RANDOM, BrushMode.DRAW) and ctx.validator.tables.source_count <= 0:
            return None
        if mode is BrushMode.PATTERN and (ctx.pattern is None or not ctx.pattern.is_usable):
            return None
        if mode is BrushMode.FIXED and ctx.fixed_tile is None:
            return None

        next_tiles = list(ctx.tiles)
        allow = ctx.scope.placement_allow_set
        for _ in range(max(1, ctx.scope.cell_count)):
            eligible = self._complete_eligible(ctx.scope, next_tiles)
            if not eligible:
                break
            before = list(next_tiles)
            if mode is BrushMode.DRAW:
                self._fill_draw_paths(ctx, next_tiles, self._draw_order(ctx.scope, set(eligible)),
                                      override=False)
            elif mode is BrushMode.PATTERN:
                self._fill_pattern(ctx, next_tiles,
                                   [i for i in eligible if next_tiles[i].image_index == EMPTY_INDEX],
                                   override=False)
            else:
                restrict = ctx.restrict_to
                for index in eligible:
                    if next_tiles[index].image_index != EMPTY_INDEX:
                        continue
                    if mode is BrushMode.FIXED:
                        placement = ctx.fixed_tile
                    else:
                        placement = ctx.validator.get_random_placement(
                            index, next_tiles, ctx.random_sources,
                            ctx.random_requires_legal, False, restrict)
                        if placement.image_index == EMPTY_INDEX:
                            continue
                    apply_placements(next_tiles, ctx.scope.mirrored_placements(index, placement),
                                     index, ctx.placed_order, allow, override=False)
            if count_changed(before, next_tiles) == 0:
                break

        self._finish('flood_complete', mode, ctx.tiles, next_tiles)
        return next_tiles

    # =========================================================================
    # Reconcile / Controlled Randomize
    # =========================================================================

    @staticmethod
    def _scan_indices(scope: EditScope) -> List[int]:
        """Driven cells, plus the mirrored side when mirroring"""
        if not scope.mirror_on:
            return scope.driven_indices
        return sorted(scope.clear_set())

    def reconcile(self, ctx: FillContext) -> Optional[List[Tile]]:
        """
        Replace invalid placements with random valid ones.

        Cells are visited oldest edit first so the newest strokes survive.
        Empty and out-of-area neighbors count as "no connection". Under
        mirroring both sides are checked; a repair's mirror image is written
        only where it is itself valid, so every write removes mismatches and
        none adds them. Stops at a fixed point or after the pass limit;
        unsatisfiable cells stay as-is.
        """
        if ctx.scope.cell_count <= 0 or ctx.validator.tables.source_count <= 0:
            return None
        scope = ctx.scope
        validator = ctx.validator
        next_tiles = list(ctx.tiles)
        restrict = ctx.restrict_to
        allow = scope.placement_allow_set
        scan = self._scan_indices(scope)
        max_passes = min(MAX_RECONCILE_PASSES,
                         max(MIN_RECONCILE_PASSES, scope.display_rows + scope.display_columns))
        passes = 0
        for passes in range(1, max_passes + 1):
            changed = False
            indices = [i for i in scan if next_tiles[i].image_index >= 0]
            indices.sort(key=lambda i: next_tiles[i].placed_order)
            for index in indices:
                tile = next_tiles[index]
                if tile.image_index < 0:
                    continue
                if validator.is_placement_valid(index, tile, next_tiles, True, restrict):
                    continue
                pick = validator.select_compatible_tile(index, next_tiles, ctx.random_sources,
                                                        True, restrict)
                if pick is None:
                    continue
                apply_placements(next_tiles, {index: pick}, index, ctx.placed_order, allow)
                for target, mirrored in scope.mirrored_placements(index, pick).items():
                    if target == index or target not in allow:
                        continue
                    if validator.is_placement_valid(target, mirrored, next_tiles, True, restrict):
                        apply_placements(next_tiles, {target: mirrored}, target,
                                         ctx.placed_order, allow)
                changed = True
            if not changed:
                break
        log_fill(f"Reconcile finished after {passes} pass(es)")
        self._finish('reconcile', None, ctx.tiles, next_tiles)
        return next_tiles

    def controlled_randomize(self, ctx: FillContext) -> Optional[List[Tile]]:
        """
        Redraw every writable placed tile from the variants sharing its
        exact transformed signature. Connectivity is unchanged.

        Under mirroring a pick is copied to a counterpart only when the
        counterpart already carries the mirrored signature; other
        counterparts are redrawn on their own.
        """
        if ctx.scope.cell_count <= 0 or ctx.validator.tables.source_count <= 0:
            return None
        scope = ctx.scope
        validator = ctx.validator
        tables = validator.tables
        allow = scope.placement_allow_set
        next_tiles = list(ctx.tiles)
        done = set()
        for index in self._scan_indices(scope):
            current = next_tiles[index]
            if index in done or current.image_index < 0:
                continue
            key = to_connection_key(validator.connections_of(current))
            if key is None:
                continue
            candidates = tables.variants_for_key(key, ctx.random_sources)
            if not candidates:
                continue
            variant = candidates[validator.rng.randrange(len(candidates))]
            pick = Tile(variant.index, variant.rotation, variant.mirror_x, variant.mirror_y,
                        tables.name_at(variant.index))
            apply_placements(next_tiles, {index: pick}, index, ctx.placed_order, allow)
            done.add(index)
            for target, mirrored in scope.mirrored_placements(index, pick).items():
                if target == index or target in done or target not in allow:
                    continue
                existing = next_tiles[target]
                if existing.image_index < 0:
                    continue
                if to_connection_key(validator.connections_of(existing)) != \
                        to_connection_key(validator.connections_of(mirrored)):
                    continue
                apply_placements(next_tiles, {target: mirrored}, target, ctx.placed_order, allow)
                done.add(target)
        self._finish('controlled_randomize', None, ctx.tiles, next_tiles)
        return next_tiles

    # =========================================================================
    # Helpers
    # =========================================================================

    def _finish(self, operation: str, mode: Optional[BrushMode], before: List[Tile],
                after: List[Tile]):
        changed = count_changed(before, after)
        label = f"{operation} ({mode.value})" if mode is not None else operation
        log_fill(f"{label}: {changed} cell(s) changed")
        self.operation_finished.emit(operation, changed)
