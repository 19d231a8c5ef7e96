"""
Placement validator and candidate generator.

A candidate placement is legal at a cell when, for each of the 8
directions, its connector agrees with the neighbor's facing connector.
Off-grid directions (and, with a restriction set, directions leaving it)
must carry no connector unless edge connections are allowed. Empty
neighbors are unconstrained unless the caller asks to treat them as
"no connection".
"""
import random
from typing import Iterable, List, Optional, Sequence, Set

from .compat import CompatibilityTables, TileVariant
from .connections import DIRECTION_OFFSETS, Connections, opposite_direction
from .grid import Tile, EMPTY_TILE, ERROR_TILE


# Constraint value meaning "this direction is not constrained"
UNCONSTRAINED = None


class PlacementValidator:
    """
    Checks and enumerates legal placements on one full grid.

    Args:
        tables: Compatibility tables for the active sources
        rows: Full-grid row count
        columns: Full-grid column count
        allow_edge_connections: Whether connectors may point off the grid
        rng: Random source for candidate selection
    """

    def __init__(self, tables: CompatibilityTables, rows: int, columns: int,
                 allow_edge_connections: bool = False, rng: Optional[random.Random] = None):
        self.tables = tables
        self.rows = rows
        self.columns = columns
        self.allow_edge_connections = allow_edge_connections
        self.rng = rng or random.Random()

    # =========================================================================
    # Connection lookup
    # =========================================================================

    def effective_connection_index(self, tile: Optional[Tile]) -> int:
        """Source index used for connector lookup; the tile name wins over image_index"""
        if tile is None or tile.image_index < 0:
            return -1
        if tile.name:
            by_name = self.tables.index_of_name(tile.name)
            if by_name >= 0:
                return by_name
        return tile.image_index

    def connections_of(self, tile: Optional[Tile]) -> Optional[Connections]:
        index = self.effective_connection_index(tile)
        if index < 0:
            return None
        return self.tables.get_connections_for_placement(index, tile.rotation,
                                                         tile.mirror_x, tile.mirror_y)

    def connection_count(self, tile: Tile) -> int:
        conn = self.connections_of(tile)
        return sum(1 for value in conn if value) if conn else 0

    # =========================================================================
    # Neighbor constraints
    # =========================================================================

    def neighbor_constraints(self, cell_index: int, tiles: Sequence[Tile],
                             treat_empty_as_no_connection: bool = False,
                             restrict_to: Optional[Set[int]] = None) -> List[Optional[bool]]:
        """
        Required connector value per direction for a candidate at cell_index.

        Returns:
            8 entries, each True/False or UNCONSTRAINED
        """
        row, col = divmod(cell_index, self.columns)
        constraints: List[Optional[bool]] = []
        for direction, (dr, dc) in enumerate(DIRECTION_OFFSETS):
            r, c = row + dr, col + dc
            if r < 0 or c < 0 or r >= self.rows or c >= self.columns:
                constraints.append(UNCONSTRAINED if self.allow_edge_connections else False)
                continue
            neighbor_index = r * self.columns + c
            if (restrict_to is not None and not self.allow_edge_connections
                    and neighbor_index not in restrict_to):
                constraints.append(False)
                continue
            neighbor = tiles[neighbor_index] if neighbor_index < len(tiles) else None
            if neighbor is None or self.effective_connection_index(neighbor) < 0:
                constraints.append(False if treat_empty_as_no_connection else UNCONSTRAINED)
                continue
            neighbor_conn = self.connections_of(neighbor)
            if neighbor_conn is None:
                # Non-directional neighbors accept anything
                constraints.append(UNCONSTRAINED)
                continue
            constraints.append(neighbor_conn[opposite_direction(direction)])
        return constraints

    @staticmethod
    def _matches(connections: Connections, constraints: Sequence[Optional[bool]]) -> bool:
        return all(required is UNCONSTRAINED or connections[d] == required
                   for d, required in enumerate(constraints))

    def is_placement_valid(self, cell_index: int, placement: Tile, tiles: Sequence[Tile],
                           treat_empty_as_no_connection: bool = False,
                           restrict_to: Optional[Set[int]] = None) -> bool:
        """
        Whether placement is legal at cell_index against the current tiles.

        Non-directional and empty placements are always legal.
        """
        transformed = self.connections_of(placement)
        if transformed is None:
            return True
        constraints = self.neighbor_constraints(cell_index, tiles,
                                                treat_empty_as_no_connection, restrict_to)
        return self._matches(transformed, constraints)

    def initialized_neighbor_count(self, cell_index: int, tiles: Sequence[Tile]) -> int:
        """Number of on-grid neighbors holding a placed tile"""
        row, col = divmod(cell_index, self.columns)
        count = 0
        for dr, dc in DIRECTION_OFFSETS:
            r, c = row + dr, col + dc
            if r < 0 or c < 0 or r >= self.rows or c >= self.columns:
                continue
            neighbor_index = r * self.columns + c
            if neighbor_index < len(tiles) and tiles[neighbor_index].image_index >= 0:
                count += 1
        return count

    # =========================================================================
    # Candidates
    # =========================================================================

    def _variant_tile(self, variant: TileVariant) -> Tile:
        return Tile(variant.index, variant.rotation, variant.mirror_x, variant.mirror_y,
                    self.tables.name_at(variant.index))

    def _source_indices(self, allowed_indices: Optional[Iterable[int]]) -> Iterable[int]:
        if allowed_indices is None:
            return range(self.tables.source_count)
        return sorted(i for i in allowed_indices if 0 <= i < self.tables.source_count)

    def build_compatible_candidates(self, cell_index: int, tiles: Sequence[Tile],
                                    allowed_indices: Optional[Set[int]] = None,
                                    treat_empty_as_no_connection: bool = False,
                                    restrict_to: Optional[Set[int]] = None) -> List[Tile]:
        """
        Every legal (source, rotation, mirror) placement at cell_index.

        Non-directional sources are always candidates, untransformed.
        allowed_indices limits the sources considered (sub-palette).
        """
        if self.tables.source_count <= 0:
            return []
        constraints = self.neighbor_constraints(cell_index, tiles,
                                                treat_empty_as_no_connection, restrict_to)
        candidates = []
        for index in self._source_indices(allowed_indices):
            if self.tables.connections_by_index[index] is None:
                candidates.append(Tile(index, 0, False, False, self.tables.name_at(index)))
                continue
            for variant in self.tables.variants_by_index[index]:
                if self._matches(variant.connections, constraints):
                    candidates.append(self._variant_tile(variant))
        return candidates

    def pick(self, candidates: Sequence[Tile]) -> Optional[Tile]:
        """Uniform random choice, None for an empty list"""
        if not candidates:
            return None
        return candidates[self.rng.randrange(len(candidates))]

    def select_compatible_tile(self, cell_index: int, tiles: Sequence[Tile],
                               allowed_indices: Optional[Set[int]] = None,
                               treat_empty_as_no_connection: bool = False,
                               restrict_to: Optional[Set[int]] = None) -> Optional[Tile]:
        return self.pick(self.build_compatible_candidates(
            cell_index, tiles, allowed_indices, treat_empty_as_no_connection, restrict_to))

    def get_random_placement(self, cell_index: int, tiles: Sequence[Tile],
                             allowed_indices: Optional[Set[int]] = None,
                             random_requires_legal: bool = False,
                             treat_empty_as_no_connection: bool = False,
                             restrict_to: Optional[Set[int]] = None) -> Tile:
        """
        A random legal placement, or a sentinel when none exists.

        Returns:
            The placement; EMPTY_TILE on failure when random_requires_legal,
            otherwise ERROR_TILE
        """
        selection = self.select_compatible_tile(cell_index, tiles, allowed_indices,
                                                treat_empty_as_no_connection, restrict_to)
        if selection is not None and self.is_placement_valid(
                cell_index, selection, tiles, treat_empty_as_no_connection, restrict_to):
            return selection
        return EMPTY_TILE if random_requires_legal else ERROR_TILE

    # =========================================================================
    # Exact-shape candidates (draw brush)
    # =========================================================================

    def _directional_variants(self, allowed_indices: Optional[Set[int]]):
        for index in self._source_indices(allowed_indices):
            yield from self.tables.variants_by_index[index]

    def candidates_with_connection_count(self, count: int,
                                         allowed_indices: Optional[Set[int]] = None) -> List[Tile]:
        """Directional variants with exactly count connectors"""
        return [self._variant_tile(v) for v in self._directional_variants(allowed_indices)
                if v.connection_count == count]

    def candidates_with_two_connections_one_being(self, required_direction: int,
                                                  allowed_indices: Optional[Set[int]] = None) -> List[Tile]:
        return [self._variant_tile(v) for v in self._directional_variants(allowed_indices)
                if v.connection_count == 2 and v.connections[required_direction]]

    def candidates_with_exact_connections(self, directions: Iterable[int],
                                          allowed_indices: Optional[Set[int]] = None) -> List[Tile]:
        """Directional variants connecting in exactly the given directions"""
        wanted = set(directions)
        return [self._variant_tile(v) for v in self._directional_variants(allowed_indices)
                if all(v.connections[d] == (d in wanted) for d in range(8))]

    def with_palette_fallback(self, finder, *args, allowed_indices: Optional[Set[int]] = None) -> List[Tile]:
        """Run a candidate finder on the sub-palette first, then on all sources"""
        candidates = finder(*args, allowed_indices)
        if not candidates and allowed_indices is not None:
            candidates = finder(*args, None)
        return candidates
