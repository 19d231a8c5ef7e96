"""
Tile model and whole-grid helpers: normalization, spiral order, name lookup
"""
from typing import Any, Callable, Dict, List, Optional, Sequence
from dataclasses import dataclass, replace


EMPTY_INDEX = -1  # Cell has no tile
ERROR_INDEX = -2  # A placement was requested but none was legal


@dataclass(frozen=True)
class Tile:
    """
    One grid cell.

    image_index indexes the active source list (EMPTY_INDEX / ERROR_INDEX
    are sentinels). When name is set it identifies the source across
    palette reorderings and wins over image_index. placed_order is the
    engine's edit counter, used only to order reconcile passes.
    """
    image_index: int = EMPTY_INDEX
    rotation: int = 0
    mirror_x: bool = False
    mirror_y: bool = False
    name: Optional[str] = None
    placed_order: int = 0

    @property
    def is_empty(self) -> bool:
        return self.image_index < 0

    @property
    def is_placed(self) -> bool:
        return self.image_index >= 0

    @property
    def is_error(self) -> bool:
        return self.image_index == ERROR_INDEX

    def with_order(self, placed_order: int) -> 'Tile':
        return replace(self, placed_order=placed_order)

    def same_state(self, other: 'Tile') -> bool:
        """Equality used by undo: index, transform and placement order"""
        return (self.image_index == other.image_index and
                self.rotation == other.rotation and
                self.mirror_x == other.mirror_x and
                self.mirror_y == other.mirror_y and
                self.placed_order == other.placed_order)

    def to_json(self) -> Dict[str, Any]:
        data = {
            'image_index': self.image_index,
            'rotation': self.rotation,
            'mirror_x': self.mirror_x,
            'mirror_y': self.mirror_y,
        }
        if self.name:
            data['name'] = self.name
        if self.placed_order:
            data['placed_order'] = self.placed_order
        return data

    @classmethod
    def from_json(cls, data: Any) -> Optional['Tile']:
        """Lenient parse; malformed fields fall back to defaults, non-dicts give None"""
        if not isinstance(data, dict):
            return None
        image_index = data.get('image_index', EMPTY_INDEX)
        if not isinstance(image_index, int) or isinstance(image_index, bool):
            image_index = EMPTY_INDEX
        rotation = data.get('rotation', 0)
        if not isinstance(rotation, int) or isinstance(rotation, bool):
            rotation = 0
        name = data.get('name')
        placed_order = data.get('placed_order', 0)
        if not isinstance(placed_order, int) or isinstance(placed_order, bool):
            placed_order = 0
        return cls(
            image_index=image_index,
            rotation=rotation % 360,
            mirror_x=data.get('mirror_x') is True,
            mirror_y=data.get('mirror_y') is True,
            name=name if isinstance(name, str) and name else None,
            placed_order=placed_order,
        )


EMPTY_TILE = Tile()
ERROR_TILE = Tile(image_index=ERROR_INDEX)


def build_initial_tiles(count: int) -> List[Tile]:
    """A grid of empty tiles"""
    if count <= 0:
        return []
    return [EMPTY_TILE] * count


def normalize_tiles(current_tiles: Optional[Sequence[Tile]], cell_count: int,
                    source_count: int) -> List[Tile]:
    """
    Repair a grid to exactly cell_count tiles.

    Short grids are padded with empty tiles, long grids are truncated, and
    indices past the current source count become empty.
    """
    if cell_count <= 0:
        return []
    if not current_tiles:
        return build_initial_tiles(cell_count)

    length = len(current_tiles)
    if length >= cell_count:
        result = list(current_tiles[:cell_count])
    else:
        result = list(current_tiles) + build_initial_tiles(cell_count - length)

    for i, tile in enumerate(result):
        if tile.image_index >= source_count:
            result[i] = EMPTY_TILE
    return result


def tiles_equal(left: Sequence[Tile], right: Sequence[Tile]) -> bool:
    if left is right:
        return True
    if len(left) != len(right):
        return False
    return all(a.same_state(b) for a, b in zip(left, right))


def count_changed(left: Sequence[Tile], right: Sequence[Tile]) -> int:
    return sum(1 for a, b in zip(left, right) if not a.same_state(b))


# =========================================================================
# Spiral order
# =========================================================================

def get_spiral_cell_order_in_rect(min_row: int, min_col: int, max_row: int,
                                  max_col: int, columns: int) -> List[int]:
    """
    Cell indices of a rectangle in spiral order.

    Starts at the top-left corner, runs right along the top edge, down the
    right edge, left along the bottom, up the left edge and repeats inward.
    Indices are full-grid indices for a grid of the given column count.
    """
    order = []
    if columns <= 0 or min_row > max_row or min_col > max_col:
        return order
    while min_row <= max_row and min_col <= max_col:
        for c in range(min_col, max_col + 1):
            order.append(min_row * columns + c)
        min_row += 1
        if min_row > max_row:
            break
        for r in range(min_row, max_row + 1):
            order.append(r * columns + max_col)
        max_col -= 1
        if min_col > max_col:
            break
        for c in range(max_col, min_col - 1, -1):
            order.append(max_row * columns + c)
        max_row -= 1
        if min_row > max_row:
            break
        for r in range(max_row, min_row - 1, -1):
            order.append(r * columns + min_col)
        min_col += 1
    return order


def get_spiral_cell_order(columns: int, rows: int) -> List[int]:
    """Spiral order over a whole columns x rows grid"""
    if columns <= 0 or rows <= 0:
        return []
    return get_spiral_cell_order_in_rect(0, 0, rows - 1, columns - 1, columns)


# =========================================================================
# Name resolution
# =========================================================================

def get_tile_source_index_by_name(source_names: Sequence[str], source_name: str) -> int:
    """Index of the source with the given name, or -1"""
    for index, name in enumerate(source_names):
        if name == source_name:
            return index
    return -1


def hydrate_tiles_with_source_names(tiles: List[Tile], source_names: Sequence[str]) -> List[Tile]:
    """
    Fill in missing tile names from source_names[image_index].

    Tiles that already carry a name, empty and error tiles are left alone.
    The input list is returned unchanged when no names are given.
    """
    if not source_names:
        return tiles
    hydrated = []
    for tile in tiles:
        if tile is None or tile.image_index < 0 or tile.name:
            hydrated.append(tile)
            continue
        name = source_names[tile.image_index] if tile.image_index < len(source_names) else None
        hydrated.append(replace(tile, name=name) if name else tile)
    return hydrated


def resolve_display_source(tile: Tile, resolve_by_name: Callable[[str], Any],
                           get_by_index: Callable[[int], Any]) -> Any:
    """
    Pick the source to draw for a tile.

    A named tile resolves by name only; a missing name match gives None
    rather than falling back to the (possibly stale) index.
    """
    if tile.name:
        return resolve_by_name(tile.name)
    if tile.image_index >= 0:
        return get_by_index(tile.image_index)
    return None
