"""
Design file payload - versioned JSON for a saved canvas

    {
      "v": 1,
      "name": "My design",
      "grid": {"rows": 8, "columns": 8},
      "tiles": [{"image_index": 0, "rotation": 90, "mirror_x": false,
                 "mirror_y": false, "name": "road_10001000.svg"}, ...],
      "preferred_tile_size": 48,
      "source_names": [...],
      "locked_cells": [...]
    }

Tiles carry their source name whenever the source list resolves one, so a
design reloaded against a reordered source list keeps its identity.
"""
import json
from typing import Any, Dict, List, Optional, Sequence
from dataclasses import dataclass, field

from .grid import Tile, EMPTY_TILE, hydrate_tiles_with_source_names


TILE_FORMAT_VERSION = 1


class TileFormatError(ValueError):
    """A design payload that cannot be read"""


@dataclass
class Design:
    """A decoded design file"""
    name: str
    rows: int
    columns: int
    tiles: List[Tile] = field(default_factory=list)
    preferred_tile_size: Optional[int] = None
    source_names: List[str] = field(default_factory=list)
    locked_cells: List[int] = field(default_factory=list)


def serialize_design(name: str, rows: int, columns: int, tiles: Sequence[Tile],
                     source_names: Sequence[str] = (),
                     preferred_tile_size: Optional[int] = None,
                     locked_cells: Sequence[int] = ()) -> str:
    """
    Encode a design as JSON text.

    Args:
        name: Display name of the design
        rows: Full-grid rows
        columns: Full-grid columns
        tiles: The full grid (row-major)
        source_names: Active source names, used to name unnamed tiles
        preferred_tile_size: Optional sizing hint
        locked_cells: Locked full-grid indices

    Returns:
        The JSON payload
    """
    named = hydrate_tiles_with_source_names(list(tiles), list(source_names))
    payload: Dict[str, Any] = {
        'v': TILE_FORMAT_VERSION,
        'name': name,
        'grid': {'rows': rows, 'columns': columns},
        'tiles': [tile.to_json() for tile in named],
        'source_names': list(source_names),
        'locked_cells': sorted(set(locked_cells)),
    }
    if preferred_tile_size is not None:
        payload['preferred_tile_size'] = preferred_tile_size
    return json.dumps(payload)


def _int_field(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise TileFormatError(f"'{key}' must be a non-negative integer")
    return value


def _list_field(data: Dict[str, Any], key: str) -> List[Any]:
    """Optional list field; missing or null reads as empty"""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TileFormatError(f"'{key}' must be a list")
    return value


def deserialize_design(text: str) -> Design:
    """
    Decode a design payload.

    Individual tiles are normalized leniently (bad fields fall back to an
    empty/untransformed tile); the envelope is strict.

    Raises:
        TileFormatError: Invalid JSON, unsupported version, missing grid size
            or a list field holding something else
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise TileFormatError(f"Design is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise TileFormatError("Design must be a JSON object")

    version = data.get('v')
    if version != TILE_FORMAT_VERSION:
        raise TileFormatError(f"Unsupported design version: {version!r}")

    grid = data.get('grid')
    if not isinstance(grid, dict):
        raise TileFormatError("Design is missing 'grid'")
    rows = _int_field(grid, 'rows')
    columns = _int_field(grid, 'columns')

    tiles = [Tile.from_json(raw) or EMPTY_TILE for raw in _list_field(data, 'tiles')]

    preferred = data.get('preferred_tile_size')
    if not isinstance(preferred, int) or isinstance(preferred, bool):
        preferred = None

    source_names = [n for n in _list_field(data, 'source_names') if isinstance(n, str)]
    locked_cells = [i for i in _list_field(data, 'locked_cells')
                    if isinstance(i, int) and not isinstance(i, bool) and 0 <= i < rows * columns]

    name = data.get('name')
    return Design(
        name=name if isinstance(name, str) else "",
        rows=rows,
        columns=columns,
        tiles=tiles,
        preferred_tile_size=preferred,
        source_names=source_names,
        locked_cells=locked_cells,
    )
