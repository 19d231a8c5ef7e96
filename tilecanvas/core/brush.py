"""
Brush and Pattern - what a press or flood paints with
"""
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum

from .grid import Tile
from .transforms import (
    apply_group_rotation_to_tile, display_to_pattern_cell, get_rotated_dimensions,
    normalize_rotation_cw,
)


class BrushMode(Enum):
    """Brush modes"""
    RANDOM = "random"    # Random legal tile per cell
    FIXED = "fixed"      # One chosen tile/variant
    ERASE = "erase"      # Clear to empty
    CLONE = "clone"      # Torus-wrapped copy from a source cell
    PATTERN = "pattern"  # Tiled pattern stamp
    DRAW = "draw"        # Edge-following path


@dataclass(frozen=True)
class Brush:
    """
    A brush descriptor.

    index / source_name / rotation / mirror_x / mirror_y only matter for
    FIXED brushes; source_name, when it resolves, wins over index so
    placements survive palette reordering.
    """
    mode: BrushMode = BrushMode.RANDOM
    index: int = -1
    source_name: Optional[str] = None
    rotation: int = 0
    mirror_x: bool = False
    mirror_y: bool = False

    @classmethod
    def random(cls) -> 'Brush':
        return cls(BrushMode.RANDOM)

    @classmethod
    def erase(cls) -> 'Brush':
        return cls(BrushMode.ERASE)

    @classmethod
    def clone(cls) -> 'Brush':
        return cls(BrushMode.CLONE)

    @classmethod
    def pattern(cls) -> 'Brush':
        return cls(BrushMode.PATTERN)

    @classmethod
    def draw(cls) -> 'Brush':
        return cls(BrushMode.DRAW)

    @classmethod
    def fixed(cls, index: int, rotation: int = 0, mirror_x: bool = False,
              mirror_y: bool = False, source_name: Optional[str] = None) -> 'Brush':
        return cls(BrushMode.FIXED, index, source_name, normalize_rotation_cw(rotation),
                   mirror_x, mirror_y)

    def to_json(self) -> Dict[str, Any]:
        """Convert brush to a JSON-serializable dictionary"""
        data = {'mode': self.mode.value}
        if self.mode is BrushMode.FIXED:
            data.update({
                'index': self.index,
                'rotation': self.rotation,
                'mirror_x': self.mirror_x,
                'mirror_y': self.mirror_y,
            })
            if self.source_name:
                data['source_name'] = self.source_name
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'Brush':
        """
        Create a brush from a dictionary.

        Raises:
            ValueError: Unknown mode or malformed fixed-brush fields
        """
        if not isinstance(data, dict):
            raise ValueError(f"Brush data must be an object, got {type(data).__name__}")
        try:
            mode = BrushMode(data.get('mode'))
        except ValueError:
            raise ValueError(f"Unknown brush mode: {data.get('mode')!r}") from None
        if mode is not BrushMode.FIXED:
            return cls(mode)
        index = data.get('index', -1)
        rotation = data.get('rotation', 0)
        if not isinstance(index, int) or not isinstance(rotation, int):
            raise ValueError("Fixed brush needs integer 'index' and 'rotation'")
        source_name = data.get('source_name')
        return cls.fixed(index, rotation, bool(data.get('mirror_x', False)),
                         bool(data.get('mirror_y', False)),
                         source_name if isinstance(source_name, str) and source_name else None)


@dataclass(frozen=True)
class Pattern:
    """
    A rectangular stamp (height rows x width columns, row-major tiles) with
    its own clockwise rotation and horizontal mirror.
    """
    tiles: List[Tile] = field(default_factory=list)
    width: int = 0
    height: int = 0
    rotation: int = 0
    mirror_x: bool = False

    @property
    def is_usable(self) -> bool:
        return self.width > 0 and self.height > 0

    def tile_at(self, row: int, col: int) -> Optional[Tile]:
        index = row * self.width + col
        if 0 <= index < len(self.tiles):
            return self.tiles[index]
        return None

    def tile_for_offset(self, row: int, col: int) -> Optional[Tile]:
        """
        The stamped tile at a canvas offset from the pattern origin.

        The offset is wrapped into the rotated block, mapped back through
        the pattern's rotation/mirror, and the sampled tile is turned with
        the group (rotation added, mirrors swapped for 90/270) and then
        mirrored with the pattern.
        """
        if not self.is_usable:
            return None
        rotation = self.rotation % 360
        rot_w, rot_h = get_rotated_dimensions(rotation, self.width, self.height)
        mapped = display_to_pattern_cell(row % rot_h, col % rot_w, self.width, self.height,
                                         rotation, self.mirror_x)
        if mapped is None:
            return None
        source = self.tile_at(*mapped)
        if source is None:
            return None
        new_rotation, mirror_x, mirror_y = apply_group_rotation_to_tile(
            source.rotation, source.mirror_x, source.mirror_y, normalize_rotation_cw(rotation))
        if self.mirror_x:
            mirror_x = not mirror_x
        return Tile(source.image_index, new_rotation, mirror_x, mirror_y, source.name)

    def to_json(self) -> Dict[str, Any]:
        return {
            'width': self.width,
            'height': self.height,
            'rotation': self.rotation,
            'mirror_x': self.mirror_x,
            'tiles': [tile.to_json() for tile in self.tiles],
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'Pattern':
        """
        Raises:
            ValueError: Missing or non-integer dimensions
        """
        if not isinstance(data, dict):
            raise ValueError("Pattern data must be an object")
        width = data.get('width')
        height = data.get('height')
        if not isinstance(width, int) or not isinstance(height, int):
            raise ValueError("Pattern needs integer 'width' and 'height'")
        tiles = [Tile.from_json(raw) or Tile() for raw in data.get('tiles', [])]
        return cls(tiles, width, height, normalize_rotation_cw(int(data.get('rotation', 0))),
                   bool(data.get('mirror_x', False)))
