"""
Core canvas logic for the tile canvas
"""

from .brush import Brush, BrushMode, Pattern
from .compat import CompatibilityCache, CompatibilityTables, TileVariant
from .engine import TileGridEngine, GestureState
from .fill_engine import FillContext, FillEngine
from .grid import Tile, EMPTY_INDEX, ERROR_INDEX, EMPTY_TILE, ERROR_TILE
from .history import UndoHistory
from .layout import GridLayout, MAX_CELLS, compute_grid_layout, compute_fixed_grid_layout
from .placement import PlacementValidator
from .presets import BrushPreset, CanvasSettings, PresetManager
from .regions import CellRect, LockedRegion
from .scope import EditScope
from .tile_format import Design, TileFormatError, serialize_design, deserialize_design
from .tool_manager import ToolManager

__all__ = [
    'Brush',
    'BrushMode',
    'Pattern',
    'CompatibilityCache',
    'CompatibilityTables',
    'TileVariant',
    'TileGridEngine',
    'GestureState',
    'FillContext',
    'FillEngine',
    'Tile',
    'EMPTY_INDEX',
    'ERROR_INDEX',
    'EMPTY_TILE',
    'ERROR_TILE',
    'UndoHistory',
    'GridLayout',
    'MAX_CELLS',
    'compute_grid_layout',
    'compute_fixed_grid_layout',
    'PlacementValidator',
    'BrushPreset',
    'CanvasSettings',
    'PresetManager',
    'CellRect',
    'LockedRegion',
    'EditScope',
    'Design',
    'TileFormatError',
    'serialize_design',
    'deserialize_design',
    'ToolManager',
]
