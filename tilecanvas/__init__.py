"""
Tile Canvas - a connector-aware tile painting engine.
"""

from .core.brush import Brush, BrushMode, Pattern
from .core.engine import TileGridEngine
from .core.grid import Tile
from .core.presets import CanvasSettings, PresetManager

__version__ = '1.0.0'
__all__ = [
    'Brush',
    'BrushMode',
    'Pattern',
    'TileGridEngine',
    'Tile',
    'CanvasSettings',
    'PresetManager',
]
