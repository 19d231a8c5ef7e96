"""
Tool Manager - Tracks the active brush mode.

An engine bound to a tool manager drops its in-progress gesture state
whenever the mode changes.
"""
from typing import Optional
from PyQt6 import QtCore

from .brush import BrushMode
from .logging import log_brush


class ToolManager(QtCore.QObject):
    """
    Manager for tracking the active brush mode.

    Signals:
        tool_changed: Emitted when the active mode changes (new_mode, old_mode)
    """

    tool_changed = QtCore.pyqtSignal(object, object)  # new_mode, old_mode

    def __init__(self, initial_mode: BrushMode = BrushMode.RANDOM):
        super().__init__()
        self._active_mode: BrushMode = initial_mode

    @property
    def active_mode(self) -> BrushMode:
        return self._active_mode

    def activate(self, mode: BrushMode) -> bool:
        """
        Switch to a brush mode.

        Returns:
            True if the mode changed
        """
        if mode == self._active_mode:
            return False
        old_mode = self._active_mode
        self._active_mode = mode
        self.tool_changed.emit(mode, old_mode)
        log_brush(f"Mode changed: {old_mode.value} -> {mode.value}")
        return True

    def get_mode_display_name(self, mode: Optional[BrushMode] = None) -> str:
        names = {
            BrushMode.RANDOM: "Random",
            BrushMode.FIXED: "Fixed Tile",
            BrushMode.ERASE: "Eraser",
            BrushMode.CLONE: "Clone",
            BrushMode.PATTERN: "Pattern",
            BrushMode.DRAW: "Draw Path",
        }
        return names.get(mode or self._active_mode, "Unknown")
