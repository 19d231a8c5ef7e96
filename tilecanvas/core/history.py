"""
Undo/Redo history for the tile grid.

Snapshots are full copies of the grid. Tiles are immutable, so a snapshot
is a shallow list copy.
"""
from typing import Callable, List, Optional, Sequence

from .grid import Tile, tiles_equal
from .logging import log_history


MAX_UNDO_STEPS = 50


class UndoHistory:
    """
    Two-stack undo/redo with duplicate suppression.

    - push() drops a snapshot equal to the current top and clears redo
    - undo()/redo() skip snapshots equal to the present grid
    - the undo stack keeps at most max_steps entries (oldest dropped)
    """

    def __init__(self, max_steps: int = MAX_UNDO_STEPS):
        self.max_steps = max_steps
        self._undo: List[List[Tile]] = []
        self._redo: List[List[Tile]] = []
        self._listeners: List[Callable[[bool, bool], None]] = []

    @property
    def undo_count(self) -> int:
        return len(self._undo)

    @property
    def redo_count(self) -> int:
        return len(self._redo)

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def push(self, tiles: Sequence[Tile]) -> bool:
        """
        Record the grid before a mutation.

        Returns:
            True if a snapshot was stored
        """
        snapshot = list(tiles)
        if self._undo and tiles_equal(snapshot, self._undo[-1]):
            return False
        if len(self._undo) >= self.max_steps:
            self._undo.pop(0)
        self._undo.append(snapshot)
        self._redo = []
        self._notify_listeners()
        return True

    def _step(self, source: List[List[Tile]], target: List[List[Tile]],
              current: Sequence[Tile]) -> Optional[List[Tile]]:
        restored = None
        while source:
            candidate = source.pop()
            if not tiles_equal(current, candidate):
                restored = candidate
                break
        if restored is None:
            self._notify_listeners()
            return None
        target.append(list(current))
        self._notify_listeners()
        return list(restored)

    def undo(self, current: Sequence[Tile]) -> Optional[List[Tile]]:
        """
        Step back.

        Args:
            current: The grid as it is now (pushed onto the redo stack)

        Returns:
            The grid to restore, or None when nothing differs
        """
        if not self._undo:
            return None
        restored = self._step(self._undo, self._redo, current)
        if restored is not None:
            log_history(f"Undo (undo={len(self._undo)}, redo={len(self._redo)})")
        return restored

    def redo(self, current: Sequence[Tile]) -> Optional[List[Tile]]:
        """Step forward; mirror image of undo()"""
        if not self._redo:
            return None
        restored = self._step(self._redo, self._undo, current)
        if restored is not None:
            log_history(f"Redo (undo={len(self._undo)}, redo={len(self._redo)})")
        return restored

    def clear(self):
        self._undo = []
        self._redo = []
        self._notify_listeners()

    def add_listener(self, callback: Callable[[bool, bool], None]):
        """
        Add a listener notified when the stacks change

        Args:
            callback: Called with (can_undo, can_redo)
        """
        self._listeners.append(callback)

    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify_listeners(self):
        for callback in self._listeners:
            callback(self.can_undo(), self.can_redo())
