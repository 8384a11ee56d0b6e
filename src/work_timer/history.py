"""Bounded undo/redo over whole-day snapshots."""

from __future__ import annotations

from collections import deque

from .errors import NothingToRedo, NothingToUndo
from .models import DayData

MAX_HISTORY_DEPTH = 50


class History:
    """Undo and redo stacks of :class:`DayData` copies.

    The undo stack keeps at most ``max_depth`` snapshots and silently drops the
    oldest one when full. Recording a new snapshot clears the redo stack.
    """

    def __init__(self, max_depth: int = MAX_HISTORY_DEPTH) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.max_depth = max_depth
        self._undo: deque[DayData] = deque(maxlen=max_depth)
        self._redo: list[DayData] = []

    def record_snapshot(self, current: DayData) -> None:
        """Call before mutating ``current``."""
        self._undo.append(current.copy())
        self._redo.clear()

    def undo(self, current: DayData) -> DayData:
        if not self._undo:
            raise NothingToUndo()
        previous = self._undo.pop()
        self._redo.append(current.copy())
        return _carry_id_counter(previous, current)

    def redo(self, current: DayData) -> DayData:
        if not self._redo:
            raise NothingToRedo()
        following = self._redo.pop()
        self._undo.append(current.copy())
        return _carry_id_counter(following, current)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)


def _carry_id_counter(restored: DayData, current: DayData) -> DayData:
    # Ids handed out after the snapshot was taken stay retired.
    restored.next_id = max(restored.next_id, current.next_id)
    return restored
