"""Undo and redo of alignment edits.

Snapshots refer to Alignment instances, which share their unchanged rows,
so keeping many snapshots costs little more than the edited rows.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from aform.core.alignment import Alignment

DEFAULT_HISTORY_SIZE = 100


class HistoryError(Exception): ...


@dataclass(frozen=True)
class Snapshot:
    """an alignment with the cursor position at the time"""

    alignment: Alignment
    cursor_row: int = 0
    cursor_col: int = 0

    @property
    def cursor(self) -> tuple[int, int]:
        return self.cursor_row, self.cursor_col


class History:
    """bounded undo and redo stacks

    Parameters
    ----------
    max_size
        the maximum number of undo steps retained, the oldest are dropped
    """

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE) -> None:
        if max_size < 1:
            msg = f"max_size must be positive, not {max_size}"
            raise ValueError(msg)
        self._max_size = max_size
        self._undo: deque[Snapshot] = deque(maxlen=max_size)
        self._redo: deque[Snapshot] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._max_size

    def commit(self, alignment: Alignment, cursor: tuple[int, int] = (0, 0)) -> None:
        """records the state before an edit, discarding the redo stack"""
        self._undo.append(Snapshot(alignment, *cursor))
        self._redo.clear()

    def undo(self, current: Alignment, cursor: tuple[int, int] = (0, 0)) -> Snapshot:
        """returns the most recent snapshot, current becomes redoable"""
        if not self._undo:
            raise HistoryError("already at oldest change")
        snapshot = self._undo.pop()
        self._redo.append(Snapshot(current, *cursor))
        return snapshot

    def redo(self, current: Alignment, cursor: tuple[int, int] = (0, 0)) -> Snapshot:
        """returns the most recently undone snapshot, current becomes undoable"""
        if not self._redo:
            raise HistoryError("already at newest change")
        snapshot = self._redo.pop()
        self._undo.append(Snapshot(current, *cursor))
        return snapshot

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_count(self) -> int:
        return len(self._undo)

    @property
    def redo_count(self) -> int:
        return len(self._redo)

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
