"""Visual selections and clipboard contents.

Selections are in display coordinates. They are translated to storage rows
by the pane before any edit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from aform.core.alignment import Alignment


@dataclass(frozen=True)
class NoSelection:
    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class BlockSelection:
    """a rectangle with corners at anchor and cursor, both (row, col)"""

    anchor: tuple[int, int]
    cursor: tuple[int, int]

    @property
    def top(self) -> int:
        return min(self.anchor[0], self.cursor[0])

    @property
    def bottom(self) -> int:
        return max(self.anchor[0], self.cursor[0])

    @property
    def left(self) -> int:
        return min(self.anchor[1], self.cursor[1])

    @property
    def right(self) -> int:
        return max(self.anchor[1], self.cursor[1])

    @property
    def rows(self) -> range:
        return range(self.top, self.bottom + 1)

    @property
    def cols(self) -> range:
        return range(self.left, self.right + 1)

    def contains(self, row: int, col: int) -> bool:
        return row in self.rows and col in self.cols

    def with_cursor(self, row: int, col: int) -> BlockSelection:
        return BlockSelection(self.anchor, (row, col))


@dataclass(frozen=True)
class LineSelection:
    """whole rows between anchor_row and cursor_row"""

    anchor_row: int
    cursor_row: int

    @property
    def rows(self) -> range:
        top, bottom = sorted((self.anchor_row, self.cursor_row))
        return range(top, bottom + 1)

    def contains(self, row: int, col: int | None = None) -> bool:
        return row in self.rows

    def with_cursor(self, row: int, col: int | None = None) -> LineSelection:
        return LineSelection(self.anchor_row, row)


Selection = Union[NoSelection, BlockSelection, LineSelection]


@dataclass(frozen=True)
class EmptyClip:
    def __bool__(self) -> bool:
        return False

    def describe(self) -> str:
        return "clipboard is empty"


@dataclass(frozen=True)
class BlockClip:
    """a rectangle of characters, one string per row"""

    grid: tuple[str, ...]

    @property
    def shape(self) -> tuple[int, int]:
        return len(self.grid), max((len(line) for line in self.grid), default=0)

    def describe(self) -> str:
        rows, cols = self.shape
        return f"block of {rows} x {cols}"


@dataclass(frozen=True)
class LinewiseClip:
    """whole rows, with their sequence and residue annotations and every
    column and file annotation of the source alignment"""

    alignment: Alignment

    @property
    def names(self) -> list[str]:
        return self.alignment.names

    def describe(self) -> str:
        num = self.alignment.num_seqs
        return f"{num} sequence{'' if num == 1 else 's'}"


Clip = Union[EmptyClip, BlockClip, LinewiseClip]


class Clipboard:
    """the single clipboard slot shared by all panes of a session

    Notes
    -----
    Only ``set`` changes the contents. Reading never does.
    """

    def __init__(self) -> None:
        self._clip: Clip = EmptyClip()

    def set(self, clip: Clip) -> None:
        self._clip = clip

    def peek(self) -> Clip:
        return self._clip

    @property
    def is_empty(self) -> bool:
        return isinstance(self._clip, EmptyClip)

    @property
    def is_linewise(self) -> bool:
        return isinstance(self._clip, LinewiseClip)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._clip.describe()})"
