"""Editor panes.

A Pane owns one document and everything derived from it: the undo history,
cursor, mode, selection, cluster state and structure cache. The cursor row
and selections are in display rows, edits are addressed to storage rows.
"""

from __future__ import annotations

import enum
import os
from collections.abc import Callable
from pathlib import Path

from aform.cluster.state import ClusterState
from aform.core import edit
from aform.core.alignment import Alignment
from aform.core.history import DEFAULT_HISTORY_SIZE, History, Snapshot
from aform.core.sequence import Sequence
from aform.editor.modes import Action, Mode, transition
from aform.editor.selection import (
    BlockClip,
    BlockSelection,
    Clip,
    EmptyClip,
    LineSelection,
    LinewiseClip,
    NoSelection,
    Selection,
)
from aform.struct.pairs import StructureCache

EditFunc = Callable[..., Alignment]


def _unique_name(name: str, taken: set[str]) -> str:
    if name not in taken:
        return name
    num = 1
    while f"{name}.{num}" in taken:
        num += 1
    return f"{name}.{num}"


class Pane:
    """one editable view of an alignment

    Parameters
    ----------
    alignment
        the document
    path
        where the document is saved, None for a new document
    history_size
        maximum number of undo steps
    collapse
        whether identical rows start collapsed
    """

    def __init__(
        self,
        alignment: Alignment,
        path: str | os.PathLike | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        collapse: bool = False,
    ) -> None:
        self.alignment = alignment
        self.path = None if path is None else Path(path)
        self.history = History(history_size)
        self.mode = Mode.NORMAL
        self.selection: Selection = NoSelection()
        self.cursor_row = 0
        self.cursor_col = 0
        self.modified = False
        self.clusters = ClusterState()
        self.clusters.collapsed = collapse
        self.clusters.recompute(alignment)
        self.structure = StructureCache(alignment.structure)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(path={self.path}, {self.alignment!r},"
            f" mode={self.mode.label})"
        )

    def fork(self) -> Pane:
        """a new pane on the current document, independent from here on"""
        pane = self.__class__(
            self.alignment,
            path=self.path,
            history_size=self.history.max_size,
            collapse=self.clusters.collapsed,
        )
        if self.clusters.clustered:
            pane.clusters.cluster(pane.alignment)
        pane.cursor_row, pane.cursor_col = self.cursor
        pane.modified = self.modified
        return pane

    @property
    def cursor(self) -> tuple[int, int]:
        return self.cursor_row, self.cursor_col

    @property
    def num_rows(self) -> int:
        """number of displayed rows"""
        return self.clusters.num_display_rows

    def storage_row(self, display_row: int | None = None) -> int:
        display_row = self.cursor_row if display_row is None else display_row
        return self.clusters.display_to_storage(display_row)

    def display_seq(self, display_row: int) -> Sequence:
        return self.alignment.seqs[self.storage_row(display_row)]

    @property
    def current_seq(self) -> Sequence | None:
        if not self.num_rows:
            return None
        return self.display_seq(self.cursor_row)

    @property
    def current_char(self) -> str | None:
        seq = self.current_seq
        if seq is None or not 0 <= self.cursor_col < len(seq):
            return None
        return seq[self.cursor_col]

    def move_to(self, row: int, col: int) -> None:
        """places the cursor, clamped to the displayed rows and columns"""
        self.cursor_row = max(0, min(row, self.num_rows - 1))
        self.cursor_col = max(0, min(col, self.alignment.width - 1))
        if self.selection:
            self.selection = self.selection.with_cursor(*self.cursor)

    def move_by(self, rows: int = 0, cols: int = 0) -> None:
        self.move_to(self.cursor_row + rows, self.cursor_col + cols)

    def clamp_cursor(self) -> None:
        self.move_to(self.cursor_row, self.cursor_col)

    def _set_alignment(self, alignment: Alignment, rows_changed: bool) -> None:
        cursor_index = None
        if not rows_changed and self.num_rows:
            cursor_index = self.storage_row()
        self.alignment = alignment
        self.modified = True
        self.clusters.refresh(alignment, rows_changed=rows_changed)
        self.structure.update(alignment.structure)
        if cursor_index is not None and cursor_index < alignment.num_seqs:
            display = self.clusters.storage_to_display(cursor_index)
            if display is not None:
                self.cursor_row = display
        self.clamp_cursor()

    def apply(
        self, func: EditFunc, *args, rows_changed: bool = False, **kwargs
    ) -> Alignment:
        """applies an edit function to the document, recording the previous
        state for undo

        Notes
        -----
        func receives the alignment followed by args and kwargs. If it
        raises, nothing changes. If it returns an equal alignment, no history
        entry is made.
        """
        new = func(self.alignment, *args, **kwargs)
        if new is self.alignment or new == self.alignment:
            return self.alignment
        self.history.commit(self.alignment, self.cursor)
        self._set_alignment(new, rows_changed=rows_changed)
        return new

    def apply_to_row(self, func: EditFunc, *args, display_row: int | None = None):
        """applies func(aln, storage_row, *args) to every row the displayed
        row stands for, as a single undo step"""
        display_row = self.cursor_row if display_row is None else display_row
        members = self.clusters.members(display_row)

        def each_member(aln: Alignment) -> Alignment:
            for index in members:
                aln = func(aln, index, *args)
            return aln

        return self.apply(each_member)

    def _restore(self, snapshot: Snapshot) -> None:
        rows_changed = snapshot.alignment.names != self.alignment.names
        self._set_alignment(snapshot.alignment, rows_changed=rows_changed)
        self.cursor_row, self.cursor_col = snapshot.cursor
        self.clamp_cursor()

    def undo(self) -> None:
        self._restore(self.history.undo(self.alignment, self.cursor))

    def redo(self) -> None:
        self._restore(self.history.redo(self.alignment, self.cursor))

    def act(self, action: Action) -> Mode:
        """applies a mode transition, updating the selection"""
        new = transition(self.mode, action)
        if new is Mode.VISUAL_BLOCK:
            anchor = self._anchor()
            self.selection = BlockSelection(anchor, self.cursor)
        elif new is Mode.VISUAL_LINE:
            anchor = self._anchor()
            self.selection = LineSelection(anchor[0], self.cursor_row)
        else:
            self.selection = NoSelection()
        self.mode = new
        return new

    def _anchor(self) -> tuple[int, int]:
        if isinstance(self.selection, BlockSelection):
            return self.selection.anchor
        if isinstance(self.selection, LineSelection):
            return self.selection.anchor_row, self.cursor_col
        return self.cursor

    def selected_storage_rows(self) -> list[int]:
        """storage rows covered by the selection, collapsed rows expanded"""
        rows = [r for r in self.selection.rows if r < self.num_rows] if self.selection else []
        return self.clusters.expand(rows)

    def yank(self) -> Clip:
        """copies the selection and returns to normal mode"""
        selection = self.selection
        if isinstance(selection, BlockSelection):
            lines = []
            for row in selection.rows:
                if row >= self.num_rows:
                    break
                seq = self.display_seq(row)
                lines.append(seq.seq[selection.left : selection.right + 1])
            clip = BlockClip(tuple(lines))
        elif isinstance(selection, LineSelection):
            names = [self.alignment.seqs[i].name for i in self.selected_storage_rows()]
            clip = LinewiseClip(self.alignment.take_seqs(names))
        else:
            clip = EmptyClip()
        self.act(Action.YANK)
        return clip

    def delete_selection(self) -> None:
        """removes the selected cells or rows and returns to normal mode"""
        selection = self.selection
        if isinstance(selection, BlockSelection):
            rows = self.selected_storage_rows()
            self.apply(edit.clear_block, rows, selection.left, selection.right)
            self.act(Action.DELETE)
            self.move_to(selection.top, selection.left)
        elif isinstance(selection, LineSelection):
            names = [self.alignment.seqs[i].name for i in self.selected_storage_rows()]
            self.apply(edit.delete_sequences, names, rows_changed=True)
            self.act(Action.DELETE)
            self.move_to(selection.rows.start, self.cursor_col)
        else:
            self.act(Action.DELETE)

    def paste(self, clip: Clip) -> None:
        """pastes clip at the cursor

        Notes
        -----
        A block overwrites cells from the cursor, clipped to the alignment.
        Rows are inserted after the cursor row, names already present get a
        numeric suffix. Pasting rows into an empty document adopts the
        clip's column and file annotations.
        """
        if isinstance(clip, BlockClip):
            targets, grid = [], []
            for offset, line in enumerate(clip.grid):
                row = self.cursor_row + offset
                if row >= self.num_rows:
                    break
                for index in self.clusters.members(row):
                    targets.append(index)
                    grid.append(line)
            self.apply(edit.paste_block, targets, self.cursor_col, grid)
        elif isinstance(clip, LinewiseClip):
            if self.alignment.num_seqs == 0:
                self.apply(
                    lambda aln: clip.alignment.copy(gap_char=aln.gap_char),
                    rows_changed=True,
                )
                return
            taken = set(self.alignment.names)
            seqs = []
            for seq in clip.alignment.seqs:
                name = _unique_name(seq.name, taken)
                taken.add(name)
                seqs.append(seq if name == seq.name else seq.copy(name=name))
            pos = max(self.clusters.members(self.cursor_row)) + 1
            self.apply(edit.insert_sequences_at, pos, seqs, rows_changed=True)


class SplitKind(enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class PaneSet:
    """the primary pane and an optional secondary pane"""

    def __init__(self, primary: Pane) -> None:
        self.primary = primary
        self.secondary: Pane | None = None
        self.split_kind: SplitKind | None = None
        self._secondary_active = False

    @property
    def is_split(self) -> bool:
        return self.secondary is not None

    @property
    def active(self) -> Pane:
        if self._secondary_active and self.secondary is not None:
            return self.secondary
        return self.primary

    @property
    def panes(self) -> list[Pane]:
        return [self.primary] if self.secondary is None else [self.primary, self.secondary]

    def split(self, kind: SplitKind, pane: Pane) -> Pane:
        """shows pane beside the primary, replacing any secondary pane, and
        makes it active"""
        self.secondary = pane
        self.split_kind = kind
        self._secondary_active = True
        return pane

    def switch(self) -> Pane:
        if self.secondary is not None:
            self._secondary_active = not self._secondary_active
        return self.active

    def only(self) -> Pane:
        """keeps just the active pane"""
        self.primary = self.active
        self.secondary = None
        self.split_kind = None
        self._secondary_active = False
        return self.primary

    def close_active(self) -> Pane:
        """closes the active pane of a split, returns the remaining one"""
        if self.secondary is None:
            msg = "cannot close the only pane"
            raise ValueError(msg)
        if self._secondary_active:
            self._secondary_active = False
        else:
            self.primary = self.secondary
        self.secondary = None
        self.split_kind = None
        return self.primary
