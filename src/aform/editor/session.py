"""The editor session: the command and query surface used by front ends.

Every command returns a CommandResult. Failures caused by user input are
reported as ``ok=False`` results carrying a status message and leave the
document unchanged.
"""

from __future__ import annotations

import functools
import os
import shlex
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from scitrack import CachingLogger

from aform.config import EditorSettings, color_scheme_name
from aform.core import edit
from aform.core.alignment import SS_CONS, Alignment
from aform.core.history import HistoryError
from aform.core.moltype import SeqType, guess_seq_type
from aform.editor.modes import Action, Mode, ModeError
from aform.editor.pane import Pane, PaneSet, SplitKind
from aform.editor.selection import Clip, Clipboard, LinewiseClip, Selection
from aform.external.rnafold import FoldError, expand_structure, fold_alignment, fold_sequence
from aform.format.stockholm import write_stockholm
from aform.parse.record import FileFormatError
from aform.parse.stockholm import load_stockholm
from aform.struct.pairs import CompensatoryChange, compensatory_change

# residue annotation tag for single sequence folds
FOLD_TAG = "SS"

_USER_ERRORS = (edit.EditError, HistoryError, ModeError, FoldError, FileFormatError)


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    message: str = ""
    value: Any = None

    def __bool__(self) -> bool:
        return self.ok


def _reports_errors(method: Callable) -> Callable:
    """converts user input errors raised by method into failed results"""

    @functools.wraps(method)
    def wrapped(self: EditorSession, *args, **kwargs) -> CommandResult:
        try:
            result = method(self, *args, **kwargs)
        except _USER_ERRORS as err:
            result = CommandResult(False, str(err))
        except OSError as err:
            result = CommandResult(False, f"{err.strerror or err}: {err.filename or ''}".strip(": "))
        self.status = result.message
        if not result.ok:
            self.log(f"{method.__name__}: {result.message}", label="failed")
        return result

    return wrapped


class EditorSession:
    """panes, clipboard, settings and logging for one editing session

    Parameters
    ----------
    alignment
        the document to edit, defaults to an empty alignment
    path
        where the document is saved
    settings
        defaults to EditorSettings.from_environ()
    logger
        a scitrack CachingLogger. If None, one is created when settings
        name a log file. False disables logging.
    """

    def __init__(
        self,
        alignment: Alignment | None = None,
        path: str | os.PathLike | None = None,
        settings: EditorSettings | None = None,
        logger: CachingLogger | Literal[False] | None = None,
    ) -> None:
        self.settings = EditorSettings.from_environ() if settings is None else settings
        if alignment is None:
            alignment = Alignment.empty(gap_char=self.settings.gap_char)
        elif alignment.gap_char != self.settings.gap_char:
            alignment = alignment.copy(gap_char=self.settings.gap_char)

        self.clipboard = Clipboard()
        self.panes = PaneSet(self._new_pane(alignment, path))
        self.status = ""
        self.should_quit = False
        self._search_pattern = ""
        self._matches: list[tuple[int, int]] = []
        self._match_index: int | None = None
        self.logger: CachingLogger | None = None
        self.set_logger(logger)
        self.log(f"opened {path or 'new alignment'} {alignment!r}", label="session")

    @classmethod
    def from_file(
        cls,
        path: str | os.PathLike,
        settings: EditorSettings | None = None,
        logger: CachingLogger | Literal[False] | None = None,
    ) -> EditorSession:
        settings = EditorSettings.from_environ() if settings is None else settings
        alignment = load_stockholm(path, gap_char=settings.gap_char)
        return cls(alignment, path=path, settings=settings, logger=logger)

    def _new_pane(self, alignment: Alignment, path=None) -> Pane:
        return Pane(
            alignment,
            path=path,
            history_size=self.settings.history_size,
            collapse=self.settings.collapse,
        )

    def set_logger(self, logger: CachingLogger | Literal[False] | None = None) -> None:
        if logger is False or (logger is None and not self.settings.log_file):
            self.logger = None
            return
        if logger is None:
            logger = CachingLogger(create_dir=True)
        if not isinstance(logger, CachingLogger):
            msg = f"logger must be of type CachingLogger not {type(logger)}"
            raise TypeError(msg)
        if not logger.log_file_path and self.settings.log_file:
            logger.log_file_path = str(Path(self.settings.log_file).expanduser())
        logger.log_versions(["aform", "numpy", "numba"])
        self.logger = logger

    def log(self, message: str, label: str = "event") -> None:
        if self.logger is not None:
            self.logger.log_message(message, label=label)

    def close(self) -> None:
        """ends the session, flushing the log"""
        if self.logger is not None:
            self.logger.shutdown()
            self.logger = None

    # queries

    @property
    def pane(self) -> Pane:
        return self.panes.active

    @property
    def alignment(self) -> Alignment:
        return self.pane.alignment

    @property
    def mode(self) -> Mode:
        return self.pane.mode

    @property
    def cursor(self) -> tuple[int, int]:
        return self.pane.cursor

    @property
    def selection(self) -> Selection:
        return self.pane.selection

    def peek_clipboard(self) -> Clip:
        return self.clipboard.peek()

    @property
    def cluster_state(self):
        return self.pane.clusters

    @property
    def modified(self) -> bool:
        return self.pane.modified

    def display_rows(self) -> list[str]:
        """the names of the displayed rows, in display order"""
        return [self.alignment.seqs[i].name for i in self.pane.clusters.order]

    def partner(self, col: int | None = None) -> int | None:
        col = self.pane.cursor_col if col is None else col
        return self.pane.structure.partner(col)

    def helix(self, col: int | None = None) -> int | None:
        col = self.pane.cursor_col if col is None else col
        return self.pane.structure.helix(col)

    def seq_type(self) -> SeqType:
        return guess_seq_type(self.alignment.rows(), self.settings.gap_chars)

    def tree_lines(self) -> list[str]:
        return self.pane.clusters.tree_lines()

    def compensatory(self, display_row: int, col: int, reference_row: int = 0) -> CompensatoryChange:
        """classifies the base pair at col of display_row against reference_row"""
        pane = self.pane
        return compensatory_change(
            pane.display_seq(reference_row).seq,
            pane.display_seq(display_row).seq,
            col,
            pane.structure,
            self.settings.gap_chars,
        )

    # movement

    def move_to(self, row: int, col: int) -> CommandResult:
        self.pane.move_to(row, col)
        return CommandResult(True, value=self.cursor)

    def move_by(self, rows: int = 0, cols: int = 0) -> CommandResult:
        self.pane.move_by(rows, cols)
        return CommandResult(True, value=self.cursor)

    def goto_column(self, col: int) -> CommandResult:
        """moves to a 1-based column"""
        self.pane.move_to(self.pane.cursor_row, col - 1)
        return CommandResult(True, value=self.cursor)

    def goto_pair(self) -> CommandResult:
        partner = self.partner()
        if partner is None:
            return CommandResult(False, "Column is not paired")
        self.pane.move_to(self.pane.cursor_row, partner)
        return CommandResult(True, value=self.cursor)

    def next_helix(self) -> CommandResult:
        return self._goto_helix(self.pane.structure.next_helix(self.pane.cursor_col))

    def prev_helix(self) -> CommandResult:
        return self._goto_helix(self.pane.structure.prev_helix(self.pane.cursor_col))

    def _goto_helix(self, col: int | None) -> CommandResult:
        if col is None:
            return CommandResult(False, "No more helices")
        self.pane.move_to(self.pane.cursor_row, col)
        return CommandResult(True, value=self.cursor)

    # modes and selections

    @_reports_errors
    def act(self, action: Action) -> CommandResult:
        mode = self.pane.act(action)
        return CommandResult(True, value=mode)

    @_reports_errors
    def yank(self) -> CommandResult:
        if not self.pane.mode.is_visual:
            raise ModeError("nothing selected")
        clip = self.pane.yank()
        self.clipboard.set(clip)
        return CommandResult(True, f"Yanked {clip.describe()}", clip)

    @_reports_errors
    def delete_selection(self) -> CommandResult:
        if not self.pane.mode.is_visual:
            raise ModeError("nothing selected")
        self.pane.delete_selection()
        return CommandResult(True, "Deleted selection")

    @_reports_errors
    def paste(self) -> CommandResult:
        clip = self.clipboard.peek()
        if not clip:
            return CommandResult(False, clip.describe())
        self.pane.paste(clip)
        return CommandResult(True, f"Pasted {clip.describe()}")

    # edits

    def _row_check(self) -> None:
        if not self.pane.num_rows:
            msg = "alignment has no sequences"
            raise edit.EditError(msg)

    @_reports_errors
    def insert_gap_column(self) -> CommandResult:
        self.pane.apply(edit.insert_gap_column, self.pane.cursor_col)
        return CommandResult(True)

    @_reports_errors
    def delete_gap_column(self) -> CommandResult:
        if not self.alignment.width or not self.alignment.is_gap_column(self.pane.cursor_col):
            return CommandResult(False, "Column contains non-gap characters")
        self.pane.apply(edit.delete_gap_column, self.pane.cursor_col)
        return CommandResult(True)

    @_reports_errors
    def insert_char(self, char: str) -> CommandResult:
        """inserts char at the cursor and advances the cursor"""
        self._row_check()
        self.pane.apply_to_row(edit.insert_residue, self.pane.cursor_col, char)
        self.pane.move_by(cols=1)
        return CommandResult(True)

    @_reports_errors
    def insert_gap(self) -> CommandResult:
        """inserts a gap at the cursor, pushing residues right"""
        self._row_check()
        self.pane.apply_to_row(
            edit.insert_residue, self.pane.cursor_col, self.alignment.gap_char
        )
        self.pane.move_by(cols=1)
        return CommandResult(True)

    @_reports_errors
    def delete_char(self) -> CommandResult:
        self._row_check()
        self.pane.apply_to_row(edit.delete_residue, self.pane.cursor_col)
        return CommandResult(True)

    @_reports_errors
    def delete_gap(self) -> CommandResult:
        self._row_check()
        char = self.pane.current_char
        if char is None or not self.alignment.is_gap(char):
            return CommandResult(False, "Not a gap character")
        self.pane.apply_to_row(edit.delete_residue, self.pane.cursor_col)
        return CommandResult(True)

    @_reports_errors
    def shift(
        self, direction: Literal["left", "right"], amount: int = 1, throw: bool = False
    ) -> CommandResult:
        """shifts the run at the cursor, the cursor follows it"""
        self._row_check()
        pane = self.pane
        col = pane.cursor_col
        row = pane.storage_row()
        try:
            offset = edit.shift_offset(pane.alignment, row, col, direction, amount, throw)
        except edit.NoGapError:
            verb = "throw" if throw else "shift"
            found = "no gaps found" if throw else "no gap found"
            return CommandResult(False, f"Cannot {verb} {direction} ({found})")
        pane.apply_to_row(edit.shift_sequence, col, direction, amount, throw)
        pane.move_by(cols=offset if direction == "right" else -offset)
        return CommandResult(True, value=offset)

    @_reports_errors
    def trim(self, side: Literal["left", "right", "both"] = "both") -> CommandResult:
        aln = self.alignment
        left = 0
        if side != "right" and aln.num_seqs:
            left = edit.count_gap_columns(aln, "left")
        row, col = self.pane.cursor
        new = self.pane.apply(edit.trim, side)
        removed = aln.width - new.width
        self.pane.move_to(row, col - min(left, removed))
        where = "both ends" if side == "both" else side
        return CommandResult(True, f"Trimmed {removed} columns from {where}", removed)

    @_reports_errors
    def convert_case(self, upper: bool = True) -> CommandResult:
        self.pane.apply(edit.convert_case, upper)
        return CommandResult(True, f"Converted to {'uppercase' if upper else 'lowercase'}")

    @_reports_errors
    def convert_t_u(self, to: Literal["U", "T"] = "U") -> CommandResult:
        self.pane.apply(edit.convert_t_u, to)
        source = "T" if to == "U" else "U"
        return CommandResult(True, f"Converted {source} to {to}")

    @_reports_errors
    def delete_sequence(self) -> CommandResult:
        """deletes the row at the cursor with any collapsed duplicates"""
        self._row_check()
        pane = self.pane
        names = pane.clusters.member_names(pane.alignment, [pane.cursor_row])
        pane.apply(edit.delete_sequences, names, rows_changed=True)
        num = len(names)
        return CommandResult(True, f"Deleted {num} sequence{'' if num == 1 else 's'}", names)

    @_reports_errors
    def undo(self) -> CommandResult:
        if not self.pane.history.can_undo:
            return CommandResult(False, "Nothing to undo")
        self.pane.undo()
        return CommandResult(True, "Undo")

    @_reports_errors
    def redo(self) -> CommandResult:
        if not self.pane.history.can_redo:
            return CommandResult(False, "Nothing to redo")
        self.pane.redo()
        return CommandResult(True, "Redo")

    @_reports_errors
    def set_gap_char(self, char: str) -> CommandResult:
        try:
            self.settings = self.settings.replace(gap_char=char)
        except ValueError as err:
            raise edit.EditError(str(err)) from err
        for pane in self.panes.panes:
            pane.alignment = pane.alignment.copy(gap_char=self.settings.gap_char)
        return CommandResult(True, f"Gap character: '{self.settings.gap_char}'")

    # clustering

    def cluster(self) -> CommandResult:
        pane = self.pane
        pane.clusters.cluster(pane.alignment)
        pane.clamp_cursor()
        self.log(f"clustered {pane.alignment.num_seqs} sequences", label="cluster")
        return CommandResult(True, f"Clustered {pane.num_rows} rows", pane.clusters.order)

    def uncluster(self) -> CommandResult:
        pane = self.pane
        pane.clusters.uncluster(pane.alignment)
        pane.clamp_cursor()
        return CommandResult(True, "Original order restored")

    def toggle_collapse(self) -> CommandResult:
        pane = self.pane
        collapsed = not pane.clusters.collapsed
        pane.clusters.set_collapse(pane.alignment, collapsed)
        pane.clamp_cursor()
        if collapsed:
            hidden = pane.alignment.num_seqs - pane.num_rows
            return CommandResult(True, f"Collapsed {hidden} identical sequences", hidden)
        return CommandResult(True, "Expanded identical sequences", 0)

    # search

    @staticmethod
    def _normalise(text: str) -> str:
        return text.upper().replace("T", "U")

    def _find_matches(self, pattern: str) -> list[tuple[int, int]]:
        pattern = self._normalise(pattern)
        matches = []
        for display_row in range(self.pane.num_rows):
            text = self._normalise(self.pane.display_seq(display_row).seq)
            start = text.find(pattern)
            while start != -1:
                matches.append((display_row, start))
                start = text.find(pattern, start + 1)
        return matches

    def _jump_to_match(self) -> CommandResult:
        row, col = self._matches[self._match_index]
        self.pane.move_to(row, col)
        message = f"Match {self._match_index + 1}/{len(self._matches)}"
        return CommandResult(True, message, (row, col))

    def search(self, pattern: str) -> CommandResult:
        """finds pattern ignoring case with U equal to T, then moves to the
        first match at or after the cursor"""
        self._search_pattern = pattern
        self._matches = self._find_matches(pattern) if pattern else []
        if not self._matches:
            self._match_index = None
            result = CommandResult(False, "Pattern not found" if pattern else "")
        else:
            cursor = self.cursor
            self._match_index = next(
                (i for i, pos in enumerate(self._matches) if pos >= cursor), 0
            )
            result = self._jump_to_match()
        self.status = result.message
        return result

    def _step_match(self, step: int) -> CommandResult:
        if not self._matches:
            message = "Pattern not found" if self._search_pattern else ""
            return CommandResult(False, message)
        current = 0 if self._match_index is None else self._match_index
        self._match_index = (current + step) % len(self._matches)
        result = self._jump_to_match()
        self.status = result.message
        return result

    def search_next(self) -> CommandResult:
        return self._step_match(1)

    def search_prev(self) -> CommandResult:
        return self._step_match(-1)

    @property
    def search_matches(self) -> list[tuple[int, int]]:
        return list(self._matches)

    def is_search_match(self, row: int, col: int) -> bool | None:
        """True within the current match, False within another match and
        None elsewhere"""
        size = len(self._search_pattern)
        for index, (match_row, match_col) in enumerate(self._matches):
            if row == match_row and match_col <= col < match_col + size:
                return index == self._match_index
        return None

    # files

    @_reports_errors
    def save(self, path: str | os.PathLike | None = None) -> CommandResult:
        pane = self.pane
        if path is not None:
            pane.path = Path(path)
        if pane.path is None:
            return CommandResult(False, "No file name")
        write_stockholm(pane.alignment, pane.path)
        pane.modified = False
        self.log(f"wrote {pane.path}", label="save")
        return CommandResult(True, f"Written {pane.path}", pane.path)

    @_reports_errors
    def open(self, path: str | os.PathLike) -> CommandResult:
        """replaces the active pane with the document at path"""
        alignment = load_stockholm(path, gap_char=self.settings.gap_char)
        pane = self._new_pane(alignment, path)
        if self.panes.active is self.panes.primary:
            self.panes.primary = pane
        else:
            self.panes.secondary = pane
        self.log(f"opened {path} {alignment!r}", label="open")
        return CommandResult(True, f"Opened {path}", alignment)

    # panes

    def split(self, kind: SplitKind = SplitKind.HORIZONTAL) -> CommandResult:
        """opens a second pane, on the linewise clipboard if it holds rows,
        otherwise on a fork of the current document"""
        clip = self.clipboard.peek()
        if isinstance(clip, LinewiseClip):
            alignment = clip.alignment.copy(gap_char=self.settings.gap_char)
            pane = self._new_pane(alignment)
        else:
            pane = self.pane.fork()
        self.panes.split(kind, pane)
        return CommandResult(True, f"{kind.value.capitalize()} split", pane)

    def switch_pane(self) -> CommandResult:
        return CommandResult(True, value=self.panes.switch())

    def only(self) -> CommandResult:
        self.panes.only()
        return CommandResult(True, "Split closed")

    # structure prediction

    @_reports_errors
    def fold(self) -> CommandResult:
        """folds the sequence at the cursor, storing the structure as a
        residue annotation"""
        self._row_check()
        seq = self.pane.current_seq
        result = fold_sequence(seq.seq, name=seq.name, timeout=self.settings.fold_timeout)
        data = expand_structure(result.structure, seq.seq, self.settings.gap_chars)
        self.pane.apply(edit.set_residue_annotation, seq.name, FOLD_TAG, data)
        energy = "" if result.mfe is None else f" ({result.mfe:.2f} kcal/mol)"
        self.log(f"folded {seq.name}{energy}", label="fold")
        return CommandResult(True, f"Folded {seq.name}{energy}", result)

    @_reports_errors
    def alifold(self) -> CommandResult:
        """folds the alignment, storing the consensus structure as SS_cons"""
        self._row_check()
        aln = self.alignment
        table = str.maketrans({g: "-" for g in self.settings.gap_chars})
        seqs = [(seq.name, seq.seq.translate(table)) for seq in aln.seqs]
        result = fold_alignment(seqs, timeout=self.settings.fold_timeout)
        if len(result.structure) != aln.width:
            msg = f"structure has length {len(result.structure)}, expected {aln.width}"
            raise FoldError(msg)
        self.pane.apply(edit.set_column_annotation, SS_CONS, result.structure)
        energy = "" if result.mfe is None else f" ({result.mfe:.2f} kcal/mol)"
        self.log(f"folded alignment{energy}", label="fold")
        return CommandResult(True, f"Folded alignment{energy}", result)

    # ex commands

    def execute(self, command_line: str) -> CommandResult:
        """runs an ex style command, without the leading ':'"""
        try:
            parts = shlex.split(command_line.strip())
        except ValueError as err:
            return self._report(CommandResult(False, f"Invalid command: {err}"))
        if not parts:
            return CommandResult(True)

        name, args = parts[0], parts[1:]
        handler = _COMMANDS.get(name)
        if handler is None or not _accepts(handler, args):
            return self._report(CommandResult(False, f"Unknown command: {command_line.strip()}"))
        self.log(command_line.strip(), label="command")
        return self._report(handler(self, *args))

    def _report(self, result: CommandResult) -> CommandResult:
        self.status = result.message
        return result

    def _quit(self, force: bool = False) -> CommandResult:
        if self.modified and not force:
            return CommandResult(False, "No write since last change (use :q! to force)")
        if self.panes.is_split:
            self.panes.close_active()
            return CommandResult(True, "Split closed")
        self.should_quit = True
        return CommandResult(True)

    def _write_quit(self) -> CommandResult:
        result = self.save()
        if result.ok:
            self.should_quit = True
        return result

    def _set(self, setting: str) -> CommandResult:
        key, sep, value = setting.partition("=")
        if not sep:
            return CommandResult(False, f"Invalid setting: {setting}")
        if key == "gap":
            return self.set_gap_char(value)
        return CommandResult(False, f"Unknown setting: {key}")

    def _color(self, scheme: str) -> CommandResult:
        try:
            name = color_scheme_name(scheme)
        except ValueError:
            return CommandResult(False, f"Unknown color scheme: {scheme}")
        self.settings = self.settings.replace(color_scheme=name)
        return CommandResult(True, f"Color scheme: {name}")

    def _goto(self, col: str) -> CommandResult:
        try:
            num = int(col)
        except ValueError:
            return CommandResult(False, f"Invalid column: {col}")
        return self.goto_column(num)

    def _trim(self, side: str = "both") -> CommandResult:
        if side not in ("left", "right", "both"):
            return CommandResult(False, f"Invalid side: {side}")
        return self.trim(side)


def _accepts(handler: Callable, args: list[str]) -> bool:
    return len(args) <= _MAX_ARGS.get(handler, 0)


_COMMANDS: dict[str, Callable[..., CommandResult]] = {
    "q": EditorSession._quit,
    "quit": EditorSession._quit,
    "q!": functools.partial(EditorSession._quit, force=True),
    "w": EditorSession.save,
    "write": EditorSession.save,
    "wq": EditorSession._write_quit,
    "cluster": EditorSession.cluster,
    "uncluster": EditorSession.uncluster,
    "collapse": EditorSession.toggle_collapse,
    "upper": EditorSession.convert_case,
    "uppercase": EditorSession.convert_case,
    "lower": functools.partial(EditorSession.convert_case, upper=False),
    "lowercase": functools.partial(EditorSession.convert_case, upper=False),
    "t2u": functools.partial(EditorSession.convert_t_u, to="U"),
    "u2t": functools.partial(EditorSession.convert_t_u, to="T"),
    "trim": EditorSession._trim,
    "split": functools.partial(EditorSession.split, kind=SplitKind.HORIZONTAL),
    "sp": functools.partial(EditorSession.split, kind=SplitKind.HORIZONTAL),
    "vsplit": functools.partial(EditorSession.split, kind=SplitKind.VERTICAL),
    "vs": functools.partial(EditorSession.split, kind=SplitKind.VERTICAL),
    "vsp": functools.partial(EditorSession.split, kind=SplitKind.VERTICAL),
    "only": EditorSession.only,
    "set": EditorSession._set,
    "color": EditorSession._color,
    "fold": EditorSession.fold,
    "alifold": EditorSession.alifold,
    "goto": EditorSession._goto,
}

_MAX_ARGS = {
    EditorSession.save: 1,
    EditorSession._trim: 1,
    EditorSession._set: 1,
    EditorSession._color: 1,
    EditorSession._goto: 1,
}
