"""Pure alignment edits.

Every function takes an Alignment and returns a new one. Rows that an edit
does not touch are the same Sequence instances in the result. A rejected
edit raises EditError and the input is untouched (it is immutable).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence as SequenceType
from typing import Literal

from aform.core.alignment import Alignment, AlignmentError
from aform.core.sequence import Sequence, SequenceError

Direction = Literal["left", "right"]
Side = Literal["left", "right", "both"]


class EditError(ValueError): ...


class NoGapError(EditError): ...


def _check_row(aln: Alignment, row: int) -> Sequence:
    if not 0 <= row < aln.num_seqs:
        msg = f"row {row} out of range"
        raise EditError(msg)
    return aln.seqs[row]


def _check_col(aln: Alignment, col: int, inclusive_end: bool = False) -> None:
    limit = aln.width if inclusive_end else aln.width - 1
    if not 0 <= col <= limit:
        msg = f"column {col} out of range"
        raise EditError(msg)


def _check_char(char: str) -> str:
    if not isinstance(char, str) or len(char) != 1 or char.isspace():
        msg = f"cannot insert {char!r}"
        raise EditError(msg)
    return char


def _check_length(aln: Alignment, data: str, label: str) -> str:
    if len(data) != aln.width:
        msg = f"{label} has length {len(data)}, expected {aln.width}"
        raise EditError(msg)
    return data


def _map_columns(aln: Alignment, func: Callable[[str], str]) -> Alignment:
    """applies a width changing transform to every row, residue annotation
    and column annotation"""
    seqs = [seq.map_tracks(func) for seq in aln.seqs]
    columns = {tag: func(data) for tag, data in aln.column_annotations.items()}
    return aln.copy(seqs=seqs, column_annotations=columns)


def _replace_row(aln: Alignment, row: int, new: Sequence) -> list[Sequence]:
    seqs = list(aln.seqs)
    seqs[row] = new
    return seqs


def insert_gap_column(aln: Alignment, col: int) -> Alignment:
    """inserts a gap at col in every row and every annotation

    Parameters
    ----------
    aln
        the alignment
    col
        position of the new column, ``0 <= col <= width``
    """
    _check_col(aln, col, inclusive_end=True)
    gap = aln.gap_char
    return _map_columns(aln, lambda text: f"{text[:col]}{gap}{text[col:]}")


def delete_gap_column(aln: Alignment, col: int) -> Alignment:
    """deletes col, which must be a gap in every row"""
    _check_col(aln, col)
    if not aln.is_gap_column(col):
        msg = f"column {col} contains non-gap characters"
        raise EditError(msg)
    return _map_columns(aln, lambda text: text[:col] + text[col + 1 :])


def insert_residue(aln: Alignment, row: int, col: int, char: str) -> Alignment:
    """inserts char at row, col

    Notes
    -----
    The rest of the row shifts right, absorbing the nearest gap at or after
    col. If the row has no gap from col onwards, a gap column is appended to
    every other row and to the column annotations so the width stays
    uniform.
    """
    seq = _check_row(aln, row)
    _check_col(aln, col, inclusive_end=True)
    char = _check_char(char)
    gaps = aln.gap_chars
    gap = aln.gap_char
    absorb = next((i for i in range(col, len(seq)) if seq[i] in gaps), None)

    if absorb is not None:

        def shifted(text: str, new: str) -> str:
            return f"{text[:col]}{new}{text[col:absorb]}{text[absorb + 1 :]}"

        tracks = {
            tag: shifted(data, gap) for tag, data in seq.residue_annotations.items()
        }
        new = seq.copy(seq=shifted(seq.seq, char), residue_annotations=tracks)
        return aln.copy(seqs=_replace_row(aln, row, new))

    tracks = {
        tag: f"{data[:col]}{gap}{data[col:]}"
        for tag, data in seq.residue_annotations.items()
    }
    new = seq.copy(seq=f"{seq.seq[:col]}{char}{seq.seq[col:]}", residue_annotations=tracks)
    widened = _map_columns(aln, lambda text: text + gap)
    return widened.copy(seqs=_replace_row(widened, row, new))


def delete_residue(aln: Alignment, row: int, col: int) -> Alignment:
    """removes the character at row, col, padding the row end with a gap"""
    seq = _check_row(aln, row)
    _check_col(aln, col)
    gap = aln.gap_char
    new = seq.map_tracks(lambda text: text[:col] + text[col + 1 :] + gap)
    return aln.copy(seqs=_replace_row(aln, row, new))


def _run_bounds(text: str, col: int, gaps: str, direction: Direction) -> tuple:
    """returns (start, stop) of the same kind run from col to its edge in
    direction, stop is exclusive"""
    kind = text[col] in gaps
    if direction == "right":
        stop = col + 1
        while stop < len(text) and (text[stop] in gaps) == kind:
            stop += 1
        return col, stop

    start = col
    while start > 0 and (text[start - 1] in gaps) == kind:
        start -= 1
    return start, col + 1


def shift_offset(
    aln: Alignment,
    row: int,
    col: int,
    direction: Direction,
    amount: int = 1,
    throw: bool = False,
) -> int:
    """the number of columns shift_sequence would move the segment at col

    Raises
    ------
    NoGapError
        if there is nothing adjacent to move into
    """
    seq = _check_row(aln, row)
    _check_col(aln, col)
    if direction not in ("left", "right"):
        msg = f"direction must be 'left' or 'right', not {direction!r}"
        raise EditError(msg)
    if amount < 1:
        msg = f"shift amount must be positive, not {amount}"
        raise EditError(msg)

    text = seq.seq
    gaps = aln.gap_chars
    start, stop = _run_bounds(text, col, gaps, direction)
    if direction == "right":
        if stop == len(text):
            raise NoGapError("no gap to shift into")
        _, neighbour_stop = _run_bounds(text, stop, gaps, "right")
        available = neighbour_stop - stop
    else:
        if start == 0:
            raise NoGapError("no gap to shift into")
        neighbour_start, _ = _run_bounds(text, start - 1, gaps, "left")
        available = start - neighbour_start

    return available if throw else min(amount, available)


def shift_sequence(
    aln: Alignment,
    row: int,
    col: int,
    direction: Direction,
    amount: int = 1,
    throw: bool = False,
) -> Alignment:
    """moves the run of residues, or of gaps, at col within its row

    Parameters
    ----------
    aln
        the alignment
    row, col
        position of the cursor
    direction
        'left' or 'right'
    amount
        number of columns to move, limited by the adjacent run
    throw
        if True, moves across the whole adjacent run

    Notes
    -----
    The segment runs from col to the edge of its run in direction. A
    residue segment moves into the adjacent gap run, a gap segment moves
    over the adjacent residues, which keep their order. The width never
    changes and residue annotations are moved with their residues.
    For example ``A-CG`` shifted right from column 1 becomes ``AC-G``.
    """
    offset = shift_offset(aln, row, col, direction, amount=amount, throw=throw)
    seq = aln.seqs[row]
    start, stop = _run_bounds(seq.seq, col, aln.gap_chars, direction)
    positions = list(range(len(seq)))
    if direction == "right":
        order = (
            positions[:start]
            + positions[stop : stop + offset]
            + positions[start:stop]
            + positions[stop + offset :]
        )
    else:
        order = (
            positions[: start - offset]
            + positions[start:stop]
            + positions[start - offset : start]
            + positions[stop:]
        )
    return aln.copy(seqs=_replace_row(aln, row, seq.permute(order)))


def count_gap_columns(aln: Alignment, side: Literal["left", "right"]) -> int:
    """the number of consecutive gap only columns at side"""
    cols = range(aln.width) if side == "left" else range(aln.width - 1, -1, -1)
    count = 0
    for col in cols:
        if not aln.is_gap_column(col):
            break
        count += 1
    return count


def trim(aln: Alignment, side: Side = "both") -> Alignment:
    """strips gap only columns from the alignment ends

    Raises
    ------
    EditError
        if side has no gap only columns
    """
    if side not in ("left", "right", "both"):
        msg = f"side must be 'left', 'right' or 'both', not {side!r}"
        raise EditError(msg)

    if aln.num_seqs == 0:
        left = right = 0
    else:
        left = count_gap_columns(aln, "left") if side in ("left", "both") else 0
        right = count_gap_columns(aln, "right") if side in ("right", "both") else 0
        # an all gap alignment is counted once
        right = min(right, aln.width - left)

    if left + right == 0:
        where = "either end" if side == "both" else side
        msg = f"no gap-only columns on {where}"
        raise EditError(msg)

    stop = aln.width - right
    return _map_columns(aln, lambda text: text[left:stop])


def _map_residues(aln: Alignment, func: Callable[[str], str]) -> Alignment:
    seqs = []
    for seq in aln.seqs:
        text = func(seq.seq)
        seqs.append(seq if text == seq.seq else seq.copy(seq=text))
    return aln.copy(seqs=seqs)


def convert_case(aln: Alignment, upper: bool = True) -> Alignment:
    """upper or lower cases every residue"""
    return _map_residues(aln, str.upper if upper else str.lower)


_TO_U = str.maketrans("Tt", "Uu")
_TO_T = str.maketrans("Uu", "Tt")


def convert_t_u(aln: Alignment, to: Literal["U", "T"] = "U") -> Alignment:
    """converts T to U (to='U') or U to T (to='T'), preserving case"""
    to = to.upper()
    if to not in ("U", "T"):
        msg = f"can only convert to 'U' or 'T', not {to!r}"
        raise EditError(msg)
    table = _TO_U if to == "U" else _TO_T
    return _map_residues(aln, lambda text: text.translate(table))


def delete_sequences(aln: Alignment, names: Iterable[str]) -> Alignment:
    """removes the named rows together with their annotations"""
    names = set(names)
    if unknown := sorted(names - set(aln.names)):
        msg = f"unknown sequence(s) {', '.join(map(repr, unknown))}"
        raise EditError(msg)
    return aln.copy(seqs=[seq for seq in aln.seqs if seq.name not in names])


def insert_sequences_at(
    aln: Alignment, pos: int, seqs: Iterable[Sequence]
) -> Alignment:
    """inserts seqs before storage position pos

    Raises
    ------
    EditError
        for a width mismatch or a duplicated name
    """
    if not 0 <= pos <= aln.num_seqs:
        msg = f"position {pos} out of range"
        raise EditError(msg)

    seqs = list(seqs)
    has_width = aln.num_seqs > 0 or bool(aln.column_annotations)
    existing = set(aln.names)
    for seq in seqs:
        if seq.name in existing:
            msg = f"sequence {seq.name!r} already exists"
            raise EditError(msg)
        existing.add(seq.name)
        if has_width and len(seq) != aln.width:
            msg = f"{seq.name!r} has length {len(seq)}, expected {aln.width}"
            raise EditError(msg)

    current = list(aln.seqs)
    try:
        return aln.copy(seqs=current[:pos] + seqs + current[pos:])
    except AlignmentError as err:
        raise EditError(str(err)) from err


def _clip_cols(aln: Alignment, first_col: int, last_col: int) -> range:
    first_col, last_col = sorted((first_col, last_col))
    return range(max(first_col, 0), min(last_col, aln.width - 1) + 1)


def _overwrite(text: str, start: int, chars: str) -> str:
    return text[:start] + chars + text[start + len(chars) :]


def clear_block(
    aln: Alignment, rows: Iterable[int], first_col: int, last_col: int
) -> Alignment:
    """replaces the cells of rows between first_col and last_col (inclusive)
    with gaps, clipped to the alignment bounds"""
    cols = _clip_cols(aln, first_col, last_col)
    if not cols:
        return aln

    fill = aln.gap_char * len(cols)
    seqs = list(aln.seqs)
    for row in sorted(set(rows)):
        if not 0 <= row < len(seqs):
            continue
        seqs[row] = seqs[row].map_tracks(
            lambda text: _overwrite(text, cols.start, fill)
        )
    return aln.copy(seqs=seqs)


def paste_block(
    aln: Alignment,
    row: int | SequenceType[int],
    col: int,
    grid: SequenceType[str],
) -> Alignment:
    """overwrites cells with grid, starting at col

    Parameters
    ----------
    aln
        the alignment
    row
        the storage index of the first target row, successive grid lines go
        to successive rows. Or the storage indices of the target rows.
    col
        the first target column
    grid
        lines of characters

    Notes
    -----
    Lines and characters that fall outside the alignment are dropped.
    """
    if isinstance(row, int):
        targets = list(range(row, row + len(grid)))
    else:
        targets = list(row)

    seqs = list(aln.seqs)
    for target, line in zip(targets, grid):
        if not 0 <= target < len(seqs) or not 0 <= col < aln.width:
            continue
        chars = line[: aln.width - col]
        seq = seqs[target]
        seqs[target] = seq.copy(seq=_overwrite(seq.seq, col, chars))
    return aln.copy(seqs=seqs)


def set_column_annotation(aln: Alignment, tag: str, data: str | None) -> Alignment:
    """sets the #=GC tag to data, or removes it when data is None"""
    columns = dict(aln.column_annotations)
    if data is None:
        if tag not in columns:
            msg = f"no column annotation {tag!r}"
            raise EditError(msg)
        del columns[tag]
    else:
        columns[tag] = _check_length(aln, data, f"#=GC {tag}")
    return aln.copy(column_annotations=columns)


def set_residue_annotation(
    aln: Alignment, name: str, tag: str, data: str | None
) -> Alignment:
    """sets the #=GR tag of the named sequence, or removes it when data is
    None"""
    if name not in aln:
        msg = f"unknown sequence {name!r}"
        raise EditError(msg)
    if data is not None:
        _check_length(aln, data, f"#=GR {tag}")

    row = aln.index_of(name)
    try:
        new = aln.seqs[row].with_residue_annotation(tag, data)
    except SequenceError as err:
        raise EditError(str(err)) from err
    return aln.copy(seqs=_replace_row(aln, row, new))
