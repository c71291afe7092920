"""The alignment document.

An Alignment is immutable. It holds the rows in display and save order,
the per-column annotations (``#=GC``), the file annotations (``#=GF``) and
the configured gap glyph. Every row and every column annotation has the
same length, the alignment width.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Union

from aform.core.moltype import DEFAULT_GAP_CHAR, GAP_CHARS, SeqType, guess_seq_type
from aform.core.sequence import Sequence
from aform.util.misc import unique_everseen

# column annotation holding the consensus secondary structure
SS_CONS = "SS_cons"

SeqsDataType = Union[Mapping[str, str], Iterable[tuple[str, str]], Iterable[Sequence]]


class AlignmentError(ValueError): ...


class Alignment:
    """an immutable multiple sequence alignment

    Parameters
    ----------
    seqs
        Sequence instances in display order, names must be unique
    column_annotations
        {tag: text}, one character per column
    file_annotations
        ``(tag, value)`` pairs in file order, tags may repeat, values
        cannot start or end with whitespace
    gap_char
        the glyph written by gap inserting edits

    Notes
    -----
    The width is the length of the first row. An alignment without rows takes
    its width from the first column annotation, or is zero wide.
    """

    __slots__ = (
        "_column_annotations",
        "_file_annotations",
        "_gap_char",
        "_index",
        "_seqs",
        "_width",
    )

    def __init__(
        self,
        seqs: Iterable[Sequence] = (),
        column_annotations: Mapping[str, str] | None = None,
        file_annotations: Iterable[tuple[str, str]] = (),
        gap_char: str = DEFAULT_GAP_CHAR,
    ) -> None:
        if not isinstance(gap_char, str) or len(gap_char) != 1 or gap_char.isspace():
            msg = f"gap_char must be a single visible character, not {gap_char!r}"
            raise AlignmentError(msg)

        self._seqs = tuple(seqs)
        self._column_annotations = MappingProxyType(dict(column_annotations or {}))
        self._file_annotations = tuple((str(t), str(v)) for t, v in file_annotations)
        for tag, value in self._file_annotations:
            if value != value.strip():
                msg = f"#=GF {tag} value {value!r} has leading or trailing whitespace"
                raise AlignmentError(msg)
        self._gap_char = gap_char

        index = {}
        for i, seq in enumerate(self._seqs):
            if not isinstance(seq, Sequence):
                msg = f"expected Sequence instances, not {type(seq)}"
                raise AlignmentError(msg)
            if seq.name in index:
                msg = f"duplicate sequence name {seq.name!r}"
                raise AlignmentError(msg)
            index[seq.name] = i
        self._index = index

        if self._seqs:
            width = len(self._seqs[0])
        elif self._column_annotations:
            width = len(next(iter(self._column_annotations.values())))
        else:
            width = 0
        self._width = width

        for seq in self._seqs:
            if len(seq) != width:
                msg = f"{seq.name!r} has length {len(seq)}, expected {width}"
                raise AlignmentError(msg)
        for tag, data in self._column_annotations.items():
            if len(data) != width:
                msg = f"#=GC {tag} has length {len(data)}, expected {width}"
                raise AlignmentError(msg)

    @classmethod
    def empty(cls, gap_char: str = DEFAULT_GAP_CHAR) -> Alignment:
        """an alignment with no rows, columns or annotations"""
        return cls(gap_char=gap_char)

    @property
    def seqs(self) -> tuple[Sequence, ...]:
        return self._seqs

    @property
    def names(self) -> list[str]:
        return [seq.name for seq in self._seqs]

    @property
    def num_seqs(self) -> int:
        return len(self._seqs)

    @property
    def width(self) -> int:
        return self._width

    @property
    def column_annotations(self) -> Mapping[str, str]:
        return self._column_annotations

    @property
    def file_annotations(self) -> tuple[tuple[str, str], ...]:
        return self._file_annotations

    @property
    def gap_char(self) -> str:
        return self._gap_char

    @property
    def gap_chars(self) -> str:
        """every glyph treated as a gap, including the configured one"""
        if self._gap_char in GAP_CHARS:
            return GAP_CHARS
        return GAP_CHARS + self._gap_char

    @property
    def structure(self) -> str | None:
        """the consensus secondary structure, if annotated"""
        return self._column_annotations.get(SS_CONS)

    def __len__(self) -> int:
        return len(self._seqs)

    def __iter__(self) -> Iterator[Sequence]:
        return iter(self._seqs)

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def __getitem__(self, key: int | str) -> Sequence:
        if isinstance(key, str):
            return self.get_seq(key)
        return self._seqs[key]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Alignment):
            return NotImplemented
        return (
            self._seqs == other._seqs
            and dict(self._column_annotations) == dict(other._column_annotations)
            and self._file_annotations == other._file_annotations
            and self._gap_char == other._gap_char
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(num_seqs={self.num_seqs},"
            f" width={self.width})"
        )

    def get_seq(self, name: str) -> Sequence:
        try:
            return self._seqs[self._index[name]]
        except KeyError as err:
            msg = f"unknown sequence {name!r}"
            raise KeyError(msg) from err

    def index_of(self, name: str) -> int:
        """the storage index of the named sequence"""
        try:
            return self._index[name]
        except KeyError as err:
            msg = f"unknown sequence {name!r}"
            raise KeyError(msg) from err

    def rows(self) -> list[str]:
        return [seq.seq for seq in self._seqs]

    def column(self, col: int) -> str:
        return "".join(seq.seq[col] for seq in self._seqs)

    def is_gap(self, char: str) -> bool:
        return char in self.gap_chars

    def is_gap_column(self, col: int) -> bool:
        """whether every row holds a gap at col"""
        gaps = self.gap_chars
        return all(seq.seq[col] in gaps for seq in self._seqs)

    def copy(
        self,
        *,
        seqs: Iterable[Sequence] | None = None,
        column_annotations: Mapping[str, str] | None = None,
        file_annotations: Iterable[tuple[str, str]] | None = None,
        gap_char: str | None = None,
    ) -> Alignment:
        """returns a new Alignment with the named attributes replaced

        Notes
        -----
        Sequences are not copied, the new alignment refers to the same
        instances.
        """
        return self.__class__(
            self._seqs if seqs is None else seqs,
            column_annotations=(
                self._column_annotations
                if column_annotations is None
                else column_annotations
            ),
            file_annotations=(
                self._file_annotations if file_annotations is None else file_annotations
            ),
            gap_char=self._gap_char if gap_char is None else gap_char,
        )

    def take_seqs(self, names: Iterable[str]) -> Alignment:
        """returns the named rows, in the order first given, with all column
        and file annotations"""
        return self.copy(seqs=[self.get_seq(name) for name in unique_everseen(names)])

    def seq_type(self) -> SeqType:
        return guess_seq_type(self.rows(), self.gap_chars)

    def to_dict(self) -> dict[str, str]:
        return {seq.name: seq.seq for seq in self._seqs}


def make_alignment(
    data: SeqsDataType,
    column_annotations: Mapping[str, str] | None = None,
    file_annotations: Iterable[tuple[str, str]] = (),
    gap_char: str = DEFAULT_GAP_CHAR,
) -> Alignment:
    """convenience constructor

    Parameters
    ----------
    data
        a {name: seq} dict, ``(name, seq)`` pairs or Sequence instances
    """
    if isinstance(data, Mapping):
        data = data.items()

    seqs = [
        item if isinstance(item, Sequence) else Sequence(item[0], item[1])
        for item in data
    ]
    return Alignment(
        seqs,
        column_annotations=column_annotations,
        file_annotations=file_annotations,
        gap_char=gap_char,
    )
