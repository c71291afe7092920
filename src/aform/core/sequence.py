"""Immutable gapped sequence rows.

A Sequence is shared by reference between alignment versions. Every edit
builds new Sequence instances for the rows it touches and nothing else.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from aform.core.moltype import GAP_CHARS


class SequenceError(ValueError): ...


# line prefixes Stockholm reserves for markup and the terminator
_RESERVED_PREFIXES = ("#", "//")


def _validate_name(name: str) -> str:
    if (
        not isinstance(name, str)
        or not name
        or any(c.isspace() for c in name)
        or name.startswith(_RESERVED_PREFIXES)
    ):
        msg = f"invalid sequence name {name!r}"
        raise SequenceError(msg)
    return name


class Sequence:
    """a named, gapped row of an alignment. Immutable.

    Notes
    -----
    ``residue_annotations`` are the per-residue (``#=GR``) tracks, each the
    same length as the row. ``annotations`` are the per-sequence (``#=GS``)
    ``(tag, value)`` pairs, in file order, where tags may repeat.
    Names cannot contain whitespace or start with ``#`` or ``//``. Values
    cannot start or end with whitespace.
    """

    __slots__ = ("_annotations", "_name", "_residue_annotations", "_seq")

    def __init__(
        self,
        name: str,
        seq: str,
        residue_annotations: Mapping[str, str] | None = None,
        annotations: Iterable[tuple[str, str]] = (),
    ) -> None:
        self._name = _validate_name(name)
        self._seq = str(seq)
        residue_annotations = dict(residue_annotations or {})
        for tag, data in residue_annotations.items():
            if len(data) != len(self._seq):
                msg = (
                    f"#=GR {tag} of {name!r} has length {len(data)},"
                    f" expected {len(self._seq)}"
                )
                raise SequenceError(msg)
        self._residue_annotations = MappingProxyType(residue_annotations)
        self._annotations = tuple((str(t), str(v)) for t, v in annotations)
        for tag, value in self._annotations:
            if value != value.strip():
                msg = f"#=GS {tag} of {name!r} has leading or trailing whitespace"
                raise SequenceError(msg)

    @property
    def name(self) -> str:
        return self._name

    @property
    def seq(self) -> str:
        return self._seq

    @property
    def residue_annotations(self) -> Mapping[str, str]:
        return self._residue_annotations

    @property
    def annotations(self) -> tuple[tuple[str, str], ...]:
        return self._annotations

    def __str__(self) -> str:
        return self._seq

    def __len__(self) -> int:
        return len(self._seq)

    def __getitem__(self, index):
        return self._seq[index]

    def __iter__(self):
        return iter(self._seq)

    def __repr__(self) -> str:
        seq = self._seq if len(self._seq) <= 20 else f"{self._seq[:17]}..."
        return f"{self.__class__.__name__}(name={self._name!r}, seq={seq!r})"

    def _key(self) -> tuple:
        return (
            self._name,
            self._seq,
            tuple(self._residue_annotations.items()),
            self._annotations,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Sequence):
            return NotImplemented
        return self is other or self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def copy(
        self,
        *,
        name: str | None = None,
        seq: str | None = None,
        residue_annotations: Mapping[str, str] | None = None,
        annotations: Iterable[tuple[str, str]] | None = None,
    ) -> Sequence:
        """returns a new Sequence with the named attributes replaced"""
        return self.__class__(
            self._name if name is None else name,
            self._seq if seq is None else seq,
            residue_annotations=(
                self._residue_annotations
                if residue_annotations is None
                else residue_annotations
            ),
            annotations=self._annotations if annotations is None else annotations,
        )

    def map_tracks(self, func) -> Sequence:
        """returns a Sequence with func applied to the row and every residue
        annotation

        Notes
        -----
        func is called with a string and must return a string. The same
        instance is returned if nothing changed.
        """
        seq = func(self._seq)
        tracks = {tag: func(data) for tag, data in self._residue_annotations.items()}
        if seq == self._seq and tracks == dict(self._residue_annotations):
            return self
        return self.copy(seq=seq, residue_annotations=tracks)

    def permute(self, order: list[int]) -> Sequence:
        """returns a Sequence whose position i holds the character previously
        at order[i], applied to the row and its residue annotations"""
        return self.map_tracks(lambda text: "".join(text[i] for i in order))

    def with_residue_annotation(self, tag: str, data: str | None) -> Sequence:
        """returns a copy with tag set to data, or removed when data is None"""
        tracks = dict(self._residue_annotations)
        if data is None:
            tracks.pop(tag, None)
        else:
            tracks[tag] = data
        return self.copy(residue_annotations=tracks)

    def ungapped(self, gap_chars: str = GAP_CHARS) -> str:
        return "".join(c for c in self._seq if c not in gap_chars)

    def residue_count(self, gap_chars: str = GAP_CHARS) -> int:
        return sum(c not in gap_chars for c in self._seq)

    def same_content(self, other: Sequence) -> bool:
        """whether residues and residue annotations are identical, ignoring
        the name and sequence annotations"""
        return self._seq == other._seq and dict(self._residue_annotations) == dict(
            other._residue_annotations
        )
