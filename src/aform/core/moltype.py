"""Residue classification used by editing, clustering and structure checks."""

from __future__ import annotations

import enum
from collections.abc import Iterable

DEFAULT_GAP_CHAR = "."
# glyphs treated as gaps when reading and comparing rows
GAP_CHARS = ".-_~:"

NUCLEOTIDE_CHARS = frozenset("ACGTUN")

# Standard RNA pairing: GU pairs count as 'weak' pairs
RNA_STANDARD_PAIRS: dict[frozenset[str], bool] = {
    frozenset(("A", "U")): True,  # True vs False for 'always' vs 'sometimes' pairing
    frozenset(("C", "G")): True,
    frozenset(("G", "U")): False,
}

DNA_STANDARD_PAIRS: dict[frozenset[str], bool] = {
    frozenset(("A", "T")): True,
    frozenset(("C", "G")): True,
    frozenset(("G", "T")): False,
}


class MolTypeError(TypeError): ...


class SeqType(enum.Enum):
    RNA = "rna"
    DNA = "dna"
    PROTEIN = "protein"

    @property
    def is_nucleic(self) -> bool:
        return self is not SeqType.PROTEIN


def is_gap(char: str, gap_chars: str = GAP_CHARS) -> bool:
    return char in gap_chars


def residues_equal(a: str, b: str, gap_chars: str = GAP_CHARS) -> bool:
    """whether two alignment characters represent the same residue

    Notes
    -----
    Comparison is case insensitive, T and U are equivalent and every gap
    glyph matches every other gap glyph.
    """
    a_gap, b_gap = a in gap_chars, b in gap_chars
    if a_gap or b_gap:
        return a_gap and b_gap
    return _normalise_residue(a) == _normalise_residue(b)


def _normalise_residue(char: str) -> str:
    char = char.upper()
    return "U" if char == "T" else char


def guess_seq_type(rows: Iterable[str], gap_chars: str = GAP_CHARS) -> SeqType:
    """majority vote over all residues in rows

    Notes
    -----
    U votes RNA, T votes DNA, A/C/G/N are neutral and every other letter
    votes protein. Ties and empty input resolve to RNA.
    """
    rna = dna = protein = 0
    for row in rows:
        for char in row:
            if char in gap_chars or not char.isalpha():
                continue
            upper = char.upper()
            if upper == "U":
                rna += 1
            elif upper == "T":
                dna += 1
            elif upper not in NUCLEOTIDE_CHARS:
                protein += 1

    if protein > max(rna, dna):
        return SeqType.PROTEIN
    return SeqType.DNA if dna > rna else SeqType.RNA


def get_pairs(seq_type: SeqType) -> dict[frozenset[str], bool]:
    """returns the pairing rules for a nucleic acid sequence type"""
    if seq_type is SeqType.PROTEIN:
        msg = "protein sequences do not base pair"
        raise MolTypeError(msg)
    return DNA_STANDARD_PAIRS if seq_type is SeqType.DNA else RNA_STANDARD_PAIRS
