"""Pairwise Hamming distances between alignment rows."""

from __future__ import annotations

from collections.abc import Sequence as SequenceType

import numba
import numpy

from aform.core.moltype import GAP_CHARS

GAP_CODE = 0


def encode_rows(rows: SequenceType[str], gap_chars: str = GAP_CHARS) -> numpy.ndarray:
    """returns rows as a 2D uint8 array in which equal residues have equal
    codes

    Notes
    -----
    Residues are upper cased and T is coded as U. Every gap glyph is coded
    as GAP_CODE. Non ASCII characters share one code.
    """
    width = len(rows[0]) if len(rows) else 0
    table = str.maketrans({**{g: chr(GAP_CODE) for g in gap_chars}, "T": "U"})
    encoded = numpy.zeros((len(rows), width), dtype=numpy.uint8)
    for i, row in enumerate(rows):
        if len(row) != width:
            msg = f"row {i} has length {len(row)}, expected {width}"
            raise ValueError(msg)
        text = row.upper().translate(table)
        encoded[i] = numpy.frombuffer(
            text.encode("ascii", errors="replace"), dtype=numpy.uint8
        )
    return encoded


# turn off code coverage as jit-ted code not accessible to coverage
@numba.jit
def _hamming_dists(encoded):  # pragma: no cover
    """fills a symmetric matrix of mismatch counts between rows of encoded"""
    num_rows, width = encoded.shape
    dists = numpy.zeros((num_rows, num_rows), dtype=numpy.int64)
    for i in range(num_rows - 1):
        for j in range(i + 1, num_rows):
            num_diff = 0
            for k in range(width):
                if encoded[i, k] != encoded[j, k]:
                    num_diff += 1
            dists[i, j] = num_diff
            dists[j, i] = num_diff
    return dists


def hamming_matrix(
    rows: SequenceType[str], gap_chars: str = GAP_CHARS
) -> numpy.ndarray:
    """returns the symmetric matrix of mismatch counts between rows

    Parameters
    ----------
    rows
        equal length gapped strings
    gap_chars
        glyphs treated as gaps

    Notes
    -----
    Two gaps match, a gap never matches a residue. Residues are compared
    case insensitively with T equal to U.
    """
    if not len(rows):
        return numpy.zeros((0, 0), dtype=numpy.int64)
    return _hamming_dists(encode_rows(rows, gap_chars))
