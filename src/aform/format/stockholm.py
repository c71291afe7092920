"""Writer for Stockholm format.

The output layout is canonical: header, ``#=GF`` lines, a blank line,
``#=GS`` lines, a blank line, each sequence followed by its ``#=GR`` lines,
the ``#=GC`` lines and the ``//`` terminator. Data columns are aligned.
"""

from __future__ import annotations

import os

from aform.core.alignment import Alignment
from aform.parse.record import RecordError
from aform.util.io import atomic_write

HEADER = "# STOCKHOLM 1.0"
TERMINATOR = "//"

# minimum width of the identifier column
MIN_LABEL_WIDTH = 10


def _check_token(token: str, label: str) -> str:
    if not token or any(c.isspace() for c in token):
        msg = f"{label} {token!r} cannot be written, it must be non-empty without whitespace"
        raise RecordError(msg)
    return token


def _check_value(value: str, label: str) -> str:
    if "\n" in value or "\r" in value:
        msg = f"{label} value {value!r} contains a line break"
        raise RecordError(msg)
    return value


def _data_labels(aln: Alignment) -> list[str]:
    labels = []
    for seq in aln.seqs:
        labels.append(seq.name)
        labels.extend(f"#=GR {seq.name} {tag}" for tag in seq.residue_annotations)
    labels.extend(f"#=GC {tag}" for tag in aln.column_annotations)
    return labels


def alignment_to_stockholm(aln: Alignment) -> str:
    """returns aln formatted as a Stockholm string"""
    lines = [HEADER]
    for tag, value in aln.file_annotations:
        _check_token(tag, "#=GF tag")
        value = _check_value(value, f"#=GF {tag}")
        lines.append(f"#=GF {tag} {value}".rstrip())
    if aln.file_annotations:
        lines.append("")

    name_width = max([MIN_LABEL_WIDTH, *(len(n) for n in aln.names)])
    gs_lines = []
    for seq in aln.seqs:
        for tag, value in seq.annotations:
            _check_token(tag, "#=GS tag")
            value = _check_value(value, f"#=GS {seq.name} {tag}")
            gs_lines.append(f"#=GS {seq.name:<{name_width}} {tag} {value}".rstrip())
    if gs_lines:
        lines.extend(gs_lines)
        lines.append("")

    pad = max([MIN_LABEL_WIDTH, *(len(label) for label in _data_labels(aln))])
    for seq in aln.seqs:
        lines.append(f"{seq.name:<{pad}} {seq.seq}")
        for tag, data in seq.residue_annotations.items():
            _check_token(tag, "#=GR tag")
            lines.append(f"{f'#=GR {seq.name} {tag}':<{pad}} {data}")

    for tag, data in aln.column_annotations.items():
        _check_token(tag, "#=GC tag")
        lines.append(f"{f'#=GC {tag}':<{pad}} {data}")

    lines.append(TERMINATOR)
    return "\n".join(lines) + "\n"


def write_stockholm(aln: Alignment, path: str | os.PathLike) -> None:
    """writes aln to path, replacing any existing file only on success

    Notes
    -----
    A compression suffix on path, e.g. ``.gz``, compresses the output.
    """
    text = alignment_to_stockholm(aln)
    with atomic_write(path, mode="wt") as out:
        out.write(text)
