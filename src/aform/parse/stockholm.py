"""Parser for Stockholm format multiple sequence alignments.

Interleaved (blocked) files are supported: sequence, ``#=GC`` and ``#=GR``
data for the same identifier are concatenated in file order. Only the first
alignment of a multi-alignment file is read.
"""

from __future__ import annotations

import os
import re
import warnings
from collections.abc import Iterable
from functools import singledispatch

from aform.core.alignment import Alignment, AlignmentError
from aform.core.moltype import DEFAULT_GAP_CHAR
from aform.core.sequence import Sequence, SequenceError
from aform.parse.record import FileFormatError
from aform.util.io import iter_lines

HEADER = "# STOCKHOLM"
TERMINATOR = "//"

_white_space = re.compile(r"\s+")


class StockholmParseError(FileFormatError):
    """a Stockholm file that cannot be read

    Attributes
    ----------
    line
        1-based line number of the offending line, None if the problem is
        not specific to one line
    reason
        description of the problem
    """

    def __init__(self, line: int | None, reason: str) -> None:
        self.line = line
        self.reason = reason
        where = "" if line is None else f"line {line}: "
        super().__init__(f"{where}{reason}")


@singledispatch
def _prep_lines(data) -> Iterable[str]:
    return data


@_prep_lines.register
def _(data: str) -> Iterable[str]:
    return data.splitlines()


@_prep_lines.register
def _(data: bytes) -> Iterable[str]:
    return data.decode("utf-8").splitlines()


def _split_fields(text: str, num: int, line_num: int, label: str) -> list[str]:
    """splits text into num whitespace separated fields, the last holding
    the remainder, which may be empty"""
    fields = text.strip().split(maxsplit=num - 1)
    if len(fields) == num - 1:
        fields.append("")
    if len(fields) < num:
        raise StockholmParseError(line_num, f"malformed {label} line")
    return fields


class _Builder:
    """accumulates the records of one alignment"""

    def __init__(self) -> None:
        self.file_annotations: list[tuple[str, str]] = []
        self.seq_annotations: dict[str, list[tuple[str, str]]] = {}
        self.column_annotations: dict[str, list[str]] = {}
        self.residue_annotations: dict[str, dict[str, list[str]]] = {}
        self.seqs: dict[str, list[str]] = {}
        # most recent line defining each identifier, for error reports
        self.line_of: dict[str, int] = {}

    def add_line(self, line: str, line_num: int) -> None:
        if line.startswith("#=GF"):
            self._add_gf(line[4:], line_num)
        elif line.startswith("#=GS"):
            name, tag, value = _split_fields(line[4:], 3, line_num, "#=GS")
            self.seq_annotations.setdefault(name, []).append((tag, value.strip()))
            self.line_of.setdefault(name, line_num)
        elif line.startswith("#=GC"):
            tag, data = _split_fields(line[4:], 2, line_num, "#=GC")
            self.column_annotations.setdefault(tag, []).append(
                _white_space.sub("", data)
            )
            self.line_of[f"#=GC {tag}"] = line_num
        elif line.startswith("#=GR"):
            name, tag, data = _split_fields(line[4:], 3, line_num, "#=GR")
            tracks = self.residue_annotations.setdefault(name, {})
            tracks.setdefault(tag, []).append(_white_space.sub("", data))
            self.line_of[f"#=GR {name} {tag}"] = line_num
        elif line.startswith("#="):
            raise StockholmParseError(
                line_num, f"unknown annotation {line.split()[0]!r}"
            )
        elif line.startswith("#"):
            # free text comment
            return
        else:
            fields = line.split(maxsplit=1)
            name, data = fields if len(fields) == 2 else (fields[0], "")
            self.seqs.setdefault(name, []).append(_white_space.sub("", data))
            self.line_of[name] = line_num

    def _add_gf(self, text: str, line_num: int) -> None:
        fields = text.strip().split(maxsplit=1)
        if not fields:
            raise StockholmParseError(line_num, "malformed #=GF line")
        tag = fields[0]
        value = fields[1].strip() if len(fields) == 2 else ""
        self.file_annotations.append((tag, value))

    def _orphans(self, records: dict, label: str) -> None:
        for name in list(records):
            if name in self.seqs:
                continue
            warnings.warn(
                f"{label} annotation for unknown sequence {name!r} discarded",
                UserWarning,
                stacklevel=4,
            )
            del records[name]

    def build(self, gap_char: str) -> Alignment:
        self._orphans(self.seq_annotations, "#=GS")
        self._orphans(self.residue_annotations, "#=GR")

        seqs = []
        for name, chunks in self.seqs.items():
            tracks = {
                tag: "".join(parts)
                for tag, parts in self.residue_annotations.get(name, {}).items()
            }
            data = "".join(chunks)
            for tag, track in tracks.items():
                if len(track) != len(data):
                    raise StockholmParseError(
                        self.line_of[f"#=GR {name} {tag}"],
                        f"#=GR {tag} of {name!r} has length {len(track)},"
                        f" expected {len(data)}",
                    )
            try:
                seq = Sequence(
                    name,
                    data,
                    residue_annotations=tracks,
                    annotations=self.seq_annotations.get(name, ()),
                )
            except SequenceError as err:
                raise StockholmParseError(self.line_of[name], str(err)) from err
            seqs.append(seq)

        columns = {tag: "".join(parts) for tag, parts in self.column_annotations.items()}
        self._check_widths(seqs, columns)
        try:
            return Alignment(
                seqs,
                column_annotations=columns,
                file_annotations=self.file_annotations,
                gap_char=gap_char,
            )
        except AlignmentError as err:
            raise StockholmParseError(None, str(err)) from err

    def _check_widths(self, seqs: list[Sequence], columns: dict[str, str]) -> None:
        if seqs:
            width = len(seqs[0])
        elif columns:
            width = len(next(iter(columns.values())))
        else:
            return

        for seq in seqs:
            if len(seq) != width:
                raise StockholmParseError(
                    self.line_of[seq.name],
                    f"sequence {seq.name!r} has length {len(seq)}, expected {width}",
                )
        for tag, data in columns.items():
            if len(data) != width:
                raise StockholmParseError(
                    self.line_of[f"#=GC {tag}"],
                    f"#=GC {tag} has length {len(data)}, expected {width}",
                )


def parse_stockholm(
    data: str | bytes | Iterable[str], gap_char: str = DEFAULT_GAP_CHAR
) -> Alignment:
    """returns the first alignment in data

    Parameters
    ----------
    data
        the file content as a string, or its lines
    gap_char
        the gap glyph used when editing the result

    Raises
    ------
    StockholmParseError
        for a missing header, a malformed line, undecodable text or
        inconsistent lengths
    """
    builder = _Builder()
    seen_header = terminated = False
    line_num = 0
    try:
        for line_num, line in enumerate(_prep_lines(data), start=1):
            line = line.rstrip("\r\n")
            if not seen_header:
                if not line.strip():
                    continue
                if not line.startswith(HEADER):
                    raise StockholmParseError(line_num, "missing '# STOCKHOLM' header")
                seen_header = True
                continue

            if not line.strip():
                continue
            if line.startswith(TERMINATOR):
                terminated = True
                break
            builder.add_line(line, line_num)
    except UnicodeDecodeError as err:
        # an offset locates the line only when data was decoded whole
        where = data[: err.start].count(b"\n") + 1 if isinstance(data, bytes) else None
        raise StockholmParseError(
            where, f"invalid text encoding ({err.encoding}: {err.reason})"
        ) from err

    if not seen_header:
        raise StockholmParseError(line_num or None, "empty file")
    if not terminated:
        warnings.warn(
            "alignment is missing the '//' terminator", UserWarning, stacklevel=2
        )
    return builder.build(gap_char)


def load_stockholm(
    path: str | os.PathLike, gap_char: str = DEFAULT_GAP_CHAR
) -> Alignment:
    """parses the Stockholm file at path, which may be compressed"""
    return parse_stockholm(iter_lines(path), gap_char=gap_char)
