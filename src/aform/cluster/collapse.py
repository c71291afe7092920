"""Grouping of identical alignment rows."""

from __future__ import annotations

from dataclasses import dataclass

from aform.core.alignment import Alignment


@dataclass(frozen=True)
class CollapseGroup:
    """rows with identical residues and residue annotations

    Attributes
    ----------
    representative
        storage index of the first member, the row that is displayed
    members
        storage indices of every member in storage order, including the
        representative
    """

    representative: int
    members: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.members)


def _content_key(seq) -> tuple:
    return seq.seq, tuple(sorted(seq.residue_annotations.items()))


def collapse_identical(aln: Alignment) -> dict[int, CollapseGroup]:
    """returns {representative storage index: CollapseGroup}

    Notes
    -----
    Every row belongs to exactly one group. Rows without a duplicate form a
    group of one. Keys are in storage order.
    """
    members: dict[tuple, list[int]] = {}
    for index, seq in enumerate(aln.seqs):
        members.setdefault(_content_key(seq), []).append(index)

    groups = (CollapseGroup(rows[0], tuple(rows)) for rows in members.values())
    return {group.representative: group for group in groups}
