"""Display ordering derived from clustering and collapsing.

The display order maps displayed rows to storage indices of the current
alignment. It is always recomputed from scratch, never patched, so it cannot
refer to rows that an edit removed.
"""

from __future__ import annotations

from collections.abc import Iterable

from aform.cluster.collapse import CollapseGroup, collapse_identical
from aform.cluster.dendrogram import ascii_lines, dendrogram_rows, tree_width
from aform.cluster.distance import hamming_matrix
from aform.cluster.UPGMA import DendrogramNode, upgma
from aform.core.alignment import Alignment


class ClusterState:
    """clustering and collapse state of one pane

    Notes
    -----
    Call ``refresh`` after every edit. It recomputes when the number of rows
    changed or when collapsing is on, since any edit can make rows identical
    or distinct.
    """

    def __init__(self) -> None:
        self.clustered = False
        self.collapsed = False
        self._order: list[int] = []
        self._tree: DendrogramNode | None = None
        self._groups: dict[int, CollapseGroup] = {}
        self._num_seqs = 0

    @property
    def active(self) -> bool:
        return self.clustered or self.collapsed

    @property
    def order(self) -> list[int]:
        """storage index of each displayed row"""
        return list(self._order)

    @property
    def tree(self) -> DendrogramNode | None:
        return self._tree

    @property
    def groups(self) -> dict[int, CollapseGroup]:
        """collapse groups keyed by representative, empty if not collapsed"""
        return dict(self._groups)

    @property
    def num_display_rows(self) -> int:
        return len(self._order)

    def cluster(self, aln: Alignment) -> None:
        self.clustered = True
        self.recompute(aln)

    def uncluster(self, aln: Alignment) -> None:
        """drops the cluster order and tree, collapsing is kept"""
        self.clustered = False
        self.recompute(aln)

    def set_collapse(self, aln: Alignment, collapsed: bool) -> None:
        self.collapsed = collapsed
        self.recompute(aln)

    def refresh(self, aln: Alignment, rows_changed: bool = False) -> bool:
        """recomputes if aln may invalidate the current state, returns
        whether it did"""
        if (
            rows_changed
            or self.collapsed
            or aln.num_seqs != self._num_seqs
            or (not self.active and len(self._order) != aln.num_seqs)
        ):
            self.recompute(aln)
            return True
        return False

    def recompute(self, aln: Alignment) -> None:
        self._num_seqs = aln.num_seqs
        self._groups = collapse_identical(aln) if self.collapsed else {}
        visible = list(self._groups) if self.collapsed else list(range(aln.num_seqs))
        self._tree = None
        if self.clustered and visible:
            rows = [aln.seqs[i].seq for i in visible]
            self._tree = upgma(hamming_matrix(rows, aln.gap_chars), labels=visible)
            visible = self._tree.leaf_order()
        self._order = visible

    def display_to_storage(self, display_row: int) -> int:
        if not 0 <= display_row < len(self._order):
            msg = f"display row {display_row} out of range"
            raise IndexError(msg)
        return self._order[display_row]

    def storage_to_display(self, index: int) -> int | None:
        """the display row of a storage index, a collapsed duplicate maps to
        the row of its representative"""
        if self.collapsed and index not in self._groups:
            for group in self._groups.values():
                if index in group.members:
                    index = group.representative
                    break
        try:
            return self._order.index(index)
        except ValueError:
            return None

    def members(self, display_row: int) -> tuple[int, ...]:
        """storage indices a displayed row stands for"""
        index = self.display_to_storage(display_row)
        if self.collapsed:
            return self._groups[index].members
        return (index,)

    def count(self, display_row: int) -> int:
        return len(self.members(display_row))

    def expand(self, display_rows: Iterable[int]) -> list[int]:
        """storage indices for display_rows with collapsed duplicates
        included, in display order"""
        result = []
        for row in display_rows:
            result.extend(self.members(row))
        return result

    def member_names(self, aln: Alignment, display_rows: Iterable[int]) -> list[str]:
        return [aln.seqs[i].name for i in self.expand(display_rows)]

    def tree_cells(self) -> list:
        return dendrogram_rows(self._tree)

    def tree_lines(self) -> list[str]:
        return ascii_lines(self._tree)

    @property
    def tree_width(self) -> int:
        return tree_width(self._tree)
