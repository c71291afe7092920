"""Layout of a cluster tree beside the alignment rows.

The tree is drawn left to right in a grid with one line per displayed row
and one column per merge depth. Leaves sit at the left edge, each internal
node occupies the column given by its depth above its deepest leaf, and the
root is the rightmost column. A node joins its parent on the top row of its
subtree.
"""

from __future__ import annotations

from dataclasses import dataclass

from aform.cluster.UPGMA import DendrogramNode

HORIZONTAL = "─"
TOP = "┬"
BOTTOM = "┘"
VERTICAL = "│"
BLANK = " "


@dataclass(frozen=True)
class TreeCell:
    """what a renderer draws at one row and depth column

    Attributes
    ----------
    boundary
        the row is the first or last row of the merge line in this column
    merge
        the vertical merge line of a node passes through the row
    height
        merge height of the node this cell belongs to, None for empty cells
    horizontal
        a branch joining a subtree to its parent crosses the cell
    top
        for boundary cells, whether this is the upper end of the merge line
    """

    boundary: bool = False
    merge: bool = False
    height: float | None = None
    horizontal: bool = False
    top: bool = False

    @property
    def glyph(self) -> str:
        if self.merge and self.boundary:
            return TOP if self.top else BOTTOM
        if self.merge:
            return VERTICAL
        if self.horizontal:
            return HORIZONTAL
        return BLANK


def _depths(tree: DendrogramNode) -> dict[int, int]:
    depths = {}
    for node in tree.postorder():
        depths[id(node)] = (
            0 if node.is_tip() else 1 + max(depths[id(c)] for c in node.children)
        )
    return depths


def tree_width(tree: DendrogramNode | None) -> int:
    """number of depth columns needed to draw tree"""
    if tree is None:
        return 0
    return max(_depths(tree)[id(tree)], 1)


def dendrogram_rows(tree: DendrogramNode | None) -> list[list[TreeCell]]:
    """returns a TreeCell for every display row and depth column

    Notes
    -----
    Display rows follow the left to right leaf order of tree.
    """
    if tree is None:
        return []

    leaves = list(tree.iter_tips())
    width = tree_width(tree)
    if len(leaves) == 1:
        return [[TreeCell(horizontal=True, height=0.0)] * width]

    depths = _depths(tree)
    top_row = {id(leaf): row for row, leaf in enumerate(leaves)}
    for node in tree.postorder():
        if not node.is_tip():
            top_row[id(node)] = top_row[id(node.children[0])]

    cells: list[list[dict]] = [[{} for _ in range(width)] for _ in leaves]
    for node in tree.postorder():
        if node.is_tip():
            continue
        col = depths[id(node)] - 1
        first = top_row[id(node)]
        last = top_row[id(node.children[-1])]
        for row in range(first, last + 1):
            cells[row][col] = {
                "merge": True,
                "boundary": row in (first, last),
                "top": row == first,
                "height": node.height,
            }
        for child in node.children:
            start = 0 if child.is_tip() else depths[id(child)]
            for c in range(start, col):
                cells[top_row[id(child)]][c] = {
                    "horizontal": True,
                    "height": node.height,
                }

    return [[TreeCell(**cell) for cell in row] for row in cells]


def ascii_lines(tree: DendrogramNode | None) -> list[str]:
    """the tree drawn with box drawing characters, one string per row"""
    return ["".join(cell.glyph for cell in row) for row in dendrogram_rows(tree)]
