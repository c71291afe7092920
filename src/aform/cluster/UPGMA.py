"""Functions to cluster alignment rows using UPGMA

upgma takes a square matrix of pairwise distances and returns the root
DendrogramNode of the cluster tree. Leaves carry the row index they
represent.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence as SequenceType

import numpy

BIG_NUM = 1e305


class DendrogramNode:
    """a node of a strictly binary cluster tree

    Attributes
    ----------
    index
        for a leaf, the row index it represents, None for internal nodes
    children
        empty for a leaf, otherwise the left and right subtrees
    height
        the linkage distance at which the children merged, 0 for leaves
    size
        number of leaves below this node
    """

    __slots__ = ("children", "height", "index", "parent", "size")

    def __init__(
        self,
        index: int | None = None,
        children: SequenceType[DendrogramNode] = (),
        height: float = 0.0,
    ) -> None:
        self.index = index
        self.children = list(children)
        self.height = float(height)
        self.parent: DendrogramNode | None = None
        for child in self.children:
            child.parent = self
        self.size = sum(c.size for c in self.children) if self.children else 1

    def __repr__(self) -> str:
        if self.is_tip():
            return f"{self.__class__.__name__}(index={self.index})"
        return f"{self.__class__.__name__}(height={self.height}, size={self.size})"

    def is_tip(self) -> bool:
        return not self.children

    def is_root(self) -> bool:
        return self.parent is None

    def preorder(self, include_self: bool = True) -> Iterator[DendrogramNode]:
        """performs preorder iteration over tree"""
        stack = [self]
        while stack:
            node = stack.pop()
            if include_self or node is not self:
                yield node
            stack.extend(reversed(node.children))

    def postorder(self, include_self: bool = True) -> Iterator[DendrogramNode]:
        """performs postorder iteration over tree"""
        stack = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded or node.is_tip():
                if include_self or node is not self:
                    yield node
                continue
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.children))

    def iter_tips(self) -> Iterator[DendrogramNode]:
        """leaves from left to right"""
        return (node for node in self.preorder() if node.is_tip())

    def leaf_order(self) -> list[int]:
        """the leaf indices from left to right"""
        return [node.index for node in self.iter_tips()]

    def to_newick(self) -> str:
        """the tree in newick format, leaves named by index"""
        if self.is_tip():
            return str(self.index)
        inner = ",".join(child.to_newick() for child in self.children)
        return f"({inner}){self.height:g}"


def find_smallest_index(matrix: numpy.ndarray) -> tuple[int, int]:
    """returns the index of the smallest element in a numpy array

    for UPGMA clustering elements on the diagonal should first be
    substituted with a very large number so that they are always
    larger than the rest if the values in the array. Of tied elements the
    one with the lowest row plus column index is chosen."""
    rows, cols = numpy.nonzero(numpy.triu(matrix == matrix.min(), 1))
    # among ties, lowest combined index then lowest row
    best = numpy.lexsort((rows, rows + cols))[0]
    return int(rows[best]), int(cols[best])


def condense_matrix(
    matrix: numpy.ndarray,
    smallest_index: tuple[int, int],
    sizes: numpy.ndarray,
    large_value: float = BIG_NUM,
) -> numpy.ndarray:
    """merges the rows and columns indicated by smallest_index

    Notes
    -----
    The merged distances are the size weighted average of the two rows and
    replace the first index. The second index is filled with large_value so
    it is never chosen again. Changes matrix and sizes in place.
    """
    first_index, second_index = smallest_index
    size_a, size_b = sizes[first_index], sizes[second_index]
    row_a, row_b = matrix[first_index], matrix[second_index]
    # removed clusters stay at large_value
    removed = (row_a >= large_value) | (row_b >= large_value)
    new_vector = (
        numpy.where(removed, 0.0, row_a) * size_a
        + numpy.where(removed, 0.0, row_b) * size_b
    ) / (size_a + size_b)
    new_vector[removed] = large_value
    matrix[first_index] = new_vector
    matrix[:, first_index] = new_vector
    matrix[first_index, first_index] = large_value
    matrix[second_index] = large_value
    matrix[:, second_index] = large_value
    sizes[first_index] = size_a + size_b
    sizes[second_index] = 0
    return matrix


def condense_node_order(
    matrix: numpy.ndarray,
    smallest_index: tuple[int, int],
    node_order: list[DendrogramNode | None],
) -> list[DendrogramNode | None]:
    """joins the two nodes at smallest_index into a new node at the first
    index, the second index becomes None"""
    index1, index2 = smallest_index
    node = DendrogramNode(
        children=(node_order[index1], node_order[index2]),
        height=matrix[index1, index2],
    )
    node_order[index1] = node
    node_order[index2] = None
    return node_order


def UPGMA_cluster(
    matrix: numpy.ndarray,
    node_order: list[DendrogramNode | None],
    large_number: float = BIG_NUM,
) -> DendrogramNode:
    """cluster with UPGMA

    matrix is a numpy float array with the diagonal set to large_number.
    node_order is a list of DendrogramNode objects corresponding to the matrix.
    large_number must be much larger than any value already in the matrix.

    WARNING: Changes matrix in-place.
    """
    sizes = numpy.ones(len(node_order), dtype=float)
    for _ in range(len(node_order) - 1):
        smallest_index = find_smallest_index(matrix)
        node_order = condense_node_order(matrix, smallest_index, node_order)
        matrix = condense_matrix(matrix, smallest_index, sizes, large_number)
    return node_order[0]


def upgma(
    distances: numpy.ndarray, labels: SequenceType[int] | None = None
) -> DendrogramNode | None:
    """Uses the UPGMA algorithm to cluster rows

    Parameters
    ----------
    distances
        symmetric square matrix of pairwise distances
    labels
        the index assigned to each leaf, defaults to the matrix row index

    Returns
    -------
    the root node, None for an empty matrix

    Notes
    -----
    Ties resolve to the pair with the lowest combined row indices, a merged
    cluster takes the lower of the two rows, so the result is deterministic.
    """
    distances = numpy.array(distances, dtype=float)
    num = distances.shape[0]
    if distances.ndim != 2 or distances.shape[1] != num:
        msg = f"distances must be a square matrix, not shape {distances.shape}"
        raise ValueError(msg)

    labels = list(range(num)) if labels is None else list(labels)
    if len(labels) != num:
        msg = f"{len(labels)} labels for {num} rows"
        raise ValueError(msg)
    if num == 0:
        return None

    numpy.fill_diagonal(distances, BIG_NUM)
    nodes: list[DendrogramNode | None] = [DendrogramNode(index=i) for i in labels]
    return UPGMA_cluster(distances, nodes, BIG_NUM)
