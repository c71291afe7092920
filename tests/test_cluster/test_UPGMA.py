import numpy
import pytest
from numpy import array
from numpy.testing import assert_allclose

from aform.cluster.UPGMA import (
    BIG_NUM,
    DendrogramNode,
    UPGMA_cluster,
    condense_matrix,
    condense_node_order,
    find_smallest_index,
    upgma,
)


@pytest.fixture
def matrix():
    return array(
        [
            [BIG_NUM, 1, 4, 20, 22],
            [1, BIG_NUM, 5, 21, 23],
            [4, 5, BIG_NUM, 10, 12],
            [20, 21, 10, BIG_NUM, 2],
            [22, 23, 12, 2, BIG_NUM],
        ],
        dtype=float,
    )


@pytest.fixture
def distances():
    return array(
        [
            [0, 1, 4, 20, 22],
            [1, 0, 5, 21, 23],
            [4, 5, 0, 10, 12],
            [20, 21, 10, 0, 2],
            [22, 23, 12, 2, 0],
        ],
        dtype=float,
    )


def test_find_smallest_index(matrix):
    assert find_smallest_index(matrix) == (0, 1)


def test_find_smallest_index_ties():
    matrix = array([[BIG_NUM, 3, 1], [3, BIG_NUM, 1], [1, 1, BIG_NUM]])
    assert find_smallest_index(matrix) == (0, 2)


def test_find_smallest_index_ties_lowest_combined():
    matrix = numpy.full((5, 5), 9.0)
    numpy.fill_diagonal(matrix, BIG_NUM)
    matrix[0, 4] = matrix[4, 0] = 1
    matrix[1, 2] = matrix[2, 1] = 1
    assert find_smallest_index(matrix) == (1, 2)
    # equal sums fall back to the lower row
    matrix[0, 3] = matrix[3, 0] = 1
    assert find_smallest_index(matrix) == (0, 3)


def test_condense_matrix(matrix):
    sizes = numpy.ones(5)
    got = condense_matrix(matrix, (0, 1), sizes)
    assert_allclose(got[0], [BIG_NUM, BIG_NUM, 4.5, 20.5, 22.5])
    assert_allclose(got[:, 0], [BIG_NUM, BIG_NUM, 4.5, 20.5, 22.5])
    assert (got[1] == BIG_NUM).all()
    assert list(sizes) == [2, 0, 1, 1, 1]


def test_condense_matrix_size_weighted(matrix):
    sizes = numpy.array([2.0, 1, 1, 1, 1])
    got = condense_matrix(matrix, (0, 2), sizes)
    # (2 * 20 + 1 * 10) / 3
    assert_allclose(got[0, 3], 50 / 3)
    assert sizes[0] == 3


def test_condense_node_order(matrix):
    nodes = [DendrogramNode(index=i) for i in range(5)]
    got = condense_node_order(matrix, (0, 1), nodes)
    assert got[1] is None
    assert [c.index for c in got[0].children] == [0, 1]
    assert got[0].height == 1


def test_upgma_cluster(matrix):
    nodes = [DendrogramNode(index=i) for i in range(5)]
    tree = UPGMA_cluster(matrix, nodes)
    assert tree.size == 5
    assert tree.leaf_order() == [0, 1, 2, 3, 4]
    assert tree.to_newick() == "(((0,1)1,2)4.5,(3,4)2)18"


def test_upgma(distances):
    tree = upgma(distances)
    assert tree.is_root()
    assert tree.leaf_order() == [0, 1, 2, 3, 4]
    assert {t.index for t in tree.iter_tips()} == set(range(5))


def test_upgma_labels(distances):
    tree = upgma(distances, labels=[10, 11, 12, 13, 14])
    assert tree.leaf_order() == [10, 11, 12, 13, 14]


def test_upgma_does_not_modify_input(distances):
    before = distances.copy()
    upgma(distances)
    assert_allclose(distances, before)


def test_upgma_deterministic(distances):
    newicks = {upgma(distances).to_newick() for _ in range(5)}
    assert len(newicks) == 1


def test_upgma_identical_rows():
    tree = upgma(numpy.zeros((4, 4)))
    assert sorted(tree.leaf_order()) == [0, 1, 2, 3]
    assert all(node.height == 0 for node in tree.preorder())


@pytest.mark.parametrize("num", [0, 1])
def test_upgma_small(num):
    tree = upgma(numpy.zeros((num, num)))
    if num == 0:
        assert tree is None
    else:
        assert tree.is_tip()
        assert tree.leaf_order() == [0]


def test_upgma_invalid():
    with pytest.raises(ValueError):
        upgma(numpy.zeros((2, 3)))
    with pytest.raises(ValueError):
        upgma(numpy.zeros((2, 2)), labels=[0])


def test_traversal():
    a, b, c = (DendrogramNode(index=i) for i in range(3))
    inner = DendrogramNode(children=(a, b), height=1)
    root = DendrogramNode(children=(inner, c), height=2)
    assert [n.index for n in root.preorder()] == [None, None, 0, 1, 2]
    assert [n.index for n in root.postorder()] == [0, 1, None, 2, None]
    assert a.parent is inner
    assert root.size == 3
