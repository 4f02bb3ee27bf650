import sys
from collections import Counter

import numpy as np
import pytest

from srf.models.random_forest.tree.attribute_table import create_attribute_tables, create_count_vector
from srf.models.random_forest.tree.builder import ClassificationTreeBuilder, RegressionTreeBuilder, _TreeBuilder
from srf.models.random_forest.tree.tree import DecisionTree


def _build_classification(X, y, n_classes=2, mtry=None, node_size=1, seed=0):
    X = np.asarray(X, dtype=float)
    y = np.asarray(y)
    builder = ClassificationTreeBuilder(y, n_classes, mtry or X.shape[1], node_size, np.random.default_rng(seed))
    return builder.build(create_attribute_tables(X), create_count_vector(y, n_classes))


def _build_regression(X, y, mtry=None, node_size=1, seed=0):
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).reshape(len(X), -1)
    builder = RegressionTreeBuilder(y, mtry or X.shape[1], node_size, np.random.default_rng(seed))
    return builder.build(create_attribute_tables(X))


def _preorder_ids(node_map, node_id=0):
    node = node_map[node_id]
    if node.is_leaf:
        return [node_id]
    return [node_id] + _preorder_ids(node_map, node.left_node_id) + _preorder_ids(node_map, node.right_node_id)


def test_single_row_gives_single_leaf():
    nodes = _build_classification([[1.0, 2.0]], [1])
    assert len(nodes) == 1
    assert nodes[0].node_id == 0
    assert nodes[0].is_leaf
    assert nodes[0].label.tolist() == [0.0, 1.0]

    nodes = _build_regression([[1.0]], [3.0])
    assert len(nodes) == 1
    assert nodes[0].is_leaf
    assert nodes[0].label.tolist() == [3.0]


def test_node_size_at_least_n_gives_single_leaf():
    X = [[1.0], [2.0], [3.0], [4.0]]
    nodes = _build_classification(X, [0, 1, 0, 1], node_size=4)
    assert len(nodes) == 1
    assert nodes[0].node_id == 0
    assert np.allclose(nodes[0].label, [0.5, 0.5])

    nodes = _build_regression(X, [1.0, 2.0, 3.0, 4.0], node_size=10)
    assert len(nodes) == 1
    assert nodes[0].label == pytest.approx([2.5])


def test_separating_feature_gives_depth_one_tree():
    X = [[0.1, 5.0], [0.2, 1.0], [0.8, 3.0], [0.9, 2.0]]
    nodes = _build_classification(X, [0, 0, 1, 1])

    assert [n.node_id for n in nodes] == [0, 1, 2]
    root, left, right = nodes
    assert not root.is_leaf
    assert root.attribute_index == 0
    assert root.attribute_value == 0.2
    assert (root.left_node_id, root.right_node_id) == (1, 2)
    assert left.is_leaf and right.is_leaf
    assert left.label.tolist() == [1.0, 0.0]
    assert right.label.tolist() == [0.0, 1.0]


def test_leaf_histogram_has_global_class_count():
    X = [[1.0], [2.0], [3.0]]
    nodes = _build_classification(X, [0, 0, 2], n_classes=4)
    for node in nodes:
        if node.is_leaf:
            assert node.label.shape == (4,)
            assert node.label.sum() == pytest.approx(1.0)


def test_constant_inputs_force_a_leaf():
    X = np.ones((6, 3))
    nodes = _build_classification(X, [0, 1, 0, 1, 0, 1])
    assert len(nodes) == 1
    assert nodes[0].is_leaf
    assert np.allclose(nodes[0].label, [0.5, 0.5])


def test_regression_end_to_end_example():
    nodes = _build_regression([[1.0], [2.0], [3.0], [4.0]], [1.0, 1.0, 9.0, 9.0], mtry=1, node_size=1)

    assert [n.node_id for n in nodes] == [0, 1, 2]
    root, left, right = nodes
    assert root.attribute_index == 0
    assert root.attribute_value == 2.0
    assert root.label.tolist() == [5.0]
    assert left.is_leaf and left.label.tolist() == [1.0]
    assert right.is_leaf and right.label.tolist() == [9.0]


def test_regression_stops_on_node_size():
    X = np.arange(20, dtype=float).reshape(-1, 1)
    y = np.sin(X[:, 0])
    nodes = _build_regression(X, y, node_size=5)
    tree = DecisionTree(nodes, 1, "regression")

    rows_per_leaf = Counter(_leaf_of(tree, X))
    assert len(rows_per_leaf) == len(tree.leaves)
    assert all(1 <= count <= 5 for count in rows_per_leaf.values())
    assert len(nodes) > 1


def _leaf_of(tree, X):
    out = []
    for x in X:
        node = tree.node(0)
        while not node.is_leaf:
            node = tree.node(node.left_node_id if x[node.attribute_index] <= node.attribute_value
                             else node.right_node_id)
        out.append(node.node_id)
    return out


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_nodes_are_in_preorder(seed):
    rng = np.random.default_rng(seed)
    X = rng.normal(size=(60, 4))
    y = (X[:, 0] + rng.normal(scale=0.5, size=60) > 0).astype(int)
    nodes = _build_classification(X, y, mtry=2, seed=seed)

    node_map = {n.node_id: n for n in nodes}
    assert len(node_map) == len(nodes)
    assert [n.node_id for n in nodes] == _preorder_ids(node_map)
    for node in nodes:
        if not node.is_leaf:
            assert node.left_node_id == 2 * node.node_id + 1
            assert node.right_node_id == 2 * node.node_id + 2


def test_fully_grown_classification_tree_fits_training_data():
    rng = np.random.default_rng(4)
    X = rng.normal(size=(80, 3))
    y = (X[:, 0] * X[:, 1] > 0).astype(int)
    nodes = _build_classification(X, y, mtry=3)

    tree = DecisionTree(nodes, 3, "classification")
    assert np.array_equal(tree.predict(X), y)
    assert all(np.isin(leaf.label, [0.0, 1.0]).all() for leaf in tree.leaves)


def test_same_generator_seed_gives_same_tree():
    rng = np.random.default_rng(9)
    X = rng.normal(size=(50, 6))
    y = rng.integers(0, 3, size=50)

    first = _build_classification(X, y, n_classes=3, mtry=2, seed=11)
    second = _build_classification(X, y, n_classes=3, mtry=2, seed=11)

    assert [(n.node_id, n.attribute_index, n.attribute_value) for n in first] == \
           [(n.node_id, n.attribute_index, n.attribute_value) for n in second]


def test_deep_tree_does_not_hit_recursion_limit():
    # alternating labels: the best split always peels off a single row
    n = 1200
    X = np.arange(n, dtype=float).reshape(-1, 1)
    y = np.arange(n) % 2
    nodes = _build_classification(X, y)
    tree = DecisionTree(nodes, 1, "classification")

    assert tree.depth > sys.getrecursionlimit()
    assert len(tree.leaves) == len(nodes) // 2 + 1
    assert np.array_equal(tree.predict(X), y)


@pytest.mark.parametrize("value", [0.1, 0.3, 1.0 / 3.0, 2.2, -7.77])
@pytest.mark.parametrize("n", [2, 6, 15, 40])
def test_regression_constant_labels_give_single_leaf(value, n):
    X = np.arange(n, dtype=float).reshape(-1, 1)
    nodes = _build_regression(X, np.full(n, value), mtry=1, node_size=1)

    assert len(nodes) == 1
    assert nodes[0].is_leaf
    assert nodes[0].label == pytest.approx([value])


def test_regression_constant_subtree_stops_splitting():
    X = np.arange(12, dtype=float).reshape(-1, 1)
    y = np.array([0.1] * 6 + [0.7] * 6)
    nodes = _build_regression(X, y, node_size=1)

    # one split separates the two constant halves
    assert [node.node_id for node in nodes] == [0, 1, 2]
    assert nodes[0].attribute_value == 5.0


def test_base_builder_is_abstract():
    with pytest.raises(TypeError):
        _TreeBuilder(np.zeros(2), 1, 1, np.random.default_rng(0))
