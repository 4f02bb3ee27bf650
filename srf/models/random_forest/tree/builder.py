import numpy as np

from abc import ABC, abstractmethod
from typing import Any

from .attribute_table import AttributeTables, split_attribute_tables
from .impurity import average, gini, hist, total_sum_of_squares
from .node import NodeInfo, left_child_id, right_child_id
from .split_search import (
    find_best_classification_split,
    find_best_regression_split,
    generate_random_table_indices,
)

# (node id, attribute tables, label summary)
_PendingNode = tuple[int, AttributeTables, Any]


class _TreeBuilder(ABC):
    """
    Grows one unpruned tree top-down from presorted attribute tables.

    Nodes are expanded from an explicit work stack; the right child is pushed before the left one,
    so the returned list is in pre-order: a node, then its whole left subtree, then its whole right subtree.
    """

    def __init__(self, labels: np.ndarray, mtry: int, node_size: int, rng: np.random.Generator):
        self.labels = labels
        self.mtry = mtry
        self.node_size = node_size
        self.rng = rng

    def build(self, tables: AttributeTables, summary: Any = None, node_id: int = 0) -> list[NodeInfo]:
        """
        Builds the tree rooted at ``node_id``.

        The tables are consumed: each node releases its tables once its children's tables exist.
        """
        tree: list[NodeInfo] = []
        stack: list[_PendingNode] = [(node_id, tables, summary)]

        while stack:
            current_id, current_tables, current_summary = stack.pop()
            node, children = self._grow_node(current_id, current_tables, current_summary)
            tree.append(node)
            stack.extend(reversed(children))

        return tree

    @abstractmethod
    def _grow_node(self, node_id: int, tables: AttributeTables, summary: Any) -> tuple[NodeInfo, list[_PendingNode]]:
        """Creates the node and returns it with the pending children to grow, empty for a leaf."""

    def _candidate_attributes(self, tables: AttributeTables) -> list[int]:
        return generate_random_table_indices(self.rng, self.mtry, len(tables))

    @staticmethod
    def _commit_split(node: NodeInfo, attribute_index: int, attribute_value: float) -> None:
        node.attribute_index = attribute_index
        node.attribute_value = attribute_value
        node.left_node_id = left_child_id(node.node_id)
        node.right_node_id = right_child_id(node.node_id)


class ClassificationTreeBuilder(_TreeBuilder):
    """
    Tree builder using the Gini criterion; the label summary of a node is its class count vector.

    A node becomes a leaf when it is pure, holds at most ``node_size`` rows, or no candidate
    attribute has a valid boundary. Leaves store the class histogram of their rows.
    """

    def __init__(self, labels: np.ndarray, n_classes: int, mtry: int, node_size: int, rng: np.random.Generator):
        super().__init__(labels, mtry, node_size, rng)
        self.n_classes = n_classes

    def _grow_node(self, node_id, tables, c_above):
        node = NodeInfo(node_id=node_id)
        n = tables[0].shape[0]

        if gini(c_above, n) == 0 or n <= self.node_size:
            return self._make_leaf(node, c_above), []

        split = find_best_classification_split(tables, self.labels, c_above, self._candidate_attributes(tables))
        if split is None:
            return self._make_leaf(node, c_above), []

        left_tables, right_tables = split_attribute_tables(tables, split.attribute_index, split.val_index)
        tables.clear()

        self._commit_split(node, split.attribute_index, split.attribute_value)
        return node, [
            (node.left_node_id, left_tables, split.counts_below),
            (node.right_node_id, right_tables, split.counts_above),
        ]

    @staticmethod
    def _make_leaf(node: NodeInfo, counts: np.ndarray) -> NodeInfo:
        node.is_leaf = True
        node.label = hist(counts)
        return node


class RegressionTreeBuilder(_TreeBuilder):
    """
    Tree builder using the sum of squared errors criterion.

    Every node stores the mean label vector of its rows, which is the prediction if it ends up a leaf.
    A node becomes a leaf when it holds at most ``node_size`` rows or when its label vectors are all equal.
    It is also a leaf when no boundary of the candidate attributes lowers its sum of squared errors.
    """

    def _grow_node(self, node_id, tables, summary):
        n = tables[0].shape[0]
        node_labels = self.labels[tables[0]["row_id"]]
        node = NodeInfo(node_id=node_id, label=average(node_labels))

        # exact comparison, a rounded sum of squares of equal labels need not be zero
        if n <= self.node_size or np.all(node_labels == node_labels[0]):
            node.is_leaf = True
            return node, []

        node_sse = total_sum_of_squares(node_labels, 0, n, node_labels.sum(axis=0))
        split = find_best_regression_split(tables, self.labels, self._candidate_attributes(tables), node_sse)
        if split is None:
            node.is_leaf = True
            return node, []

        left_tables, right_tables = split_attribute_tables(tables, split.attribute_index, split.val_index)
        tables.clear()

        self._commit_split(node, split.attribute_index, split.attribute_value)
        return node, [
            (node.left_node_id, left_tables, None),
            (node.right_node_id, right_tables, None),
        ]
