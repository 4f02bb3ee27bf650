import numpy as np

from numpy.typing import ArrayLike
from typing import Iterable, Optional

from srf.const import SRF_TASK_CLASSIFICATION, SRF_TASK_TYPES
from srf.exceptions import InvariantViolation

from .node import NodeInfo, node_depth


class DecisionTree:
    """
    Binary decision tree stored as a flat list of nodes in pre-order.

    The structure is resolved through node ids only: evaluation starts at node 0 and follows
    ``left_node_id``/``right_node_id``, so list positions carry no meaning for prediction.

    Besides the nodes, a tree grown inside a forest keeps what it learned about its out-of-bag rows:
    their indices in the full dataset, its OOB error and its permutation feature importances.
    """

    def __init__(self,
                 nodes: Iterable[NodeInfo],
                 input_dimension: int,
                 task_type: str,
                 index: int = 0):
        if task_type not in SRF_TASK_TYPES:
            raise ValueError(f"Unsupported task_type: {task_type}")

        self.nodes = list(nodes)
        self._node_map = {node.node_id: node for node in self.nodes}
        if 0 not in self._node_map:
            raise InvariantViolation("[DecisionTree] a tree must contain the root node 0")
        if len(self._node_map) != len(self.nodes):
            raise InvariantViolation("[DecisionTree] node ids must be unique")

        self.input_dimension = input_dimension
        self.task_type = task_type
        self.index = index

        self.oob_indices: Optional[np.ndarray] = None
        self.oob_error: Optional[float] = None
        self.feature_importances: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, node_id: int) -> NodeInfo:
        return self._node_map[node_id]

    @property
    def leaves(self) -> list[NodeInfo]:
        return [node for node in self.nodes if node.is_leaf]

    @property
    def depth(self) -> int:
        return max(node_depth(node.node_id) for node in self.nodes)

    @property
    def label_size(self) -> int:
        return int(self.leaves[0].label.shape[0])

    def eval(self, inputs: ArrayLike) -> np.ndarray:
        """
        Routes every sample to its leaf and returns the leaf labels.

        :param ArrayLike inputs: The samples, with shape (n_samples, input_dimension)
        :return np.ndarray: The leaf labels, with shape (n_samples, label_size)
        """
        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.ndim == 1:
            inputs = inputs.reshape(1, -1)
        if inputs.shape[1] != self.input_dimension:
            raise ValueError(f"X has {inputs.shape[1]} features, but the tree was grown on {self.input_dimension}")

        out = np.empty((inputs.shape[0], self.label_size), dtype=np.float64)
        stack = [(0, np.arange(inputs.shape[0]))]
        while stack:
            node_id, rows = stack.pop()
            if rows.size == 0:
                continue

            node = self._node_map[node_id]
            if node.is_leaf:
                out[rows] = node.label
                continue

            go_left = inputs[rows, node.attribute_index] <= node.attribute_value
            stack.append((node.left_node_id, rows[go_left]))
            stack.append((node.right_node_id, rows[~go_left]))

        return out

    def predict(self, inputs: ArrayLike) -> np.ndarray:
        """Class indices for classification trees, label vectors for regression trees."""
        out = self.eval(inputs)
        if self.task_type == SRF_TASK_CLASSIFICATION:
            return np.argmax(out, axis=1)
        return out
