import numpy as np

from dataclasses import dataclass
from typing import Optional


def left_child_id(node_id: int) -> int:
    return 2 * node_id + 1


def right_child_id(node_id: int) -> int:
    return 2 * node_id + 2


def node_depth(node_id: int) -> int:
    """Depth of a node in the heap numbering, the root being at depth 0."""
    return (node_id + 1).bit_length() - 1


@dataclass
class NodeInfo:
    """
    One entry of a flat tree.

    Internal nodes send a sample left when ``x[attribute_index] <= attribute_value``.
    Leaves keep ``left_node_id == right_node_id == 0`` and carry the prediction in ``label``:
    a class histogram for classification, the mean label vector for regression.
    """
    node_id: int
    attribute_index: int = 0
    attribute_value: float = 0.0
    left_node_id: int = 0
    right_node_id: int = 0
    label: Optional[np.ndarray] = None
    is_leaf: bool = False
