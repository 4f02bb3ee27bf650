from graphviz import Digraph

from srf.const import SRF_TASK_CLASSIFICATION

from .node import NodeInfo
from .tree import DecisionTree


def build_graph(tree: DecisionTree, filename: str, path: str, view: bool = False) -> Digraph:
    node_attr = [
        ('shape', 'box'),
        ('style', 'filled,rounded'),
        ('fontname', 'helvetica')
    ]

    graph = Digraph('DTree',
                    filename=filename,
                    directory=path,
                    format='png',
                    node_attr=node_attr)

    # the flat list is in pre-order, edges are recovered from the child ids
    for node in tree.nodes:
        graph.node(_node_id(node), label=_format_node_label(node, tree.task_type))
        if not node.is_leaf:
            graph.edge(_node_id(node), str(node.left_node_id), label='<=')
            graph.edge(_node_id(node), str(node.right_node_id), label='>')

    if view:
        graph.view()

    return graph


def _node_id(node: NodeInfo) -> str:
    return str(node.node_id)


def _format_node_label(node: NodeInfo, task_type: str) -> str:
    lines = [f"Node: {node.node_id}"]

    if not node.is_leaf:
        lines.append(f"Split: X[{node.attribute_index}] <= {node.attribute_value:.4f}")

    if node.label is not None:
        if task_type == SRF_TASK_CLASSIFICATION:
            predicted_class = int(node.label.argmax())
            lines.append(f"Histogram: {[round(float(p), 3) for p in node.label]}")
            lines.append(f"Predict: {predicted_class} ({node.label[predicted_class] * 100:.1f}%)")
        else:
            lines.append(f"Mean: {[round(float(v), 4) for v in node.label]}")

    return '\\n'.join(lines)
