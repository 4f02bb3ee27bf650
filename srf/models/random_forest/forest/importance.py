import numpy as np

from typing import Iterable, Optional

import srf.models.eval.metrics as em
from srf.const import SRF_TASK_CLASSIFICATION
from srf.data.dataset import ClassificationDataset, RegressionDataset
from srf.models.random_forest.tree.tree import DecisionTree


def _error(task_type: str, labels: np.ndarray, predictions: np.ndarray) -> float:
    # predictions are histograms for classification, label vectors for regression
    if task_type == SRF_TASK_CLASSIFICATION:
        return em.zero_one_loss(labels, np.argmax(predictions, axis=1))
    return em.mean_squared_error(labels, predictions)


def compute_tree_oob_error(tree: DecisionTree, inputs: np.ndarray, labels: np.ndarray) -> float:
    """
    Stores and returns the error of a single tree on its out-of-bag rows.

    Zero-one loss for classification, mean squared error for regression; ``nan`` when there are no OOB rows.
    """
    if inputs.shape[0] == 0:
        tree.oob_error = float("nan")
    else:
        tree.oob_error = _error(tree.task_type, labels, tree.eval(inputs))
    return tree.oob_error


def compute_tree_feature_importances(tree: DecisionTree,
                                     inputs: np.ndarray,
                                     labels: np.ndarray,
                                     rng: np.random.Generator) -> Optional[np.ndarray]:
    """
    Permutation feature importances of a single tree on its out-of-bag rows.

    The OOB error is computed first as the baseline. Then, one feature at a time, the column of that
    feature is shuffled across the OOB rows and the increase in error over the baseline is that
    feature's importance. The tree is left unchanged; nothing is computed without OOB rows.
    """
    baseline = compute_tree_oob_error(tree, inputs, labels)
    if inputs.shape[0] == 0:
        tree.feature_importances = None
        return None

    importances = np.zeros(tree.input_dimension, dtype=np.float64)
    for feature in range(tree.input_dimension):
        permuted = inputs.copy()
        permuted[:, feature] = rng.permutation(inputs[:, feature])
        importances[feature] = _error(tree.task_type, labels, tree.eval(permuted)) - baseline

    tree.feature_importances = importances
    return importances


def compute_ensemble_oob_error(trees: Iterable[DecisionTree],
                               dataset: ClassificationDataset | RegressionDataset) -> tuple[float, int]:
    """
    OOB error of the whole ensemble.

    Every row is predicted only by the trees that held it out: class histograms are summed and the
    argmax wins, regression predictions are averaged. Trees are visited by index so the result does not
    depend on the order they were added in.

    :return tuple[float, int]: The error and the number of rows held out by at least one tree
    """
    n = dataset.number_of_elements
    sums: Optional[np.ndarray] = None
    counts = np.zeros(n, dtype=np.int64)
    task_type = dataset.task_type

    for tree in sorted(trees, key=lambda t: t.index):
        if tree.oob_indices is None or tree.oob_indices.size == 0:
            continue

        predictions = tree.eval(dataset.inputs[tree.oob_indices])
        if sums is None:
            sums = np.zeros((n, predictions.shape[1]), dtype=np.float64)
        sums[tree.oob_indices] += predictions
        counts[tree.oob_indices] += 1

    scored = counts > 0
    n_scored = int(np.count_nonzero(scored))
    if sums is None or n_scored == 0:
        return float("nan"), 0

    aggregated = sums[scored] / counts[scored][:, None]
    return _error(task_type, dataset.labels[scored], aggregated), n_scored


def compute_mean_tree_oob_error(trees: Iterable[DecisionTree]) -> float:
    errors = [t.oob_error for t in sorted(trees, key=lambda t: t.index)
              if t.oob_error is not None and not np.isnan(t.oob_error)]
    return float(np.mean(errors)) if errors else float("nan")


def compute_ensemble_feature_importances(trees: Iterable[DecisionTree]) -> Optional[np.ndarray]:
    """Mean of the per-tree importance vectors over the trees that computed one."""
    per_tree = [t.feature_importances for t in sorted(trees, key=lambda t: t.index)
                if t.feature_importances is not None]
    if not per_tree:
        return None
    return np.mean(np.vstack(per_tree), axis=0)
