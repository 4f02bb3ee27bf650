import numpy as np

from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, Optional

from .attribute_table import AttributeTables
from .impurity import gini_sweep, sum_of_squares_sweep


@dataclass
class SplitCandidate:
    attribute_index: int
    # last position of the winning table that goes to the left child
    val_index: int
    attribute_value: float
    impurity: float


@dataclass
class ClassificationSplit(SplitCandidate):
    counts_below: np.ndarray
    counts_above: np.ndarray


def generate_random_table_indices(rng: np.random.Generator, mtry: int, input_dimension: int) -> list[int]:
    """
    Draws ``mtry`` distinct attribute indices uniformly from [0, input_dimension).

    Indices are drawn one at a time into a set until it is large enough and returned in ascending order.
    """
    target = min(int(mtry), int(input_dimension))
    indices: set[int] = set()
    while len(indices) < target:
        indices.add(int(rng.integers(input_dimension)))
    return sorted(indices)


# impurities closer than this (relative to the node scale) are treated as ties
_TIE_RTOL = 1e-9


def _boundaries(values: np.ndarray) -> np.ndarray:
    # a split is only allowed between two different values
    return np.flatnonzero(values[:-1] != values[1:])


def _near_minimum(impurity: np.ndarray, tol: float) -> np.ndarray:
    """Positions whose impurity is within ``tol`` of the minimum, in ascending order."""
    return np.flatnonzero(impurity <= impurity.min() + tol)


def _exact_gini_impurity(n: int, n_left: int, counts_below: np.ndarray, counts_above: np.ndarray) -> Fraction:
    # n1 * gini(c_below, n1) + n2 * gini(c_above, n2) = n - sum(c_below^2) / n1 - sum(c_above^2) / n2
    return (n
            - Fraction(int(np.dot(counts_below, counts_below)), n_left)
            - Fraction(int(np.dot(counts_above, counts_above)), n - n_left))


def find_best_classification_split(tables: AttributeTables,
                                   labels: np.ndarray,
                                   c_above: np.ndarray,
                                   attribute_indices: Iterable[int]) -> Optional[ClassificationSplit]:
    """
    Finds the split with the lowest weighted Gini impurity over the candidate attributes.

    For every boundary i of a sorted table, with n1 = i rows below and n2 = n - i rows above,
    the impurity is ``n1 * gini(c_below, n1) + n2 * gini(c_above, n2)``. The search starts from the
    sentinel ``n + 1`` and only accepts strictly smaller impurities, so ties keep the lowest attribute
    index and then the lowest boundary.

    The sweep is vectorized in floating point; the boundaries it finds closest to the minimum are then
    compared in exact rational arithmetic, so rounding never breaks a tie in favour of a later boundary.

    :param AttributeTables tables: The attribute tables of the node
    :param np.ndarray labels: Class labels indexed by row id
    :param np.ndarray c_above: Class counts of every row of the node
    :param Iterable[int] attribute_indices: The candidate attributes, in ascending order
    :return Optional[ClassificationSplit]: The best split, or None when no boundary improves on the sentinel
    """
    n = tables[0].shape[0]
    n_classes = c_above.shape[0]
    n_left = np.arange(1, n, dtype=np.float64)
    n_right = n - n_left

    best: Optional[ClassificationSplit] = None
    best_impurity = Fraction(n + 1)

    for attribute_index in attribute_indices:
        table = tables[attribute_index]
        values = table["value"]
        boundaries = _boundaries(values)
        if boundaries.size == 0:
            continue

        one_hot = np.zeros((n, n_classes), dtype=np.int64)
        one_hot[np.arange(n), labels[table["row_id"]]] = 1
        c_below = np.cumsum(one_hot, axis=0)[:-1]
        c_tmp_above = c_above - c_below

        impurity = n_left * gini_sweep(c_below, n_left) + n_right * gini_sweep(c_tmp_above, n_right)

        for prev in boundaries[_near_minimum(impurity[boundaries], _TIE_RTOL * n)]:
            prev = int(prev)
            exact = _exact_gini_impurity(n, prev + 1, c_below[prev], c_tmp_above[prev])
            if exact < best_impurity:
                best_impurity = exact
                best = ClassificationSplit(attribute_index=int(attribute_index),
                                           val_index=prev,
                                           attribute_value=float(values[prev]),
                                           impurity=float(exact),
                                           counts_below=c_below[prev].copy(),
                                           counts_above=c_tmp_above[prev].copy())

    return best


def find_best_regression_split(tables: AttributeTables,
                               labels: np.ndarray,
                               attribute_indices: Iterable[int],
                               node_impurity: Optional[float] = None) -> Optional[SplitCandidate]:
    """
    Finds the split with the lowest normalized sum of squared errors over the candidate attributes.

    The impurity of a boundary is ``(n1 * SSE(left) + n2 * SSE(right)) / n``; a split replaces the
    current best only when it is strictly smaller. When ``node_impurity`` (the sum of squared errors of the
    unsplit node) is given, a split must also be strictly smaller than it. A node whose label vectors are
    all equal is never split.

    Impurities within a relative ``1e-9`` of the node's sum of squared errors count as equal, so that
    boundaries tied up to rounding keep the first one.

    :param AttributeTables tables: The attribute tables of the node
    :param np.ndarray labels: Label vectors indexed by row id, with shape (n_rows, label_dimension)
    :param Iterable[int] attribute_indices: The candidate attributes, in ascending order
    :param Optional[float] node_impurity: The impurity a split has to beat, defaults to no bound
    :return Optional[SplitCandidate]: The best split, or None when no boundary beats the bound
    """
    n = tables[0].shape[0]
    node_labels = labels[tables[0]["row_id"]]
    if np.all(node_labels == node_labels[0]):
        return None

    tol = _TIE_RTOL * float(np.sum(np.square(node_labels - node_labels.mean(axis=0))))
    n_left = np.arange(1, n, dtype=np.float64)
    n_right = n - n_left

    best: Optional[SplitCandidate] = None
    best_impurity = float("inf") if node_impurity is None else float(node_impurity)

    for attribute_index in attribute_indices:
        table = tables[attribute_index]
        values = table["value"]
        boundaries = _boundaries(values)
        if boundaries.size == 0:
            continue

        sse_left, sse_right = sum_of_squares_sweep(labels[table["row_id"]])
        impurity = (n_left * sse_left + n_right * sse_right) / n

        prev = int(boundaries[_near_minimum(impurity[boundaries], tol)[0]])
        if impurity[prev] < best_impurity - tol:
            best_impurity = float(impurity[prev])
            best = SplitCandidate(attribute_index=int(attribute_index),
                                  val_index=prev,
                                  attribute_value=float(values[prev]),
                                  impurity=best_impurity)

    return best
