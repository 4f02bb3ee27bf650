import numpy as np

from srf.exceptions import InvariantViolation


def gini(count_vector: np.ndarray, n: int) -> float:
    """
    Gini impurity 1 - sum_j p(j|t)^2 of a node holding ``n`` rows with the given class counts.

    An empty node has impurity 1.
    """
    res = 0.0
    if n:
        counts = np.asarray(count_vector, dtype=np.float64)
        res = float(np.sum(np.square(counts)) / (float(n) * float(n)))
    return 1.0 - res


def gini_sweep(counts: np.ndarray, n: np.ndarray) -> np.ndarray:
    """Row-wise ``gini`` for a stack of count vectors of shape (m, n_classes) and their sizes (m,)."""
    n = np.asarray(n, dtype=np.float64)
    return 1.0 - np.sum(np.square(counts.astype(np.float64)), axis=1) / (n * n)


def hist(count_vector: np.ndarray) -> np.ndarray:
    """Class probability histogram; unseen classes keep a zero entry."""
    counts = np.asarray(count_vector, dtype=np.float64)
    total = counts.sum()
    if total <= 0:
        raise InvariantViolation("[hist] histogram requested for an empty count vector")
    return counts / total


def average(labels: np.ndarray) -> np.ndarray:
    """Mean label vector of the rows in scope."""
    if labels.shape[0] < 1:
        raise InvariantViolation("[average] average requested over an empty label set")
    return labels.mean(axis=0)


def total_sum_of_squares(labels: np.ndarray, start: int, length: int, sum_label: np.ndarray) -> float:
    """Sum of squared distances of ``labels[start:start+length]`` to their mean ``sum_label / length``."""
    if length < 1:
        raise InvariantViolation("[total_sum_of_squares] length < 1")
    if start + length > labels.shape[0]:
        raise InvariantViolation("[total_sum_of_squares] start+length > labels.size()")

    label_avg = np.asarray(sum_label, dtype=np.float64) / length
    return float(np.sum(np.square(labels[start:start + length] - label_avg)))


def sum_of_squares_sweep(sorted_labels: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Sum of squared errors of every prefix and matching suffix of ``sorted_labels``.

    Entry ``i - 1`` of both outputs belongs to the boundary with ``i`` rows on the left, for ``i`` in [1, n).
    Labels are centred first so the prefix differences do not cancel catastrophically.
    """
    n = sorted_labels.shape[0]
    if n < 2:
        raise InvariantViolation("[sum_of_squares_sweep] at least two rows are required for a boundary")

    centred = sorted_labels - sorted_labels.mean(axis=0)
    sums = np.cumsum(centred, axis=0)
    squares = np.cumsum(np.sum(np.square(centred), axis=1))

    n_left = np.arange(1, n, dtype=np.float64)
    n_right = n - n_left

    left_sums, left_squares = sums[:-1], squares[:-1]
    right_sums, right_squares = sums[-1] - left_sums, squares[-1] - left_squares

    sse_left = left_squares - np.sum(np.square(left_sums), axis=1) / n_left
    sse_right = right_squares - np.sum(np.square(right_sums), axis=1) / n_right

    return np.maximum(sse_left, 0.0), np.maximum(sse_right, 0.0)
