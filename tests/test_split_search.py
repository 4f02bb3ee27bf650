from fractions import Fraction

import numpy as np
import pytest

from srf.models.random_forest.tree.attribute_table import create_attribute_tables, create_count_vector
from srf.models.random_forest.tree.split_search import (
    find_best_classification_split,
    find_best_regression_split,
    generate_random_table_indices,
)


def test_random_table_indices_are_distinct_and_sorted():
    rng = np.random.default_rng(0)
    for _ in range(20):
        indices = generate_random_table_indices(rng, 4, 10)
        assert len(indices) == 4
        assert indices == sorted(set(indices))
        assert all(0 <= i < 10 for i in indices)


def test_random_table_indices_are_clamped_to_dimension():
    rng = np.random.default_rng(0)
    assert generate_random_table_indices(rng, 5, 3) == [0, 1, 2]


def test_classification_split_on_separating_feature():
    X = np.array([[0.1, 5.0], [0.2, 1.0], [0.8, 3.0], [0.9, 2.0]])
    y = np.array([0, 0, 1, 1])
    tables = create_attribute_tables(X)

    split = find_best_classification_split(tables, y, create_count_vector(y, 2), [0, 1])

    assert split.attribute_index == 0
    assert split.val_index == 1
    assert split.attribute_value == 0.2
    assert split.impurity == 0.0
    assert split.counts_below.tolist() == [2, 0]
    assert split.counts_above.tolist() == [0, 2]


def test_classification_split_never_cuts_a_run_of_equal_values():
    X = np.array([[1.0], [1.0], [1.0], [2.0]])
    y = np.array([0, 1, 0, 1])
    tables = create_attribute_tables(X)

    split = find_best_classification_split(tables, y, create_count_vector(y, 2), [0])

    assert split.val_index == 2
    assert split.attribute_value == 1.0


def test_classification_split_constant_column_gives_none():
    X = np.ones((5, 1))
    y = np.array([0, 1, 0, 1, 1])
    tables = create_attribute_tables(X)

    assert find_best_classification_split(tables, y, create_count_vector(y, 2), [0]) is None


def test_classification_ties_keep_lowest_attribute_index():
    # both columns separate the classes perfectly
    X = np.array([[1.0, 10.0], [2.0, 20.0], [3.0, 30.0], [4.0, 40.0]])
    y = np.array([0, 0, 1, 1])
    tables = create_attribute_tables(X)

    split = find_best_classification_split(tables, y, create_count_vector(y, 2), [0, 1])

    assert split.attribute_index == 0


def test_classification_impurity_matches_formula():
    X = np.array([[1.0], [2.0], [3.0], [4.0], [5.0]])
    y = np.array([0, 1, 0, 1, 1])
    tables = create_attribute_tables(X)

    split = find_best_classification_split(tables, y, create_count_vector(y, 2), [0])

    # 1|4 -> 1.5, 2|3 -> 7/3, 3|2 -> 3 * (1 - 5/9) + 0 = 4/3, 4|1 -> 2
    assert split.val_index == 2
    assert split.impurity == pytest.approx(4.0 / 3.0)


def test_regression_split_between_groups():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([[1.0], [1.0], [9.0], [9.0]])
    tables = create_attribute_tables(X)

    split = find_best_regression_split(tables, y, [0])

    assert split.val_index == 1
    assert split.attribute_value == 2.0
    assert split.impurity == 0.0


def test_regression_split_must_beat_node_impurity():
    X = np.array([[1.0], [2.0], [3.0], [4.0]])
    y = np.array([[1.0], [1.0], [9.0], [9.0]])
    tables = create_attribute_tables(X)

    assert find_best_regression_split(tables, y, [0], node_impurity=64.0) is not None
    assert find_best_regression_split(tables, y, [0], node_impurity=0.0) is None


@pytest.mark.parametrize("value", [4.0, 0.1, 1.0 / 3.0, 7.77])
def test_regression_split_constant_labels_gives_none(value):
    X = np.arange(15, dtype=float).reshape(-1, 1)
    y = np.full((15, 2), value)
    tables = create_attribute_tables(X)

    assert find_best_regression_split(tables, y, [0]) is None


def test_regression_split_multi_output_picks_best_attribute():
    rng = np.random.default_rng(5)
    noise = rng.normal(size=(30, 1))
    signal = np.repeat([0.0, 10.0], 15)
    X = np.column_stack([noise[:, 0], signal + rng.uniform(0, 1, 30)])
    y = np.column_stack([signal, -signal])
    tables = create_attribute_tables(X)

    split = find_best_regression_split(tables, y, [0, 1])

    assert split.attribute_index == 1
    assert split.val_index == 14


def test_classification_tied_boundaries_keep_the_first():
    X = np.arange(4, dtype=float).reshape(-1, 1)
    y = np.array([0, 1, 0, 1])
    tables = create_attribute_tables(X)

    split = find_best_classification_split(tables, y, create_count_vector(y, 2), [0])

    # 1|3 and 3|1 both give 4/3
    assert split.val_index == 0
    assert split.impurity == pytest.approx(4.0 / 3.0)


def test_regression_tied_boundaries_keep_the_first():
    X = np.arange(6, dtype=float).reshape(-1, 1)
    y = 0.1 * np.array([[1.0], [1.0], [0.0], [1.0], [2.0], [1.0]])
    tables = create_attribute_tables(X)

    split = find_best_regression_split(tables, y, [0])

    # 3|3 and 4|2 both give 0.04 / 6
    assert split.val_index == 2
    assert split.attribute_value == 2.0


def _reference_classification_split(X, y, n_classes):
    """Brute force in rational arithmetic: first strict minimum over attributes, then boundaries."""
    n = len(y)
    best, best_impurity = None, Fraction(n + 1)
    for attribute in range(X.shape[1]):
        order = np.argsort(X[:, attribute], kind="stable")
        values, labels = X[order, attribute], y[order]
        for i in range(1, n):
            if values[i - 1] == values[i]:
                continue
            below = np.bincount(labels[:i], minlength=n_classes)
            above = np.bincount(labels[i:], minlength=n_classes)
            impurity = (n - Fraction(int(below @ below), i) - Fraction(int(above @ above), n - i))
            if impurity < best_impurity:
                best, best_impurity = (attribute, i - 1), impurity
    return best


def _reference_regression_split(X, y):
    n = len(y)
    exact = [[Fraction(float(v)) for v in row] for row in y]

    def sse(rows):
        total = 0
        for dim in range(y.shape[1]):
            column = [exact[r][dim] for r in rows]
            mean = sum(column) / len(column)
            total += sum((v - mean) ** 2 for v in column)
        return total

    best, best_impurity = None, None
    for attribute in range(X.shape[1]):
        order = np.argsort(X[:, attribute], kind="stable")
        values = X[order, attribute]
        for i in range(1, n):
            if values[i - 1] == values[i]:
                continue
            impurity = (i * sse(order[:i]) + (n - i) * sse(order[i:])) / n
            if best_impurity is None or impurity < best_impurity:
                best, best_impurity = (attribute, i - 1), impurity
    return best


@pytest.mark.parametrize("seed", range(60))
def test_classification_split_matches_exact_search(seed):
    rng = np.random.default_rng(seed)
    n = int(rng.integers(4, 30))
    X = rng.integers(0, 5, size=(n, 2)).astype(float)
    y = rng.integers(0, 3, size=n)
    tables = create_attribute_tables(X)

    split = find_best_classification_split(tables, y, create_count_vector(y, 3), [0, 1])
    expected = _reference_classification_split(X, y, 3)

    if expected is None:
        assert split is None
    else:
        assert (split.attribute_index, split.val_index) == expected


@pytest.mark.parametrize("seed", range(60))
def test_regression_split_matches_exact_search(seed):
    rng = np.random.default_rng(seed)
    n = int(rng.integers(3, 12))
    X = rng.integers(0, 4, size=(n, 2)).astype(float)
    y = 0.1 * rng.integers(0, 3, size=(n, 1))
    tables = create_attribute_tables(X)

    split = find_best_regression_split(tables, y, [0, 1])

    if np.all(y == y[0]):
        assert split is None
        return
    expected = _reference_regression_split(X, y)
    if expected is None:
        assert split is None
    else:
        assert (split.attribute_index, split.val_index) == expected
