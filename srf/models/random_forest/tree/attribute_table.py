import numpy as np

from numpy.typing import ArrayLike

from srf.const import SRF_ATTRIBUTE_DTYPE
from srf.exceptions import InvariantViolation

AttributeTables = list[np.ndarray]


def create_attribute_tables(inputs: ArrayLike) -> AttributeTables:
    """
    Builds one attribute table per input column.

    A table is a structured array of (value, row_id) records sorted ascending by value;
    equal values keep their original row order. A dataset with m features results in m tables.

    :param ArrayLike inputs: The samples, with shape (n_samples, n_features)
    :return AttributeTables: The sorted attribute tables, index j holding feature j
    """
    inputs = np.asarray(inputs, dtype=np.float64)
    if inputs.ndim != 2:
        raise ValueError(f"Inputs must be a 2D array (n_samples, n_features). Got shape {inputs.shape}")

    n_rows, n_features = inputs.shape
    row_ids = np.arange(n_rows, dtype=np.intp)

    tables: AttributeTables = []
    for col in range(n_features):
        table = np.empty(n_rows, dtype=SRF_ATTRIBUTE_DTYPE)
        table["value"] = inputs[:, col]
        table["row_id"] = row_ids
        order = np.argsort(table["value"], kind="stable")
        tables.append(table[order])

    return tables


def create_count_vector(labels: ArrayLike, n_classes: int) -> np.ndarray:
    """Class counts of the given labels, with a fixed length of ``n_classes``."""
    labels = np.asarray(labels, dtype=np.intp)
    return np.bincount(labels, minlength=n_classes).astype(np.int64)


def split_attribute_tables(tables: AttributeTables,
                           index: int,
                           val_index: int) -> tuple[AttributeTables, AttributeTables]:
    """
    Partitions every attribute table into a left and right part.

    Rows at positions [0, val_index] of table ``index`` go left, the others go right.
    Each part is a sub-sequence of a sorted table, so it stays sorted without re-sorting.

    :param AttributeTables tables: The tables of the node being split
    :param int index: The index of the table holding the winning attribute
    :param int val_index: The last position of the winning table that belongs to the left part
    :return tuple[AttributeTables, AttributeTables]: The left and right tables
    """
    if not 0 <= index < len(tables):
        raise InvariantViolation(f"[split_attribute_tables] attribute index {index} out of range")

    winning = tables[index]
    if not 0 <= val_index < winning.shape[0]:
        raise InvariantViolation(f"[split_attribute_tables] value index {val_index} out of range")

    # lookup table: row id -> goes left
    goes_left = np.zeros(int(winning["row_id"].max()) + 1, dtype=bool)
    goes_left[winning["row_id"][:val_index + 1]] = True

    left_tables: AttributeTables = []
    right_tables: AttributeTables = []
    for table in tables:
        mask = goes_left[table["row_id"]]
        left_tables.append(table[mask])
        right_tables.append(table[~mask])

    return left_tables, right_tables
