import numpy as np
import pandas as pd

from abc import ABC, abstractmethod
from numpy.typing import ArrayLike
from typing import Optional, Sequence

from srf.const import SRF_TASK_CLASSIFICATION, SRF_TASK_REGRESSION


class _Dataset(ABC):
    """
    Row-addressable numeric dataset shared read-only by the forest trainer.

    Inputs are stored as a contiguous float64 matrix of shape (n_elements, input_dimension).
    """
    task_type: str = ""

    def __init__(self, inputs: ArrayLike, labels: ArrayLike):
        inputs = np.asarray(inputs)
        if inputs.ndim != 2:
            raise ValueError(f"Inputs must be a 2D array (n_samples, n_features). Got shape {inputs.shape}")
        if not np.issubdtype(inputs.dtype, np.number) and inputs.dtype != np.bool_:
            raise TypeError(f"Inputs must be numeric. Got dtype {inputs.dtype}")

        inputs = np.ascontiguousarray(inputs, dtype=np.float64)
        if not np.all(np.isfinite(inputs)):
            raise ValueError("Inputs must not contain missing or infinite values")

        labels = np.asarray(labels)
        if labels.shape[0] != inputs.shape[0]:
            raise ValueError(
                f"Number of samples in inputs and labels must be the same, got {inputs.shape[0]} and {labels.shape[0]}")

        self.inputs = inputs
        self.labels = labels

    @property
    def number_of_elements(self) -> int:
        return int(self.inputs.shape[0])

    @property
    def input_dimension(self) -> int:
        return int(self.inputs.shape[1])

    def __len__(self) -> int:
        return self.number_of_elements

    def element(self, index: int) -> tuple[np.ndarray, np.ndarray]:
        return self.inputs[index], self.labels[index]

    @abstractmethod
    def subset(self, indices: ArrayLike) -> "_Dataset":
        """New dataset of the same kind holding the given rows."""


class ClassificationDataset(_Dataset):
    """Dataset with integer class labels in [0, number_of_classes)."""
    task_type = SRF_TASK_CLASSIFICATION

    def __init__(self, inputs: ArrayLike, labels: ArrayLike, n_classes: Optional[int] = None):
        labels = np.asarray(labels)
        if labels.ndim == 2 and labels.shape[1] == 1:
            labels = labels[:, 0]
        if labels.ndim != 1:
            raise ValueError(f"Class labels must be of shape (n,) or (n,1). Got {labels.shape}")
        if not np.issubdtype(labels.dtype, np.number) and labels.dtype != np.bool_:
            raise ValueError(f"Class labels must be integers, got dtype {labels.dtype}; encode them first")
        if labels.size and not np.all(np.equal(np.mod(labels, 1), 0)):
            raise ValueError("Class labels must be integers")

        labels = labels.astype(np.intp)
        if labels.size and labels.min() < 0:
            raise ValueError("Class labels must be non-negative")

        super().__init__(inputs, labels)

        inferred = int(labels.max()) + 1 if labels.size else 0
        self._n_classes = inferred if n_classes is None else int(n_classes)
        if self._n_classes < inferred:
            raise ValueError(f"n_classes={self._n_classes} is smaller than the largest label + 1 ({inferred})")

        # original label of each class index, when the labels were encoded from another type
        self.classes: Optional[np.ndarray] = None

    @property
    def number_of_classes(self) -> int:
        return self._n_classes

    def subset(self, indices: ArrayLike) -> "ClassificationDataset":
        indices = np.asarray(indices, dtype=np.intp)
        subset = ClassificationDataset(self.inputs[indices], self.labels[indices], n_classes=self._n_classes)
        subset.classes = self.classes
        return subset


class RegressionDataset(_Dataset):
    """Dataset with real-valued label vectors, stored with shape (n_elements, label_dimension)."""
    task_type = SRF_TASK_REGRESSION

    def __init__(self, inputs: ArrayLike, labels: ArrayLike):
        labels = np.asarray(labels, dtype=np.float64)
        if labels.ndim == 1:
            labels = labels.reshape(-1, 1)
        if labels.ndim != 2:
            raise ValueError(f"Regression labels must be of shape (n,) or (n, d). Got {labels.shape}")
        if not np.all(np.isfinite(labels)):
            raise ValueError("Regression labels must not contain missing or infinite values")

        super().__init__(inputs, np.ascontiguousarray(labels))

    @property
    def label_dimension(self) -> int:
        return int(self.labels.shape[1])

    def subset(self, indices: ArrayLike) -> "RegressionDataset":
        indices = np.asarray(indices, dtype=np.intp)
        return RegressionDataset(self.inputs[indices], self.labels[indices])


def from_dataframe(df: pd.DataFrame,
                   label_columns: str | Sequence[str],
                   task_type: str,
                   feature_columns: Optional[Sequence[str]] = None) -> ClassificationDataset | RegressionDataset:
    """
    Builds a dataset from a pandas DataFrame.

    :param pd.DataFrame df: The source frame; every feature column must be numeric.
    :param str | Sequence[str] label_columns: The label column(s); classification accepts exactly one.
    :param str task_type: 'classification' or 'regression'.
    :param Optional[Sequence[str]] feature_columns: The feature columns, defaults to every non-label column.
    :return ClassificationDataset | RegressionDataset: The dataset matching the task type.
    """
    if isinstance(label_columns, str):
        label_columns = [label_columns]
    label_columns = list(label_columns)

    missing = [col for col in label_columns if col not in df.columns]
    if missing:
        raise ValueError(f"Label columns not found in the DataFrame: {missing}")

    if feature_columns is None:
        feature_columns = [col for col in df.columns if col not in label_columns]
    feature_columns = list(feature_columns)

    non_numeric = [col for col in feature_columns if not pd.api.types.is_numeric_dtype(df[col])]
    if non_numeric:
        raise ValueError(f"Feature columns must be numeric, got non-numeric columns: {non_numeric}")
    if df[feature_columns].isna().any().any():
        raise ValueError("Feature columns must not contain missing values")

    inputs = df[feature_columns].to_numpy(dtype=np.float64)

    if task_type == SRF_TASK_CLASSIFICATION:
        if len(label_columns) != 1:
            raise ValueError("Classification datasets take exactly one label column")
        labels = df[label_columns[0]]
        if labels.isna().any():
            raise ValueError("Class labels must not contain missing values")
        if pd.api.types.is_numeric_dtype(labels) or pd.api.types.is_bool_dtype(labels):
            return ClassificationDataset(inputs, labels.to_numpy())

        # categorical labels are mapped to 0..K-1 in sorted order
        classes, encoded = np.unique(labels.astype(str).to_numpy(), return_inverse=True)
        dataset = ClassificationDataset(inputs, encoded, n_classes=len(classes))
        dataset.classes = classes
        return dataset
    elif task_type == SRF_TASK_REGRESSION:
        return RegressionDataset(inputs, df[label_columns].to_numpy(dtype=np.float64))
    else:
        raise ValueError(f"Unsupported task_type: {task_type}. Supported types are 'classification' and 'regression'.")
