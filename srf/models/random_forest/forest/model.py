import threading

import numpy as np

from numpy.typing import ArrayLike
from typing import Optional

from srf.const import SRF_TASK_CLASSIFICATION, SRF_TASK_TYPES
from srf.data.dataset import ClassificationDataset, RegressionDataset
from srf.models.random_forest.forest.importance import (
    compute_ensemble_feature_importances,
    compute_ensemble_oob_error,
    compute_mean_tree_oob_error,
)
from srf.models.random_forest.tree.tree import DecisionTree
from srf.utils import get_logger


class RFModel:
    """
    Ensemble of decision trees.

    Trees may be added concurrently; ``add_model`` is the only mutating operation guarded by a lock.
    The aggregate OOB error and feature importances are computed once every tree has been added.
    Evaluation averages the tree outputs: class histograms for classification, label vectors for regression.
    """

    def __init__(self, task_type: str = SRF_TASK_CLASSIFICATION):
        if task_type not in SRF_TASK_TYPES:
            raise ValueError(f"Unsupported task_type: {task_type}. Supported types are {SRF_TASK_TYPES}.")

        self.logger = get_logger(self.__class__.__name__)
        self.task_type = task_type

        self._lock = threading.Lock()
        self._models: list[DecisionTree] = []

        self.input_dimension = 0
        # number of classes for classification, label dimension for regression
        self.label_dimension = 0

        self.oob_error: Optional[float] = None
        self.mean_tree_oob_error: Optional[float] = None
        self.n_oob_scored: int = 0
        self.feature_importances: Optional[np.ndarray] = None

    def __getstate__(self):
        state = self.__dict__.copy()
        del state["_lock"]
        del state["logger"]
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._lock = threading.Lock()
        self.logger = get_logger(self.__class__.__name__)

    def __len__(self) -> int:
        return len(self._models)

    @property
    def number_of_models(self) -> int:
        return len(self._models)

    @property
    def models(self) -> list[DecisionTree]:
        """The trees ordered by the index they were grown with."""
        with self._lock:
            return sorted(self._models, key=lambda t: t.index)

    def set_input_dimension(self, input_dimension: int) -> None:
        self.input_dimension = int(input_dimension)

    def set_label_dimension(self, label_dimension: int) -> None:
        self.label_dimension = int(label_dimension)

    def clear_models(self) -> None:
        with self._lock:
            self._models = []
        self.oob_error = None
        self.mean_tree_oob_error = None
        self.n_oob_scored = 0
        self.feature_importances = None

    def add_model(self, tree: DecisionTree) -> None:
        if tree.task_type != self.task_type:
            raise ValueError(f"Cannot add a {tree.task_type} tree to a {self.task_type} ensemble")
        with self._lock:
            self._models.append(tree)

    def eval(self, inputs: ArrayLike) -> np.ndarray:
        """
        Averaged output of every tree.

        :param ArrayLike inputs: The samples, with shape (n_samples, input_dimension)
        :return np.ndarray: Shape (n_samples, label_dimension)
        """
        models = self.models
        if not models:
            raise ValueError("The ensemble holds no trees")

        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.ndim == 1:
            inputs = inputs.reshape(1, -1)

        out = np.zeros((inputs.shape[0], self.label_dimension or models[0].label_size), dtype=np.float64)
        for tree in models:
            out += tree.eval(inputs)
        return out / len(models)

    def predict(self, inputs: ArrayLike) -> np.ndarray:
        out = self.eval(inputs)
        if self.task_type == SRF_TASK_CLASSIFICATION:
            return np.argmax(out, axis=1)
        return out

    def compute_oob_error(self, dataset: ClassificationDataset | RegressionDataset) -> float:
        """
        Computes the ensemble OOB error on the dataset the trees were grown from.

        Also records the mean of the per-tree OOB errors.
        """
        models = self.models
        self.oob_error, self.n_oob_scored = compute_ensemble_oob_error(models, dataset)
        self.mean_tree_oob_error = compute_mean_tree_oob_error(models)

        if self.n_oob_scored < dataset.number_of_elements:
            self.logger.warning(
                f"{dataset.number_of_elements - self.n_oob_scored} rows were never held out; "
                f"the OOB error covers {self.n_oob_scored} rows")
        return self.oob_error

    def compute_feature_importances(self) -> Optional[np.ndarray]:
        self.feature_importances = compute_ensemble_feature_importances(self.models)
        if self.feature_importances is None:
            self.logger.warning("No tree computed feature importances, the ensemble has none")
        return self.feature_importances
