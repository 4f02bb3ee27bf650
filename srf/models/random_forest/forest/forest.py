import numpy as np

from abc import ABCMeta, abstractmethod
from numpy.typing import ArrayLike
from typing import Optional
from sklearn.base import BaseEstimator, ClassifierMixin, RegressorMixin
from sklearn.exceptions import NotFittedError

from srf.const import SRF_TASK_CLASSIFICATION, SRF_TASK_REGRESSION
from srf.data.dataset import ClassificationDataset, RegressionDataset
from srf.decorators import time_func
from srf.models.random_forest.forest.model import RFModel
from srf.models.random_forest.forest.trainer import RFTrainer
from srf.utils import get_logger


class _BaseRandomForest(BaseEstimator, metaclass=ABCMeta):
    """
    scikit-learn style wrapper around ``RFTrainer`` and ``RFModel``.

    - __init__() stores only hyperparameters; zero values fall back to the trainer defaults
    - fit(X, y) trains and sets the learned attributes
    - predict(X) makes predictions
    """
    _task_type: str = ""

    def __init__(self,
                 n_trees: int = 100,
                 mtry: int = 0,
                 node_size: int = 0,
                 oob_ratio: float = 0.66,
                 compute_oob_error: bool = False,
                 compute_feature_importances: bool = False,
                 n_jobs: Optional[int] = None,
                 seed: Optional[int] = None):
        self.n_trees = n_trees
        self.mtry = mtry
        self.node_size = node_size
        self.oob_ratio = oob_ratio
        self.compute_oob_error = compute_oob_error
        self.compute_feature_importances = compute_feature_importances
        self.n_jobs = n_jobs
        self.seed = seed

        self.logger = get_logger(self.__class__.__name__)

    def _build_trainer(self) -> RFTrainer:
        trainer = RFTrainer(compute_feature_importances=self.compute_feature_importances,
                            compute_oob_error=self.compute_oob_error,
                            n_jobs=self.n_jobs,
                            seed=self.seed)
        trainer.set_n_trees(self.n_trees)
        trainer.set_mtry(self.mtry)
        trainer.set_node_size(self.node_size)
        trainer.set_oob_ratio(self.oob_ratio)
        return trainer

    @abstractmethod
    def _make_dataset(self, X: np.ndarray, y: np.ndarray) -> ClassificationDataset | RegressionDataset:
        """Validates the labels and wraps the training data for the trainer."""

    @time_func
    def fit(self, X: ArrayLike, y: ArrayLike) -> "_BaseRandomForest":
        X = np.asarray(X)
        y = np.asarray(y)

        if X.ndim != 2:
            raise ValueError(f"Input data must be a 2D array (n_samples, n_features). Got shape {X.shape}")
        if y.shape[0] != X.shape[0]:
            raise ValueError("Number of samples in data and expected labels must be the same size")

        self.n_features_in_ = X.shape[1]
        dataset = self._make_dataset(X, y)

        trainer = self._build_trainer()
        self.model_ = trainer.train(RFModel(self._task_type), dataset)
        self.mtry_ = trainer.mtry
        self.node_size_ = trainer.node_size

        if self.compute_oob_error:
            self.oob_error_ = self.model_.oob_error
        if self.compute_feature_importances:
            self.feature_importances_ = self.model_.feature_importances

        return self

    def _validate_input(self, X: ArrayLike) -> np.ndarray:
        self._check_fitted()

        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(1, -1)

        if X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {X.shape[1]} features, but this model was fitted with {self.n_features_in_} features")
        return X

    def _check_fitted(self):
        if not hasattr(self, "model_") or self.model_ is None or self.model_.number_of_models == 0:
            raise NotFittedError("Estimator not fitted. "
                                 "Call fit with appropriate input data before using this estimator.")


class RandomForestClassifier(ClassifierMixin, _BaseRandomForest):
    """
    Random forest classifier; class probabilities are the average of the leaf histograms of all trees.

    Labels of any type are mapped to class indices; ``classes_`` holds the original labels.
    """
    _task_type = SRF_TASK_CLASSIFICATION

    def _make_dataset(self, X, y):
        if y.ndim == 2 and y.shape[1] == 1:
            y = y[:, 0]
        elif y.ndim != 1:
            raise ValueError(f"Output label data must be of shape (n,) or (n,1). Got {y.shape}")

        self.classes_, y_encoded = np.unique(y, return_inverse=True)
        self.n_classes_ = len(self.classes_)
        return ClassificationDataset(X, y_encoded, n_classes=self.n_classes_)

    def predict_proba(self, X: ArrayLike) -> np.ndarray:
        X = self._validate_input(X)
        return self.model_.eval(X)

    def predict(self, X: ArrayLike) -> np.ndarray:
        return self.classes_[np.argmax(self.predict_proba(X), axis=1)]


class RandomForestRegressor(RegressorMixin, _BaseRandomForest):
    """Random forest regressor; predictions are the average of the leaf means of all trees."""
    _task_type = SRF_TASK_REGRESSION

    def _make_dataset(self, X, y):
        self.single_output_ = y.ndim == 1
        return RegressionDataset(X, y)

    def predict(self, X: ArrayLike) -> np.ndarray:
        X = self._validate_input(X)
        out = self.model_.eval(X)
        return out[:, 0] if self.single_output_ else out
