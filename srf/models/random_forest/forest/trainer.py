import math
import pathlib

import numpy as np

from joblib import Parallel, delayed
from numpy.typing import ArrayLike
from typing import Optional

import srf.const as sconst
from srf.data.dataset import ClassificationDataset, RegressionDataset
from srf.decorators import time_func
from srf.models.random_forest.forest.importance import (
    compute_tree_feature_importances,
    compute_tree_oob_error,
)
from srf.models.random_forest.forest.model import RFModel
from srf.models.random_forest.sampling.bagging import BootstrapSampler
from srf.models.random_forest.tree.attribute_table import create_attribute_tables, create_count_vector
from srf.models.random_forest.tree.builder import ClassificationTreeBuilder, RegressionTreeBuilder
from srf.models.random_forest.tree.tree import DecisionTree
from srf.utils import get_logger


class RFTrainer:
    """
    Random Forest trainer.

    Grows an ensemble of unpruned binary trees. Each tree is grown on a random subset of the rows
    (a fraction ``oob_ratio`` of the dataset, drawn without replacement); the remaining rows form its
    out-of-bag sample. Trees are grown SPRINT style from presorted attribute tables, and at each node only
    ``mtry`` randomly chosen attributes are searched. Node impurity is the Gini index for classification
    and the total sum of squared errors for regression.

    Parameters left at zero are replaced by defaults when training starts:

    * ``mtry``: ceil(sqrt(D)) for classification, ceil(D / 3) for regression
    * ``n_trees``: 100
    * ``node_size``: 1 for classification, 5 for regression
    * ``oob_ratio``: 0.66, also used (with a warning) for any value outside (0, 1]

    Trees are grown in parallel on a joblib thread pool of ``n_jobs`` workers. Each tree draws its
    randomness from its own generator, spawned from ``seed``, so a fixed seed reproduces the same forest
    whatever the number of workers.

    With ``log_to_file`` the training log is also written to ``log_path``, by default ``SRF_LOGGING_LOG_PATH``.
    """

    def __init__(self,
                 compute_feature_importances: bool = False,
                 compute_oob_error: bool = False,
                 n_jobs: Optional[int] = None,
                 seed: Optional[int] = None,
                 log_to_file: bool = False,
                 log_path: str | pathlib.Path = sconst.SRF_LOGGING_LOG_PATH):
        # the training log also goes to a rotating file when asked to
        self.logger = get_logger(self.__class__.__name__, log_path=log_path if log_to_file else None)

        self.compute_feature_importances = compute_feature_importances
        self.compute_oob_error = compute_oob_error
        self.n_jobs = n_jobs
        self.seed = seed

        self.mtry = 0
        self.n_trees = 0
        self.node_size = 0
        self.oob_ratio = 0.0

    def set_mtry(self, mtry: int) -> None:
        """Sets the number of random attributes to investigate at each node."""
        if mtry < 0:
            raise ValueError("mtry must be non-negative")
        self.mtry = int(mtry)

    def set_n_trees(self, n_trees: int) -> None:
        if n_trees < 0:
            raise ValueError("n_trees must be non-negative")
        self.n_trees = int(n_trees)

    def set_node_size(self, node_size: int) -> None:
        """Nodes holding at most ``node_size`` rows are not split any further."""
        if node_size < 0:
            raise ValueError("node_size must be non-negative")
        self.node_size = int(node_size)

    def set_oob_ratio(self, ratio: float) -> None:
        """Sets the fraction of the dataset used to grow each tree; the rest is its out-of-bag sample."""
        self.oob_ratio = float(ratio)

    @property
    def number_of_parameters(self) -> int:
        return 1

    def parameter_vector(self) -> np.ndarray:
        return np.array([float(self.n_trees)])

    def set_parameter_vector(self, new_parameters: ArrayLike) -> None:
        new_parameters = np.atleast_1d(np.asarray(new_parameters, dtype=np.float64))
        if new_parameters.shape[0] != self.number_of_parameters:
            raise ValueError(
                f"Expected {self.number_of_parameters} parameters, got {new_parameters.shape[0]}")
        self.set_n_trees(int(new_parameters[0]))

    def _set_defaults(self, task_type: str, input_dimension: int) -> None:
        if not self.mtry:
            if task_type == sconst.SRF_TASK_REGRESSION:
                self.set_mtry(math.ceil(input_dimension / sconst.SRF_REGRESSION_MTRY_DIVISOR))
            else:
                self.set_mtry(math.ceil(math.sqrt(input_dimension)))

        if not self.n_trees:
            self.set_n_trees(sconst.SRF_DEFAULT_N_TREES)

        if not self.node_size:
            self.set_node_size(sconst.SRF_DEFAULT_NODE_SIZE[task_type])

        if self.oob_ratio <= 0 or self.oob_ratio > 1:
            if self.oob_ratio:
                self.logger.warning(
                    f"oob_ratio={self.oob_ratio} is outside (0, 1], using the default {sconst.SRF_DEFAULT_OOB_RATIO}")
            self.set_oob_ratio(sconst.SRF_DEFAULT_OOB_RATIO)

    @time_func
    def train(self, model: RFModel, dataset: ClassificationDataset | RegressionDataset) -> RFModel:
        """
        Trains a random forest on the dataset, replacing any tree already held by the model.

        :param RFModel model: The ensemble receiving the trees
        :param ClassificationDataset | RegressionDataset dataset: The training data
        :return RFModel: The same model, for chaining
        """
        task_type = dataset.task_type
        if model.task_type != task_type:
            raise ValueError(f"Cannot train a {model.task_type} model on a {task_type} dataset")
        if dataset.number_of_elements < 1:
            raise ValueError("Cannot train a random forest on an empty dataset")
        if dataset.input_dimension < 1:
            raise ValueError("The dataset must have at least one input feature")

        model.clear_models()
        model.set_input_dimension(dataset.input_dimension)
        if task_type == sconst.SRF_TASK_CLASSIFICATION:
            model.set_label_dimension(dataset.number_of_classes)
        else:
            model.set_label_dimension(dataset.label_dimension)

        self._set_defaults(task_type, dataset.input_dimension)

        sampler = BootstrapSampler(n_elements=dataset.number_of_elements,
                                   n_bags=self.n_trees,
                                   oob_ratio=self.oob_ratio,
                                   seed=self.seed)

        self.logger.info(
            f"Growing {self.n_trees} {task_type} trees on {dataset.number_of_elements} elements "
            f"({sampler.bag_size} per tree): input_dimension={dataset.input_dimension}, mtry={self.mtry}, "
            f"node_size={self.node_size}, oob_ratio={self.oob_ratio}, n_jobs={self.n_jobs}")

        Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(self._grow_and_add)(model, dataset, sampler, b) for b in range(self.n_trees)
        )

        if self.compute_oob_error:
            model.compute_oob_error(dataset)
            self.logger.info(
                f"Ensemble OOB error: {model.oob_error:.6f} over {model.n_oob_scored} rows "
                f"(mean tree OOB error: {model.mean_tree_oob_error:.6f})")

        if self.compute_feature_importances:
            model.compute_feature_importances()
            self.logger.info(f"Feature importances: {model.feature_importances}")

        return model

    def _grow_and_add(self,
                      model: RFModel,
                      dataset: ClassificationDataset | RegressionDataset,
                      sampler: BootstrapSampler,
                      b: int) -> None:
        tree = self.grow_tree(dataset, sampler, b)
        model.add_model(tree)

    def grow_tree(self,
                  dataset: ClassificationDataset | RegressionDataset,
                  sampler: BootstrapSampler,
                  b: int) -> DecisionTree:
        """
        Grows tree ``b``: draws its bag, builds its attribute tables, grows it and evaluates it on its OOB rows.

        Only touches thread-local state and the read-only dataset.
        """
        bag = sampler.get_bag(b)
        inputs = dataset.inputs[bag.indices]
        labels = dataset.labels[bag.indices]

        tables = create_attribute_tables(inputs)
        if dataset.task_type == sconst.SRF_TASK_CLASSIFICATION:
            builder = ClassificationTreeBuilder(labels, dataset.number_of_classes, self.mtry, self.node_size, bag.rng)
            nodes = builder.build(tables, create_count_vector(labels, dataset.number_of_classes))
        else:
            builder = RegressionTreeBuilder(labels, self.mtry, self.node_size, bag.rng)
            nodes = builder.build(tables)

        tree = DecisionTree(nodes, dataset.input_dimension, dataset.task_type, index=b)
        tree.oob_indices = bag.oob_indices

        if self.compute_oob_error or self.compute_feature_importances:
            oob_inputs = dataset.inputs[bag.oob_indices]
            oob_labels = dataset.labels[bag.oob_indices]
            # importances compute the OOB error as their baseline
            if self.compute_feature_importances:
                compute_tree_feature_importances(tree, oob_inputs, oob_labels, bag.rng)
            else:
                compute_tree_oob_error(tree, oob_inputs, oob_labels)

        self.logger.debug(f"Tree {b}: {len(tree)} nodes, depth {tree.depth}, oob_error={tree.oob_error}")
        return tree
