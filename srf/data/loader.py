import pathlib
from typing import Any

import pandas as pd

import srf.const as sconst
from srf.data.dataset import ClassificationDataset, RegressionDataset, from_dataframe
from srf.decorators import time_func
from srf.utils import get_filetype, get_logger


class DatasetLoader(object):
    """Reads a tabular file into a DataFrame and converts it to a training dataset."""

    def __init__(self, **kwargs) -> None:
        # log_to_file also writes the log to log_path, SRF_LOGGING_LOG_PATH unless given
        log_path = kwargs.get("log_path", sconst.SRF_LOGGING_LOG_PATH) if kwargs.get("log_to_file", False) else None
        self.logger = get_logger(self.__class__.__name__, log_path=log_path)

        self.dataset_path = self._process_dataset_path(kwargs.get("dataset_path", None))

        # Separator between columns and instances
        self.separator = kwargs.get("separator", ",")
        assert isinstance(self.separator, str), "separator must be a string"

        # The decimal marker
        self.decimal = kwargs.get("decimal", ".")
        assert isinstance(self.decimal, str), "decimal must be a string"

        label_columns = kwargs.get("label_columns", [])
        if isinstance(label_columns, str):
            label_columns = [label_columns]
        assert isinstance(label_columns, list), "label_columns must be a string or a list"
        assert all(isinstance(col, str) for col in label_columns), "all label_columns must be strings"
        self.label_columns = label_columns

        self.task_type = kwargs.get("task_type", sconst.SRF_TASK_CLASSIFICATION)
        if self.task_type not in sconst.SRF_TASK_TYPES:
            raise ValueError(
                f"Unsupported task_type: {self.task_type}. Supported types are {sconst.SRF_TASK_TYPES}.")

    def _process_dataset_path(self, dataset_path: Any) -> pathlib.Path:
        """
        Validates the dataset path and converts it to an absolute pathlib.Path.

        :param Any dataset_path: The dataset path to process
        :return pathlib.Path: The processed dataset path
        :raises ValueError: If the dataset path is not set or does not exist
        """
        if dataset_path is None:
            self.logger.error("No dataset path provided.")
            raise ValueError("dataset_path is required")

        if not isinstance(dataset_path, (str, pathlib.Path)):
            self.logger.error("dataset_path must be a string or pathlib.Path.")
            raise TypeError("dataset_path must be a string or pathlib.Path")

        dataset_path = pathlib.Path(dataset_path).resolve()

        if not dataset_path.exists():
            self.logger.error(f"Dataset path does not exist: {dataset_path}")
            raise ValueError(f"Dataset path does not exist: {dataset_path}")

        return dataset_path

    def _load_dataset(self) -> pd.DataFrame:
        ftype = get_filetype(self.dataset_path)
        if not ftype:
            self.logger.warning(f"Could not determine filetype for {self.dataset_path}, falling back to CSV reader!")
            ftype = "csv"

        try:
            match ftype:
                case "json":
                    return pd.read_json(self.dataset_path)
                case "parquet":
                    return pd.read_parquet(self.dataset_path)
                case _:
                    return pd.read_csv(self.dataset_path, sep=self.separator, decimal=self.decimal)
        except Exception as e:
            self.logger.error(f"An error occurred while loading the dataset: {e}")
            raise RuntimeError(f"Failed to load dataset from {self.dataset_path}: {e}") from e

    @time_func
    def load(self) -> pd.DataFrame:
        self.logger.info(f"Loading dataset from path: {self.dataset_path}")
        df = self._load_dataset()

        unnamed_cols = df.columns[df.columns.astype(str).str.contains("^Unnamed")]
        if len(unnamed_cols) > 0:
            self.logger.info(f"Removing unnamed columns from the dataset: {list(unnamed_cols)}")
            df = df.drop(columns=list(unnamed_cols))

        return df

    def load_dataset(self) -> ClassificationDataset | RegressionDataset:
        """
        Loads the file and converts it to a dataset, every non-label column being a feature.

        :return ClassificationDataset | RegressionDataset: The dataset matching the configured task type.
        """
        if not self.label_columns:
            raise ValueError("label_columns must be set to build a dataset")

        df = self.load()
        dataset = from_dataframe(df, self.label_columns, self.task_type)
        self.logger.info(
            f"Built {self.task_type} dataset with {dataset.number_of_elements} elements "
            f"and {dataset.input_dimension} features")
        return dataset
