import logging
import pathlib

import numpy as np

##############################
# LOGGING CONSTANTS
##############################

SRF_LOGGING_LOG_LEVEL: int = logging.INFO
SRF_LOGGING_FORMAT: str = "[%(asctime)s] - %(name)s - [%(levelname)s] - %(message)s"
SRF_LOGGING_MAX_BYTES: int = 10 * (1 << 20)  # 10 MB
SRF_LOGGING_BACKUP_COUNT: int = 3
SRF_LOGGING_LOG_PATH: pathlib.Path = pathlib.Path().cwd() / "logs" / "srf.log"

##############################
# TASK CONSTANTS
##############################

SRF_TASK_CLASSIFICATION: str = "classification"
SRF_TASK_REGRESSION: str = "regression"
SRF_TASK_TYPES: tuple[str, ...] = (SRF_TASK_CLASSIFICATION, SRF_TASK_REGRESSION)

##############################
# ATTRIBUTE TABLE CONSTANTS
##############################

# one record per (feature value, originating row)
SRF_ATTRIBUTE_DTYPE: np.dtype = np.dtype([("value", np.float64), ("row_id", np.intp)])

##############################
# RANDOM FOREST CONSTANTS
##############################

SRF_DEFAULT_N_TREES: int = 100
SRF_DEFAULT_OOB_RATIO: float = 0.66
SRF_DEFAULT_NODE_SIZE: dict[str, int] = {
    SRF_TASK_CLASSIFICATION: 1,
    SRF_TASK_REGRESSION: 5,
}
# denominator of D / k for the regression mtry default
SRF_REGRESSION_MTRY_DIVISOR: float = 3.0

##############################
# DATA CONSTANTS
##############################

SRF_SUPPORTED_EXT_FTYPE: dict[str, str] = {
    "csv": "csv",
    "json": "json",
    "parquet": "parquet",
}
