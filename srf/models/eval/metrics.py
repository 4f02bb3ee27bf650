import numpy as np


def zero_one_loss(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Computes the fraction of misclassified samples.

    :param np.ndarray y_true: The true class labels.
    :param np.ndarray y_pred: The predicted class labels.
    :return float: The zero-one loss, in [0, 1].
    """
    return float(np.mean(np.asarray(y_true) != np.asarray(y_pred)))


def mean_squared_error(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Computes the mean over samples of the squared euclidean distance between true and predicted label vectors.

    One-dimensional labels are treated as vectors of length one.

    :param np.ndarray y_true: The true labels, shape (n,) or (n, d).
    :param np.ndarray y_pred: The predicted labels, same shape as y_true.
    :return float: The mean squared error.
    """
    y_true = np.asarray(y_true, dtype=np.float64).reshape(len(y_true), -1)
    y_pred = np.asarray(y_pred, dtype=np.float64).reshape(len(y_pred), -1)
    return float(np.mean(np.sum(np.square(y_true - y_pred), axis=1)))
