"""Performance measures for a single method's predictions.

Continuous response:
1. Initial enhancement (Kearsley et al., 1996)
2. Coefficient of determination (squared Pearson correlation)
3. Root mean squared error
4. Spearman's rho

Binary response:
1. Initial enhancement
2. Misclassification rate, sensitivity, specificity
3. Positive predictive value (precision) and F1 measure
4. Area under the ROC curve

Scores containing NaN mean the model failed on that split; every measure
returns NaN for them so the value can be imputed later.
"""

from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np
import numpy.typing as npt
from scipy import stats
from sklearn.metrics import roc_auc_score

from cml_assess.errors import InvalidDepthError, NumericDegeneracyError, UnsupportedMetricError

FloatArray = npt.NDArray[np.float64]
BoolArray = npt.NDArray[np.bool_]

CONTINUOUS_METRICS: tuple[str, ...] = ("enhancement", "R2", "RMSE", "rho")
BINARY_METRICS: tuple[str, ...] = (
    "enhancement",
    "error rate",
    "sensitivity",
    "specificity",
    "ppv",
    "fmeasure",
    "auc",
)

# Measures that look at the top-m ranked observations
DEPTH_METRICS: frozenset[str] = frozenset(
    {"enhancement", "error rate", "sensitivity", "specificity", "ppv", "fmeasure"}
)


def supported_metrics(binary: bool) -> tuple[str, ...]:
    """Metric names available for a response type."""
    return BINARY_METRICS if binary else CONTINUOUS_METRICS


def check_metric(metric: str, binary: bool) -> None:
    """Raise if ``metric`` is not implemented for the response type.

    Raises:
        UnsupportedMetricError: If the metric does not apply.
    """
    valid = supported_metrics(binary)
    if metric not in valid:
        kind = "binary" if binary else "continuous"
        msg = f"y is {kind}. Metric '{metric}' must be one of {list(valid)}"
        raise UnsupportedMetricError(msg)


def check_depth(m: int, n: int) -> int:
    """Validate evaluation depth against the number of observations.

    Raises:
        InvalidDepthError: If m is not in [1, n].
    """
    if m > n:
        msg = f"m ({m}) needs to be smaller than the number of responses ({n})"
        raise InvalidDepthError(msg)
    if m < 1:
        msg = f"m must be a positive integer, got {m}"
        raise InvalidDepthError(msg)
    return int(m)


def rank_order(scores: FloatArray) -> npt.NDArray[np.intp]:
    """Indices sorting scores in decreasing order, ties kept in input order."""
    return np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")


def _missing(scores: FloatArray) -> bool:
    return bool(np.isnan(scores).any())


def _as_float(values: npt.ArrayLike) -> FloatArray:
    return np.asarray(values, dtype=np.float64).ravel()


def enhancement(scores: npt.ArrayLike, y: npt.ArrayLike, m: int) -> float:
    """Compute enhancement at m tests.

    Enhancement = (hits in top m / m) / (actives / n)

    For a continuous response the response values themselves are summed,
    so the measure is the mean response among the top m divided by the
    overall mean response.

    Args:
        scores: Predicted scores or probabilities; higher ranks first.
        y: Observed response.
        m: Number of tests.

    Returns:
        Enhancement (1 = random selection, larger is better).

    Raises:
        NumericDegeneracyError: If the response sums to zero.
    """
    scores_arr = _as_float(scores)
    y_arr = _as_float(y)
    m = check_depth(m, len(y_arr))
    if _missing(scores_arr):
        return math.nan

    base_rate = y_arr.sum() / len(y_arr)
    if base_rate == 0:
        msg = "Enhancement is undefined when the response contains no actives"
        raise NumericDegeneracyError(msg)

    top = y_arr[rank_order(scores_arr)[:m]]
    return float((top.sum() / m) / base_rate)


def _check_variance(pred: FloatArray, y: FloatArray, name: str) -> None:
    if np.ptp(pred) == 0 or np.ptp(y) == 0:
        msg = f"{name} is undefined for a zero-variance prediction or response"
        raise NumericDegeneracyError(msg)


def r_squared(pred: npt.ArrayLike, y: npt.ArrayLike) -> float:
    """Squared Pearson correlation between prediction and response."""
    pred_arr = _as_float(pred)
    y_arr = _as_float(y)
    if _missing(pred_arr):
        return math.nan
    _check_variance(pred_arr, y_arr, "R2")

    r, _ = stats.pearsonr(y_arr, pred_arr)
    return float(r) ** 2


def rmse(pred: npt.ArrayLike, y: npt.ArrayLike) -> float:
    """Root mean squared error."""
    pred_arr = _as_float(pred)
    y_arr = _as_float(y)
    if _missing(pred_arr):
        return math.nan
    return float(np.sqrt(np.mean((y_arr - pred_arr) ** 2)))


def spearman_rho(pred: npt.ArrayLike, y: npt.ArrayLike) -> float:
    """Spearman rank correlation between prediction and response."""
    pred_arr = _as_float(pred)
    y_arr = _as_float(y)
    if _missing(pred_arr):
        return math.nan
    _check_variance(pred_arr, y_arr, "rho")

    rho, _ = stats.spearmanr(y_arr, pred_arr)
    return float(rho)


def compute_confusion_matrix(
    yhat: npt.ArrayLike,
    y: npt.ArrayLike,
) -> dict[str, int]:
    """Compute confusion matrix elements.

    Args:
        yhat: Predicted class (bool or 0/1).
        y: Observed class (0/1).

    Returns:
        Dictionary with TP, TN, FP, FN counts.
    """
    pred_bool = np.asarray(yhat).ravel().astype(bool)
    target_bool = np.asarray(y).ravel().astype(bool)

    return {
        "tp": int((pred_bool & target_bool).sum()),
        "tn": int((~pred_bool & ~target_bool).sum()),
        "fp": int((pred_bool & ~target_bool).sum()),
        "fn": int((~pred_bool & target_bool).sum()),
    }


def _top_m_counts(
    scores: FloatArray,
    yhat: npt.ArrayLike,
    y: npt.ArrayLike,
    m: int | None,
) -> dict[str, int]:
    """Confusion counts over all observations, or the top m when m is given."""
    yhat_arr = np.asarray(yhat).ravel()
    y_arr = np.asarray(y).ravel()
    if m is not None:
        m = check_depth(m, len(y_arr))
        top = rank_order(scores)[:m]
        yhat_arr = yhat_arr[top]
        y_arr = y_arr[top]
    return compute_confusion_matrix(yhat_arr, y_arr)


def _ratio(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return math.nan
    return numerator / denominator


def error_rate(
    scores: npt.ArrayLike,
    yhat: npt.ArrayLike,
    y: npt.ArrayLike,
    m: int | None = None,
) -> float:
    """Misclassification rate = (FP + FN) / total."""
    scores_arr = _as_float(scores)
    if _missing(scores_arr):
        return math.nan
    c = _top_m_counts(scores_arr, yhat, y, m)
    return _ratio(c["fp"] + c["fn"], c["tp"] + c["tn"] + c["fp"] + c["fn"])


def sensitivity(
    scores: npt.ArrayLike,
    yhat: npt.ArrayLike,
    y: npt.ArrayLike,
    m: int | None = None,
) -> float:
    """Sensitivity (recall) = TP / (TP + FN)."""
    scores_arr = _as_float(scores)
    if _missing(scores_arr):
        return math.nan
    c = _top_m_counts(scores_arr, yhat, y, m)
    return _ratio(c["tp"], c["tp"] + c["fn"])


def specificity(
    scores: npt.ArrayLike,
    yhat: npt.ArrayLike,
    y: npt.ArrayLike,
    m: int | None = None,
) -> float:
    """Specificity = TN / (TN + FP)."""
    scores_arr = _as_float(scores)
    if _missing(scores_arr):
        return math.nan
    c = _top_m_counts(scores_arr, yhat, y, m)
    return _ratio(c["tn"], c["tn"] + c["fp"])


def ppv(
    scores: npt.ArrayLike,
    yhat: npt.ArrayLike,
    y: npt.ArrayLike,
    m: int | None = None,
) -> float:
    """Positive predictive value (precision) = TP / (TP + FP)."""
    scores_arr = _as_float(scores)
    if _missing(scores_arr):
        return math.nan
    c = _top_m_counts(scores_arr, yhat, y, m)
    return _ratio(c["tp"], c["tp"] + c["fp"])


def fmeasure(
    scores: npt.ArrayLike,
    yhat: npt.ArrayLike,
    y: npt.ArrayLike,
    m: int | None = None,
) -> float:
    """F1 measure, the harmonic mean of precision and sensitivity."""
    precision = ppv(scores, yhat, y, m)
    recall = sensitivity(scores, yhat, y, m)
    if math.isnan(precision) or math.isnan(recall):
        return math.nan
    if precision + recall == 0:
        return 0.0
    return 2 * precision * recall / (precision + recall)


def auc(scores: npt.ArrayLike, y: npt.ArrayLike) -> float:
    """Area under the ROC curve over the full ranking.

    Raises:
        NumericDegeneracyError: If the response has a single class.
    """
    scores_arr = _as_float(scores)
    y_arr = _as_float(y)
    if _missing(scores_arr):
        return math.nan
    if len(np.unique(y_arr)) < 2:
        msg = "AUC is undefined when the response contains a single class"
        raise NumericDegeneracyError(msg)
    return float(roc_auc_score(y_arr, scores_arr))


MetricFn = Callable[[FloatArray, BoolArray, FloatArray, int | None], float]


def _enhancement_at(s: FloatArray, _yhat: BoolArray, y: FloatArray, m: int | None) -> float:
    return enhancement(s, y, len(y) if m is None else m)


_CONTINUOUS: dict[str, MetricFn] = {
    "enhancement": _enhancement_at,
    "R2": lambda s, _yhat, y, _m: r_squared(s, y),
    "RMSE": lambda s, _yhat, y, _m: rmse(s, y),
    "rho": lambda s, _yhat, y, _m: spearman_rho(s, y),
}

_BINARY: dict[str, MetricFn] = {
    "enhancement": _enhancement_at,
    "error rate": error_rate,
    "sensitivity": sensitivity,
    "specificity": specificity,
    "ppv": ppv,
    "fmeasure": fmeasure,
    "auc": lambda s, _yhat, y, _m: auc(s, y),
}


def compute_metric(
    metric: str,
    scores: npt.ArrayLike,
    y: npt.ArrayLike,
    *,
    binary: bool,
    m: int | None = None,
    thresh: float = 0.5,
) -> float:
    """Compute one performance measure for one method.

    Args:
        metric: Measure name (see CONTINUOUS_METRICS / BINARY_METRICS).
        scores: Predicted values, probabilities or class predictions.
        y: Observed response.
        binary: Whether the response is binary.
        m: Evaluation depth. None means all observations.
        thresh: Scores above this are classified as 1 (binary only).

    Returns:
        Metric value; NaN if the scores contain missing values.

    Raises:
        UnsupportedMetricError: If the metric does not apply.
        InvalidDepthError: If m exceeds the number of observations.
    """
    check_metric(metric, binary)
    scores_arr = _as_float(scores)
    y_arr = _as_float(y)
    if len(scores_arr) != len(y_arr):
        msg = f"Scores ({len(scores_arr)}) and response ({len(y_arr)}) lengths differ"
        raise ValueError(msg)

    yhat = scores_arr > thresh
    registry = _BINARY if binary else _CONTINUOUS
    return registry[metric](scores_arr, yhat, y_arr, m)
