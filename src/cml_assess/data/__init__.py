"""Prediction bundles consumed by the assessment."""

from cml_assess.data.predictions import SplitPredictions, TrainResult, is_binary_response

__all__ = [
    "SplitPredictions",
    "TrainResult",
    "is_binary_response",
]
