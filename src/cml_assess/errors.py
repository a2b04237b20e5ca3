"""Exception and warning types raised during model assessment.

Every error aborts the current assessment; there is no partial-result mode.
Degenerate treatments are the only recoverable condition and surface as a
warning.
"""

from __future__ import annotations


class AssessmentError(Exception):
    """Base class for all assessment failures."""


class UnsupportedMetricError(AssessmentError, ValueError):
    """Metric name is unknown or does not apply to the response type."""


# Name used by the metric library for the same condition.
InvalidMetricError = UnsupportedMetricError


class InvalidDepthError(AssessmentError, ValueError):
    """Evaluation depth is not in [1, n]."""


class NumericDegeneracyError(AssessmentError, ArithmeticError):
    """A statistic is undefined for the given data (zero variance, one class, ...)."""


class DegenerateTreatmentWarning(UserWarning):
    """No split produced a value for a treatment; it was imputed as zero."""
