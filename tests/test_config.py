"""Tests for assessment configuration."""

import pytest

from cml_assess.config import AssessmentConfig
from cml_assess.errors import AssessmentError, InvalidDepthError


class TestAssessmentConfig:
    """Tests for AssessmentConfig."""

    def test_defaults(self) -> None:
        """Defaults match the split study conventions."""
        config = AssessmentConfig()

        assert config.metrics == ("enhancement",)
        assert config.metric == "enhancement"
        assert config.m is None
        assert config.thresh == 0.5

    def test_single_metric_string(self) -> None:
        """A bare metric name becomes a one-element tuple."""
        assert AssessmentConfig(metrics="auc").metrics == ("auc",)

    def test_duplicate_metrics(self) -> None:
        """Repeated metrics are collapsed, order kept."""
        config = AssessmentConfig(metrics=("rho", "R2", "rho"))

        assert config.metrics == ("rho", "R2")
        assert config.metric == "rho"

    def test_empty_metrics(self) -> None:
        """At least one metric is needed."""
        with pytest.raises(ValueError, match="At least one metric"):
            AssessmentConfig(metrics=())

    @pytest.mark.parametrize("thresh", [0.0, 1.0, -0.1, 1.5])
    def test_invalid_threshold(self, thresh: float) -> None:
        """Threshold must be strictly inside (0, 1)."""
        with pytest.raises(ValueError, match="thresh"):
            AssessmentConfig(thresh=thresh)

    def test_invalid_depth(self) -> None:
        """Non-positive m is an assessment error."""
        with pytest.raises(InvalidDepthError) as exc_info:
            AssessmentConfig(m=0)

        assert isinstance(exc_info.value, AssessmentError)


def test_invalid_metric_alias() -> None:
    """InvalidMetricError names the same exception."""
    from cml_assess.errors import InvalidMetricError, UnsupportedMetricError

    assert InvalidMetricError is UnsupportedMetricError
