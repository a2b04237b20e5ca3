"""Split-level assessment pipeline.

Computes a performance measure for every split and descriptor set / method
combination, then tests which combinations differ using a split ANOVA and
Tukey-Kramer multiple comparisons. The split factor quantifies how
sensitive the measure is to fold assignment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from cml_assess.config import AssessmentConfig
from cml_assess.data.predictions import TrainResult
from cml_assess.evaluation.anova import AnovaTable, VarianceDecomposer
from cml_assess.evaluation.performance import PerformanceEngine
from cml_assess.evaluation.report import McsPlotData, build_mcs_data, format_anova_report
from cml_assess.evaluation.statistics import MultipleComparisonEngine, MultipleComparisonResult
from cml_assess.evaluation.treatments import (
    ImputationSummary,
    TreatmentMap,
    assign_treatments,
    impute_missing,
)

logger = logging.getLogger(__name__)


@dataclass
class SplitAnovaResult:
    """Complete outcome of a split comparison.

    Attributes:
        metric: Performance measure analysed.
        table: Metric table with treatment codes and imputed values.
        treatments: Treatment coding.
        imputation: Missing values filled before fitting.
        anova: Aggregate and nested ANOVA.
        comparisons: Least-squares means and pairwise p-values.
        mcs: Payload for the MCS plot.
    """

    metric: str
    table: pd.DataFrame
    treatments: TreatmentMap
    imputation: ImputationSummary
    anova: AnovaTable
    comparisons: MultipleComparisonResult
    mcs: McsPlotData

    def report(self) -> str:
        """ANOVA text report."""
        return format_anova_report(self.anova)


def split_anova(table: pd.DataFrame, metric: str) -> SplitAnovaResult:
    """Run treatment coding, imputation, ANOVA and multiple comparisons.

    Args:
        table: Metric table from ``performance`` containing ``metric``.
        metric: Column to analyse.

    Returns:
        SplitAnovaResult.
    """
    coded, treatments = assign_treatments(table)
    imputed, summary = impute_missing(coded, metric)

    anova = VarianceDecomposer(metric).fit(
        imputed,
        metric=metric,
        single_descriptor=treatments.single_descriptor,
    )
    comparisons = MultipleComparisonEngine(metric).compare(imputed, anova)
    mcs = build_mcs_data(metric, comparisons, treatments)

    return SplitAnovaResult(
        metric=metric,
        table=imputed,
        treatments=treatments,
        imputation=summary,
        anova=anova,
        comparisons=comparisons,
        mcs=mcs,
    )


def combine_splits(
    result: TrainResult,
    metric: str = "enhancement",
    m: int | None = None,
    thresh: float = 0.5,
    *,
    show_progress: bool = False,
) -> SplitAnovaResult:
    """Compare descriptor set / method combinations across all splits.

    Args:
        result: Response and per-split predictions.
        metric: Performance measure (default: initial enhancement).
        m: Evaluation depth (None for the defaults).
        thresh: Classification threshold for binary responses.
        show_progress: Show a progress bar over splits.

    Returns:
        SplitAnovaResult.
    """
    config = AssessmentConfig(metrics=(metric,), m=m, thresh=thresh, show_progress=show_progress)
    table = PerformanceEngine(config).compute(result)
    logger.info("Running split ANOVA on '%s' over %d splits", metric, result.num_splits)
    return split_anova(table, metric)
