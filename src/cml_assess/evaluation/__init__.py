"""Performance measures, split ANOVA and multiple comparisons."""

from cml_assess.evaluation.anova import AnovaRow, AnovaTable, VarianceDecomposer, format_p_value
from cml_assess.evaluation.assess import SplitAnovaResult, combine_splits, split_anova
from cml_assess.evaluation.metrics import (
    BINARY_METRICS,
    CONTINUOUS_METRICS,
    auc,
    compute_confusion_matrix,
    compute_metric,
    enhancement,
    error_rate,
    fmeasure,
    ppv,
    r_squared,
    rmse,
    sensitivity,
    spearman_rho,
    specificity,
)
from cml_assess.evaluation.performance import PerformanceEngine, performance
from cml_assess.evaluation.report import McsPlotData, format_anova_report
from cml_assess.evaluation.statistics import (
    MultipleComparisonEngine,
    MultipleComparisonResult,
    PairwiseComparison,
    pairwise_index,
    tukey_kramer,
)
from cml_assess.evaluation.treatments import (
    ImputationSummary,
    TreatmentLevel,
    TreatmentMap,
    assign_treatments,
    impute_missing,
)

__all__ = [
    "BINARY_METRICS",
    "CONTINUOUS_METRICS",
    "AnovaRow",
    "AnovaTable",
    "ImputationSummary",
    "McsPlotData",
    "MultipleComparisonEngine",
    "MultipleComparisonResult",
    "PairwiseComparison",
    "PerformanceEngine",
    "SplitAnovaResult",
    "TreatmentLevel",
    "TreatmentMap",
    "VarianceDecomposer",
    "assign_treatments",
    "auc",
    "combine_splits",
    "compute_confusion_matrix",
    "compute_metric",
    "enhancement",
    "error_rate",
    "fmeasure",
    "format_anova_report",
    "format_p_value",
    "impute_missing",
    "pairwise_index",
    "performance",
    "ppv",
    "r_squared",
    "rmse",
    "sensitivity",
    "spearman_rho",
    "specificity",
    "split_anova",
    "tukey_kramer",
]
