"""Report assembly: ANOVA text tables and the MCS plot payload."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from cml_assess.evaluation.anova import AnovaRow, AnovaTable
from cml_assess.evaluation.statistics import MultipleComparisonResult
from cml_assess.evaluation.treatments import TreatmentMap


@dataclass
class McsPlotData:
    """Everything needed to draw the multiple comparisons similarity plot.

    Attributes:
        metric: Performance measure.
        lsmeans: Least-squares mean per treatment.
        p_values: Symmetric matrix of Tukey-Kramer adjusted p-values.
        codes: Treatment codes, ascending.
        descriptors: Descriptor labels, first-seen order.
        methods: Method labels, first-seen order.
        treatment_descriptors: Descriptor label of each treatment.
        treatment_methods: Method label of each treatment.
        single_descriptor: Only one descriptor set is present.
    """

    metric: str
    lsmeans: npt.NDArray[np.float64]
    p_values: npt.NDArray[np.float64]
    codes: list[int]
    descriptors: list[str]
    methods: list[str]
    treatment_descriptors: list[str]
    treatment_methods: list[str]
    single_descriptor: bool

    @property
    def labels(self) -> list[str]:
        """One label per treatment."""
        if self.single_descriptor:
            return list(self.treatment_methods)
        return [
            f"{desc}/{method}"
            for desc, method in zip(self.treatment_descriptors, self.treatment_methods, strict=True)
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization (NaN becomes None)."""

        def _clean(value: float) -> float | None:
            return None if math.isnan(value) else float(value)

        return {
            "metric": self.metric,
            "lsmeans": [_clean(v) for v in self.lsmeans],
            "p_values": [[_clean(v) for v in row] for row in self.p_values],
            "codes": list(self.codes),
            "descriptors": list(self.descriptors),
            "methods": list(self.methods),
            "treatment_descriptors": list(self.treatment_descriptors),
            "treatment_methods": list(self.treatment_methods),
            "single_descriptor": self.single_descriptor,
        }

    def save(self, path: Path | str) -> None:
        """Save payload to JSON file."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))


def build_mcs_data(
    metric: str,
    comparisons: MultipleComparisonResult,
    treatments: TreatmentMap,
) -> McsPlotData:
    """Package lsmeans, p-values and labels for the plot."""
    levels = {lvl.code: lvl for lvl in treatments.levels}
    return McsPlotData(
        metric=metric,
        lsmeans=comparisons.lsmeans,
        p_values=comparisons.p_values,
        codes=list(comparisons.codes),
        descriptors=treatments.descriptors,
        methods=treatments.methods,
        treatment_descriptors=[levels[code].descriptor for code in comparisons.codes],
        treatment_methods=[levels[code].method for code in comparisons.codes],
        single_descriptor=treatments.single_descriptor,
    )


def _num(value: float | None, width: int, decimals: int) -> str:
    if value is None:
        return " " * width
    if math.isinf(value):
        return f"{'Inf':>{width}}"
    return f"{value:>{width}.{decimals}f}"


def _row(row: AnovaRow, name_width: int) -> str:
    return (
        f"{row.source:<{name_width}}"
        f"{row.df:>5}"
        f"{_num(row.ss, 14, 4)}"
        f"{_num(row.ms, 14, 4)}"
        f"{_num(row.f_stat, 11, 3)}"
        f"{row.p_display:>10}"
    ).rstrip()


def _header(name_width: int) -> str:
    return (
        f"{'Source':<{name_width}}{'DF':>5}{'SS':>14}{'MS':>14}{'F':>11}{'p-value':>10}"
    )


def format_anova_report(anova: AnovaTable) -> str:
    """Format both ANOVA tables and the summary statistics as fixed-width text."""
    factors = (
        "Split and Method"
        if anova.single_descriptor
        else "Split and Descriptor/Method combination"
    )
    lines = [
        f"   Analysis of Variance on: '{anova.metric}'",
        f"   Using factors: {factors}",
        "",
        _header(7),
        *(_row(row, 7) for row in anova.aggregate_rows),
        "",
        f"{'R-Square':>12}{'Coef Var':>12}{'Root MSE':>12}{'Mean':>12}",
        (
            f"{_num(anova.r_squared, 12, 4)}{_num(anova.coef_var, 12, 4)}"
            f"{_num(anova.root_mse, 12, 4)}{_num(anova.mean, 12, 4)}"
        ),
        "",
        _header(10),
        *(_row(row, 10) for row in anova.nested_rows),
    ]
    return "\n".join(lines)


def format_lsmeans_table(mcs: McsPlotData) -> str:
    """Format least-squares means as a markdown table."""
    lines = [
        "| Trmt | Treatment | LS Mean |",
        "|------|-----------|---------|",
    ]
    for code, label, lsmean in zip(mcs.codes, mcs.labels, mcs.lsmeans, strict=True):
        lines.append(f"| {code} | {label} | {lsmean:.4f} |")
    return "\n".join(lines)
