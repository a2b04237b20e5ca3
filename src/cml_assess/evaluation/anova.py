"""Analysis of variance across splits.

The split study is a designed experiment with two factors: split (fold
assignment) is a blocking factor and treatment (descriptor set / method
combination) is the factor of interest. The additive model

    value ~ Split + Treatment

is fit by least squares and its variance decomposed two ways:

1. Aggregate: Model (Split + Treatment) vs Error vs Total
2. Nested: sequential (type I) sums of squares for Split, then Treatment
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt
import pandas as pd
import statsmodels.formula.api as smf  # type: ignore[import-untyped]
from scipy import stats
from statsmodels.stats.anova import anova_lm  # type: ignore[import-untyped]

from cml_assess.errors import NumericDegeneracyError
from cml_assess.evaluation.treatments import TREATMENT_COLUMN

logger = logging.getLogger(__name__)

# p-values below this are displayed as "<.0001"
P_VALUE_FLOOR = 1e-4
# Error SS this small relative to total SS means the model fits exactly
_PERFECT_FIT_TOL = 1e-12


def format_p_value(p_value: float | None) -> str:
    """Format a p-value for display, flooring tiny values at '<.0001'."""
    if p_value is None:
        return ""
    if p_value < P_VALUE_FLOOR:
        return "<.0001"
    return f"{p_value:.4f}"


@dataclass
class AnovaRow:
    """One source of variation."""

    source: str
    df: int
    ss: float
    ms: float | None = None
    f_stat: float | None = None
    p_value: float | None = None

    @property
    def p_display(self) -> str:
        """p-value as shown in reports."""
        return format_p_value(self.p_value)


@dataclass
class AnovaTable:
    """Aggregate and nested decompositions of the split ANOVA.

    Attributes:
        metric: Performance measure analysed.
        model: Split + Treatment combined.
        split: Split term (sequential).
        treatment: Treatment term added after Split.
        error: Residual.
        total: Corrected total.
        r_squared: Model SS / Total SS.
        coef_var: 100 * root MSE / grand mean.
        root_mse: sqrt(error MS).
        mean: Grand mean of the response.
        single_descriptor: Treatment is Method alone.
        fitted: Fitted values, aligned with the input rows.
    """

    metric: str
    model: AnovaRow
    split: AnovaRow
    treatment: AnovaRow
    error: AnovaRow
    total: AnovaRow
    r_squared: float
    coef_var: float
    root_mse: float
    mean: float
    single_descriptor: bool = False
    fitted: npt.NDArray[np.float64] = field(default_factory=lambda: np.empty(0), repr=False)

    @property
    def treatment_label(self) -> str:
        """Name of the treatment factor in reports."""
        return "Method" if self.single_descriptor else "Desc/Meth"

    @property
    def aggregate_rows(self) -> list[AnovaRow]:
        """Model, Error, Total."""
        return [self.model, self.error, self.total]

    @property
    def nested_rows(self) -> list[AnovaRow]:
        """Split, Treatment."""
        return [self.split, self.treatment]


def _f_row(source: str, df: int, ss: float, err_ms: float, err_df: int) -> AnovaRow:
    ms = ss / df if df > 0 else math.nan
    f_stat = ms / err_ms
    p_value = float(stats.f.sf(f_stat, df, err_df))
    return AnovaRow(source=source, df=df, ss=ss, ms=ms, f_stat=f_stat, p_value=p_value)


class VarianceDecomposer:
    """Fits the two-factor split ANOVA.

    Usage:
        decomposer = VarianceDecomposer(value_column="enhancement")
        anova = decomposer.fit(table, metric="enhancement")
    """

    def __init__(
        self,
        value_column: str,
        split_column: str = "Split",
        treatment_column: str = TREATMENT_COLUMN,
    ) -> None:
        """Initialize decomposer.

        Args:
            value_column: Column with the (imputed) metric values.
            split_column: Blocking factor column.
            treatment_column: Treatment code column.
        """
        self.value_column = value_column
        self.split_column = split_column
        self.treatment_column = treatment_column

    def _design(self, table: pd.DataFrame) -> pd.DataFrame:
        data = pd.DataFrame(
            {
                "value": table[self.value_column].to_numpy(dtype=float),
                "split": np.asarray(table[self.split_column], dtype=object),
                "trmt": table[self.treatment_column].to_numpy(),
            }
        )
        if data["value"].isna().any():
            msg = f"Column '{self.value_column}' has missing values; impute before fitting"
            raise ValueError(msg)

        num_splits = data["split"].nunique()
        num_trmts = data["trmt"].nunique()
        if num_splits < 2 or num_trmts < 2:
            msg = (
                "The split ANOVA needs at least two splits and two treatments "
                f"(got {num_splits} splits, {num_trmts} treatments)"
            )
            raise NumericDegeneracyError(msg)
        return data

    def fit(
        self,
        table: pd.DataFrame,
        metric: str = "",
        single_descriptor: bool = False,
    ) -> AnovaTable:
        """Fit value ~ Split + Treatment and decompose the variance.

        Args:
            table: Metric table with split, treatment and value columns.
            metric: Metric name for reporting.
            single_descriptor: Whether only one descriptor set is present.

        Returns:
            AnovaTable with aggregate and nested decompositions.

        Raises:
            NumericDegeneracyError: If the design or the fit leaves the
                F-statistics undefined.
        """
        data = self._design(table)
        fit = smf.ols("value ~ C(split) + C(trmt)", data=data).fit()

        err_df = int(round(fit.df_resid))
        tot_df = int(fit.nobs) - 1
        mod_df = tot_df - err_df
        err_ss = float(fit.ssr)
        tot_ss = float(fit.centered_tss)
        mod_ss = tot_ss - err_ss

        if err_df <= 0:
            msg = f"No error degrees of freedom left ({int(fit.nobs)} rows, model DF {mod_df})"
            raise NumericDegeneracyError(msg)
        if tot_ss == 0:
            msg = f"'{metric or self.value_column}' is identical for every split and treatment"
            raise NumericDegeneracyError(msg)
        if err_ss <= _PERFECT_FIT_TOL * tot_ss:
            msg = "Error mean square is zero; F-statistics are undefined"
            raise NumericDegeneracyError(msg)

        err_ms = err_ss / err_df
        model = _f_row("Model", mod_df, mod_ss, err_ms, err_df)
        error = AnovaRow(source="Error", df=err_df, ss=err_ss, ms=err_ms)
        total = AnovaRow(source="Total", df=tot_df, ss=tot_ss)

        # Sequential sums of squares: Split first, Treatment adjusted for Split
        seq = anova_lm(fit, typ=1)
        split = _f_row(
            "Split",
            int(round(seq.loc["C(split)", "df"])),
            float(seq.loc["C(split)", "sum_sq"]),
            err_ms,
            err_df,
        )
        treatment = _f_row(
            "Method" if single_descriptor else "Desc/Meth",
            int(round(seq.loc["C(trmt)", "df"])),
            float(seq.loc["C(trmt)", "sum_sq"]),
            err_ms,
            err_df,
        )

        root_mse = math.sqrt(err_ms)
        grand_mean = float(data["value"].mean())
        coef_var = root_mse / grand_mean * 100 if grand_mean != 0 else math.inf

        result = AnovaTable(
            metric=metric,
            model=model,
            split=split,
            treatment=treatment,
            error=error,
            total=total,
            r_squared=mod_ss / tot_ss,
            coef_var=coef_var,
            root_mse=root_mse,
            mean=grand_mean,
            single_descriptor=single_descriptor,
            fitted=fit.fittedvalues.to_numpy(dtype=float),
        )
        logger.info(
            "ANOVA on %s: F=%.3f (p=%s), R2=%.4f",
            metric or self.value_column,
            model.f_stat,
            model.p_display,
            result.r_squared,
        )
        return result
