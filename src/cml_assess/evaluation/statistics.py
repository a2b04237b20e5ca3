"""Multiple comparisons between treatments.

Implements the comparison step of the split study:
- Least-squares means per treatment from the fitted split ANOVA
- Tukey-Kramer adjusted p-values for every pair of treatments
  (Tukey, 1953; Kramer, 1956), using the error mean square and degrees of
  freedom of the blocked model

Pairs (i, j) with i < j are enumerated in the upper-triangular order
idx(i, j) = k(i-1) - i(i-1)/2 + (j-i), with 1-based i and j.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt
import pandas as pd
from scipy.stats import studentized_range

from cml_assess.evaluation.anova import AnovaTable
from cml_assess.evaluation.treatments import TREATMENT_COLUMN

logger = logging.getLogger(__name__)


@dataclass
class PairwiseComparison:
    """Tukey-Kramer comparison of two treatments."""

    index: int
    treatment_i: int
    treatment_j: int
    diff: float
    p_adj: float


@dataclass
class MultipleComparisonResult:
    """Least-squares means and pairwise adjusted p-values.

    Attributes:
        codes: Treatment codes, ascending.
        lsmeans: Least-squares mean per treatment.
        group_means: Observed mean per treatment.
        group_sizes: Number of records per treatment.
        p_values: Symmetric k x k adjusted p-values, NaN on the diagonal.
        comparisons: Pairwise comparisons in upper-triangular order.
    """

    codes: list[int]
    lsmeans: npt.NDArray[np.float64]
    group_means: npt.NDArray[np.float64]
    group_sizes: npt.NDArray[np.int64]
    p_values: npt.NDArray[np.float64]
    comparisons: list[PairwiseComparison] = field(default_factory=list)

    def significant_pairs(self, alpha: float = 0.05) -> list[PairwiseComparison]:
        """Comparisons with adjusted p-value below alpha."""
        return [c for c in self.comparisons if c.p_adj < alpha]


def pairwise_index(i: int, j: int, k: int) -> int:
    """Position of pair (i, j) in the upper-triangular enumeration.

    Args:
        i: First level, 1-based.
        j: Second level, 1-based, j > i.
        k: Number of levels.

    Returns:
        1-based position among the k(k-1)/2 pairs.
    """
    if not 1 <= i < j <= k:
        msg = f"Need 1 <= i < j <= k, got i={i}, j={j}, k={k}"
        raise ValueError(msg)
    return k * (i - 1) - i * (i - 1) // 2 + (j - i)


def least_squares_means(
    fitted: npt.ArrayLike,
    treatments: npt.ArrayLike,
    codes: list[int],
) -> npt.NDArray[np.float64]:
    """Mean fitted value per treatment, in the order of ``codes``."""
    fitted_series = pd.Series(np.asarray(fitted, dtype=float))
    grouped = fitted_series.groupby(np.asarray(treatments)).mean()
    return grouped.reindex(codes).to_numpy(dtype=float)


def tukey_kramer(
    means: npt.ArrayLike,
    sizes: npt.ArrayLike,
    mse: float,
    df_error: int,
) -> npt.NDArray[np.float64]:
    """Tukey-Kramer adjusted p-values for all pairs of group means.

    For groups i and j the studentized statistic is
    |mean_i - mean_j| / sqrt(MSE/2 * (1/n_i + 1/n_j)), referred to the
    studentized range distribution with k groups and df_error degrees of
    freedom.

    Args:
        means: Group means.
        sizes: Group sizes.
        mse: Error mean square.
        df_error: Error degrees of freedom.

    Returns:
        Symmetric k x k matrix of adjusted p-values with NaN diagonal.
    """
    means_arr = np.asarray(means, dtype=float)
    sizes_arr = np.asarray(sizes, dtype=float)
    k = len(means_arr)

    p_values = np.full((k, k), np.nan)
    if k < 2:
        return p_values

    i_idx, j_idx = np.triu_indices(k, k=1)
    diff = np.abs(means_arr[j_idx] - means_arr[i_idx])
    se = np.sqrt(mse / 2 * (1 / sizes_arr[i_idx] + 1 / sizes_arr[j_idx]))
    q = diff / se
    upper = np.clip(studentized_range.sf(q, k, df_error), 0.0, 1.0)

    p_values[i_idx, j_idx] = upper
    p_values[j_idx, i_idx] = upper
    return p_values


class MultipleComparisonEngine:
    """Least-squares means and Tukey-Kramer comparisons from a split ANOVA."""

    def __init__(
        self,
        value_column: str,
        treatment_column: str = TREATMENT_COLUMN,
    ) -> None:
        self.value_column = value_column
        self.treatment_column = treatment_column

    def compare(self, table: pd.DataFrame, anova: AnovaTable) -> MultipleComparisonResult:
        """Compare every pair of treatments.

        Args:
            table: The metric table the ANOVA was fit on (same row order).
            anova: Fitted split ANOVA.

        Returns:
            MultipleComparisonResult with levels in ascending code order.
        """
        treatments = table[self.treatment_column].to_numpy()
        codes = sorted(int(code) for code in np.unique(treatments))

        lsmeans = least_squares_means(anova.fitted, treatments, codes)
        grouped = table.groupby(self.treatment_column)[self.value_column]
        group_means = grouped.mean().reindex(codes).to_numpy(dtype=float)
        group_sizes = grouped.size().reindex(codes).to_numpy(dtype=np.int64)

        mse = float(anova.error.ms) if anova.error.ms is not None else float("nan")
        p_values = tukey_kramer(group_means, group_sizes, mse, anova.error.df)

        k = len(codes)
        comparisons: list[PairwiseComparison] = []
        for i in range(1, k):
            for j in range(i + 1, k + 1):
                comparisons.append(
                    PairwiseComparison(
                        index=pairwise_index(i, j, k),
                        treatment_i=codes[i - 1],
                        treatment_j=codes[j - 1],
                        diff=float(group_means[j - 1] - group_means[i - 1]),
                        p_adj=float(p_values[i - 1, j - 1]),
                    )
                )

        logger.info(
            "Tukey-Kramer: %d treatments, %d pairs, %d significant at 0.05",
            k,
            len(comparisons),
            sum(c.p_adj < 0.05 for c in comparisons),
        )
        return MultipleComparisonResult(
            codes=codes,
            lsmeans=lsmeans,
            group_means=group_means,
            group_sizes=group_sizes,
            p_values=p_values,
            comparisons=comparisons,
        )
