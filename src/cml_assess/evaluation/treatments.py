"""Treatment coding and missing-value imputation for metric tables.

A treatment is one descriptor set / method combination. Treatments get
dense integer codes (1, 2, ...) in the order they first appear in the
metric table.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field

import pandas as pd

from cml_assess.errors import DegenerateTreatmentWarning

logger = logging.getLogger(__name__)

TREATMENT_COLUMN = "Trmt"


@dataclass(frozen=True)
class TreatmentLevel:
    """One descriptor set / method combination."""

    code: int
    descriptor: str
    method: str

    @property
    def label(self) -> str:
        """Display label, e.g. 'Burd/KNN'."""
        return f"{self.descriptor}/{self.method}"


@dataclass
class TreatmentMap:
    """Mapping between (Descriptor, Method) pairs and treatment codes."""

    levels: list[TreatmentLevel] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._codes = {(lvl.descriptor, lvl.method): lvl.code for lvl in self.levels}

    def code_for(self, descriptor: str, method: str) -> int:
        """Treatment code for a pair, allocating the next code if unseen."""
        key = (descriptor, method)
        if key not in self._codes:
            code = len(self.levels) + 1
            self.levels.append(TreatmentLevel(code, descriptor, method))
            self._codes[key] = code
        return self._codes[key]

    @property
    def codes(self) -> list[int]:
        """Treatment codes in ascending order."""
        return [lvl.code for lvl in self.levels]

    @property
    def descriptors(self) -> list[str]:
        """Distinct descriptor labels, first-seen order."""
        return list(dict.fromkeys(lvl.descriptor for lvl in self.levels))

    @property
    def methods(self) -> list[str]:
        """Distinct method labels, first-seen order."""
        return list(dict.fromkeys(lvl.method for lvl in self.levels))

    @property
    def single_descriptor(self) -> bool:
        """True when only one descriptor set is present."""
        return len(self.descriptors) == 1

    def __len__(self) -> int:
        return len(self.levels)


def assign_treatments(table: pd.DataFrame) -> tuple[pd.DataFrame, TreatmentMap]:
    """Add a treatment code column to a metric table.

    Args:
        table: Metric table with Descriptor and Method columns.

    Returns:
        Tuple of (copy of table with a 'Trmt' column, treatment map).
    """
    treatments = TreatmentMap()
    codes = [
        treatments.code_for(str(desc), str(method))
        for desc, method in zip(table["Descriptor"], table["Method"], strict=True)
    ]
    out = table.copy()
    out[TREATMENT_COLUMN] = pd.Series(codes, index=out.index, dtype="int64")
    logger.info("Assigned %d treatments to %d records", len(treatments), len(out))
    return out, treatments


@dataclass
class ImputationSummary:
    """What the imputer changed.

    Attributes:
        num_imputed: Number of missing values filled.
        degenerate: Treatment codes with no value in any split (set to 0).
    """

    num_imputed: int = 0
    degenerate: list[int] = field(default_factory=list)


def impute_missing(
    table: pd.DataFrame,
    value_column: str,
    treatment_column: str = TREATMENT_COLUMN,
) -> tuple[pd.DataFrame, ImputationSummary]:
    """Fill missing metric values with the treatment's mean across splits.

    Means are computed from the non-missing values before anything is
    filled, so the result does not depend on row order. A treatment with no
    non-missing value is a bad model: its values become 0 and a
    DegenerateTreatmentWarning is emitted.

    Args:
        table: Metric table with treatment codes.
        value_column: Column holding the metric values.
        treatment_column: Column holding treatment codes.

    Returns:
        Tuple of (imputed copy of table, summary).
    """
    values = table[value_column].astype(float)
    missing = values.isna()
    summary = ImputationSummary(num_imputed=int(missing.sum()))
    if not missing.any():
        return table.copy(), summary

    means = values.groupby(table[treatment_column]).mean()
    filled = values.fillna(table[treatment_column].map(means))

    summary.degenerate = sorted(int(code) for code in means.index[means.isna()])
    for code in summary.degenerate:
        message = f"Treatment {code} has no non-missing value in any split; imputing 0"
        logger.warning(message)
        warnings.warn(message, DegenerateTreatmentWarning, stacklevel=2)
    filled = filled.fillna(0.0)

    out = table.copy()
    out[value_column] = filled
    logger.info(
        "Imputed %d missing values (%d degenerate treatments)",
        summary.num_imputed,
        len(summary.degenerate),
    )
    return out, summary
