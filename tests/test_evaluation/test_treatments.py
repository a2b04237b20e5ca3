"""Tests for treatment coding and imputation."""

import warnings

import numpy as np
import pandas as pd
import pytest

from cml_assess.errors import DegenerateTreatmentWarning
from cml_assess.evaluation.treatments import (
    TreatmentLevel,
    TreatmentMap,
    assign_treatments,
    impute_missing,
)


@pytest.fixture
def metric_table() -> pd.DataFrame:
    """Two splits, two descriptors, two methods, one missing value."""
    return pd.DataFrame(
        {
            "Split": [1, 1, 1, 1, 2, 2, 2, 2],
            "Descriptor": ["Burd", "Burd", "Carh", "Carh"] * 2,
            "Method": ["KNN", "RF"] * 4,
            "R2": [0.5, 0.6, 0.7, 0.8, 0.7, np.nan, 0.9, 1.0],
        }
    )


class TestTreatmentMap:
    """Tests for TreatmentMap."""

    def test_dense_codes(self) -> None:
        """Codes are allocated 1, 2, ... in first-seen order."""
        treatments = TreatmentMap()

        assert treatments.code_for("Burd", "KNN") == 1
        assert treatments.code_for("Burd", "RF") == 2
        assert treatments.code_for("Burd", "KNN") == 1
        assert treatments.codes == [1, 2]
        assert len(treatments) == 2

    def test_single_descriptor(self) -> None:
        """Single descriptor detected."""
        treatments = TreatmentMap()
        treatments.code_for("Burd", "KNN")
        treatments.code_for("Burd", "RF")

        assert treatments.single_descriptor
        assert treatments.methods == ["KNN", "RF"]

    def test_prebuilt_levels(self) -> None:
        """Existing levels are looked up, not reallocated."""
        treatments = TreatmentMap([TreatmentLevel(1, "Burd", "KNN")])

        assert treatments.code_for("Burd", "KNN") == 1
        assert treatments.code_for("Carh", "KNN") == 2

    def test_label(self) -> None:
        """Label joins descriptor and method."""
        assert TreatmentLevel(3, "Burd", "KNN").label == "Burd/KNN"


class TestAssignTreatments:
    """Tests for assign_treatments."""

    def test_codes(self, metric_table: pd.DataFrame) -> None:
        """Each (descriptor, method) pair gets one code."""
        coded, treatments = assign_treatments(metric_table)

        assert list(coded["Trmt"]) == [1, 2, 3, 4, 1, 2, 3, 4]
        assert treatments.descriptors == ["Burd", "Carh"]
        assert not treatments.single_descriptor

    def test_input_unchanged(self, metric_table: pd.DataFrame) -> None:
        """Original table is not modified."""
        assign_treatments(metric_table)

        assert "Trmt" not in metric_table.columns


class TestImputeMissing:
    """Tests for impute_missing."""

    def test_treatment_mean(self, metric_table: pd.DataFrame) -> None:
        """Missing value takes its treatment's mean over other splits."""
        coded, _ = assign_treatments(metric_table)
        imputed, summary = impute_missing(coded, "R2")

        assert imputed.loc[5, "R2"] == pytest.approx(0.6)
        assert summary.num_imputed == 1
        assert summary.degenerate == []
        assert np.isnan(coded.loc[5, "R2"])

    def test_order_independent(self, metric_table: pd.DataFrame) -> None:
        """Shuffling rows does not change imputed values."""
        metric_table.loc[1, "R2"] = np.nan
        metric_table.loc[3, "R2"] = np.nan
        coded, _ = assign_treatments(metric_table)

        imputed, _ = impute_missing(coded, "R2")
        shuffled, _ = impute_missing(coded.sample(frac=1.0, random_state=0), "R2")

        pd.testing.assert_series_equal(imputed["R2"], shuffled["R2"].sort_index())

    def test_degenerate_treatment(self, metric_table: pd.DataFrame) -> None:
        """Treatment missing in every split becomes 0 with a warning."""
        metric_table.loc[[1, 5], "R2"] = np.nan
        coded, _ = assign_treatments(metric_table)

        with pytest.warns(DegenerateTreatmentWarning, match="Treatment 2"):
            imputed, summary = impute_missing(coded, "R2")

        assert summary.degenerate == [2]
        assert imputed.loc[1, "R2"] == 0.0
        assert imputed.loc[5, "R2"] == 0.0

    def test_no_missing_is_noop(self, metric_table: pd.DataFrame) -> None:
        """Complete tables pass through unchanged."""
        metric_table = metric_table.fillna(0.6)
        coded, _ = assign_treatments(metric_table)

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            imputed, summary = impute_missing(coded, "R2")

        assert summary.num_imputed == 0
        pd.testing.assert_frame_equal(imputed, coded)

    def test_idempotent(self, metric_table: pd.DataFrame) -> None:
        """Imputing twice changes nothing the second time."""
        coded, _ = assign_treatments(metric_table)
        once, _ = impute_missing(coded, "R2")
        twice, summary = impute_missing(once, "R2")

        assert summary.num_imputed == 0
        pd.testing.assert_frame_equal(once, twice)
