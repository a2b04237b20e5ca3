"""Tests for report formatting and the MCS plot payload."""

import json
from pathlib import Path

import numpy as np
import pandas as pd

from cml_assess.evaluation.anova import VarianceDecomposer
from cml_assess.evaluation.report import (
    McsPlotData,
    build_mcs_data,
    format_anova_report,
    format_lsmeans_table,
)
from cml_assess.evaluation.statistics import MultipleComparisonEngine
from cml_assess.evaluation.treatments import assign_treatments


def _mcs(single_descriptor: bool = False) -> McsPlotData:
    return McsPlotData(
        metric="auc",
        lsmeans=np.array([0.8, 0.7]),
        p_values=np.array([[np.nan, 0.03], [0.03, np.nan]]),
        codes=[1, 2],
        descriptors=["Burd"] if single_descriptor else ["Burd", "Carh"],
        methods=["KNN", "RF"] if single_descriptor else ["KNN"],
        treatment_descriptors=["Burd", "Burd"] if single_descriptor else ["Burd", "Carh"],
        treatment_methods=["KNN", "RF"] if single_descriptor else ["KNN", "KNN"],
        single_descriptor=single_descriptor,
    )


class TestMcsPlotData:
    """Tests for McsPlotData."""

    def test_labels_multi_descriptor(self) -> None:
        """Labels combine descriptor and method."""
        assert _mcs().labels == ["Burd/KNN", "Carh/KNN"]

    def test_labels_single_descriptor(self) -> None:
        """Labels are method names for a single descriptor."""
        assert _mcs(single_descriptor=True).labels == ["KNN", "RF"]

    def test_to_dict_nan_is_none(self) -> None:
        """NaN diagonal serializes as null."""
        data = _mcs().to_dict()

        assert data["p_values"][0][0] is None
        assert data["p_values"][0][1] == 0.03
        assert data["lsmeans"] == [0.8, 0.7]

    def test_save(self, tmp_path: Path) -> None:
        """Payload written as valid JSON."""
        path = tmp_path / "mcs.json"
        _mcs().save(path)

        loaded = json.loads(path.read_text())
        assert loaded["metric"] == "auc"
        assert loaded["codes"] == [1, 2]


class TestBuildMcsData:
    """Tests for build_mcs_data."""

    def test_from_comparisons(self, oracle_table: pd.DataFrame) -> None:
        """Treatment labels follow the comparison codes."""
        coded, treatments = assign_treatments(oracle_table.drop(columns="Trmt"))
        anova = VarianceDecomposer("enhancement").fit(coded, single_descriptor=True)
        comparisons = MultipleComparisonEngine("enhancement").compare(coded, anova)

        mcs = build_mcs_data("enhancement", comparisons, treatments)

        assert mcs.single_descriptor
        assert mcs.labels == ["KNN", "RF"]
        assert mcs.p_values.shape == (2, 2)


class TestFormatAnovaReport:
    """Tests for the ANOVA text report."""

    def test_sections(self, oracle_table: pd.DataFrame) -> None:
        """Report has both tables and the summary line."""
        anova = VarianceDecomposer("enhancement").fit(oracle_table, metric="enhancement")
        text = format_anova_report(anova)

        assert "Analysis of Variance on: 'enhancement'" in text
        assert "Split and Descriptor/Method combination" in text
        for source in ("Model", "Error", "Total", "Split", "Desc/Meth"):
            assert source in text
        assert "R-Square" in text
        assert "0.9412" in text

    def test_single_descriptor(self, oracle_table: pd.DataFrame) -> None:
        """Single descriptor reports Method as the factor."""
        anova = VarianceDecomposer("enhancement").fit(
            oracle_table, metric="enhancement", single_descriptor=True
        )
        text = format_anova_report(anova)

        assert "Using factors: Split and Method" in text
        assert "Desc/Meth" not in text

    def test_model_row_values(self, oracle_table: pd.DataFrame) -> None:
        """Model row shows DF, SS, MS and F."""
        anova = VarianceDecomposer("enhancement").fit(oracle_table, metric="enhancement")
        model_line = next(
            line for line in format_anova_report(anova).splitlines() if line.startswith("Model")
        )

        assert model_line.split()[:5] == ["Model", "2", "64.0000", "32.0000", "8.000"]


class TestFormatLsmeansTable:
    """Tests for the markdown lsmeans table."""

    def test_rows(self) -> None:
        """One row per treatment."""
        text = format_lsmeans_table(_mcs())

        assert "| 1 | Burd/KNN | 0.8000 |" in text
        assert "| 2 | Carh/KNN | 0.7000 |" in text
