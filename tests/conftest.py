"""Shared pytest fixtures for cml-assess tests."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from cml_assess.data import SplitPredictions, TrainResult

NUM_SPLITS = 3


def _matrix(ids: np.ndarray, columns: dict[str, np.ndarray]) -> pd.DataFrame:
    return pd.DataFrame({"id": ids, **columns})


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture
def continuous_result(rng: np.random.Generator) -> TrainResult:
    """Continuous response, 3 splits, 2 descriptor sets, 3 methods each.

    Method noise levels differ (KNN < RF < PLS) and every split draws
    fresh noise so values vary across splits.
    """
    n = 40
    ids = np.arange(n)
    y = rng.normal(5.0, 1.0, n)
    noise = {"KNN": 0.2, "RF": 0.6, "PLS": 1.5}

    splits = []
    for _ in range(NUM_SPLITS):
        preds = [
            _matrix(
                ids,
                {
                    method: y + rng.normal(0.0, sd * (1 + 0.5 * d), n)
                    for method, sd in noise.items()
                },
            )
            for d in range(2)
        ]
        splits.append(SplitPredictions(preds=preds))

    return TrainResult(responses=y, splits=splits, des_names=["Burden", "Carhart"])


@pytest.fixture
def binary_result(rng: np.random.Generator) -> TrainResult:
    """Binary response, 3 splits, 2 generic descriptor sets.

    Probability matrices hold RF and LR; prediction matrices hold RF and
    SVM class labels, so RF appears in both passes.
    """
    n = 60
    ids = np.arange(n)
    y = (np.arange(n) % 3 == 0).astype(float)

    splits = []
    for _ in range(NUM_SPLITS):
        probs = []
        preds = []
        for _d in range(2):
            rf = np.clip(0.3 + 0.4 * y + rng.normal(0.0, 0.15, n), 0.0, 1.0)
            lr = np.clip(0.35 + 0.25 * y + rng.normal(0.0, 0.2, n), 0.0, 1.0)
            svm = np.where(rng.random(n) < 0.8, y, 1.0 - y)
            probs.append(_matrix(ids, {"RF": rf, "LR": lr}))
            preds.append(_matrix(ids, {"RF": (rf > 0.5).astype(float), "SVM": svm}))
        splits.append(SplitPredictions(preds=preds, probs=probs))

    return TrainResult(responses=y, splits=splits)


@pytest.fixture
def oracle_table() -> pd.DataFrame:
    """2 splits x 2 treatments with known sums of squares.

    Values 10, 20 (split 1) and 12, 18 (split 2): total SS 68, treatment
    SS 64, split SS 0, error SS 4.
    """
    return pd.DataFrame(
        {
            "Split": pd.Categorical([1, 1, 2, 2]),
            "Descriptor": ["Burd", "Burd", "Burd", "Burd"],
            "Method": ["KNN", "RF", "KNN", "RF"],
            "enhancement": [10.0, 20.0, 12.0, 18.0],
            "Trmt": [1, 2, 1, 2],
        }
    )


@pytest.fixture
def bundle_path(tmp_path: Path, continuous_result: TrainResult) -> Path:
    """Continuous prediction bundle written to disk."""
    path = tmp_path / "bundle.json"
    continuous_result.save(path)
    return path
