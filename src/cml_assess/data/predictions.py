"""Prediction bundles produced by model training across splits.

A bundle holds the observed response plus, for every split, one prediction
matrix per descriptor set (and, for a binary response, one probability
matrix per descriptor set). Each matrix is a DataFrame whose first column
identifies the observation and whose remaining columns hold one method's
predictions, aligned with the response ordering.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt
import pandas as pd

logger = logging.getLogger(__name__)


def is_binary_response(y: npt.ArrayLike) -> bool:
    """Check whether every response value is 0 or 1."""
    values = np.unique(np.asarray(y, dtype=np.float64))
    return bool(np.isin(values, (0.0, 1.0)).all())


@dataclass
class SplitPredictions:
    """Predictions for one split (fold assignment).

    Attributes:
        preds: One prediction matrix per descriptor set.
        probs: One probability matrix per descriptor set (binary response),
            or None when no method produced probabilities.
    """

    preds: list[pd.DataFrame]
    probs: list[pd.DataFrame] | None = None


@dataclass
class TrainResult:
    """Response and per-split predictions consumed by the assessment.

    Attributes:
        responses: Observed response, length n.
        splits: Predictions for each split.
        des_names: Descriptor set display names.
        classify: Whether the response is binary. Detected from the
            response values when None.
    """

    responses: npt.NDArray[np.float64]
    splits: list[SplitPredictions]
    des_names: list[str] = field(default_factory=list)
    classify: bool | None = None

    def __post_init__(self) -> None:
        """Freeze the response and validate matrix shapes."""
        responses = np.array(self.responses, dtype=np.float64).ravel()
        responses.flags.writeable = False
        self.responses = responses

        if self.classify is None:
            self.classify = is_binary_response(responses)

        if not self.splits:
            msg = "At least one split is required"
            raise ValueError(msg)

        num_desc = len(self.splits[0].preds)
        if not self.des_names:
            self.des_names = [f"Descriptor Set {i + 1}" for i in range(num_desc)]

        for split_idx, split in enumerate(self.splits, start=1):
            self._validate_matrices(split.preds, split_idx, "preds")
            if split.probs is not None:
                self._validate_matrices(split.probs, split_idx, "probs")

    def _validate_matrices(self, matrices: list[pd.DataFrame], split: int, kind: str) -> None:
        if len(matrices) != len(self.des_names):
            msg = (
                f"Split {split} has {len(matrices)} {kind} matrices "
                f"but {len(self.des_names)} descriptor sets"
            )
            raise ValueError(msg)
        for i, matrix in enumerate(matrices):
            if matrix.shape[1] < 1:
                msg = f"Split {split} {kind}[{i}] has no identifier column"
                raise ValueError(msg)
            if matrix.shape[0] != self.n_obs:
                msg = (
                    f"Split {split} {kind}[{i}] has {matrix.shape[0]} rows, "
                    f"expected {self.n_obs}"
                )
                raise ValueError(msg)

    @property
    def n_obs(self) -> int:
        """Number of observations."""
        return len(self.responses)

    @property
    def num_splits(self) -> int:
        """Number of splits."""
        return len(self.splits)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""

        def _matrices(frames: list[pd.DataFrame] | None) -> list[dict[str, list[Any]]] | None:
            if frames is None:
                return None
            return [frame.to_dict(orient="list") for frame in frames]

        return {
            "responses": self.responses.tolist(),
            "classify": self.classify,
            "des_names": list(self.des_names),
            "splits": [
                {"preds": _matrices(split.preds), "probs": _matrices(split.probs)}
                for split in self.splits
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrainResult:
        """Build from the layout written by ``to_dict``."""

        def _frames(raw: list[dict[str, list[Any]]] | None) -> list[pd.DataFrame] | None:
            if raw is None:
                return None
            return [pd.DataFrame(columns) for columns in raw]

        splits = [
            SplitPredictions(
                preds=_frames(split["preds"]) or [],
                probs=_frames(split.get("probs")),
            )
            for split in data["splits"]
        ]
        return cls(
            responses=np.asarray(data["responses"], dtype=np.float64),
            splits=splits,
            des_names=list(data.get("des_names", [])),
            classify=data.get("classify"),
        )

    def save(self, path: Path | str) -> None:
        """Save bundle to JSON file."""
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def load(cls, path: Path | str) -> TrainResult:
        """Load bundle from JSON file."""
        data = json.loads(Path(path).read_text())
        result = cls.from_dict(data)
        logger.info(
            "Loaded %d splits x %d descriptor sets (%d observations) from %s",
            result.num_splits,
            len(result.des_names),
            result.n_obs,
            path,
        )
        return result
