"""Performance measures for every split, descriptor set and method."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

import pandas as pd
from tqdm import tqdm

from cml_assess.config import AssessmentConfig
from cml_assess.data.predictions import SplitPredictions, TrainResult
from cml_assess.evaluation.metrics import (
    DEPTH_METRICS,
    check_depth,
    check_metric,
    compute_metric,
)

logger = logging.getLogger(__name__)

# Initial enhancement is conventionally taken at 300 tests
MAX_ENHANCEMENT_DEPTH = 300
GENERIC_DESCRIPTOR_NAME = "Descriptor Set"
KEY_COLUMNS = ["Split", "Descriptor", "Method"]

RecordKey = tuple[int, str, str]


def default_depth(metric: str, n: int, m: int | None) -> int | None:
    """Evaluation depth for a metric.

    Enhancement uses min(300, ceil(n/4)) tests unless m is given. Other
    depth-aware measures use all observations unless m is given. Measures
    computed over the full ranking return None.
    """
    if metric not in DEPTH_METRICS:
        return None
    if m is not None:
        return check_depth(m, n)
    if metric == "enhancement":
        return min(MAX_ENHANCEMENT_DEPTH, math.ceil(n / 4))
    return None


def abbreviate_descriptors(des_names: Sequence[str]) -> list[str]:
    """Shorten descriptor set names so they fit on the MCS plot.

    Generic "Descriptor Set" names become Des1, Des2, ...; other names are
    cut to four characters. If cutting makes two names collide the generic
    labels are used instead.
    """
    generic = [f"Des{i}" for i in range(1, len(des_names) + 1)]
    if not des_names or GENERIC_DESCRIPTOR_NAME in des_names[0]:
        return generic

    short = [name[:4] for name in des_names]
    if len(set(short)) != len(short):
        logger.warning("Abbreviated descriptor names collide (%s); using %s", short, generic)
        return generic
    return short


class MetricTableBuilder:
    """Accumulates metric values keyed by (Split, Descriptor, Method).

    The first value stored for a key and metric wins; later duplicates are
    dropped. Rows keep first-insertion order.
    """

    def __init__(self, metrics: Sequence[str]) -> None:
        self.metrics = list(metrics)
        self._rows: dict[RecordKey, dict[str, float]] = {}

    def add(self, key: RecordKey, metric: str, value: float) -> bool:
        """Store a value. Returns False if the key already had one."""
        row = self._rows.setdefault(key, {})
        if metric in row:
            return False
        row[metric] = value
        return True

    def __len__(self) -> int:
        return len(self._rows)

    def to_frame(self) -> pd.DataFrame:
        """Assemble the tidy table with Split as a categorical factor."""
        records = [
            {
                "Split": split,
                "Descriptor": desc,
                "Method": method,
                **{metric: values.get(metric, math.nan) for metric in self.metrics},
            }
            for (split, desc, method), values in self._rows.items()
        ]
        frame = pd.DataFrame.from_records(records, columns=KEY_COLUMNS + self.metrics)
        splits = sorted(frame["Split"].unique())
        frame["Split"] = pd.Categorical(frame["Split"], categories=splits)
        return frame


class PerformanceEngine:
    """Computes performance measures across all splits.

    Usage:
        engine = PerformanceEngine(AssessmentConfig(metrics=("R2", "rho")))
        table = engine.compute(train_result)
    """

    def __init__(self, config: AssessmentConfig | None = None) -> None:
        """Initialize engine.

        Args:
            config: Metrics, depth and threshold (default: enhancement).
        """
        self.config = config or AssessmentConfig()

    def compute(self, result: TrainResult) -> pd.DataFrame:
        """Evaluate every method column of every split and descriptor set.

        For a binary response the probability matrices are evaluated before
        the prediction matrices, so a method present in both keeps its
        probability-based value.

        Args:
            result: Response and per-split predictions.

        Returns:
            DataFrame with columns Split, Descriptor, Method and one column
            per requested metric.

        Raises:
            UnsupportedMetricError: If a metric does not apply to the response.
            InvalidDepthError: If m exceeds the number of observations.
        """
        binary = bool(result.classify)
        metrics = list(self.config.metrics)
        for metric in metrics:
            check_metric(metric, binary)
        if self.config.m is not None:
            check_depth(self.config.m, result.n_obs)
        depths = {metric: default_depth(metric, result.n_obs, self.config.m) for metric in metrics}
        logger.info("Evaluation depths: %s", depths)

        labels = abbreviate_descriptors(result.des_names)
        builder = MetricTableBuilder(metrics)
        y = result.responses

        splits: Iterable[tuple[int, SplitPredictions]] = enumerate(result.splits, start=1)
        if self.config.show_progress:
            splits = tqdm(list(splits), desc="Evaluating splits")

        for split_id, split in splits:
            passes = [split.preds]
            if binary:
                passes = [split.probs or [], split.preds]
            logger.debug("Split %d: %d matrix passes", split_id, len(passes))

            for matrices in passes:
                for desc, matrix in zip(labels, matrices, strict=False):
                    if matrix.shape[1] <= 1:
                        continue
                    for column in matrix.columns[1:]:
                        key = (split_id, desc, str(column))
                        scores = matrix[column].to_numpy(dtype=float)
                        for metric in metrics:
                            value = compute_metric(
                                metric,
                                scores,
                                y,
                                binary=binary,
                                m=depths[metric],
                                thresh=self.config.thresh,
                            )
                            builder.add(key, metric, value)

        table = builder.to_frame()
        logger.info(
            "Computed %s for %d (split, descriptor, method) records",
            ", ".join(metrics),
            len(table),
        )
        return table


def performance(
    result: TrainResult,
    metrics: Sequence[str] | str = ("enhancement",),
    m: int | None = None,
    thresh: float = 0.5,
) -> pd.DataFrame:
    """Compute one or more performance measures for each D-M combination.

    Args:
        result: Response and per-split predictions.
        metrics: Measure name or names.
        m: Evaluation depth (None for the defaults).
        thresh: Classification threshold for binary responses.

    Returns:
        Metric table (see ``PerformanceEngine.compute``).
    """
    metric_names = (metrics,) if isinstance(metrics, str) else tuple(metrics)
    config = AssessmentConfig(metrics=metric_names, m=m, thresh=thresh)
    return PerformanceEngine(config).compute(result)
