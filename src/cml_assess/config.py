"""Assessment configuration."""

from __future__ import annotations

from dataclasses import dataclass

from cml_assess.errors import InvalidDepthError


@dataclass
class AssessmentConfig:
    """Configuration for metric computation and split comparison.

    Attributes:
        metrics: Performance measures to compute. The first one is the
            primary metric used by the split ANOVA.
        m: Evaluation depth (number of tests). None selects the default:
            min(300, ceil(n/4)) for enhancement, n for everything else.
        thresh: Probability above which an observation is classified as 1.
        show_progress: Show a progress bar while iterating splits.
    """

    metrics: tuple[str, ...] | str = ("enhancement",)
    m: int | None = None
    thresh: float = 0.5
    show_progress: bool = False

    def __post_init__(self) -> None:
        """Normalize metric names and validate ranges."""
        if isinstance(self.metrics, str):
            self.metrics = (self.metrics,)
        # Same metric requested twice yields a single column
        self.metrics = tuple(dict.fromkeys(self.metrics))
        if not self.metrics:
            msg = "At least one metric must be requested"
            raise ValueError(msg)

        if not 0.0 < self.thresh < 1.0:
            msg = f"thresh must be in (0, 1), got {self.thresh}"
            raise ValueError(msg)

        if self.m is not None and self.m < 1:
            msg = f"m must be a positive integer, got {self.m}"
            raise InvalidDepthError(msg)

    @property
    def metric(self) -> str:
        """Primary metric."""
        return self.metrics[0]
