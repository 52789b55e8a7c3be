# src/seriesshift/changepoint/trend.py

"""Trend change detection from local regression slopes.

For each candidate index i the least squares slopes of the windows
[i - w, i) and [i, i + w) are computed in O(1) from prefix sums. A point is
flagged when the slopes differ by more than the threshold; the default
threshold scales with the typical step size of the series,
max(std(Δx), mean|Δx|), so a steady trend never triggers.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

import logging
import math
import numpy as np

from .base import BaseDetector, consolidate
from .events import (
    Algorithm,
    Array,
    ChangePointEvent,
    ChangeType,
    SampledSeries,
    SegmentStats,
)
from .window import EPSILON, PrefixRegression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendConfig:
    """Configuration for the trend detector.

    Attributes:
        window_size: Width of the regression windows (default: max(5, n // 20))
        threshold: Absolute slope change needed to flag a point
        threshold_multiplier: Default threshold in units of the typical step size
        max_candidates: Upper bound on evaluated candidate indices
        neighborhood: Samples inspected to confirm peaks and valleys
    """

    window_size: Optional[int] = None
    threshold: Optional[float] = None
    threshold_multiplier: float = 1.0
    max_candidates: int = 500
    neighborhood: int = 20

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.window_size is not None and self.window_size < 2:
            raise ValueError(f"Window size must be at least 2, got {self.window_size}")
        if self.threshold is not None and self.threshold <= 0:
            raise ValueError(f"Threshold must be positive, got {self.threshold}")
        if self.threshold_multiplier <= 0:
            raise ValueError(
                f"Threshold multiplier must be positive, got {self.threshold_multiplier}"
            )
        if self.max_candidates < 1:
            raise ValueError(
                f"Max candidates must be at least 1, got {self.max_candidates}"
            )
        if self.neighborhood < 2:
            raise ValueError(
                f"Neighborhood must be at least 2, got {self.neighborhood}"
            )

    def resolve(self, n: int) -> "TrendConfig":
        if self.window_size is not None:
            return self
        return replace(self, window_size=max(5, n // 20))


class TrendDetector(BaseDetector):
    """Detector flagging changes of the local slope."""

    algorithm = Algorithm.TREND
    config_class = TrendConfig

    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        n = len(values)
        config = self.config.resolve(n)
        window = config.window_size
        if 2 * window > n or float(np.std(values)) < EPSILON:
            return []

        if config.threshold is not None:
            threshold = config.threshold
        else:
            steps = np.diff(values)
            scale = max(float(np.std(steps)), float(np.mean(np.abs(steps))))
            threshold = max(config.threshold_multiplier * scale, EPSILON)

        regression = PrefixRegression(values)
        count = n - 2 * window + 1
        stride = max(1, math.ceil(count / config.max_candidates))
        logger.debug(
            f"Trend: window={window}, threshold={threshold:.6g}, stride={stride}"
        )

        events = []
        for i in range(window, n - window + 1, stride):
            before = regression.slope(i - window, i)
            after = regression.slope(i, i + window)
            change = abs(after - before)
            if change <= threshold:
                continue

            events.append(
                self._event(
                    series,
                    i,
                    min(change / threshold, 3.0) / 3.0,
                    self._classify(values, i, before, after, threshold, config.neighborhood),
                    SegmentStats(mean=regression.mean(i - window, i), slope=before),
                    SegmentStats(mean=regression.mean(i, i + window), slope=after),
                )
            )

        return consolidate(events, max(window, stride))

    @staticmethod
    def _classify(
        values: Array,
        index: int,
        before: float,
        after: float,
        threshold: float,
        neighborhood: int,
    ) -> ChangeType:
        """Name the kind of slope change, confirming extrema on a bounded neighbourhood."""
        half = neighborhood // 2
        local = values[max(0, index - half) : min(len(values), index + half + 1)]
        around = values[max(0, index - 1) : index + 2]
        flat = threshold / 2

        if before > 0 and after < 0 and around.max() >= local.max():
            return ChangeType.peak
        if before < 0 and after > 0 and around.min() <= local.min():
            return ChangeType.valley
        if abs(before) < flat and after > flat:
            return ChangeType.start_increase
        if abs(before) < flat and after < -flat:
            return ChangeType.start_decrease
        return ChangeType.trend_change
