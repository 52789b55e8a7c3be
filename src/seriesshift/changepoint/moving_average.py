# src/seriesshift/changepoint/moving_average.py

"""Change point detection by comparing adjacent moving-average windows.

The series is detrended first so that a steady trend is not mistaken for a
level shift. Two adjacent windows of width w slide over the residuals; a
candidate index is flagged when

1. the window means differ by more than ``threshold_multiplier`` residual
   standard deviations, and
2. the local trend changes across the index (the trend gate), which filters
   differences produced by noise alone.

Neighbouring flags closer than one window are merged into the strongest one.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

import logging
import numpy as np

from .base import BaseDetector, consolidate, flanking_trends, noise_level, trend_gate
from .events import (
    Algorithm,
    Array,
    ChangePointEvent,
    ChangeType,
    SampledSeries,
    SegmentStats,
)
from .window import EPSILON, PrefixRegression, detrend, window_means

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovingAverageConfig:
    """Configuration for the moving-average detector.

    Attributes:
        window_size: Width of each comparison window (default: max(3, n // 10))
        threshold_multiplier: Mean difference threshold in residual standard deviations
        trend_window: Width of the regression windows used by the trend gate
        trend_gate: Minimum slope change, in standard errors of the slope difference
    """

    window_size: Optional[int] = None
    threshold_multiplier: float = 1.5
    trend_window: int = 5
    trend_gate: float = 3.5

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.window_size is not None and self.window_size < 2:
            raise ValueError(f"Window size must be at least 2, got {self.window_size}")
        if self.threshold_multiplier <= 0:
            raise ValueError(
                f"Threshold multiplier must be positive, got {self.threshold_multiplier}"
            )
        if self.trend_window < 2:
            raise ValueError(
                f"Trend window must be at least 2, got {self.trend_window}"
            )
        if self.trend_gate < 0:
            raise ValueError(f"Trend gate must be non-negative, got {self.trend_gate}")

    def resolve(self, n: int) -> "MovingAverageConfig":
        if self.window_size is not None:
            return self
        return replace(self, window_size=max(3, n // 10))


class MovingAverageDetector(BaseDetector):
    """Detector flagging level shifts between adjacent moving-average windows."""

    algorithm = Algorithm.MOVING_AVERAGE
    config_class = MovingAverageConfig

    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        n = len(values)
        config = self.config.resolve(n)
        window = config.window_size
        if 2 * window > n:
            logger.debug(f"Window {window} too wide for {n} points")
            return []

        residuals = detrend(values)
        std = float(np.std(residuals))
        if std < EPSILON:
            return []

        threshold = std * config.threshold_multiplier
        means = window_means(residuals, window)
        regression = PrefixRegression(values)
        trend_window = min(config.trend_window, window)
        noise = noise_level(values)
        logger.debug(
            f"Moving average: window={window}, threshold={threshold:.6g}, "
            f"trend_window={trend_window}, noise={noise:.6g}"
        )

        events = []
        for i in range(window, n - window + 1):
            diff = means[i] - means[i - window]
            if abs(diff) <= threshold:
                continue
            if not trend_gate(regression, i, trend_window, noise, config.trend_gate):
                continue

            before_trend, after_trend = flanking_trends(regression, i, trend_window)
            confidence = min(abs(diff) / threshold, 3.0) / 3.0
            change_type = (
                ChangeType.level_increase if diff > 0 else ChangeType.level_decrease
            )
            events.append(
                self._event(
                    series,
                    i,
                    confidence,
                    change_type,
                    SegmentStats(
                        mean=regression.mean(i - window, i), slope=before_trend
                    ),
                    SegmentStats(
                        mean=regression.mean(i, i + window), slope=after_trend
                    ),
                )
            )

        return consolidate(events, window)
