# src/seriesshift/changepoint/variance.py

"""Volatility change detection from windowed variances.

For each candidate index i the variances of [i - w, i) and [i, i + w) are
compared through

    log_ratio = ln((Var_after + ε) / (Var_before + ε))

and the point is flagged when |log_ratio| > ln(threshold). The confidence
grows with the log ratio and is scaled down when the larger of the two window
variances is small compared with the variance of the whole series.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

import logging
import math

from .base import BaseDetector, consolidate
from .events import (
    Algorithm,
    Array,
    ChangePointEvent,
    ChangeType,
    SampledSeries,
    SegmentStats,
)
from .window import EPSILON, PrefixMoments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VarianceConfig:
    """Configuration for the variance detector.

    Attributes:
        window_size: Width of each variance window (default: max(10, n // 10))
        threshold: Variance ratio needed to flag a point (> 1)
        max_candidates: Upper bound on evaluated candidate indices
    """

    window_size: Optional[int] = None
    threshold: float = 4.0
    max_candidates: int = 1000

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.window_size is not None and self.window_size < 2:
            raise ValueError(f"Window size must be at least 2, got {self.window_size}")
        if self.threshold <= 1:
            raise ValueError(f"Threshold must be greater than 1, got {self.threshold}")
        if self.max_candidates < 1:
            raise ValueError(
                f"Max candidates must be at least 1, got {self.max_candidates}"
            )

    def resolve(self, n: int) -> "VarianceConfig":
        if self.window_size is not None:
            return self
        return replace(self, window_size=max(10, n // 10))


class VarianceDetector(BaseDetector):
    """Detector flagging increases and decreases of local volatility."""

    algorithm = Algorithm.VARIANCE
    config_class = VarianceConfig

    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        n = len(values)
        config = self.config.resolve(n)
        window = config.window_size
        if 2 * window > n:
            return []

        moments = PrefixMoments(values)
        global_variance = moments.variance(0, n)
        if global_variance < EPSILON:
            return []

        log_threshold = math.log(config.threshold)
        stride = max(1, math.ceil((n - 2 * window + 1) / config.max_candidates))

        events = []
        for i in range(window, n - window + 1, stride):
            before = moments.variance(i - window, i)
            after = moments.variance(i, i + window)
            log_ratio = math.log((after + EPSILON) / (before + EPSILON))
            if abs(log_ratio) <= log_threshold:
                continue

            significance = 1.0 - math.exp(-abs(log_ratio) / log_threshold)
            weight = min(1.0, max(before, after) / (global_variance + EPSILON))
            events.append(
                self._event(
                    series,
                    i,
                    significance * weight,
                    ChangeType.increase_volatility
                    if log_ratio > 0
                    else ChangeType.decrease_volatility,
                    SegmentStats(mean=moments.mean(i - window, i), variance=before),
                    SegmentStats(mean=moments.mean(i, i + window), variance=after),
                )
            )

        logger.debug(f"Variance: window={window}, {len(events)} raw flags")
        return consolidate(events, max(window, stride))
