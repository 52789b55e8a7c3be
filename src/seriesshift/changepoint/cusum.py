# src/seriesshift/changepoint/cusum.py

"""Change point detection using the CUSUM (Cumulative Sum) method.

The series is detrended and two one-sided accumulators track sustained
deviations of the residuals r_i from their mean μ:

    S⁺_i = max(0, S⁺_{i-1} + r_i - μ - δ)
    S⁻_i = min(0, S⁻_{i-1} + r_i - μ + δ)

A crossing of S⁺ > h or |S⁻| > h is an alarm. The change is located at the
onset of the excursion, the first index after the accumulator last sat at
zero, and is reported when the local trend changes there (the trend gate).
The accumulator that crossed gives the direction: S⁺ an increase, S⁻ a
decrease. Both accumulators restart from zero after every alarm, reported or
not.
"""

from dataclasses import dataclass
from typing import List, Optional

import logging
import numpy as np

from .base import BaseDetector, flanking_trends, noise_level, trend_gate
from .events import (
    Algorithm,
    Array,
    ChangePointEvent,
    ChangeType,
    SampledSeries,
    SegmentStats,
)
from .window import EPSILON, PrefixRegression, detrend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CUSUMConfig:
    """Configuration for the CUSUM change point detector.

    Attributes:
        threshold: Control limit h; None means threshold_sigma residual std
        delta: Allowed slack δ; None means k residual std
        threshold_sigma: Control limit in residual standard deviations
        k: Slack in residual standard deviations
        trend_window: Width of the regression windows used by the trend gate
        trend_gate: Minimum slope change, in standard errors of the slope difference
    """

    threshold: Optional[float] = None
    delta: Optional[float] = None
    threshold_sigma: float = 5.0
    k: float = 0.5
    trend_window: int = 5
    trend_gate: float = 3.5

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.threshold is not None and self.threshold <= 0:
            raise ValueError(f"Threshold must be positive, got {self.threshold}")
        if self.delta is not None and self.delta < 0:
            raise ValueError(f"Delta must be non-negative, got {self.delta}")
        if self.threshold_sigma <= 0:
            raise ValueError(
                f"Threshold sigma must be positive, got {self.threshold_sigma}"
            )
        if self.k < 0:
            raise ValueError(f"Sensitivity parameter k must be non-negative, got {self.k}")
        if self.trend_window < 2:
            raise ValueError(
                f"Trend window must be at least 2, got {self.trend_window}"
            )
        if self.trend_gate < 0:
            raise ValueError(f"Trend gate must be non-negative, got {self.trend_gate}")

    def resolve(self, n: int) -> "CUSUMConfig":
        return self


class CUSUMDetector(BaseDetector):
    """Detector class for identifying change points using the CUSUM algorithm.

    Main steps:
    1. Detrend the series and compute residual mean and standard deviation
    2. Accumulate positive and negative deviations separately
    3. On an alarm, report the onset of the excursion when the trend gate
       passes there
    4. Reset both sums after every alarm
    """

    algorithm = Algorithm.CUSUM
    config_class = CUSUMConfig

    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        config = self.config
        residuals = detrend(values)
        mean = float(np.mean(residuals))
        std = float(np.std(residuals))
        if std < EPSILON:
            return []

        h = config.threshold if config.threshold is not None else config.threshold_sigma * std
        delta = config.delta if config.delta is not None else config.k * std
        regression = PrefixRegression(values)
        noise = noise_level(values)
        window = config.trend_window
        logger.debug(
            f"CUSUM: h={h:.6g}, delta={delta:.6g}, residual std={std:.6g}, "
            f"noise={noise:.6g}"
        )

        events = []
        cusum_pos = 0.0
        cusum_neg = 0.0
        # First index of the current excursion of each accumulator
        pos_start = 0
        neg_start = 0
        for i, residual in enumerate(residuals):
            deviation = residual - mean
            cusum_pos = max(0.0, cusum_pos + deviation - delta)
            cusum_neg = min(0.0, cusum_neg + deviation + delta)
            if cusum_pos == 0.0:
                pos_start = i + 1
            if cusum_neg == 0.0:
                neg_start = i + 1

            if cusum_pos <= h and -cusum_neg <= h:
                continue

            increase = cusum_pos >= -cusum_neg
            onset = min(pos_start if increase else neg_start, i)
            magnitude = cusum_pos if increase else -cusum_neg
            gate_end = min(onset + 1, i)
            if any(
                trend_gate(regression, j, window, noise, config.trend_gate)
                for j in range(onset, gate_end + 1)
            ):
                before_trend, after_trend = flanking_trends(regression, onset, window)
                events.append(
                    self._event(
                        series,
                        onset,
                        min(magnitude / h, 3.0) / 3.0,
                        ChangeType.level_increase
                        if increase
                        else ChangeType.level_decrease,
                        SegmentStats(
                            mean=regression.mean(onset - window, onset),
                            slope=before_trend,
                        ),
                        SegmentStats(
                            mean=regression.mean(onset, onset + window),
                            slope=after_trend,
                        ),
                    )
                )
            else:
                logger.debug(
                    f"CUSUM: alarm at {i} (onset {onset}) rejected by the trend gate"
                )

            cusum_pos = 0.0
            cusum_neg = 0.0
            pos_start = i + 1
            neg_start = i + 1

        return events
