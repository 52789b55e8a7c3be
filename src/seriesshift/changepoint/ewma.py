# src/seriesshift/changepoint/ewma.py

"""Change point detection using the EWMA (Exponentially Weighted Moving Average) method.

The EWMA acts as an adaptive one-step predictor of the series:

    z_i = λ·x_i + (1 - λ)·z_{i-1},   z_0 = mean of the first few points

The prediction error e_i = x_i - z_{i-1} is normalised by the root mean square
of the last ``error_window`` errors (the local prediction error standard
deviation). A point is flagged when the normalised error exceeds the
threshold and either the local trend changes or the error is at least twice
the threshold. Confidence is normalised / (confidence_scale · threshold),
clipped to 1; ``confidence_scale=1`` scores every flagged point as certain.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, List

import logging
import math
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
from .window import EPSILON, PrefixRegression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EWMAConfig:
    """Configuration for the EWMA change point detector.

    Attributes:
        lambda_param: Smoothing parameter (0 < lambda ≤ 1)
        threshold: Normalised prediction error needed to flag a point
        seed_size: Number of leading points averaged to seed the EWMA
        error_window: Number of recent errors used for the local standard deviation
        min_errors: Errors required before any point can be flagged
        cooldown: Points skipped after a detection
        trend_window: Width of the regression windows used by the trend gate
        trend_gate: Minimum slope change, in standard errors of the slope difference
        confidence_scale: Normalised error, in thresholds, that maps to full confidence
    """

    lambda_param: float = 0.3
    threshold: float = 3.0
    seed_size: int = 5
    error_window: int = 20
    min_errors: int = 3
    cooldown: int = 5
    trend_window: int = 5
    trend_gate: float = 3.5
    confidence_scale: float = 2.0

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.lambda_param <= 0 or self.lambda_param > 1:
            raise ValueError(f"Lambda must be in range (0, 1], got {self.lambda_param}")
        if self.threshold <= 0:
            raise ValueError(f"Threshold must be positive, got {self.threshold}")
        if self.seed_size < 1:
            raise ValueError(f"Seed size must be at least 1, got {self.seed_size}")
        if self.error_window < 2:
            raise ValueError(
                f"Error window must be at least 2, got {self.error_window}"
            )
        if self.min_errors < 1 or self.min_errors > self.error_window:
            raise ValueError(
                f"Min errors must be in range [1, error_window], got {self.min_errors}"
            )
        if self.cooldown < 0:
            raise ValueError(f"Cooldown must be non-negative, got {self.cooldown}")
        if self.trend_window < 2:
            raise ValueError(
                f"Trend window must be at least 2, got {self.trend_window}"
            )
        if self.trend_gate < 0:
            raise ValueError(f"Trend gate must be non-negative, got {self.trend_gate}")
        if self.confidence_scale <= 0:
            raise ValueError(
                f"Confidence scale must be positive, got {self.confidence_scale}"
            )

    def resolve(self, n: int) -> "EWMAConfig":
        return self


class EWMADetector(BaseDetector):
    """Detector class for identifying change points using the EWMA algorithm.

    Main steps:
    1. Seed the EWMA with the mean of the first points
    2. Compute the one-step prediction error before each update
    3. Normalise the error by the local error standard deviation
    4. Report a change point when the normalised error is large and backed by
       a trend change (or is very large)
    """

    algorithm = Algorithm.EWMA
    config_class = EWMAConfig

    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        config = self.config
        n = len(values)
        scale = float(np.std(values))
        noise = noise_level(values)
        if scale < EPSILON:
            return []

        lam = config.lambda_param
        seed = min(config.seed_size, n)
        ewma = float(np.mean(values[:seed]))
        errors: Deque[float] = deque(maxlen=config.error_window)
        regression = PrefixRegression(values)
        window = config.trend_window
        last_event = -math.inf

        events = []
        for i in range(seed, n):
            x = float(values[i])
            error = x - ewma

            if len(errors) >= config.min_errors and i - last_event > config.cooldown:
                local_std = math.sqrt(sum(e * e for e in errors) / len(errors))
                normalized = abs(error) / (local_std + EPSILON)
                if normalized > config.threshold and (
                    normalized > 2 * config.threshold
                    or trend_gate(regression, i, window, noise, config.trend_gate)
                ):
                    before_trend, after_trend = flanking_trends(regression, i, window)
                    events.append(
                        self._event(
                            series,
                            i,
                            normalized / (config.confidence_scale * config.threshold),
                            ChangeType.level_increase
                            if error > 0
                            else ChangeType.level_decrease,
                            SegmentStats(mean=ewma, slope=before_trend),
                            SegmentStats(
                                mean=regression.mean(i, i + window), slope=after_trend
                            ),
                        )
                    )
                    last_event = i

            ewma = lam * x + (1 - lam) * ewma
            errors.append(error)

        return events
