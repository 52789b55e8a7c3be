# src/seriesshift/changepoint/base.py

"""Base class and shared helpers for the change point detectors."""

from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type, final

import logging
import math
import numpy as np

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

# Series shorter than this produce no events.
MIN_POINTS = 10


def clamp_confidence(value: float) -> float:
    """Clip a score into [0, 1]; +inf maps to 1 and NaN or -inf to 0."""
    if not math.isfinite(value):
        return 1.0 if value > 0 else 0.0
    return float(min(1.0, max(0.0, value)))


def flanking_trends(
    regression: PrefixRegression, index: int, window: int
) -> Tuple[float, float]:
    """Slopes of the window ending at ``index`` (inclusive) and the window starting there."""
    before = regression.slope(index - window, index + 1)
    after = regression.slope(index, index + window)
    return before, after


def noise_level(values: Array) -> float:
    """Robust estimate of the point-to-point noise standard deviation.

    Uses the median absolute deviation of the first differences, which a
    steady trend or a few level shifts barely move. Falls back to the mean
    absolute deviation when more than half of the differences are identical.
    """
    diffs = np.diff(np.asarray(values, dtype=np.float64))
    if len(diffs) == 0:
        return 0.0
    spread = np.abs(diffs - np.median(diffs))
    sigma = 1.4826 * float(np.median(spread))
    if sigma < EPSILON:
        sigma = math.sqrt(math.pi / 2) * float(np.mean(spread))
    return sigma / math.sqrt(2)


def slope_difference_error(noise: float, window: int) -> float:
    """Standard error of the difference of two ``window``-point slopes under noise.

    A least squares slope over w points has variance 12·σ²/(w³ - w); the two
    flanking windows are treated as independent.
    """
    if window < 2:
        return 0.0
    return noise * math.sqrt(24.0 / (window ** 3 - window))


def trend_gate(
    regression: PrefixRegression,
    index: int,
    window: int,
    noise: float,
    ratio: float,
) -> bool:
    """Whether the local trend changes enough at ``index`` to back a detection.

    The gate passes when the slopes on either side differ by more than
    ``ratio`` standard errors of the slope difference, for noise level
    ``noise``. A steady trend has equal slopes on both sides and never passes.
    """
    before, after = flanking_trends(regression, index, window)
    limit = max(ratio * slope_difference_error(noise, window), EPSILON)
    return abs(after - before) > limit


def consolidate(
    events: List[ChangePointEvent], min_distance: int
) -> List[ChangePointEvent]:
    """Keep the highest-confidence event of every cluster of nearby events.

    Events closer than ``min_distance`` (in sampled indices) to the previous
    event of the cluster belong to the same cluster.
    """
    if not events:
        return []

    ordered = sorted(events, key=lambda e: e.index)
    result = [ordered[0]]
    last_index = ordered[0].index
    for event in ordered[1:]:
        if event.index - last_index < min_distance:
            if event.confidence > result[-1].confidence:
                result[-1] = event
        else:
            result.append(event)
        last_index = event.index
    return result


class BaseDetector(ABC):
    """Abstract base class for change point detectors.

    Subclasses set ``algorithm`` and ``config_class`` and implement ``_detect``,
    which receives the values of a series with at least ``MIN_POINTS`` points.
    Detectors hold no state between calls.
    """

    algorithm: ClassVar[Algorithm]
    config_class: ClassVar[Type[Any]]

    def __init__(self, config: Optional[Any] = None):
        """Initialize the detector with configuration.

        Args:
            config: Detector configuration. If None, uses default configuration.
        """
        if config is None:
            config = self.config_class()
        if not isinstance(config, self.config_class):
            raise ValueError(
                f"{type(self).__name__} expects {self.config_class.__name__}, "
                f"got {type(config).__name__}"
            )
        self.config = config
        logger.debug(f"Initialized {self.algorithm.value} detector with: {config}")

    @final
    def detect(self, series: SampledSeries) -> List[ChangePointEvent]:
        """Run the detector over a series.

        Args:
            series: Sampled series to analyse.

        Returns:
            Events ordered by original index; empty for fewer than 10 points.

        Raises:
            ValueError: If the series contains non-finite values.
        """
        if len(series) < MIN_POINTS:
            logger.debug(
                f"{self.algorithm.value}: {len(series)} points, need {MIN_POINTS}"
            )
            return []

        values = series.values
        if not np.all(np.isfinite(values)):
            raise ValueError("Series contains non-finite values")

        events = self._detect(values, series)
        events.sort(key=lambda e: (e.original_index, e.index))
        logger.debug(f"{self.algorithm.value}: {len(events)} change points")
        return events

    def resolved_options(self, n: int) -> Dict[str, Any]:
        """Configuration with length dependent defaults filled in for ``n`` points."""
        return asdict(self.config.resolve(n))

    @abstractmethod
    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        """Detect change points in ``values`` (the values of ``series``)."""

    def _event(
        self,
        series: SampledSeries,
        index: int,
        confidence: float,
        change_type: ChangeType,
        before: Optional[SegmentStats] = None,
        after: Optional[SegmentStats] = None,
    ) -> ChangePointEvent:
        point = series.points[index]
        return ChangePointEvent(
            index=int(index),
            position=point.position,
            value=point.value,
            original_index=point.original_index,
            confidence=clamp_confidence(confidence),
            algorithm=self.algorithm,
            change_type=change_type,
            before_stat=before or SegmentStats(),
            after_stat=after or SegmentStats(),
        )
