# src/seriesshift/changepoint/binary_segmentation.py

"""Change point detection by recursive binary segmentation.

Ranges [start, end) are processed from a stack. For each range every split k
leaving at least ``min_segment_size`` points on both sides is scored by

    score(k) = Var(x[start:k]) + Var(x[k:end])

and the best split is accepted when

    confidence = 1 - score / Var(x)  >  min_confidence

and the split removes at least ``min_gain`` of the range's own squared error.
The classic criterion accepts on confidence alone; the default ``min_gain`` of
0.5 is stricter, and ``min_gain=0`` restores the classic rule.
Both halves of an accepted split are pushed back onto the stack.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

import logging
import numpy as np

from .base import BaseDetector
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
class BinarySegmentationConfig:
    """Configuration for binary segmentation.

    Attributes:
        min_segment_size: Minimum points on each side of a split (default: max(3, n // 20))
        min_confidence: Minimum confidence for a split to be accepted
        min_gain: Minimum fraction of the range's squared error removed by a split
            (0 accepts on confidence alone)
        max_change_points: Optional cap on the number of accepted splits
    """

    min_segment_size: Optional[int] = None
    min_confidence: float = 0.1
    min_gain: float = 0.5
    max_change_points: Optional[int] = None

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.min_segment_size is not None and self.min_segment_size < 1:
            raise ValueError(
                f"Min segment size must be at least 1, got {self.min_segment_size}"
            )
        if not 0 <= self.min_confidence < 1:
            raise ValueError(
                f"Min confidence must be in range [0, 1), got {self.min_confidence}"
            )
        if not 0 <= self.min_gain < 1:
            raise ValueError(f"Min gain must be in range [0, 1), got {self.min_gain}")
        if self.max_change_points is not None and self.max_change_points < 1:
            raise ValueError(
                f"Max change points must be at least 1, got {self.max_change_points}"
            )

    def resolve(self, n: int) -> "BinarySegmentationConfig":
        if self.min_segment_size is not None:
            return self
        return replace(self, min_segment_size=max(3, n // 20))


class BinarySegmentationDetector(BaseDetector):
    """Greedy recursive splitting on combined within-segment variance."""

    algorithm = Algorithm.BINARY_SEGMENTATION
    config_class = BinarySegmentationConfig

    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        n = len(values)
        config = self.config.resolve(n)
        min_size = config.min_segment_size
        moments = PrefixMoments(values)
        global_variance = moments.variance(0, n)
        if global_variance < EPSILON:
            return []

        events = []
        stack = [(0, n)]
        while stack:
            start, end = stack.pop()
            if end - start < 2 * min_size:
                continue
            range_cost = moments.cost(start, end)
            if range_cost / (end - start) < EPSILON:
                continue

            splits = np.arange(start + min_size, end - min_size + 1)
            left_var = moments.costs_from(start, splits) / (splits - start)
            right_var = moments.costs_to(splits, end) / (end - splits)
            scores = left_var + right_var
            best = int(np.argmin(scores))
            split = int(splits[best])

            confidence = 1.0 - float(scores[best]) / global_variance
            gain = 1.0 - (moments.cost(start, split) + moments.cost(split, end)) / range_cost
            if confidence <= config.min_confidence or gain < config.min_gain:
                logger.debug(
                    f"Rejected split {split} in [{start}, {end}): "
                    f"confidence={confidence:.3f}, gain={gain:.3f}"
                )
                continue

            before = SegmentStats(
                mean=moments.mean(start, split), variance=moments.variance(start, split)
            )
            after = SegmentStats(
                mean=moments.mean(split, end), variance=moments.variance(split, end)
            )
            if after.mean > before.mean:
                change_type = ChangeType.level_increase
            elif after.mean < before.mean:
                change_type = ChangeType.level_decrease
            else:
                change_type = ChangeType.variance_change
            events.append(
                self._event(series, split, confidence, change_type, before, after)
            )
            if (
                config.max_change_points is not None
                and len(events) >= config.max_change_points
            ):
                break

            stack.append((start, split))
            stack.append((split, end))

        return events
