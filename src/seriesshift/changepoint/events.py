# src/seriesshift/changepoint/events.py

"""Data model shared by the sampler, the detectors and the engine.

A detection call works on a ``SampledSeries`` (an immutable, ordered tuple of
``SamplePoint`` objects) and produces a list of ``ChangePointEvent`` objects.
Nothing here is persisted; every object is created and discarded within a
single detection invocation.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import numpy.typing as npt

Array = npt.NDArray[np.float64]


class Algorithm(str, Enum):
    """Change point detection algorithms understood by the engine."""

    MOVING_AVERAGE = "moving_average"
    CUSUM = "cusum"
    EWMA = "ewma"
    BINARY_SEGMENTATION = "binary_segmentation"
    PELT = "pelt"
    TREND = "trend"
    VARIANCE = "variance"


class SamplingMethod(str, Enum):
    """How a series was reduced before detection."""

    NONE = "none"
    UNIFORM = "uniform"
    SYSTEMATIC = "systematic"
    STRATIFIED = "stratified"
    PEAK_PRESERVING = "peak-preserving"


class ChangeType(str, Enum):
    level_increase = "level_increase"
    level_decrease = "level_decrease"
    peak = "peak"
    valley = "valley"
    trend_change = "trend_change"
    start_increase = "start_increase"
    start_decrease = "start_decrease"
    increase_volatility = "increase_volatility"
    decrease_volatility = "decrease_volatility"
    variance_change = "variance_change"


@dataclass(frozen=True)
class SamplePoint:
    """A single observation of the series.

    Attributes:
        position: Ordinal index, numeric column value or epoch milliseconds
        value: Observed value (always finite)
        original_index: Index of the point in the unsampled series
    """

    position: float
    value: float
    original_index: int


@dataclass(frozen=True)
class SampledSeries:
    """An ordered, possibly reduced, series handed to a detector.

    Attributes:
        points: Points sorted ascending by position
        original_size: Length of the series before sampling
        sampled_size: Number of points kept
        method: Sampling method that produced the points
        is_reduced: Whether any point was dropped
    """

    points: Tuple[SamplePoint, ...]
    original_size: int
    sampled_size: int
    method: SamplingMethod = SamplingMethod.NONE
    is_reduced: bool = False

    def __len__(self) -> int:
        return len(self.points)

    @property
    def sampling_ratio(self) -> float:
        if self.original_size == 0:
            return 1.0
        return self.sampled_size / self.original_size

    @property
    def values(self) -> Array:
        return np.array([p.value for p in self.points], dtype=np.float64)

    @property
    def positions(self) -> Array:
        return np.array([p.position for p in self.points], dtype=np.float64)

    @property
    def original_indices(self) -> npt.NDArray[np.int64]:
        return np.array([p.original_index for p in self.points], dtype=np.int64)


@dataclass(frozen=True)
class SegmentStats:
    """Summary of the data on one side of a change point."""

    mean: Optional[float] = None
    slope: Optional[float] = None
    variance: Optional[float] = None

    def to_dict(self) -> Dict[str, float]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class ChangePointEvent:
    """A change point flagged by one of the detectors.

    Attributes:
        index: Index of the point inside the sampled series
        position: Position of the point (index, column value or timestamp)
        value: Observed value at the change point
        original_index: Index of the point in the unsampled series
        confidence: Algorithm specific strength of evidence in [0, 1]
        algorithm: Detector that produced the event
        change_type: Kind of change
        before_stat: Summary of the data before the change
        after_stat: Summary of the data after the change
    """

    index: int
    position: float
    value: float
    original_index: int
    confidence: float
    algorithm: Algorithm
    change_type: ChangeType
    before_stat: SegmentStats = field(default_factory=SegmentStats)
    after_stat: SegmentStats = field(default_factory=SegmentStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "position": self.position,
            "value": self.value,
            "original_index": self.original_index,
            "confidence": self.confidence,
            "algorithm": self.algorithm.value,
            "change_type": self.change_type.value,
            "before_stat": self.before_stat.to_dict(),
            "after_stat": self.after_stat.to_dict(),
        }


@dataclass(frozen=True)
class DetectionSummary:
    total_change_points: int
    average_confidence: float
    algorithm: Algorithm
    algorithm_options: Dict[str, Any]


@dataclass(frozen=True)
class DetectionResult:
    """Events, their summary and the series they were detected on."""

    events: List[ChangePointEvent]
    summary: DetectionSummary
    series: SampledSeries
