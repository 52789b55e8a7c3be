"""Change point detectors and the detection engine."""

from .events import (
    Algorithm,
    ChangePointEvent,
    ChangeType,
    DetectionResult,
    DetectionSummary,
    SampledSeries,
    SamplePoint,
    SamplingMethod,
    SegmentStats,
)
from .base import MIN_POINTS, BaseDetector
from .moving_average import MovingAverageConfig, MovingAverageDetector
from .cusum import CUSUMConfig, CUSUMDetector
from .ewma import EWMAConfig, EWMADetector
from .binary_segmentation import BinarySegmentationConfig, BinarySegmentationDetector
from .pelt import PELTConfig, PELTDetector
from .trend import TrendConfig, TrendDetector
from .variance import VarianceConfig, VarianceDetector
from .detector import ChangePointEngine, detect_change_points, parse_algorithm

__all__ = [
    "Algorithm",
    "ChangePointEvent",
    "ChangeType",
    "DetectionResult",
    "DetectionSummary",
    "SampledSeries",
    "SamplePoint",
    "SamplingMethod",
    "SegmentStats",
    "MIN_POINTS",
    "BaseDetector",
    "MovingAverageConfig",
    "MovingAverageDetector",
    "CUSUMConfig",
    "CUSUMDetector",
    "EWMAConfig",
    "EWMADetector",
    "BinarySegmentationConfig",
    "BinarySegmentationDetector",
    "PELTConfig",
    "PELTDetector",
    "TrendConfig",
    "TrendDetector",
    "VarianceConfig",
    "VarianceDetector",
    "ChangePointEngine",
    "detect_change_points",
    "parse_algorithm",
]
