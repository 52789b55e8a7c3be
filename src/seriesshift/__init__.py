"""Change point detection over sampled numeric series."""

# changepoint must be imported before utils; the sampler imports its data model.
from .changepoint import (
    Algorithm,
    ChangePointEngine,
    ChangePointEvent,
    ChangeType,
    DetectionResult,
    DetectionSummary,
    SampledSeries,
    SamplePoint,
    SamplingMethod,
    detect_change_points,
)
from .utils import SamplingConfig, build_series, recommended_sampling, sample

__version__ = "0.1.0"

__all__ = [
    "Algorithm",
    "ChangePointEngine",
    "ChangePointEvent",
    "ChangeType",
    "DetectionResult",
    "DetectionSummary",
    "SampledSeries",
    "SamplePoint",
    "SamplingMethod",
    "detect_change_points",
    "SamplingConfig",
    "build_series",
    "recommended_sampling",
    "sample",
]
