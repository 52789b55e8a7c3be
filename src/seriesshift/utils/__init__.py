"""Utility functions for series construction and sampling."""

from .sampling import (
    SamplingConfig,
    apply_sampling,
    parse_sampling_method,
    recommended_sampling,
    sample,
    sample_for_change_point,
)
from .series import build_series, series_from_frame

__all__ = [
    "SamplingConfig",
    "apply_sampling",
    "parse_sampling_method",
    "recommended_sampling",
    "sample",
    "sample_for_change_point",
    "build_series",
    "series_from_frame",
]
