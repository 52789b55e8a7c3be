# tests/test_changepoint/test_trend.py

"""Tests for the trend change detector."""

import sys
import pytest
import numpy as np
from pathlib import Path

# Add source root to Python path
src_root = str(Path(__file__).parent.parent.parent / "src")
if src_root not in sys.path:
    sys.path.append(src_root)

from seriesshift.changepoint import ChangeType, TrendConfig, TrendDetector
from seriesshift.utils import build_series


# Test TrendConfig validation
def test_trend_config_validation():
    """Test validation of TrendConfig parameters."""
    TrendConfig()
    TrendConfig(window_size=10, threshold=0.5)

    with pytest.raises(ValueError, match="Window size must be at least 2"):
        TrendConfig(window_size=1)
    with pytest.raises(ValueError, match="Threshold must be positive"):
        TrendConfig(threshold=0)
    with pytest.raises(ValueError, match="Max candidates must be at least 1"):
        TrendConfig(max_candidates=0)


# Test a peak
def test_triangle_peak():
    """Test that the apex of a triangle is reported as a peak."""
    values = np.concatenate([np.arange(50.0), 49.0 - np.arange(50.0)])
    events = TrendDetector().detect(build_series(values))

    assert len(events) == 1
    assert abs(events[0].index - 50) <= 1
    assert events[0].change_type == ChangeType.peak
    assert events[0].before_stat.slope > 0
    assert events[0].after_stat.slope < 0


# Test a valley
def test_v_shape_valley():
    """Test that the bottom of a V shape is reported as a valley."""
    values = np.concatenate([49.0 - np.arange(50.0), np.arange(50.0)])
    events = TrendDetector().detect(build_series(values))

    assert len(events) == 1
    assert events[0].change_type == ChangeType.valley


# Test the start of a trend
def test_start_increase():
    """Test that a flat series turning upwards is a trend start."""
    values = np.concatenate([np.zeros(50), np.arange(1.0, 51.0)])
    events = TrendDetector().detect(build_series(values))

    assert len(events) == 1
    assert abs(events[0].index - 50) <= 2
    assert events[0].change_type == ChangeType.start_increase


# Test steady trends
def test_steady_trend_has_no_events():
    """Test that a constant slope never triggers."""
    assert TrendDetector().detect(build_series(3.0 * np.arange(100))) == []
