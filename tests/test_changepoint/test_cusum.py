# tests/test_changepoint/test_cusum.py

"""Tests for the CUSUM change point detector."""

import sys
import pytest
import numpy as np
from pathlib import Path

# Add source root to Python path
src_root = str(Path(__file__).parent.parent.parent / "src")
if src_root not in sys.path:
    sys.path.append(src_root)

from seriesshift.changepoint import ChangeType, CUSUMConfig, CUSUMDetector
from seriesshift.utils import build_series


# Test CUSUMConfig validation
def test_cusum_config_validation():
    """Test validation of CUSUMConfig parameters."""
    CUSUMConfig()
    CUSUMConfig(threshold=2.0, delta=0.1)

    with pytest.raises(ValueError, match="Threshold must be positive"):
        CUSUMConfig(threshold=0)
    with pytest.raises(ValueError, match="Delta must be non-negative"):
        CUSUMConfig(delta=-0.5)
    with pytest.raises(ValueError, match="Threshold sigma must be positive"):
        CUSUMConfig(threshold_sigma=-1)
    with pytest.raises(ValueError, match="Trend window must be at least 2"):
        CUSUMConfig(trend_window=1)


# Test a level shift
def test_detects_level_shift():
    """Test that an event is reported close to a level shift."""
    rng = np.random.default_rng(0)
    values = np.concatenate([rng.normal(0, 0.5, 100), rng.normal(5, 0.5, 100)])
    events = CUSUMDetector().detect(build_series(values))

    near = [e for e in events if abs(e.index - 100) <= 8]
    assert near
    assert any(e.change_type == ChangeType.level_increase for e in near)
    assert all(0.0 <= e.confidence <= 1.0 for e in events)


# Test inputs without shifts
def test_flat_and_linear_inputs():
    """Test that constant and purely linear series produce no events."""
    assert CUSUMDetector().detect(build_series([3.0] * 50)) == []
    assert CUSUMDetector().detect(build_series(2.0 * np.arange(100) + 1)) == []


# Test ordering
def test_events_are_ordered():
    """Test that events come out ordered by original index."""
    rng = np.random.default_rng(3)
    values = np.concatenate(
        [rng.normal(0, 0.3, 80), rng.normal(4, 0.3, 80), rng.normal(-2, 0.3, 80)]
    )
    events = CUSUMDetector().detect(build_series(values))
    indices = [e.original_index for e in events]
    assert indices == sorted(indices)


# Test a single noisy step
def test_single_step_gives_clustered_increases():
    """Test that one upward step yields a few increases located at the step."""
    rng = np.random.default_rng(0)
    values = np.concatenate([rng.normal(0, 0.5, 100), rng.normal(5, 0.5, 100)])
    events = CUSUMDetector().detect(build_series(values))

    assert 1 <= len(events) <= 2
    assert all(e.change_type == ChangeType.level_increase for e in events)
    assert all(abs(e.index - 100) <= 3 for e in events)


# Test the direction of the reported change
def test_step_down_is_level_decrease():
    """Test that a downward step is reported by the negative accumulator."""
    rng = np.random.default_rng(2)
    values = np.concatenate([rng.normal(5, 0.5, 100), rng.normal(0, 0.5, 100)])
    events = CUSUMDetector().detect(build_series(values))

    assert events
    assert all(e.change_type == ChangeType.level_decrease for e in events)


# Test pure noise
def test_pure_noise_has_no_events():
    """Test that stationary noise raises no events."""
    rng = np.random.default_rng(4)
    values = rng.normal(0, 1, 2000)
    assert CUSUMDetector().detect(build_series(values)) == []
