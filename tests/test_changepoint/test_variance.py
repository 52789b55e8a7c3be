# tests/test_changepoint/test_variance.py

"""Tests for the variance change detector."""

import sys
import pytest
import numpy as np
from pathlib import Path

# Add source root to Python path
src_root = str(Path(__file__).parent.parent.parent / "src")
if src_root not in sys.path:
    sys.path.append(src_root)

from seriesshift.changepoint import ChangeType, VarianceConfig, VarianceDetector
from seriesshift.utils import build_series


# Test VarianceConfig validation
def test_variance_config_validation():
    """Test validation of VarianceConfig parameters."""
    VarianceConfig()
    VarianceConfig(window_size=15, threshold=2.0)

    with pytest.raises(ValueError, match="Window size must be at least 2"):
        VarianceConfig(window_size=1)
    with pytest.raises(ValueError, match="Threshold must be greater than 1"):
        VarianceConfig(threshold=1.0)


# Test volatility increase
def test_increase_volatility():
    """Test that a jump in volatility is reported as an increase."""
    rng = np.random.default_rng(21)
    values = np.concatenate([rng.normal(0, 0.1, 100), rng.normal(0, 2.0, 100)])
    events = VarianceDetector().detect(build_series(values))

    increases = [e for e in events if e.change_type == ChangeType.increase_volatility]
    assert increases
    assert any(abs(e.index - 100) <= 20 for e in increases)
    assert all(0.0 <= e.confidence <= 1.0 for e in events)


# Test volatility decrease
def test_decrease_volatility():
    """Test that a drop in volatility is reported as a decrease."""
    rng = np.random.default_rng(22)
    values = np.concatenate([rng.normal(0, 2.0, 100), rng.normal(0, 0.1, 100)])
    events = VarianceDetector().detect(build_series(values))

    decreases = [e for e in events if e.change_type == ChangeType.decrease_volatility]
    assert any(abs(e.index - 100) <= 20 for e in decreases)
    event = decreases[0]
    assert event.before_stat.variance > event.after_stat.variance


# Test stationary noise
def test_stationary_noise():
    """Test that stationary noise is not flagged with a high threshold."""
    rng = np.random.default_rng(23)
    values = rng.normal(0, 1.0, 300)
    config = VarianceConfig(window_size=30, threshold=10.0)
    assert VarianceDetector(config).detect(build_series(values)) == []
