# tests/test_changepoint/test_ewma.py

"""Tests for the EWMA change point detector."""

import sys
import pytest
import numpy as np
from pathlib import Path

# Add source root to Python path
src_root = str(Path(__file__).parent.parent.parent / "src")
if src_root not in sys.path:
    sys.path.append(src_root)

from seriesshift.changepoint import ChangeType, EWMAConfig, EWMADetector
from seriesshift.utils import build_series


# Test EWMAConfig validation
def test_ewma_config_validation():
    """Test validation of EWMAConfig parameters."""
    EWMAConfig()
    EWMAConfig(lambda_param=1.0, threshold=2.5, cooldown=0)

    with pytest.raises(ValueError, match="Lambda must be in range"):
        EWMAConfig(lambda_param=0)
    with pytest.raises(ValueError, match="Lambda must be in range"):
        EWMAConfig(lambda_param=1.5)
    with pytest.raises(ValueError, match="Threshold must be positive"):
        EWMAConfig(threshold=0)
    with pytest.raises(ValueError, match="Min errors must be in range"):
        EWMAConfig(min_errors=30, error_window=20)
    with pytest.raises(ValueError, match="Cooldown must be non-negative"):
        EWMAConfig(cooldown=-1)
    with pytest.raises(ValueError, match="Confidence scale must be positive"):
        EWMAConfig(confidence_scale=0)


# Test a sudden jump
def test_detects_jump():
    """Test that a sudden jump is flagged at the jump with full confidence."""
    rng = np.random.default_rng(1)
    values = np.concatenate([rng.normal(0, 0.1, 50), rng.normal(10, 0.1, 50)])
    events = EWMADetector().detect(build_series(values))

    at_jump = [e for e in events if e.index == 50]
    assert len(at_jump) == 1
    assert at_jump[0].change_type == ChangeType.level_increase
    assert at_jump[0].confidence == pytest.approx(1.0)


# Test steady trends
def test_linear_trend_has_no_events():
    """Test that the lag of the EWMA on a steady trend is not flagged."""
    assert EWMADetector().detect(build_series(0.5 * np.arange(100))) == []


# Test cooldown
def test_cooldown_suppresses_neighbours():
    """Test that no two events are closer than the cooldown period."""
    rng = np.random.default_rng(5)
    values = np.concatenate(
        [rng.normal(0, 0.1, 40), rng.normal(10, 0.1, 3), rng.normal(-10, 0.1, 40)]
    )
    config = EWMAConfig(cooldown=5)
    events = EWMADetector(config).detect(build_series(values))

    indices = [e.index for e in events]
    assert indices
    assert all(b - a > config.cooldown for a, b in zip(indices, indices[1:]))


# Test confidence scaling
def test_confidence_scale():
    """Test that confidence is the normalised error over scale times threshold."""
    rng = np.random.default_rng(6)
    values = np.concatenate([rng.normal(0, 1, 60), rng.normal(8, 1, 60)])
    series = build_series(values)

    strict = EWMADetector(EWMAConfig(confidence_scale=1.0)).detect(series)
    assert strict
    assert all(e.confidence == pytest.approx(1.0) for e in strict)

    relaxed = EWMADetector(EWMAConfig(confidence_scale=100.0)).detect(series)
    assert relaxed
    assert all(e.confidence < 0.5 for e in relaxed)
