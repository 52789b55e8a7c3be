# tests/test_changepoint/test_window.py

"""Tests for the shared window arithmetic."""

import sys
import pytest
import numpy as np
from pathlib import Path

# Add source root to Python path
src_root = str(Path(__file__).parent.parent.parent / "src")
if src_root not in sys.path:
    sys.path.append(src_root)

from seriesshift.changepoint.base import noise_level, trend_gate
from seriesshift.changepoint.window import (
    PrefixMoments,
    PrefixRegression,
    detrend,
    window_means,
)


# Test running window means
def test_window_means_match_convolution():
    """Test running-sum means against a direct computation."""
    rng = np.random.default_rng(0)
    values = rng.normal(0, 1, 50)
    expected = np.convolve(values, np.ones(7) / 7, mode="valid")

    np.testing.assert_allclose(window_means(values, 7), expected, atol=1e-12)
    assert len(window_means(values, 51)) == 0
    assert len(window_means(values, 0)) == 0


# Test prefix-sum regression
def test_regression_matches_polyfit():
    """Test O(1) range fits against numpy's least squares fit."""
    rng = np.random.default_rng(1)
    values = 0.3 * np.arange(100) + rng.normal(0, 1, 100) + 1000.0
    regression = PrefixRegression(values)

    for start, end in [(0, 100), (10, 30), (55, 62)]:
        slope, intercept = np.polyfit(np.arange(start, end), values[start:end], 1)
        fitted_slope, fitted_intercept = regression.fit(start, end)
        assert fitted_slope == pytest.approx(slope, rel=1e-8)
        assert fitted_intercept == pytest.approx(intercept, rel=1e-8)
        assert regression.mean(start, end) == pytest.approx(values[start:end].mean())


# Test degenerate ranges
def test_regression_degenerate_ranges():
    """Test that ranges with fewer than two points have zero slope."""
    regression = PrefixRegression(np.arange(10.0))
    assert regression.slope(3, 4) == 0.0
    assert regression.slope(5, 5) == 0.0
    assert regression.slope(-5, 3) == pytest.approx(1.0)


# Test detrending
def test_detrend_removes_line():
    """Test that a straight line detrends to zero."""
    values = 2.5 * np.arange(40) - 7.0
    np.testing.assert_allclose(detrend(values), 0.0, atol=1e-9)


# Test prefix moments
def test_prefix_moments():
    """Test range mean, variance and squared error cost."""
    rng = np.random.default_rng(2)
    values = rng.normal(5, 2, 60)
    moments = PrefixMoments(values)

    segment = values[12:40]
    assert moments.mean(12, 40) == pytest.approx(segment.mean())
    assert moments.variance(12, 40) == pytest.approx(segment.var())
    assert moments.cost(12, 40) == pytest.approx(segment.var() * len(segment))

    starts = np.array([0, 10, 20])
    expected = [values[s:50].var() * (50 - s) for s in starts]
    np.testing.assert_allclose(moments.costs_to(starts, 50), expected, rtol=1e-9)
    ends = np.array([10, 30, 60])
    expected = [values[5:e].var() * (e - 5) for e in ends]
    np.testing.assert_allclose(moments.costs_from(5, ends), expected, rtol=1e-9)


# Test the noise estimate
def test_noise_level_ignores_trend_and_steps():
    """Test that the noise estimate is not inflated by a trend or a step."""
    rng = np.random.default_rng(12)
    noise = rng.normal(0, 0.5, 4000)
    assert noise_level(noise) == pytest.approx(0.5, rel=0.1)

    shifted = noise + 0.01 * np.arange(4000)
    shifted[2000:] += 20.0
    assert noise_level(shifted) == pytest.approx(0.5, rel=0.1)
    assert noise_level(np.full(50, 3.0)) == 0.0


# Test the trend gate
def test_trend_gate_rejects_noise():
    """Test that the gate rarely passes on noise but passes at a clean step."""
    rng = np.random.default_rng(13)
    values = rng.normal(0, 1, 2000)
    regression = PrefixRegression(values)
    sigma = noise_level(values)
    passes = [trend_gate(regression, i, 5, sigma, 3.5) for i in range(5, 1995)]
    assert np.mean(passes) < 0.01

    step = np.concatenate([np.zeros(50), np.full(50, 5.0)])
    regression = PrefixRegression(step)
    assert trend_gate(regression, 50, 5, noise_level(step), 3.5)
    assert not trend_gate(regression, 20, 5, noise_level(step), 3.5)
