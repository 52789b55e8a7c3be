# tests/test_sampling.py

"""Tests for the adaptive sampler."""

import sys
import pytest
import numpy as np
from pathlib import Path

# Add source root to Python path
src_root = str(Path(__file__).parent.parent / "src")
if src_root not in sys.path:
    sys.path.append(src_root)

from seriesshift.changepoint import SamplePoint, SamplingMethod
from seriesshift.utils import (
    SamplingConfig,
    build_series,
    recommended_sampling,
    sample,
    sample_for_change_point,
)

REDUCING = ["uniform", "systematic", "stratified", "peak-preserving"]


@pytest.fixture
def long_series():
    rng = np.random.default_rng(99)
    return build_series(np.cumsum(rng.normal(0, 1, 10_000)))


# Test small inputs
@pytest.mark.parametrize("method", REDUCING)
def test_small_input_unchanged(method):
    """Test that series within the limit are returned unchanged."""
    series = build_series(np.arange(100.0))
    sampled = sample(series, max_points=100, method=method)

    assert sampled.points == series.points
    assert not sampled.is_reduced
    assert sampled.method == SamplingMethod.NONE
    assert sampled.sampling_ratio == 1.0


# Test size bound and ordering
@pytest.mark.parametrize("method", REDUCING)
@pytest.mark.parametrize("preserve_edges", [True, False])
def test_output_bounded_and_ordered(long_series, method, preserve_edges):
    """Test that output never exceeds max_points and keeps original order."""
    sampled = sample(
        long_series, max_points=500, method=method, preserve_edges=preserve_edges, seed=1
    )
    indices = sampled.original_indices

    assert sampled.is_reduced
    assert len(sampled) <= 500
    assert sampled.sampled_size == len(sampled)
    assert sampled.original_size == 10_000
    assert np.all(np.diff(indices) > 0)
    assert sampled.sampling_ratio == pytest.approx(len(sampled) / 10_000)


# Test edge preservation
@pytest.mark.parametrize("method", ["uniform", "stratified", "peak-preserving", "systematic"])
def test_edges_preserved(long_series, method):
    """Test that first and last points survive sampling."""
    sampled = sample(long_series, max_points=300, method=method, seed=4)
    assert sampled.points[0].original_index == 0
    assert sampled.points[-1].original_index == 9_999


# Test exact counts
def test_uniform_and_stratified_counts(long_series):
    """Test that evenly spread methods fill the budget exactly."""
    assert len(sample(long_series, max_points=100, method="uniform")) == 100
    assert len(sample(long_series, max_points=100, method="stratified")) == 100
    assert len(sample(long_series, max_points=100, preserve_edges=False)) == 100


# Test reproducibility
def test_systematic_is_reproducible(long_series):
    """Test that seeded systematic sampling is deterministic."""
    first = sample(long_series, max_points=700, method="systematic", seed=42)
    second = sample(long_series, max_points=700, method="systematic", seed=42)
    assert np.array_equal(first.original_indices, second.original_indices)

    third = sample(
        long_series,
        max_points=700,
        method="systematic",
        rng=np.random.default_rng(42),
    )
    assert np.array_equal(first.original_indices, third.original_indices)


# Test extremes survive
def test_peak_preserving_keeps_global_maximum(long_series):
    """Test that 10,000 -> 2,000 keeps the global maximum."""
    values = long_series.values
    sampled = sample_for_change_point(long_series, max_points=2000)
    kept = set(sampled.original_indices.tolist())

    assert sampled.method == SamplingMethod.PEAK_PRESERVING
    assert len(sampled) <= 2000
    assert int(np.argmax(values)) in kept


def test_peak_preserving_underflow_is_filled():
    """Test that few extrema are topped up to the budget."""
    values = np.arange(5000.0)
    values[2500] = 10_000.0
    sampled = sample(build_series(values), max_points=100, method="peak-preserving")

    assert 2500 in set(sampled.original_indices.tolist())
    assert 90 <= len(sampled) <= 100


# Test fallback for unusable values
def test_peak_preserving_falls_back_to_uniform():
    """Test that non-finite payloads fall back to uniform sampling."""
    points = [
        SamplePoint(position=float(i), value=float("nan") if i % 7 == 0 else float(i), original_index=i)
        for i in range(3000)
    ]
    sampled = sample(points, max_points=100, method="peak-preserving")
    assert sampled.method == SamplingMethod.UNIFORM
    assert len(sampled) == 100


# Test method validation
def test_unknown_method_raises(long_series):
    """Test that unknown or non-reducing methods are rejected."""
    with pytest.raises(ValueError, match="Unknown sampling method"):
        sample(long_series, method="random")
    with pytest.raises(ValueError, match="Unknown sampling method"):
        SamplingConfig(method="none")
    with pytest.raises(ValueError, match="Max points must be at least 2"):
        SamplingConfig(max_points=1)


# Test presets
@pytest.mark.parametrize(
    "size, max_points, method",
    [
        (500, 500, SamplingMethod.UNIFORM),
        (1000, 1000, SamplingMethod.UNIFORM),
        (4000, 1000, SamplingMethod.UNIFORM),
        (15_000, 1500, SamplingMethod.SYSTEMATIC),
        (50_000, 2000, SamplingMethod.PEAK_PRESERVING),
    ],
)
def test_recommended_sampling(size, max_points, method):
    """Test the sampling preset chosen for each series length."""
    config = recommended_sampling(size)
    assert config.max_points == max_points
    assert config.method == method
    assert config.preserve_edges


# Test resampling of a reduced series
def test_resampling_keeps_provenance(long_series):
    """Test that a reduced series keeps its original size when sampled again."""
    reduced = sample(long_series, max_points=1000, method="stratified")

    unchanged = sample(reduced, max_points=2000, method="uniform")
    assert unchanged.original_size == 10_000
    assert unchanged.method == SamplingMethod.STRATIFIED
    assert unchanged.is_reduced
    assert unchanged.sampling_ratio == pytest.approx(len(reduced) / 10_000)

    smaller = sample(reduced, max_points=100, method="uniform")
    assert smaller.original_size == 10_000
    assert smaller.method == SamplingMethod.UNIFORM
    assert len(smaller) <= 100
