# src/seriesshift/utils/sampling.py

"""Adaptive sampling that bounds the size of a series before detection.

Every method returns a ``SampledSeries`` whose points keep their original
positions and original indices, in ascending order, and never more than
``max_points`` of them. Series that already fit are returned unchanged with
method ``none``.

Methods:
---------
1. uniform: stride n / max_points, index round(i * step)
2. systematic: the same stride starting from a random phase in [0, step)
3. stratified: max_points equal-width index buckets, middle element of each
4. peak-preserving: strict local maxima and minima first, the remainder filled
   with an even stride over the untouched indices
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import logging
import numpy as np
import numpy.typing as npt

from ..changepoint.events import SampledSeries, SamplePoint, SamplingMethod

logger = logging.getLogger(__name__)

Indices = npt.NDArray[np.int64]
PointsLike = Union[SampledSeries, Sequence[SamplePoint]]

REDUCING_METHODS = (
    SamplingMethod.UNIFORM,
    SamplingMethod.SYSTEMATIC,
    SamplingMethod.STRATIFIED,
    SamplingMethod.PEAK_PRESERVING,
)


def parse_sampling_method(method: Union[str, SamplingMethod]) -> SamplingMethod:
    """Convert a sampling method tag into a ``SamplingMethod``.

    Raises:
        ValueError: If the tag does not name a reducing method.
    """
    try:
        parsed = SamplingMethod(method)
    except ValueError:
        parsed = None
    if parsed not in REDUCING_METHODS:
        valid = [m.value for m in REDUCING_METHODS]
        raise ValueError(f"Unknown sampling method: {method}. Must be one of {valid}")
    return parsed


@dataclass(frozen=True)
class SamplingConfig:
    """Configuration for the sampler.

    Attributes:
        max_points: Upper bound on the number of points kept
        method: Sampling method used when the series is too long
        preserve_edges: Always keep the first and last point
        seed: Seed for the random phase of systematic sampling
    """

    max_points: int = 2000
    method: SamplingMethod = SamplingMethod.UNIFORM
    preserve_edges: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.max_points < 2:
            raise ValueError(f"Max points must be at least 2, got {self.max_points}")
        object.__setattr__(self, "method", parse_sampling_method(self.method))


def recommended_sampling(data_size: int) -> SamplingConfig:
    """Sampling preset by series length.

    Args:
        data_size: Number of points in the series

    Returns:
        uniform over every point up to 1000 points, uniform 1000 up to 5000,
        systematic 1500 up to 20000 and peak-preserving 2000 beyond.
    """
    if data_size <= 1000:
        return SamplingConfig(max_points=max(data_size, 2), method=SamplingMethod.UNIFORM)
    if data_size <= 5000:
        return SamplingConfig(max_points=1000, method=SamplingMethod.UNIFORM)
    if data_size <= 20000:
        return SamplingConfig(max_points=1500, method=SamplingMethod.SYSTEMATIC)
    return SamplingConfig(max_points=2000, method=SamplingMethod.PEAK_PRESERVING)


def sample(
    points: PointsLike,
    max_points: int = 2000,
    method: Union[str, SamplingMethod] = SamplingMethod.UNIFORM,
    preserve_edges: bool = True,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> SampledSeries:
    """Reduce a series to at most ``max_points`` points.

    Args:
        points: Points sorted by position, or a ``SampledSeries``
        max_points: Upper bound on the number of points kept
        method: Sampling method
        preserve_edges: Always keep the first and last point
        seed: Seed for the systematic phase when ``rng`` is not given
        rng: Random generator for the systematic phase

    Returns:
        The sampled series.

    Raises:
        ValueError: If the method is unknown or max_points is below 2.
    """
    config = SamplingConfig(
        max_points=max_points, method=method, preserve_edges=preserve_edges, seed=seed
    )
    return apply_sampling(points, config, rng=rng)


def apply_sampling(
    points: PointsLike,
    config: SamplingConfig,
    rng: Optional[np.random.Generator] = None,
) -> SampledSeries:
    """Reduce a series according to a ``SamplingConfig``.

    A ``SampledSeries`` that is already reduced keeps its original size, and
    keeps its method when it needs no further reduction.
    """
    if isinstance(points, SampledSeries):
        incoming = points
        if len(incoming) <= config.max_points:
            return incoming
        original_size = incoming.original_size
        points = incoming.points
    else:
        points = tuple(points)
        original_size = len(points)
    n = len(points)

    if n <= config.max_points:
        return SampledSeries(points=points, original_size=n, sampled_size=n)

    method = config.method
    if method == SamplingMethod.UNIFORM:
        indices = _uniform_indices(n, config.max_points, config.preserve_edges)
    elif method == SamplingMethod.SYSTEMATIC:
        if rng is None:
            rng = np.random.default_rng(config.seed)
        indices = _systematic_indices(n, config.max_points, config.preserve_edges, rng)
    elif method == SamplingMethod.STRATIFIED:
        indices = _stratified_indices(n, config.max_points, config.preserve_edges)
    else:
        values = _numeric_values(points)
        if values is None:
            logger.warning(
                "Peak-preserving sampling needs finite numeric values, "
                "falling back to uniform sampling"
            )
            method = SamplingMethod.UNIFORM
            indices = _uniform_indices(n, config.max_points, config.preserve_edges)
        else:
            indices = _peak_preserving_indices(
                values, config.max_points, config.preserve_edges
            )

    kept = tuple(points[i] for i in indices)
    logger.debug(f"Sampled {n} points to {len(kept)} with {method.value} sampling")
    return SampledSeries(
        points=kept,
        original_size=original_size,
        sampled_size=len(kept),
        method=method,
        is_reduced=True,
    )


def sample_for_change_point(points: PointsLike, max_points: int = 2000) -> SampledSeries:
    """Peak-preserving sampling with edges, suited to change point detection."""
    return sample(
        points,
        max_points=max_points,
        method=SamplingMethod.PEAK_PRESERVING,
        preserve_edges=True,
    )


def _round_half_up(x: npt.NDArray[np.float64]) -> Indices:
    return np.floor(x + 0.5).astype(np.int64)


def _finish(indices: Indices, n: int) -> Indices:
    indices = indices[(indices >= 0) & (indices < n)]
    return np.unique(indices)


def _uniform_indices(n: int, max_points: int, preserve_edges: bool) -> Indices:
    step = n / max_points
    if preserve_edges:
        interior = _round_half_up(np.arange(1, max_points - 1) * step)
        indices = np.concatenate(([0], interior, [n - 1]))
    else:
        indices = _round_half_up(np.arange(max_points) * step)
    return _finish(indices, n)


def _systematic_indices(
    n: int, max_points: int, preserve_edges: bool, rng: np.random.Generator
) -> Indices:
    step = n / max_points
    phase = float(rng.uniform(0.0, step))
    if preserve_edges:
        interior = np.floor(phase + np.arange(1, max_points - 1) * step).astype(np.int64)
        indices = np.concatenate(([0], interior, [n - 1]))
    else:
        indices = np.floor(phase + np.arange(max_points) * step).astype(np.int64)
    return _finish(indices, n)


def _stratified_indices(n: int, max_points: int, preserve_edges: bool) -> Indices:
    if preserve_edges:
        buckets = max_points - 2
        first, last = 1, n - 1
    else:
        buckets = max_points
        first, last = 0, n

    middles: List[int] = []
    if buckets > 0:
        bounds = first + (np.arange(buckets + 1) * (last - first)) // buckets
        for lo, hi in zip(bounds[:-1], bounds[1:]):
            if hi > lo:
                middles.append(int((lo + hi) // 2))

    indices = np.array(middles, dtype=np.int64)
    if preserve_edges:
        indices = np.concatenate(([0], indices, [n - 1]))
    return _finish(indices, n)


def _numeric_values(points: Sequence[SamplePoint]) -> Optional[npt.NDArray[np.float64]]:
    """Values of the points, or None if any of them is not a finite number."""
    try:
        values = np.array([p.value for p in points], dtype=np.float64)
    except (AttributeError, TypeError, ValueError):
        return None
    if not np.all(np.isfinite(values)):
        return None
    return values


def _peak_preserving_indices(
    values: npt.NDArray[np.float64], max_points: int, preserve_edges: bool
) -> Indices:
    n = len(values)
    middle = values[1:-1]
    peaks = np.flatnonzero((middle > values[:-2]) & (middle > values[2:])) + 1
    valleys = np.flatnonzero((middle < values[:-2]) & (middle < values[2:])) + 1
    edges = np.array([0, n - 1] if preserve_edges else [], dtype=np.int64)

    important = np.unique(np.concatenate((edges, peaks, valleys)))
    if len(important) <= max_points:
        remaining = max_points - len(important)
        if remaining > 0:
            untouched = np.setdiff1d(np.arange(n), important, assume_unique=True)
            if len(untouched) > 0:
                picks = _round_half_up(
                    np.linspace(0, len(untouched) - 1, min(remaining, len(untouched)))
                )
                important = np.union1d(important, untouched[picks])
        return important

    # Highest peaks first, then deepest valleys
    ranked_peaks = peaks[np.argsort(-values[peaks], kind="stable")]
    ranked_valleys = valleys[np.argsort(values[valleys], kind="stable")]
    budget = max_points - len(edges)
    chosen = ranked_peaks[:budget]
    if len(chosen) < budget:
        chosen = np.concatenate((chosen, ranked_valleys[: budget - len(chosen)]))
    return np.unique(np.concatenate((edges, chosen)))
