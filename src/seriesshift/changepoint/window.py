# src/seriesshift/changepoint/window.py

"""Window arithmetic shared by every detector.

Mathematical Framework:
---------------------
1. Incremental window mean:
   S_{i+1} = S_i - x_i + x_{i+w}, so each window mean costs O(1) after the first.
2. Prefix-sum regression:
   With P_k(f) = Σ_{j<k} f(j) for f ∈ {1, x, y, x·y, x²}, the least squares slope
   of any range [s, e) is
       b = (n·Sxy - Sx·Sy) / (n·Sxx - Sx²)
   where every S is a difference of two prefix sums, giving O(1) regression queries.
3. Segment moments:
   Prefix sums of y and y² give mean, variance and the squared error cost
   C(s, e) = Σ(y - ȳ)² = Syy - Sy²/n of any range in O(1).

x and y are centred on the whole-series means before the prefix sums are
accumulated; slopes and variances are shift invariant and the centring keeps the
prefix differences well conditioned for long series.
"""

from typing import Tuple

import numpy as np
import numpy.typing as npt

Array = npt.NDArray[np.float64]

# Additive guard for every ratio and variance denominator.
EPSILON = 1e-10


def window_means(values: Array, window: int) -> Array:
    """Mean of every window [i, i + window) using a running sum.

    Args:
        values: Input sequence
        window: Window width

    Returns:
        Array of length len(values) - window + 1; empty if the window does not fit.
    """
    values = np.asarray(values, dtype=np.float64)
    n = len(values)
    if window <= 0 or window > n:
        return np.empty(0, dtype=np.float64)

    means = np.empty(n - window + 1, dtype=np.float64)
    running = float(np.sum(values[:window]))
    means[0] = running / window
    for i in range(1, n - window + 1):
        running += values[i + window - 1] - values[i - 1]
        means[i] = running / window
    return means


class PrefixRegression:
    """O(1) least squares fits of y on the index over arbitrary ranges."""

    def __init__(self, values: Array):
        values = np.asarray(values, dtype=np.float64)
        n = len(values)
        self._n = n
        self._x0 = (n - 1) / 2.0 if n else 0.0
        self._y0 = float(np.mean(values)) if n else 0.0

        x = np.arange(n, dtype=np.float64) - self._x0
        y = values - self._y0

        def prefix(arr: Array) -> Array:
            out = np.zeros(n + 1, dtype=np.float64)
            np.cumsum(arr, out=out[1:])
            return out

        self._count = np.arange(n + 1, dtype=np.float64)
        self._sx = prefix(x)
        self._sy = prefix(y)
        self._sxy = prefix(x * y)
        self._sxx = prefix(x * x)

    def __len__(self) -> int:
        return self._n

    def _sums(self, start: int, end: int) -> Tuple[float, float, float, float, float]:
        return (
            self._count[end] - self._count[start],
            self._sx[end] - self._sx[start],
            self._sy[end] - self._sy[start],
            self._sxy[end] - self._sxy[start],
            self._sxx[end] - self._sxx[start],
        )

    def slope(self, start: int, end: int) -> float:
        """Slope of the regression line over [start, end); 0 for fewer than 2 points."""
        start, end = max(0, start), min(self._n, end)
        if end - start < 2:
            return 0.0
        n, sx, sy, sxy, sxx = self._sums(start, end)
        denom = n * sxx - sx * sx
        if abs(denom) < EPSILON:
            return 0.0
        return float((n * sxy - sx * sy) / denom)

    def mean(self, start: int, end: int) -> float:
        start, end = max(0, start), min(self._n, end)
        if end <= start:
            return 0.0
        n, _, sy, _, _ = self._sums(start, end)
        return float(sy / n + self._y0)

    def fit(self, start: int, end: int) -> Tuple[float, float]:
        """Slope and intercept (in original index units) over [start, end)."""
        start, end = max(0, start), min(self._n, end)
        if end <= start:
            return 0.0, 0.0
        slope = self.slope(start, end)
        n, sx, _, _, _ = self._sums(start, end)
        mean_x = sx / n + self._x0
        return slope, self.mean(start, end) - slope * mean_x


def detrend(values: Array) -> Array:
    """Remove one global linear trend (index as x) from the series."""
    values = np.asarray(values, dtype=np.float64)
    n = len(values)
    if n < 2:
        return values - (np.mean(values) if n else 0.0)
    slope, intercept = PrefixRegression(values).fit(0, n)
    return values - (slope * np.arange(n, dtype=np.float64) + intercept)


class PrefixMoments:
    """O(1) mean, variance and squared error cost of arbitrary ranges."""

    def __init__(self, values: Array):
        values = np.asarray(values, dtype=np.float64)
        n = len(values)
        self._n = n
        self._y0 = float(np.mean(values)) if n else 0.0
        y = values - self._y0
        self._s = np.zeros(n + 1, dtype=np.float64)
        self._ss = np.zeros(n + 1, dtype=np.float64)
        np.cumsum(y, out=self._s[1:])
        np.cumsum(y * y, out=self._ss[1:])

    def __len__(self) -> int:
        return self._n

    def mean(self, start: int, end: int) -> float:
        length = end - start
        if length <= 0:
            return 0.0
        return float((self._s[end] - self._s[start]) / length + self._y0)

    def cost(self, start: int, end: int) -> float:
        """Squared error around the range mean, i.e. variance × length."""
        length = end - start
        if length <= 0:
            return 0.0
        s = self._s[end] - self._s[start]
        ss = self._ss[end] - self._ss[start]
        return float(max(0.0, ss - s * s / length))

    def variance(self, start: int, end: int) -> float:
        """Population variance of [start, end)."""
        length = end - start
        if length <= 0:
            return 0.0
        return self.cost(start, end) / length

    def costs_to(self, starts: npt.NDArray[np.int64], end: int) -> Array:
        """Vectorised ``cost(s, end)`` for every s in ``starts``."""
        lengths = (end - starts).astype(np.float64)
        s = self._s[end] - self._s[starts]
        ss = self._ss[end] - self._ss[starts]
        return self._vector_cost(s, ss, lengths)

    def costs_from(self, start: int, ends: npt.NDArray[np.int64]) -> Array:
        """Vectorised ``cost(start, e)`` for every e in ``ends``."""
        lengths = (ends - start).astype(np.float64)
        s = self._s[ends] - self._s[start]
        ss = self._ss[ends] - self._ss[start]
        return self._vector_cost(s, ss, lengths)

    @staticmethod
    def _vector_cost(s: Array, ss: Array, lengths: Array) -> Array:
        safe = np.where(lengths > 0, lengths, 1.0)
        cost = ss - np.where(lengths > 0, s * s / safe, 0.0)
        return np.maximum(cost, 0.0)
