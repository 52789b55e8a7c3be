# src/seriesshift/changepoint/pelt.py

"""PELT (Pruned Exact Linear Time) change point detection.

Optimal partitioning with a per-change penalty β:

    F(0) = -β
    F(t) = min_{s} [ F(s) + C(s, t) + β ]

where C(s, t) is the squared error of x[s:t] around its mean (variance ×
length), evaluated in O(1) from cumulative sums. The change points are
recovered by backtracking the argmin s of every t.

Two modes are available:

- approximate (default): at most ``max_candidates`` evenly strided values of s
  are evaluated per t, and series longer than ``max_points`` are first
  downsampled with a fixed skip interval (indices are mapped back afterwards).
  The optimal last change point of t - 1 is always carried into the candidates
  of t. After backtracking, each change point is moved to the best split
  between its neighbours on the full series, and change points whose split
  saves no more than the penalty are dropped. Runtime is bounded; the optimum
  is only guaranteed when neither limit is hit.
- exact: the candidate set is pruned with the PELT inequality
  F(s) + C(s, t) > F(t) ⇒ s can never be optimal again, without striding or
  downsampling.

References:
----------
[1] Killick, R., Fearnhead, P., & Eckley, I. A. (2012). "Optimal Detection of
    Changepoints With a Linear Computational Cost." JASA 107(500).
"""

from dataclasses import dataclass
from typing import List, Optional

import logging
import math
import numpy as np
import numpy.typing as npt

from .base import BaseDetector
from .events import (
    Algorithm,
    Array,
    ChangePointEvent,
    ChangeType,
    SampledSeries,
    SegmentStats,
)
from .window import EPSILON, PrefixMoments, PrefixRegression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PELTConfig:
    """Configuration for the PELT detector.

    Attributes:
        penalty: Cost of adding a change point (default: 2·ln(n)·Var(x))
        min_segment_length: Minimum number of points per segment
        max_candidates: Candidate split points evaluated per step (approximate mode)
        max_points: Series longer than this are downsampled (approximate mode)
        exact: Use exact PELT pruning instead of the cost-bounded approximation
    """

    penalty: Optional[float] = None
    min_segment_length: int = 2
    max_candidates: int = 50
    max_points: int = 1000
    exact: bool = False

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.penalty is not None and self.penalty < 0:
            raise ValueError(f"Penalty must be non-negative, got {self.penalty}")
        if self.min_segment_length < 1:
            raise ValueError(
                f"Min segment length must be at least 1, got {self.min_segment_length}"
            )
        if self.max_candidates < 2:
            raise ValueError(
                f"Max candidates must be at least 2, got {self.max_candidates}"
            )
        if self.max_points < 10:
            raise ValueError(f"Max points must be at least 10, got {self.max_points}")

    def resolve(self, n: int) -> "PELTConfig":
        return self


def default_penalty(values: Array) -> float:
    """BIC-style penalty 2·ln(n)·Var(x)."""
    n = len(values)
    return 2.0 * math.log(max(n, 2)) * max(float(np.var(values)), EPSILON)


class PELTDetector(BaseDetector):
    """PELT algorithm implementation over a squared error segment cost."""

    algorithm = Algorithm.PELT
    config_class = PELTConfig

    def _detect(self, values: Array, series: SampledSeries) -> List[ChangePointEvent]:
        config = self.config
        n = len(values)
        if float(np.var(values)) < EPSILON:
            return []

        skip = 1
        data = values
        min_length = config.min_segment_length
        if not config.exact and n > config.max_points:
            skip = math.ceil(n / config.max_points)
            data = values[::skip]
            min_length = max(1, math.ceil(min_length / skip))
            logger.debug(f"PELT: downsampled {n} points by {skip} to {len(data)}")

        penalty = config.penalty if config.penalty is not None else default_penalty(data)
        change_points = self._find_changepoints(data, penalty, min_length)
        change_points = sorted({cp * skip for cp in change_points if 0 < cp * skip < n})
        if not config.exact:
            change_points = self._refine(
                values, change_points, config.min_segment_length
            )
            change_points = self._drop_weak(values, change_points, penalty * skip)
        logger.debug(f"PELT: penalty={penalty:.6g}, change points={change_points}")

        return self._build_events(values, series, change_points, penalty * skip)

    def _find_changepoints(
        self, data: Array, penalty: float, min_length: int
    ) -> List[int]:
        """Run the dynamic program and backtrack the optimal change points.

        Args:
            data: Series to segment
            penalty: Per change point penalty
            min_length: Minimum segment length

        Returns:
            Sorted change point indices (start index of each new segment).
        """
        n = len(data)
        if n < min_length:
            return []

        moments = PrefixMoments(data)
        F = np.full(n + 1, np.inf)
        F[0] = -penalty
        previous = np.zeros(n + 1, dtype=np.int64)
        candidates: npt.NDArray[np.int64] = np.array([0], dtype=np.int64)
        # Step at which each candidate was pruned; it stays usable for ends
        # that cannot yet split at that step.
        pruned_at = np.array([np.inf])

        for t in range(min_length, n + 1):
            if self.config.exact:
                live = t < pruned_at + min_length
                candidates, pruned_at = candidates[live], pruned_at[live]
                cands = candidates[t - candidates >= min_length]
            else:
                cands = self._strided_candidates(t, min_length, int(previous[t - 1]))
            if len(cands) == 0:
                continue

            totals = F[cands] + moments.costs_to(cands, t) + penalty
            best = int(np.argmin(totals))
            F[t] = totals[best]
            previous[t] = cands[best]

            if self.config.exact:
                beaten = F[candidates] + moments.costs_to(candidates, t) > F[t]
                pruned_at[np.isinf(pruned_at) & beaten] = t
                candidates = np.append(candidates, t)
                pruned_at = np.append(pruned_at, np.inf)

        if not np.isfinite(F[n]):
            return []

        change_points = []
        t = n
        while t > 0:
            s = int(previous[t])
            if s > 0:
                change_points.append(s)
            t = s
        return sorted(change_points)

    def _strided_candidates(
        self, t: int, min_length: int, carried: int
    ) -> npt.NDArray[np.int64]:
        """Feasible last change points for t, thinned to at most ``max_candidates``.

        The latest feasible split and ``carried`` (the optimal last change point
        of t - 1) are always kept, so a split found once stays reachable while
        the stride moves past it.
        """
        latest = t - min_length
        if latest >= min_length:
            cands = np.concatenate(
                ([0], np.arange(min_length, latest + 1, dtype=np.int64))
            )
        else:
            cands = np.array([0], dtype=np.int64)

        limit = self.config.max_candidates
        if len(cands) > limit:
            picks = np.unique(np.linspace(0, len(cands) - 1, limit).round().astype(np.int64))
            cands = cands[picks]
        if carried == 0 or min_length <= carried <= latest:
            cands = np.union1d(cands, [carried])
        return cands

    def _refine(
        self, values: Array, change_points: List[int], min_length: int
    ) -> List[int]:
        """Move every change point to the best split between its neighbours."""
        moments = PrefixMoments(values)
        refined = list(change_points)
        for j in range(len(refined)):
            start = refined[j - 1] if j > 0 else 0
            end = refined[j + 1] if j + 1 < len(refined) else len(values)
            splits = np.arange(start + min_length, end - min_length + 1, dtype=np.int64)
            if len(splits) == 0:
                continue
            scores = moments.costs_from(start, splits) + moments.costs_to(splits, end)
            refined[j] = int(splits[np.argmin(scores)])
        return refined

    def _drop_weak(
        self, values: Array, change_points: List[int], penalty: float
    ) -> List[int]:
        """Remove change points whose split saves no more than the penalty.

        The weakest point goes first and the gains of its neighbours are
        recomputed before the next one is considered.
        """
        moments = PrefixMoments(values)
        kept = list(change_points)
        while kept:
            bounds = [0] + kept + [len(values)]
            gains = [
                moments.cost(bounds[j - 1], bounds[j + 1])
                - moments.cost(bounds[j - 1], cp)
                - moments.cost(cp, bounds[j + 1])
                for j, cp in enumerate(kept, start=1)
            ]
            weakest = int(np.argmin(gains))
            if gains[weakest] > penalty:
                break
            logger.debug(
                f"PELT: dropping change point {kept[weakest]} "
                f"(gain {gains[weakest]:.6g} <= penalty {penalty:.6g})"
            )
            del kept[weakest]
        return kept

    def _build_events(
        self,
        values: Array,
        series: SampledSeries,
        change_points: List[int],
        penalty: float,
    ) -> List[ChangePointEvent]:
        moments = PrefixMoments(values)
        regression = PrefixRegression(values)
        bounds = [0] + change_points + [len(values)]

        events = []
        for j, cp in enumerate(change_points, start=1):
            start, end = bounds[j - 1], bounds[j + 1]
            before = SegmentStats(
                mean=moments.mean(start, cp),
                slope=regression.slope(start, cp),
                variance=moments.variance(start, cp),
            )
            after = SegmentStats(
                mean=moments.mean(cp, end),
                slope=regression.slope(cp, end),
                variance=moments.variance(cp, end),
            )
            gain = moments.cost(start, end) - moments.cost(start, cp) - moments.cost(cp, end)
            confidence = gain / (gain + penalty) if gain + penalty > 0 else 0.0

            shift = after.mean - before.mean
            if abs(shift) < EPSILON:
                change_type = ChangeType.variance_change
            elif shift > 0:
                change_type = ChangeType.level_increase
            else:
                change_type = ChangeType.level_decrease
            events.append(
                self._event(series, cp, confidence, change_type, before, after)
            )
        return events
