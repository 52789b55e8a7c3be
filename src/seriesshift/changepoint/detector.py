# src/seriesshift/changepoint/detector.py

"""Detection engine dispatching a series to one of the change point detectors.

The engine owns the registry of detector classes, converts user supplied
options into the matching configuration dataclass and builds the summary of a
detection run. ``analyze`` chains sampling, detection and summarising into a
single call.
"""

from dataclasses import asdict, fields
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, Union

import logging
import numpy as np

from .base import MIN_POINTS, BaseDetector
from .binary_segmentation import BinarySegmentationDetector
from .cusum import CUSUMDetector
from .events import (
    Algorithm,
    ChangePointEvent,
    DetectionResult,
    DetectionSummary,
    SampledSeries,
    SamplePoint,
)
from .ewma import EWMADetector
from .moving_average import MovingAverageDetector
from .pelt import PELTDetector
from .trend import TrendDetector
from .variance import VarianceDetector
from ..utils.sampling import SamplingConfig, apply_sampling, recommended_sampling
from ..utils.series import build_series

logger = logging.getLogger(__name__)

OptionsLike = Union[None, Mapping[str, Any], Any]
SeriesLike = Union[SampledSeries, Sequence[SamplePoint], Sequence[float], np.ndarray]


def parse_algorithm(algorithm: Union[str, Algorithm]) -> Algorithm:
    """Convert an algorithm tag into an ``Algorithm``.

    Raises:
        ValueError: If the tag is not a known algorithm.
    """
    try:
        return Algorithm(algorithm)
    except ValueError:
        valid = [a.value for a in Algorithm]
        raise ValueError(
            f"Unknown algorithm: {algorithm}. Must be one of {valid}"
        ) from None


class ChangePointEngine:
    """Registry based dispatcher over the change point detectors.

    Each algorithm tag maps to exactly one detector class; the detector's
    ``config_class`` defines the options it accepts.
    """

    DETECTORS: Dict[Algorithm, Type[BaseDetector]] = {
        Algorithm.MOVING_AVERAGE: MovingAverageDetector,
        Algorithm.CUSUM: CUSUMDetector,
        Algorithm.EWMA: EWMADetector,
        Algorithm.BINARY_SEGMENTATION: BinarySegmentationDetector,
        Algorithm.PELT: PELTDetector,
        Algorithm.TREND: TrendDetector,
        Algorithm.VARIANCE: VarianceDetector,
    }

    @classmethod
    def make_config(cls, algorithm: Union[str, Algorithm], options: OptionsLike = None):
        """Build the configuration of an algorithm from user options.

        Args:
            algorithm: Algorithm tag
            options: The algorithm's config dataclass, a mapping of its fields,
                or None for the defaults

        Returns:
            Validated configuration dataclass.

        Raises:
            ValueError: If the algorithm is unknown, the mapping holds unknown
                keys, a value is invalid, or the config belongs to another algorithm.
        """
        algorithm = parse_algorithm(algorithm)
        config_class = cls.DETECTORS[algorithm].config_class
        if options is None:
            return config_class()
        if isinstance(options, config_class):
            return options
        if isinstance(options, Mapping):
            known = {f.name for f in fields(config_class)}
            unknown = sorted(set(options) - known)
            if unknown:
                raise ValueError(
                    f"Unknown options for {algorithm.value}: {unknown}. "
                    f"Valid options: {sorted(known)}"
                )
            return config_class(**options)
        raise ValueError(
            f"Options for {algorithm.value} must be {config_class.__name__}, "
            f"a mapping or None, got {type(options).__name__}"
        )

    @classmethod
    def create_detector(
        cls, algorithm: Union[str, Algorithm], options: OptionsLike = None
    ) -> BaseDetector:
        """Create the detector of an algorithm with the given options."""
        algorithm = parse_algorithm(algorithm)
        detector_class = cls.DETECTORS[algorithm]
        return detector_class(cls.make_config(algorithm, options))

    @classmethod
    def get_available_algorithms(cls) -> Dict[str, Dict[str, Any]]:
        """Default configuration of every registered algorithm."""
        return {
            algorithm.value: asdict(detector_class.config_class())
            for algorithm, detector_class in cls.DETECTORS.items()
        }

    def detect(
        self,
        series: SampledSeries,
        algorithm: Union[str, Algorithm],
        options: OptionsLike = None,
    ) -> List[ChangePointEvent]:
        """Detect change points in a series.

        Args:
            series: Series to analyse
            algorithm: Algorithm tag
            options: Algorithm options (see ``make_config``)

        Returns:
            Events ordered by original index; empty for fewer than 10 points.

        Raises:
            ValueError: If the algorithm or options are invalid, or the series
                contains non-finite values.
        """
        detector = self.create_detector(algorithm, options)
        if len(series) < MIN_POINTS:
            logger.info(
                f"Series has {len(series)} points, at least {MIN_POINTS} are needed"
            )
            return []
        return detector.detect(series)

    def summarize(
        self,
        events: List[ChangePointEvent],
        algorithm: Union[str, Algorithm],
        options: OptionsLike = None,
        n: Optional[int] = None,
    ) -> DetectionSummary:
        """Summarise the events of a detection run.

        Args:
            events: Detected events
            algorithm: Algorithm that produced them
            options: Options the detector ran with
            n: Series length used to resolve length dependent defaults

        Returns:
            Count, mean confidence (0 when there are no events) and the options.
        """
        algorithm = parse_algorithm(algorithm)
        config = self.make_config(algorithm, options)
        if n is not None:
            config = config.resolve(n)
        confidences = [e.confidence for e in events]
        average = float(np.mean(confidences)) if confidences else 0.0
        return DetectionSummary(
            total_change_points=len(events),
            average_confidence=average,
            algorithm=algorithm,
            algorithm_options=asdict(config),
        )

    def analyze(
        self,
        data: SeriesLike,
        algorithm: Union[str, Algorithm] = Algorithm.MOVING_AVERAGE,
        options: OptionsLike = None,
        sampling: Optional[SamplingConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> DetectionResult:
        """Sample a series, detect change points and summarise them.

        Args:
            data: A series, a sequence of points, or plain values
            algorithm: Algorithm tag
            options: Algorithm options
            sampling: Sampling configuration (default: recommended for the size)
            rng: Random generator for systematic sampling

        Returns:
            Events, summary and the sampled series they were detected on.
        """
        series = self.as_series(data)
        if sampling is None:
            sampling = recommended_sampling(len(series))
        sampled = apply_sampling(series, sampling, rng=rng)
        logger.info(
            f"Analyzing {sampled.sampled_size} of {sampled.original_size} points "
            f"with {parse_algorithm(algorithm).value} "
            f"(sampling: {sampled.method.value})"
        )

        events = self.detect(sampled, algorithm, options)
        summary = self.summarize(events, algorithm, options, n=len(sampled))
        logger.info(
            f"Found {summary.total_change_points} change points, "
            f"average confidence {summary.average_confidence:.3f}"
        )
        return DetectionResult(events=events, summary=summary, series=sampled)

    @staticmethod
    def as_series(data: SeriesLike) -> SampledSeries:
        """Wrap points or plain values into an unsampled series."""
        if isinstance(data, SampledSeries):
            return data
        items = list(data)
        if items and all(isinstance(item, SamplePoint) for item in items):
            return SampledSeries(
                points=tuple(items), original_size=len(items), sampled_size=len(items)
            )
        return build_series(items)


_missing = set(Algorithm) - set(ChangePointEngine.DETECTORS)
if _missing:
    raise RuntimeError(f"No detector registered for {sorted(a.value for a in _missing)}")


def detect_change_points(
    values: SeriesLike,
    algorithm: Union[str, Algorithm] = Algorithm.MOVING_AVERAGE,
    options: OptionsLike = None,
) -> List[ChangePointEvent]:
    """Detect change points in plain values or points without sampling."""
    engine = ChangePointEngine()
    return engine.detect(engine.as_series(values), algorithm, options)
