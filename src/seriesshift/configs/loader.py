# src/seriesshift/configs/loader.py

"""Loading of YAML detection configurations."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import logging
import yaml

from ..changepoint.detector import ChangePointEngine, parse_algorithm
from ..changepoint.events import Algorithm
from ..utils.sampling import SamplingConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "detection.yaml"

SECTIONS = ("algorithm", "options", "sampling")


@dataclass(frozen=True)
class AnalysisConfig:
    """A validated detection configuration.

    Attributes:
        algorithm: Algorithm to run
        options: The algorithm's configuration dataclass
        sampling: Sampling configuration; None selects a preset by series length
    """

    algorithm: Algorithm
    options: Any
    sampling: Optional[SamplingConfig] = None


def load_config(yaml_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary.

    Args:
        yaml_path: Path to the file (default: the packaged detection.yaml)

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not hold a mapping or has unknown sections.
    """
    path = Path(yaml_path) if yaml_path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Configuration file '{path}' does not exist.")

    with path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file '{path}' must contain a mapping")
    unknown = sorted(set(config) - set(SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {unknown}")
    logger.debug(f"Loaded configuration from {path}: {config}")
    return config


def build_options(algorithm: Union[str, Algorithm], mapping: Optional[Mapping[str, Any]]):
    """Convert an options mapping into the algorithm's configuration dataclass.

    Raises:
        ValueError: If the algorithm is unknown or the mapping holds unknown
            keys or invalid values.
    """
    return ChangePointEngine.make_config(algorithm, dict(mapping or {}))


def build_sampling(mapping: Optional[Mapping[str, Any]]) -> Optional[SamplingConfig]:
    """Convert a sampling mapping into a ``SamplingConfig``; None keeps the preset.

    Raises:
        ValueError: If the mapping holds unknown keys or invalid values.
    """
    if mapping is None:
        return None
    known = {f.name for f in fields(SamplingConfig)}
    unknown = sorted(set(mapping) - known)
    if unknown:
        raise ValueError(
            f"Unknown sampling options: {unknown}. Valid options: {sorted(known)}"
        )
    return SamplingConfig(**mapping)


def build_analysis(config: Mapping[str, Any]) -> AnalysisConfig:
    """Validate a loaded configuration dictionary.

    The ``options`` section may either hold the options of the selected
    algorithm directly or map algorithm tags to their options.
    """
    algorithm = parse_algorithm(config.get("algorithm", Algorithm.MOVING_AVERAGE))
    options = dict(config.get("options") or {})
    if options and set(options) <= {a.value for a in Algorithm}:
        options = options.get(algorithm.value) or {}
    return AnalysisConfig(
        algorithm=algorithm,
        options=build_options(algorithm, options),
        sampling=build_sampling(config.get("sampling")),
    )
