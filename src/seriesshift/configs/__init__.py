# src/seriesshift/configs/__init__.py

"""Configuration module for detection runs."""

from .loader import (
    DEFAULT_CONFIG_PATH,
    AnalysisConfig,
    build_analysis,
    build_options,
    build_sampling,
    load_config,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "AnalysisConfig",
    "build_analysis",
    "build_options",
    "build_sampling",
    "load_config",
]
