"""
Threonine growth QC: replicate aggregation, outlier removal and sample ranking.
"""

from .config import DEFAULT_CONFIG, GrowthConfig, load_growth_config
from .growth_data import GrowthData, Replicate, sort_growth_data
from .means import (
    MEAN_TYPES,
    MeanComputer,
    MiddleMeanComputer,
    SigmaMeanComputer,
    TrimeanMeanComputer,
    create_mean_computer,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_CONFIG",
    "GrowthConfig",
    "GrowthData",
    "MEAN_TYPES",
    "MeanComputer",
    "MiddleMeanComputer",
    "Replicate",
    "SigmaMeanComputer",
    "TrimeanMeanComputer",
    "create_mean_computer",
    "load_growth_config",
    "sort_growth_data",
    "__version__",
]
