from .crime_taxonomy import AVAILABLE_CRIME_TYPES, CATEGORY_ALIASES, matches_category, extract_crime_types
from .exceptions import (
    ForecastEngineError,
    DataUnavailable,
    InsufficientData,
    InvalidCoordinate,
    ComputationDegenerate,
    MLServiceUnavailable,
    ConfigError,
)
from .logger_config import setup_logger

__all__ = [
    "AVAILABLE_CRIME_TYPES",
    "CATEGORY_ALIASES",
    "matches_category",
    "extract_crime_types",
    "ForecastEngineError",
    "DataUnavailable",
    "InsufficientData",
    "InvalidCoordinate",
    "ComputationDegenerate",
    "MLServiceUnavailable",
    "ConfigError",
    "setup_logger",
]
