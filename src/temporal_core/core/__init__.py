"""Shared configuration, logging and error types."""

from .config import (
    TemporalCoreConfig,
    SequenceMemoryConfig,
    ImportanceWeighting,
    PredictionErrorConfig,
    ErrorWeighting,
    LoggingConfig,
    get_config,
    set_config,
)
from .errors import TemporalCoreError, LevelOutOfRangeError, ShapeMismatchError

__all__ = [
    "TemporalCoreConfig",
    "SequenceMemoryConfig",
    "ImportanceWeighting",
    "PredictionErrorConfig",
    "ErrorWeighting",
    "LoggingConfig",
    "get_config",
    "set_config",
    "TemporalCoreError",
    "LevelOutOfRangeError",
    "ShapeMismatchError",
]
