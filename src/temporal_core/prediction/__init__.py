"""Hierarchical prediction error module."""

from .types import (
    ErrorType,
    SignalDirection,
    UpdateType,
    PredictionError,
    ErrorSignal,
    LearningUpdate,
    ErrorStatistics,
    ErrorAnalysis,
    LevelState,
)
from .processor import PredictionErrorProcessor

__all__ = [
    "ErrorType",
    "SignalDirection",
    "UpdateType",
    "PredictionError",
    "ErrorSignal",
    "LearningUpdate",
    "ErrorStatistics",
    "ErrorAnalysis",
    "LevelState",
    "PredictionErrorProcessor",
]
