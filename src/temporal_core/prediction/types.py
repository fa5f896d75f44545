"""
Records produced by the prediction error processor.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List

import numpy as np


class ErrorType(Enum):
    """Kind of prediction that failed"""
    SPATIAL = "spatial"
    TEMPORAL = "temporal"
    CONTEXTUAL = "contextual"
    SEMANTIC = "semantic"


# Significance multiplier per error type
ERROR_TYPE_WEIGHTS = {
    ErrorType.SPATIAL: 1.0,
    ErrorType.TEMPORAL: 1.2,
    ErrorType.CONTEXTUAL: 1.1,
    ErrorType.SEMANTIC: 1.3,
}


class SignalDirection(Enum):
    """Propagation direction relative to the producing level"""
    ASCENDING = "ascending"  # Toward abstract levels (also used for lateral signals)
    DESCENDING = "descending"  # Toward concrete levels


class UpdateType(Enum):
    """What an external learner should do with a representation"""
    STRENGTHEN = "strengthen"
    WEAKEN = "weaken"
    CREATE = "create"
    PRUNE = "prune"


@dataclass
class PredictionError:
    """
    One processed prediction error.

    `error` is actual - predicted elementwise and `magnitude` its RMS.
    """
    level: int
    timestamp: float
    predicted: np.ndarray
    actual: np.ndarray
    error: np.ndarray
    magnitude: float
    significance: float
    error_type: ErrorType
    confidence: float
    error_id: str = ""


@dataclass
class ErrorSignal:
    """
    Error information travelling between hierarchy levels.

    `level` is the target level. `suppression_mask` flags components of a
    descending signal that damp resident signals at the target.
    """
    error_id: str
    level: int
    direction: SignalDirection
    strength: float
    error_vector: np.ndarray
    learning_signal: np.ndarray
    suppression_mask: np.ndarray
    timestamp: float


@dataclass
class LearningUpdate:
    """Instruction for the external learner, emitted once per error."""
    target_level: int
    update_type: UpdateType
    magnitude: float
    specificity: np.ndarray
    confidence: float
    error_contribution: float


@dataclass
class ErrorStatistics:
    """Running statistics for one level."""
    total_errors: int = 0
    errors_by_type: Dict[str, int] = field(default_factory=dict)
    errors_by_level: Dict[int, int] = field(default_factory=dict)
    average_error_magnitude: float = 0.0
    error_reduction_rate: float = 0.0
    learning_efficiency: float = 0.0
    prediction_improvement: float = 0.0


@dataclass
class ErrorAnalysis:
    """Aggregate view across all levels."""
    total_active_errors: int
    errors_by_level: Dict[int, int]
    average_significance: float
    learning_efficiency: float
    prediction_improvement: float


EXPECTATION_WINDOW = 100
HISTORY_CAPACITY = 1000


@dataclass
class LevelState:
    """
    Everything the processor tracks for one hierarchy level.

    - expectations: recent magnitudes, the baseline for surprise
    - history: processed errors, oldest evicted first
    - signals: resident signals, decayed on every propagation
    - ascending_queue / descending_queue: signals waiting to propagate
    """
    learning_rate: float
    surprise: float = 0.0
    expectations: Deque[float] = field(default_factory=lambda: deque(maxlen=EXPECTATION_WINDOW))
    history: Deque[PredictionError] = field(default_factory=lambda: deque(maxlen=HISTORY_CAPACITY))
    signals: List[ErrorSignal] = field(default_factory=list)
    ascending_queue: List[ErrorSignal] = field(default_factory=list)
    descending_queue: List[ErrorSignal] = field(default_factory=list)
    statistics: ErrorStatistics = field(default_factory=ErrorStatistics)
    processed_errors: int = 0
