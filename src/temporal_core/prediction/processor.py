"""
Hierarchical Prediction Error Processor
=======================================

Computes prediction errors per abstraction level, scores their
significance and propagates error signals through the hierarchy.

Level 0 is the most concrete, max_levels - 1 the most abstract.

Per error:
1. error = actual - predicted, magnitude = RMS(error)
2. significance = magnitude, scaled by surprise against the level's
   expected error, by error type and by current surprise, clamped to [0, 1]
3. If significance > threshold: ascending (abstracted), descending
   (elaborated, with suppression mask) and lateral (raw) signals
4. Adaptive learning rate / expectation / surprise update
5. A LearningUpdate for the external learner

Propagation runs ascend, then descend, then decay. A signal produced in a
cycle can only be suppressed by a same-cycle descending signal whose source
level is processed after it.

References:
- Rao & Ballard (1999): Predictive coding in visual cortex
- Friston (2005): A theory of cortical responses
"""

import math
from collections import OrderedDict, deque
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
from loguru import logger

from ..core.config import PredictionErrorConfig
from ..core.errors import LevelOutOfRangeError, ShapeMismatchError
from ..interfaces.clock import Clock, SystemClock
from . import signals as signal_ops
from .types import (
    ERROR_TYPE_WEIGHTS,
    ErrorAnalysis,
    ErrorSignal,
    ErrorStatistics,
    ErrorType,
    LearningUpdate,
    LevelState,
    PredictionError,
    SignalDirection,
    UpdateType,
)


EPSILON = 0.001
SIGNAL_STRENGTH_FLOOR = 0.01
DECAY_TIME_SCALE_MS = 10000.0
LEARNING_UPDATE_CAPACITY = 1000
PROGRESS_LOG_CAPACITY = 1000

MIN_LEARNING_RATE = 0.01
MAX_LEARNING_RATE = 0.5


def _is_level_index(level) -> bool:
    return isinstance(level, (int, np.integer)) and not isinstance(level, bool)


class PredictionErrorProcessor:
    """
    Hierarchical prediction error processing.

    Driven by an external loop: call process_error() for each observation,
    propagate_error_signals() once per tick, then drain
    get_learning_updates().
    """

    def __init__(
        self,
        config: Optional[PredictionErrorConfig] = None,
        clock: Optional[Clock] = None
    ):
        """
        Args:
            config: Processor configuration
            clock: Time source (wall clock by default)
        """
        self.config = config or PredictionErrorConfig()
        self.clock = clock or SystemClock()

        self.levels: List[LevelState] = []
        self.active_errors: "OrderedDict[str, PredictionError]" = OrderedDict()
        self.learning_updates = deque(maxlen=LEARNING_UPDATE_CAPACITY)

        # Fed by the external learner
        self.error_reduction = deque(maxlen=PROGRESS_LOG_CAPACITY)
        self.learning_progress = deque(maxlen=PROGRESS_LOG_CAPACITY)

        self._next_error_id = 1
        self._initialize_levels()

        logger.info(
            f"PredictionErrorProcessor initialized (levels={self.config.max_levels}, "
            f"significance_threshold={self.config.significance_threshold})"
        )

    def _initialize_levels(self):
        self.levels = [
            LevelState(learning_rate=self.config.learning_rate)
            for _ in range(self.config.max_levels)
        ]

    # ------------------------------------------------------------------
    # Error processing
    # ------------------------------------------------------------------

    def process_error(
        self,
        level: int,
        predicted: Sequence[float],
        actual: Sequence[float],
        error_type: Union[ErrorType, str] = ErrorType.TEMPORAL,
        confidence: float = 1.0
    ) -> PredictionError:
        """
        Process a prediction error at one hierarchy level.

        Args:
            level: Hierarchy level in [0, max_levels)
            predicted: Predicted vector
            actual: Observed vector, same length as `predicted`
            error_type: ErrorType or its string value
            confidence: Caller's confidence in the prediction

        Returns:
            The recorded PredictionError

        Raises:
            LevelOutOfRangeError: level outside the hierarchy
            ShapeMismatchError: vector lengths differ
        """
        if not _is_level_index(level) or not 0 <= level < self.config.max_levels:
            logger.warning(f"Rejected prediction error: level {level} out of range")
            raise LevelOutOfRangeError(level, self.config.max_levels)

        predicted = np.array(predicted, dtype=float).reshape(-1)
        actual = np.array(actual, dtype=float).reshape(-1)
        if predicted.size != actual.size:
            logger.warning(
                f"Rejected prediction error: length mismatch "
                f"({predicted.size} vs {actual.size})"
            )
            raise ShapeMismatchError(predicted.size, actual.size)

        error_type = ErrorType(error_type)

        error = actual - predicted
        magnitude = self._calculate_error_magnitude(error)
        significance = self._calculate_error_significance(level, magnitude, error_type)

        error_id = self._generate_error_id()
        prediction_error = PredictionError(
            level=level,
            timestamp=self.clock.now(),
            predicted=predicted,
            actual=actual,
            error=error,
            magnitude=magnitude,
            significance=significance,
            error_type=error_type,
            confidence=confidence,
            error_id=error_id
        )

        self._store_active_error(prediction_error)
        self.levels[level].history.append(prediction_error)
        self._update_error_statistics(level, prediction_error)

        if significance > self.config.significance_threshold:
            self._generate_error_signals(prediction_error)

        if self.config.adaptive_learning:
            self._update_adaptive_parameters(level, prediction_error)

        self._generate_learning_update(prediction_error)

        return prediction_error

    @staticmethod
    def _calculate_error_magnitude(error: np.ndarray) -> float:
        """Root mean square; 0 for an empty vector."""
        if error.size == 0:
            return 0.0
        return float(np.sqrt(np.mean(error ** 2)))

    def _calculate_error_significance(self, level: int, magnitude: float, error_type: ErrorType) -> float:
        state = self.levels[level]
        significance = magnitude

        # Scale by how surprising this magnitude is for the level
        if state.expectations:
            avg_expected = float(np.mean(state.expectations))
            surprise_ratio = magnitude / (avg_expected + EPSILON)
            significance *= math.log(surprise_ratio + 1)

        significance *= ERROR_TYPE_WEIGHTS[error_type]
        significance *= (1 + state.surprise * 0.5)

        if not math.isfinite(significance):
            return 0.0
        return min(1.0, max(0.0, significance))

    def _store_active_error(self, error: PredictionError):
        self.active_errors[error.error_id] = error
        while len(self.active_errors) > self.config.max_active_errors:
            self.active_errors.popitem(last=False)

    def _generate_error_id(self) -> str:
        error_id = f"error_{self._next_error_id}_{int(self.clock.now())}"
        self._next_error_id += 1
        return error_id

    # ------------------------------------------------------------------
    # Signal generation
    # ------------------------------------------------------------------

    def _generate_error_signals(self, error: PredictionError):
        """Queue ascending/descending signals and place the lateral one."""
        now = self.clock.now()
        state = self.levels[error.level]

        if error.level < self.config.max_levels - 1:
            abstracted = signal_ops.abstract_error(error.error)
            state.ascending_queue.append(ErrorSignal(
                error_id=error.error_id,
                level=error.level + 1,
                direction=SignalDirection.ASCENDING,
                strength=error.significance,
                error_vector=abstracted,
                learning_signal=self._learning_signal(abstracted, "ascending"),
                suppression_mask=np.zeros(abstracted.size, dtype=bool),
                timestamp=now
            ))

        if error.level > 0:
            elaborated = signal_ops.elaborate_error(error.error)
            state.descending_queue.append(ErrorSignal(
                error_id=error.error_id,
                level=error.level - 1,
                direction=SignalDirection.DESCENDING,
                strength=error.significance * self.config.suppression_strength,
                error_vector=elaborated,
                learning_signal=self._learning_signal(elaborated, "descending"),
                suppression_mask=signal_ops.suppression_mask(elaborated, self.config.error_threshold),
                timestamp=now
            ))

        lateral = error.error.copy()
        state.signals.append(ErrorSignal(
            error_id=error.error_id,
            level=error.level,
            direction=SignalDirection.ASCENDING,
            strength=error.significance,
            error_vector=lateral,
            learning_signal=self._learning_signal(lateral, "lateral"),
            suppression_mask=np.zeros(lateral.size, dtype=bool),
            timestamp=now
        ))

        logger.debug(
            f"Signals from {error.error_id} at level {error.level} "
            f"(significance={error.significance:.3f})"
        )

    def _learning_signal(self, error: np.ndarray, direction: str) -> np.ndarray:
        return signal_ops.learning_signal(
            error, direction, self.config.learning_rate, self.config.error_weighting
        )

    # ------------------------------------------------------------------
    # Adaptation and learning updates
    # ------------------------------------------------------------------

    def _update_adaptive_parameters(self, level: int, error: PredictionError):
        state = self.levels[level]

        # Learning rate follows the short-term error trend
        if len(state.history) > 5:
            recent = list(state.history)[-5:]
            avg_recent_error = float(np.mean([e.magnitude for e in recent]))

            if avg_recent_error > error.magnitude:
                state.learning_rate = min(MAX_LEARNING_RATE, state.learning_rate * 1.05)
            else:
                state.learning_rate = max(MIN_LEARNING_RATE, state.learning_rate * 0.95)

        state.expectations.append(error.magnitude)

        if len(state.expectations) > 1:
            prior = list(state.expectations)[:-1]
            avg_expected = float(np.mean(prior))
            state.surprise = abs(error.magnitude - avg_expected) / (avg_expected + EPSILON)

    def _generate_learning_update(self, error: PredictionError):
        threshold = self.config.error_threshold

        if error.magnitude > threshold * 2:
            update_type = UpdateType.CREATE if error.significance > 0.7 else UpdateType.STRENGTHEN
        elif error.magnitude < threshold * 0.5:
            update_type = UpdateType.WEAKEN
        else:
            update_type = UpdateType.STRENGTHEN

        self.learning_updates.append(LearningUpdate(
            target_level=error.level,
            update_type=update_type,
            magnitude=error.magnitude,
            specificity=np.minimum(1.0, np.abs(error.error) / threshold),
            confidence=error.confidence,
            error_contribution=error.significance
        ))

    def _update_error_statistics(self, level: int, error: PredictionError):
        state = self.levels[level]
        stats = state.statistics

        stats.total_errors += 1
        state.processed_errors += 1

        type_key = error.error_type.value
        stats.errors_by_type[type_key] = stats.errors_by_type.get(type_key, 0) + 1
        stats.errors_by_level[level] = stats.errors_by_level.get(level, 0) + 1

        n = state.processed_errors
        stats.average_error_magnitude = (stats.average_error_magnitude * (n - 1) + error.magnitude) / n

        history = list(state.history)
        if len(history) > 10:
            recent = history[-10:]
            older = history[-20:-10]
            recent_avg = float(np.mean([e.magnitude for e in recent]))
            older_avg = float(np.mean([e.magnitude for e in older]))
            stats.error_reduction_rate = (older_avg - recent_avg) / older_avg if older_avg > 0 else 0.0

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def propagate_error_signals(self):
        """
        Move queued signals between levels, then decay everything.

        Order matters: ascending pass (0 .. L-2), descending pass (L-1 .. 1),
        then decay.
        """
        for level in range(self.config.max_levels - 1):
            state = self.levels[level]
            for signal in state.ascending_queue:
                self._process_ascending_signal(signal)
            state.ascending_queue = []

        for level in range(self.config.max_levels - 1, 0, -1):
            state = self.levels[level]
            for signal in state.descending_queue:
                self._process_descending_signal(signal)
            state.descending_queue = []

        self.apply_error_decay()

    def _process_ascending_signal(self, signal: ErrorSignal):
        target = self.levels[signal.level]
        target.signals.append(signal)
        target.statistics.total_errors += 1

    def _process_descending_signal(self, signal: ErrorSignal):
        for target_signal in self.levels[signal.level].signals:
            self._apply_suppression(target_signal, signal)

    def _apply_suppression(self, target_signal: ErrorSignal, suppression_signal: ErrorSignal):
        n = min(target_signal.error_vector.size, suppression_signal.error_vector.size)
        if n == 0:
            return

        factor = 1 - suppression_signal.strength * self.config.suppression_strength
        mask = suppression_signal.suppression_mask[:n]
        target_signal.error_vector[:n][mask] *= factor

    def apply_error_decay(self):
        """
        Exponentially decay resident signals by age and prune weak ones.

        factor = exp(-age_ms * decay_rate / 10000)
        """
        current_time = self.clock.now()
        pruned = 0

        for state in self.levels:
            for signal in state.signals:
                age = max(0.0, current_time - signal.timestamp)
                decay_factor = math.exp(-age * self.config.decay_rate / DECAY_TIME_SCALE_MS)

                signal.strength *= decay_factor
                signal.error_vector *= decay_factor
                signal.learning_signal *= decay_factor

            kept = [signal for signal in state.signals if signal.strength > SIGNAL_STRENGTH_FLOOR]
            pruned += len(state.signals) - len(kept)
            state.signals = kept

        if pruned:
            logger.debug(f"Pruned {pruned} decayed error signals")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def _level_state(self, level: int) -> Optional[LevelState]:
        if _is_level_index(level) and 0 <= level < len(self.levels):
            return self.levels[level]
        return None

    def get_error_signals(self, level: int) -> List[ErrorSignal]:
        """Snapshot of the resident signals at a level."""
        state = self._level_state(level)
        return list(state.signals) if state else []

    def get_learning_updates(self) -> List[LearningUpdate]:
        """Drain the learning update queue."""
        updates = list(self.learning_updates)
        self.learning_updates.clear()
        return updates

    def get_error_statistics(self, level: int) -> Optional[ErrorStatistics]:
        state = self._level_state(level)
        return state.statistics if state else None

    def get_learning_rate(self, level: int) -> Optional[float]:
        state = self._level_state(level)
        return state.learning_rate if state else None

    def get_surprise(self, level: int) -> Optional[float]:
        state = self._level_state(level)
        return state.surprise if state else None

    def record_learning_progress(self, improvement: float):
        """Log a prediction improvement sample from the external learner."""
        self.learning_progress.append((self.clock.now(), float(improvement)))

    def record_error_reduction(self, reduction: float):
        self.error_reduction.append((self.clock.now(), float(reduction)))

    def get_error_analysis(self) -> ErrorAnalysis:
        """Aggregate view over active errors and recent learning."""
        errors_by_level: Dict[int, int] = {}
        total_significance = 0.0
        for error in self.active_errors.values():
            errors_by_level[error.level] = errors_by_level.get(error.level, 0) + 1
            total_significance += error.significance

        total_active = len(self.active_errors)

        recent_updates = list(self.learning_updates)[-100:]
        learning_efficiency = (
            float(np.mean([u.confidence for u in recent_updates])) if recent_updates else 0.0
        )

        recent_progress = list(self.learning_progress)[-10:]
        prediction_improvement = (
            float(np.mean([improvement for _, improvement in recent_progress]))
            if recent_progress else 0.0
        )

        return ErrorAnalysis(
            total_active_errors=total_active,
            errors_by_level=errors_by_level,
            average_significance=total_significance / total_active if total_active else 0.0,
            learning_efficiency=learning_efficiency,
            prediction_improvement=prediction_improvement
        )

    def reset(self):
        """Clear all errors, signals and adaptive state."""
        self.active_errors.clear()
        self.learning_updates.clear()
        self.error_reduction.clear()
        self.learning_progress.clear()
        self._next_error_id = 1
        self._initialize_levels()
