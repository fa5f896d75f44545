"""
Temporal Core - episodic sequence memory and hierarchical prediction errors

An in-process learning substrate driven by an external tick loop.

Example usage:
    from temporal_core import SequenceMemory, PredictionErrorProcessor

    memory = SequenceMemory()
    episode_id = memory.store_episode([1, 2, 3], [0.1, 0.2], [0.5])

    processor = PredictionErrorProcessor()
    processor.process_error(0, predicted=[0, 0], actual=[1, 1])
    processor.propagate_error_signals()
    updates = processor.get_learning_updates()
"""

__version__ = "0.1.0"

from .core.config import TemporalCoreConfig, SequenceMemoryConfig, PredictionErrorConfig
from .core.errors import TemporalCoreError, LevelOutOfRangeError, ShapeMismatchError
from .interfaces.clock import Clock, SystemClock, ManualClock
from .memory import SequenceMemory, SequenceEpisode, SequenceQuery
from .prediction import PredictionErrorProcessor, ErrorType

__all__ = [
    "TemporalCoreConfig",
    "SequenceMemoryConfig",
    "PredictionErrorConfig",
    "TemporalCoreError",
    "LevelOutOfRangeError",
    "ShapeMismatchError",
    "Clock",
    "SystemClock",
    "ManualClock",
    "SequenceMemory",
    "SequenceEpisode",
    "SequenceQuery",
    "PredictionErrorProcessor",
    "ErrorType",
]
