"""Episodic sequence memory module."""

from .episode import Association, SequenceEpisode, SequenceQuery, MemoryStats
from .sequence_memory import SequenceMemory, context_signature, day_bucket
from .forgetting import ForgettingEngine, ForgettingConfig
from .consolidation import ConsolidationEngine, ConsolidationConfig, episode_similarity

__all__ = [
    "Association",
    "SequenceEpisode",
    "SequenceQuery",
    "MemoryStats",
    "SequenceMemory",
    "context_signature",
    "day_bucket",
    "ForgettingEngine",
    "ForgettingConfig",
    "ConsolidationEngine",
    "ConsolidationConfig",
    "episode_similarity",
]
