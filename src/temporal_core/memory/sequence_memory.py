"""
Episodic Sequence Memory
========================

In-memory store of sequence episodes with contextual grounding.

Key Features:
1. Single-shot encoding with uniqueness-weighted importance
2. Temporal (day bucket), context-signature and tag indices
3. Multi-criteria similarity retrieval with access reinforcement
4. Consolidation (associations + forgetting resistance)
5. Time-based forgetting with consolidation protection

Misses never raise: unknown ids give None, empty queries give [].
"""

import math
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from ..core.config import SequenceMemoryConfig
from ..core.logging_setup import PerformanceLogger
from ..interfaces.clock import Clock, SystemClock, MS_PER_DAY
from .consolidation import ConsolidationConfig, ConsolidationEngine
from .episode import MemoryStats, SequenceEpisode, SequenceQuery
from .forgetting import ForgettingConfig, ForgettingEngine
from .similarity import (
    ElementEquals,
    contains_subsequence,
    cosine_similarity,
    elements_equal,
    sequence_similarity,
)


# Retrieval score component weights
PATTERN_WEIGHT = 0.4
TEMPORAL_WEIGHT = 0.3
SPATIAL_WEIGHT = 0.2
IMPORTANCE_WEIGHT = 0.1

IMPORTANCE_CAP = 10.0
ACCESS_BOOST = 1.05
FIND_SIMILAR_THRESHOLD = 0.1
RETRIEVAL_LOG_CAPACITY = 1000


def day_bucket(timestamp: float) -> int:
    return math.floor(timestamp / MS_PER_DAY)


def context_signature(temporal_context: Iterable[float], spatial_context: Iterable[float]) -> str:
    """
    Quantized index key: components scaled by 10 and rounded half-up.

    [0.12, 0.5] / [1.0] -> "1,5|10"
    """
    def quantize(values):
        return ",".join(str(int(math.floor(float(x) * 10 + 0.5))) for x in values)

    return f"{quantize(temporal_context)}|{quantize(spatial_context)}"


def _as_vector(values: Optional[Sequence[float]]) -> np.ndarray:
    if values is None:
        return np.zeros(0)
    return np.array(values, dtype=float).reshape(-1)


class SequenceMemory:
    """
    Episodic sequence store with similarity retrieval and consolidation.

    Public indices (episode ids per key):
    - temporal_index: day bucket -> ids
    - context_index: context signature -> ids
    - tag_index: tag -> ids

    Every live episode is reachable through the temporal and context
    indices, and nothing else is.
    """

    def __init__(
        self,
        config: Optional[SequenceMemoryConfig] = None,
        clock: Optional[Clock] = None,
        element_equals: Optional[ElementEquals] = None,
        forgetting_config: Optional[ForgettingConfig] = None,
        consolidation_config: Optional[ConsolidationConfig] = None
    ):
        """
        Args:
            config: Memory configuration
            clock: Time source (wall clock by default)
            element_equals: Equality test for sequence elements
            forgetting_config: Forgetting engine tuning
            consolidation_config: Consolidation engine tuning
        """
        self.config = config or SequenceMemoryConfig()
        self.clock = clock or SystemClock()
        self.element_equals = element_equals or elements_equal

        self.episodes: Dict[str, SequenceEpisode] = {}

        self.temporal_index: Dict[int, List[str]] = {}
        self.context_index: Dict[str, List[str]] = {}
        self.tag_index: Dict[str, List[str]] = {}

        self.forgetting = ForgettingEngine(self.config.decay_rate, forgetting_config)
        self.consolidation = ConsolidationEngine(consolidation_config, self.element_equals)

        # Access tracking
        self.access_patterns: Dict[str, int] = {}
        self.recent_retrievals = deque(maxlen=RETRIEVAL_LOG_CAPACITY)

        # Statistics
        self.total_episodes_stored = 0
        self.total_episodes_forgotten = 0

        self._next_episode_id = 1

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def store_episode(
        self,
        sequence: Sequence[Any],
        temporal_context: Sequence[float],
        spatial_context: Sequence[float],
        tags: Optional[Iterable[str]] = None,
        emotional_valence: float = 0.0
    ) -> str:
        """
        Store a new sequence episode (single-shot learning).

        Args:
            sequence: Ordered elements
            temporal_context: When-context vector
            spatial_context: Where-context vector
            tags: Labels to index under
            emotional_valence: Signed affect

        Returns:
            New episode id
        """
        timestamp = self.clock.now()
        episode_id = self._generate_episode_id(timestamp)
        sequence = list(sequence)

        episode = SequenceEpisode(
            episode_id=episode_id,
            sequence=sequence,
            temporal_context=_as_vector(temporal_context),
            spatial_context=_as_vector(spatial_context),
            timestamp=timestamp,
            importance=self._calculate_initial_importance(sequence, emotional_valence),
            access_count=0,
            last_accessed=timestamp,
            tags=set(tags or []),
            emotional_valence=emotional_valence
        )

        self.episodes[episode_id] = episode
        self._update_indices(episode)
        self.total_episodes_stored += 1

        if episode.importance > self.config.consolidation_threshold:
            self.consolidation.enqueue(episode_id)

        logger.debug(
            f"Stored {episode_id} (len={len(sequence)}, "
            f"importance={episode.importance:.3f})"
        )

        if len(self.episodes) > self.config.max_episodes:
            self._perform_maintenance()

        return episode_id

    def _generate_episode_id(self, timestamp: float) -> str:
        episode_id = f"episode_{self._next_episode_id}_{int(timestamp)}"
        self._next_episode_id += 1
        return episode_id

    def _calculate_initial_importance(self, sequence: List[Any], emotional_valence: float) -> float:
        """ln(len + 1) * uniqueness * (1 + |valence|)"""
        length_factor = math.log(len(sequence) + 1)
        uniqueness = self._calculate_uniqueness(sequence)
        return length_factor * uniqueness * (1.0 + abs(emotional_valence))

    def _calculate_uniqueness(self, sequence: List[Any]) -> float:
        max_similarity = 0.0
        for episode in self.episodes.values():
            similarity = sequence_similarity(sequence, episode.sequence, self.element_equals)
            max_similarity = max(max_similarity, similarity)
        return 1.0 - max_similarity

    def _update_indices(self, episode: SequenceEpisode):
        """Update all indices with new episode."""
        self.temporal_index.setdefault(day_bucket(episode.timestamp), []).append(episode.episode_id)

        signature = context_signature(episode.temporal_context, episode.spatial_context)
        self.context_index.setdefault(signature, []).append(episode.episode_id)

        for tag in episode.tags:
            self.tag_index.setdefault(tag, []).append(episode.episode_id)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def retrieve_episodes(self, query: SequenceQuery) -> List[SequenceEpisode]:
        """
        Retrieve episodes matching query criteria, best first.

        Returned episodes are reinforced: access count and last-access time
        are refreshed and importance grows by 5%.

        Args:
            query: Retrieval criteria

        Returns:
            Ranked episodes (possibly empty)
        """
        threshold = query.similarity_threshold
        if threshold is None:
            threshold = self.config.similarity_threshold

        candidates = self._find_candidate_episodes(query)
        scored = [(episode, self._calculate_episode_score(episode, query)) for episode in candidates]
        filtered = [item for item in scored if item[1] >= threshold]

        # Stable sort keeps candidate order among equal scores
        filtered.sort(key=lambda item: item[1], reverse=True)
        results = filtered[:max(0, query.max_results)]

        for episode, score in results:
            self._record_access(episode, score)

        logger.debug(
            f"Retrieved {len(results)}/{len(candidates)} candidates "
            f"(threshold={threshold:.2f})"
        )
        return [episode for episode, _ in results]

    def find_most_similar(
        self,
        pattern: Sequence[Any],
        temporal_context: Optional[Sequence[float]] = None,
        spatial_context: Optional[Sequence[float]] = None
    ) -> Optional[SequenceEpisode]:
        """Best match above a low threshold, or None."""
        query = SequenceQuery(
            pattern=pattern,
            temporal_context=temporal_context,
            spatial_context=spatial_context,
            similarity_threshold=FIND_SIMILAR_THRESHOLD,
            max_results=1
        )
        results = self.retrieve_episodes(query)
        return results[0] if results else None

    def _find_candidate_episodes(self, query: SequenceQuery) -> List[SequenceEpisode]:
        """Union of index lookups; all episodes when no criterion applies."""
        # dict keeps insertion order, so candidate order is deterministic
        candidate_ids: Dict[str, None] = {}

        if query.temporal_context is not None:
            spatial_context = query.spatial_context if query.spatial_context is not None else []
            signature = context_signature(query.temporal_context, spatial_context)
            for episode_id in self.context_index.get(signature, []):
                candidate_ids[episode_id] = None

        if query.tags is not None:
            for tag in query.tags:
                for episode_id in self.tag_index.get(tag, []):
                    candidate_ids[episode_id] = None

        if query.time_range is not None:
            start, end = query.time_range
            for bucket in range(day_bucket(start), day_bucket(end) + 1):
                for episode_id in self.temporal_index.get(bucket, []):
                    candidate_ids[episode_id] = None

        if not candidate_ids:
            return list(self.episodes.values())

        return [self.episodes[eid] for eid in candidate_ids if eid in self.episodes]

    def _calculate_episode_score(self, episode: SequenceEpisode, query: SequenceQuery) -> float:
        """Weighted similarity over the supplied components, renormalized."""
        score = 0.0
        weights = 0.0

        if query.pattern is not None:
            score += PATTERN_WEIGHT * sequence_similarity(
                list(query.pattern), episode.sequence, self.element_equals
            )
            weights += PATTERN_WEIGHT

        if query.temporal_context is not None:
            score += TEMPORAL_WEIGHT * cosine_similarity(
                _as_vector(query.temporal_context), episode.temporal_context
            )
            weights += TEMPORAL_WEIGHT

        if query.spatial_context is not None:
            score += SPATIAL_WEIGHT * cosine_similarity(
                _as_vector(query.spatial_context), episode.spatial_context
            )
            weights += SPATIAL_WEIGHT

        importance_score = min(1.0, episode.importance / IMPORTANCE_CAP)
        score += IMPORTANCE_WEIGHT * importance_score
        weights += IMPORTANCE_WEIGHT

        return score / weights if weights > 0 else 0.0

    def _record_access(self, episode: SequenceEpisode, score: float):
        episode.access_count += 1
        episode.last_accessed = self.clock.now()
        episode.importance *= ACCESS_BOOST

        self.access_patterns[episode.episode_id] = self.access_patterns.get(episode.episode_id, 0) + 1
        self.recent_retrievals.append((episode.episode_id, episode.last_accessed, score))

    def get_episode(self, episode_id: str) -> Optional[SequenceEpisode]:
        return self.episodes.get(episode_id)

    def get_episodes_by_time_range(self, start_time: float, end_time: float) -> List[SequenceEpisode]:
        """Episodes stored within [start_time, end_time], oldest first."""
        matching = [
            episode for episode in self.episodes.values()
            if start_time <= episode.timestamp <= end_time
        ]
        return sorted(matching, key=lambda ep: ep.timestamp)

    def get_episodes_by_tags(self, tags: Iterable[str]) -> List[SequenceEpisode]:
        """Episodes carrying any of the tags."""
        episode_ids: Dict[str, None] = {}
        for tag in tags:
            for episode_id in self.tag_index.get(tag, []):
                episode_ids[episode_id] = None

        return [self.episodes[eid] for eid in episode_ids if eid in self.episodes]

    def search_subsequence(
        self,
        subsequence: Sequence[Any],
        similarity_threshold: float = 0.8
    ) -> List[SequenceEpisode]:
        """
        Episodes containing a window similar to `subsequence`.

        Returns:
            Matches sorted by importance, highest first
        """
        subsequence = list(subsequence)
        matches = [
            episode for episode in self.episodes.values()
            if contains_subsequence(episode.sequence, subsequence,
                                    similarity_threshold, self.element_equals)
        ]
        return sorted(matches, key=lambda ep: ep.importance, reverse=True)

    # ------------------------------------------------------------------
    # Associations
    # ------------------------------------------------------------------

    def create_association(self, episode_id1: str, episode_id2: str, strength: float = 1.0):
        """
        Link two episodes in both directions.

        Idempotent per exact (neighbor, strength) pair; unknown ids are
        ignored.
        """
        episode1 = self.episodes.get(episode_id1)
        episode2 = self.episodes.get(episode_id2)

        if episode1 is None or episode2 is None or episode1 is episode2:
            return

        episode1.add_association(episode_id2, strength)
        episode2.add_association(episode_id1, strength)

    def get_associated_episodes(self, episode_id: str) -> List[Tuple[SequenceEpisode, float]]:
        """(episode, strength) pairs for live neighbors, strongest first."""
        episode = self.episodes.get(episode_id)
        if episode is None:
            return []

        associated = []
        for association in episode.associations:
            neighbor = self.episodes.get(association.neighbor_id)
            if neighbor is not None:
                associated.append((neighbor, association.strength))

        associated.sort(key=lambda item: item[1], reverse=True)
        return associated

    # ------------------------------------------------------------------
    # Consolidation and forgetting
    # ------------------------------------------------------------------

    def consolidate_memories(self) -> Dict:
        """Consolidate every queued episode. Returns pass statistics."""
        return self.consolidation.consolidate(self.episodes, self.create_association)

    def apply_forgetting(self) -> List[str]:
        """
        Decay importance across the store and drop forgotten episodes.

        Returns:
            Ids of removed episodes
        """
        current_time = self.clock.now()

        to_forget = []
        for episode_id, episode in self.episodes.items():
            self.forgetting.decay(episode, current_time)
            if self.forgetting.should_forget(episode):
                to_forget.append(episode_id)

        for episode_id in to_forget:
            self._forget_episode(episode_id)

        retention = self.forgetting.record_retention(list(self.episodes.values()), current_time)

        if to_forget:
            logger.info(
                f"Forgot {len(to_forget)} episodes "
                f"({len(self.episodes)} remain, retention={retention:.2f})"
            )
        return to_forget

    def _forget_episode(self, episode_id: str):
        episode = self.episodes.pop(episode_id, None)
        if episode is None:
            return

        self._remove_from_indices(episode)
        self.consolidation.discard(episode_id)
        self.access_patterns.pop(episode_id, None)

        # Keep associations bidirectional: neighbors drop their edge back
        for association in episode.associations:
            neighbor = self.episodes.get(association.neighbor_id)
            if neighbor is not None:
                neighbor.remove_associations_to(episode_id)

        self.total_episodes_forgotten += 1

    def _remove_from_indices(self, episode: SequenceEpisode):
        def remove(index: Dict, key):
            ids = index.get(key)
            if ids and episode.episode_id in ids:
                ids.remove(episode.episode_id)

        remove(self.temporal_index, day_bucket(episode.timestamp))
        remove(self.context_index, context_signature(episode.temporal_context, episode.spatial_context))
        for tag in episode.tags:
            remove(self.tag_index, tag)

    def _cleanup_indices(self):
        """Drop empty index entries."""
        for index in (self.temporal_index, self.context_index, self.tag_index):
            for key in [k for k, ids in index.items() if not ids]:
                del index[key]

    def _perform_maintenance(self):
        """Forgetting, then consolidation, then index cleanup."""
        with PerformanceLogger("memory maintenance"):
            before = len(self.episodes)
            self.apply_forgetting()
            self.consolidate_memories()
            self._cleanup_indices()

        logger.info(
            f"Memory maintenance: {before} -> {len(self.episodes)} episodes "
            f"(max={self.config.max_episodes})"
        )

    # ------------------------------------------------------------------
    # Introspection and snapshots
    # ------------------------------------------------------------------

    def get_memory_stats(self) -> MemoryStats:
        """Get memory statistics."""
        total = len(self.episodes)
        consolidated = sum(1 for ep in self.episodes.values() if ep.consolidation_level > 0.5)
        total_length = sum(len(ep.sequence) for ep in self.episodes.values())

        recent = list(self.recent_retrievals)[-100:]
        retrieval_accuracy = float(np.mean([score for _, _, score in recent])) if recent else 0.0

        return MemoryStats(
            total_episodes=total,
            consolidated_episodes=consolidated,
            average_sequence_length=total_length / total if total else 0.0,
            memory_utilization=total / self.config.max_episodes,
            retrieval_accuracy=retrieval_accuracy,
            consolidation_rate=consolidated / total if total else 0.0
        )

    def get_forgetting_curve(self) -> List[Tuple[float, float]]:
        return self.forgetting.get_curve()

    @property
    def consolidation_queue(self) -> List[str]:
        return list(self.consolidation.queue)

    def reset(self):
        """Forget everything."""
        self.episodes.clear()
        self.temporal_index.clear()
        self.context_index.clear()
        self.tag_index.clear()
        self.access_patterns.clear()
        self.recent_retrievals.clear()
        self.forgetting.reset()
        self.consolidation.reset()
        self.total_episodes_stored = 0
        self.total_episodes_forgotten = 0
        self._next_episode_id = 1

    def to_dict(self) -> Dict:
        """Plain-data snapshot. Indices are derived and not included."""
        return {
            "episodes": [ep.to_dict() for ep in self.episodes.values()],
            "consolidation_queue": list(self.consolidation.queue),
            "access_patterns": dict(self.access_patterns),
            "total_episodes_stored": self.total_episodes_stored,
            "total_episodes_forgotten": self.total_episodes_forgotten,
            "next_episode_id": self._next_episode_id,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict,
        config: Optional[SequenceMemoryConfig] = None,
        clock: Optional[Clock] = None,
        element_equals: Optional[ElementEquals] = None
    ) -> 'SequenceMemory':
        """Rebuild a memory (and its indices) from a to_dict() snapshot."""
        memory = cls(config=config, clock=clock, element_equals=element_equals)

        for episode_data in data.get("episodes", []):
            episode = SequenceEpisode.from_dict(episode_data)
            memory.episodes[episode.episode_id] = episode
            memory._update_indices(episode)

        for episode_id in data.get("consolidation_queue", []):
            if episode_id in memory.episodes:
                memory.consolidation.enqueue(episode_id)

        memory.access_patterns = {
            eid: count for eid, count in data.get("access_patterns", {}).items()
            if eid in memory.episodes
        }
        memory.total_episodes_stored = data.get("total_episodes_stored", len(memory.episodes))
        memory.total_episodes_forgotten = data.get("total_episodes_forgotten", 0)
        memory._next_episode_id = data.get("next_episode_id", len(memory.episodes) + 1)

        logger.info(f"Restored {len(memory.episodes)} episodes from snapshot")
        return memory
