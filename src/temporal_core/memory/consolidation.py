"""
Memory Consolidation Engine
============================

Strengthens queued episodes and links them to similar ones.

For every queued episode:
1. Raise its consolidation level by a fixed step (capped at 1.0)
2. Associate it with up to N similar episodes (mean of sequence, temporal
   and spatial similarity at or above a threshold, most similar first)
3. Boost its importance by (1 + level * importance_boost)

References:
- Squire & Alvarez (1995): Systems consolidation theory
- McClelland et al. (1995): Complementary learning systems
"""

from typing import Callable, Dict, List, Tuple
from dataclasses import dataclass

from loguru import logger

from .episode import SequenceEpisode
from .similarity import ElementEquals, elements_equal, sequence_similarity, cosine_similarity


@dataclass
class ConsolidationConfig:
    """Configuration for memory consolidation."""
    level_increment: float = 0.1  # Consolidation gained per pass
    association_threshold: float = 0.7  # Min episode similarity to link
    max_associations: int = 5  # Links formed per consolidated episode
    importance_boost: float = 0.2  # importance *= 1 + level * boost


def episode_similarity(
    episode1: SequenceEpisode,
    episode2: SequenceEpisode,
    equals: ElementEquals = elements_equal
) -> float:
    """Mean of sequence, temporal-context and spatial-context similarity."""
    sequence_sim = sequence_similarity(episode1.sequence, episode2.sequence, equals)
    temporal_sim = cosine_similarity(episode1.temporal_context, episode2.temporal_context)
    spatial_sim = cosine_similarity(episode1.spatial_context, episode2.spatial_context)

    return (sequence_sim + temporal_sim + spatial_sim) / 3.0


class ConsolidationEngine:
    """
    Holds the consolidation queue and runs consolidation passes.

    Association edges are written through the `link` callback so the
    memory keeps sole ownership of its episodes.
    """

    def __init__(self, config: ConsolidationConfig = None, equals: ElementEquals = elements_equal):
        self.config = config or ConsolidationConfig()
        self.equals = equals

        self.queue: List[str] = []

        # Consolidation stats
        self.total_consolidated = 0
        self.associations_formed = 0

    def enqueue(self, episode_id: str):
        self.queue.append(episode_id)

    def discard(self, episode_id: str):
        """Drop every queued occurrence of an episode."""
        self.queue = [eid for eid in self.queue if eid != episode_id]

    def find_similar(
        self,
        episode: SequenceEpisode,
        episodes: Dict[str, SequenceEpisode]
    ) -> List[Tuple[SequenceEpisode, float]]:
        """
        Episodes at or above the association threshold, most similar first.

        Args:
            episode: Reference episode
            episodes: Candidate pool (the reference is skipped)

        Returns:
            (episode, similarity) pairs
        """
        similar = []
        for candidate in episodes.values():
            if candidate.episode_id == episode.episode_id:
                continue

            similarity = episode_similarity(episode, candidate, self.equals)
            if similarity >= self.config.association_threshold:
                similar.append((candidate, similarity))

        similar.sort(key=lambda item: item[1], reverse=True)
        return similar

    def consolidate(
        self,
        episodes: Dict[str, SequenceEpisode],
        link: Callable[[str, str, float], None]
    ) -> Dict:
        """
        Run a consolidation pass over the queue and empty it.

        Args:
            episodes: Live episodes by id
            link: Callback creating a bidirectional association

        Returns:
            Consolidation statistics
        """
        to_consolidate = self.queue
        self.queue = []

        consolidated = 0
        links = 0
        for episode_id in to_consolidate:
            episode = episodes.get(episode_id)
            if episode is None:
                continue

            episode.consolidation_level = min(
                1.0, episode.consolidation_level + self.config.level_increment
            )

            for similar, similarity in self.find_similar(episode, episodes)[:self.config.max_associations]:
                link(episode.episode_id, similar.episode_id, similarity)
                links += 1

            episode.importance *= (1.0 + episode.consolidation_level * self.config.importance_boost)
            consolidated += 1

        self.total_consolidated += consolidated
        self.associations_formed += links

        if consolidated:
            logger.info(f"Consolidated {consolidated} episodes ({links} associations)")

        return {
            'episodes_consolidated': consolidated,
            'associations_formed': links,
            'total_consolidated': self.total_consolidated,
        }

    def reset(self):
        self.queue = []
        self.total_consolidated = 0
        self.associations_formed = 0
