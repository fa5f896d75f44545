"""
Episode records for the sequence memory.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import numpy as np


@dataclass(frozen=True)
class Association:
    """Weighted edge to another episode. `neighbor_id` is a lookup key only."""
    neighbor_id: str
    strength: float


@dataclass
class SequenceEpisode:
    """
    One stored occurrence of a sequence.

    Attributes:
        episode_id: Unique key in the store
        sequence: Ordered opaque elements
        temporal_context: When-context vector
        spatial_context: Where-context vector
        timestamp: Insertion time (epoch ms)
        importance: Retention score, >= 0
        access_count: Times returned by retrieval
        last_accessed: Last retrieval time (epoch ms), drives forgetting
        tags: Free-form labels, indexed
        associations: Bidirectional weighted edges to other episodes
        consolidation_level: Forgetting resistance in [0, 1]
        emotional_valence: Signed affect; its magnitude boosts importance
    """
    episode_id: str
    sequence: List[Any]
    temporal_context: np.ndarray
    spatial_context: np.ndarray
    timestamp: float
    importance: float = 0.0
    access_count: int = 0
    last_accessed: float = 0.0
    tags: Set[str] = field(default_factory=set)
    associations: List[Association] = field(default_factory=list)
    consolidation_level: float = 0.0
    emotional_valence: float = 0.0

    def add_association(self, neighbor_id: str, strength: float) -> bool:
        """Add an edge unless the exact (neighbor, strength) pair exists."""
        edge = Association(neighbor_id, float(strength))
        if edge in self.associations:
            return False
        self.associations.append(edge)
        return True

    def remove_associations_to(self, neighbor_id: str):
        self.associations = [a for a in self.associations if a.neighbor_id != neighbor_id]

    def to_dict(self) -> Dict:
        """Convert episode to dictionary for serialization."""
        return {
            "episode_id": self.episode_id,
            "sequence": list(self.sequence),
            "temporal_context": self.temporal_context.tolist(),
            "spatial_context": self.spatial_context.tolist(),
            "timestamp": self.timestamp,
            "importance": self.importance,
            "access_count": self.access_count,
            "last_accessed": self.last_accessed,
            "tags": sorted(self.tags),
            "associations": [[a.neighbor_id, a.strength] for a in self.associations],
            "consolidation_level": self.consolidation_level,
            "emotional_valence": self.emotional_valence,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'SequenceEpisode':
        """Reconstruct episode from dictionary."""
        return cls(
            episode_id=data["episode_id"],
            sequence=list(data["sequence"]),
            temporal_context=np.array(data.get("temporal_context", []), dtype=float),
            spatial_context=np.array(data.get("spatial_context", []), dtype=float),
            timestamp=float(data["timestamp"]),
            importance=data.get("importance", 0.0),
            access_count=data.get("access_count", 0),
            last_accessed=float(data.get("last_accessed", data["timestamp"])),
            tags=set(data.get("tags", [])),
            associations=[Association(n, float(s)) for n, s in data.get("associations", [])],
            consolidation_level=data.get("consolidation_level", 0.0),
            emotional_valence=data.get("emotional_valence", 0.0),
        )


@dataclass
class SequenceQuery:
    """
    Retrieval criteria. Every criterion is optional.

    `time_range` is (start_ms, end_ms). A None `similarity_threshold` falls
    back to the memory's configured threshold.
    """
    pattern: Optional[Sequence[Any]] = None
    temporal_context: Optional[Sequence[float]] = None
    spatial_context: Optional[Sequence[float]] = None
    time_range: Optional[Tuple[float, float]] = None
    tags: Optional[Sequence[str]] = None
    similarity_threshold: Optional[float] = None
    max_results: int = 10


@dataclass
class MemoryStats:
    """Snapshot of memory health."""
    total_episodes: int
    consolidated_episodes: int
    average_sequence_length: float
    memory_utilization: float
    retrieval_accuracy: float
    consolidation_rate: float
