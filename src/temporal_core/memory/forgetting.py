"""
Memory Forgetting and Decay
============================

Time-based importance decay with consolidation protection.

For an episode last accessed `t` days ago:

    forgetting = exp(-t * decay_rate) * (1 - consolidation_level)
    importance <- importance * (1 - forgetting)

A fully consolidated episode (level 1.0) never loses importance. Episodes
whose importance drops below `min_importance` while still weakly
consolidated are forgotten outright.

References:
- Ebbinghaus (1885): Forgetting curve
- Anderson & Schooler (1991): Rational analysis of memory
"""

import numpy as np
from collections import deque
from typing import List, Tuple
from dataclasses import dataclass

from ..interfaces.clock import MS_PER_DAY
from .episode import SequenceEpisode


@dataclass
class ForgettingConfig:
    """Configuration for memory forgetting."""
    min_importance: float = 0.1  # Below this an episode may be forgotten
    protection_level: float = 0.3  # Consolidation at or above this is never forgotten
    retention_floor: float = 0.1  # Importance counted as "retained" on the curve
    curve_capacity: int = 1000  # Forgetting-curve samples kept


class ForgettingEngine:
    """
    Manages importance decay and the forgetting curve log.

    The engine owns no episodes; SequenceMemory hands them in and removes
    whatever `should_forget` flags.
    """

    def __init__(self, decay_rate: float, config: ForgettingConfig = None):
        self.decay_rate = decay_rate
        self.config = config or ForgettingConfig()

        # (time, retention) samples, oldest evicted first
        self.forgetting_curve = deque(maxlen=self.config.curve_capacity)

    def compute_forgetting_factor(self, episode: SequenceEpisode, current_time: float) -> float:
        """
        exp(-days_since_access * decay_rate).

        Args:
            episode: Episode to evaluate
            current_time: Now, in epoch ms

        Returns:
            Factor in (0, 1]
        """
        days = max(0.0, current_time - episode.last_accessed) / MS_PER_DAY
        return float(np.exp(-days * self.decay_rate))

    def decay(self, episode: SequenceEpisode, current_time: float) -> float:
        """
        Apply one forgetting step to an episode's importance.

        Returns:
            The new importance
        """
        forgetting_factor = self.compute_forgetting_factor(episode, current_time)
        protected_forgetting = forgetting_factor * (1.0 - episode.consolidation_level)

        episode.importance *= (1.0 - protected_forgetting)
        return episode.importance

    def should_forget(self, episode: SequenceEpisode) -> bool:
        """Weak and unconsolidated episodes are forgotten."""
        return (episode.importance < self.config.min_importance
                and episode.consolidation_level < self.config.protection_level)

    def record_retention(self, episodes: List[SequenceEpisode], current_time: float) -> float:
        """
        Append a retention sample to the forgetting curve.

        Returns:
            Fraction of episodes above the retention floor (1.0 when empty)
        """
        if episodes:
            retained = sum(1 for ep in episodes if ep.importance > self.config.retention_floor)
            retention = retained / len(episodes)
        else:
            retention = 1.0

        self.forgetting_curve.append((current_time, retention))
        return retention

    def get_curve(self) -> List[Tuple[float, float]]:
        return list(self.forgetting_curve)

    def reset(self):
        self.forgetting_curve.clear()
