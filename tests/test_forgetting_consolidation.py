"""
Tests for forgetting and consolidation

- Importance decay with consolidation protection
- Removal and index purging
- Consolidation level, associations and importance boost
"""
import math
import pytest
from temporal_core.core.config import SequenceMemoryConfig
from temporal_core.interfaces.clock import ManualClock
from temporal_core.memory import (
    SequenceMemory,
    ForgettingEngine,
    ForgettingConfig,
    ConsolidationEngine,
    episode_similarity,
)


START = 1_700_000_000_000.0


@pytest.fixture
def clock():
    return ManualClock(start=START)


@pytest.fixture
def memory(clock):
    return SequenceMemory(SequenceMemoryConfig(decay_rate=1.0), clock=clock)


def indexed_ids(memory):
    ids = set()
    for index in (memory.temporal_index, memory.context_index, memory.tag_index):
        for episode_ids in index.values():
            ids.update(episode_ids)
    return ids


class TestForgettingEngine:
    """Test forgetting math in isolation"""

    def test_factor_is_one_at_access_time(self, memory):
        episode_id = memory.store_episode([1, 2], [0.1], [0.1])
        engine = ForgettingEngine(decay_rate=1.0)

        assert engine.compute_forgetting_factor(memory.get_episode(episode_id), START) == 1.0

    def test_factor_decays_with_days(self, memory):
        episode_id = memory.store_episode([1, 2], [0.1], [0.1])
        engine = ForgettingEngine(decay_rate=0.5)

        factor = engine.compute_forgetting_factor(memory.get_episode(episode_id), START + 2 * 86_400_000)

        assert factor == pytest.approx(math.exp(-1.0))

    def test_retention_of_empty_store(self):
        engine = ForgettingEngine(decay_rate=0.01)

        assert engine.record_retention([], START) == 1.0
        assert engine.get_curve() == [(START, 1.0)]

    def test_curve_capacity(self):
        engine = ForgettingEngine(decay_rate=0.01, config=ForgettingConfig(curve_capacity=3))

        for i in range(5):
            engine.record_retention([], float(i))

        assert [t for t, _ in engine.get_curve()] == [2.0, 3.0, 4.0]


class TestApplyForgetting:
    """Test forgetting across the store"""

    def test_importance_strictly_decreases(self, memory, clock):
        episode_id = memory.store_episode([1, 2, 3], [0.1], [0.1])
        previous = memory.get_episode(episode_id).importance

        for _ in range(5):
            clock.advance_days(1)
            memory.apply_forgetting()

            episode = memory.get_episode(episode_id)
            if episode is None:
                break
            assert episode.importance < previous
            previous = episode.importance

    def test_fresh_unconsolidated_episode_forgotten(self, memory):
        """No time since access means full forgetting for level 0"""
        episode_id = memory.store_episode([1, 2, 3], [0.1], [0.1], tags=["t"])

        removed = memory.apply_forgetting()

        assert removed == [episode_id]
        assert memory.get_episode(episode_id) is None
        assert indexed_ids(memory) == set()

    def test_weak_episode_removed(self, memory, clock):
        keep = memory.store_episode([1, 2, 3], [0.1], [0.1])
        drop = memory.store_episode([7, 8, 9], [0.5], [0.5], tags=["gone"])
        memory.get_episode(keep).consolidation_level = 0.5
        memory.get_episode(drop).importance = 0.05
        memory.get_episode(drop).consolidation_level = 0.2

        clock.advance_days(10)
        memory.apply_forgetting()

        assert memory.get_episode(drop) is None
        assert memory.get_episode(keep) is not None
        assert indexed_ids(memory) == set(memory.episodes)
        assert drop not in memory.access_patterns

    def test_fully_consolidated_never_forgotten(self, memory, clock):
        episode_id = memory.store_episode([1, 2, 3], [0.1], [0.1])
        episode = memory.get_episode(episode_id)
        episode.consolidation_level = 1.0
        episode.importance = 0.01

        for days in (0, 1, 1000):
            clock.advance_days(days)
            memory.apply_forgetting()

        assert memory.get_episode(episode_id) is not None
        assert memory.get_episode(episode_id).importance == 0.01

    def test_forgetting_purges_queue(self, memory):
        episode_id = memory.store_episode(list(range(50)), [1.0], [1.0], emotional_valence=1.0)
        assert episode_id in memory.consolidation_queue

        memory.get_episode(episode_id).importance = 0.01
        memory.apply_forgetting()

        assert memory.consolidation_queue == []

    def test_forgetting_drops_edges_to_removed(self, memory, clock):
        keep = memory.store_episode([1, 2, 3], [0.1], [0.1])
        drop = memory.store_episode([7, 8, 9], [0.1], [0.1])
        memory.create_association(keep, drop, 0.9)
        memory.get_episode(keep).consolidation_level = 1.0

        memory.apply_forgetting()

        assert memory.get_episode(drop) is None
        assert memory.get_episode(keep).associations == []

    def test_retention_sample_recorded(self, memory):
        memory.store_episode([1, 2, 3], [0.1], [0.1])

        memory.apply_forgetting()
        memory.apply_forgetting()

        assert len(memory.get_forgetting_curve()) == 2


class TestConsolidation:
    """Test consolidation passes"""

    @pytest.fixture
    def linked(self, clock):
        memory = SequenceMemory(clock=clock)
        anchor = memory.store_episode(list(range(50)), [1.0, 0.0], [0.0, 1.0], emotional_valence=1.0)
        similar = memory.store_episode(
            list(range(45)) + [100, 101, 102, 103, 104], [1.0, 0.0], [0.0, 1.0]
        )
        unrelated = memory.store_episode(["x", "y"], [0.0, 1.0], [1.0, 0.0])
        return memory, anchor, similar, unrelated

    def test_queue_contents(self, linked):
        memory, anchor, similar, unrelated = linked

        assert memory.consolidation_queue == [anchor]

    def test_consolidation_level_and_importance(self, linked):
        memory, anchor, _, _ = linked
        before = memory.get_episode(anchor).importance

        stats = memory.consolidate_memories()

        episode = memory.get_episode(anchor)
        assert stats["episodes_consolidated"] == 1
        assert episode.consolidation_level == pytest.approx(0.1)
        assert episode.importance == pytest.approx(before * 1.02)
        assert memory.consolidation_queue == []

    def test_similar_episodes_associated(self, linked):
        memory, anchor, similar, unrelated = linked

        memory.consolidate_memories()

        neighbors = {ep.episode_id: s for ep, s in memory.get_associated_episodes(anchor)}
        assert set(neighbors) == {similar}
        assert neighbors[similar] == pytest.approx((0.9 + 1.0 + 1.0) / 3)
        assert [ep.episode_id for ep, _ in memory.get_associated_episodes(similar)] == [anchor]
        assert memory.get_associated_episodes(unrelated) == []

    def test_association_limit(self, clock):
        memory = SequenceMemory(clock=clock)
        anchor = memory.store_episode(list(range(50)), [1.0], [1.0], emotional_valence=1.0)
        for i in range(8):
            memory.store_episode(list(range(49)) + [1000 + i], [1.0], [1.0])

        memory.consolidate_memories()

        assert len(memory.get_associated_episodes(anchor)) == 5

    def test_consolidation_level_capped(self, linked):
        memory, anchor, _, _ = linked
        memory.get_episode(anchor).consolidation_level = 0.95

        memory.consolidate_memories()

        assert memory.get_episode(anchor).consolidation_level == 1.0

    def test_episode_similarity(self, linked):
        memory, anchor, _, unrelated = linked

        similarity = episode_similarity(memory.get_episode(anchor), memory.get_episode(unrelated))

        assert similarity == pytest.approx(0.0)

    def test_engine_skips_missing(self):
        engine = ConsolidationEngine()
        engine.enqueue("missing")

        stats = engine.consolidate({}, lambda a, b, s: None)

        assert stats["episodes_consolidated"] == 0
        assert engine.queue == []
