"""
Tests for error signal shaping

- Abstraction (chunk means)
- Elaboration (midpoint interpolation)
- Suppression masks
- Learning signals
"""
import numpy as np
import pytest
from temporal_core.core.config import ErrorWeighting
from temporal_core.prediction.signals import (
    abstract_error,
    elaborate_error,
    suppression_mask,
    weight_errors,
    learning_signal,
)


class TestAbstraction:
    """Test upward compression"""

    def test_chunk_means(self):
        error = np.arange(1.0, 9.0)

        np.testing.assert_allclose(abstract_error(error), [1.5, 3.5, 5.5, 7.5])

    def test_short_vector_unchanged(self):
        np.testing.assert_allclose(abstract_error(np.array([1.0, 2.0, 3.0])), [1.0, 2.0, 3.0])

    def test_trailing_partial_chunk(self):
        # chunk size 2 over 9 elements, the last chunk holds one
        np.testing.assert_allclose(abstract_error(np.arange(1.0, 10.0)), [1.5, 3.5, 5.5, 7.5, 9.0])

    def test_empty(self):
        assert abstract_error(np.zeros(0)).size == 0


class TestElaboration:
    """Test downward expansion"""

    def test_midpoints(self):
        np.testing.assert_allclose(elaborate_error(np.array([1.0, 3.0, 5.0])), [1.0, 2.0, 3.0, 4.0, 5.0])

    def test_single_element(self):
        np.testing.assert_allclose(elaborate_error(np.array([2.0])), [2.0])

    def test_length(self):
        assert elaborate_error(np.ones(6)).size == 11


class TestSuppressionMask:
    def test_five_times_threshold(self):
        mask = suppression_mask(np.array([0.01, 0.06, -0.1]), 0.01)

        assert mask.tolist() == [False, True, True]

    def test_boundary_excluded(self):
        assert suppression_mask(np.array([0.5]), 0.1).tolist() == [False]


class TestLearningSignal:
    """Test rate-scaled learning signals"""

    def test_zero_error(self):
        signal = learning_signal(np.zeros(3), "ascending", 0.1, ErrorWeighting())

        np.testing.assert_array_equal(signal, np.zeros(3))

    def test_weighting(self):
        weighting = ErrorWeighting()
        weighted = weight_errors(np.array([1.0]), weighting)

        expected = 0.4 * np.tanh(1.0) + 0.3 * np.log(2.0) + 0.2 + 0.1
        assert weighted[0] == pytest.approx(expected)

    def test_sign_preserved(self):
        weighted = weight_errors(np.array([-1.0, 1.0]), ErrorWeighting())

        assert weighted[0] == pytest.approx(-weighted[1])

    def test_direction_rates(self):
        error = np.array([0.5, -0.25])
        weighting = ErrorWeighting()

        ascending = learning_signal(error, "ascending", 0.1, weighting)
        descending = learning_signal(error, "descending", 0.1, weighting)
        lateral = learning_signal(error, "lateral", 0.1, weighting)

        np.testing.assert_allclose(ascending / lateral, [1.1, 1.1])
        np.testing.assert_allclose(descending / lateral, [0.9, 0.9])
