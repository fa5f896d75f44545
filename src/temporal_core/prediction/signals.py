"""
Error signal shaping.

Pure numpy transforms applied when an error is turned into signals:
- abstract_error: mean-pool into roughly four chunks for the level above
- elaborate_error: interleave midpoints for the level below
- suppression_mask: flag components too large to pass down uncorrected
- learning_signal: rate-scaled, weight-blended copy of an error vector
"""

import numpy as np

from ..core.config import ErrorWeighting


# Learning-rate offset per direction: rate * (1 + offset * 0.1)
DIRECTION_OFFSETS = {
    "ascending": 1,
    "descending": -1,
    "lateral": 0,
}


def abstract_error(error: np.ndarray) -> np.ndarray:
    """Mean of consecutive chunks of max(1, n // 4) elements."""
    error = np.asarray(error, dtype=float)
    if error.size == 0:
        return np.zeros(0)

    chunk_size = max(1, error.size // 4)
    return np.array([
        error[start:start + chunk_size].mean()
        for start in range(0, error.size, chunk_size)
    ])


def elaborate_error(error: np.ndarray) -> np.ndarray:
    """
    Linear interpolation to 2n - 1 components.

    [a, b, c] -> [a, (a+b)/2, b, (b+c)/2, c]
    """
    error = np.asarray(error, dtype=float)
    if error.size <= 1:
        return error.copy()

    elaborated = np.empty(2 * error.size - 1)
    elaborated[0::2] = error
    elaborated[1::2] = (error[:-1] + error[1:]) / 2.0
    return elaborated


def suppression_mask(error: np.ndarray, error_threshold: float) -> np.ndarray:
    """True where |e| exceeds five times the error threshold."""
    return np.abs(np.asarray(error, dtype=float)) > error_threshold * 5


def weight_errors(error: np.ndarray, weighting: ErrorWeighting) -> np.ndarray:
    """
    Scale each component by its blended weight.

    w(e) = magnitude*tanh|e| + novelty*ln(|e| + 1) + consistency + contextual
    """
    error = np.asarray(error, dtype=float)
    magnitude = np.abs(error)
    total_weight = (
        weighting.magnitude * np.tanh(magnitude)
        + weighting.novelty * np.log(magnitude + 1)
        + weighting.consistency
        + weighting.contextual
    )
    return error * total_weight


def learning_signal(
    error: np.ndarray,
    direction: str,
    learning_rate: float,
    weighting: ErrorWeighting
) -> np.ndarray:
    """
    Learning signal for a signal travelling in `direction`.

    Args:
        error: Error vector carried by the signal
        direction: "ascending", "descending" or "lateral"
        learning_rate: Base rate
        weighting: Error weighting config

    Returns:
        Vector the same length as `error`
    """
    rate = learning_rate * (1 + DIRECTION_OFFSETS[direction] * 0.1)
    return rate * weight_errors(error, weighting)
