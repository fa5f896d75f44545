"""
Sequence and Context Similarity
===============================

Pure similarity measures used for uniqueness, retrieval scoring and
consolidation.

- Sequence similarity: Dice-normalized longest common subsequence,
  2 * LCS(a, b) / (len(a) + len(b)). Elements only need an equality test.
- Context similarity: cosine similarity of equal-length vectors.
"""

import numbers
from typing import Any, Callable, Sequence

import numpy as np


ElementEquals = Callable[[Any, Any], bool]

NUMERIC_TOLERANCE = 1e-6


def elements_equal(a: Any, b: Any) -> bool:
    """Numbers match within 1e-6, everything else by strict equality."""
    if (isinstance(a, numbers.Real) and isinstance(b, numbers.Real)
            and not isinstance(a, bool) and not isinstance(b, bool)):
        return abs(a - b) < NUMERIC_TOLERANCE
    return a == b


def longest_common_subsequence(
    seq1: Sequence[Any],
    seq2: Sequence[Any],
    equals: ElementEquals = elements_equal
) -> int:
    """
    Length of the longest common subsequence.

    Classic O(m*n) dynamic program, kept to two rows.
    """
    if not seq1 or not seq2:
        return 0

    previous = [0] * (len(seq2) + 1)
    for a in seq1:
        current = [0] * (len(seq2) + 1)
        for j, b in enumerate(seq2, start=1):
            if equals(a, b):
                current[j] = previous[j - 1] + 1
            else:
                current[j] = max(previous[j], current[j - 1])
        previous = current

    return previous[-1]


def sequence_similarity(
    seq1: Sequence[Any],
    seq2: Sequence[Any],
    equals: ElementEquals = elements_equal
) -> float:
    """
    Dice-normalized LCS similarity in [0, 1].

    Two empty sequences are identical; one empty sequence matches nothing.
    """
    if len(seq1) == 0 and len(seq2) == 0:
        return 1.0
    if len(seq1) == 0 or len(seq2) == 0:
        return 0.0

    lcs = longest_common_subsequence(seq1, seq2, equals)
    return (2.0 * lcs) / (len(seq1) + len(seq2))


def cosine_similarity(vec1: np.ndarray, vec2: np.ndarray) -> float:
    """Cosine similarity; 0 for mismatched lengths or zero vectors."""
    vec1 = np.asarray(vec1, dtype=float)
    vec2 = np.asarray(vec2, dtype=float)
    if vec1.shape != vec2.shape:
        return 0.0

    magnitude = np.sqrt(np.dot(vec1, vec1) * np.dot(vec2, vec2))
    if magnitude <= 0:
        return 0.0
    return float(np.dot(vec1, vec2) / magnitude)


def contains_subsequence(
    sequence: Sequence[Any],
    subsequence: Sequence[Any],
    threshold: float,
    equals: ElementEquals = elements_equal
) -> bool:
    """
    True if any contiguous window of `sequence` with the subsequence's length
    reaches `threshold` sequence similarity.
    """
    window = len(subsequence)
    for start in range(len(sequence) - window + 1):
        candidate = list(sequence[start:start + window])
        if sequence_similarity(candidate, subsequence, equals) >= threshold:
            return True
    return False
