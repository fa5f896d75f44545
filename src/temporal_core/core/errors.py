"""
Error types for the temporal core.

Only caller contract violations raise. Ordinary misses (unknown episode id,
empty query results) return None or an empty list, and numeric edge cases are
clamped to sentinel values.
"""


class TemporalCoreError(Exception):
    """Base class for all temporal core errors"""
    pass


class LevelOutOfRangeError(TemporalCoreError, ValueError):
    """Raised when a hierarchy level is outside [0, max_levels)"""

    def __init__(self, level: int, max_levels: int):
        self.level = level
        self.max_levels = max_levels
        super().__init__(f"Level {level} out of range [0, {max_levels - 1}]")


class ShapeMismatchError(TemporalCoreError, ValueError):
    """Raised when predicted and actual vectors differ in length"""

    def __init__(self, predicted_length: int, actual_length: int):
        self.predicted_length = predicted_length
        self.actual_length = actual_length
        super().__init__(
            f"Predicted length {predicted_length} doesn't match "
            f"actual length {actual_length}"
        )
