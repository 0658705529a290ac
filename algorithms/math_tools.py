import math
from typing import Iterable
import numpy as np


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    @staticmethod
    def round_half_up(value: float) -> int:
        """Round to the nearest integer with halves rounded towards +inf."""
        return int(math.floor(value + 0.5))

    @staticmethod
    def rep_ratio(reps: int, target_reps: int) -> float:
        """Return achieved reps as a fraction of the target."""
        if target_reps <= 0:
            raise ValueError("target_reps must be positive")
        return reps / target_reps

    @staticmethod
    def volume(sets: Iterable[tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        pairs = list(sets)
        if not pairs:
            return 0.0
        arr = np.array(pairs, dtype=float)
        return float(np.sum(arr[:, 0] * arr[:, 1]))

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        if limit <= 0:
            return 0
        return math.ceil(total / limit)
