"""
Residents — the population living inside one residential building.

Growth and decline are driven only by city-wide happiness and pollution,
so the same inputs always give the same count. Saves depend on that: a
replayed city must end up with the same population as the original.
"""

import math

from gridcity.config import (
    RESIDENTS_START_COUNT, RESIDENT_GROWTH_RATE, RESIDENT_DECLINE_RATE,
    HAPPINESS_THRESHOLD_FOR_GROWTH, POLLUTION_THRESHOLD_FOR_DECLINE,
)
from gridcity.core.logger import get_logger


class Residents:
    """Population sub-model; count stays within [0, max_capacity]."""

    def __init__(self, max_capacity: int,
                 start_count: int = RESIDENTS_START_COUNT) -> None:
        self.max_capacity: int = max(0, int(max_capacity))
        self.count: int = max(0, min(int(start_count), self.max_capacity))

    @staticmethod
    def growth_factor(happiness: float, pollution: float) -> float:
        factor = 0.0
        if happiness > HAPPINESS_THRESHOLD_FOR_GROWTH:
            factor += RESIDENT_GROWTH_RATE
        if pollution > POLLUTION_THRESHOLD_FOR_DECLINE:
            factor -= RESIDENT_DECLINE_RATE
        return factor

    def simulate(self, happiness: float, pollution: float, capacity: int) -> int:
        """Advance one tick and return the new count."""
        factor = self.growth_factor(happiness, pollution)
        grown = math.floor(self.count * (1 + factor))
        ceiling = min(int(capacity), self.max_capacity)
        self.count = max(0, min(grown, ceiling))
        get_logger().log_debug(
            "RESIDENTS",
            f"{self.count}/{ceiling} (happiness={happiness}, pollution={pollution})")
        return self.count

    def set_count(self, count: int) -> int:
        """Overwrite the count (used when restoring a save), clamped."""
        self.count = max(0, min(int(count), self.max_capacity))
        return self.count

    def dispose(self) -> None:
        get_logger().log_debug("RESIDENTS", f"Disposing {self.count} residents")
