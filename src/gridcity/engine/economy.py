"""
Economy — the city's aggregate financial and wellbeing state.

Each simulation tick the manager:
  1. Collects taxes: population x tax rate.
  2. Recomputes maintenance and pollution from scratch over every
     building (no running totals, so placing and removing buildings can
     never drift the figures).
  3. Pays maintenance out of revenue.
  4. Derives happiness from tax pressure and pollution, clamped to 0..100.
  5. Derives citizen lifespan from happiness, never below 1 tick.
  6. Reports game over when revenue falls strictly below the threshold.

The manager owns no spatial data; buildings and population are passed in
by the orchestrator every tick.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable

from gridcity.config import (
    INITIAL_REVENUE, TAX_RATE, HIGH_TAX_THRESHOLD, POLLUTION_HAPPINESS_WEIGHT,
    LOW_HAPPINESS_THRESHOLD, CITIZEN_LIFESPAN, GAME_OVER_THRESHOLD,
    MAX_HAPPINESS,
)
from gridcity.core.logger import get_logger
from gridcity.world.buildings import get_building_config


RESTORED_FIELDS = ("revenue", "happiness", "pollution", "lifespan")


@dataclass(frozen=True)
class StatsResult:
    game_over: bool


class CityManager:
    """Owns revenue, maintenance, pollution, happiness and lifespan."""

    def __init__(self, initial_revenue: float = INITIAL_REVENUE,
                 tax_rate: float = TAX_RATE) -> None:
        self.revenue: float = initial_revenue
        self.maintenance_cost: float = 0.0
        self.pollution: float = 0.0
        self.happiness: float = MAX_HAPPINESS
        self.lifespan: float = CITIZEN_LIFESPAN
        self.tax_rate: float = tax_rate
        self.game_over_threshold: float = GAME_OVER_THRESHOLD

    def deduct_revenue(self, amount: float) -> None:
        """Subtract unconditionally. Game over is only checked per tick."""
        self.revenue -= amount

    def refund(self, amount: float) -> None:
        self.revenue += amount

    def simulate_stats(self, buildings: Iterable[Any], population: int) -> StatsResult:
        """Run one tick of the economic model."""
        tax_revenue = population * self.tax_rate
        self.revenue += tax_revenue

        maintenance = 0.0
        pollution = 0.0
        for building in buildings:
            config = get_building_config(building.type)
            if config is not None:
                maintenance += config.maintenance
                pollution += config.pollution
        self.maintenance_cost = maintenance
        self.pollution = pollution
        self.revenue -= self.maintenance_cost

        happiness_reduction = 0.0
        if self.tax_rate > HIGH_TAX_THRESHOLD:
            happiness_reduction += (self.tax_rate - HIGH_TAX_THRESHOLD) * 100
        happiness_reduction += self.pollution * POLLUTION_HAPPINESS_WEIGHT
        self.happiness = max(0.0, min(MAX_HAPPINESS, MAX_HAPPINESS - happiness_reduction))

        if self.happiness < LOW_HAPPINESS_THRESHOLD:
            self.lifespan = CITIZEN_LIFESPAN * (self.happiness / LOW_HAPPINESS_THRESHOLD)
        else:
            self.lifespan = CITIZEN_LIFESPAN
        self.lifespan = max(1.0, self.lifespan)

        game_over = self.revenue < self.game_over_threshold
        get_logger().log_debug(
            "ECONOMY",
            f"tax=+{tax_revenue:.2f} maintenance=-{self.maintenance_cost:.2f} "
            f"revenue={self.revenue:.2f} pollution={self.pollution} "
            f"happiness={self.happiness:.1f} lifespan={self.lifespan:.1f}")
        if game_over:
            get_logger().log_event(
                "ECONOMY", f"Revenue {self.revenue:.2f} fell below "
                           f"{self.game_over_threshold}: game over")
        return StatsResult(game_over=game_over)

    # ================================================================
    # READ-ONLY GETTERS
    # ================================================================

    @property
    def current_revenue(self) -> float:
        return self.revenue

    @property
    def current_pollution(self) -> float:
        return self.pollution

    @property
    def current_happiness(self) -> float:
        return self.happiness

    @property
    def current_lifespan(self) -> float:
        return self.lifespan

    @property
    def current_maintenance_cost(self) -> float:
        return self.maintenance_cost

    def snapshot(self) -> Dict[str, float]:
        return {
            "revenue": self.revenue,
            "maintenance_cost": self.maintenance_cost,
            "pollution": self.pollution,
            "happiness": self.happiness,
            "lifespan": self.lifespan,
        }

    # ================================================================
    # SERIALIZATION
    # ================================================================

    def restore(self, data: Dict) -> None:
        """Restore whichever of the four saved scalars are present."""
        for key in RESTORED_FIELDS:
            value = data.get(key)
            if value is not None:
                setattr(self, key, value)
