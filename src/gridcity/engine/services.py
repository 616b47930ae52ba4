"""
City Services — city-wide systems that run once per tick, before any
per-building update.

A service only has to implement ``simulate(city)``; the City calls every
registered service in list order and never special-cases one. Services
mutate building/tile state (e.g. power supply) and return nothing.

Shipped services:
  - PowerService: distributes plant output through connected buildings.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, List

from gridcity.core.logger import get_logger
from gridcity.world.buildings import BuildingType, get_building_config, is_road


class SimService(ABC):
    """A city-wide system invoked once per simulation tick."""

    name: str = "service"

    @abstractmethod
    def simulate(self, city: Any) -> None:
        ...


class PowerService(SimService):
    """Flood power out of each plant through adjacent conducting buildings.

    Every building except roads conducts. Consumers reached first (BFS
    order from the plant) are served first; a plant stops once its output
    is spent. Supply is recomputed from scratch every tick.
    """

    name = "power"

    def __init__(self) -> None:
        self.total_supply: float = 0.0
        self.total_demand: float = 0.0

    def simulate(self, city: Any) -> None:
        plants = []
        self.total_demand = 0.0
        for tile in city.iter_tiles():
            building = tile.building
            if building is None:
                continue
            building.power_supplied = 0.0
            self.total_demand += building.power_demand
            if building.type is BuildingType.POWER_PLANT:
                plants.append(tile)

        self.total_supply = 0.0
        for plant_tile in plants:
            config = get_building_config(plant_tile.building.type)
            output = config.power_output or 0.0
            self.total_supply += output - self._distribute(city, plant_tile, output)

        get_logger().log_debug(
            "POWER",
            f"{len(plants)} plants, supplied {self.total_supply}/{self.total_demand}")

    def _distribute(self, city: Any, plant_tile: Any, output: float) -> float:
        """Hand out ``output`` from one plant; returns what is left over."""
        remaining = output
        visited = {plant_tile.id}
        queue = deque([plant_tile])
        while queue and remaining > 0:
            tile = queue.popleft()
            building = tile.building
            shortfall = building.power_demand - building.power_supplied
            if shortfall > 0:
                grant = min(shortfall, remaining)
                building.power_supplied += grant
                remaining -= grant
            for neighbor in city.get_tile_neighbors(tile.x, tile.y):
                if neighbor.id in visited:
                    continue
                visited.add(neighbor.id)
                if neighbor.building is not None and not is_road(neighbor.building.type):
                    queue.append(neighbor)
        return remaining

    def unpowered(self, city: Any) -> List[Any]:
        """Buildings whose demand was not fully met on the last tick."""
        return [b for b in city.buildings if not b.is_powered]
