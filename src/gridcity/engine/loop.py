"""
Game — The tick orchestrator.

Two independent callbacks drive a running game:
  - The interaction tick (every rendered frame) turns resolved input into
    use_tool() calls: select, bulldoze, or place a building.
  - The simulation tick (every SIM_INTERVAL_MS) calls simulate():
    city.simulate() first, then CityManager.simulate_stats(). A game-over
    result stops further simulation ticks.

Affordability is checked here, not in the grid: the cost is deducted
before placement and refunded if the grid refuses the building.
"""

import threading
from typing import Any, Dict, List, Optional

from gridcity.config import GRID_SIZE, INITIAL_REVENUE
from gridcity.core.errors import PersistenceError
from gridcity.core.events import Event, EventBus, EventType
from gridcity.core.logger import get_logger
from gridcity.core.persistence import SqliteStore, is_number, read_save, save_game
from gridcity.engine.economy import CityManager, StatsResult
from gridcity.world.buildings import (
    Building, BuildingType, get_building_config, is_residential,
)
from gridcity.world.city import City, Tile

SELECT_TOOL = "select"
BULLDOZE_TOOL = "bulldoze"


class Game:
    """Top-level coordinator for one city and its manager."""

    def __init__(self, size: int = GRID_SIZE, store: Optional[Any] = None,
                 event_bus: Optional[EventBus] = None,
                 initial_revenue: float = INITIAL_REVENUE,
                 tax_rate: Optional[float] = None) -> None:
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self.store = store if store is not None else SqliteStore()
        if tax_rate is None:
            self.city_manager = CityManager(initial_revenue)
        else:
            self.city_manager = CityManager(initial_revenue, tax_rate=tax_rate)
        self.city = self._new_city(size)
        self.lock = threading.RLock()

        self.selected_tile: Optional[Tile] = None

        self.paused: bool = False
        self.running: bool = True
        self.game_over_reason: Optional[str] = None

    def _new_city(self, size: int) -> City:
        return City(size, event_bus=self.event_bus, stats_source=self.city_manager)

    @property
    def buildings(self) -> List[Building]:
        """Every building on the grid. The grid is the only record of them."""
        return self.city.buildings

    @property
    def building_counts(self) -> Dict[str, int]:
        counts = {btype.value: 0 for btype in BuildingType}
        for building in self.buildings:
            counts[building.type.value] += 1
        return counts

    # ================================================================
    # INTERACTION
    # ================================================================

    def use_tool(self, tool: str, x: int, y: int) -> Any:
        """Apply the active tool at grid coordinates (x, y)."""
        with self.lock:
            if tool == SELECT_TOOL:
                self.selected_tile = self.city.get_tile(x, y)
                return self.selected_tile
            if tool == BULLDOZE_TOOL:
                return self.city.bulldoze(x, y)
            return self._build(tool, x, y)

    def _build(self, tool: str, x: int, y: int) -> Optional[Building]:
        log = get_logger()
        config = get_building_config(tool)
        if config is None:
            log.log_warning("ENGINE", f"No cost configuration for building type: {tool}")
            return None

        if self.city_manager.current_revenue < config.cost:
            log.log_event("ENGINE", f"Not enough funds to build {tool}")
            return None

        self.city_manager.deduct_revenue(config.cost)
        building = self.city.place_building(x, y, tool)
        if building is None:
            self.city_manager.refund(config.cost)
            log.log_debug("ENGINE", f"Placement failed, refunded {config.cost} for {tool}")
            return None

        return building

    # ================================================================
    # SIMULATION TICK
    # ================================================================

    def simulate(self) -> Optional[StatsResult]:
        """One simulation tick. Returns None when paused or stopped."""
        with self.lock:
            if self.paused or not self.running:
                return None
            self.city.simulate(1)
            result = self.city_manager.simulate_stats(
                self.buildings, self.city.population)

            if result.game_over:
                self.running = False
                self.game_over_reason = "Revenue dropped below threshold"
                self.event_bus.emit(Event(
                    EventType.GAME_OVER.value,
                    data={"reason": self.game_over_reason,
                          "revenue": self.city_manager.revenue},
                ))
                get_logger().log_event("ENGINE", f"Game over: {self.game_over_reason}")
            return result

    def get_metrics(self) -> Dict[str, float]:
        manager = self.city_manager
        return {
            "revenue": manager.current_revenue,
            "population": self.city.population,
            "pollution": manager.current_pollution,
            "happiness": manager.current_happiness,
            "lifespan": manager.current_lifespan,
            "maintenance_cost": manager.current_maintenance_cost,
            "sim_time": self.city.sim_time,
        }

    # ================================================================
    # PERSISTENCE
    # ================================================================

    def save(self) -> Dict:
        with self.lock:
            record = save_game(self.city, self.city_manager, self.store)
        self.event_bus.emit(Event(EventType.GAME_SAVED.value,
                                  data={"timestamp": record["timestamp"]}))
        return record

    def trigger_load_game(self) -> bool:
        """Load the saved game. Returns False if nothing usable was saved.

        The record is fully validated before anything is applied, so a
        rejected save leaves the running game exactly as it was.
        """
        with self.lock:
            state = read_save(self.store)
            if not state or "tiles" not in state or state.get("citySize") is None:
                get_logger().log_event("ENGINE", "Failed to load game data or data is incomplete.")
                return False
            self.city_manager.restore(state)
            self.load_city_state(state)
        return True

    def load_city_state(self, state: Dict) -> int:
        """Rebuild the grid from a saved record.

        Replays place_building for each saved tile, then restores resident
        counts. Tiles that fail to place are logged and skipped. Returns
        the number of buildings restored.

        Raises:
            PersistenceError: citySize is not a positive integer. Nothing
                is changed in that case.
        """
        log = get_logger()
        size = state.get("citySize")
        if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
            raise PersistenceError(f"citySize {size!r} is not a positive integer")

        with self.lock:
            new_city = self._new_city(size)
            self.city.clear()
            self.city = new_city
            self.selected_tile = None

            for entry in state.get("tiles", []):
                if not isinstance(entry, dict):
                    log.log_warning("ENGINE", f"Skipping malformed tile entry: {entry!r}")
                    continue
                x, y = entry.get("x"), entry.get("y")
                btype = entry.get("buildingType")
                building = self.city.place_building(x, y, btype)
                if building is None:
                    log.log_error("ENGINE", f"Failed to re-place {btype} at {x},{y}")
                    continue

                saved_count = entry.get("residents")
                if not is_residential(building.type) or saved_count is None:
                    continue
                if building.residents is None:
                    log.log_warning("ENGINE", f"Residential building at {x},{y} "
                                              f"has no residents module")
                elif not is_number(saved_count):
                    log.log_warning("ENGINE", f"Ignoring resident count {saved_count!r} "
                                              f"at {x},{y}")
                else:
                    building.residents.set_count(saved_count)

            self.running = True
            self.game_over_reason = None
            restored = len(self.buildings)

        self.event_bus.emit(Event(EventType.GAME_LOADED.value,
                                  data={"buildings": restored}))
        log.log_event("ENGINE", f"City state loaded ({restored} buildings)")
        return restored

    def shutdown(self) -> None:
        self.running = False
        get_logger().log_event("ENGINE", "Shutting down...")
        try:
            self.save()
        except PersistenceError as e:
            get_logger().log_error("ENGINE", f"Shutdown save failed: {e}")
