from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from gridcity.config import GRID_SIZE, CITY_NAME, POWER_GATES_GROWTH
from gridcity.core.events import Event, EventBus, EventType
from gridcity.core.logger import get_logger
from gridcity.engine.roads import RoadGraph
from gridcity.engine.services import PowerService, SimService
from gridcity.world.buildings import (
    Building, BuildingType, create_building, get_building_config, is_road,
)

# Used when no stats source is wired in (e.g. a bare City in a tool script)
DEFAULT_HAPPINESS: float = 50.0
DEFAULT_POLLUTION: float = 0.0

NEIGHBOR_OFFSETS = ((-1, 0), (1, 0), (0, -1), (0, 1))


@dataclass(eq=False)
class Tile:
    x: int
    y: int
    building: Optional[Building] = None

    @property
    def id(self) -> str:
        return f"{self.x},{self.y}"

    def distance_to(self, other: "Tile") -> int:
        return abs(self.x - other.x) + abs(self.y - other.y)

    def set_building(self, building: Optional[Building]) -> None:
        self.building = building

    def simulate(self, city: "City") -> None:
        if self.building is not None:
            self.building.simulate(city)


class City:
    """The tile grid: owns building placement, removal and spatial queries.

    Economic state is not kept here. Happiness and pollution are read each
    tick from ``stats_source`` (anything exposing ``current_happiness`` and
    ``current_pollution``, normally the CityManager).
    """

    def __init__(self, size: int = GRID_SIZE, name: str = CITY_NAME,
                 services: Optional[List[SimService]] = None,
                 road_graph: Optional[RoadGraph] = None,
                 event_bus: Optional[EventBus] = None,
                 stats_source: Any = None) -> None:
        self.size = size
        self.name = name
        self.sim_time: int = 0
        self.tiles: List[List[Tile]] = [
            [Tile(x, y) for y in range(size)] for x in range(size)
        ]
        self.services: List[SimService] = (
            services if services is not None else [PowerService()]
        )
        self.road_graph = road_graph if road_graph is not None else RoadGraph(size)
        self.event_bus = event_bus
        self.stats_source = stats_source

    # ================================================================
    # SPATIAL QUERIES
    # ================================================================

    def get_tile(self, x: Any, y: Any) -> Optional[Tile]:
        if not isinstance(x, int) or not isinstance(y, int):
            return None
        if 0 <= x < self.size and 0 <= y < self.size:
            return self.tiles[x][y]
        return None

    def get_tile_neighbors(self, x: int, y: int) -> List[Tile]:
        neighbors = []
        for dx, dy in NEIGHBOR_OFFSETS:
            tile = self.get_tile(x + dx, y + dy)
            if tile is not None:
                neighbors.append(tile)
        return neighbors

    def iter_tiles(self):
        for column in self.tiles:
            yield from column

    def find_tile(self, start: Any, predicate: Callable[[Tile], bool],
                  max_distance: int) -> Optional[Tile]:
        """Breadth-first search for the nearest tile matching ``predicate``.

        ``start`` is a Tile, anything with ``x``/``y`` attributes, or an
        ``(x, y)`` pair. Branches further than ``max_distance`` (Manhattan)
        from the start are pruned. Returns None when nothing matches.
        """
        if isinstance(start, tuple):
            sx, sy = start
        else:
            sx, sy = getattr(start, "x", None), getattr(start, "y", None)
        start_tile = self.get_tile(sx, sy)
        if start_tile is None:
            return None

        visited = {start_tile.id}
        queue = deque([start_tile])
        while queue:
            tile = queue.popleft()
            if start_tile.distance_to(tile) > max_distance:
                continue
            if predicate(tile):
                return tile
            for neighbor in self.get_tile_neighbors(tile.x, tile.y):
                if neighbor.id not in visited:
                    visited.add(neighbor.id)
                    queue.append(neighbor)
        return None

    @property
    def population(self) -> int:
        """Total residents. Recomputed on every read."""
        population = 0
        for tile in self.iter_tiles():
            if tile.building is not None and tile.building.residents is not None:
                population += tile.building.residents.count
        return population

    @property
    def buildings(self) -> List[Building]:
        return [t.building for t in self.iter_tiles() if t.building is not None]

    # ================================================================
    # MUTATION
    # ================================================================

    def place_building(self, x: int, y: int,
                       building_type: Union[BuildingType, str]) -> Optional[Building]:
        log = get_logger()
        tile = self.get_tile(x, y)
        if tile is None or tile.building is not None:
            log.log_debug("CITY", f"Cannot place {building_type} at ({x}, {y}): "
                                  f"tile missing or occupied")
            return None

        if get_building_config(building_type) is None:
            log.log_warning("CITY", f"No configuration for building type: {building_type}")
            return None

        building = create_building(building_type, x, y)
        tile.set_building(building)

        if is_road(building.type):
            self.road_graph.update_tile(x, y, building)

        self._emit(EventType.BUILDING_PLACED, x, y,
                   {"building_type": building.type.value})
        self._notify_tile_changed(x, y)
        log.log_event("CITY", f"Placed {building.type.value} at ({x}, {y})")
        return building

    def bulldoze(self, x: int, y: int) -> Optional[Building]:
        log = get_logger()
        tile = self.get_tile(x, y)
        if tile is None or tile.building is None:
            log.log_debug("CITY", f"Nothing to bulldoze at ({x}, {y})")
            return None

        building = tile.building
        if is_road(building.type):
            self.road_graph.update_tile(x, y, None)
        building.dispose()
        tile.set_building(None)

        self._emit(EventType.BUILDING_REMOVED, x, y,
                   {"building_type": building.type.value})
        self._notify_tile_changed(x, y)
        log.log_event("CITY", f"Bulldozed {building.type.value} at ({x}, {y})")
        return building

    def clear(self) -> List[Building]:
        """Bulldoze every occupied tile; returns what was removed."""
        removed = []
        for tile in self.iter_tiles():
            if tile.building is not None:
                removed.append(self.bulldoze(tile.x, tile.y))
        return removed

    # ================================================================
    # SIMULATION
    # ================================================================

    def simulate(self, steps: int = 1) -> None:
        count = 0
        while count < steps:
            count += 1
            for service in self.services:
                service.simulate(self)

            happiness, pollution = self._current_conditions()
            for tile in self.iter_tiles():
                building = tile.building
                if (building is not None and building.residents is not None
                        and building.capacity is not None):
                    effective = happiness
                    if POWER_GATES_GROWTH and not building.is_powered:
                        effective = 0.0
                    building.residents.simulate(effective, pollution, building.capacity)
                tile.simulate(self)
        self.sim_time += 1

    def _current_conditions(self):
        if self.stats_source is None:
            return DEFAULT_HAPPINESS, DEFAULT_POLLUTION
        return (self.stats_source.current_happiness,
                self.stats_source.current_pollution)

    # ================================================================
    # NOTIFICATIONS
    # ================================================================

    def _notify_tile_changed(self, x: int, y: int) -> None:
        """Ask the renderer to refresh a tile and its four neighbours."""
        tiles = [self.get_tile(x, y)] + self.get_tile_neighbors(x, y)
        for tile in tiles:
            if tile is None:
                continue
            btype = tile.building.type.value if tile.building else None
            self._emit(EventType.TILE_CHANGED, tile.x, tile.y,
                       {"building_type": btype})

    def _emit(self, event_type: EventType, x: int, y: int, data: dict) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(Event(event_type.value, origin=(x, y), data=data))
