"""
Buildings — the closed set of placeable structures and their static
cost / maintenance / pollution profile.

The configuration table is loaded at import time and never mutated.
Lookups for unknown types return None; callers must check before using
cost, maintenance or pollution.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from gridcity.world.residents import Residents


class BuildingType(Enum):
    ROAD = "road"
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    POWER_PLANT = "power-plant"
    POWER_LINE = "power-line"

    @classmethod
    def parse(cls, value: Any) -> Optional["BuildingType"]:
        """Return the member for a type or its string value, else None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (ValueError, TypeError):
            return None


@dataclass(frozen=True)
class BuildingConfig:
    cost: float
    maintenance: float
    pollution: float
    description: str
    capacity: Optional[int] = None       # Residential only
    power_output: Optional[float] = None  # Power plants only
    power_demand: float = 0.0


BUILDING_CONFIGS: Mapping[BuildingType, BuildingConfig] = MappingProxyType({
    BuildingType.ROAD: BuildingConfig(
        cost=100, maintenance=10, pollution=1,
        description="Connects your city and allows for transport."),
    BuildingType.RESIDENTIAL: BuildingConfig(
        cost=750, maintenance=20, pollution=2, capacity=50, power_demand=5,
        description="Provides housing for your citizens."),
    BuildingType.COMMERCIAL: BuildingConfig(
        cost=1000, maintenance=50, pollution=5, power_demand=10,
        description="Provides jobs and services."),
    BuildingType.INDUSTRIAL: BuildingConfig(
        cost=1200, maintenance=70, pollution=20, power_demand=20,
        description="Provides jobs and manufactures goods."),
    BuildingType.POWER_PLANT: BuildingConfig(
        cost=5000, maintenance=250, pollution=30, power_output=1000,
        description="Generates power for your city."),
    BuildingType.POWER_LINE: BuildingConfig(
        cost=50, maintenance=5, pollution=0,
        description="Transmits power across your city."),
})

RESIDENTIAL_TYPES = frozenset({BuildingType.RESIDENTIAL})
ROAD_TYPES = frozenset({BuildingType.ROAD})


def get_building_config(
        building_type: Union[BuildingType, str, None]) -> Optional[BuildingConfig]:
    btype = BuildingType.parse(building_type)
    if btype is None:
        return None
    return BUILDING_CONFIGS.get(btype)


def is_residential(building_type: Union[BuildingType, str, None]) -> bool:
    return BuildingType.parse(building_type) in RESIDENTIAL_TYPES


def is_road(building_type: Union[BuildingType, str, None]) -> bool:
    return BuildingType.parse(building_type) in ROAD_TYPES


class Building:
    """A structure placed on one tile."""

    def __init__(self, building_type: BuildingType, x: int, y: int,
                 config: BuildingConfig) -> None:
        self.type = building_type
        self.x = x
        self.y = y
        self.maintenance_cost: float = config.maintenance
        self.pollution_effect: float = config.pollution
        self.power_demand: float = config.power_demand
        self.power_supplied: float = 0.0
        self.capacity: Optional[int] = None
        self.residents: Optional[Residents] = None
        self.age: int = 0
        self.disposed: bool = False

    @property
    def is_powered(self) -> bool:
        return self.power_supplied >= self.power_demand

    def simulate(self, city: Any) -> None:
        """Per-tile tick hook."""
        self.age += 1

    def dispose(self) -> None:
        if self.residents is not None:
            self.residents.dispose()
        self.disposed = True

    def __repr__(self) -> str:
        return f"Building({self.type.value!r}, x={self.x}, y={self.y})"


def create_building(building_type: Union[BuildingType, str],
                    x: int, y: int) -> Optional[Building]:
    """Build a configured Building, or None for unknown types."""
    btype = BuildingType.parse(building_type)
    config = get_building_config(btype)
    if btype is None or config is None:
        return None

    building = Building(btype, x, y, config)
    if btype in RESIDENTIAL_TYPES and config.capacity is not None:
        building.capacity = config.capacity
        building.residents = Residents(config.capacity)
    return building
