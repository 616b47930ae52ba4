import pytest

import gridcity.core.logger as logger_module
from gridcity.core.events import EventBus
from gridcity.core.persistence import SqliteStore
from gridcity.engine.economy import CityManager
from gridcity.world.city import City


@pytest.fixture(autouse=True, scope="session")
def quiet_logger(tmp_path_factory):
    """Route the sim log into a temp dir and keep stdout clean."""
    logger_module.LOG_DIR = str(tmp_path_factory.mktemp("logs"))
    logger_module.LOG_TO_STDOUT = False
    logger_module.SimLogger._instance = None
    yield
    logger_module.SimLogger._instance = None


class FixedStats:
    """Stands in for the CityManager's published happiness/pollution."""

    def __init__(self, happiness=80.0, pollution=0.0):
        self.current_happiness = happiness
        self.current_pollution = pollution


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def city(bus):
    return City(4, event_bus=bus)


@pytest.fixture
def manager():
    return CityManager(initial_revenue=10000, tax_rate=0.08)


@pytest.fixture
def store(tmp_path):
    return SqliteStore(str(tmp_path / "saves" / "city.db"))


@pytest.fixture
def fixed_stats():
    return FixedStats
