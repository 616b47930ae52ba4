import json
import sqlite3
from datetime import datetime

import pytest

from gridcity.config import SAVE_KEY
from gridcity.core.errors import PersistenceError
from gridcity.core.persistence import (
    SqliteStore, build_save_record, delete_save, has_save, load_game, save_game,
    is_number, read_save,
)
from gridcity.engine.economy import CityManager
from gridcity.world.city import City


@pytest.fixture
def populated_city():
    city = City(6)
    city.place_building(0, 0, "road")
    home = city.place_building(1, 0, "residential")
    home.residents.count = 37
    city.place_building(5, 5, "power-plant")
    return city


def test_store_round_trip(store):
    assert store.get("k") is None
    assert not store.has("k")
    store.set("k", "v1")
    store.set("k", "v2")
    assert store.get("k") == "v2"
    assert store.has("k")
    store.delete("k")
    assert store.get("k") is None


def test_store_is_durable(tmp_path):
    path = str(tmp_path / "city.db")
    SqliteStore(path).set("k", "v")
    assert SqliteStore(path).get("k") == "v"


def test_record_lists_only_occupied_tiles(populated_city, manager):
    record = build_save_record(populated_city, manager)
    assert record["citySize"] == 6
    assert len(record["tiles"]) == 3
    by_pos = {(t["x"], t["y"]): t for t in record["tiles"]}
    assert by_pos[(0, 0)] == {"x": 0, "y": 0, "buildingType": "road"}
    assert by_pos[(1, 0)]["residents"] == 37
    assert by_pos[(1, 0)]["buildingCapacity"] == 50
    assert "residents" not in by_pos[(5, 5)]
    datetime.fromisoformat(record["timestamp"])


def test_save_writes_json_under_fixed_key(populated_city, manager, store):
    record = save_game(populated_city, manager, store)
    assert json.loads(store.get(SAVE_KEY)) == record
    assert has_save(store)


def test_round_trip_restores_scalars(populated_city, store):
    saved = CityManager(initial_revenue=1234.5)
    saved.simulate_stats(populated_city.buildings, populated_city.population)
    save_game(populated_city, saved, store)

    fresh = CityManager()
    state = load_game(fresh, store)
    assert state is not None
    for field in ("revenue", "happiness", "pollution", "lifespan"):
        assert getattr(fresh, field) == getattr(saved, field)
    triples = {(t["x"], t["y"], t["buildingType"]) for t in state["tiles"]}
    assert triples == {(0, 0, "road"), (1, 0, "residential"), (5, 5, "power-plant")}


def _assert_untouched(manager):
    assert manager.revenue == 10000
    assert manager.happiness == 100
    assert manager.pollution == 0


def test_load_missing_key(manager, store):
    assert load_game(manager, store) is None
    _assert_untouched(manager)


@pytest.mark.parametrize("payload", [
    "{not json",
    "",
    "[1, 2, 3]",
    "null",
    '{"revenue": "lots"}',
    '{"revenue": 5, "tiles": "nope"}',
    '{"revenue": NaN}',
    '{"revenue": Infinity}',
    '{"revenue": true}',
    '{"happiness": 500}',
    '{"happiness": -1}',
    '{"pollution": -3}',
    '{"lifespan": -5}',
    '{"lifespan": 0}',
    '{"revenue": 1, "citySize": "big", "tiles": []}',
    '{"revenue": 1, "citySize": 0, "tiles": []}',
    '{"revenue": 1, "citySize": 2.5, "tiles": []}',
])
def test_load_corrupt_data(manager, store, payload):
    store.set(SAVE_KEY, payload)
    assert load_game(manager, store) is None
    _assert_untouched(manager)


def test_load_partial_record_restores_present_fields(manager, store):
    store.set(SAVE_KEY, '{"revenue": 5}')
    state = load_game(manager, store)
    assert state == {"revenue": 5}
    assert manager.revenue == 5
    assert manager.happiness == 100


class BrokenStore:
    def get(self, key):
        raise sqlite3.OperationalError("disk I/O error")

    def set(self, key, value):
        raise sqlite3.OperationalError("disk I/O error")

    def has(self, key):
        raise sqlite3.OperationalError("disk I/O error")

    def delete(self, key):
        raise sqlite3.OperationalError("disk I/O error")


def test_save_failure_raises_persistence_error(populated_city, manager):
    with pytest.raises(PersistenceError):
        save_game(populated_city, manager, BrokenStore())


def test_load_failure_returns_none(manager):
    assert load_game(manager, BrokenStore()) is None
    assert not has_save(BrokenStore())
    _assert_untouched(manager)


def test_delete_save(populated_city, manager, store):
    save_game(populated_city, manager, store)
    delete_save(store)
    assert not has_save(store)


@pytest.mark.parametrize("value, expected", [
    (3, True),
    (2.5, True),
    (True, False),
    ("3", False),
    (float("nan"), False),
    (float("inf"), False),
    (float("-inf"), False),
])
def test_is_number(value, expected):
    assert is_number(value) is expected


def test_read_save_does_not_touch_manager(populated_city, store):
    saved = CityManager(initial_revenue=42)
    save_game(populated_city, saved, store)
    fresh = CityManager()
    state = read_save(store)
    assert state["revenue"] == 42
    assert fresh.revenue == 10000
