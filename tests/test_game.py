import pytest

from gridcity.config import SAVE_KEY
from gridcity.core.errors import PersistenceError
from gridcity.core.events import EventType
from gridcity.engine.loop import BULLDOZE_TOOL, SELECT_TOOL, Game


@pytest.fixture
def game(store):
    return Game(size=4, store=store, tax_rate=0.08)


def test_place_deducts_cost(game):
    building = game.use_tool("residential", 0, 0)
    assert building is not None
    assert game.city_manager.revenue == 9250
    assert game.buildings == [building]
    assert game.building_counts["residential"] == 1


def test_failed_placement_is_refunded(game):
    game.use_tool("road", 0, 0)
    assert game.use_tool("residential", 0, 0) is None
    assert game.use_tool("residential", 9, 9) is None
    assert game.city_manager.revenue == 9900
    assert len(game.buildings) == 1


def test_unaffordable_building_is_rejected(store):
    game = Game(size=4, store=store, initial_revenue=100)
    assert game.use_tool("residential", 0, 0) is None
    assert game.city_manager.revenue == 100
    assert game.city.get_tile(0, 0).building is None


def test_unknown_tool(game):
    assert game.use_tool("castle", 0, 0) is None
    assert game.city_manager.revenue == 10000


def test_bulldoze_tool_updates_tracking(game):
    game.use_tool("commercial", 1, 1)
    removed = game.use_tool(BULLDOZE_TOOL, 1, 1)
    assert removed is not None
    assert game.buildings == []
    assert game.building_counts["commercial"] == 0
    assert game.use_tool(BULLDOZE_TOOL, 1, 1) is None


def test_select_tool(game):
    tile = game.use_tool(SELECT_TOOL, 2, 3)
    assert (tile.x, tile.y) == (2, 3)
    assert game.selected_tile is tile
    assert game.use_tool(SELECT_TOOL, -1, 0) is None


def test_tick_runs_city_then_stats(game):
    home = game.use_tool("residential", 0, 0)
    result = game.simulate()
    # Residents grew first (happiness 100 > 60), then taxes used the new count
    assert home.residents.count == 21
    assert game.city_manager.revenue == pytest.approx(9250 + 21 * 0.08 - 20)
    assert game.city_manager.happiness == pytest.approx(99)
    assert result.game_over is False
    assert game.get_metrics()["sim_time"] == 1


def test_paused_game_does_not_tick(game):
    game.use_tool("residential", 0, 0)
    game.paused = True
    assert game.simulate() is None
    assert game.city.sim_time == 0


def test_game_over_halts_ticks(store):
    game = Game(size=4, store=store, initial_revenue=800, tax_rate=0.08)
    game.use_tool("residential", 0, 0)
    result = None
    for _ in range(10):
        result = game.simulate()
        if result is None or result.game_over:
            break
    assert result is not None and result.game_over
    assert game.running is False
    assert game.city_manager.revenue < 0
    assert any(e.event_type == EventType.GAME_OVER.value for e in game.event_bus.pending)
    assert game.simulate() is None


def test_metrics(game):
    game.use_tool("residential", 0, 0)
    metrics = game.get_metrics()
    assert metrics["population"] == 20
    assert metrics["revenue"] == 9250


def test_save_and_load_round_trip(store):
    game = Game(size=4, store=store)
    game.use_tool("road", 1, 1)
    game.use_tool("residential", 0, 0)
    game.use_tool("power-plant", 3, 3)
    game.simulate()
    game.simulate()
    game.save()

    expected_triples = {(b.x, b.y, b.type.value) for b in game.buildings}
    expected_stats = game.city_manager.snapshot()
    expected_population = game.city.population

    restored = Game(size=8, store=store)
    assert restored.trigger_load_game() is True
    assert restored.city.size == 4
    assert {(b.x, b.y, b.type.value) for b in restored.buildings} == expected_triples
    for key in ("revenue", "happiness", "pollution", "lifespan"):
        assert restored.city_manager.snapshot()[key] == expected_stats[key]
    assert restored.city.population == expected_population
    assert restored.city.road_graph.get_node(1, 1) is not None
    assert restored.building_counts["road"] == 1


def test_load_without_save(game):
    game.use_tool("road", 0, 0)
    assert game.trigger_load_game() is False
    assert game.city_manager.revenue == 9900
    assert len(game.buildings) == 1


def test_load_skips_bad_tiles_but_keeps_scalars(game, store):
    store.set(SAVE_KEY, (
        '{"revenue": 500, "happiness": 70, "pollution": 3, "lifespan": 90, '
        '"citySize": 3, "tiles": ['
        '{"x": 0, "y": 0, "buildingType": "residential", "residents": 999}, '
        '{"x": 0, "y": 0, "buildingType": "road"}, '
        '{"x": 7, "y": 7, "buildingType": "road"}, '
        '{"x": 1, "y": 1, "buildingType": "castle"}, '
        '"junk"]}'
    ))
    assert game.trigger_load_game() is True
    assert game.city_manager.revenue == 500
    assert game.city_manager.lifespan == 90
    assert len(game.buildings) == 1
    home = game.city.get_tile(0, 0).building
    assert home.residents.count == 50


def test_shutdown_saves(game, store):
    game.use_tool("road", 2, 2)
    game.shutdown()
    assert game.running is False
    assert store.has(SAVE_KEY)


@pytest.mark.parametrize("payload", [
    '{"revenue": 1, "citySize": "big", "tiles": []}',
    '{"revenue": 1, "citySize": -4, "tiles": []}',
    '{"revenue": NaN, "citySize": 3, "tiles": []}',
    '{"revenue": 1, "happiness": 500, "citySize": 3, "tiles": []}',
])
def test_rejected_save_leaves_game_untouched(game, store, payload):
    road = game.use_tool("road", 0, 0)
    home = game.use_tool("residential", 1, 0)
    store.set(SAVE_KEY, payload)

    assert game.trigger_load_game() is False
    assert game.city.size == 4
    assert game.city.get_tile(0, 0).building is road
    assert game.city.get_tile(1, 0).building is home
    assert game.city_manager.revenue == 9150


def test_buildings_track_the_grid_after_load(game, store):
    game.use_tool("road", 0, 0)
    game.use_tool("residential", 1, 0)
    store.set(SAVE_KEY, '{"revenue": 500, "citySize": 3, "tiles": []}')
    assert game.trigger_load_game() is True
    assert game.buildings == []
    game.simulate()
    assert game.city_manager.maintenance_cost == 0
    assert game.city_manager.revenue == 500


def test_load_city_state_rejects_bad_size(game):
    game.use_tool("road", 0, 0)
    with pytest.raises(PersistenceError):
        game.load_city_state({"citySize": "big", "tiles": []})
    assert len(game.buildings) == 1


def test_non_finite_resident_count_is_ignored(game, store):
    store.set(SAVE_KEY, (
        '{"revenue": 500, "citySize": 3, "tiles": ['
        '{"x": 0, "y": 0, "buildingType": "residential", "residents": NaN}, '
        '{"x": 1, "y": 1, "buildingType": "residential", "residents": 33}]}'
    ))
    assert game.trigger_load_game() is True
    assert game.city.get_tile(0, 0).building.residents.count == 20
    assert game.city.get_tile(1, 1).building.residents.count == 33


def test_simulate_checks_flags_under_lock(game):
    game.use_tool("residential", 0, 0)
    with game.lock:
        game.running = False
    assert game.simulate() is None
    assert game.city.sim_time == 0
