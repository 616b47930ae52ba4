"""
Persistence — Save and load the city to/from a durable key-value store.

Handles serialization of:
  - CityManager scalars: revenue, happiness, pollution, lifespan
  - City: grid size and every occupied tile (type, and for homes the
    resident count and capacity)

The whole record is stored as one JSON document under SAVE_KEY. The
backing store is a single-table SQLite database; anything with the same
get/set/delete/has methods can stand in for it.

Usage:
    from gridcity.core.persistence import SqliteStore, save_game, load_game

    store = SqliteStore("saves/city.db")
    save_game(city, manager, store)

    # Restores the manager's scalars; returns None if nothing usable is saved
    state = load_game(manager, store)
    if state:
        game.load_city_state(state)
"""

import json
import math
import os
import sqlite3
from datetime import datetime
from numbers import Real
from typing import Any, Dict, List, Optional

from gridcity.config import SAVE_DIR, DEFAULT_SAVE, SAVE_KEY, MAX_HAPPINESS
from gridcity.core.errors import PersistenceError
from gridcity.core.logger import get_logger
from gridcity.world.buildings import is_residential


# ============================================================
# KEY-VALUE STORE
# ============================================================

class SqliteStore:
    """String key -> string value store backed by one SQLite table."""

    def __init__(self, path: Optional[str] = None) -> None:
        if path is None:
            path = os.path.join(SAVE_DIR, DEFAULT_SAVE)
        self.path = path

    def _connect(self) -> sqlite3.Connection:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        conn = sqlite3.connect(self.path)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        return conn

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute("INSERT OR REPLACE INTO kv VALUES (?, ?)", (key, value))
            conn.commit()
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def has(self, key: str) -> bool:
        return self.get(key) is not None


# ============================================================
# SERIALIZATION HELPERS
# ============================================================

def _serialize_tiles(city: Any) -> List[Dict]:
    """Occupied tiles only; empty cells are implied by citySize."""
    tiles: List[Dict] = []
    for x in range(city.size):
        for y in range(city.size):
            tile = city.get_tile(x, y)
            if not tile or not tile.building:
                continue

            building = tile.building
            entry = {"x": tile.x, "y": tile.y, "buildingType": building.type.value}
            if is_residential(building.type) and building.residents is not None:
                entry["residents"] = building.residents.count
                entry["buildingCapacity"] = building.capacity
            tiles.append(entry)
    return tiles


def is_number(value: Any) -> bool:
    """Finite real number; rejects bools and the NaN/Infinity json accepts."""
    return (isinstance(value, Real) and not isinstance(value, bool)
            and math.isfinite(value))


def _validate_state(state: Any) -> Optional[str]:
    """Return a reason string if the record is unusable, else None."""
    if not isinstance(state, dict):
        return f"expected a JSON object, got {type(state).__name__}"
    for key in ("revenue", "happiness", "pollution", "lifespan"):
        if key in state and state[key] is not None and not is_number(state[key]):
            return f"{key} is not a finite number"
    happiness = state.get("happiness")
    if happiness is not None and not 0 <= happiness <= MAX_HAPPINESS:
        return f"happiness {happiness} outside 0..{MAX_HAPPINESS}"
    pollution = state.get("pollution")
    if pollution is not None and pollution < 0:
        return f"pollution {pollution} is negative"
    lifespan = state.get("lifespan")
    if lifespan is not None and lifespan <= 0:
        return f"lifespan {lifespan} is not positive"
    size = state.get("citySize")
    if size is not None and (not isinstance(size, int) or isinstance(size, bool)
                             or size <= 0):
        return f"citySize {size!r} is not a positive integer"
    if "tiles" in state and not isinstance(state["tiles"], list):
        return "tiles is not a list"
    return None


# ============================================================
# PUBLIC API
# ============================================================

def build_save_record(city: Any, manager: Any) -> Dict:
    return {
        "timestamp": datetime.now().isoformat(),
        "revenue": manager.revenue,
        "happiness": manager.happiness,
        "pollution": manager.pollution,
        "lifespan": manager.lifespan,
        "citySize": city.size,
        "tiles": _serialize_tiles(city),
    }


def save_game(city: Any, manager: Any, store: Optional[Any] = None) -> Dict:
    """Write the city and manager state under SAVE_KEY.

    Returns:
        The record that was written.

    Raises:
        PersistenceError: the store could not be written.
    """
    if store is None:
        store = SqliteStore()

    record = build_save_record(city, manager)
    try:
        store.set(SAVE_KEY, json.dumps(record))
    except (sqlite3.Error, OSError) as e:
        get_logger().log_error("SAVE", f"Error saving game: {e}")
        raise PersistenceError(str(e)) from e

    get_logger().log_event(
        "SAVE", f"Game saved ({len(record['tiles'])} buildings, "
                f"revenue {record['revenue']:.2f})")
    return record


def read_save(store: Optional[Any] = None) -> Optional[Dict]:
    """Read and validate the saved record without applying any of it.

    Returns:
        The parsed record, or None if nothing usable was saved.
    """
    if store is None:
        store = SqliteStore()
    log = get_logger()

    try:
        raw = store.get(SAVE_KEY)
    except (sqlite3.Error, OSError) as e:
        log.log_error("SAVE", f"Error reading save: {e}")
        return None

    if raw is None:
        log.log_event("SAVE", "No saved game found.")
        return None

    try:
        state = json.loads(raw)
    except (TypeError, ValueError) as e:
        log.log_error("SAVE", f"Error loading save: {e}")
        return None

    problem = _validate_state(state)
    if problem:
        log.log_error("SAVE", f"Corrupt save data: {problem}")
        return None
    return state


def load_game(manager: Any, store: Optional[Any] = None) -> Optional[Dict]:
    """Read the saved record and restore the manager's scalars.

    The grid itself is not touched; the caller rebuilds it from the
    returned record's ``tiles``.

    Returns:
        The parsed record, or None if nothing usable was saved. On None
        the manager is left exactly as it was.
    """
    state = read_save(store)
    if state is None:
        return None
    manager.restore(state)
    get_logger().log_event("SAVE", f"Game loaded (saved {state.get('timestamp', '?')})")
    return state


def has_save(store: Optional[Any] = None) -> bool:
    """Check if a saved game exists."""
    if store is None:
        store = SqliteStore()
    try:
        return store.has(SAVE_KEY)
    except (sqlite3.Error, OSError):
        return False


def delete_save(store: Optional[Any] = None) -> None:
    """Delete the saved game."""
    if store is None:
        store = SqliteStore()
    store.delete(SAVE_KEY)
    get_logger().log_event("SAVE", "Deleted saved game")
