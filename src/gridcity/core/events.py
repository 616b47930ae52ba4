"""
Event Bus — Decoupled communication between the city core and its
collaborators (renderer, UI, connectivity overlays).

The core never touches render state. Instead it emits events that the
outer layers pick up on their own cadence:
  - TILE_CHANGED: a tile (or a neighbour of a changed tile) needs its
    visual refreshed. Carries the resulting building type or None.
  - BUILDING_PLACED / BUILDING_REMOVED: building lifecycle.
  - GAME_OVER, GAME_SAVED, GAME_LOADED: orchestrator-level notices.

Usage:
    from gridcity.core.events import EventBus, Event, EventType

    bus = EventBus()
    bus.subscribe(EventType.TILE_CHANGED.value, renderer.on_tile_changed)
    city = City(16, event_bus=bus)

    # In the render loop:
    bus.process(tick)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
from enum import Enum

from gridcity.config import EVENT_HISTORY_CAP
from gridcity.core.logger import get_logger


class EventType(Enum):
    """Categories of events in the simulation."""
    # Grid events
    TILE_CHANGED = "tile_changed"
    BUILDING_PLACED = "building_placed"
    BUILDING_REMOVED = "building_removed"

    # Game events
    GAME_OVER = "game_over"
    GAME_SAVED = "game_saved"
    GAME_LOADED = "game_loaded"

    # Generic
    CUSTOM = "custom"


@dataclass
class Event:
    """A single event in the city."""
    event_type: str                           # EventType value or custom string
    origin: Optional[Tuple[int, int]] = None  # Grid coordinates, if spatial
    data: Dict[str, Any] = field(default_factory=dict)
    tick: int = 0                             # Stamped when processed


class EventBus:
    """Central event dispatcher."""

    def __init__(self) -> None:
        self.pending: List[Event] = []
        self.history: List[Event] = []
        self._listeners: Dict[str, List[Callable]] = {}
        self._history_cap: int = EVENT_HISTORY_CAP

    def emit(self, event: Event) -> None:
        """Queue an event for the next process() call."""
        self.pending.append(event)

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a listener for an event type."""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def process(self, tick: int = 0) -> int:
        """Deliver all pending events to their listeners.

        Returns the number of events processed.
        """
        events = list(self.pending)
        self.pending = []

        for event in events:
            event.tick = tick

            for callback in self._listeners.get(event.event_type, []):
                try:
                    callback(event)
                except Exception as e:
                    get_logger().log_error(
                        "EVENT", f"Listener error for {event.event_type}: {e}")

            self.history.append(event)

        # Trim history
        if len(self.history) > self._history_cap:
            self.history = self.history[-self._history_cap:]

        return len(events)

    def get_recent_events(self, n: int = 10,
                          event_type: Optional[str] = None) -> List[Event]:
        """Get recent events, optionally filtered by type."""
        if event_type:
            filtered = [e for e in self.history if e.event_type == event_type]
            return filtered[-n:]
        return self.history[-n:]
