"""
Renderer — Top-down 2D city view
==================================
Draws the grid and its buildings, a HUD with the city's metrics, and
turns mouse clicks into tool uses on the Game.

The view never reads render state out of the core. It keeps its own
cache of building types per tile, refreshed from TILE_CHANGED events,
and reads the metric getters once per frame.

Two clocks run here:
  - Render/interaction tick: every frame (FPS).
  - Simulation tick: every SIM_INTERVAL_MS, via Game.simulate().
"""

from typing import Dict, Optional, Tuple

import pygame

from ..config import (
    SCREEN_WIDTH, SCREEN_HEIGHT, FPS, TILE_SIZE, HUD_HEIGHT, SIM_INTERVAL_MS,
)
from ..core.events import EventType
from ..engine.loop import BULLDOZE_TOOL, SELECT_TOOL

COLORS: Dict[Optional[str], Tuple[int, int, int]] = {
    None:           (86, 125, 70),     # Empty grass
    "road":         (70, 70, 74),
    "residential":  (88, 160, 214),
    "commercial":   (230, 190, 80),
    "industrial":   (196, 120, 64),
    "power-plant":  (170, 60, 60),
    "power-line":   (200, 200, 200),
}
UNPOWERED_TINT = (40, 40, 40)
GRID_LINE = (60, 90, 50)
HUD_BG = (24, 24, 28)
HUD_TEXT = (235, 235, 235)

TOOL_KEYS = {
    pygame.K_1: "road",
    pygame.K_2: "residential",
    pygame.K_3: "commercial",
    pygame.K_4: "industrial",
    pygame.K_5: "power-plant",
    pygame.K_6: "power-line",
    pygame.K_b: BULLDOZE_TOOL,
    pygame.K_s: SELECT_TOOL,
}


def screen_to_grid(px: int, py: int, tile_size: int = TILE_SIZE,
                   offset_y: int = HUD_HEIGHT) -> Tuple[int, int]:
    """Pixel position to grid coordinates; may be off-grid."""
    return px // tile_size, (py - offset_y) // tile_size


def tile_color(building_type: Optional[str], powered: bool = True) -> Tuple[int, int, int]:
    base = COLORS.get(building_type, (255, 0, 255))
    if powered:
        return base
    return tuple(max(0, c - t) for c, t in zip(base, UNPOWERED_TINT))


class CityView:
    """Per-tile draw cache fed by TILE_CHANGED events."""

    def __init__(self, size: int, tile_size: int = TILE_SIZE,
                 offset_y: int = HUD_HEIGHT) -> None:
        self.size = size
        self.tile_size = tile_size
        self.offset_y = offset_y
        self.types: Dict[Tuple[int, int], Optional[str]] = {}
        self.dirty = set((x, y) for x in range(size) for y in range(size))

    def on_tile_changed(self, event) -> None:
        if event.origin is None:
            return
        self.types[event.origin] = event.data.get("building_type")
        self.dirty.add(event.origin)

    def resize(self, size: int) -> None:
        self.size = size
        self.types = {}
        self.dirty = set((x, y) for x in range(size) for y in range(size))

    def draw(self, surface: "pygame.Surface", city) -> int:
        """Redraw dirty tiles; returns how many were drawn."""
        drawn = 0
        for (x, y) in sorted(self.dirty):
            if not (0 <= x < self.size and 0 <= y < self.size):
                continue
            tile = city.get_tile(x, y)
            powered = True
            if tile is not None and tile.building is not None:
                powered = tile.building.is_powered
            rect = pygame.Rect(x * self.tile_size, self.offset_y + y * self.tile_size,
                               self.tile_size, self.tile_size)
            pygame.draw.rect(surface, tile_color(self.types.get((x, y)), powered), rect)
            pygame.draw.rect(surface, GRID_LINE, rect, 1)
            drawn += 1
        self.dirty.clear()
        return drawn


class Renderer:
    def __init__(self, game):
        pygame.init()
        self.screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT))
        pygame.display.set_caption(f"GridCity — {game.city.name}")

        self.game = game
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("Verdana", 14)
        self.font_big = pygame.font.SysFont("Verdana", 28, bold=True)

        self.view = CityView(game.city.size)
        game.event_bus.subscribe(EventType.TILE_CHANGED.value, self.view.on_tile_changed)
        game.event_bus.subscribe(EventType.GAME_LOADED.value, self._on_game_loaded)

        self.active_tool = SELECT_TOOL
        self._sim_accumulator_ms = 0

    def _on_game_loaded(self, event) -> None:
        self.view.resize(self.game.city.size)
        for tile in self.game.city.iter_tiles():
            if tile.building is not None:
                self.view.types[(tile.x, tile.y)] = tile.building.type.value

    def run(self):
        running = True
        while running:
            dt_ms = self.clock.tick(FPS)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_SPACE:
                        self.game.paused = not self.game.paused
                    elif event.key == pygame.K_F5:
                        self.game.save()
                    elif event.key == pygame.K_F9:
                        self.game.trigger_load_game()
                    elif event.key in TOOL_KEYS:
                        self.active_tool = TOOL_KEYS[event.key]

            if pygame.mouse.get_pressed()[0]:
                gx, gy = screen_to_grid(*pygame.mouse.get_pos())
                self.game.use_tool(self.active_tool, gx, gy)

            # --- Simulation tick, decoupled from frame rate ---
            self._sim_accumulator_ms += dt_ms
            while self._sim_accumulator_ms >= SIM_INTERVAL_MS:
                self._sim_accumulator_ms -= SIM_INTERVAL_MS
                self.game.simulate()

            self.game.event_bus.process(self.game.city.sim_time)
            self._draw_frame()

        pygame.quit()

    def _draw_frame(self):
        # Power state changes every tick without a TILE_CHANGED event
        self.view.dirty.update(self.view.types.keys())
        self.view.draw(self.screen, self.game.city)
        self._draw_hud()
        if not self.game.running:
            self._draw_game_over()
        pygame.display.flip()

    def _draw_hud(self):
        pygame.draw.rect(self.screen, HUD_BG, (0, 0, SCREEN_WIDTH, HUD_HEIGHT))
        m = self.game.get_metrics()
        lines = [
            f"Revenue ${m['revenue']:,.0f}   Population {m['population']:,}   "
            f"Happiness {round(m['happiness'])}%",
            f"Pollution {m['pollution']:.0f}   Lifespan {m['lifespan']:.0f}   "
            f"Tick {m['sim_time']}   Tool: {self.active_tool}"
            + ("   [PAUSED]" if self.game.paused else ""),
        ]
        for i, line in enumerate(lines):
            self.screen.blit(self.font.render(line, True, HUD_TEXT), (10, 10 + i * 24))

    def _draw_game_over(self):
        text = self.font_big.render(
            f"GAME OVER — {self.game.game_over_reason}", True, (255, 80, 80))
        rect = text.get_rect(center=(SCREEN_WIDTH // 2, SCREEN_HEIGHT // 2))
        self.screen.blit(text, rect)
