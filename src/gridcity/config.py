"""
GridCity — Global Configuration
"""

# --- Grid ---
GRID_SIZE: int = 16                  # City is GRID_SIZE x GRID_SIZE tiles
CITY_NAME: str = "My City"

# --- Display ---
SCREEN_WIDTH: int = 960
SCREEN_HEIGHT: int = 720
FPS: int = 60
TILE_SIZE: int = 40
HUD_HEIGHT: int = 72

# --- Simulation ---
SIM_INTERVAL_MS: int = 1000          # One simulation tick per second
POWER_GATES_GROWTH: bool = False     # Unpowered homes stop growing when True

# --- Economy ---
INITIAL_REVENUE: float = 10000.0
TAX_RATE: float = 0.08               # Per resident per tick
HIGH_TAX_THRESHOLD: float = 0.1      # Taxes above this hurt happiness
POLLUTION_HAPPINESS_WEIGHT: float = 0.5
LOW_HAPPINESS_THRESHOLD: float = 50.0
CITIZEN_LIFESPAN: float = 100.0      # Average lifespan in simulation ticks
GAME_OVER_THRESHOLD: float = 0.0     # Revenue strictly below this ends the game
MAX_HAPPINESS: float = 100.0

# --- Residents ---
RESIDENTS_START_COUNT: int = 20
RESIDENT_GROWTH_RATE: float = 0.05
RESIDENT_DECLINE_RATE: float = 0.05
HAPPINESS_THRESHOLD_FOR_GROWTH: float = 60.0
POLLUTION_THRESHOLD_FOR_DECLINE: float = 100.0

# --- Persistence ---
SAVE_DIR: str = "saves"
DEFAULT_SAVE: str = "city.db"
SAVE_KEY: str = "citySimSaveData"

# --- Logging ---
LOG_DIR: str = "logs"
LOG_LEVEL: str = "INFO"
LOG_TO_STDOUT: bool = True

# --- Events ---
EVENT_HISTORY_CAP: int = 200         # Max events retained in event bus history
