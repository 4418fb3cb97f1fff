import numpy as np


# Environment Constants
INITIAL_ELAPSED_TIME = 0.0
DEFAULT_REWARD = 0.0
DEFAULT_TERMINATED = False
DEFAULT_TRUNCATED = False

# Rendering Constants
DEFAULT_RENDER_FPS = 60
TICK_DURATION = 1.0 / DEFAULT_RENDER_FPS  # Seconds of simulated time per tick
DEFAULT_VIEWPORT_WIDTH = 1000
DEFAULT_VIEWPORT_HEIGHT = 800
DEFAULT_VIEWPORT_SIZE = (DEFAULT_VIEWPORT_WIDTH, DEFAULT_VIEWPORT_HEIGHT)
RENDER_MODE_HUMAN = "human"
WINDOW_CAPTION = "Tile Racer"

# Logging
DEFAULT_LOG_LEVEL = "INFO"  # Default logging level

# Tile Constants
TILE_SIZE = 64  # World units (pixels) per tile edge
TILE_CODE_GRASS = 0
TILE_CODE_ROAD = 1
TILE_CODE_WALL = 2
TILE_CODE_START_FINISH = 3
TILE_CODE_OUT_OF_BOUNDS = -1  # Sentinel, never stored in a grid
TILE_CODE_UNKNOWN = -2  # Sentinel for codes outside the recognised set
TILE_CODE_MAX = np.iinfo(np.int64).max  # Stored codes must fit the int64 grid

# Tile Colors (RGB)
GRASS_COLOR = (0, 128, 0)  # Green
ROAD_COLOR = (128, 128, 128)  # Gray
WALL_COLOR = (169, 169, 169)  # Dark gray
START_FINISH_TILE_COLOR = (0, 0, 255)  # Blue
UNKNOWN_TILE_COLOR = (0, 0, 0)  # Black
START_LINE_COLOR = (255, 255, 0)  # Yellow
FINISH_LINE_COLOR = (255, 165, 0)  # Orange
BACKGROUND_COLOR = (0, 0, 0)

# Vehicle Physics Constants (per tick)
CAR_ACCELERATION = 0.01  # Speed gained per tick while accelerating
CAR_MAX_FORWARD_SPEED = 1.5  # World units per tick
CAR_MAX_REVERSE_SPEED_FACTOR = 0.5  # Reverse limit as a fraction of forward limit
CAR_FRICTION = 0.05  # Speed lost per tick when coasting
CAR_TURN_RATE = 0.02  # Radians per tick
GRASS_SPEED_FACTOR = 0.5  # Multiplier applied to speed on grass

# Spawn Constants
SPAWN_TILE = (5, 2)  # Tile (x, y) of the built-in map spawn point
SPAWN_ANGLE = -1.5708  # Radians, 0 = up, positive = clockwise

# Car Visual Constants
CAR_VISUAL_WIDTH = 40  # pixels
CAR_VISUAL_HEIGHT = 60  # pixels
CAR_COLOR = (255, 0, 0)  # Red
CAR_OUTLINE_COLOR = (0, 0, 0)  # Black
CAR_OUTLINE_WIDTH = 2

# Lap Timer Display Constants
LAP_TIMER_FONT_SIZE = 28
LAP_TIMER_BOTTOM_MARGIN = 20
LAP_TIMER_LINE_SPACING = 26
LAP_TIMER_CURRENT_COLOR = (255, 255, 255)
LAP_TIMER_LAST_COLOR = (200, 200, 255)
LAP_TIMER_BEST_COLOR = (100, 255, 100)
LAP_TIMER_BG_COLOR = (0, 0, 0)
LAP_TIMER_BG_ALPHA = 160
LAP_MESSAGE_STARTED = "Lap Started!"
LAP_MESSAGE_FINISHED = "Lap Finished! Time: {duration:.2f}s"

# Message Overlay Constants
MESSAGE_DISPLAY_TIME = 3.0  # Seconds a message stays fully visible
MESSAGE_FADE_TIME = 0.5  # Seconds to fade out after display time
MESSAGE_HISTORY_LIMIT = 100  # Posted messages kept for inspection
MESSAGE_FONT_SIZE = 36
MESSAGE_TOP_MARGIN = 30
MESSAGE_TEXT_COLOR = (255, 255, 255)
MESSAGE_ERROR_COLOR = (255, 80, 80)

# Debug Overlay Constants
CROSSHAIR_COLOR = (255, 255, 0)
CROSSHAIR_HALF_LENGTH = 10
REFERENCE_BORDER_COLOR = (255, 255, 255)
DEBUG_TOGGLE_KEY = 'c'  # Toggles crosshair and viewport border

# Keyboard Bindings (pygame keys)
import pygame
KEYS_ACCELERATE = (pygame.K_UP, pygame.K_w)
KEYS_BRAKE = (pygame.K_DOWN, pygame.K_s)
KEYS_TURN_LEFT = (pygame.K_LEFT, pygame.K_a)
KEYS_TURN_RIGHT = (pygame.K_RIGHT, pygame.K_d)
MAP_RELOAD_KEY = pygame.K_l
RESET_KEY = pygame.K_r

# Action / Observation Space Constants
NUM_INTENTS = 4  # accelerate, brake, turn left, turn right
NUM_DISCRETE_ACTIONS = 5  # nothing, accelerate, brake, turn left, turn right
OBSERVATION_SIZE = 8
OBSERVATION_LOW = np.array([0.0, 0.0, -1.0, -1.0, -1.0, -1.0, 0.0, 0.0], dtype=np.float32)
OBSERVATION_HIGH = np.array([1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0], dtype=np.float32)
NORM_MAX_TILE_CODE = 3.0  # Largest recognised tile code, for normalisation
NORM_MAX_LAP_TIME = 300.0  # Seconds; longer elapsed times saturate at 1.0

# Reward Constants
REWARD_SPEED_MULTIPLIER = 0.1  # Reward per unit of forward speed on drivable tiles
REWARD_LAP_COMPLETION = 100.0  # Bonus for finishing a lap
PENALTY_GRASS = 0.05  # Penalty per tick spent on grass
PENALTY_WALL = 1.0  # Penalty per tick stopped by a wall or map edge

# Termination Constants
TRUNCATION_MAX_TIME = 600.0  # Simulated seconds before an episode is truncated

# Built-in map: 0 grass, 1 road, 2 wall, 3 start/finish
DEFAULT_MAP = [
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
    [0, 2, 2, 2, 2, 2, 2, 2, 2, 2, 0],
    [0, 2, 1, 1, 1, 1, 1, 1, 1, 2, 0],
    [0, 2, 1, 1, 0, 0, 0, 0, 1, 2, 0],
    [0, 2, 1, 0, 2, 1, 1, 1, 1, 2, 0],
    [0, 2, 1, 2, 2, 1, 0, 0, 0, 2, 0],
    [0, 2, 1, 2, 2, 1, 1, 1, 1, 2, 0],
    [0, 2, 1, 1, 0, 0, 0, 0, 1, 2, 0],
    [0, 2, 1, 1, 1, 1, 1, 1, 1, 2, 0],
    [0, 2, 2, 2, 2, 2, 2, 2, 2, 2, 0],
    [0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0],
]
DEFAULT_START_FINISH_LINE = [(4, 2)]
