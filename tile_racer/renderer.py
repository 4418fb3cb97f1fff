import math
import logging
import pygame
from typing import Optional, Tuple
from .camera import Camera
from .lap_timer import LapTimer
from .messages import MessageBoard
from .simulation import SimulationSnapshot
from .tile_map import TileKind
from .vehicle import IntentSet, VehicleState
from .constants import (
    DEFAULT_VIEWPORT_SIZE,
    DEFAULT_RENDER_FPS,
    WINDOW_CAPTION,
    BACKGROUND_COLOR,
    GRASS_COLOR,
    ROAD_COLOR,
    WALL_COLOR,
    START_FINISH_TILE_COLOR,
    UNKNOWN_TILE_COLOR,
    START_LINE_COLOR,
    FINISH_LINE_COLOR,
    CAR_VISUAL_WIDTH,
    CAR_VISUAL_HEIGHT,
    CAR_COLOR,
    CAR_OUTLINE_COLOR,
    CAR_OUTLINE_WIDTH,
    LAP_TIMER_FONT_SIZE,
    LAP_TIMER_BOTTOM_MARGIN,
    LAP_TIMER_LINE_SPACING,
    LAP_TIMER_CURRENT_COLOR,
    LAP_TIMER_LAST_COLOR,
    LAP_TIMER_BEST_COLOR,
    LAP_TIMER_BG_COLOR,
    LAP_TIMER_BG_ALPHA,
    MESSAGE_FONT_SIZE,
    MESSAGE_TOP_MARGIN,
    MESSAGE_TEXT_COLOR,
    MESSAGE_ERROR_COLOR,
    CROSSHAIR_COLOR,
    CROSSHAIR_HALF_LENGTH,
    REFERENCE_BORDER_COLOR,
    DEBUG_TOGGLE_KEY,
    KEYS_ACCELERATE,
    KEYS_BRAKE,
    KEYS_TURN_LEFT,
    KEYS_TURN_RIGHT,
)

# Setup module logger
logger = logging.getLogger(__name__)

TILE_COLORS = {
    TileKind.GRASS: GRASS_COLOR,
    TileKind.ROAD: ROAD_COLOR,
    TileKind.WALL: WALL_COLOR,
    TileKind.START_FINISH: START_FINISH_TILE_COLOR,
}


def read_keyboard_intents() -> IntentSet:
    """Snapshot of the held arrow/WASD keys as intents"""
    keys = pygame.key.get_pressed()
    return IntentSet(
        accelerate=any(keys[k] for k in KEYS_ACCELERATE),
        brake=any(keys[k] for k in KEYS_BRAKE),
        turn_left=any(keys[k] for k in KEYS_TURN_LEFT),
        turn_right=any(keys[k] for k in KEYS_TURN_RIGHT),
    )


def car_corners(vehicle: VehicleState) -> list:
    """World positions of the car rectangle corners, long side along the heading"""
    half_width = CAR_VISUAL_WIDTH / 2.0
    half_height = CAR_VISUAL_HEIGHT / 2.0
    cos_angle = math.cos(vehicle.heading)
    sin_angle = math.sin(vehicle.heading)

    corners = []
    for corner_x, corner_y in ((-half_width, -half_height), (half_width, -half_height),
                               (half_width, half_height), (-half_width, half_height)):
        rotated_x = corner_x * cos_angle - corner_y * sin_angle
        rotated_y = corner_x * sin_angle + corner_y * cos_angle
        corners.append((vehicle.x + rotated_x, vehicle.y + rotated_y))
    return corners


class Renderer:
    def __init__(self, window_size=DEFAULT_VIEWPORT_SIZE, render_fps=DEFAULT_RENDER_FPS, enable_fps_limit: bool = True):
        self.window_size = window_size
        self.render_fps = render_fps
        self.enable_fps_limit = enable_fps_limit
        self.window = None
        self.clock = None
        self.font = None
        self.lap_font = None
        self.message_font = None
        self.camera = Camera(window_size)
        self.show_debug = False
        self._initialized_pygame = False

    def init_pygame(self):
        if not self._initialized_pygame:
            pygame.init()
            pygame.display.init()
            pygame.font.init()
            self._initialized_pygame = True

    def handle_key(self, event) -> None:
        """Handle renderer-owned key bindings"""
        if event.unicode and event.unicode.lower() == DEBUG_TOGGLE_KEY:
            self.toggle_debug()

    def toggle_debug(self):
        self.show_debug = not self.show_debug
        logger.debug(f"Debug overlay {'enabled' if self.show_debug else 'disabled'}")

    def render_frame(self,
                     snapshot: SimulationSnapshot,
                     message_board: Optional[MessageBoard] = None,
                     intents: Optional[IntentSet] = None):
        self.init_pygame()

        if self.window is None:
            self.window = pygame.display.set_mode(self.window_size)
            pygame.display.set_caption(WINDOW_CAPTION)

        if self.clock is None:
            self.clock = pygame.time.Clock()

        if self.font is None:
            self.font = pygame.font.Font(None, LAP_TIMER_FONT_SIZE)
            self.lap_font = self.font
            self.message_font = pygame.font.Font(None, MESSAGE_FONT_SIZE)

        self.camera.set_view(snapshot.camera)

        self.window.fill(BACKGROUND_COLOR)
        self._render_tiles(snapshot)
        self._render_trigger_tiles(snapshot)
        self._render_car(snapshot.vehicle)

        if self.show_debug:
            self._render_debug_overlay(intents)

        self._render_lap_times(snapshot)

        if message_board is not None:
            self._render_message(message_board)

        pygame.display.flip()

        if self.enable_fps_limit:
            self.clock.tick(self.render_fps)
        else:
            self.clock.tick()

    def _visible_tile_range(self, snapshot: SimulationSnapshot) -> Tuple[range, range]:
        tile_map = snapshot.tile_map
        size = tile_map.tile_size
        view = snapshot.camera
        first_x = max(0, int(view.x // size))
        first_y = max(0, int(view.y // size))
        last_x = min(tile_map.width, int((view.x + view.width) // size) + 1)
        last_y = min(tile_map.height, int((view.y + view.height) // size) + 1)
        return range(first_x, last_x), range(first_y, last_y)

    def _tile_rect(self, x: int, y: int, size: float) -> pygame.Rect:
        screen_x, screen_y = self.camera.world_to_screen((x * size, y * size))
        return pygame.Rect(screen_x, screen_y, int(size), int(size))

    def _render_tiles(self, snapshot: SimulationSnapshot):
        tile_map = snapshot.tile_map
        columns, rows = self._visible_tile_range(snapshot)
        for y in rows:
            for x in columns:
                color = TILE_COLORS.get(tile_map.kind_at(x, y), UNKNOWN_TILE_COLOR)
                pygame.draw.rect(self.window, color, self._tile_rect(x, y, tile_map.tile_size))

    def _render_trigger_tiles(self, snapshot: SimulationSnapshot):
        size = snapshot.tile_map.tile_size
        for x, y in snapshot.start_tiles:
            pygame.draw.rect(self.window, START_LINE_COLOR, self._tile_rect(x, y, size))
        for x, y in snapshot.finish_tiles - snapshot.start_tiles:
            pygame.draw.rect(self.window, FINISH_LINE_COLOR, self._tile_rect(x, y, size))

    def _render_car(self, vehicle: VehicleState):
        corners = [self.camera.world_to_screen(corner) for corner in car_corners(vehicle)]
        pygame.draw.polygon(self.window, CAR_COLOR, corners)
        pygame.draw.polygon(self.window, CAR_OUTLINE_COLOR, corners, CAR_OUTLINE_WIDTH)

    def _render_debug_overlay(self, intents: Optional[IntentSet]):
        """Centre crosshair, viewport border, FPS and held intents"""
        center_x = self.window_size[0] // 2
        center_y = self.window_size[1] // 2
        pygame.draw.line(self.window, CROSSHAIR_COLOR,
                         (center_x - CROSSHAIR_HALF_LENGTH, center_y),
                         (center_x + CROSSHAIR_HALF_LENGTH, center_y))
        pygame.draw.line(self.window, CROSSHAIR_COLOR,
                         (center_x, center_y - CROSSHAIR_HALF_LENGTH),
                         (center_x, center_y + CROSSHAIR_HALF_LENGTH))
        pygame.draw.rect(self.window, REFERENCE_BORDER_COLOR,
                         pygame.Rect(0, 0, self.window_size[0], self.window_size[1]), 1)

        held = ", ".join(intent.value for intent in intents.held()) if intents else ""
        text = self.font.render(f"FPS: {self.clock.get_fps():.1f}  {held}", True, CROSSHAIR_COLOR)
        self.window.blit(text, (10, 10))

    def _render_lap_times(self, snapshot: SimulationSnapshot):
        """Render lap timing information at the bottom center of the screen"""
        lap = snapshot.lap
        display_current = LapTimer.format_time(lap.current_elapsed) if lap.start_instant is not None else "--:--.---"
        lines = [
            ("Current:", display_current, LAP_TIMER_CURRENT_COLOR),
            ("Last:", LapTimer.format_time(lap.last_lap_duration), LAP_TIMER_LAST_COLOR),
            ("Best:", LapTimer.format_time(lap.best_lap_duration), LAP_TIMER_BEST_COLOR),
        ]

        total_height = len(lines) * LAP_TIMER_LINE_SPACING
        start_y = self.window_size[1] - LAP_TIMER_BOTTOM_MARGIN - total_height

        bg_width = max(self.lap_font.size(f"{label:<8} {time_str}")[0] for label, time_str, _ in lines) + 20
        bg_height = total_height + 20
        bg_x = (self.window_size[0] - bg_width) // 2
        bg_surface = pygame.Surface((bg_width, bg_height))
        bg_surface.set_alpha(LAP_TIMER_BG_ALPHA)
        bg_surface.fill(LAP_TIMER_BG_COLOR)
        self.window.blit(bg_surface, (bg_x, start_y - 10))

        for i, (label, time_str, color) in enumerate(lines):
            text_surface = self.lap_font.render(f"{label:<8} {time_str}", True, color)
            text_rect = text_surface.get_rect()
            text_rect.centerx = self.window_size[0] // 2
            text_rect.y = start_y + i * LAP_TIMER_LINE_SPACING
            self.window.blit(text_surface, text_rect)

    def _render_message(self, message_board: MessageBoard):
        message = message_board.current()
        if message is None:
            return
        color = MESSAGE_ERROR_COLOR if message.is_error else MESSAGE_TEXT_COLOR
        text_surface = self.message_font.render(message.text, True, color)
        text_surface.set_alpha(int(255 * message_board.opacity()))
        text_rect = text_surface.get_rect()
        text_rect.centerx = self.window_size[0] // 2
        text_rect.top = MESSAGE_TOP_MARGIN
        self.window.blit(text_surface, text_rect)

    def close(self):
        if self.window is not None:
            pygame.display.quit()
            pygame.quit()
            self.window = None
            self.clock = None
            self.font = None
            self.lap_font = None
            self.message_font = None
            self._initialized_pygame = False
