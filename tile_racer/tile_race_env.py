"""
Tile racing environment.

This module wraps the tile driving simulation in a gymnasium environment
with optional pygame rendering. Simulated time advances by one fixed tick
per step and doubles as the lap clock, so runs are reproducible.
"""

import logging
import math
import numpy as np
import pygame
from typing import Optional, Tuple, Dict, Any
from .base_env import BaseEnv
from .lap_timer import LapEventType
from .messages import LoggingMessageSink, MessageBoard
from .renderer import Renderer
from .simulation import Simulation, SimulationConfig, TickResult
from .tile_map import TileKind
from .constants import (
    RENDER_MODE_HUMAN,
    DEFAULT_REWARD,
    DEFAULT_TERMINATED,
    DEFAULT_TRUNCATED,
    TICK_DURATION,
    NORM_MAX_TILE_CODE,
    NORM_MAX_LAP_TIME,
    REWARD_SPEED_MULTIPLIER,
    REWARD_LAP_COMPLETION,
    PENALTY_GRASS,
    PENALTY_WALL,
    TRUNCATION_MAX_TIME,
    RESET_KEY,
    MAP_RELOAD_KEY,
)

# Setup module logger
logger = logging.getLogger(__name__)


class TileRaceEnv(BaseEnv):
    """Tile-map driving environment with lap timing"""

    def __init__(self,
                 render_mode: Optional[str] = None,
                 map_file: Optional[str] = None,
                 discrete_action_space: bool = False,
                 enable_fps_limit: bool = True,
                 reset_on_lap: bool = False,
                 max_episode_time: float = TRUNCATION_MAX_TIME,
                 config: Optional[SimulationConfig] = None):
        """
        Initialize tile racing environment.

        Args:
            render_mode: Rendering mode ("human" or None)
            map_file: Path to a JSON map description, the built-in map if None
            discrete_action_space: If True, use 5 discrete actions instead of 4 held intents
            enable_fps_limit: Whether to hold steps to the render frame rate
            reset_on_lap: If True, terminate the episode when a lap is finished
            max_episode_time: Simulated seconds before the episode is truncated
            config: Simulation tuning, defaults from constants
        """
        super().__init__(discrete_action_space=discrete_action_space)

        self.render_mode = render_mode
        self.map_file = map_file
        self.reset_on_lap = reset_on_lap
        self.max_episode_time = max_episode_time

        self.simulation_time = 0.0
        self.last_result: Optional[TickResult] = None
        self.termination_reason = None
        self._cumulative_reward = 0.0
        self._has_reset = False

        # On-screen messages fade in real time, only needed when there is a screen
        self.message_board = MessageBoard(forward=LoggingMessageSink()) if render_mode == RENDER_MODE_HUMAN else None

        self.simulation = Simulation(
            config=config,
            clock=self._simulation_clock,
            message_sink=self.message_board,
        )

        if map_file and not self.simulation.load_map_file(map_file):
            logger.error(f"Failed to load map {map_file}, using built-in map")

        self.renderer = None
        self.headless_clock = None

        if render_mode == RENDER_MODE_HUMAN:
            self.renderer = Renderer(
                window_size=self.simulation.config.viewport_size,
                render_fps=self.metadata["render_fps"],
                enable_fps_limit=enable_fps_limit,
            )
        elif enable_fps_limit:
            # Keep headless runs at the render rate
            if not pygame.get_init():
                pygame.init()
            self.headless_clock = pygame.time.Clock()

        logger.info(f"TileRaceEnv initialized with map: {map_file or 'built-in'}")

    def _simulation_clock(self) -> float:
        return self.simulation_time

    def load_map_file(self, file_path: str) -> bool:
        """Replace the map; the current map stays in place if the file is rejected"""
        loaded = self.simulation.load_map_file(file_path)
        if loaded:
            self.map_file = file_path
        return loaded

    def reset(self, seed: Optional[int] = None, options: Optional[Dict] = None) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Reset environment to initial state.

        Args:
            seed: Random seed (optional)
            options: Additional options; "map_file" loads a new map before resetting

        Returns:
            Tuple of (observation, info)
        """
        super().reset(seed=seed)

        if options and options.get("map_file"):
            self.load_map_file(options["map_file"])

        self.simulation_time = 0.0
        self.simulation.reset()
        self.last_result = None
        self.termination_reason = None
        self._cumulative_reward = 0.0
        self._has_reset = True

        logger.debug("Environment reset complete")
        return self._get_obs(), self._get_info()

    def step(self, action):
        """
        Execute one environment step (one simulation tick).

        Args:
            action: Held intents [accelerate, brake, turn_left, turn_right] or a discrete action

        Returns:
            (observation, reward, terminated, truncated, info)
        """
        assert self.action_space.contains(action), f"Invalid action {action}"

        if not self._has_reset:
            raise RuntimeError("Environment not properly initialized. Call reset() first.")

        intents = self._action_to_intents(action)
        self.last_intents = intents

        self.simulation_time += TICK_DURATION
        self.elapsed_time = self.simulation_time
        result = self.simulation.step(intents)
        self.last_result = result

        if self.headless_clock:
            self.headless_clock.tick(self.metadata["render_fps"])

        reward = self._calculate_reward(result)
        self._cumulative_reward += reward

        terminated, truncated = self._check_termination(result)

        return self._get_obs(), reward, terminated, truncated, self._get_info()

    def _calculate_reward(self, result: TickResult) -> float:
        reward = DEFAULT_REWARD
        kind = result.collision.kind
        speed = result.state.vehicle.speed

        if result.collision.blocked:
            reward -= PENALTY_WALL
        elif kind == TileKind.GRASS:
            reward -= PENALTY_GRASS
        elif speed > 0:
            reward += speed * REWARD_SPEED_MULTIPLIER

        for event in result.events:
            if event.event_type == LapEventType.FINISHED:
                reward += REWARD_LAP_COMPLETION

        return reward

    def _check_termination(self, result: TickResult) -> Tuple[bool, bool]:
        terminated = DEFAULT_TERMINATED
        truncated = DEFAULT_TRUNCATED

        if self.reset_on_lap and any(e.event_type == LapEventType.FINISHED for e in result.events):
            terminated = True
            self.termination_reason = "lap_finished"

        if self.simulation_time >= self.max_episode_time:
            truncated = True
            if not self.termination_reason:
                self.termination_reason = f"truncated (time limit {self.max_episode_time}s)"

        return terminated, truncated

    def _get_obs(self) -> np.ndarray:
        """Normalized observation of the vehicle and lap timer"""
        state = self.simulation.state
        vehicle = state.vehicle
        map_width, map_height = state.tile_map.pixel_size
        max_speed = self.simulation.config.physics.max_forward_speed
        kind = state.tile_map.kind_at_position(vehicle.position)
        lap_timer = state.lap_timer

        observation = np.array([
            np.clip(vehicle.x / map_width, 0.0, 1.0),
            np.clip(vehicle.y / map_height, 0.0, 1.0),
            math.sin(vehicle.heading),
            math.cos(vehicle.heading),
            np.clip(vehicle.speed / max_speed, -1.0, 1.0),
            # Out-of-bounds and unknown sentinels are negative
            max(int(kind), 0) / NORM_MAX_TILE_CODE,
            1.0 if lap_timer.is_timing() else 0.0,
            min(lap_timer.current_elapsed() / NORM_MAX_LAP_TIME, 1.0),
        ], dtype=np.float32)

        return observation

    def _get_info(self) -> Dict[str, Any]:
        state = self.simulation.state
        vehicle = state.vehicle
        tile = state.tile_map.tile_at_position(vehicle.position)
        info = {
            "simulation_time": self.simulation_time,
            "tick": state.tick,
            "car_position": vehicle.position,
            "car_heading": vehicle.heading,
            "car_speed": vehicle.speed,
            "tile": tile,
            "tile_kind": state.tile_map.kind_at(*tile).name,
            "blocked": bool(self.last_result and self.last_result.collision.blocked),
            "lap_events": [e.event_type.value for e in self.last_result.events] if self.last_result else [],
            "lap_timing": state.lap_timer.get_timing_info(),
            "cumulative_reward": self._cumulative_reward,
            "termination_reason": self.termination_reason,
        }
        return info

    def check_quit_requested(self) -> bool:
        """Check if user has requested to quit (e.g., by clicking window close button)"""
        if self.render_mode != RENDER_MODE_HUMAN:
            return False

        if not pygame.get_init():
            return False

        quit_requested = False
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                quit_requested = True
            elif event.type == pygame.KEYDOWN:
                if event.key == RESET_KEY:
                    self.simulation.reset()
                    logger.info("Car respawned")
                elif event.key == MAP_RELOAD_KEY:
                    if self.map_file:
                        self.load_map_file(self.map_file)
                    else:
                        logger.warning("No map file to reload, running the built-in map")
                elif self.renderer:
                    self.renderer.handle_key(event)

        return quit_requested

    def render(self) -> None:
        """Render the environment"""
        if self.render_mode == RENDER_MODE_HUMAN and self.renderer:
            self.renderer.render_frame(
                self.simulation.snapshot(),
                message_board=self.message_board,
                intents=self.last_intents,
            )

    def close(self) -> None:
        """Clean up environment resources"""
        if self.renderer:
            self.renderer.close()

        if self.headless_clock:
            self.headless_clock = None

        logger.info("TileRaceEnv closed")
