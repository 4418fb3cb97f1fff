"""
Simulation core: one deterministic tick of physics, collision, lap timing and camera.

Each tick runs, strictly in order:
    intents -> physics_step -> CollisionResolver -> LapTimer -> camera view

All session data lives in an explicit SimulationState aggregate. A tick
produces a new aggregate; a map load builds a complete new aggregate and
swaps it in only once every part of it has been built.
"""

import copy
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, FrozenSet, Optional, Tuple

from .camera import CameraView, compute_camera_view
from .collision import CollisionResolver, CollisionResult, MovementPolicy
from .constants import DEFAULT_VIEWPORT_SIZE, TILE_SIZE
from .lap_timer import LapEvent, LapEventType, LapTimer, LapTimerState
from .messages import LoggingMessageSink, MessageSink
from .start_finish import StartFinishRegistry, TriggerPolicy
from .tile_map import (
    InvalidMapShape,
    MapDescription,
    TileMap,
    default_map_description,
    parse_map_description,
    read_map_file,
    tile_center,
)
from .vehicle import IntentSet, PhysicsConfig, VehicleState, physics_step

# Setup module logger
logger = logging.getLogger(__name__)

Coordinate = Tuple[int, int]


@dataclass(frozen=True)
class SimulationConfig:
    tile_size: float = TILE_SIZE
    viewport_size: Tuple[int, int] = DEFAULT_VIEWPORT_SIZE
    physics: PhysicsConfig = field(default_factory=PhysicsConfig)
    movement_policy: MovementPolicy = field(default_factory=MovementPolicy)
    trigger_policy: Optional[TriggerPolicy] = None  # None: chosen from the map description
    rearm_after_finish: Optional[bool] = None  # None: policy default


@dataclass(frozen=True)
class SimulationState:
    tile_map: TileMap
    registry: StartFinishRegistry
    vehicle: VehicleState
    lap_timer: LapTimer
    camera: CameraView
    spawn: VehicleState
    tick: int = 0


@dataclass(frozen=True)
class TickResult:
    state: SimulationState
    collision: CollisionResult
    events: Tuple[LapEvent, ...] = ()


@dataclass(frozen=True)
class SimulationSnapshot:
    """Read-only view handed to renderers"""
    vehicle: VehicleState
    camera: CameraView
    tile_map: TileMap
    start_tiles: FrozenSet[Coordinate]
    finish_tiles: FrozenSet[Coordinate]
    trigger_policy: TriggerPolicy
    lap: LapTimerState
    tick: int


def advance(state: SimulationState,
            intents: IntentSet,
            resolver: CollisionResolver,
            viewport_size: Tuple[int, int]) -> TickResult:
    """
    Run one tick.

    Args:
        state: Aggregate at the start of the tick
        intents: Intent snapshot read at the start of the tick
        resolver: Collision resolver carrying the physics tuning and movement policy
        viewport_size: Viewport used for the camera view

    Returns:
        TickResult with the next aggregate, the collision outcome and any lap events
    """
    proposed = physics_step(state.vehicle, intents, resolver.physics)
    collision = resolver.resolve(state.tile_map, proposed, state.vehicle)
    vehicle = collision.state

    tile = state.tile_map.tile_at_position(vehicle.position)
    # Input aggregate keeps its own timer
    lap_timer = copy.copy(state.lap_timer)
    events = lap_timer.update(tile)

    camera = compute_camera_view(vehicle.position, viewport_size, state.tile_map.pixel_size)

    next_state = replace(state, vehicle=vehicle, lap_timer=lap_timer, camera=camera, tick=state.tick + 1)
    return TickResult(next_state, collision, tuple(events))


class Simulation:
    """Drives ticks over a SimulationState and swaps maps atomically"""

    def __init__(self,
                 config: Optional[SimulationConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 message_sink: Optional[MessageSink] = None,
                 description: Optional[Any] = None):
        """
        Initialize simulation.

        Args:
            config: Tuning and policy configuration
            clock: Timestamp source in seconds for lap timing
            message_sink: Receives (text, is_error) for lap and load notifications,
                logged through LoggingMessageSink when None
            description: Initial map description, the built-in map when None

        Raises:
            InvalidMapShape: If the initial description is malformed
        """
        self.config = config or SimulationConfig()
        self.clock = clock
        self.message_sink = message_sink if message_sink is not None else LoggingMessageSink()
        self.resolver = CollisionResolver(self.config.physics, self.config.movement_policy)

        if description is None:
            description = default_map_description()
        self.state = self._build_state(parse_map_description(description, self.config.tile_size))
        self.last_result: Optional[TickResult] = None

    def _build_state(self, parsed: MapDescription) -> SimulationState:
        registry = StartFinishRegistry.for_map(
            parsed.start_tiles,
            parsed.finish_tiles,
            parsed.has_finish_line,
            policy_override=self.config.trigger_policy,
        )
        spawn_x, spawn_y = tile_center(parsed.spawn_tile, parsed.tile_map.tile_size)
        spawn = VehicleState(x=spawn_x, y=spawn_y, heading=parsed.spawn_angle, speed=0.0)
        return self._spawn_state(parsed.tile_map, registry, spawn)

    def _spawn_state(self, tile_map: TileMap, registry: StartFinishRegistry, spawn: VehicleState) -> SimulationState:
        lap_timer = LapTimer(registry, clock=self.clock, rearm_after_finish=self.config.rearm_after_finish)
        lap_timer.prime(tile_map.tile_at_position(spawn.position))
        # Camera is placed before the first tick
        camera = compute_camera_view(spawn.position, self.config.viewport_size, tile_map.pixel_size)
        return SimulationState(
            tile_map=tile_map,
            registry=registry,
            vehicle=spawn,
            lap_timer=lap_timer,
            camera=camera,
            spawn=spawn,
        )

    def step(self, intents: IntentSet) -> TickResult:
        """Run one tick and notify the message sink of lap events"""
        result = advance(self.state, intents, self.resolver, self.config.viewport_size)
        self.state = result.state
        self.last_result = result

        for event in result.events:
            if event.event_type == LapEventType.FINISHED:
                logger.debug(f"Lap finished at tick {result.state.tick}: {LapTimer.format_time(event.duration)}")
            else:
                logger.debug(f"Lap started at tick {result.state.tick}")
            self._notify(event.message, False)

        return result

    def reset(self) -> None:
        """Respawn the vehicle and reset lap timing on the current map"""
        self.state = self._spawn_state(self.state.tile_map, self.state.registry, self.state.spawn)
        self.last_result = None

    def load_map(self, description: Any) -> bool:
        """
        Replace the map, triggers, vehicle and lap timer from a description.

        A malformed description leaves the current state untouched and is
        reported to the message sink as an error.

        Returns:
            True if the new map was applied
        """
        try:
            new_state = self._build_state(parse_map_description(description, self.config.tile_size))
        except InvalidMapShape as e:
            self._notify(f"Failed to load map: {e}", True)
            return False

        self.state = new_state
        self.last_result = None
        tile_map = new_state.tile_map
        logger.info(f"Loaded {tile_map.width}x{tile_map.height} map with "
                    f"{len(new_state.registry.trigger_tiles)} trigger tile(s), "
                    f"policy {new_state.registry.policy.value}")
        self._notify("Map loaded", False)
        return True

    def load_map_file(self, file_path: str) -> bool:
        """Read a JSON map file and apply it with load_map"""
        try:
            description = read_map_file(file_path)
        except InvalidMapShape as e:
            self._notify(f"Failed to load map: {e}", True)
            return False
        return self.load_map(description)

    def snapshot(self) -> SimulationSnapshot:
        state = self.state
        return SimulationSnapshot(
            vehicle=state.vehicle,
            camera=state.camera,
            tile_map=state.tile_map,
            start_tiles=state.registry.start_tiles,
            finish_tiles=state.registry.finish_tiles,
            trigger_policy=state.registry.policy,
            lap=state.lap_timer.snapshot(),
            tick=state.tick,
        )

    def _notify(self, text: str, is_error: bool) -> None:
        self.message_sink(text, is_error)
