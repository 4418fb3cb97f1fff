import math

import pytest

from tile_racer.collision import CollisionResolver
from tile_racer.tile_map import TileMap, tile_center
from tile_racer.vehicle import (
    Intent,
    IntentSet,
    NO_INTENTS,
    PhysicsConfig,
    VehicleState,
    apply_friction,
    physics_step,
)

CONFIG = PhysicsConfig()
ACCELERATE = IntentSet(accelerate=True)
BRAKE = IntentSet(brake=True)


def _run(state, intents, ticks, config=CONFIG):
    for _ in range(ticks):
        state = physics_step(state, intents, config)
    return state


def test_speed_is_clamped_forward_and_reverse():
    state = VehicleState(0.0, 0.0)
    assert _run(state, ACCELERATE, 1000).speed == pytest.approx(CONFIG.max_forward_speed)
    assert _run(state, BRAKE, 1000).speed == pytest.approx(-CONFIG.max_forward_speed * CONFIG.max_reverse_speed_factor)


def test_friction_never_flips_direction():
    assert physics_step(VehicleState(0, 0, speed=0.03), NO_INTENTS, CONFIG).speed == 0.0
    assert physics_step(VehicleState(0, 0, speed=-0.03), NO_INTENTS, CONFIG).speed == 0.0
    assert physics_step(VehicleState(0, 0, speed=1.0), NO_INTENTS, CONFIG).speed == pytest.approx(0.95)
    assert apply_friction(0.0, 0.05) == 0.0


def test_accelerate_and_brake_cancel_without_friction():
    state = VehicleState(0, 0, speed=0.5)
    both = IntentSet(accelerate=True, brake=True)
    assert physics_step(state, both, CONFIG).speed == pytest.approx(0.5)


def test_turning_changes_heading_by_turn_rate():
    state = VehicleState(0, 0, heading=1.0)
    assert physics_step(state, IntentSet(turn_left=True), CONFIG).heading == pytest.approx(1.0 - CONFIG.turn_rate_per_tick)
    assert physics_step(state, IntentSet(turn_right=True), CONFIG).heading == pytest.approx(1.0 + CONFIG.turn_rate_per_tick)
    assert physics_step(state, IntentSet(turn_left=True, turn_right=True), CONFIG).heading == pytest.approx(1.0)


def test_position_moves_along_heading():
    up = physics_step(VehicleState(100, 100, heading=0.0, speed=1.0), ACCELERATE, CONFIG)
    assert up.x == pytest.approx(100)
    assert up.y < 100
    right = physics_step(VehicleState(100, 100, heading=math.pi / 2, speed=1.0), ACCELERATE, CONFIG)
    assert right.x > 100
    assert right.y == pytest.approx(100)


def test_ten_ticks_of_acceleration_on_open_road():
    config = PhysicsConfig(acceleration=0.2, max_forward_speed=5.0)
    tile_map = TileMap([[1] * 50 for _ in range(50)])
    resolver = CollisionResolver(config)
    x, y = tile_center((5, 2))
    state = VehicleState(x, y, heading=math.pi / 2)

    xs = []
    for _ in range(10):
        proposed = physics_step(state, ACCELERATE, config)
        state = resolver.resolve(tile_map, proposed, state).state
        xs.append(state.x)

    assert all(b > a for a, b in zip(xs, xs[1:]))
    assert state.speed == pytest.approx(2.0)
    assert state.y == pytest.approx(y)


def test_intent_set_helpers():
    intents = IntentSet.of([Intent.ACCELERATE, Intent.TURN_RIGHT])
    assert intents == IntentSet(accelerate=True, turn_right=True)
    assert intents.held() == (Intent.ACCELERATE, Intent.TURN_RIGHT)
    assert intents.as_array() == (1, 0, 0, 1)
    assert NO_INTENTS.held() == ()
