"""
Vehicle state and the per-tick kinematic update.

The model is deliberately simple: a scalar signed speed along the heading,
constant acceleration while a pedal intent is held, linear friction while
coasting, and a fixed turn rate. Heading 0 points up the screen (negative Y)
and positive angles turn clockwise.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Tuple

from .constants import (
    CAR_ACCELERATION,
    CAR_MAX_FORWARD_SPEED,
    CAR_MAX_REVERSE_SPEED_FACTOR,
    CAR_FRICTION,
    CAR_TURN_RATE,
)


class Intent(Enum):
    ACCELERATE = "accelerate"
    BRAKE = "brake"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"


@dataclass(frozen=True)
class IntentSet:
    """Snapshot of the directional intents held during one tick"""
    accelerate: bool = False
    brake: bool = False
    turn_left: bool = False
    turn_right: bool = False

    @classmethod
    def of(cls, intents: Iterable[Intent]) -> "IntentSet":
        held = set(intents)
        return cls(
            accelerate=Intent.ACCELERATE in held,
            brake=Intent.BRAKE in held,
            turn_left=Intent.TURN_LEFT in held,
            turn_right=Intent.TURN_RIGHT in held,
        )

    def held(self) -> Tuple[Intent, ...]:
        flags = (
            (Intent.ACCELERATE, self.accelerate),
            (Intent.BRAKE, self.brake),
            (Intent.TURN_LEFT, self.turn_left),
            (Intent.TURN_RIGHT, self.turn_right),
        )
        return tuple(intent for intent, is_held in flags if is_held)

    def as_array(self) -> Tuple[int, int, int, int]:
        return (int(self.accelerate), int(self.brake), int(self.turn_left), int(self.turn_right))


NO_INTENTS = IntentSet()


@dataclass(frozen=True)
class VehicleState:
    x: float
    y: float
    heading: float = 0.0  # Radians, 0 = up, positive = clockwise
    speed: float = 0.0  # Signed, positive = forward

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class PhysicsConfig:
    acceleration: float = CAR_ACCELERATION
    max_forward_speed: float = CAR_MAX_FORWARD_SPEED
    max_reverse_speed_factor: float = CAR_MAX_REVERSE_SPEED_FACTOR
    friction_per_tick: float = CAR_FRICTION
    turn_rate_per_tick: float = CAR_TURN_RATE

    @property
    def min_speed(self) -> float:
        return -self.max_forward_speed * self.max_reverse_speed_factor

    def clamp_speed(self, speed: float) -> float:
        return max(min(speed, self.max_forward_speed), self.min_speed)


def apply_friction(speed: float, amount: float) -> float:
    """Reduce the magnitude of speed by amount without crossing zero"""
    if speed > 0:
        return max(0.0, speed - amount)
    if speed < 0:
        return min(0.0, speed + amount)
    return 0.0


def physics_step(state: VehicleState, intents: IntentSet, config: PhysicsConfig) -> VehicleState:
    """
    Propose the next vehicle state for one tick.

    Accelerate and brake both apply when held together, so they cancel out.
    Friction only acts while neither pedal intent is held.

    Args:
        state: Current vehicle state
        intents: Intents held for this tick
        config: Tuning constants

    Returns:
        Proposed state with final heading and speed and the unchecked new position
    """
    speed = state.speed
    heading = state.heading

    if intents.accelerate:
        speed += config.acceleration
    if intents.brake:
        speed -= config.acceleration

    if intents.turn_left:
        heading -= config.turn_rate_per_tick
    if intents.turn_right:
        heading += config.turn_rate_per_tick

    if not intents.accelerate and not intents.brake:
        speed = apply_friction(speed, config.friction_per_tick)

    speed = config.clamp_speed(speed)

    return replace(
        state,
        x=state.x + math.sin(heading) * speed,
        y=state.y - math.cos(heading) * speed,
        heading=heading,
        speed=speed,
    )
