"""
Tile collision resolution.

This module decides what happens when the vehicle's proposed position lands
on a tile: drive through, drive through with drag, or stop dead. The check
is made against the single destination tile only; there is no sweep along
the path, so a fast enough car can pass through a one-tile wall.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional, Set, Tuple

from .constants import GRASS_SPEED_FACTOR
from .tile_map import TileKind, TileMap
from .vehicle import PhysicsConfig, VehicleState, apply_friction

# Setup module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MovementRule:
    allowed: bool = True
    speed_factor: float = 1.0  # Multiplier applied to speed on entry
    extra_drag: bool = False  # Also remove one tick of friction after the multiplier


PASS = MovementRule()
SLOW = MovementRule(allowed=True, speed_factor=GRASS_SPEED_FACTOR, extra_drag=True)
BLOCK = MovementRule(allowed=False)


class MovementPolicy:
    """Per-tile-kind movement table; kinds without an entry are impassable"""

    def __init__(self, rules: Optional[Mapping[TileKind, MovementRule]] = None):
        self.rules: Dict[TileKind, MovementRule] = dict(rules) if rules is not None else {
            TileKind.ROAD: PASS,
            TileKind.START_FINISH: PASS,
            TileKind.GRASS: SLOW,
            TileKind.WALL: BLOCK,
        }

    def rule_for(self, kind: TileKind) -> MovementRule:
        # OUT_OF_BOUNDS and UNKNOWN always block
        if kind in (TileKind.OUT_OF_BOUNDS, TileKind.UNKNOWN):
            return BLOCK
        return self.rules.get(kind, BLOCK)

    @classmethod
    def grass_is_impassable(cls) -> "MovementPolicy":
        """Variant where leaving the road stops the car"""
        return cls({
            TileKind.ROAD: PASS,
            TileKind.START_FINISH: PASS,
            TileKind.GRASS: BLOCK,
            TileKind.WALL: BLOCK,
        })


@dataclass(frozen=True)
class CollisionResult:
    state: VehicleState
    tile: Tuple[int, int]
    kind: TileKind
    blocked: bool


class CollisionResolver:
    """Accepts or rejects a proposed vehicle move against the tile map"""

    def __init__(self, physics: PhysicsConfig, policy: Optional[MovementPolicy] = None):
        self.physics = physics
        self.policy = policy or MovementPolicy()
        self._reported_unknown_codes: Set[int] = set()

    def resolve(self, tile_map: TileMap, proposed: VehicleState, current: VehicleState) -> CollisionResult:
        """
        Resolve a proposed move.

        Args:
            tile_map: Map to check against
            proposed: State produced by the physics step
            current: State at the start of the tick

        Returns:
            CollisionResult holding the accepted state and the destination tile
        """
        tile = tile_map.tile_at_position(proposed.position)
        kind = tile_map.kind_at(*tile)

        if kind == TileKind.UNKNOWN:
            self._report_unknown(tile_map, tile)

        rule = self.policy.rule_for(kind)

        if not rule.allowed:
            # Keep the new heading, stay where we were
            accepted = replace(proposed, x=current.x, y=current.y, speed=0.0)
            return CollisionResult(accepted, tile, kind, blocked=True)

        speed = proposed.speed * rule.speed_factor
        if rule.extra_drag:
            speed = apply_friction(speed, self.physics.friction_per_tick)
        speed = self.physics.clamp_speed(speed)

        return CollisionResult(replace(proposed, speed=speed), tile, kind, blocked=False)

    def _report_unknown(self, tile_map: TileMap, tile: Tuple[int, int]) -> None:
        code = tile_map.code_at(*tile)
        if code in self._reported_unknown_codes:
            return
        self._reported_unknown_codes.add(code)
        logger.warning(f"Unknown tile code {code} at {tile}, treating as impassable")
