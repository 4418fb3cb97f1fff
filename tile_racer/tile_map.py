"""
Tile map storage and map-description loading.

This module provides the immutable tile grid used by the simulation:
- TileKind enumeration including explicit out-of-bounds and unknown results
- TileMap lookup by tile coordinate or by continuous world position
- Parsing and validation of JSON map descriptions
- The built-in default map
"""

import json
import logging
import math
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np

from .constants import (
    TILE_SIZE,
    TILE_CODE_GRASS,
    TILE_CODE_ROAD,
    TILE_CODE_WALL,
    TILE_CODE_START_FINISH,
    TILE_CODE_OUT_OF_BOUNDS,
    TILE_CODE_UNKNOWN,
    TILE_CODE_MAX,
    DEFAULT_MAP,
    DEFAULT_START_FINISH_LINE,
    SPAWN_TILE,
    SPAWN_ANGLE,
)

# Setup module logger
logger = logging.getLogger(__name__)

Coordinate = Tuple[int, int]


class InvalidMapShape(ValueError):
    """Raised when a map description is not a non-empty rectangular grid"""


class TileKind(IntEnum):
    GRASS = TILE_CODE_GRASS
    ROAD = TILE_CODE_ROAD
    WALL = TILE_CODE_WALL
    START_FINISH = TILE_CODE_START_FINISH
    OUT_OF_BOUNDS = TILE_CODE_OUT_OF_BOUNDS
    UNKNOWN = TILE_CODE_UNKNOWN

    @classmethod
    def from_code(cls, code: int) -> "TileKind":
        """Map a stored grid code to a kind; codes outside the recognised set are UNKNOWN"""
        if code in _RECOGNISED_CODES:
            return cls(code)
        return cls.UNKNOWN


_RECOGNISED_CODES = frozenset({
    TILE_CODE_GRASS,
    TILE_CODE_ROAD,
    TILE_CODE_WALL,
    TILE_CODE_START_FINISH,
})


def world_to_tile(position: Tuple[float, float], tile_size: float = TILE_SIZE) -> Coordinate:
    """Tile containing a continuous world position (floor division by tile size)"""
    return (int(math.floor(position[0] / tile_size)), int(math.floor(position[1] / tile_size)))


def tile_center(tile: Coordinate, tile_size: float = TILE_SIZE) -> Tuple[float, float]:
    """World position of the centre of a tile"""
    return (tile[0] * tile_size + tile_size / 2, tile[1] * tile_size + tile_size / 2)


class TileMap:
    """Read-only grid of tile codes, indexed as (x = column, y = row)"""

    def __init__(self, rows: Sequence[Sequence[int]], tile_size: float = TILE_SIZE):
        """
        Initialize tile map.

        Args:
            rows: Ordered rows of integer tile codes, all rows the same length
            tile_size: World units per tile edge

        Raises:
            InvalidMapShape: If the grid is empty or not rectangular
        """
        _validate_grid(rows)
        self._grid = np.array(rows, dtype=np.int64)
        self._grid.flags.writeable = False
        self.tile_size = tile_size

    @property
    def width(self) -> int:
        return int(self._grid.shape[1])

    @property
    def height(self) -> int:
        return int(self._grid.shape[0])

    @property
    def pixel_size(self) -> Tuple[float, float]:
        """Map bounds in world units (width * tile_size, height * tile_size)"""
        return (self.width * self.tile_size, self.height * self.tile_size)

    @property
    def grid(self) -> np.ndarray:
        """Read-only array view of the codes, shape (height, width)"""
        return self._grid

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def code_at(self, x: int, y: int) -> Optional[int]:
        """Raw stored code at a tile, None outside the grid"""
        if not self.in_bounds(x, y):
            return None
        return int(self._grid[y, x])

    def kind_at(self, x: int, y: int) -> TileKind:
        """Tile kind at a tile coordinate; OUT_OF_BOUNDS outside the grid"""
        code = self.code_at(x, y)
        if code is None:
            return TileKind.OUT_OF_BOUNDS
        return TileKind.from_code(code)

    def tile_at_position(self, position: Tuple[float, float]) -> Coordinate:
        return world_to_tile(position, self.tile_size)

    def kind_at_position(self, position: Tuple[float, float]) -> TileKind:
        return self.kind_at(*self.tile_at_position(position))

    def tiles_of_kind(self, kind: TileKind) -> List[Coordinate]:
        """All coordinates holding the given kind, in row-major order"""
        ys, xs = np.nonzero(self._grid == int(kind))
        return [(int(x), int(y)) for y, x in zip(ys, xs)]

    def to_rows(self) -> List[List[int]]:
        return self._grid.tolist()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TileMap):
            return NotImplemented
        return self.tile_size == other.tile_size and np.array_equal(self._grid, other._grid)

    def __repr__(self) -> str:
        return f"TileMap({self.width}x{self.height}, tile_size={self.tile_size})"


def _validate_grid(rows: Any) -> None:
    if not isinstance(rows, (list, tuple)) or len(rows) == 0:
        raise InvalidMapShape("Map must be a non-empty list of rows")

    row_length = None
    for row_index, row in enumerate(rows):
        if not isinstance(row, (list, tuple)):
            raise InvalidMapShape(f"Row {row_index} is not a list")
        if len(row) == 0:
            raise InvalidMapShape(f"Row {row_index} is empty")
        if row_length is None:
            row_length = len(row)
        elif len(row) != row_length:
            raise InvalidMapShape(
                f"Row {row_index} has length {len(row)}, expected {row_length}")
        for column_index, code in enumerate(row):
            # bool is an int subclass but never a tile code
            if isinstance(code, bool) or not isinstance(code, (int, np.integer)):
                raise InvalidMapShape(
                    f"Tile ({column_index}, {row_index}) has non-integer code {code!r}")
            # Negative codes are reserved for the out-of-bounds and unknown sentinels
            if code < 0 or code > TILE_CODE_MAX:
                raise InvalidMapShape(
                    f"Tile ({column_index}, {row_index}) code {code} is outside 0..{TILE_CODE_MAX}")


@dataclass(frozen=True)
class MapDescription:
    """Validated result of parsing a map description"""
    tile_map: TileMap
    start_tiles: FrozenSet[Coordinate]
    finish_tiles: FrozenSet[Coordinate]
    has_finish_line: bool
    spawn_tile: Coordinate
    spawn_angle: float


def _parse_coordinate_list(value: Any, field_name: str) -> List[Coordinate]:
    if not isinstance(value, (list, tuple)):
        raise InvalidMapShape(f"'{field_name}' must be a list of [x, y] pairs")
    coordinates = []
    for entry in value:
        coordinates.append(_parse_coordinate(entry, field_name))
    return coordinates


def _parse_coordinate(entry: Any, field_name: str) -> Coordinate:
    if (not isinstance(entry, (list, tuple)) or len(entry) != 2
            or any(isinstance(v, bool) or not isinstance(v, int) for v in entry)):
        raise InvalidMapShape(f"'{field_name}' entry {entry!r} is not an [x, y] integer pair")
    return (entry[0], entry[1])


def _warn_outside(tile_map: TileMap, coordinates: Sequence[Coordinate], field_name: str) -> None:
    for x, y in coordinates:
        if not tile_map.in_bounds(x, y):
            logger.warning(f"'{field_name}' tile ({x}, {y}) lies outside the {tile_map.width}x{tile_map.height} map")


def _default_spawn(tile_map: TileMap) -> Coordinate:
    roads = tile_map.tiles_of_kind(TileKind.ROAD)
    if roads:
        return roads[0]
    return (tile_map.width // 2, tile_map.height // 2)


def parse_map_description(description: Any, tile_size: float = TILE_SIZE) -> MapDescription:
    """
    Validate a structural map description and build the session objects from it.

    Args:
        description: Mapping with a required 'map' grid of integer codes and optional
            'startLine', 'finishLine' ([x, y] lists), 'spawn' ([x, y]) and 'spawnAngle'
        tile_size: World units per tile edge

    Returns:
        MapDescription with the tile map, trigger tiles and spawn point

    Raises:
        InvalidMapShape: If any part of the description is malformed
    """
    if not isinstance(description, dict):
        raise InvalidMapShape("Map description must be an object")
    if "map" not in description:
        raise InvalidMapShape("Map description is missing the 'map' field")

    tile_map = TileMap(description["map"], tile_size=tile_size)

    start_tiles = _parse_coordinate_list(description.get("startLine", []), "startLine")
    has_finish_line = "finishLine" in description
    finish_tiles = _parse_coordinate_list(description.get("finishLine", []), "finishLine")

    if not start_tiles and not finish_tiles:
        # Fall back to tiles painted as start/finish in the grid
        start_tiles = tile_map.tiles_of_kind(TileKind.START_FINISH)

    _warn_outside(tile_map, start_tiles, "startLine")
    _warn_outside(tile_map, finish_tiles, "finishLine")

    if "spawn" in description:
        spawn_tile = _parse_coordinate(description["spawn"], "spawn")
        if not tile_map.in_bounds(*spawn_tile):
            raise InvalidMapShape(
                f"'spawn' tile {spawn_tile} lies outside the {tile_map.width}x{tile_map.height} map")
    else:
        spawn_tile = _default_spawn(tile_map)

    spawn_angle = description.get("spawnAngle", 0.0)
    if isinstance(spawn_angle, bool) or not isinstance(spawn_angle, (int, float)):
        raise InvalidMapShape(f"'spawnAngle' must be a number, got {spawn_angle!r}")

    return MapDescription(
        tile_map=tile_map,
        start_tiles=frozenset(start_tiles),
        finish_tiles=frozenset(finish_tiles),
        has_finish_line=has_finish_line,
        spawn_tile=spawn_tile,
        spawn_angle=float(spawn_angle),
    )


def read_map_file(file_path: str) -> Dict[str, Any]:
    """
    Read a JSON map description from disk.

    Raises:
        InvalidMapShape: If the file is missing, unreadable or not valid JSON
    """
    if not os.path.exists(file_path):
        raise InvalidMapShape(f"Map file not found: {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Map file {file_path} is not valid JSON: {e}")
        raise InvalidMapShape(f"Invalid JSON in map file {file_path}: {e}") from e
    except UnicodeDecodeError as e:
        logger.error(f"Map file {file_path} is not valid UTF-8: {e}")
        raise InvalidMapShape(f"Map file {file_path} is not UTF-8 text: {e}") from e
    except OSError as e:
        logger.error(f"Failed to read map file {file_path}: {e}")
        raise InvalidMapShape(f"Cannot read map file {file_path}: {e}") from e


def load_map_file(file_path: str, tile_size: float = TILE_SIZE) -> MapDescription:
    """Read and validate a JSON map description file"""
    return parse_map_description(read_map_file(file_path), tile_size=tile_size)


def default_map_description() -> Dict[str, Any]:
    """The built-in map as a description dict, suitable for parse_map_description"""
    return {
        "map": [list(row) for row in DEFAULT_MAP],
        "startLine": [list(tile) for tile in DEFAULT_START_FINISH_LINE],
        "spawn": list(SPAWN_TILE),
        "spawnAngle": SPAWN_ANGLE,
    }
