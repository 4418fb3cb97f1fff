import json
import logging
from pathlib import Path

import pytest

from tile_racer.constants import DEFAULT_MAP, TILE_SIZE
from tile_racer.tile_map import (
    InvalidMapShape,
    TileKind,
    TileMap,
    default_map_description,
    load_map_file,
    parse_map_description,
    read_map_file,
    world_to_tile,
)

MAPS_DIR = Path(__file__).resolve().parent.parent / "maps"


def test_codes_read_back_as_stored():
    tile_map = TileMap(DEFAULT_MAP)
    assert tile_map.width == 11
    assert tile_map.height == 11
    assert tile_map.to_rows() == [list(row) for row in DEFAULT_MAP]
    for y, row in enumerate(DEFAULT_MAP):
        for x, code in enumerate(row):
            assert tile_map.code_at(x, y) == code


def test_lookup_outside_grid_is_out_of_bounds():
    tile_map = TileMap([[1, 1], [1, 1]])
    for x, y in [(-1, 0), (0, -1), (2, 0), (0, 2), (100, 100)]:
        assert tile_map.kind_at(x, y) == TileKind.OUT_OF_BOUNDS
        assert tile_map.code_at(x, y) is None


def test_unrecognised_code_is_kept_and_reported_as_unknown():
    tile_map = TileMap([[1, 7]])
    assert tile_map.code_at(1, 0) == 7
    assert tile_map.kind_at(1, 0) == TileKind.UNKNOWN


def test_world_position_uses_floor_division():
    assert world_to_tile((0.0, 0.0)) == (0, 0)
    assert world_to_tile((63.9, 64.0)) == (0, 1)
    assert world_to_tile((-0.5, 10.0)) == (-1, 0)
    tile_map = TileMap([[1, 2]])
    assert tile_map.kind_at_position((TILE_SIZE + 1, 5)) == TileKind.WALL


def test_grid_is_read_only():
    tile_map = TileMap([[1, 1]])
    with pytest.raises(ValueError):
        tile_map.grid[0, 0] = 2


@pytest.mark.parametrize("rows", [
    [],
    [[]],
    [[1, 1], [1]],
    [[1, "a"]],
    [[1, True]],
    [[1.5]],
    [[1, -1]],
    [[1, 2 ** 70]],
    "not a grid",
])
def test_malformed_grids_are_rejected(rows):
    with pytest.raises(InvalidMapShape):
        TileMap(rows)


def test_invalid_map_shape_is_a_value_error():
    assert issubclass(InvalidMapShape, ValueError)


def test_description_requires_map_field():
    with pytest.raises(InvalidMapShape):
        parse_map_description({"startLine": [[0, 0]]})
    with pytest.raises(InvalidMapShape):
        parse_map_description([[1, 1]])


def test_description_rejects_bad_coordinates_and_angle():
    with pytest.raises(InvalidMapShape):
        parse_map_description({"map": [[1]], "startLine": [[0]]})
    with pytest.raises(InvalidMapShape):
        parse_map_description({"map": [[1]], "spawn": "0,0"})
    with pytest.raises(InvalidMapShape):
        parse_map_description({"map": [[1]], "spawnAngle": "up"})


def test_trigger_tiles_fall_back_to_painted_start_finish_tiles():
    parsed = parse_map_description({"map": [[1, 3, 1], [1, 3, 1]]})
    assert parsed.start_tiles == frozenset({(1, 0), (1, 1)})
    assert parsed.finish_tiles == frozenset()
    assert not parsed.has_finish_line


def test_explicit_lines_win_over_painted_tiles():
    parsed = parse_map_description({
        "map": [[1, 3, 1, 1]],
        "startLine": [[0, 0]],
        "finishLine": [[3, 0]],
    })
    assert parsed.start_tiles == frozenset({(0, 0)})
    assert parsed.finish_tiles == frozenset({(3, 0)})
    assert parsed.has_finish_line


def test_default_spawn_is_first_road_tile():
    parsed = parse_map_description({"map": [[2, 2, 2], [2, 0, 1], [2, 1, 1]]})
    assert parsed.spawn_tile == (2, 1)
    assert parsed.spawn_angle == 0.0


def test_trigger_outside_grid_is_logged(caplog):
    with caplog.at_level(logging.WARNING):
        parse_map_description({"map": [[1, 1]], "startLine": [[5, 5]]})
    assert any("outside" in record.getMessage() for record in caplog.records)


def test_default_description_parses():
    parsed = parse_map_description(default_map_description())
    assert parsed.tile_map == TileMap(DEFAULT_MAP)
    assert parsed.start_tiles == frozenset({(4, 2)})
    assert parsed.spawn_tile == (5, 2)


def test_missing_file_is_rejected():
    with pytest.raises(InvalidMapShape):
        read_map_file("/nonexistent/map.json")


def test_invalid_json_is_rejected(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{\"map\": [[1, 1]")
    with pytest.raises(InvalidMapShape):
        read_map_file(str(path))


def test_map_file_round_trip(tmp_path):
    path = tmp_path / "tiny.json"
    path.write_text(json.dumps({"map": [[1, 1], [0, 2]], "spawnAngle": 1.0}))
    parsed = load_map_file(str(path))
    assert parsed.tile_map.to_rows() == [[1, 1], [0, 2]]
    assert parsed.spawn_angle == 1.0


@pytest.mark.parametrize("name", ["loop.json", "sprint.json"])
def test_bundled_maps_load(name):
    parsed = load_map_file(str(MAPS_DIR / name))
    assert parsed.start_tiles
    assert parsed.tile_map.kind_at(*parsed.spawn_tile) == TileKind.ROAD


def test_largest_int64_code_is_accepted_as_unknown():
    tile_map = TileMap([[1, 2 ** 63 - 1]])
    assert tile_map.kind_at(1, 0) == TileKind.UNKNOWN


def test_spawn_outside_grid_is_rejected():
    with pytest.raises(InvalidMapShape):
        parse_map_description({"map": [[1, 1], [1, 1]], "spawn": [50, 50]})
    with pytest.raises(InvalidMapShape):
        parse_map_description({"map": [[1, 1], [1, 1]], "spawn": [-1, 0]})


def test_non_utf8_file_is_rejected(tmp_path):
    path = tmp_path / "binary.json"
    path.write_bytes(b'{"map": [[1]]}\xff\xfe')
    with pytest.raises(InvalidMapShape):
        read_map_file(str(path))
