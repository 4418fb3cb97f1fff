import json
import math

import numpy as np
import pytest

from tile_racer.constants import (
    DEBUG_TOGGLE_KEY,
    KEYS_ACCELERATE,
    KEYS_BRAKE,
    KEYS_TURN_LEFT,
    KEYS_TURN_RIGHT,
    MAP_RELOAD_KEY,
    RESET_KEY,
)
from tile_racer.tile_race_env import TileRaceEnv

STRAIGHT = {
    "map": [[1] * 10],
    "startLine": [[2, 0]],
    "spawn": [0, 0],
    "spawnAngle": math.pi / 2,
}


def _action(accelerate=0, brake=0, turn_left=0, turn_right=0):
    return np.array([accelerate, brake, turn_left, turn_right], dtype=np.int8)


def test_reset_returns_valid_observation():
    env = TileRaceEnv(enable_fps_limit=False)
    obs, info = env.reset()
    assert obs.shape == (8,)
    assert obs.dtype == np.float32
    assert env.observation_space.contains(obs)
    assert obs[0] == pytest.approx(0.5)
    assert info["tile"] == (5, 2)
    assert info["tile_kind"] == "ROAD"
    assert info["simulation_time"] == 0.0
    env.close()


def test_step_before_reset_raises():
    env = TileRaceEnv(enable_fps_limit=False)
    with pytest.raises(RuntimeError):
        env.step(_action())


def test_held_intents_accelerate():
    env = TileRaceEnv(enable_fps_limit=False)
    env.reset()
    for _ in range(10):
        obs, reward, terminated, truncated, info = env.step(_action(accelerate=1))
    assert info["car_speed"] == pytest.approx(0.1)
    assert info["tick"] == 10
    assert reward > 0
    assert not terminated and not truncated


def test_discrete_actions():
    env = TileRaceEnv(discrete_action_space=True, enable_fps_limit=False)
    env.reset()
    for _ in range(5):
        env.step(1)
    _, _, _, _, info = env.step(4)
    assert info["car_heading"] == pytest.approx(-1.5708 + 0.02)
    with pytest.raises(ValueError):
        env._discrete_to_intents(7)


def test_lap_finish_terminates_episode(tmp_path):
    path = tmp_path / "straight.json"
    path.write_text(json.dumps(STRAIGHT))
    env = TileRaceEnv(map_file=str(path), reset_on_lap=True, enable_fps_limit=False)
    env.reset()

    events = []
    terminated = False
    reward = 0.0
    info = {}
    for _ in range(2000):
        # Drive onto the line, then back up over it
        action = _action(brake=1) if "started" in events else _action(accelerate=1)
        _, reward, terminated, truncated, info = env.step(action)
        events.extend(info["lap_events"])
        if terminated or truncated:
            break

    assert terminated
    assert events == ["started", "finished"]
    assert info["termination_reason"] == "lap_finished"
    assert info["lap_timing"]["lap_count"] == 1
    assert reward >= 99.0


def test_time_limit_truncates():
    env = TileRaceEnv(max_episode_time=0.1, enable_fps_limit=False)
    env.reset()
    truncated = False
    info = {}
    for _ in range(10):
        _, _, _, truncated, info = env.step(_action())
        if truncated:
            break
    assert truncated
    assert info["termination_reason"].startswith("truncated")


def test_bad_map_file_keeps_current_map(tmp_path):
    env = TileRaceEnv(enable_fps_limit=False)
    path = tmp_path / "ragged.json"
    path.write_text(json.dumps({"map": [[1, 1], [1]]}))
    env.reset(options={"map_file": str(path)})
    assert env.simulation.state.tile_map.width == 11
    assert env.map_file is None


def test_reset_option_loads_new_map(tmp_path):
    path = tmp_path / "straight.json"
    path.write_text(json.dumps(STRAIGHT))
    env = TileRaceEnv(enable_fps_limit=False)
    env.reset(options={"map_file": str(path)})
    assert env.simulation.state.tile_map.width == 10
    assert env.map_file == str(path)


def test_wall_hit_is_penalised():
    env = TileRaceEnv(enable_fps_limit=False)
    env.reset()
    # Built-in spawn faces left; the wall is at column 1
    blocked = False
    reward = 0.0
    for _ in range(400):
        _, reward, _, _, info = env.step(_action(accelerate=1))
        if info["blocked"]:
            blocked = True
            break
    assert blocked
    assert reward < 0


def test_unknown_spawn_tile_stays_inside_observation_space(tmp_path):
    path = tmp_path / "unknown.json"
    path.write_text(json.dumps({"map": [[9, 1, 1]], "spawn": [0, 0]}))
    env = TileRaceEnv(map_file=str(path), enable_fps_limit=False)
    obs, info = env.reset()
    assert info["tile_kind"] == "UNKNOWN"
    assert obs[5] == 0.0
    assert env.observation_space.contains(obs)


def test_debug_toggle_key_is_not_a_driving_key():
    driving = KEYS_ACCELERATE + KEYS_BRAKE + KEYS_TURN_LEFT + KEYS_TURN_RIGHT + (MAP_RELOAD_KEY, RESET_KEY)
    # pygame letter key codes are their lowercase ASCII values
    assert ord(DEBUG_TOGGLE_KEY) not in driving
