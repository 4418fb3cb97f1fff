"""
Random action demonstration.

This demo drives the car with random held intents.
"""

import sys
import os
import logging
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from tile_racer.tile_race_env import TileRaceEnv
from tile_racer.constants import DEFAULT_LOG_LEVEL


def main():
    logging.basicConfig(level=DEFAULT_LOG_LEVEL)
    print("=" * 50)

    env = TileRaceEnv(render_mode="human",
                      map_file="maps/loop.json",
                      reset_on_lap=True,
                      enable_fps_limit=True)

    print("Action space:", env.action_space)

    try:
        obs, info = env.reset()
        print("\nRunning simulation with random intents...")
        total_reward = 0.0

        for step in range(100000):
            if env.check_quit_requested():
                print(f"   User requested quit at step {step}")
                break

            action = env.action_space.sample()

            obs, reward, terminated, truncated, info = env.step(action)
            total_reward += reward

            env.render()

            if terminated or truncated:
                print(f"   Episode ended at step {step} ({info['termination_reason']}), total reward: {total_reward:.2f}")
                print(f"   Laps: {info['lap_timing']['lap_count']}, best: {info['lap_timing']['formatted_best']}")
                obs, info = env.reset()
                total_reward = 0.0

    finally:
        env.close()
        print("Environment closed")


if __name__ == "__main__":
    main()
