#!/usr/bin/env python3
"""Drive the car with the keyboard.

Usage: python demo/keyboard_drive.py [map.json]
"""

import sys
import os
import logging
import pygame
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from tile_racer.tile_race_env import TileRaceEnv
from tile_racer.renderer import read_keyboard_intents
from tile_racer.constants import DEFAULT_LOG_LEVEL


def run_keyboard_demo():
    """Run interactive demo with held-key controls."""
    logging.basicConfig(level=DEFAULT_LOG_LEVEL)

    map_file = sys.argv[1] if len(sys.argv) > 1 else None

    env = TileRaceEnv(
        render_mode="human",
        map_file=map_file,
        enable_fps_limit=True
    )

    print("=== Tile Racer ===")
    print("Controls:")
    print("  UP / W      - Accelerate")
    print("  DOWN / S    - Brake / reverse")
    print("  LEFT / A    - Turn left")
    print("  RIGHT / D   - Turn right")
    print("  R           - Respawn")
    print("  L           - Reload map file")
    print("  C           - Toggle crosshair overlay")
    print("  ESC         - Quit")

    obs, info = env.reset()
    env.render()

    while True:
        if env.check_quit_requested():
            break

        intents = read_keyboard_intents()
        if pygame.key.get_pressed()[pygame.K_ESCAPE]:
            break

        obs, reward, terminated, truncated, info = env.step(list(intents.as_array()))
        env.render()

        if terminated or truncated:
            print(f"\nEpisode ended: {info['termination_reason']}")
            obs, info = env.reset()

    env.close()
    print("\nDemo ended.")


if __name__ == "__main__":
    run_keyboard_demo()
