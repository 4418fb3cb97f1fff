import gymnasium as gym
from gymnasium import spaces
import numpy as np
from .vehicle import IntentSet, NO_INTENTS
from .constants import (
    NUM_INTENTS,
    NUM_DISCRETE_ACTIONS,
    OBSERVATION_SIZE,
    OBSERVATION_LOW,
    OBSERVATION_HIGH,
    INITIAL_ELAPSED_TIME,
    DEFAULT_RENDER_FPS,
    RENDER_MODE_HUMAN,
)


class BaseEnv(gym.Env):
    """Base environment for tile driving with held-intent or discrete action space"""
    metadata = {"render_modes": [RENDER_MODE_HUMAN], "render_fps": DEFAULT_RENDER_FPS}

    def __init__(self, discrete_action_space=False):
        super().__init__()

        self.discrete_action_space = discrete_action_space

        if discrete_action_space:
            # 0: do nothing, 1: accelerate, 2: brake, 3: turn left, 4: turn right
            self.action_space = spaces.Discrete(NUM_DISCRETE_ACTIONS)
        else:
            # [accelerate, brake, turn_left, turn_right], each held or not
            self.action_space = spaces.MultiBinary(NUM_INTENTS)

        # [pos_x, pos_y, sin(heading), cos(heading), speed, tile_kind, is_timing, current_lap_time]
        self.observation_space = spaces.Box(
            low=OBSERVATION_LOW,
            high=OBSERVATION_HIGH,
            shape=(OBSERVATION_SIZE,),
            dtype=np.float32
        )

        self.elapsed_time = INITIAL_ELAPSED_TIME
        self.last_intents = NO_INTENTS

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        self.elapsed_time = INITIAL_ELAPSED_TIME
        self.last_intents = NO_INTENTS

    def _action_to_intents(self, action) -> IntentSet:
        """Convert an action from either action space to an intent snapshot.

        Args:
            action: Discrete action (0-4) or 4-element binary array

        Returns:
            IntentSet for one tick
        """
        if self.discrete_action_space:
            return self._discrete_to_intents(int(action))

        accelerate, brake, turn_left, turn_right = (bool(v) for v in np.asarray(action).reshape(-1))
        return IntentSet(accelerate=accelerate, brake=brake, turn_left=turn_left, turn_right=turn_right)

    def _discrete_to_intents(self, action: int) -> IntentSet:
        if action == 0:
            return NO_INTENTS
        elif action == 1:
            return IntentSet(accelerate=True)
        elif action == 2:
            return IntentSet(brake=True)
        elif action == 3:
            return IntentSet(turn_left=True)
        elif action == 4:
            return IntentSet(turn_right=True)
        else:
            raise ValueError(f"Invalid discrete action: {action}")
