"""
Start/finish trigger tiles and the policy that decides how they time a lap.
"""

from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

Coordinate = Tuple[int, int]


class TriggerPolicy(Enum):
    SHARED_TOGGLING = "shared_toggling"  # One line: first entry starts, next entry finishes
    SEPARATE_START_FINISH = "separate_start_finish"  # Start line starts, finish line finishes


class StartFinishRegistry:
    """Set lookup of trigger tiles tagged Start and/or Finish"""

    def __init__(self,
                 start_tiles: Iterable[Coordinate] = (),
                 finish_tiles: Iterable[Coordinate] = (),
                 policy: TriggerPolicy = TriggerPolicy.SHARED_TOGGLING):
        """
        Initialize registry.

        Args:
            start_tiles: Coordinates tagged Start
            finish_tiles: Coordinates tagged Finish
            policy: How the tagged tiles drive the lap timer. Under SHARED_TOGGLING
                start and finish tiles are merged into one trigger set.
        """
        self.policy = policy
        self._start: FrozenSet[Coordinate] = frozenset(tuple(t) for t in start_tiles)
        self._finish: FrozenSet[Coordinate] = frozenset(tuple(t) for t in finish_tiles)
        if policy == TriggerPolicy.SHARED_TOGGLING:
            merged = self._start | self._finish
            self._start = merged
            self._finish = merged

    @property
    def start_tiles(self) -> FrozenSet[Coordinate]:
        return self._start

    @property
    def finish_tiles(self) -> FrozenSet[Coordinate]:
        return self._finish

    @property
    def trigger_tiles(self) -> FrozenSet[Coordinate]:
        return self._start | self._finish

    def is_start(self, tile: Coordinate) -> bool:
        return tile in self._start

    def is_finish(self, tile: Coordinate) -> bool:
        return tile in self._finish

    def is_trigger(self, tile: Coordinate) -> bool:
        return tile in self._start or tile in self._finish

    @classmethod
    def for_map(cls,
                start_tiles: Iterable[Coordinate],
                finish_tiles: Iterable[Coordinate],
                has_finish_line: bool,
                policy_override: Optional[TriggerPolicy] = None) -> "StartFinishRegistry":
        """Registry for a loaded map; a map with its own finish line uses separate start/finish"""
        if policy_override is not None:
            policy = policy_override
        elif has_finish_line:
            policy = TriggerPolicy.SEPARATE_START_FINISH
        else:
            policy = TriggerPolicy.SHARED_TOGGLING
        return cls(start_tiles, finish_tiles, policy)

    def __repr__(self) -> str:
        return (f"StartFinishRegistry(policy={self.policy.value}, "
                f"start={sorted(self._start)}, finish={sorted(self._finish)})")
