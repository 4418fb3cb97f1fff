"""
Lap timing system driven by start/finish tile crossings.

This module provides lap timing functionality including:
- Edge-triggered detection of trigger-tile entry
- Shared toggling line and separate start/finish line policies
- Current lap time, last and best lap time, lap count
- Time formatting for display
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .constants import LAP_MESSAGE_STARTED, LAP_MESSAGE_FINISHED
from .start_finish import StartFinishRegistry, TriggerPolicy

# Setup module logger
logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class LapState(Enum):
    IDLE = "idle"  # No lap in progress and the car has not left the line since reset/finish
    ARMED = "armed"  # No lap in progress, next trigger entry starts one
    RUNNING = "running"  # Lap in progress


class LapEventType(Enum):
    STARTED = "started"
    FINISHED = "finished"


@dataclass(frozen=True)
class LapEvent:
    event_type: LapEventType
    timestamp: float
    duration: Optional[float] = None  # Seconds, set for FINISHED

    @property
    def message(self) -> str:
        if self.event_type == LapEventType.STARTED:
            return LAP_MESSAGE_STARTED
        return LAP_MESSAGE_FINISHED.format(duration=self.duration)


@dataclass(frozen=True)
class LapTimerState:
    """Read-only snapshot of the timer for renderers and observers"""
    state: LapState
    start_instant: Optional[float]
    last_lap_duration: Optional[float]
    best_lap_duration: Optional[float]
    lap_count: int
    current_elapsed: float


class LapTimer:
    """Manages lap timing from trigger-tile transitions"""

    def __init__(self,
                 registry: StartFinishRegistry,
                 clock: Clock = time.monotonic,
                 rearm_after_finish: Optional[bool] = None):
        """
        Initialize lap timer.

        Args:
            registry: Trigger tiles and policy
            clock: Timestamp source in seconds, read only when a lap starts or finishes
                and when elapsed time is queried
            rearm_after_finish: Whether a finished lap may be followed by another start.
                Defaults to True for the shared line and False for separate lines.
        """
        self.registry = registry
        self.clock = clock
        if rearm_after_finish is None:
            rearm_after_finish = registry.policy == TriggerPolicy.SHARED_TOGGLING
        self.rearm_after_finish = rearm_after_finish

        self.state = LapState.IDLE
        self.start_instant: Optional[float] = None
        self.last_lap_duration: Optional[float] = None
        self.best_lap_duration: Optional[float] = None
        self.lap_count = 0

        self._was_on_start = False
        self._was_on_finish = False
        self._session_complete = False

    def prime(self, tile: Tuple[int, int]) -> None:
        """Record trigger membership of the spawn tile so spawning on a line does not fire"""
        self._was_on_start = self.registry.is_start(tile)
        self._was_on_finish = self.registry.is_finish(tile)
        self._update_armed(self._was_on_start or self._was_on_finish)

    def update(self, tile: Tuple[int, int]) -> List[LapEvent]:
        """
        Advance the timer for one tick.

        Args:
            tile: Tile the vehicle occupies after this tick's movement

        Returns:
            Events fired this tick, empty when nothing changed
        """
        on_start = self.registry.is_start(tile)
        on_finish = self.registry.is_finish(tile)
        entered_start = on_start and not self._was_on_start
        entered_finish = on_finish and not self._was_on_finish
        self._was_on_start = on_start
        self._was_on_finish = on_finish

        events: List[LapEvent] = []

        if self.registry.policy == TriggerPolicy.SHARED_TOGGLING:
            if entered_start:
                if self.state == LapState.RUNNING:
                    events.append(self._finish_lap())
                elif not self._session_complete:
                    events.append(self._start_lap())
        else:
            if self.state == LapState.RUNNING:
                # Re-entering a start tile mid-lap is ignored
                if entered_finish:
                    events.append(self._finish_lap())
            elif entered_start and not self._session_complete:
                events.append(self._start_lap())

        self._update_armed(on_start or on_finish)
        return events

    def _update_armed(self, on_trigger: bool) -> None:
        if self.state == LapState.IDLE and not on_trigger and not self._session_complete:
            self.state = LapState.ARMED

    def _start_lap(self) -> LapEvent:
        now = self.clock()
        self.start_instant = now
        self.state = LapState.RUNNING
        logger.debug(f"Lap started at {now:.3f}")
        return LapEvent(LapEventType.STARTED, now)

    def _finish_lap(self) -> LapEvent:
        now = self.clock()
        duration = now - self.start_instant
        self.last_lap_duration = duration
        if self.best_lap_duration is None or duration < self.best_lap_duration:
            self.best_lap_duration = duration
        self.lap_count += 1

        self.start_instant = None
        self.state = LapState.IDLE
        if not self.rearm_after_finish:
            self._session_complete = True

        logger.debug(f"Lap {self.lap_count} finished in {duration:.3f}s")
        return LapEvent(LapEventType.FINISHED, now, duration)

    def reset(self) -> None:
        """Reset lap timer to initial state"""
        self.state = LapState.IDLE
        self.start_instant = None
        self.last_lap_duration = None
        self.best_lap_duration = None
        self.lap_count = 0
        self._was_on_start = False
        self._was_on_finish = False
        self._session_complete = False

    def is_timing(self) -> bool:
        return self.state == LapState.RUNNING

    def current_elapsed(self) -> float:
        """Seconds since the lap started, zero when no lap is running"""
        if self.state != LapState.RUNNING or self.start_instant is None:
            return 0.0
        return self.clock() - self.start_instant

    def snapshot(self) -> LapTimerState:
        return LapTimerState(
            state=self.state,
            start_instant=self.start_instant,
            last_lap_duration=self.last_lap_duration,
            best_lap_duration=self.best_lap_duration,
            lap_count=self.lap_count,
            current_elapsed=self.current_elapsed(),
        )

    @staticmethod
    def format_time(time_seconds: Optional[float]) -> str:
        """
        Format time in seconds to MM:SS.mmm display format.

        Args:
            time_seconds: Time in seconds, None for no time

        Returns:
            Formatted time string, "--:--.---" if None or negative
        """
        if time_seconds is None or time_seconds < 0:
            return "--:--.---"

        total_milliseconds = int(round(time_seconds * 1000))
        minutes, remainder = divmod(total_milliseconds, 60000)
        seconds, milliseconds = divmod(remainder, 1000)

        return f"{minutes:2d}:{seconds:02d}.{milliseconds:03d}"

    def get_timing_info(self) -> dict:
        """Timing information for display and logging"""
        elapsed = self.current_elapsed()
        return {
            "state": self.state.value,
            "current_lap_time": elapsed,
            "last_lap_time": self.last_lap_duration,
            "best_lap_time": self.best_lap_duration,
            "lap_count": self.lap_count,
            "is_timing": self.is_timing(),
            "formatted_current": self.format_time(elapsed if self.is_timing() else None),
            "formatted_last": self.format_time(self.last_lap_duration),
            "formatted_best": self.format_time(self.best_lap_duration),
        }

    def __str__(self) -> str:
        info = self.get_timing_info()
        return (f"LapTimer: Current: {info['formatted_current']}, "
                f"Last: {info['formatted_last']}, "
                f"Best: {info['formatted_best']}, "
                f"Laps: {self.lap_count}")
