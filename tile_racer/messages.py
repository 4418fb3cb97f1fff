"""
Message sinks for lap and load notifications.

A sink is any callable taking (text, is_error). The simulation only emits;
display duration and fading belong to the sink.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from .constants import MESSAGE_DISPLAY_TIME, MESSAGE_FADE_TIME, MESSAGE_HISTORY_LIMIT

# Setup module logger
logger = logging.getLogger(__name__)

MessageSink = Callable[[str, bool], None]


class LoggingMessageSink:
    """Sink that writes messages to the log; errors at warning level"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def __call__(self, text: str, is_error: bool = False) -> None:
        if is_error:
            self.log.warning(text)
        else:
            self.log.info(text)


@dataclass(frozen=True)
class PostedMessage:
    text: str
    is_error: bool
    posted_at: float


class MessageBoard:
    """Holds the latest message for on-screen display and fades it out"""

    def __init__(self,
                 clock: Callable[[], float] = time.monotonic,
                 display_time: float = MESSAGE_DISPLAY_TIME,
                 fade_time: float = MESSAGE_FADE_TIME,
                 forward: Optional[MessageSink] = None,
                 history_limit: int = MESSAGE_HISTORY_LIMIT):
        self.clock = clock
        self.display_time = display_time
        self.fade_time = fade_time
        self.forward = forward
        self.history: Deque[PostedMessage] = deque(maxlen=history_limit)
        self._current: Optional[PostedMessage] = None

    def __call__(self, text: str, is_error: bool = False) -> None:
        self.post(text, is_error)

    def post(self, text: str, is_error: bool = False) -> None:
        message = PostedMessage(text, is_error, self.clock())
        self._current = message
        self.history.append(message)
        if self.forward is not None:
            self.forward(text, is_error)

    def current(self) -> Optional[PostedMessage]:
        """The visible message, None once it has fully faded"""
        if self._current is None:
            return None
        if self.clock() - self._current.posted_at >= self.display_time + self.fade_time:
            self._current = None
        return self._current

    def opacity(self) -> float:
        """1.0 while displayed, falling linearly to 0.0 across the fade"""
        message = self.current()
        if message is None:
            return 0.0
        age = self.clock() - message.posted_at
        if age <= self.display_time:
            return 1.0
        if self.fade_time <= 0:
            return 0.0
        return max(0.0, 1.0 - (age - self.display_time) / self.fade_time)

    def clear(self) -> None:
        self._current = None
