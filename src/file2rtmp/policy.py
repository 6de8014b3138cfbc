"""Reconnect decisions for failed ffmpeg attempts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .process import ProcessExit

MAX_RECONNECT_ATTEMPTS = 10
RECONNECT_DELAY = 5.0


class ReconnectAction(str, Enum):
    COMPLETE = "complete"
    RETRY = "retry"
    GIVE_UP = "give_up"


@dataclass(frozen=True)
class ReconnectPolicy:
    """
    Constant-delay retry bounded by consecutive failures.

    The attempt counter is owned by the caller, which resets it whenever the
    stream makes progress, so only an unbroken run of failures exhausts it.
    """

    max_attempts: int = MAX_RECONNECT_ATTEMPTS
    delay: float = RECONNECT_DELAY

    def decide(self, attempts: int, result: ProcessExit) -> ReconnectAction:
        if result.succeeded:
            return ReconnectAction.COMPLETE
        if attempts < self.max_attempts:
            return ReconnectAction.RETRY
        return ReconnectAction.GIVE_UP
