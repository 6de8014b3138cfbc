"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .policy import MAX_RECONNECT_ATTEMPTS, RECONNECT_DELAY, ReconnectPolicy
from .session import GRACE_PERIOD


@dataclass
class Settings:
    ffmpeg_path: str = "ffmpeg"
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    reconnect_delay: float = RECONNECT_DELAY
    grace_period: float = GRACE_PERIOD
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            ffmpeg_path=os.getenv("FILE2RTMP_FFMPEG_PATH", "ffmpeg"),
            max_reconnect_attempts=int(
                os.getenv("FILE2RTMP_MAX_RECONNECT_ATTEMPTS", str(MAX_RECONNECT_ATTEMPTS))
            ),
            reconnect_delay=float(os.getenv("FILE2RTMP_RECONNECT_DELAY", str(RECONNECT_DELAY))),
            grace_period=float(os.getenv("FILE2RTMP_GRACE_PERIOD", str(GRACE_PERIOD))),
            host=os.getenv("FILE2RTMP_HOST", "0.0.0.0"),
            port=int(os.getenv("FILE2RTMP_PORT", "8000")),
            log_level=os.getenv("FILE2RTMP_LOG_LEVEL", "INFO").upper(),
        )

    def policy(self) -> ReconnectPolicy:
        return ReconnectPolicy(max_attempts=self.max_reconnect_attempts, delay=self.reconnect_delay)
