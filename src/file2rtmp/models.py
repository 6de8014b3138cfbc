"""Dataclasses and enums for file2rtmp runtime."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

if TYPE_CHECKING:
    import asyncio

    from .process import FFmpegProcess


class StreamStatus(str, Enum):
    """Lifecycle status of a supervised stream."""

    RUNNING = "running"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamStatus.STOPPED, StreamStatus.COMPLETED, StreamStatus.ERROR)


NOT_FOUND = "not_found"


def _check_number_or_keyword(name: str, value: Any, keyword: str) -> None:
    if value is None or value == keyword:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"{name} must be a positive number or '{keyword}'")


@dataclass(frozen=True)
class StreamConfig:
    """Configuration for a push of one source file to an RTMP endpoint."""

    rtmp_url: str
    stream_key: Optional[str] = None
    loop: bool = False
    loop_count: int = 0
    start_time: float = 0.0
    end_time: Optional[float] = None
    duration: Optional[float] = None
    resolution: str = "source"
    aspect_ratio: str = "source"
    frame_rate: Union[float, str, None] = "source"
    bitrate: Union[int, float, str, None] = "auto"

    def __post_init__(self) -> None:
        if not self.rtmp_url:
            raise ValueError("rtmp_url is required")
        _check_number_or_keyword("bitrate", self.bitrate, "auto")
        _check_number_or_keyword("frame_rate", self.frame_rate, "source")

    @property
    def is_looping(self) -> bool:
        return self.loop or self.loop_count == -1 or self.loop_count > 1

    @property
    def clip_duration(self) -> Optional[float]:
        """Length of the [start_time, end_time) window, if one is configured."""
        if self.end_time and self.start_time is not None and self.end_time > self.start_time:
            return self.end_time - self.start_time
        return None

    @property
    def destination(self) -> str:
        if self.stream_key:
            base = self.rtmp_url[:-1] if self.rtmp_url.endswith("/") else self.rtmp_url
            return f"{base}/{self.stream_key}"
        return self.rtmp_url


@dataclass
class StreamStats:
    """Progress observed from the encoder's diagnostic output."""

    time: str = "00:00:00"
    loop_count: int = 1


@dataclass
class StreamState:
    """Mutable state of one logical stream across process restarts."""

    id: str
    source: str
    config: StreamConfig
    status: StreamStatus = StreamStatus.RUNNING
    process: Optional["FFmpegProcess"] = None
    started_at: Optional[float] = None
    reconnect_attempts: int = 0
    reconnect_timer: Optional["asyncio.TimerHandle"] = None
    stats: StreamStats = field(default_factory=StreamStats)
    last_error: Optional[str] = None
    launches: int = 0


@dataclass
class StreamSnapshot:
    """Point-in-time view of a stream as reported to callers."""

    stream_id: str
    status: str
    reconnecting: bool = False
    reconnect_attempt: int = 0
    stats: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[float] = None
    error: Optional[str] = None

    @classmethod
    def not_found(cls, stream_id: str) -> "StreamSnapshot":
        return cls(stream_id=stream_id, status=NOT_FOUND)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
