"""file2rtmp: Push media files to RTMP endpoints with supervised ffmpeg processes."""

from .manager import StreamExistsError, StreamManager
from .models import StreamConfig, StreamSnapshot, StreamStatus
from .settings import Settings

__all__ = [
    "StreamManager",
    "StreamExistsError",
    "StreamConfig",
    "StreamSnapshot",
    "StreamStatus",
    "Settings",
]
