"""Extract progress markers from ffmpeg's diagnostic output."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Optional

TIME_PATTERN = re.compile(r"time=(\d{2}):(\d{2}):(\d{2})")


@dataclass(frozen=True)
class ProgressUpdate:
    """Latest elapsed-time marker found in a chunk of stderr."""

    time: str
    elapsed: int
    loop_count: Optional[int] = None


def parse_progress(chunk: str, clip_duration: Optional[float] = None) -> Optional[ProgressUpdate]:
    """
    Parse a chunk of ffmpeg stderr.

    ffmpeg rewrites its status line with carriage returns, so a chunk may hold
    several markers or none. The last one wins.

    Args:
        chunk: Decoded stderr text
        clip_duration: Length of the looped clip in seconds, if known

    Returns:
        ProgressUpdate or None if the chunk carries no time marker
    """
    matches = TIME_PATTERN.findall(chunk)
    if not matches:
        return None

    hours, minutes, seconds = (int(part) for part in matches[-1])
    elapsed = hours * 3600 + minutes * 60 + seconds

    loop_count = None
    if clip_duration and clip_duration > 0:
        loop_count = math.floor(elapsed / clip_duration) + 1

    return ProgressUpdate(
        time=f"{hours:02d}:{minutes:02d}:{seconds:02d}",
        elapsed=elapsed,
        loop_count=loop_count,
    )
