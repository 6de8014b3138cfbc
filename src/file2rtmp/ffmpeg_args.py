"""Translate a stream configuration into an ffmpeg argument list."""

from __future__ import annotations

from typing import List, Union

from .models import StreamConfig

DEFAULT_BITRATE_KBPS = 4500

RESOLUTIONS = {
    "1080p": "1920:1080",
    "720p": "1280:720",
    "480p": "854:480",
}

ASPECT_RATIOS = {
    "16:9": "16/9",
    "9:16": "9/16",
    "1:1": "1/1",
    "4:3": "4/3",
}


def _fmt(value: Union[int, float, str]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _video_filters(config: StreamConfig) -> List[str]:
    filters = []

    if config.resolution and config.resolution != "source":
        scale = RESOLUTIONS.get(config.resolution)
        if scale:
            filters.append(f"scale={scale}")

    if config.aspect_ratio and config.aspect_ratio != "source":
        ratio = ASPECT_RATIOS.get(config.aspect_ratio)
        if ratio:
            filters.append(f"setdar={ratio}")

    return filters


def build_ffmpeg_args(source: str, config: StreamConfig) -> List[str]:
    """
    Build the ffmpeg arguments that push ``source`` to ``config.destination``.

    The executable itself is not part of the result.

    Args:
        source: Path or URL of the input media
        config: Stream configuration

    Returns:
        Ordered argument list
    """
    args = ["-re"]

    if config.loop or config.loop_count == -1:
        args += ["-stream_loop", "-1"]
    elif config.loop_count > 1:
        args += ["-stream_loop", str(config.loop_count - 1)]

    if config.start_time and config.start_time > 0:
        args += ["-ss", _fmt(config.start_time)]

    # An input-side -t caps the total bytes read, which defeats -stream_loop.
    clip = config.clip_duration
    if clip is not None and not config.is_looping:
        args += ["-t", _fmt(clip)]

    args += ["-i", source]

    args += ["-c:v", "libx264", "-preset", "veryfast", "-tune", "zerolatency"]

    filters = _video_filters(config)
    if filters:
        args += ["-vf", ",".join(filters)]

    if config.frame_rate and config.frame_rate != "source":
        args += ["-r", _fmt(config.frame_rate)]

    if config.bitrate and config.bitrate != "auto":
        bitrate = _fmt(config.bitrate)
        bufsize = round(float(config.bitrate) * 2)
    else:
        bitrate = str(DEFAULT_BITRATE_KBPS)
        bufsize = DEFAULT_BITRATE_KBPS * 2
    args += ["-b:v", f"{bitrate}k", "-maxrate", f"{bitrate}k", "-bufsize", f"{bufsize}k"]

    args += ["-c:a", "aac", "-b:a", "128k", "-ar", "44100"]

    if config.duration and config.duration > 0:
        args += ["-t", _fmt(config.duration * 60)]

    args += ["-f", "flv", config.destination]
    return args
