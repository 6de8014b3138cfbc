"""Registry of supervised streams."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from .models import StreamConfig, StreamSnapshot
from .process import check_ffmpeg
from .session import StreamSession
from .settings import Settings

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 10.0


class StreamExistsError(RuntimeError):
    """Raised when starting a stream whose id is still active."""


class StreamManager:
    """Manages multiple concurrent file to RTMP pushes."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """
        Initialize the stream manager.

        Args:
            settings: Runtime settings; defaults are used when omitted
        """
        self.settings = settings or Settings()
        self.policy = self.settings.policy()
        self._sessions: Dict[str, StreamSession] = {}
        self._lock = asyncio.Lock()

    async def start(self, stream_id: str, source: str, config: StreamConfig) -> str:
        """
        Start pushing ``source`` under the caller-chosen ``stream_id``.

        Failures after the spawn are not raised; they show up in ``status``.

        Args:
            stream_id: Identifier for the new stream
            source: Input file path or URL
            config: Stream configuration

        Returns:
            Stream ID
        """
        async with self._lock:
            existing = self._sessions.get(stream_id)
            if existing is not None and not existing.status.is_terminal:
                raise StreamExistsError(f"Stream {stream_id} is already {existing.status.value}")

            session = StreamSession(
                stream_id,
                source,
                config,
                policy=self.policy,
                ffmpeg_path=self.settings.ffmpeg_path,
                grace_period=self.settings.grace_period,
            )
            session.start()
            self._sessions[stream_id] = session

        logger.info("Started stream %s from %s to %s", stream_id, source, config.rtmp_url)
        return stream_id

    async def stop(self, stream_id: str) -> bool:
        """
        Stop a stream.

        Args:
            stream_id: Stream ID to stop

        Returns:
            True if a running or reconnecting stream was stopped
        """
        session = self._sessions.get(stream_id)
        if session is None:
            return False
        return session.stop()

    async def status(self, stream_id: str) -> StreamSnapshot:
        """Return a snapshot of a stream, ``not_found`` for unknown ids."""
        session = self._sessions.get(stream_id)
        if session is None:
            return StreamSnapshot.not_found(stream_id)
        return session.snapshot()

    async def list_streams(self) -> List[StreamSnapshot]:
        return [session.snapshot() for session in list(self._sessions.values())]

    async def stop_all(self) -> None:
        """Kill every active stream immediately. Used at shutdown."""
        sessions = list(self._sessions.items())
        for stream_id, session in sessions:
            if session.kill():
                logger.info("Shutdown: stopped stream %s", stream_id)

        closing = [session.wait_closed() for _, session in sessions]
        if not closing:
            return

        try:
            await asyncio.wait_for(
                asyncio.gather(*closing),
                timeout=SHUTDOWN_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.warning("Shutdown: some ffmpeg processes did not exit in %.0fs", SHUTDOWN_TIMEOUT)

    async def check_availability(self) -> bool:
        """Check that the configured ffmpeg executable can be invoked."""
        return await check_ffmpeg(self.settings.ffmpeg_path)
