"""Supervision of one logical stream across ffmpeg restarts."""

from __future__ import annotations

import asyncio
import logging
import shlex
import time
from typing import Optional

from .ffmpeg_args import build_ffmpeg_args
from .models import StreamConfig, StreamSnapshot, StreamState, StreamStatus
from .policy import ReconnectAction, ReconnectPolicy
from .process import FFmpegProcess, ProcessExit
from .progress import parse_progress

logger = logging.getLogger(__name__)

GRACE_PERIOD = 5.0


class StreamSession:
    """
    Owns the state of a single stream and drives its state machine.

    Every transition runs as a callback on the event loop (process exit,
    reconnect timer, stop request), so transitions for one stream never
    overlap.
    """

    def __init__(
        self,
        stream_id: str,
        source: str,
        config: StreamConfig,
        *,
        policy: Optional[ReconnectPolicy] = None,
        ffmpeg_path: str = "ffmpeg",
        grace_period: float = GRACE_PERIOD,
    ) -> None:
        self.id = stream_id
        self.policy = policy or ReconnectPolicy()
        self.ffmpeg_path = ffmpeg_path
        self.grace_period = grace_period
        self.state = StreamState(id=stream_id, source=source, config=config)

        self._kill_timer: Optional[asyncio.TimerHandle] = None

    @property
    def status(self) -> StreamStatus:
        return self.state.status

    def start(self) -> None:
        """Launch the first attempt."""
        if self.state.process is not None:
            raise RuntimeError(f"Stream {self.id} was already started")
        self.state.started_at = time.time()
        self._launch()

    def stop(self) -> bool:
        """
        Stop the stream gracefully.

        Returns:
            True if the stream was active and is now stopped
        """
        if self.state.status not in (StreamStatus.RUNNING, StreamStatus.RECONNECTING):
            return False

        self.state.status = StreamStatus.STOPPED
        self._cancel_reconnect()
        logger.info("Stream %s stopped", self.id)

        process = self.state.process
        if process is not None and process.interrupt():
            self._kill_timer = asyncio.get_running_loop().call_later(
                self.grace_period, self._force_kill, process
            )
        return True

    def kill(self) -> bool:
        """
        Stop the stream without waiting for ffmpeg to wind down.

        A process still inside the grace period of an earlier ``stop`` is
        killed as well.

        Returns:
            True if the stream was active and is now stopped
        """
        active = self.state.status in (StreamStatus.RUNNING, StreamStatus.RECONNECTING)
        if active:
            self.state.status = StreamStatus.STOPPED
            self._cancel_reconnect()
            logger.info("Stream %s killed", self.id)

        if self.state.process is not None:
            self.state.process.kill()
        return active

    async def wait_closed(self) -> None:
        """Wait until the current ffmpeg process (if any) has exited."""
        if self.state.process is not None:
            await self.state.process.wait()

    def snapshot(self) -> StreamSnapshot:
        state = self.state
        reconnecting = state.status == StreamStatus.RECONNECTING
        return StreamSnapshot(
            stream_id=self.id,
            # Polling clients only know running/stopped/completed/error.
            status=StreamStatus.RUNNING.value if reconnecting else state.status.value,
            reconnecting=reconnecting,
            reconnect_attempt=state.reconnect_attempts,
            stats={"time": state.stats.time, "loop_count": state.stats.loop_count},
            started_at=state.started_at,
            error=state.last_error,
        )

    def _launch(self) -> None:
        state = self.state
        args = build_ffmpeg_args(state.source, state.config)
        process = FFmpegProcess(
            args,
            on_output=self._on_output,
            on_exit=self._on_exit,
            executable=self.ffmpeg_path,
            name=self.id,
        )

        state.process = process
        state.status = StreamStatus.RUNNING
        state.launches += 1
        logger.info(
            "Stream %s starting ffmpeg (attempt %d): %s",
            self.id,
            state.reconnect_attempts + 1,
            shlex.join(process.command),
        )
        process.start()

    def _on_output(self, chunk: str) -> None:
        state = self.state
        update = parse_progress(chunk, state.config.clip_duration)
        if update is None:
            return

        state.stats.time = update.time
        if update.loop_count is not None:
            state.stats.loop_count = update.loop_count

        if state.status == StreamStatus.RUNNING and state.reconnect_attempts:
            logger.info("Stream %s is making progress again, resetting reconnect attempts", self.id)
            state.reconnect_attempts = 0
        logger.debug("Stream %s progress %s (loop %d)", self.id, update.time, state.stats.loop_count)

    def _on_exit(self, process: FFmpegProcess, result: ProcessExit) -> None:
        state = self.state
        if process is not state.process:
            logger.debug("Ignoring exit of superseded ffmpeg for stream %s", self.id)
            return

        if self._kill_timer is not None:
            self._kill_timer.cancel()
            self._kill_timer = None

        logger.info("Stream %s ffmpeg exited with code %s", self.id, result.returncode)

        if state.status != StreamStatus.RUNNING:
            return

        action = self.policy.decide(state.reconnect_attempts, result)
        if action is ReconnectAction.COMPLETE:
            state.status = StreamStatus.COMPLETED
            logger.info("Stream %s completed", self.id)
            return

        state.last_error = result.reason
        if action is ReconnectAction.RETRY:
            state.reconnect_attempts += 1
            state.status = StreamStatus.RECONNECTING
            logger.warning(
                "Stream %s failed (%s), reconnecting in %.1fs (attempt %d/%d)",
                self.id,
                state.last_error,
                self.policy.delay,
                state.reconnect_attempts,
                self.policy.max_attempts,
            )
            state.reconnect_timer = asyncio.get_running_loop().call_later(
                self.policy.delay, self._fire_reconnect
            )
        else:
            state.status = StreamStatus.ERROR
            logger.error(
                "Stream %s gave up after %d reconnect attempts: %s",
                self.id,
                state.reconnect_attempts,
                state.last_error,
            )

    def _fire_reconnect(self) -> None:
        self.state.reconnect_timer = None
        if self.state.status != StreamStatus.RECONNECTING:
            return
        self._launch()

    def _cancel_reconnect(self) -> None:
        if self.state.reconnect_timer is not None:
            self.state.reconnect_timer.cancel()
            self.state.reconnect_timer = None

    def _force_kill(self, process: FFmpegProcess) -> None:
        self._kill_timer = None
        if process.kill():
            logger.warning(
                "Stream %s ffmpeg ignored SIGINT for %.1fs, killed", self.id, self.grace_period
            )
