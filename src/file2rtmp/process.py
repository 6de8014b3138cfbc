"""Launch and monitor a single ffmpeg invocation."""

from __future__ import annotations

import asyncio
import logging
import signal
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Sequence

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


@dataclass
class ProcessExit:
    """Terminal event of one spawn attempt."""

    returncode: Optional[int]
    error: Optional[str] = None
    stderr_tail: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.returncode == 0

    @property
    def reason(self) -> Optional[str]:
        """Short human-readable description of a failure."""
        if self.error:
            return self.error
        if self.returncode == 0:
            return None
        if self.stderr_tail:
            return self.stderr_tail[-1]
        return f"ffmpeg exited with code {self.returncode}"


async def check_ffmpeg(executable: str = "ffmpeg") -> bool:
    """Return True if ``executable -version`` runs and exits cleanly."""
    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            "-version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        logger.warning("ffmpeg is not invocable at %r: %s", executable, exc)
        return False

    returncode = await process.wait()
    if returncode != 0:
        logger.warning("%r -version exited with code %s", executable, returncode)
    return returncode == 0


class FFmpegProcess:
    """
    One ffmpeg run.

    A background task spawns the process, forwards every stderr chunk to
    ``on_output`` and finally reports a single ``ProcessExit`` through
    ``on_exit``. Termination is requested explicitly with ``interrupt`` or
    ``kill``; this class never escalates on its own.
    """

    def __init__(
        self,
        args: Sequence[str],
        *,
        on_output: Callable[[str], None],
        on_exit: Callable[["FFmpegProcess", ProcessExit], None],
        executable: str = "ffmpeg",
        name: str = "ffmpeg",
        tail_size: int = 10,
    ) -> None:
        self.args = list(args)
        self.executable = executable
        self.name = name
        self.result: Optional[ProcessExit] = None

        self._on_output = on_output
        self._on_exit = on_exit
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._task: Optional[asyncio.Task] = None
        self._pending_signal: Optional[int] = None
        self._tail: Deque[str] = deque(maxlen=tail_size)

    @property
    def command(self) -> List[str]:
        return [self.executable, *self.args]

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc else None

    @property
    def finished(self) -> bool:
        return self.result is not None

    def start(self) -> None:
        """Spawn in the background. Must be called from a running event loop."""
        if self._task is not None:
            raise RuntimeError(f"{self.name} was already started")
        self._task = asyncio.create_task(self._run(), name=f"ffmpeg-{self.name}")

    async def wait(self) -> Optional[ProcessExit]:
        """Wait until the exit has been reported."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.result

    def interrupt(self) -> bool:
        """Ask ffmpeg to finish gracefully (SIGINT)."""
        return self._signal(signal.SIGINT)

    def kill(self) -> bool:
        """Terminate ffmpeg immediately (SIGKILL)."""
        return self._signal(signal.SIGKILL)

    def _signal(self, sig: int) -> bool:
        if self.finished:
            return False

        if self._proc is None:
            # Spawn still in flight; delivered as soon as the pid exists.
            if self._pending_signal != signal.SIGKILL:
                self._pending_signal = sig
            return True

        try:
            self._proc.send_signal(sig)
        except ProcessLookupError:
            return False
        logger.debug("Sent %s to %s (pid %s)", signal.Signals(sig).name, self.name, self._proc.pid)
        return True

    async def _run(self) -> None:
        try:
            self._proc = await asyncio.create_subprocess_exec(
                self.executable,
                *self.args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error("Failed to spawn %s for %s: %s", self.executable, self.name, exc)
            self._finish(ProcessExit(returncode=None, error=f"Failed to spawn {self.executable}: {exc}"))
            return

        if self._pending_signal is not None:
            self._signal(self._pending_signal)

        await self._pump_stderr()
        returncode = await self._proc.wait()
        self._finish(ProcessExit(returncode=returncode, stderr_tail=list(self._tail)))

    async def _pump_stderr(self) -> None:
        stream = self._proc.stderr if self._proc else None
        if stream is None:
            return

        while True:
            data = await stream.read(READ_CHUNK_SIZE)
            if not data:
                break
            text = data.decode(errors="ignore")
            self._remember(text)
            self._on_output(text)

    def _remember(self, text: str) -> None:
        for line in text.replace("\r", "\n").split("\n"):
            line = line.strip()
            if line:
                self._tail.append(line)

    def _finish(self, result: ProcessExit) -> None:
        if self.result is not None:
            return
        self.result = result
        self._on_exit(self, result)
