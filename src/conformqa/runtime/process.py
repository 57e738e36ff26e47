"""Spawned child processes and their line-event channels.

Each ProcessHandle owns one pump task per output stream. The pumps push
LineEvent values into a single FIFO queue, so lines from the same stream
keep their arrival order while stdout and stderr interleave freely.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from conformqa.errors import ErrorContext, RuntimeNotFoundError

logger = logging.getLogger(__name__)

# Docker build output can carry very long single lines (base64 layers, JSON).
STREAM_LIMIT = 1024 * 1024

STDOUT = "stdout"
STDERR = "stderr"


@dataclass(frozen=True)
class LineEvent:
    """One line of output from a child process."""

    source: str
    channel: str
    text: str

    @property
    def is_error(self) -> bool:
        return self.channel == STDERR


class ProcessHandle:
    """A running external process (image build or container run).

    Attributes:
        tag: Identity used to label the process's log lines.
        argv: The command line the process was started with.
    """

    def __init__(self, process: asyncio.subprocess.Process, tag: str, argv: list[str]) -> None:
        self.process = process
        self.tag = tag
        self.argv = list(argv)
        self._events: asyncio.Queue[LineEvent | None] = asyncio.Queue()
        self._terminate_requested = False
        self._pumps: list[asyncio.Task[None]] = []
        for stream, channel in ((process.stdout, STDOUT), (process.stderr, STDERR)):
            if stream is not None:
                self._pumps.append(asyncio.create_task(self._pump(stream, channel)))

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        """Exit status, or None while the process is still running."""
        return self.process.returncode

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self.process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self.process.stderr

    @property
    def terminate_requested(self) -> bool:
        return self._terminate_requested

    async def _pump(self, stream: asyncio.StreamReader, channel: str) -> None:
        try:
            while True:
                try:
                    raw = await stream.readline()
                except ValueError:
                    logger.warning(f"{self.tag}: dropped an over-long {channel} line")
                    continue
                if not raw:
                    break
                text = raw.decode("utf-8", errors="replace")
                self._events.put_nowait(LineEvent(self.tag, channel, text))
        finally:
            self._events.put_nowait(None)

    async def events(self) -> AsyncIterator[LineEvent]:
        """Yield output lines until both streams reach EOF."""
        open_channels = len(self._pumps)
        while open_channels:
            event = await self._events.get()
            if event is None:
                open_channels -= 1
                continue
            yield event

    async def wait(self) -> int:
        """Wait for the process to exit and return its exit status."""
        return await self.process.wait()

    def terminate(self) -> bool:
        """Ask the process to terminate without waiting for it.

        Idempotent: only the first call sends a signal. Returns True if this
        call delivered the request.
        """
        if self._terminate_requested:
            return False
        self._terminate_requested = True

        if self.process.returncode is not None:
            return False
        try:
            self.process.terminate()
        except ProcessLookupError:
            return False
        logger.debug(f"Sent terminate to {self.tag} (pid {self.pid})")
        return True

    def __repr__(self) -> str:
        return f"ProcessHandle(tag={self.tag!r}, pid={self.pid}, returncode={self.returncode})"


class Spawner(Protocol):
    """Callable that starts a process and hands it to ``adopt`` on creation."""

    def __call__(
        self,
        argv: list[str],
        *,
        tag: str,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        adopt: Callable[[ProcessHandle], None] | None = None,
    ) -> Awaitable[ProcessHandle]: ...


async def spawn_process(
    argv: list[str],
    *,
    tag: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    adopt: Callable[[ProcessHandle], None] | None = None,
) -> ProcessHandle:
    """Start ``argv`` with piped output and wrap it in a ProcessHandle.

    ``adopt`` runs from the creation future's done callback, i.e. as soon as
    the child exists and before the awaiting coroutine resumes. The creation
    itself is shielded, so a cancellation that lands mid-spawn still hands
    the new child to ``adopt`` (which terminates it if cleanup already ran).

    Raises:
        RuntimeNotFoundError: If the executable does not exist.
    """
    creation = asyncio.ensure_future(
        asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            limit=STREAM_LIMIT,
        )
    )
    created: list[ProcessHandle] = []

    def _on_created(future: asyncio.Future[asyncio.subprocess.Process]) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        handle = ProcessHandle(future.result(), tag, argv)
        created.append(handle)
        if adopt is not None:
            adopt(handle)

    # Registered before shield() so it runs ahead of the waiter's wake-up.
    creation.add_done_callback(_on_created)

    try:
        await asyncio.shield(creation)
    except FileNotFoundError as e:
        raise RuntimeNotFoundError(
            message=f"Executable not found: {argv[0]}",
            context=ErrorContext(source=tag, command=list(argv)),
            cause=e,
        ) from e

    logger.debug(f"Spawned {tag}: {' '.join(argv)} (pid {created[0].pid})")
    return created[0]
