"""Log Multiplexer - one labelled, colour-coded stream for every process."""

from __future__ import annotations

import asyncio
import logging

from rich.console import Console
from rich.markup import escape

from conformqa.runtime.process import LineEvent, ProcessHandle

logger = logging.getLogger(__name__)

HELPER_TAG = "helper"
RUNNER_TAG = "test-runner"

TAG_STYLES: dict[str, str] = {
    "docker-build": "blue",
    "echo-server": "magenta",
    "test-runner": "green",
    "helper": "grey50",
}
DEFAULT_STYLE = "cyan"
ERROR_STYLE = "red"


class LogMultiplexer:
    """Renders output lines as ``[tag] text``.

    Lines are trimmed and blank lines are dropped. Text is escaped before
    it reaches rich, so a service printing ``[bold]`` prints it literally.

    Example::

        mux = LogMultiplexer()
        mux.emit("docker-build", "Running Docker Build...")
        mux.attach(build_handle)
        await mux.drain()

    Args:
        console: Console to print on (default: a new stdout console).
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)
        self._consumers: list[asyncio.Task[None]] = []

    @staticmethod
    def style_for(tag: str) -> str:
        return TAG_STYLES.get(tag, DEFAULT_STYLE)

    def format_line(self, tag: str, text: str, error: bool = False) -> str | None:
        """Return the rich markup for one line, or None if it is blank."""
        text = text.strip()
        if not text:
            return None
        label = f"[{self.style_for(tag)}]{escape(f'[{tag}]')}[/]"
        body = f"[{ERROR_STYLE}]{escape(text)}[/]" if error else escape(text)
        return f"{label} {body}"

    def emit(self, tag: str, text: str, error: bool = False) -> None:
        """Print one labelled line. Multi-line text is split per line."""
        for part in text.splitlines() or [text]:
            line = self.format_line(tag, part, error=error)
            if line is not None:
                self.console.print(line, soft_wrap=True)

    def emit_event(self, event: LineEvent) -> None:
        self.emit(event.source, event.text, error=event.is_error)

    def attach(self, handle: ProcessHandle) -> asyncio.Task[None]:
        """Start forwarding the handle's output; returns the consumer task."""
        task = asyncio.create_task(self._consume(handle), name=f"logmux:{handle.tag}")
        self._consumers.append(task)
        return task

    async def _consume(self, handle: ProcessHandle) -> None:
        async for event in handle.events():
            try:
                self.emit_event(event)
            except Exception:
                # A console write error must not take down the orchestrator.
                logger.exception(f"Failed to render output from {handle.tag}")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every attached handle's output to be fully printed."""
        pending = [task for task in self._consumers if not task.done()]
        if pending:
            await asyncio.wait(pending, timeout=timeout)
        self._consumers = [task for task in self._consumers if not task.done()]

    def close(self) -> None:
        """Cancel consumers that are still waiting for output."""
        for task in self._consumers:
            if not task.done():
                task.cancel()
        self._consumers.clear()


__all__ = ["DEFAULT_STYLE", "ERROR_STYLE", "HELPER_TAG", "RUNNER_TAG", "LogMultiplexer", "TAG_STYLES"]
