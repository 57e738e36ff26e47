"""Top-level exit point: runs a command flow and guarantees cleanup once."""

from __future__ import annotations

import asyncio
import atexit
import logging
import signal
from collections.abc import Awaitable, Callable
from typing import Any

from conformqa.errors import ConformQAError, ExitCode, InterruptedCleanup
from conformqa.runtime.context import InvocationContext

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

Flow = Callable[[InvocationContext], Awaitable[ExitCode | int | None]]


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, ctx: InvocationContext) -> Callable[[], None]:
    """Route SIGINT and SIGTERM to ``ctx.interrupt``; returns an uninstaller."""
    previous: dict[int, Any] = {}
    on_loop: set[int] = set()
    for signum in HANDLED_SIGNALS:
        previous[signum] = signal.getsignal(signum)
        try:
            loop.add_signal_handler(signum, ctx.interrupt, signum)
            on_loop.add(signum)
        except (NotImplementedError, RuntimeError):
            # Loops without add_signal_handler (e.g. Windows) get a plain handler.
            signal.signal(signum, lambda s, _frame: loop.call_soon_threadsafe(ctx.interrupt, s))

    def uninstall() -> None:
        for signum in HANDLED_SIGNALS:
            if signum in on_loop:
                loop.remove_signal_handler(signum)
            # Restore the handler that was installed before.
            if previous[signum] is not None:
                signal.signal(signum, previous[signum])

    return uninstall


async def supervise(flow: Flow, ctx: InvocationContext | None = None) -> ExitCode:
    """Run ``flow`` under a fresh InvocationContext and map its outcome.

    Cleanup runs exactly once on every path: normal return, ConformQAError,
    interrupt, or interpreter exit (via atexit).
    """
    ctx = ctx or InvocationContext()
    loop = asyncio.get_running_loop()
    current = asyncio.current_task()
    if current is not None:
        ctx.bind(current)

    uninstall = _install_signal_handlers(loop, ctx)
    atexit.register(ctx.cleanup)
    try:
        result = await flow(ctx)
        return ExitCode(result) if result is not None else ExitCode.SUCCESS
    except asyncio.CancelledError:
        if not ctx.interrupted:
            raise
        error = InterruptedCleanup(signum=ctx.interrupted_by)
        logger.warning(str(error))
        return error.exit_code
    except ConformQAError as e:
        if ctx.interrupted:
            # Failures triggered by the interrupt's own cleanup are not the cause.
            logger.debug(f"Ignoring {e.error_code.value} raised during interrupt")
            return ExitCode.INTERRUPTED
        logger.error(str(e))
        raise
    finally:
        ctx.cleanup()
        uninstall()
        atexit.unregister(ctx.cleanup)


def run_invocation(flow: Flow, ctx: InvocationContext | None = None) -> ExitCode:
    """Synchronous entry point used by the CLI commands.

    ConformQAError propagates to the caller (after cleanup) so the CLI can
    render it; an operator interrupt returns ``ExitCode.INTERRUPTED``.
    """
    ctx = ctx or InvocationContext()
    try:
        return asyncio.run(supervise(flow, ctx))
    except KeyboardInterrupt:
        # Ctrl+C landed before or after the loop's own handlers were active.
        ctx.cleanup()
        return ExitCode.INTERRUPTED


__all__ = ["HANDLED_SIGNALS", "Flow", "run_invocation", "supervise"]
