"""Per-invocation registry of everything cleanup has to stop."""

from __future__ import annotations

import asyncio
import logging
import signal
from enum import Enum
from typing import Protocol

from conformqa.errors import ContainerAlreadyRunningError, ErrorContext

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    """Where an invocation is in its build, run, test and cleanup sequence."""

    IDLE = "idle"
    BUILDING = "building"
    BUILD_FAILED = "build_failed"
    BUILT = "built"
    STARTING = "starting"
    STARTUP_TIMED_OUT = "startup_timed_out"
    READY = "ready"
    TEST_RUNNING = "test_running"
    COMPLETED = "completed"
    CLEANING_UP = "cleaning_up"
    TERMINATED = "terminated"


_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.IDLE: frozenset({LifecycleState.BUILDING}),
    LifecycleState.BUILDING: frozenset({LifecycleState.BUILT, LifecycleState.BUILD_FAILED}),
    LifecycleState.BUILT: frozenset({LifecycleState.STARTING}),
    LifecycleState.STARTING: frozenset({LifecycleState.READY, LifecycleState.STARTUP_TIMED_OUT}),
    LifecycleState.READY: frozenset({LifecycleState.TEST_RUNNING, LifecycleState.COMPLETED}),
    LifecycleState.TEST_RUNNING: frozenset({LifecycleState.COMPLETED}),
    LifecycleState.CLEANING_UP: frozenset({LifecycleState.TERMINATED}),
    LifecycleState.TERMINATED: frozenset(),
}


class Terminable(Protocol):
    tag: str

    def terminate(self) -> bool: ...


class InvocationContext:
    """Slots for the build process, the container and the test-runner task.

    One context lives for exactly one CLI invocation. ``cleanup()`` empties
    it once; anything registered afterwards is stopped on arrival, which is
    what makes a spawn that completes after an interrupt harmless.

    Example::

        ctx = InvocationContext()
        handle = await spawn_process(argv, tag="echo-server", adopt=ctx.register_container)
        ...
        ctx.cleanup()   # terminates the container
        ctx.cleanup()   # no-op
    """

    def __init__(self) -> None:
        self.state = LifecycleState.IDLE
        self.history: list[LifecycleState] = [LifecycleState.IDLE]
        self.interrupted_by: int | None = None
        self._build: Terminable | None = None
        self._container: Terminable | None = None
        self._test_runner: asyncio.Task | None = None
        self._main_task: asyncio.Task | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once cleanup has run."""
        return self._closed

    @property
    def interrupted(self) -> bool:
        return self.interrupted_by is not None

    @property
    def build(self) -> Terminable | None:
        return self._build

    @property
    def container(self) -> Terminable | None:
        return self._container

    @property
    def test_runner(self) -> asyncio.Task | None:
        return self._test_runner

    def bind(self, task: asyncio.Task) -> None:
        """Record the task that an interrupt should cancel."""
        self._main_task = task

    def transition(self, state: LifecycleState) -> None:
        if state == LifecycleState.CLEANING_UP:
            allowed = self.state not in (LifecycleState.CLEANING_UP, LifecycleState.TERMINATED)
        else:
            allowed = state in _TRANSITIONS.get(self.state, frozenset())
        if not allowed:
            logger.warning(f"Unexpected lifecycle transition {self.state.value} -> {state.value}")
        logger.debug(f"Lifecycle: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _stop_late(self, handle: Terminable, slot: str) -> None:
        logger.warning(f"{handle.tag} started after cleanup, terminating it ({slot})")
        handle.terminate()

    def register_build(self, handle: Terminable) -> None:
        if self._closed:
            self._stop_late(handle, "build")
            return
        self._build = handle

    def release_build(self, handle: Terminable) -> None:
        if self._build is handle:
            self._build = None

    def ensure_container_slot_free(self) -> None:
        """Raise if a container is already registered."""
        if self._container is not None:
            raise ContainerAlreadyRunningError(
                context=ErrorContext(source=self._container.tag),
            )

    def register_container(self, handle: Terminable) -> None:
        if self._closed:
            self._stop_late(handle, "container")
            return
        if self._container is not None and self._container is not handle:
            # Only one container per invocation; the newcomer never gets the slot.
            logger.error(f"Refusing second container {handle.tag}, terminating it")
            handle.terminate()
            return
        self._container = handle

    def release_container(self, handle: Terminable) -> None:
        if self._container is handle:
            self._container = None

    def register_test_runner(self, task: asyncio.Task) -> None:
        if self._closed:
            task.cancel()
            return
        self._test_runner = task

    def release_test_runner(self, task: asyncio.Task) -> None:
        if self._test_runner is task:
            self._test_runner = None

    def cleanup(self) -> bool:
        """Stop everything registered. Synchronous and idempotent.

        Sends termination requests without waiting for exit. Returns True
        only for the call that actually performed cleanup.
        """
        if self._closed:
            return False
        self._closed = True
        self.transition(LifecycleState.CLEANING_UP)

        for handle in (self._build, self._container):
            if handle is not None:
                handle.terminate()
        if self._test_runner is not None and not self._test_runner.done():
            self._test_runner.cancel()

        self._build = None
        self._container = None
        self._test_runner = None
        self.transition(LifecycleState.TERMINATED)
        logger.debug("Cleanup complete")
        return True

    def interrupt(self, signum: int = signal.SIGINT) -> None:
        """Handle an operator interrupt: clean up, then cancel the main task."""
        if self.interrupted_by is None:
            self.interrupted_by = int(signum)
            logger.warning(f"Received {signal.Signals(signum).name}, cleaning up")
        self.cleanup()
        if self._main_task is not None and not self._main_task.done():
            self._main_task.cancel()


__all__ = ["InvocationContext", "LifecycleState", "Terminable"]
