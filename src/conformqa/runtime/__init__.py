"""Runtime - Service lifecycle, output supervision and cleanup.

The runtime is responsible for:
- Building the integration image and launching its container
- Probing the container's port until it answers
- Multiplexing every child process's output into one labelled stream
- Stopping everything exactly once, including on SIGINT/SIGTERM

Core abstractions:
- LifecycleOrchestrator: build, launch and readiness sequence
- InvocationContext: per-invocation registry that cleanup empties
- ProcessHandle: a spawned process with a line-event channel
- RunningService: the ready container (port, image, health)
- run_invocation: the single top-level exit point for a command
"""

from conformqa.runtime.context import InvocationContext, LifecycleState
from conformqa.runtime.logmux import HELPER_TAG, RUNNER_TAG, LogMultiplexer
from conformqa.runtime.orchestrator import LifecycleOrchestrator
from conformqa.runtime.probe import ReadinessProber, ReadinessResult
from conformqa.runtime.process import LineEvent, ProcessHandle, Spawner, spawn_process
from conformqa.runtime.service import HealthStatus, RunningService
from conformqa.runtime.supervisor import run_invocation, supervise

__all__ = [
    "HELPER_TAG",
    "HealthStatus",
    "InvocationContext",
    "LifecycleOrchestrator",
    "LifecycleState",
    "LineEvent",
    "LogMultiplexer",
    "ProcessHandle",
    "ReadinessProber",
    "ReadinessResult",
    "RUNNER_TAG",
    "RunningService",
    "Spawner",
    "run_invocation",
    "spawn_process",
    "supervise",
]
