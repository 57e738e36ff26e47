"""RunningService - The launched container the suites test against."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from conformqa.runtime.process import ProcessHandle


class HealthStatus(Enum):
    """Health status of the service under test.

    Values:
        UNKNOWN: Readiness has not been probed yet.
        STARTING: Container launched, port not yet open.
        HEALTHY: Port open and settle delay elapsed.
        UNHEALTHY: Container exited before or after becoming ready.
        STOPPED: Container exited on its own with status 0.
    """

    UNKNOWN = "unknown"
    STARTING = "starting"
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    STOPPED = "stopped"


@dataclass
class RunningService:
    """A container that passed its readiness probe.

    Attributes:
        handle: ProcessHandle of the ``docker run`` process.
        port: Host port the container's port 4000 is bound to.
        image_name: Image the container was started from.
        host: Host name used to reach the bound port.
        health: Current health status.
        started_at: When the container process was spawned.
    """

    handle: ProcessHandle
    port: int
    image_name: str
    host: str = "localhost"
    health: HealthStatus = HealthStatus.STARTING
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def is_healthy(self) -> bool:
        """True if the service is in a healthy state."""
        return self.health == HealthStatus.HEALTHY

    @property
    def is_running(self) -> bool:
        return self.handle.returncode is None

    def mark_healthy(self) -> None:
        self.health = HealthStatus.HEALTHY

    def mark_unhealthy(self) -> None:
        self.health = HealthStatus.UNHEALTHY

    def mark_stopped(self) -> None:
        self.health = HealthStatus.STOPPED

    async def wait(self) -> int:
        """Block until the container exits and return its exit status."""
        returncode = await self.handle.wait()
        if self.health == HealthStatus.STOPPED:
            return returncode
        if returncode:
            self.mark_unhealthy()
        else:
            self.mark_stopped()
        return returncode


__all__ = ["HealthStatus", "RunningService"]
