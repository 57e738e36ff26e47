"""Docker command construction for the service under test."""

from __future__ import annotations

import logging
import shutil
import socket
import subprocess
from dataclasses import dataclass, field

from conformqa.config import HarnessSettings, IntegrationConfig

logger = logging.getLogger(__name__)

# The service under test always listens here inside the container.
CONTAINER_PORT = 4000

LISTENING_ENV = "OPTIC_SERVER_LISTENING"
HOST_ENV = "OPTIC_SERVER_HOST"

BUILD_TAG = "docker-build"
SERVER_TAG = "echo-server"


@dataclass
class RuntimeStatus:
    """Result of checking the container runtime installation."""

    available: bool
    version: str = ""
    errors: list[str] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return self.available and not self.errors


def detect_host_address() -> str:
    """Return this machine's outward-facing IPv4 address.

    Connecting a UDP socket sends no packets; it only asks the kernel which
    local address would route outwards. Falls back to loopback when the host
    has no route.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("10.255.255.255", 1))
        return sock.getsockname()[0]
    except OSError:
        logger.debug("No outbound route, using loopback as host address")
        return "127.0.0.1"
    finally:
        sock.close()


def check_runtime(runtime: str = "docker") -> RuntimeStatus:
    """Check that the container runtime is installed and its daemon answers."""
    if not shutil.which(runtime):
        return RuntimeStatus(available=False, errors=[f"{runtime} not found in PATH"])

    try:
        result = subprocess.run(
            [runtime, "--version"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except subprocess.TimeoutExpired:
        return RuntimeStatus(available=False, errors=[f"{runtime} --version timed out"])
    if result.returncode != 0:
        return RuntimeStatus(available=False, errors=[f"{runtime} --version failed"])

    version = result.stdout.strip()
    try:
        info = subprocess.run([runtime, "info"], capture_output=True, timeout=10)
    except subprocess.TimeoutExpired:
        return RuntimeStatus(available=True, version=version, errors=["daemon did not answer"])
    if info.returncode != 0:
        return RuntimeStatus(
            available=True,
            version=version,
            errors=[f"{runtime} installed but daemon not running"],
        )
    return RuntimeStatus(available=True, version=version)


class DockerCommands:
    """Builds the argv lists for building and running the integration image.

    Args:
        settings: Harness settings (runtime binary, host alias and address).
        host_address: Address the in-container alias resolves to. Detected
            from the network when neither this nor the settings provide one.
    """

    def __init__(self, settings: HarnessSettings, host_address: str | None = None) -> None:
        self.runtime = settings.container_runtime
        self.host_alias = settings.host_alias
        self._host_address = host_address or settings.host_address

    @property
    def host_address(self) -> str:
        if self._host_address is None:
            self._host_address = detect_host_address()
        return self._host_address

    def build_args(self, config: IntegrationConfig) -> list[str]:
        return [self.runtime, "build", ".", "-t", config.image_name]

    def run_args(self, config: IntegrationConfig, port: int) -> list[str]:
        return [
            self.runtime,
            "run",
            "--rm",
            "-p",
            f"{port}:{CONTAINER_PORT}",
            f"--add-host={self.host_alias}:{self.host_address}",
            "-e",
            f"{LISTENING_ENV}=TRUE",
            "-e",
            f"{HOST_ENV}={self.host_alias}",
            config.image_name,
        ]
