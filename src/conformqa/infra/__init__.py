"""Container infrastructure helpers for conformqa."""

from conformqa.infra.docker import (
    BUILD_TAG,
    CONTAINER_PORT,
    HOST_ENV,
    LISTENING_ENV,
    SERVER_TAG,
    DockerCommands,
    RuntimeStatus,
    check_runtime,
    detect_host_address,
)

__all__ = [
    "BUILD_TAG",
    "CONTAINER_PORT",
    "HOST_ENV",
    "LISTENING_ENV",
    "SERVER_TAG",
    "DockerCommands",
    "RuntimeStatus",
    "check_runtime",
    "detect_host_address",
]
