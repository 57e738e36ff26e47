"""conformqa error handling module.

Structured exception hierarchy with error codes, source tags and the
process exit code each failure maps to.
"""

from conformqa.errors.base import (
    BuildFailure,
    CommandFailedError,
    ConfigurationError,
    ConformQAError,
    ContainerAlreadyRunningError,
    ErrorCode,
    ErrorContext,
    ExitCode,
    InterruptedCleanup,
    LifecycleError,
    RuntimeNotFoundError,
    SpecVersionMismatchError,
    StartupTimeout,
    TestFailureError,
)

__all__ = [
    # Base
    "ConformQAError",
    "ErrorCode",
    "ErrorContext",
    "ExitCode",
    # Configuration
    "ConfigurationError",
    "SpecVersionMismatchError",
    # Lifecycle
    "LifecycleError",
    "BuildFailure",
    "StartupTimeout",
    "ContainerAlreadyRunningError",
    "RuntimeNotFoundError",
    # Tasks and conformance
    "CommandFailedError",
    "TestFailureError",
    "InterruptedCleanup",
]
