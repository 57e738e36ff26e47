"""Custom exception hierarchy for conformqa.

Every harness failure carries:
- error_code: a unique ErrorCode for programmatic handling
- context: ErrorContext naming the source tag and command that failed
- suggestions: actionable steps to resolve the issue
- exit_code: the process exit code the CLI terminates with

Configuration, build and startup errors abort the current command.
Conformance failures never abort anything; they are only reflected in the
final exit code.

Example:
    try:
        service = await orchestrator.build_and_run(config, port)
    except BuildFailure as e:
        print(e.format_verbose())
        sys.exit(e.exit_code)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Process exit codes, one per terminal outcome."""

    SUCCESS = 0
    TEST_FAILURE = 1
    CONFIG_ERROR = 2
    BUILD_FAILURE = 3
    STARTUP_TIMEOUT = 4
    COMMAND_FAILED = 5
    INTERRUPTED = 130


class ErrorCode(Enum):
    """Standardized error codes for conformqa.

    Error codes are organized by category:
    - E0xx: Configuration errors
    - E1xx: Container lifecycle errors
    - E2xx: Task (shell command) errors
    - E3xx: Conformance errors
    - E4xx: Interruption
    - E9xx: Unknown/internal errors
    """

    CONFIG_NOT_FOUND = "E001"
    CONFIG_INVALID = "E002"
    SPEC_VERSION_MISMATCH = "E003"

    BUILD_FAILED = "E101"
    STARTUP_TIMEOUT = "E102"
    CONTAINER_ALREADY_RUNNING = "E103"
    RUNTIME_NOT_FOUND = "E104"

    COMMAND_FAILED = "E201"

    TEST_FAILED = "E301"

    INTERRUPTED = "E401"

    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 100:
            return "configuration"
        elif code_num < 200:
            return "lifecycle"
        elif code_num < 300:
            return "task"
        elif code_num < 400:
            return "conformance"
        elif code_num < 500:
            return "interrupt"
        else:
            return "unknown"


@dataclass
class ErrorContext:
    """Where an error happened.

    Attributes:
        source: Log tag of the originating stage (e.g. ``docker-build``).
        command: The external command involved, if any.
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    source: str | None = None
    command: list[str] | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "source": self.source,
            "command": self.command,
            "extra": self.extra,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}


class ConformQAError(Exception):
    """Base exception for all conformqa errors.

    Attributes:
        error_code: Unique ErrorCode for this error type.
        message: Human-readable error description.
        context: ErrorContext with the source tag and command.
        suggestions: List of actionable steps to resolve the issue.
        exit_code: Exit code the CLI uses when this error ends a command.
        cause: The underlying exception (if any).
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    exit_code: ExitCode = ExitCode.CONFIG_ERROR
    default_message: str = "An unexpected error occurred"
    default_suggestions: list[str] = []

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
        suggestions: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self._suggestions = suggestions

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    @property
    def source(self) -> str | None:
        return self.context.source

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]
        if self.context.source:
            parts.append(f"source={self.context.source}")
        return " | ".join(parts)

    def format_verbose(self) -> str:
        """Format error with full details including suggestions."""
        lines = [f"Error [{self.error_code.value}]: {self.message}"]

        if self.context.source:
            lines.append(f"Source: {self.context.source}")
        if self.context.command:
            lines.append(f"Command: {' '.join(self.context.command)}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "exit_code": int(self.exit_code),
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(ConformQAError):
    """The integration configuration is missing or invalid.

    Raised before any process is spawned.
    """

    error_code = ErrorCode.CONFIG_INVALID
    exit_code = ExitCode.CONFIG_ERROR
    default_message = "Invalid configuration"
    default_suggestions = [
        "Check integration.yml syntax with a YAML linter",
        "Run 'conformqa init' to see an example project",
        "Pass --project-dir if integration.yml lives elsewhere",
    ]


class SpecVersionMismatchError(ConfigurationError):
    """The integration targets a different contract version than this tool."""

    error_code = ErrorCode.SPEC_VERSION_MISMATCH
    default_message = "Integration contract version does not match the CLI"

    def __init__(
        self,
        message: str | None = None,
        found: str | None = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.found = found
        self.expected = expected
        if message is None and expected is not None:
            message = (
                f"Please update the CLI. Integration implements {found} "
                f"and your current CLI validates {expected}"
            )
        kwargs.setdefault(
            "suggestions",
            [
                f"Set spec_version: '{expected}' in integration.yml",
                "Or install the conformqa release matching your integration",
            ],
        )
        super().__init__(message=message, **kwargs)


class LifecycleError(ConformQAError):
    """Base class for container lifecycle failures."""

    error_code = ErrorCode.UNKNOWN


class BuildFailure(LifecycleError):
    """The image build exited non-zero. Terminal for the invocation."""

    error_code = ErrorCode.BUILD_FAILED
    exit_code = ExitCode.BUILD_FAILURE
    default_message = "Unable to build docker container"
    default_suggestions = [
        "Read the [docker-build] output above for the failing step",
        "Run 'docker build .' in the project directory to reproduce",
        "Run 'conformqa doctor' to check the Docker installation",
    ]

    def __init__(self, message: str | None = None, returncode: int | None = None, **kwargs: Any) -> None:
        self.returncode = returncode
        super().__init__(message=message, **kwargs)


class StartupTimeout(LifecycleError):
    """The service never opened its port within the probe window."""

    error_code = ErrorCode.STARTUP_TIMEOUT
    exit_code = ExitCode.STARTUP_TIMEOUT
    default_message = "Could not start echo server"
    default_suggestions = [
        "Make sure the service listens on port 4000 inside the container",
        "Read the [echo-server] output above for startup errors",
        "Increase CONFORMQA_PROBE_TIMEOUT if the service is slow to boot",
    ]

    def __init__(
        self,
        message: str | None = None,
        port: int | None = None,
        elapsed_ms: float | None = None,
        **kwargs: Any,
    ) -> None:
        self.port = port
        self.elapsed_ms = elapsed_ms
        super().__init__(message=message, **kwargs)


class ContainerAlreadyRunningError(LifecycleError):
    """A second container was requested while one is registered."""

    error_code = ErrorCode.CONTAINER_ALREADY_RUNNING
    exit_code = ExitCode.STARTUP_TIMEOUT
    default_message = "A container is already running for this invocation"


class RuntimeNotFoundError(LifecycleError):
    """The container runtime executable is not installed."""

    error_code = ErrorCode.RUNTIME_NOT_FOUND
    exit_code = ExitCode.BUILD_FAILURE
    default_message = "Container runtime not found"
    default_suggestions = [
        "Install Docker: https://docs.docker.com/get-docker/",
        "Or point CONFORMQA_CONTAINER_RUNTIME at a compatible binary (e.g. podman)",
    ]


class CommandFailedError(ConformQAError):
    """A before_tests or publish shell command exited non-zero."""

    error_code = ErrorCode.COMMAND_FAILED
    exit_code = ExitCode.COMMAND_FAILED
    default_message = "Command failed"

    def __init__(self, message: str | None = None, returncode: int | None = None, **kwargs: Any) -> None:
        self.returncode = returncode
        super().__init__(message=message, **kwargs)


class TestFailureError(ConformQAError):
    """One or more conformance assertions failed.

    Used for reporting only: test failures are aggregated into a count
    and never abort the command.
    """

    __test__ = False

    error_code = ErrorCode.TEST_FAILED
    exit_code = ExitCode.TEST_FAILURE
    default_message = "Conformance assertions failed"

    def __init__(self, message: str | None = None, failure_count: int = 0, **kwargs: Any) -> None:
        self.failure_count = failure_count
        if message is None:
            message = f"{failure_count} conformance check(s) failed"
        super().__init__(message=message, **kwargs)


class InterruptedCleanup(ConformQAError):
    """The operator interrupted the invocation; live processes were terminated."""

    error_code = ErrorCode.INTERRUPTED
    exit_code = ExitCode.INTERRUPTED
    default_message = "Interrupted, cleaned up running processes"

    def __init__(self, message: str | None = None, signum: int | None = None, **kwargs: Any) -> None:
        self.signum = signum
        super().__init__(message=message, **kwargs)
