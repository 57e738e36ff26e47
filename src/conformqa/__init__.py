"""conformqa - Conformance harness for containerized runtime integrations.

Builds the integration's Docker image, runs it, waits for the service to
answer, drives the conformance suites against it, and always tears the
container down afterwards, including on Ctrl+C.

Quick Start:
    $ conformqa init            # scaffold an example integration
    $ conformqa test-all        # build, run, and test it

Programmatic use:
    from conformqa import TestSelection, load_config, run_invocation
"""

from __future__ import annotations

from conformqa.version import SPEC_VERSION, __version__
from conformqa.config import HarnessSettings, IntegrationConfig, load_config
from conformqa.errors import (
    BuildFailure,
    ConfigurationError,
    ConformQAError,
    ExitCode,
    StartupTimeout,
)
from conformqa.runner import TestOutcome, TestRunnerAdapter
from conformqa.runtime import (
    InvocationContext,
    LifecycleOrchestrator,
    RunningService,
    run_invocation,
)
from conformqa.suites import SUITES, TestSelection, resolve_selection

__all__ = [
    "__version__",
    "SPEC_VERSION",
    # Configuration
    "HarnessSettings",
    "IntegrationConfig",
    "load_config",
    # Errors
    "ConformQAError",
    "ConfigurationError",
    "BuildFailure",
    "StartupTimeout",
    "ExitCode",
    # Lifecycle
    "InvocationContext",
    "LifecycleOrchestrator",
    "RunningService",
    "run_invocation",
    # Testing
    "SUITES",
    "TestSelection",
    "resolve_selection",
    "TestOutcome",
    "TestRunnerAdapter",
]
