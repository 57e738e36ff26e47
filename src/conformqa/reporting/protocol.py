"""Reporter protocols - interfaces for rendering conformance results."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from conformqa.runner.results import CaseResult, TestOutcome
    from conformqa.suites.base import Suite


@runtime_checkable
class Reporter(Protocol):
    """Formats a finished run as a string.

    Example::

        class CountReporter:
            def report(self, outcome: TestOutcome) -> str:
                return f"{outcome.failure_count} failures"

    Built-in reporters:
    - ConsoleReporter: coloured terminal summary
    - JUnitReporter: CI-compatible XML
    """

    def report(self, outcome: TestOutcome) -> str:
        """Format the outcome as a string."""
        ...


@runtime_checkable
class ProgressListener(Protocol):
    """Receives results while the run is in progress."""

    def suite_started(self, suite: Suite) -> None: ...

    def case_finished(self, suite: Suite, result: CaseResult) -> None: ...

    def run_finished(self, outcome: TestOutcome) -> None: ...


class NullListener:
    """ProgressListener that ignores everything."""

    def suite_started(self, suite: Suite) -> None:
        pass

    def case_finished(self, suite: Suite, result: CaseResult) -> None:
        pass

    def run_finished(self, outcome: TestOutcome) -> None:
        pass


__all__ = ["NullListener", "ProgressListener", "Reporter"]
