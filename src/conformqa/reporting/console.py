"""Console reporter for terminal output."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from conformqa.errors import ErrorContext, TestFailureError
from conformqa.runner.results import CaseStatus
from conformqa.runtime.logmux import RUNNER_TAG, LogMultiplexer

if TYPE_CHECKING:
    from conformqa.runner.results import CaseResult, TestOutcome
    from conformqa.suites.base import Suite

ICONS = {
    CaseStatus.PASSED: "✓",
    CaseStatus.FAILED: "✗",
    CaseStatus.SKIPPED: "-",
}


class ConsoleReporter:
    """Streams case results under the ``test-runner`` tag and prints a summary.

    Example::

        reporter = ConsoleReporter(mux)
        adapter = TestRunnerAdapter(settings, ctx, listener=reporter)
        outcome = await adapter.run(selection, service)

        # Plain-text summary, e.g. for a file
        text = ConsoleReporter(color=False).report(outcome)

    Args:
        mux: Multiplexer to emit progress lines on (default: a new one).
        color: Whether the summary uses colour.
    """

    def __init__(self, mux: LogMultiplexer | None = None, color: bool = True) -> None:
        self.mux = mux or LogMultiplexer()
        self.color = color

    @property
    def console(self) -> Console:
        return self.mux.console

    def suite_started(self, suite: Suite) -> None:
        self.mux.emit(RUNNER_TAG, f"{suite.title} ({len(suite)} cases)")

    def case_finished(self, suite: Suite, result: CaseResult) -> None:
        icon = ICONS[result.status]
        line = f"  {icon} {result.name}"
        if result.status == CaseStatus.SKIPPED:
            self.mux.emit(RUNNER_TAG, f"{line} (skipped)")
            return
        self.mux.emit(RUNNER_TAG, f"{line} ({result.duration_ms:.0f}ms)", error=result.failed)
        if result.failed and result.message:
            for detail in result.message.splitlines():
                self.mux.emit(RUNNER_TAG, f"      {detail}", error=True)

    def run_finished(self, outcome: TestOutcome) -> None:
        self.console.print()
        self.console.print(self._summary_table(outcome))
        self.console.print(self._summary_line(outcome))
        if not outcome.success:
            failure = TestFailureError(failure_count=outcome.failure_count, context=ErrorContext(source=RUNNER_TAG))
            self.mux.emit(RUNNER_TAG, f"Error [{failure.error_code.value}]: {failure.message}", error=True)

    def _summary_table(self, outcome: TestOutcome) -> Table:
        table = Table(title="Conformance Results", show_header=True)
        table.add_column("Suite", style="cyan" if self.color else None)
        table.add_column("Passed", justify="right", style="green" if self.color else None)
        table.add_column("Failed", justify="right", style="red" if self.color else None)
        table.add_column("Skipped", justify="right", style="yellow" if self.color else None)
        table.add_column("Duration", justify="right")
        for suite in outcome.suites:
            table.add_row(
                suite.title,
                str(suite.passed),
                str(suite.failed),
                str(suite.skipped),
                f"{suite.duration_ms / 1000:.2f}s",
            )
        return table

    def _summary_line(self, outcome: TestOutcome) -> str:
        text = (
            f"{outcome.passed} passed, {outcome.failure_count} failed, "
            f"{outcome.skipped} skipped in {outcome.duration_ms / 1000:.2f}s"
        )
        if not self.color:
            return text
        style = "bold green" if outcome.success else "bold red"
        return f"[{style}]{text}[/{style}]"

    def report(self, outcome: TestOutcome) -> str:
        """Render the summary and any failures as plain text."""
        console = Console(record=True, width=100, color_system=None, file=io.StringIO())
        console.print(self._summary_table(outcome))
        for case in outcome.results:
            if case.failed:
                console.print(f"{ICONS[case.status]} {case.suite} / {case.name}: {case.message}", markup=False)
        console.print(self._summary_line(outcome), markup=self.color)
        return console.export_text()


__all__ = ["ConsoleReporter"]
