"""Result types produced by a conformance run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from conformqa.errors import ExitCode


class CaseStatus(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class CaseResult:
    """Outcome of a single case.

    Attributes:
        suite: Name of the suite the case belongs to.
        name: Case name.
        status: Passed, failed or skipped.
        duration_ms: Wall time spent in the case.
        message: Failure message, or the skip reason.
        error_type: Exception type name for failures.
    """

    suite: str
    name: str
    status: CaseStatus
    duration_ms: float = 0.0
    message: str | None = None
    error_type: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == CaseStatus.FAILED


@dataclass
class SuiteResult:
    name: str
    title: str
    cases: list[CaseResult] = field(default_factory=list)
    duration_ms: float = 0.0

    def _count(self, status: CaseStatus) -> int:
        return sum(1 for case in self.cases if case.status == status)

    @property
    def passed(self) -> int:
        return self._count(CaseStatus.PASSED)

    @property
    def failed(self) -> int:
        return self._count(CaseStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(CaseStatus.SKIPPED)


@dataclass
class TestOutcome:
    """Aggregate result of one test command.

    Only ``failure_count`` decides the exit code; skipped cases never fail
    a run.
    """

    __test__ = False

    suites: list[SuiteResult] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def results(self) -> list[CaseResult]:
        return [case for suite in self.suites for case in suite.cases]

    @property
    def failure_count(self) -> int:
        return sum(suite.failed for suite in self.suites)

    @property
    def passed(self) -> int:
        return sum(suite.passed for suite in self.suites)

    @property
    def skipped(self) -> int:
        return sum(suite.skipped for suite in self.suites)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success(self) -> bool:
        return self.failure_count == 0

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.SUCCESS if self.success else ExitCode.TEST_FAILURE


__all__ = ["CaseResult", "CaseStatus", "SuiteResult", "TestOutcome"]
