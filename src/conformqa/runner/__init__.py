"""Runner - executes conformance suites and aggregates their results."""

from conformqa.runner.adapter import RUNNER_TAG, ClientFactory, TestRunnerAdapter, default_client
from conformqa.runner.results import CaseResult, CaseStatus, SuiteResult, TestOutcome

__all__ = [
    "RUNNER_TAG",
    "CaseResult",
    "CaseStatus",
    "ClientFactory",
    "SuiteResult",
    "TestOutcome",
    "TestRunnerAdapter",
    "default_client",
]
