"""Test Runner Adapter - drives the selected suites against a running service."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Mapping
from contextlib import AbstractAsyncContextManager

import httpx

from conformqa.config import HarnessSettings
from conformqa.reporting.protocol import NullListener, ProgressListener
from conformqa.runner.results import CaseResult, CaseStatus, SuiteResult, TestOutcome
from conformqa.runtime.context import InvocationContext, LifecycleState
from conformqa.runtime.logmux import RUNNER_TAG
from conformqa.runtime.service import RunningService
from conformqa.suites import SUITES, Case, Suite, SuiteContext, TestSelection, resolve_selection
from conformqa.suites.collector import SampleCollector

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, float], httpx.AsyncClient]


def default_client(base_url: str, timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, timeout=timeout)


class TestRunnerAdapter:
    """Runs suites from the static registry, one case at a time.

    The suites execute in a child task that is registered with the
    InvocationContext as soon as it exists, so an interrupt's cleanup
    cancels in-flight requests. The adapter never exits the process; the
    caller maps ``TestOutcome.exit_code``.

    Args:
        settings: Harness settings (request and sample timeouts).
        context: The invocation's cleanup registry.
        listener: Receives per-case progress (default: ignore it).
        registry: Suites by name (default: SUITES).
        client_factory: Builds the HTTP client for a base URL and timeout.
    """

    __test__ = False

    def __init__(
        self,
        settings: HarnessSettings,
        context: InvocationContext,
        listener: ProgressListener | None = None,
        registry: Mapping[str, Suite] | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.settings = settings
        self.context = context
        self.listener = listener or NullListener()
        self.registry = registry if registry is not None else SUITES
        self.client_factory = client_factory or default_client

    async def run(self, selection: TestSelection, service: RunningService | str) -> TestOutcome:
        """Run every selected suite and aggregate the results."""
        base_url = service if isinstance(service, str) else service.base_url
        names = resolve_selection(selection)
        unknown = [name for name in names if name not in self.registry]
        if unknown:
            raise KeyError(f"Unknown suite(s): {', '.join(unknown)}")

        self.context.transition(LifecycleState.TEST_RUNNING)
        task = asyncio.create_task(self._run_suites(names, base_url), name=RUNNER_TAG)
        self.context.register_test_runner(task)
        try:
            outcome = await task
        finally:
            self.context.release_test_runner(task)

        self.context.transition(LifecycleState.COMPLETED)
        self.listener.run_finished(outcome)
        logger.info(
            f"Conformance run finished: {outcome.passed} passed, "
            f"{outcome.failure_count} failed, {outcome.skipped} skipped"
        )
        return outcome

    async def _run_suites(self, names: list[str], base_url: str) -> TestOutcome:
        started = time.perf_counter()
        suites = [await self._run_suite(self.registry[name], base_url) for name in names]
        return TestOutcome(suites=suites, duration_ms=(time.perf_counter() - started) * 1000)

    def _fixture(self, suite: Suite) -> AbstractAsyncContextManager[SampleCollector | None]:
        if suite.fixture is None:
            return contextlib.nullcontext()
        return suite.fixture(self.settings)

    async def _run_suite(self, suite: Suite, base_url: str) -> SuiteResult:
        self.listener.suite_started(suite)
        result = SuiteResult(name=suite.name, title=suite.title)
        started = time.perf_counter()
        cases_done = False

        try:
            async with self._fixture(suite) as collector:
                async with self.client_factory(base_url, self.settings.request_timeout) as client:
                    ctx = SuiteContext(
                        base_url=base_url,
                        client=client,
                        settings=self.settings,
                        collector=collector,
                    )
                    for case in suite.cases:
                        self._record(suite, result, await self._run_case(suite, case, ctx))
                    cases_done = True
        except Exception as e:
            finished = {case.name for case in result.cases}
            unfinished = [case for case in suite.cases if case.name not in finished]
            stage = "teardown" if cases_done else "setup"
            logger.error(f"Suite '{suite.name}' {stage} failed: {type(e).__name__}: {e}")
            # Whatever did not run counts as failed; a teardown error is its own failure.
            for name in [case.name for case in unfinished] or [f"{suite.name} {stage}"]:
                self._record(
                    suite,
                    result,
                    CaseResult(
                        suite=suite.name,
                        name=name,
                        status=CaseStatus.FAILED,
                        message=f"suite {stage} failed: {e}",
                        error_type=type(e).__name__,
                    ),
                )

        result.duration_ms = (time.perf_counter() - started) * 1000
        return result

    def _record(self, suite: Suite, result: SuiteResult, case_result: CaseResult) -> None:
        result.cases.append(case_result)
        self.listener.case_finished(suite, case_result)

    async def _run_case(self, suite: Suite, case: Case, ctx: SuiteContext) -> CaseResult:
        if case.skip is not None:
            return CaseResult(suite=suite.name, name=case.name, status=CaseStatus.SKIPPED, message=case.skip)

        started = time.perf_counter()
        status = CaseStatus.PASSED
        message = None
        error_type = None
        try:
            await case.func(ctx)
        except AssertionError as e:
            status = CaseStatus.FAILED
            message = str(e) or "assertion failed"
            error_type = type(e).__name__
        except Exception as e:
            status = CaseStatus.FAILED
            message = f"{type(e).__name__}: {e}"
            error_type = type(e).__name__
            logger.debug(f"{suite.name} / {case.name} raised", exc_info=True)

        return CaseResult(
            suite=suite.name,
            name=case.name,
            status=status,
            duration_ms=(time.perf_counter() - started) * 1000,
            message=message,
            error_type=error_type,
        )


__all__ = ["RUNNER_TAG", "ClientFactory", "TestRunnerAdapter", "default_client"]
