"""Suite and case primitives shared by the conformance suites."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from conformqa.config import HarnessSettings

if TYPE_CHECKING:
    from conformqa.suites.collector import SampleCollector


@dataclass
class SuiteContext:
    """What a case gets to work with.

    Attributes:
        base_url: Root URL of the service under test.
        client: HTTP client bound to ``base_url``.
        settings: Harness settings (timeouts, collector port).
        collector: Sample collector, for suites that declare one.
    """

    base_url: str
    client: httpx.AsyncClient
    settings: HarnessSettings
    collector: SampleCollector | None = None

    def require_collector(self) -> SampleCollector:
        if self.collector is None:
            raise RuntimeError("This case needs the sample collector, but the suite has none")
        return self.collector


CaseFunc = Callable[[SuiteContext], Awaitable[None]]
FixtureFactory = Callable[[HarnessSettings], AbstractAsyncContextManager["SampleCollector | None"]]


@dataclass(frozen=True)
class Case:
    """One conformance check. Fails by raising AssertionError."""

    name: str
    func: CaseFunc
    skip: str | None = None


@dataclass
class Suite:
    """An ordered, named group of cases.

    Cases are registered with the ``case`` decorator and run in
    registration order::

        echo = Suite("echo", "echo server")

        @echo.case("returns request headers as response headers")
        async def headers(ctx: SuiteContext) -> None:
            ...
    """

    name: str
    title: str
    cases: list[Case] = field(default_factory=list)
    fixture: FixtureFactory | None = None

    def case(self, name: str, skip: str | None = None) -> Callable[[CaseFunc], CaseFunc]:
        def decorator(func: CaseFunc) -> CaseFunc:
            self.add(Case(name=name, func=func, skip=skip))
            return func

        return decorator

    def add(self, case: Case) -> None:
        if any(existing.name == case.name for existing in self.cases):
            raise ValueError(f"Duplicate case '{case.name}' in suite '{self.name}'")
        self.cases.append(case)

    def __len__(self) -> int:
        return len(self.cases)


__all__ = ["Case", "CaseFunc", "FixtureFactory", "Suite", "SuiteContext"]
