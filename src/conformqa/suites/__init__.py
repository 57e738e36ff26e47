"""Conformance suites and the static registry the runner resolves against."""

from __future__ import annotations

from dataclasses import dataclass

from conformqa.suites import echo, library
from conformqa.suites.base import Case, Suite, SuiteContext
from conformqa.suites.collector import LoggedSample, SampleCollector, SampleTimeout

SUITES: dict[str, Suite] = {
    echo.SUITE.name: echo.SUITE,
    library.SUITE.name: library.SUITE,
}

# Fixed execution order when more than one suite is selected.
SUITE_ORDER = ("echo", "library")


@dataclass(frozen=True)
class TestSelection:
    """Which suites a test command runs."""

    __test__ = False

    include_echo: bool = False
    include_library: bool = False

    @classmethod
    def all(cls) -> TestSelection:
        return cls(include_echo=True, include_library=True)


def resolve_selection(selection: TestSelection) -> list[str]:
    """Map a selection to an ordered, de-duplicated list of suite names.

    >>> resolve_selection(TestSelection(include_echo=True, include_library=True))
    ['echo', 'library']
    """
    wanted = {"echo": selection.include_echo, "library": selection.include_library}
    return [name for name in SUITE_ORDER if wanted[name]]


__all__ = [
    "SUITES",
    "SUITE_ORDER",
    "Case",
    "LoggedSample",
    "SampleCollector",
    "SampleTimeout",
    "Suite",
    "SuiteContext",
    "TestSelection",
    "resolve_selection",
]
