"""JUnit XML reporter for CI systems."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING

from conformqa.runner.results import CaseStatus

if TYPE_CHECKING:
    from conformqa.runner.results import TestOutcome


class JUnitReporter:
    """Formats a TestOutcome as JUnit XML, one <testsuite> per suite.

    Example::

        JUnitReporter().write(outcome, Path("reports/conformance.xml"))
    """

    def __init__(self, name: str = "conformqa") -> None:
        self.name = name

    def report(self, outcome: TestOutcome) -> str:
        testsuites = ET.Element("testsuites")
        testsuites.set("name", self.name)
        testsuites.set("tests", str(outcome.total))
        testsuites.set("failures", str(outcome.failure_count))
        testsuites.set("skipped", str(outcome.skipped))
        testsuites.set("time", f"{outcome.duration_ms / 1000:.3f}")

        for suite in outcome.suites:
            testsuite = ET.SubElement(testsuites, "testsuite")
            testsuite.set("name", suite.title)
            testsuite.set("tests", str(len(suite.cases)))
            testsuite.set("failures", str(suite.failed))
            testsuite.set("skipped", str(suite.skipped))
            testsuite.set("time", f"{suite.duration_ms / 1000:.3f}")

            for case in suite.cases:
                testcase = ET.SubElement(testsuite, "testcase")
                testcase.set("classname", f"{self.name}.{suite.name}")
                testcase.set("name", case.name)
                testcase.set("time", f"{case.duration_ms / 1000:.3f}")

                if case.status == CaseStatus.FAILED:
                    failure = ET.SubElement(testcase, "failure")
                    failure.set("message", (case.message or "failed").splitlines()[0])
                    failure.set("type", case.error_type or "AssertionError")
                    failure.text = case.message
                elif case.status == CaseStatus.SKIPPED:
                    skipped = ET.SubElement(testcase, "skipped")
                    if case.message:
                        skipped.set("message", case.message)

        return ET.tostring(testsuites, encoding="unicode")

    def write(self, outcome: TestOutcome, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text('<?xml version="1.0" encoding="UTF-8"?>\n' + self.report(outcome), encoding="utf-8")
        return target


__all__ = ["JUnitReporter"]
