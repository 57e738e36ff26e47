"""Reporting - progress output and result formats for conformance runs."""

from conformqa.reporting.console import ConsoleReporter
from conformqa.reporting.junit import JUnitReporter
from conformqa.reporting.protocol import NullListener, ProgressListener, Reporter

__all__ = [
    "ConsoleReporter",
    "JUnitReporter",
    "NullListener",
    "ProgressListener",
    "Reporter",
]
