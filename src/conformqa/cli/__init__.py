"""conformqa CLI - Command line interface for conformqa."""

from __future__ import annotations

from conformqa.cli.commands import cli
from conformqa.cli.doctor import HealthCheck, doctor, get_health_checks, run_health_checks


def main() -> None:
    """Main entry point for the conformqa CLI."""
    cli()


__all__ = [
    "main",
    "cli",
    "doctor",
    "HealthCheck",
    "get_health_checks",
    "run_health_checks",
]
