"""Shell command lists from integration.yml (before_tests, publish)."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from conformqa.errors import CommandFailedError, ErrorContext
from conformqa.runtime.logmux import HELPER_TAG, LogMultiplexer

logger = logging.getLogger(__name__)


def run_command(command: str, cwd: Path, mux: LogMultiplexer) -> None:
    """Run one shell command in ``cwd``, streaming its output under ``helper``.

    Raises:
        CommandFailedError: If the command exits non-zero.
    """
    mux.emit(HELPER_TAG, f"$ {command}")
    logger.debug(f"Running '{command}' in {cwd}")
    with subprocess.Popen(
        command,
        shell=True,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
    ) as proc:
        for line in proc.stdout or ():
            mux.emit(HELPER_TAG, line)
    if proc.returncode != 0:
        raise CommandFailedError(
            message=f"Command failed with exit code {proc.returncode}: {command}",
            returncode=proc.returncode,
            context=ErrorContext(source=HELPER_TAG, command=[command], extra={"cwd": str(cwd)}),
        )


def run_commands(commands: Sequence[str], cwd: Path, mux: LogMultiplexer, stage: str) -> int:
    """Run ``commands`` one after another, stopping at the first failure.

    Returns the number of commands run.
    """
    if not commands:
        logger.debug(f"No {stage} commands configured")
        return 0

    mux.emit(HELPER_TAG, f"Running {len(commands)} {stage} command(s)...")
    for command in commands:
        run_command(command, cwd, mux)
    return len(commands)


__all__ = ["run_command", "run_commands"]
