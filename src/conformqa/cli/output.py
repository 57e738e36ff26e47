"""Shared CLI output: logging setup, the rich console and error rendering."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from conformqa.errors import ConformQAError, ExitCode

console = Console(highlight=False)

F = TypeVar("F", bound=Callable[..., Any])


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Per-request access lines from the collector would drown the suite output.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def print_error(error: ConformQAError) -> None:
    console.print(
        Panel(
            escape(error.format_verbose()),
            title=f"[bold red]{type(error).__name__}[/bold red]",
            border_style="red",
        )
    )


def handle_errors(func: F) -> F:
    """Render ConformQAError and Ctrl+C, then exit with the matching code."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ConformQAError as e:
            print_error(e)
            raise SystemExit(int(e.exit_code)) from e
        except KeyboardInterrupt:
            console.print("[yellow]Interrupted[/yellow]")
            raise SystemExit(int(ExitCode.INTERRUPTED)) from None

    return wrapper  # type: ignore[return-value]


__all__ = ["console", "handle_errors", "print_error", "setup_logging"]
