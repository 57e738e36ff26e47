"""conformqa doctor - Environment and project diagnostics."""

from __future__ import annotations

import importlib.metadata
import json
import socket
import sys
from collections.abc import Callable
from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table

from conformqa.cli.output import console, handle_errors
from conformqa.config import HarnessSettings, find_config_file, load_config, load_settings
from conformqa.errors import ConformQAError, ExitCode
from conformqa.infra import check_runtime, detect_host_address


class HealthCheck:
    """A single health check with name, check function, and required flag."""

    def __init__(
        self,
        name: str,
        check_fn: Callable[[], tuple[bool, str]],
        required: bool = True,
    ) -> None:
        self.name = name
        self.check_fn = check_fn
        self.required = required

    def run(self) -> tuple[bool, str]:
        """Run the health check and return (success, message)."""
        try:
            return self.check_fn()
        except Exception as e:
            return False, str(e)


def check_python_version() -> tuple[bool, str]:
    """Check if Python version meets minimum requirements (>= 3.10)."""
    version = sys.version_info
    if version >= (3, 10):
        return True, f"Python {version.major}.{version.minor}.{version.micro}"
    return False, f"Python {version.major}.{version.minor} (requires >= 3.10)"


def check_package(package: str, distribution: str | None = None) -> tuple[bool, str]:
    """Check if a Python package is importable and report its version."""
    try:
        __import__(package)
    except ImportError:
        return False, f"{package} not installed"
    try:
        version = importlib.metadata.version(distribution or package)
    except importlib.metadata.PackageNotFoundError:
        version = "installed"
    return True, f"{package} {version}"


def check_container_runtime(settings: HarnessSettings) -> tuple[bool, str]:
    status = check_runtime(settings.container_runtime)
    if status.is_healthy:
        return True, status.version
    return False, "; ".join(status.errors)


def check_config_file(project_dir: Path) -> tuple[bool, str]:
    path = find_config_file(project_dir)
    if path is None:
        return False, f"integration.yml not found in {project_dir} (run 'conformqa init')"
    return True, f"Found {path.name}"


def check_contract(project_dir: Path) -> tuple[bool, str]:
    """Load integration.yml the same way the test commands do."""
    try:
        config = load_config(project_dir)
    except ConformQAError as e:
        return False, e.message
    return True, f"spec_version {config.spec_version}, image {config.image_name}"


def check_dockerfile(project_dir: Path) -> tuple[bool, str]:
    if (project_dir / "Dockerfile").is_file():
        return True, "Found Dockerfile"
    return False, f"No Dockerfile in {project_dir}"


def check_port_free(port: int, label: str) -> tuple[bool, str]:
    """Check that nothing is bound to ``port`` yet."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind(("0.0.0.0", port))
    except OSError:
        return False, f"{label} port {port} is in use"
    finally:
        sock.close()
    return True, f"{label} port {port} is free"


def check_host_address(settings: HarnessSettings) -> tuple[bool, str]:
    if settings.host_address:
        return True, f"{settings.host_alias} -> {settings.host_address} (configured)"
    address = detect_host_address()
    if address.startswith("127."):
        return False, f"{settings.host_alias} -> {address}; containers may not reach the collector"
    return True, f"{settings.host_alias} -> {address}"


def get_health_checks(settings: HarnessSettings) -> list[HealthCheck]:
    """Return the checks to run, ordered by importance."""
    project_dir = settings.project_dir
    return [
        HealthCheck("Python Version", check_python_version),
        HealthCheck("click", lambda: check_package("click")),
        HealthCheck("rich", lambda: check_package("rich")),
        HealthCheck("httpx", lambda: check_package("httpx")),
        HealthCheck("pydantic", lambda: check_package("pydantic")),
        HealthCheck("pyyaml", lambda: check_package("yaml", "pyyaml")),
        HealthCheck("fastapi", lambda: check_package("fastapi")),
        HealthCheck("uvicorn", lambda: check_package("uvicorn")),
        HealthCheck("Container Runtime", lambda: check_container_runtime(settings)),
        HealthCheck("Config File", lambda: check_config_file(project_dir)),
        HealthCheck("Contract Version", lambda: check_contract(project_dir)),
        HealthCheck("Dockerfile", lambda: check_dockerfile(project_dir)),
        HealthCheck(
            "Service Port",
            lambda: check_port_free(settings.default_port, "service"),
            required=False,
        ),
        HealthCheck(
            "Collector Port",
            lambda: check_port_free(settings.collector_port, "collector"),
            required=False,
        ),
        HealthCheck("Host Address", lambda: check_host_address(settings), required=False),
    ]


def run_health_checks(checks: list[HealthCheck]) -> list[dict[str, object]]:
    results = []
    for check in checks:
        success, message = check.run()
        results.append(
            {
                "name": check.name,
                "required": check.required,
                "success": success,
                "message": message,
            }
        )
    return results


def render_results(results: list[dict[str, object]]) -> None:
    console.print("\n[bold blue]conformqa doctor[/bold blue]")
    console.print("=" * 40)

    table = Table(show_header=False, box=None)
    table.add_column("Status", width=3)
    table.add_column("Check", width=20)
    table.add_column("Result")

    for result in results:
        message = escape(str(result["message"]))
        if result["success"]:
            table.add_row("[green]OK[/green]", str(result["name"]), f"[green]{message}[/green]")
        elif result["required"]:
            table.add_row("[red]!![/red]", str(result["name"]), f"[red]{message}[/red]")
        else:
            table.add_row("[yellow]--[/yellow]", str(result["name"]), f"[yellow]{message}[/yellow]")

    console.print(table)
    console.print()


@click.command()
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
@handle_errors
def doctor(ctx: click.Context, output_json: bool) -> None:
    """Check Docker, the integration config and the ports the harness needs.

    Exit codes:
        0 - All required checks passed
        2 - One or more required checks failed
    """
    obj = ctx.obj or {}
    settings = load_settings(project_dir=obj.get("project_dir"))
    results = run_health_checks(get_health_checks(settings))

    failed_required = sum(1 for r in results if not r["success"] and r["required"])
    failed_optional = sum(1 for r in results if not r["success"] and not r["required"])
    exit_code = ExitCode.SUCCESS if failed_required == 0 else ExitCode.CONFIG_ERROR

    if output_json:
        summary = {
            "passed": sum(1 for r in results if r["success"]),
            "failed_required": failed_required,
            "failed_optional": failed_optional,
            "ready": failed_required == 0,
        }
        click.echo(json.dumps({"checks": results, "summary": summary}, indent=2))
        raise SystemExit(int(exit_code))

    render_results(results)
    if failed_required == 0:
        if failed_optional:
            console.print(f"[green]Ready to test[/green] ({failed_optional} warning(s))")
        else:
            console.print("[green]All checks passed - Ready to test![/green]")
    else:
        console.print(f"[red]{failed_required} required check(s) failed[/red]")
    raise SystemExit(int(exit_code))


__all__ = ["HealthCheck", "doctor", "get_health_checks", "run_health_checks"]
