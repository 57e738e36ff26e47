"""CLI commands for conformqa."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from conformqa.cli.doctor import doctor
from conformqa.cli.output import console, handle_errors, setup_logging
from conformqa.cli.scaffold import DEFAULT_OUTPUT, DEFAULT_SLUG, create_project
from conformqa.cli.tasks import run_commands
from conformqa.config import HarnessSettings, IntegrationConfig, load_config, load_settings
from conformqa.errors import ConfigurationError, ErrorContext, ExitCode
from conformqa.infra import SERVER_TAG
from conformqa.reporting import ConsoleReporter, JUnitReporter
from conformqa.runner import TestOutcome, TestRunnerAdapter
from conformqa.runtime import (
    HELPER_TAG,
    InvocationContext,
    LifecycleOrchestrator,
    LifecycleState,
    LogMultiplexer,
    run_invocation,
)
from conformqa.suites import TestSelection
from conformqa.version import SPEC_VERSION, __version__

logger = logging.getLogger(__name__)

PORT_OPTION_HELP = "Host port mapped to the container's port 4000"


def _settings(ctx: click.Context) -> HarnessSettings:
    return load_settings(project_dir=ctx.obj.get("project_dir"), verbose=ctx.obj.get("verbose"))


def _load(ctx: click.Context) -> tuple[HarnessSettings, IntegrationConfig]:
    settings = _settings(ctx)
    config = load_config(settings.project_dir)
    logger.debug(f"Loaded {config.slug} (spec_version {config.spec_version}) from {config.project_dir}")
    return settings, config


@click.group()
@click.version_option(
    version=__version__,
    prog_name="conformqa",
    message=f"%(prog)s %(version)s (contract: {SPEC_VERSION})",
)
@click.option(
    "--project-dir",
    "-C",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="CONFORMQA_PROJECT_DIR",
    help="Directory containing integration.yml (default: current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx: click.Context, project_dir: Path | None, verbose: bool) -> None:
    """conformqa - Conformance harness for containerized integrations."""
    ctx.ensure_object(dict)
    ctx.obj["project_dir"] = project_dir
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.option(
    "--output",
    "-o",
    default=DEFAULT_OUTPUT,
    show_default=True,
    help="Directory to create the example integration in",
)
@click.option("--slug", default=DEFAULT_SLUG, show_default=True, help="Slug (image name) for the integration")
@click.pass_context
@handle_errors
def init(ctx: click.Context, output: str, slug: str) -> None:
    """Scaffold an example integration that passes every suite."""
    settings = _settings(ctx)
    target = Path(output)
    if not target.is_absolute():
        target = settings.project_dir / target

    written = create_project(target, slug=slug, collector_port=settings.collector_port)
    console.print(f"[green]Created example integration in {target}[/green]")
    for path in written:
        console.print(f"  {path.name}")
    console.print(f"\nNext: [cyan]cd {target} && conformqa test-all[/cyan]")


@cli.command("run-docker")
@click.option("--port", "-p", type=int, default=None, help=PORT_OPTION_HELP)
@click.pass_context
@handle_errors
def run_docker(ctx: click.Context, port: int | None) -> None:
    """Build the image and serve it until it exits or you press Ctrl+C."""
    settings, config = _load(ctx)
    mux = LogMultiplexer(console)
    port = port or settings.default_port

    async def flow(inv: InvocationContext) -> ExitCode:
        orchestrator = LifecycleOrchestrator(settings, mux, inv)
        service = await orchestrator.build_and_run(config, port)
        mux.emit(HELPER_TAG, f"Serving {config.image_name} at {service.base_url} (Ctrl+C to stop)")
        returncode = await service.wait()
        inv.transition(LifecycleState.COMPLETED)
        await mux.drain(timeout=1.0)
        mux.close()
        mux.emit(SERVER_TAG, f"Container exited with code {returncode}", error=returncode != 0)
        return ExitCode.SUCCESS

    raise SystemExit(int(run_invocation(flow)))


def _run_tests(
    ctx: click.Context,
    selection: TestSelection,
    port: int | None,
    junit: Path | None,
) -> None:
    settings, config = _load(ctx)
    mux = LogMultiplexer(console)
    port = port or settings.default_port

    run_commands(config.before_tests, config.project_dir, mux, stage="before_tests")

    outcomes: list[TestOutcome] = []

    async def flow(inv: InvocationContext) -> ExitCode:
        orchestrator = LifecycleOrchestrator(settings, mux, inv)
        service = await orchestrator.build_and_run(config, port)
        adapter = TestRunnerAdapter(settings, inv, listener=ConsoleReporter(mux))
        outcome = await adapter.run(selection, service)
        # The container keeps printing until cleanup stops it; stop listening now.
        mux.close()
        outcomes.append(outcome)
        return outcome.exit_code

    exit_code = run_invocation(flow)

    if junit is not None and outcomes:
        path = JUnitReporter(name=config.slug).write(outcomes[0], junit)
        console.print(f"JUnit report written to {path}")
    raise SystemExit(int(exit_code))


def _test_options(func):
    func = click.option(
        "--junit",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Also write a JUnit XML report to this path",
    )(func)
    func = click.option("--port", "-p", type=int, default=None, help=PORT_OPTION_HELP)(func)
    return func


@cli.command("test-echo")
@_test_options
@click.pass_context
@handle_errors
def test_echo(ctx: click.Context, port: int | None, junit: Path | None) -> None:
    """Run the echo suite against a freshly built container."""
    _run_tests(ctx, TestSelection(include_echo=True), port, junit)


@cli.command("test-library")
@_test_options
@click.pass_context
@handle_errors
def test_library(ctx: click.Context, port: int | None, junit: Path | None) -> None:
    """Run the library suite (needs the sample collector port free)."""
    _run_tests(ctx, TestSelection(include_library=True), port, junit)


@cli.command("test-all")
@_test_options
@click.pass_context
@handle_errors
def test_all(ctx: click.Context, port: int | None, junit: Path | None) -> None:
    """Run the echo and library suites against one container."""
    _run_tests(ctx, TestSelection.all(), port, junit)


@cli.command()
@click.pass_context
@handle_errors
def publish(ctx: click.Context) -> None:
    """Run the publish commands from integration.yml, in order."""
    _, config = _load(ctx)
    if not config.publish:
        raise ConfigurationError(
            message="No publish commands specified.",
            context=ErrorContext(source=HELPER_TAG, extra={"project_dir": str(config.project_dir)}),
            suggestions=["Add a 'publish:' list of shell commands to integration.yml"],
        )
    mux = LogMultiplexer(console)
    count = run_commands(config.publish, config.project_dir, mux, stage="publish")
    console.print(f"[green]Published ({count} command(s))[/green]")


cli.add_command(doctor)


__all__ = ["cli"]
