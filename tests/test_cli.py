"""Tests for the conformqa command line interface."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from conformqa.cli import cli
from conformqa.errors import BuildFailure, ConfigurationError, ConformQAError, ExitCode, StartupTimeout
from conformqa.runner import CaseResult, CaseStatus, SuiteResult, TestOutcome
from conformqa.suites import TestSelection
from conformqa.version import SPEC_VERSION, __version__

from conftest import write_integration


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def invoke(runner: CliRunner, project_dir: Path, *args: str):
    return runner.invoke(cli, ["--project-dir", str(project_dir), *args])


def raised(result) -> ConformQAError:
    """The ConformQAError behind a failed command."""
    assert isinstance(result.exception, SystemExit)
    error = result.exception.__cause__
    assert isinstance(error, ConformQAError)
    return error


class TestGroup:
    """Tests for the top-level group."""

    def test_version(self, runner: CliRunner):
        """Test --version prints the CLI and contract versions."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert f"conformqa {__version__} (contract: {SPEC_VERSION})" in result.output

    def test_help_lists_commands(self, runner: CliRunner):
        """Test every command is registered."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("init", "run-docker", "test-echo", "test-library", "test-all", "publish", "doctor"):
            assert command in result.output


class TestConfigErrors:
    """Tests for configuration failures before anything is spawned."""

    @pytest.mark.parametrize("command", ["run-docker", "test-echo", "test-library", "test-all", "publish"])
    def test_missing_config(self, runner: CliRunner, tmp_path: Path, command: str):
        """Test every command exits 2 without integration.yml."""
        with patch("conformqa.cli.commands.run_invocation") as run:
            result = invoke(runner, tmp_path, command)

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert raised(result).message.startswith("integration.yml not found")
        run.assert_not_called()

    def test_version_mismatch(self, runner: CliRunner, tmp_path: Path):
        """Test a contract mismatch exits 2 with the upgrade hint."""
        write_integration(tmp_path, spec_version="0.0.1")

        with patch("conformqa.cli.commands.run_invocation") as run:
            result = invoke(runner, tmp_path, "test-all")

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "Please update the CLI" in raised(result).message
        run.assert_not_called()


class TestTestCommands:
    """Tests for test-echo, test-library and test-all."""

    @pytest.mark.parametrize(
        "returned, expected",
        [(ExitCode.SUCCESS, 0), (ExitCode.TEST_FAILURE, 1), (ExitCode.INTERRUPTED, 130)],
    )
    def test_exit_code_passthrough(self, runner: CliRunner, tmp_path: Path, returned: ExitCode, expected: int):
        """Test the invocation's exit code becomes the process exit code."""
        write_integration(tmp_path)

        with patch("conformqa.cli.commands.run_invocation", return_value=returned):
            result = invoke(runner, tmp_path, "test-echo")

        assert result.exit_code == expected

    @pytest.mark.parametrize(
        "error, expected",
        [(BuildFailure(returncode=1), 3), (StartupTimeout(port=4000), 4)],
    )
    def test_lifecycle_errors(self, runner: CliRunner, tmp_path: Path, error, expected: int):
        """Test build and startup failures map to their exit codes."""
        write_integration(tmp_path)

        with patch("conformqa.cli.commands.run_invocation", side_effect=error):
            result = invoke(runner, tmp_path, "test-all")

        assert result.exit_code == expected
        assert raised(result) is error

    def test_before_tests_run_first(self, runner: CliRunner, tmp_path: Path):
        """Test before_tests commands finish before the container flow starts."""
        write_integration(tmp_path, before_tests=["touch before.txt"])
        seen: list[bool] = []

        def fake_run(flow):
            seen.append((tmp_path / "before.txt").exists())
            return ExitCode.SUCCESS

        with patch("conformqa.cli.commands.run_invocation", side_effect=fake_run):
            result = invoke(runner, tmp_path, "test-echo")

        assert result.exit_code == 0
        assert seen == [True]

    def test_before_tests_failure_stops(self, runner: CliRunner, tmp_path: Path):
        """Test a failing before_tests command exits 5 and never builds."""
        write_integration(tmp_path, before_tests=["exit 4"])

        with patch("conformqa.cli.commands.run_invocation") as run:
            result = invoke(runner, tmp_path, "test-echo")

        assert result.exit_code == ExitCode.COMMAND_FAILED
        run.assert_not_called()

    def test_flow_wires_selection_port_and_junit(self, runner: CliRunner, tmp_path: Path):
        """Test the real flow passes the selection and port, and writes JUnit XML."""
        write_integration(tmp_path)
        outcome = TestOutcome(
            suites=[
                SuiteResult(
                    "library",
                    "documenting library connects to Optic",
                    [CaseResult("library", "finds one query parameter", CaseStatus.FAILED, message="boom")],
                )
            ]
        )
        junit = tmp_path / "reports" / "junit.xml"

        with (
            patch("conformqa.cli.commands.LifecycleOrchestrator") as orchestrator_cls,
            patch("conformqa.cli.commands.TestRunnerAdapter") as adapter_cls,
            patch("conformqa.cli.commands.LogMultiplexer.close") as close,
        ):
            service = MagicMock(base_url="http://localhost:4100")
            orchestrator_cls.return_value.build_and_run = AsyncMock(return_value=service)
            adapter_cls.return_value.run = AsyncMock(return_value=outcome)

            result = invoke(runner, tmp_path, "test-library", "--port", "4100", "--junit", str(junit))

        assert result.exit_code == ExitCode.TEST_FAILURE
        config, port = orchestrator_cls.return_value.build_and_run.call_args.args
        assert config.slug == "sample-integration"
        assert port == 4100
        adapter_cls.return_value.run.assert_awaited_once_with(TestSelection(include_library=True), service)
        assert junit.exists()
        assert "finds one query parameter" in junit.read_text()
        close.assert_called_once()

    def test_default_port(self, runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """Test the port falls back to the configured default."""
        monkeypatch.setenv("CONFORMQA_DEFAULT_PORT", "4555")
        write_integration(tmp_path)

        with (
            patch("conformqa.cli.commands.LifecycleOrchestrator") as orchestrator_cls,
            patch("conformqa.cli.commands.TestRunnerAdapter") as adapter_cls,
        ):
            orchestrator_cls.return_value.build_and_run = AsyncMock(return_value=MagicMock())
            adapter_cls.return_value.run = AsyncMock(return_value=TestOutcome())

            result = invoke(runner, tmp_path, "test-all")

        assert result.exit_code == 0
        assert orchestrator_cls.return_value.build_and_run.call_args.args[1] == 4555


class TestRunDocker:
    """Tests for run-docker."""

    def test_interrupt_exit_code(self, runner: CliRunner, tmp_path: Path):
        """Test Ctrl+C during run-docker exits 130."""
        write_integration(tmp_path)

        with patch("conformqa.cli.commands.run_invocation", return_value=ExitCode.INTERRUPTED):
            result = invoke(runner, tmp_path, "run-docker")

        assert result.exit_code == 130

    def test_container_exit_ends_command(self, runner: CliRunner, tmp_path: Path):
        """Test run-docker returns once the container exits on its own."""
        write_integration(tmp_path)

        with (
            patch("conformqa.cli.commands.LifecycleOrchestrator") as orchestrator_cls,
            patch("conformqa.cli.commands.LogMultiplexer.close") as close,
        ):
            service = MagicMock(base_url="http://localhost:4000")
            service.wait = AsyncMock(return_value=0)
            orchestrator_cls.return_value.build_and_run = AsyncMock(return_value=service)

            result = invoke(runner, tmp_path, "run-docker")

        assert result.exit_code == 0
        assert "Container exited with code 0" in result.output
        close.assert_called_once()


class TestPublish:
    """Tests for publish."""

    def test_no_commands(self, runner: CliRunner, tmp_path: Path):
        """Test publish without commands exits 2."""
        write_integration(tmp_path)

        result = invoke(runner, tmp_path, "publish")

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert raised(result).message == "No publish commands specified."

    def test_runs_in_order(self, runner: CliRunner, tmp_path: Path):
        """Test publish commands run in order in the project directory."""
        write_integration(tmp_path, publish=["echo one >> log.txt", "echo two >> log.txt"])

        result = invoke(runner, tmp_path, "publish")

        assert result.exit_code == 0
        assert (tmp_path / "log.txt").read_text().split() == ["one", "two"]
        assert "$ echo one >> log.txt" in result.output

    def test_stops_at_failure(self, runner: CliRunner, tmp_path: Path):
        """Test a failing publish command exits 5 and later commands do not run."""
        write_integration(tmp_path, publish=["exit 3", "touch never.txt"])

        result = invoke(runner, tmp_path, "publish")

        assert result.exit_code == ExitCode.COMMAND_FAILED
        assert not (tmp_path / "never.txt").exists()


class TestInit:
    """Tests for init."""

    def test_creates_project(self, runner: CliRunner, tmp_path: Path):
        """Test init writes a loadable example integration."""
        result = invoke(runner, tmp_path, "init")

        assert result.exit_code == 0
        output = tmp_path / "output"
        for name in ("integration.yml", "Dockerfile", "server.py", "README.md"):
            assert (output / name).is_file()

    def test_custom_output_and_slug(self, runner: CliRunner, tmp_path: Path):
        """Test --output and --slug are honoured."""
        result = invoke(runner, tmp_path, "init", "--output", "svc", "--slug", "my-svc")

        assert result.exit_code == 0
        assert "slug: my-svc" in (tmp_path / "svc" / "integration.yml").read_text()

    def test_refuses_existing_directory(self, runner: CliRunner, tmp_path: Path):
        """Test init does not overwrite an existing directory."""
        (tmp_path / "output").mkdir()

        result = invoke(runner, tmp_path, "init")

        assert result.exit_code == ExitCode.CONFIG_ERROR
        error = raised(result)
        assert isinstance(error, ConfigurationError)
        assert "already exists" in error.message
        assert not (tmp_path / "output" / "integration.yml").exists()
