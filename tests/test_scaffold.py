"""Tests for the example integration written by ``conformqa init``."""

from __future__ import annotations

from pathlib import Path

import pytest

from conformqa.cli.scaffold import create_project, render_templates
from conformqa.cli.templates import TEMPLATE_FILES
from conformqa.config import load_config
from conformqa.errors import ConfigurationError
from conformqa.version import SPEC_VERSION


class TestRenderTemplates:
    """Tests for render_templates."""

    def test_all_files_rendered(self):
        """Test every template produces a file."""
        rendered = render_templates("demo", 30333)
        assert set(rendered) == set(TEMPLATE_FILES)

    def test_server_is_valid_python(self):
        """Test the rendered echo server compiles."""
        source = render_templates("demo", 31000)["server.py"]
        compile(source, "server.py", "exec")
        assert "31000" in source

    def test_server_reads_listening_env(self):
        """Test the echo server reports samples only in listening mode."""
        source = render_templates("demo", 30333)["server.py"]
        assert "OPTIC_SERVER_LISTENING" in source
        assert "OPTIC_SERVER_HOST" in source

    def test_dockerfile_exposes_4000(self):
        """Test the example image serves on the container port."""
        assert "4000" in render_templates("demo", 30333)["Dockerfile"]


class TestCreateProject:
    """Tests for create_project."""

    def test_config_loads(self, tmp_path: Path):
        """Test the written integration.yml passes the contract check."""
        output = tmp_path / "example"
        written = create_project(output, slug="demo-svc")

        assert sorted(path.name for path in written) == sorted(TEMPLATE_FILES)
        config = load_config(output)
        assert config.slug == "demo-svc"
        assert config.spec_version == SPEC_VERSION
        assert config.before_tests == ()

    def test_refuses_existing(self, tmp_path: Path):
        """Test an existing directory is never overwritten."""
        output = tmp_path / "example"
        output.mkdir()
        (output / "keep.txt").write_text("mine")

        with pytest.raises(ConfigurationError):
            create_project(output)

        assert (output / "keep.txt").read_text() == "mine"
        assert not (output / "integration.yml").exists()
