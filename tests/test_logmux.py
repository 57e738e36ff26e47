"""Tests for LogMultiplexer output formatting."""

from __future__ import annotations

import asyncio

import pytest

from conformqa.runtime import LogMultiplexer
from conformqa.runtime.logmux import DEFAULT_STYLE, TAG_STYLES

from conftest import FakeHandle, output_of


class TestFormatLine:
    """Tests for format_line."""

    def test_blank_lines_dropped(self, mux: LogMultiplexer):
        """Test whitespace-only lines produce nothing."""
        assert mux.format_line("helper", "") is None
        assert mux.format_line("helper", "   \t\n") is None

    def test_text_is_trimmed(self, mux: LogMultiplexer):
        """Test surrounding whitespace is removed."""
        line = mux.format_line("helper", "  hello  \n")
        assert line.endswith(" hello")

    def test_markup_is_escaped(self, mux: LogMultiplexer):
        """Test rich markup in process output is escaped."""
        line = mux.format_line("echo-server", "[bold]not bold[/bold]")
        assert "\\[bold]" in line

    def test_error_lines_use_error_style(self, mux: LogMultiplexer):
        """Test error lines are wrapped in the red style."""
        assert "[red]" in mux.format_line("echo-server", "failed", error=True)
        assert "[red]" not in mux.format_line("echo-server", "fine")


class TestStyles:
    """Tests for per-tag colours."""

    @pytest.mark.parametrize("tag", ["docker-build", "echo-server", "test-runner", "helper"])
    def test_known_tags_have_distinct_styles(self, tag: str):
        """Test each built-in tag has its own style."""
        assert LogMultiplexer.style_for(tag) == TAG_STYLES[tag]
        assert len(set(TAG_STYLES.values())) == len(TAG_STYLES)

    def test_unknown_tag_gets_default(self):
        """Test an unregistered tag falls back to the default style."""
        assert LogMultiplexer.style_for("something-else") == DEFAULT_STYLE


class TestEmit:
    """Tests for emit and attach."""

    def test_emit_labels_line(self, mux: LogMultiplexer):
        """Test output reads [tag] text."""
        mux.emit("helper", "Running Docker Build...")
        assert output_of(mux) == "[helper] Running Docker Build...\n"

    def test_literal_brackets_survive(self, mux: LogMultiplexer):
        """Test bracketed text is printed literally."""
        mux.emit("echo-server", "[bold]GET /[/bold] 200")
        assert "[echo-server] [bold]GET /[/bold] 200" in output_of(mux)

    def test_multiline_text_split(self, mux: LogMultiplexer):
        """Test each line gets its own label and blank lines vanish."""
        mux.emit("docker-build", "Step 1\n\n   \nStep 2\n")
        assert output_of(mux) == "[docker-build] Step 1\n[docker-build] Step 2\n"

    def test_empty_text_prints_nothing(self, mux: LogMultiplexer):
        """Test emitting an empty string writes nothing."""
        mux.emit("helper", "")
        assert output_of(mux) == ""

    @pytest.mark.asyncio
    async def test_attach_forwards_events(self, mux: LogMultiplexer):
        """Test attached handle output is printed in arrival order."""
        handle = FakeHandle(
            "echo-server",
            returncode=0,
            lines=[("stdout", "listening on 4000\n"), ("stderr", "warning: slow\n"), ("stdout", "\n")],
        )

        mux.attach(handle)
        await mux.drain(timeout=1.0)

        assert output_of(mux) == "[echo-server] listening on 4000\n[echo-server] warning: slow\n"

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self, mux: LogMultiplexer):
        """Test close() cancels consumers that are still waiting."""

        class Endless:
            tag = "echo-server"

            async def events(self):
                await asyncio.sleep(10)
                yield None

        task = mux.attach(Endless())
        mux.close()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()
