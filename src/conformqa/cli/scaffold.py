"""Project scaffolding for ``conformqa init``."""

from __future__ import annotations

import logging
from pathlib import Path

from conformqa.cli.templates import TEMPLATE_FILES
from conformqa.errors import ConfigurationError, ErrorContext
from conformqa.version import SPEC_VERSION

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "output"
DEFAULT_SLUG = "example-integration"


def render_templates(slug: str, collector_port: int) -> dict[str, str]:
    """Return file name -> rendered content for the example integration."""
    values = {"spec_version": SPEC_VERSION, "slug": slug, "collector_port": collector_port}
    return {name: template.format(**values) for name, template in TEMPLATE_FILES.items()}


def create_project(
    output: Path,
    slug: str = DEFAULT_SLUG,
    collector_port: int = 30333,
) -> list[Path]:
    """Write the example integration into ``output``.

    Raises:
        ConfigurationError: If ``output`` already exists.
    """
    if output.exists():
        raise ConfigurationError(
            message=f"{output} already exists, refusing to overwrite it",
            context=ErrorContext(source="helper", extra={"output": str(output)}),
            suggestions=["Pass --output with a new directory name", f"Remove {output} first"],
        )

    output.mkdir(parents=True)
    written = []
    for name, content in render_templates(slug, collector_port).items():
        path = output / name
        path.write_text(content, encoding="utf-8")
        written.append(path)
        logger.debug(f"Wrote {path}")
    return written


__all__ = ["DEFAULT_OUTPUT", "DEFAULT_SLUG", "create_project", "render_templates"]
