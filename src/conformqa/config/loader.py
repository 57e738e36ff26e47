"""Integration configuration loading and contract-version validation."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from conformqa.errors import (
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    SpecVersionMismatchError,
)
from conformqa.version import SPEC_VERSION

CONFIG_FILENAMES = ("integration.yml", "integration.yaml")

# Docker repository path component: lowercase alphanumerics and separators.
_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:[._-][a-z0-9]+)*$")


class IntegrationConfig(BaseModel):
    """The integration under test, as declared in ``integration.yml``.

    Immutable once loaded. The image name is derived from the slug.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    spec_version: str
    slug: str
    before_tests: tuple[str, ...] = ()
    publish: tuple[str, ...] = ()
    project_dir: Path = Field(default_factory=Path.cwd)

    @field_validator("spec_version", mode="before")
    @classmethod
    def coerce_spec_version(cls, v: Any) -> str:
        return str(v)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        if not _SLUG_PATTERN.match(v):
            raise ValueError(
                f"slug '{v}' must be lowercase letters, digits, '.', '_' or '-' "
                "so it can name a Docker image"
            )
        return v

    @field_validator("before_tests", "publish", mode="before")
    @classmethod
    def coerce_commands(cls, v: Any) -> tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,)
        if isinstance(v, (list, tuple)):
            return tuple(str(item) for item in v)
        raise ValueError("must be a command string or a list of command strings")

    @property
    def image_name(self) -> str:
        return f"test/{self.slug}"


def find_config_file(project_dir: Path) -> Path | None:
    """Return the first integration config file present in ``project_dir``."""
    for name in CONFIG_FILENAMES:
        candidate = project_dir / name
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            message=f"Failed to parse YAML configuration: {e}",
            context=ErrorContext(source="helper", extra={"path": str(path)}),
            cause=e,
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"Configuration must be a YAML mapping, got {type(data).__name__}",
            context=ErrorContext(source="helper", extra={"path": str(path)}),
        )
    return data


def load_config(
    project_dir: str | Path | None = None,
    expected_version: str = SPEC_VERSION,
) -> IntegrationConfig:
    """Load ``integration.yml`` from the project directory.

    The contract version is checked before anything else is validated, so
    a mismatch always fails fast with an upgrade hint.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid.
        SpecVersionMismatchError: If ``spec_version`` differs from the CLI's.
    """
    project_path = Path(project_dir) if project_dir is not None else Path.cwd()
    project_path = project_path.resolve()

    config_path = find_config_file(project_path)
    if config_path is None:
        raise ConfigurationError(
            message=f"integration.yml not found in {project_path}",
            error_code=ErrorCode.CONFIG_NOT_FOUND,
            context=ErrorContext(source="helper", extra={"project_dir": str(project_path)}),
        )

    raw = _load_yaml(config_path)

    found = raw.get("spec_version")
    if found is None or str(found) != expected_version:
        raise SpecVersionMismatchError(
            found=None if found is None else str(found),
            expected=expected_version,
            context=ErrorContext(source="helper", extra={"path": str(config_path)}),
        )

    try:
        return IntegrationConfig(**{**raw, "project_dir": project_path})
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(
            message=f"Invalid integration.yml: {details}",
            context=ErrorContext(source="helper", extra={"path": str(config_path)}),
            cause=e,
        ) from e
