"""Harness settings loaded from the environment."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from conformqa.errors import ConfigurationError, ErrorContext


class HarnessSettings(BaseSettings):
    """Tunables for the harness itself (not the integration under test).

    Every field can be overridden with a ``CONFORMQA_`` environment
    variable, e.g. ``CONFORMQA_PROBE_TIMEOUT=60``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONFORMQA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_dir: Path = Field(default_factory=Path.cwd)
    container_runtime: str = "docker"
    default_port: int = 4000

    # Readiness probe
    probe_host: str = "localhost"
    probe_timeout: float = 20.0
    probe_interval: float = 0.25
    settle_delay: float = 0.5

    # Conformance suites
    request_timeout: float = 100.0
    collector_host: str = "0.0.0.0"
    collector_port: int = 30333
    sample_timeout: float = 5.0

    # Container networking
    host_alias: str = "testhost"
    host_address: str | None = None

    verbose: bool = False

    @field_validator("default_port", "collector_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {v}")
        return v

    @field_validator("probe_timeout", "probe_interval", "request_timeout", "sample_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("settle_delay")
    @classmethod
    def validate_settle_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("settle_delay cannot be negative")
        return v


def load_settings(**overrides: Any) -> HarnessSettings:
    """Build settings from env vars, applying explicit overrides on top.

    Priority: CLI args > env vars > defaults. ``None`` overrides are ignored
    so unset CLI options fall through to the environment.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return HarnessSettings(**values)
    except ValueError as e:
        raise ConfigurationError(
            message=f"Invalid harness settings: {e}",
            context=ErrorContext(source="helper"),
            cause=e,
        ) from e
