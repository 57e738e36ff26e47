"""Configuration management for conformqa."""

from conformqa.config.loader import (
    CONFIG_FILENAMES,
    IntegrationConfig,
    find_config_file,
    load_config,
)
from conformqa.config.settings import HarnessSettings, load_settings

__all__ = [
    "CONFIG_FILENAMES",
    "HarnessSettings",
    "IntegrationConfig",
    "find_config_file",
    "load_config",
    "load_settings",
]
