"""Module de configuration."""

from fluent_shell.config.loader import ConfigLoader, FileConfigLoader
from fluent_shell.config.settings import (
    LoggingSettings,
    ShellSettings,
    load_settings,
)

__all__ = [
    "ConfigLoader",
    "FileConfigLoader",
    "LoggingSettings",
    "ShellSettings",
    "load_settings",
]
