"""Module de gestion des erreurs."""

from fluent_shell.errors.base import ErrorHandler, ErrorHandlerChain
from fluent_shell.errors.exceptions import (ApplicationError,
                                            ConfigurationError,
                                            FileConfigurationError,
                                            CommandPathError,
                                            ShellError,
                                            SpawnError,
                                            CommandNotFoundError,
                                            ExecutionFailedError,
                                            CommandCancelledError)
from fluent_shell.errors.console_handler import ConsoleErrorHandler
from fluent_shell.errors.logger_handler import LoggerErrorHandler


__all__ = [
    "ApplicationError",
    "ConfigurationError",
    "FileConfigurationError",
    "CommandPathError",
    "ShellError",
    "SpawnError",
    "CommandNotFoundError",
    "ExecutionFailedError",
    "CommandCancelledError",
    "ErrorHandler",
    "ConsoleErrorHandler",
    "LoggerErrorHandler",
    "ErrorHandlerChain",
]
