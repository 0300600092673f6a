"""
Fluent Shell - Exécution asynchrone de commandes système.

Modules disponibles:
- commands: Construction et exécution de commandes et de pipelines
  (CommandBuilder, ExecutionEngine, Pipeline, CommandOutput)
- config: Réglages du moteur (ShellSettings, TOML, JSON)
- logging: Gestion des logs (Logger, FileLogger)
- errors: Exceptions et gestionnaires d'erreurs
"""

__version__ = "1.0.0"

from fluent_shell.logging import Logger, FileLogger
from fluent_shell.config import (
    ConfigLoader,
    FileConfigLoader,
    LoggingSettings,
    ShellSettings,
    load_settings,
)
from fluent_shell.errors import (
    ApplicationError,
    ConfigurationError,
    FileConfigurationError,
    CommandPathError,
    ShellError,
    SpawnError,
    CommandNotFoundError,
    ExecutionFailedError,
    CommandCancelledError,
    ErrorHandler,
    ErrorHandlerChain,
    ConsoleErrorHandler,
    LoggerErrorHandler,
)
from fluent_shell.commands import (
    OutputLine,
    CommandOutput,
    LaunchDescriptor,
    ExecutionResult,
    ValidationPolicy,
    ConsumptionMode,
    StreamSource,
    Pipeline,
    CommandPathResolver,
    CommandFormatter,
    PlainCommandFormatter,
    AnsiCommandFormatter,
    ExecutionEngine,
    CommandBuilder,
    command,
)

__all__ = [
    # Logging
    "Logger",
    "FileLogger",
    # Config
    "ConfigLoader",
    "FileConfigLoader",
    "LoggingSettings",
    "ShellSettings",
    "load_settings",
    # Errors - Exceptions
    "ApplicationError",
    "ConfigurationError",
    "FileConfigurationError",
    "CommandPathError",
    "ShellError",
    "SpawnError",
    "CommandNotFoundError",
    "ExecutionFailedError",
    "CommandCancelledError",
    # Errors - Gestionnaires
    "ErrorHandler",
    "ErrorHandlerChain",
    "ConsoleErrorHandler",
    "LoggerErrorHandler",
    # Commands - Structures de données
    "OutputLine",
    "CommandOutput",
    "LaunchDescriptor",
    "ExecutionResult",
    "ValidationPolicy",
    "ConsumptionMode",
    "StreamSource",
    # Commands - Composition
    "Pipeline",
    "CommandPathResolver",
    # Commands - Formateurs
    "CommandFormatter",
    "PlainCommandFormatter",
    "AnsiCommandFormatter",
    # Commands - Exécution
    "ExecutionEngine",
    "CommandBuilder",
    "command",
]
