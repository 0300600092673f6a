"""Module de logging."""

from fluent_shell.logging.base import Logger
from fluent_shell.logging.file_logger import FileLogger

__all__ = [
    "Logger",
    "FileLogger",
]
