"""
    LoggerErrorHandler
"""
from fluent_shell.errors.base import ErrorHandler
from fluent_shell.errors.exceptions import (ApplicationError,
                                            CommandCancelledError,
                                            ExecutionFailedError)
from fluent_shell.logging.base import Logger


class LoggerErrorHandler(ErrorHandler):
    """Handler pour logger les erreurs.

    Enregistre les erreurs via le Logger injecté au constructeur.
    Les annulations sont loguées en avertissement, le reste en erreur.
    """

    def __init__(self, logger: Logger) -> None:
        self.logger = logger

    def handle(self, error: Exception) -> None:
        """Log l'erreur avec différents niveaux selon la gravité.

        Args:
            error: L'exception à logger.
        """
        if isinstance(error, CommandCancelledError):
            self.logger.log_warning(f"{type(error).__name__}: {error}")
        elif isinstance(error, ExecutionFailedError):
            self.logger.log_error(
                f"{type(error).__name__}: étape {error.stage}, "
                f"code {error.exit_code} : {error.command}"
            )
            if error.stderr:
                self.logger.log_error(f"stderr : {error.stderr}")
        elif isinstance(error, ApplicationError):
            self.logger.log_error(f"{type(error).__name__}: {error}")
        else:
            self.logger.log_error(
                f"Erreur inattendue: {type(error).__name__}: {error}"
            )
