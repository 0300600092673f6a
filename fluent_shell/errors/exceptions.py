"""
Exceptions personnalisées de fluent_shell.

Toutes les erreurs héritent de ApplicationError pour s'intégrer
dans la chaîne d'error handlers (ConsoleErrorHandler,
LoggerErrorHandler).
"""
from typing import Optional


class ApplicationError(Exception):
    """Exception de base pour toutes les applications."""
    pass


class ConfigurationError(ApplicationError):
    """Exception de base pour toutes les Configurations."""
    pass


class FileConfigurationError(ConfigurationError):
    """Fichier de configuration absent, illisible ou invalide."""
    pass


class CommandPathError(ConfigurationError):
    """Chemin de substitution d'exécutable invalide."""
    pass


class ShellError(ApplicationError):
    """Exception de base pour toutes les erreurs d'exécution.

    Attributes:
        command: Commande concernée, rendue en chaîne.
    """

    def __init__(self, message: str, command: str = "") -> None:
        super().__init__(message)
        self.command = command


class SpawnError(ShellError):
    """Le système n'a pas pu créer le processus."""
    pass


class CommandNotFoundError(SpawnError):
    """L'exécutable est introuvable."""
    pass


class ExecutionFailedError(ShellError):
    """Le processus s'est terminé avec un code non nul.

    Levée uniquement quand la politique de validation est THROW.

    Attributes:
        command: Étape en échec, rendue en chaîne.
        exit_code: Code de retour de l'étape.
        stderr: Sortie d'erreur capturée (vide si non capturée).
        stage: Index de l'étape en échec dans le pipeline.
    """

    def __init__(
        self,
        command: str,
        exit_code: int,
        stderr: str = "",
        stage: int = 0,
    ) -> None:
        message = f"Code retour {exit_code} : {command}"
        if stderr:
            message = f"{message}\n{stderr}"
        super().__init__(message, command)
        self.exit_code = exit_code
        self.stderr = stderr
        self.stage = stage


class CommandCancelledError(ShellError):
    """L'opération a été annulée avant sa fin naturelle.

    Attributes:
        command: Commande annulée, rendue en chaîne.
        reason: "timeout" ou "signal".
        timeout: Délai écoulé, si l'annulation vient d'un timeout.
    """

    def __init__(
        self,
        command: str,
        reason: str = "signal",
        timeout: Optional[float] = None,
    ) -> None:
        if reason == "timeout":
            message = f"Timeout après {timeout}s : {command}"
        else:
            message = f"Annulée : {command}"
        super().__init__(message, command)
        self.reason = reason
        self.timeout = timeout
