"""
    ConsoleErrorHandler (générique, configurable)
"""
import sys
from typing import Dict, Optional

from fluent_shell.errors.base import ErrorHandler
from fluent_shell.errors.exceptions import (ApplicationError,
                                            CommandCancelledError,
                                            CommandNotFoundError,
                                            ConfigurationError,
                                            ExecutionFailedError,
                                            SpawnError)

DEFAULT_SOLUTIONS: Dict[type, str] = {
    CommandNotFoundError: (
        "Installez l'exécutable ou vérifiez le PATH "
        "et les chemins personnalisés."
    ),
    SpawnError: "Vérifiez les permissions d'exécution.",
    ExecutionFailedError: (
        "Consultez stderr ci-dessus, ou utilisez with_no_validation() "
        "pour inspecter le résultat."
    ),
    CommandCancelledError: "Augmentez le timeout si la commande est lente.",
    ConfigurationError: "Vérifiez votre fichier de configuration.",
}


class ConsoleErrorHandler(ErrorHandler):
    """Handler pour afficher les erreurs dans la console.

    Distingue les erreurs connues (ApplicationError) des erreurs
    inattendues, et affiche un message de solution adapté au type
    d'erreur. La première classe de solutions compatible, dans
    l'ordre du dictionnaire, est retenue.
    """

    def __init__(
        self,
        base_error_type: type = ApplicationError,
        solutions: Optional[Dict[type, str]] = None,
    ) -> None:
        """Initialise le handler console.

        Args:
            base_error_type: Classe de base pour distinguer erreurs
                connues/inconnues (défaut: ApplicationError).
            solutions: Dictionnaire {TypeException: "message solution"}
                prioritaire sur les solutions par défaut.
        """
        self.base_error_type = base_error_type
        self.solutions: Dict[type, str] = dict(solutions or {})
        for error_type, message in DEFAULT_SOLUTIONS.items():
            self.solutions.setdefault(error_type, message)

    def handle(self, error: Exception) -> None:
        """Affiche l'erreur sur stderr avec des messages utilisateur."""
        if isinstance(error, self.base_error_type):
            self._handle_known_error(error)
        else:
            self._handle_unknown_error(error)

    def _solution_for(self, error: Exception) -> str:
        for error_type, message in self.solutions.items():
            if isinstance(error, error_type):
                return message
        return "Voir les suggestions ci-dessus."

    def _handle_known_error(self, error: Exception) -> None:
        print(f"\n🛑 {type(error).__name__}: {error}", file=sys.stderr)
        print(
            f"\n🔧 Solution : {self._solution_for(error)}",
            file=sys.stderr,
        )

    def _handle_unknown_error(self, error: Exception) -> None:
        print(f"\n💥 Erreur inattendue: {error}", file=sys.stderr)
        print(f"Type: {type(error).__name__}", file=sys.stderr)
        print(
            "\n📋 Cela peut être un bug. Veuillez ouvrir une issue "
            "avec ces informations.",
            file=sys.stderr,
        )
