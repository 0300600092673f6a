""" Interfaces abstraites pour la gestion des erreurs"""

import sys
from abc import ABC, abstractmethod


class ErrorHandler(ABC):
    """Interface de base pour les handlers d'erreurs.

    Chaque implémentation concrète définit une stratégie
    de traitement des erreurs (affichage console, logging, etc.).
    """

    @abstractmethod
    def handle(self, error: Exception) -> None:
        """Traite une erreur.

        Args:
            error: L'exception à traiter.
        """
        pass


class ErrorHandlerChain:
    """Diffuse les erreurs à tous les handlers enregistrés.

    Chaque erreur est transmise à tous les handlers dans l'ordre
    d'ajout (ex: console puis logger).
    """

    def __init__(self) -> None:
        self.handlers: list[ErrorHandler] = []

    def add_handler(self, handler: ErrorHandler) -> "ErrorHandlerChain":
        """Ajoute un handler à la chaîne.

        Args:
            handler: Le handler d'erreurs à ajouter.

        Returns:
            La chaîne courante pour le chaînage.
        """
        self.handlers.append(handler)
        return self

    def handle(self, error: Exception) -> None:
        """Fait passer l'erreur à travers tous les handlers."""
        for handler in self.handlers:
            handler.handle(error)

    def handle_and_exit(self, error: Exception, exit_code: int = 1) -> None:
        """Gère l'erreur et termine le programme.

        Pour une ExecutionFailedError, le code de sortie du processus
        enfant est relayé à la place de exit_code.

        Args:
            error: L'exception à traiter avant la sortie.
            exit_code: Code de sortie du programme (défaut: 1).
        """
        self.handle(error)
        child_code = getattr(error, "exit_code", None)
        if isinstance(child_code, int) and child_code > 0:
            exit_code = child_code
        sys.exit(exit_code)
