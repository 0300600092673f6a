"""Formateurs pour les messages d'exécution de commandes.

Ce module fournit une hiérarchie de formateurs pour annoncer le
début, la fin et l'annulation d'une exécution, différemment selon
le contexte (fichier de log ou console). Les lignes produites par
les processus enfants ne passent jamais par ces formateurs.

Classes :
    CommandFormatter : Interface abstraite de formatage.
    PlainCommandFormatter : Texte brut (logs fichier).
    AnsiCommandFormatter : Codes ANSI colorés (console).

Example :
    Annonces colorées sur la console en plus des logs :

        engine = ExecutionEngine(
            logger=logger,
            console_formatter=AnsiCommandFormatter(),
        )

Note :
    AnsiCommandFormatter vérifie que stderr est un terminal (TTY)
    avant d'émettre des codes ANSI, les annonces console étant
    écrites sur stderr.
"""

import sys
from abc import ABC, abstractmethod


class CommandFormatter(ABC):
    """Interface abstraite pour formater les messages de commande."""

    @abstractmethod
    def format_start(self, command: str, mode: str) -> str:
        """Formate le message de début d'exécution.

        Args:
            command: Commande rendue en chaîne.
            mode: Nom du mode de consommation (ex: "capture").

        Returns:
            Message formaté prêt à l'affichage.
        """
        pass

    @abstractmethod
    def format_finish(
        self, command: str, exit_code: int, duration: float
    ) -> str:
        """Formate le message de fin d'exécution.

        Args:
            command: Commande rendue en chaîne.
            exit_code: Code de retour.
            duration: Durée en secondes.

        Returns:
            Message formaté prêt à l'affichage.
        """
        pass

    @abstractmethod
    def format_cancelled(self, command: str, reason: str) -> str:
        """Formate le message d'annulation.

        Args:
            command: Commande rendue en chaîne.
            reason: "timeout" ou "signal".

        Returns:
            Message formaté prêt à l'affichage.
        """
        pass


class PlainCommandFormatter(CommandFormatter):
    """Formateur texte brut pour les logs fichier.

    Example :
        [capture] Exécution : git status
        [code 0] Terminé en 0.02s : git status
        [timeout] Annulé : sleep 10
    """

    def format_start(self, command: str, mode: str) -> str:
        """Formate le début d'exécution avec le mode en préfixe."""
        return f"[{mode}] Exécution : {command}"

    def format_finish(
        self, command: str, exit_code: int, duration: float
    ) -> str:
        """Formate la fin d'exécution avec le code retour."""
        return f"[code {exit_code}] Terminé en {duration:.2f}s : {command}"

    def format_cancelled(self, command: str, reason: str) -> str:
        """Formate l'annulation avec sa cause en préfixe."""
        return f"[{reason}] Annulé : {command}"


class AnsiCommandFormatter(CommandFormatter):
    """Formateur ANSI coloré pour la console.

    Styles ANSI :
        début    → \\033[0;36m (cyan)
        succès   → \\033[0;32m (vert)
        échec    → \\033[1;31m (rouge gras)
        annulé   → \\033[1;33m (jaune-or gras)
        reset    → \\033[0m
    """

    RESET = "\033[0m"
    START_STYLE = "\033[0;36m"
    SUCCESS_STYLE = "\033[0;32m"
    FAILURE_STYLE = "\033[1;31m"
    CANCEL_STYLE = "\033[1;33m"

    def __init__(self) -> None:
        self._plain = PlainCommandFormatter()

    def _is_tty(self) -> bool:
        """Vérifie si stderr est un terminal interactif (TTY)."""
        return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()

    def _apply_style(self, text: str, style: str) -> str:
        if not self._is_tty():
            return text
        return f"{style}{text}{self.RESET}"

    def format_start(self, command: str, mode: str) -> str:
        """Formate le début d'exécution en cyan."""
        return self._apply_style(
            self._plain.format_start(command, mode), self.START_STYLE
        )

    def format_finish(
        self, command: str, exit_code: int, duration: float
    ) -> str:
        """Formate la fin d'exécution en vert ou en rouge."""
        style = self.SUCCESS_STYLE if exit_code == 0 else self.FAILURE_STYLE
        return self._apply_style(
            self._plain.format_finish(command, exit_code, duration), style
        )

    def format_cancelled(self, command: str, reason: str) -> str:
        """Formate l'annulation en jaune gras."""
        return self._apply_style(
            self._plain.format_cancelled(command, reason),
            self.CANCEL_STYLE,
        )
