"""Logger fichier pour les annonces du moteur d'exécution.

Le moteur n'écrit jamais la sortie des processus enfants dans le
log : seules les annonces (début, fin, annulation, échec de
lancement) passent par FileLogger.
"""

import logging
import os
from typing import Optional

from fluent_shell.config.settings import LoggingSettings
from fluent_shell.logging.base import Logger


class FileLogger(Logger):
    """
    Logger qui écrit dans un fichier, avec recopie console optionnelle.

    Caractéristiques:
    - Un logger nommé par fichier, réutilisé d'une instance à l'autre
    - Fichier en UTF-8, répertoire parent créé au besoin
    - Flush après chaque enregistrement
    - Pas de propagation vers le logger racine
    - Niveau et format issus de LoggingSettings (INFO si le nom de
      niveau est inconnu)
    """

    def __init__(
        self,
        log_file: str,
        settings: Optional[LoggingSettings] = None,
        console_output: bool = False,
    ) -> None:
        """
        Initialise le logger.

        Args:
            log_file: Chemin du fichier de log
            settings: Section logging des réglages
                (défaut: LoggingSettings())
            console_output: Recopier aussi les messages sur stderr
        """
        self.log_file = log_file
        settings = settings or LoggingSettings()
        level = getattr(logging, settings.level.upper(), logging.INFO)
        if not isinstance(level, int):
            level = logging.INFO

        self.logger = logging.getLogger(f"fluent_shell.{log_file}")
        self.logger.setLevel(level)
        self.logger.propagate = False

        if self.logger.handlers:
            self.handler = self.logger.handlers[0]
            return

        formatter = logging.Formatter(settings.format)
        self.handler = self._attach(
            self._open_file_handler(log_file), level, formatter
        )
        if console_output:
            self._attach(logging.StreamHandler(), level, formatter)

    @staticmethod
    def _open_file_handler(log_file: str) -> logging.FileHandler:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        return logging.FileHandler(log_file, encoding="utf-8")

    def _attach(
        self,
        handler: logging.Handler,
        level: int,
        formatter: logging.Formatter,
    ) -> logging.Handler:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        self.logger.addHandler(handler)
        return handler

    def _write(self, level: int, message: str) -> None:
        self.logger.log(level, message)
        self.handler.flush()

    def log_info(self, message: str) -> None:
        """Log un message d'information."""
        self._write(logging.INFO, message)

    def log_warning(self, message: str) -> None:
        """Log un avertissement."""
        self._write(logging.WARNING, message)

    def log_error(self, message: str) -> None:
        """Log une erreur."""
        self._write(logging.ERROR, message)

    def log_debug(self, message: str) -> None:
        """Log un message de débogage."""
        self._write(logging.DEBUG, message)
