"""Résolution "nom de commande -> chemin d'exécutable".

CommandPathResolver permet de substituer un exécutable par un autre
(typiquement un script factice en test) sans modifier d'état global :
chaque moteur reçoit sa propre instance. Sans substitution, le nom
est retourné tel quel et la recherche se fait via le PATH du système.

Example:
    Substitution de fzf par un script de test :

        resolver = CommandPathResolver()
        resolver.set_command_path("fzf", "/tmp/mock-bin/fzf")
        engine = ExecutionEngine(resolver=resolver)
"""

import os
import threading
from typing import Dict, Mapping, Optional

from fluent_shell.errors.exceptions import CommandPathError


class CommandPathResolver:
    """Registre de substitutions de chemins d'exécutables.

    Attributes:
        _paths: Substitutions "commande -> chemin".
        _lock: Verrou protégeant _paths.
    """

    def __init__(
        self, command_paths: Optional[Mapping[str, str]] = None
    ) -> None:
        """Initialise le registre.

        Args:
            command_paths: Substitutions initiales, validées comme
                par set_command_path().

        Raises:
            CommandPathError: Si un chemin initial est invalide.
        """
        self._paths: Dict[str, str] = {}
        self._lock = threading.Lock()
        for command, path in (command_paths or {}).items():
            self.set_command_path(command, path)

    def set_command_path(self, command: str, path: str) -> None:
        """Associe un chemin d'exécutable à une commande.

        Args:
            command: Nom de la commande (ex: "fzf").
            path: Chemin complet de l'exécutable de substitution.

        Raises:
            CommandPathError: Si le chemin n'existe pas ou désigne
                un répertoire.
        """
        if not command or not command.strip():
            raise CommandPathError("Le nom de commande est requis.")
        if not os.path.exists(path):
            raise CommandPathError(
                f"Chemin d'exécutable inexistant : {path}"
            )
        if os.path.isdir(path):
            raise CommandPathError(
                f"Le chemin est un répertoire, pas un exécutable : {path}"
            )
        with self._lock:
            self._paths[command] = path

    def clear_command_path(self, command: str) -> None:
        """Retire la substitution d'une commande, si elle existe."""
        with self._lock:
            self._paths.pop(command, None)

    def reset(self) -> None:
        """Retire toutes les substitutions."""
        with self._lock:
            self._paths.clear()

    def has_custom_path(self, command: str) -> bool:
        """Indique si une substitution existe pour la commande."""
        with self._lock:
            return command in self._paths

    @property
    def all_command_paths(self) -> Dict[str, str]:
        """Copie des substitutions courantes."""
        with self._lock:
            return dict(self._paths)

    def resolve(self, command: str) -> str:
        """Retourne le chemin substitué, ou la commande inchangée."""
        with self._lock:
            return self._paths.get(command, command)
