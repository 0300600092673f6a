"""Structures de données pour l'exécution de commandes système.

Ce module définit :
    - ValidationPolicy : Comportement sur code retour non nul.
    - ConsumptionMode : Stratégie de traitement des flux standard.
    - StreamSource : Flux à relayer en mode lecture ligne à ligne.
    - LaunchDescriptor : Description immuable d'une invocation.
    - ExecutionResult : Code retour et durée (modes sans capture).
"""

import shlex
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class ValidationPolicy(Enum):
    """Politique appliquée à un code retour non nul."""

    THROW = "throw"
    TOLERATE = "tolerate"


class ConsumptionMode(Enum):
    """Mode de consommation des flux d'un processus.

    CONSOLE : stdout/stderr recopiés sur la console, code retour seul.
    CAPTURE : capture silencieuse, retourne un CommandOutput.
    RUN_AND_CAPTURE : CONSOLE et CAPTURE simultanément.
    PASSTHROUGH : flux standard hérités (éditeurs, REPL).
    SELECT : stdout capturé, stderr laissé à la console (fzf).
    FILE : stdout écrit dans un fichier au fil de l'eau.
    """

    CONSOLE = "console"
    CAPTURE = "capture"
    RUN_AND_CAPTURE = "run_and_capture"
    PASSTHROUGH = "passthrough"
    SELECT = "select"
    FILE = "file"


class StreamSource(Enum):
    """Flux relayé par ExecutionEngine.stream()."""

    STDOUT = "stdout"
    STDERR = "stderr"
    COMBINED = "combined"


@dataclass(frozen=True)
class LaunchDescriptor:
    """Description immuable d'une invocation d'exécutable.

    Un exécutable vide ou composé d'espaces désigne une commande
    nulle : le moteur la traite comme un succès sans rien lancer.

    Attributes:
        executable: Nom ou chemin du programme.
        arguments: Arguments, dans l'ordre.
        working_directory: Répertoire de travail (None = courant).
        environment: Variables à définir ; une valeur None retire
            la variable de l'environnement hérité.
        standard_input: Texte envoyé sur stdin (étape 0 seulement).
        validation: Politique sur code retour non nul.
    """

    executable: str
    arguments: Tuple[str, ...] = ()
    working_directory: Optional[str] = None
    environment: Mapping[str, Optional[str]] = field(
        default_factory=dict
    )
    standard_input: Optional[str] = None
    validation: ValidationPolicy = ValidationPolicy.THROW

    def __post_init__(self) -> None:
        object.__setattr__(self, "executable", self.executable or "")
        object.__setattr__(self, "arguments", tuple(self.arguments))
        object.__setattr__(
            self, "environment", MappingProxyType(dict(self.environment))
        )

    @property
    def is_noop(self) -> bool:
        """True si l'exécutable est vide ou blanc."""
        return not self.executable.strip()

    def to_command_string(self) -> str:
        """Rend l'invocation sous forme de ligne de commande shell."""
        return shlex.join([self.executable, *self.arguments])


@dataclass(frozen=True)
class ExecutionResult:
    """Résultat d'une exécution sans capture de sortie.

    Attributes:
        command: Commande exécutée, rendue en chaîne.
        exit_code: Code de retour (dernière étape d'un pipeline).
        start_time: Début de l'exécution (UTC).
        exit_time: Fin de l'exécution (UTC).
    """

    command: str
    exit_code: int
    start_time: datetime
    exit_time: datetime

    @property
    def run_time(self) -> timedelta:
        """Durée de l'exécution."""
        return self.exit_time - self.start_time

    @property
    def success(self) -> bool:
        """True si le code retour est 0."""
        return self.exit_code == 0
