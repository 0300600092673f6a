"""Lignes de sortie et résultat capturé d'une exécution.

Ce module définit :
    - OutputLine : Ligne immuable étiquetée par son flux d'origine.
    - CommandOutput : Séquence ordonnée de lignes et code retour,
      avec des vues stdout/stderr/combined calculées à la demande.

L'ordre des lignes est l'ordre d'observation du moteur : les deux
pipes stdout et stderr sont tamponnés indépendamment par le système,
l'entrelacement entre flux est donc une approximation de l'ordre
réel de production. Les vues stdout et stderr, elles, conservent
exactement l'ordre de chaque flux.
"""

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class OutputLine:
    """Ligne de sortie d'un processus.

    Attributes:
        text: Contenu de la ligne, sans fin de ligne.
        is_error: True si la ligne vient de stderr.
        timestamp: Horodatage UTC de l'observation (auto-généré).
    """

    text: str
    is_error: bool = False
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


def _split_lines(text: str) -> List[str]:
    return [
        entry for entry in _LINE_BREAK.split(text) if entry.strip()
    ]


class CommandOutput:
    """Sortie complète d'une exécution en mode capture.

    Construit une seule fois par le moteur puis jamais modifié.
    Les vues sont matérialisées au premier accès et mémorisées :
    deux accès successifs retournent le même objet.

    Attributes:
        exit_code: Code de retour du processus (dernière étape
            pour un pipeline).
    """

    def __init__(
        self,
        lines: Optional[Iterable[OutputLine]] = None,
        exit_code: int = 0,
    ) -> None:
        """Initialise la sortie.

        Args:
            lines: Lignes dans l'ordre d'observation.
            exit_code: Code de retour.
        """
        self._lines: Tuple[OutputLine, ...] = tuple(lines or ())
        self.exit_code = exit_code
        self._lock = threading.Lock()
        self._stdout: Optional[str] = None
        self._stderr: Optional[str] = None
        self._combined: Optional[str] = None

    @classmethod
    def empty(cls, exit_code: int = 0) -> "CommandOutput":
        """Crée une sortie vide (commande nulle ou sans sortie)."""
        return cls((), exit_code)

    @classmethod
    def from_text(
        cls, stdout: str, stderr: str = "", exit_code: int = 0
    ) -> "CommandOutput":
        """Reconstruit une sortie depuis deux chaînes.

        Les lignes stdout précèdent les lignes stderr ; les lignes
        vides sont ignorées.
        """
        lines = [OutputLine(text, False) for text in _split_lines(stdout)]
        lines.extend(
            OutputLine(text, True) for text in _split_lines(stderr)
        )
        return cls(lines, exit_code)

    @property
    def lines(self) -> Tuple[OutputLine, ...]:
        """Lignes dans l'ordre d'observation du moteur."""
        return self._lines

    @property
    def success(self) -> bool:
        """True si le code retour est 0."""
        return self.exit_code == 0

    @property
    def stdout(self) -> str:
        """Lignes stdout jointes par des retours à la ligne."""
        if self._stdout is None:
            with self._lock:
                if self._stdout is None:
                    self._stdout = "\n".join(
                        line.text for line in self._lines
                        if not line.is_error
                    )
        return self._stdout

    @property
    def stderr(self) -> str:
        """Lignes stderr jointes par des retours à la ligne."""
        if self._stderr is None:
            with self._lock:
                if self._stderr is None:
                    self._stderr = "\n".join(
                        line.text for line in self._lines
                        if line.is_error
                    )
        return self._stderr

    @property
    def combined(self) -> str:
        """Toutes les lignes, dans l'ordre d'observation."""
        if self._combined is None:
            with self._lock:
                if self._combined is None:
                    self._combined = "\n".join(
                        line.text for line in self._lines
                    )
        return self._combined

    def get_lines(self) -> List[str]:
        """Découpe la vue combinée en lignes non vides (LF ou CRLF)."""
        return _split_lines(self.combined)

    def get_stdout_lines(self) -> List[str]:
        """Découpe la vue stdout en lignes non vides."""
        return _split_lines(self.stdout)

    def get_stderr_lines(self) -> List[str]:
        """Découpe la vue stderr en lignes non vides."""
        return _split_lines(self.stderr)

    def __repr__(self) -> str:
        return (
            f"CommandOutput(exit_code={self.exit_code}, "
            f"lines={len(self._lines)})"
        )
