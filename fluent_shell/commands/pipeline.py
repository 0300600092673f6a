"""Composition de commandes en pipeline.

Un Pipeline est une suite immuable de LaunchDescriptor où la sortie
standard de l'étape i alimente l'entrée standard de l'étape i+1.
Un pipeline d'une seule étape est une exécution simple ; un pipeline
sans étape est une commande nulle.

La composition ne lève jamais d'erreur : une étape à l'exécutable
vide rend tout le pipeline nul, ce qui permet d'enchaîner sans
vérification des commandes construites de façon conditionnelle.

Example:
    Construction d'un pipeline "echo | sort" :

        pipeline = Pipeline.compose(
            LaunchDescriptor("echo", ("zebra\\napple",)),
            LaunchDescriptor("sort"),
        )
        pipeline.to_command_string()
        # "echo 'zebra\\napple' | sort"
"""

from dataclasses import dataclass
from typing import Tuple

from fluent_shell.commands.base import LaunchDescriptor

NOOP_COMMAND_STRING = "[aucune commande]"


@dataclass(frozen=True)
class Pipeline:
    """Suite ordonnée d'étapes reliées par des pipes.

    Attributes:
        stages: Étapes, de la première à la dernière.
    """

    stages: Tuple[LaunchDescriptor, ...] = ()

    @classmethod
    def of(cls, descriptor: LaunchDescriptor) -> "Pipeline":
        """Crée un pipeline d'une étape (nul si l'étape est nulle)."""
        return cls.compose(descriptor)

    @classmethod
    def compose(cls, *descriptors: LaunchDescriptor) -> "Pipeline":
        """Chaîne des étapes dans l'ordre donné.

        Returns:
            Le pipeline, ou un pipeline nul si aucune étape n'est
            fournie ou si l'une d'elles est nulle.
        """
        if not descriptors or any(d.is_noop for d in descriptors):
            return cls()
        return cls(tuple(descriptors))

    @property
    def is_noop(self) -> bool:
        """True si le pipeline ne lancera aucun processus."""
        return not self.stages

    def pipe(self, next_stage: "LaunchDescriptor | Pipeline") -> "Pipeline":
        """Ajoute une étape (ou un pipeline) en aval.

        Args:
            next_stage: Étape ou pipeline recevant la sortie courante.

        Returns:
            Nouveau pipeline ; nul si l'un des deux côtés est nul.
        """
        if isinstance(next_stage, Pipeline):
            downstream = next_stage.stages
            if not downstream:
                return Pipeline()
        else:
            downstream = (next_stage,)
        if self.is_noop:
            return Pipeline()
        return Pipeline.compose(*self.stages, *downstream)

    def __or__(self, other: "LaunchDescriptor | Pipeline") -> "Pipeline":
        return self.pipe(other)

    def __len__(self) -> int:
        return len(self.stages)

    def to_command_string(self) -> str:
        """Rend le pipeline sous forme de ligne de commande shell.

        Le répertoire de travail, l'environnement et la politique de
        validation n'apparaissent pas dans le rendu.
        """
        if self.is_noop:
            return NOOP_COMMAND_STRING
        return " | ".join(
            stage.to_command_string() for stage in self.stages
        )

    def __str__(self) -> str:
        return self.to_command_string()
