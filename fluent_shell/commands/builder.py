"""Constructeur fluent pour configurer et exécuter des commandes.

Ce module fournit la classe CommandBuilder, façade du moteur
d'exécution : les méthodes with_* configurent l'étape courante et
retournent l'instance pour le chaînage, les méthodes terminales
construisent le Pipeline et le confient à l'ExecutionEngine avec le
mode de consommation correspondant.

Example:
    Capture d'un pipeline "echo | sort" :

        from fluent_shell.commands import command

        output = await (
            command("echo", "zebra\\napple\\nbanana")
            .pipe("sort")
            .capture()
        )
        output.get_stdout_lines()  # ['apple', 'banana', 'zebra']

    Commande tolérant un code retour non nul :

        output = await command("grep", "motif", "notes.txt") \\
            .with_no_validation() \\
            .capture()
        if not output.success:
            print("Aucune correspondance")
"""

import asyncio
import os
from contextlib import aclosing
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Union

from dotenv import dotenv_values

from fluent_shell.commands.base import (
    ConsumptionMode,
    ExecutionResult,
    LaunchDescriptor,
    StreamSource,
    ValidationPolicy,
)
from fluent_shell.commands.engine import ExecutionEngine
from fluent_shell.commands.output import CommandOutput, OutputLine
from fluent_shell.commands.pipeline import Pipeline


class CommandBuilder:
    """Constructeur fluent d'une étape de commande.

    Un exécutable vide ou blanc ne lève pas d'erreur : la commande
    construite est nulle et toutes les méthodes terminales retournent
    un résultat vide de code 0 sans lancer de processus.

    Attributes:
        _executable: Nom ou chemin du programme.
        _arguments: Arguments accumulés.
        _working_directory: Répertoire de travail.
        _environment: Variables d'environnement accumulées.
        _standard_input: Texte envoyé sur stdin.
        _validation: Politique sur code retour non nul.
        _upstream: Pipeline alimentant cette étape (None si aucune).
        _engine: Moteur d'exécution.
    """

    def __init__(
        self,
        executable: str,
        engine: Optional[ExecutionEngine] = None,
        *,
        upstream: Optional[Pipeline] = None,
    ) -> None:
        """Initialise le constructeur avec le programme.

        Args:
            executable: Nom ou chemin du programme à exécuter.
            engine: Moteur d'exécution (défaut: ExecutionEngine()).
            upstream: Pipeline dont la sortie alimente cette étape.
        """
        self._executable: str = executable or ""
        self._arguments: List[str] = []
        self._working_directory: Optional[str] = None
        self._environment: Dict[str, Optional[str]] = {}
        self._standard_input: Optional[str] = None
        self._validation = ValidationPolicy.THROW
        self._upstream = upstream
        self._engine = engine or ExecutionEngine()

    @property
    def engine(self) -> ExecutionEngine:
        return self._engine

    # -- Configuration ----------------------------------------------------

    def with_arguments(self, *arguments: str) -> "CommandBuilder":
        """Ajoute des arguments à la suite des précédents.

        Args:
            *arguments: Arguments à ajouter, dans l'ordre.

        Returns:
            L'instance courante pour le chaînage.
        """
        self._arguments.extend(str(arg) for arg in arguments)
        return self

    def with_working_directory(
        self, path: Union[str, os.PathLike]
    ) -> "CommandBuilder":
        """Définit le répertoire de travail de l'étape.

        Args:
            path: Répertoire de travail.

        Returns:
            L'instance courante pour le chaînage.
        """
        self._working_directory = os.fspath(path)
        return self

    def with_environment_variable(
        self, key: str, value: Optional[str]
    ) -> "CommandBuilder":
        """Définit une variable d'environnement.

        Un second appel avec la même clé écrase la valeur précédente.
        Une valeur None retire la variable de l'environnement hérité.

        Args:
            key: Nom de la variable.
            value: Valeur, ou None pour retirer la variable.

        Returns:
            L'instance courante pour le chaînage.
        """
        self._environment[key] = value
        return self

    def with_environment_file(
        self, path: Union[str, os.PathLike]
    ) -> "CommandBuilder":
        """Ajoute les variables d'un fichier .env.

        Les paires KEY=VALUE sont lues via python-dotenv et
        s'accumulent comme avec with_environment_variable(). Les clés
        sans valeur sont ignorées.

        Args:
            path: Chemin du fichier .env.

        Returns:
            L'instance courante pour le chaînage.

        Raises:
            FileNotFoundError: Si le fichier n'existe pas.
        """
        env_path = Path(path)
        if not env_path.is_file():
            raise FileNotFoundError(
                f"Fichier .env introuvable : {env_path}"
            )
        for key, value in dotenv_values(env_path).items():
            if value is not None:
                self._environment[key] = value
        return self

    def with_no_validation(self) -> "CommandBuilder":
        """Tolère un code retour non nul (pas d'ExecutionFailedError).

        Returns:
            L'instance courante pour le chaînage.
        """
        self._validation = ValidationPolicy.TOLERATE
        return self

    def with_standard_input(self, text: str) -> "CommandBuilder":
        """Définit le texte envoyé sur l'entrée standard.

        Seule la première étape d'un pipeline lit ce texte.

        Args:
            text: Contenu de l'entrée standard.

        Returns:
            L'instance courante pour le chaînage.
        """
        self._standard_input = text
        return self

    # -- Construction -----------------------------------------------------

    def build_descriptor(self) -> LaunchDescriptor:
        """Construit la description de l'étape courante."""
        return LaunchDescriptor(
            executable=self._executable,
            arguments=tuple(self._arguments),
            working_directory=self._working_directory,
            environment=dict(self._environment),
            standard_input=self._standard_input,
            validation=self._validation,
        )

    def build(self) -> Pipeline:
        """Construit le pipeline complet jusqu'à l'étape courante.

        Returns:
            Le pipeline ; nul si une étape est nulle.
        """
        descriptor = self.build_descriptor()
        if self._upstream is None:
            return Pipeline.of(descriptor)
        return self._upstream.pipe(descriptor)

    def pipe(self, executable: str, *arguments: str) -> "CommandBuilder":
        """Ajoute une étape recevant la sortie standard courante.

        Args:
            executable: Programme de l'étape suivante.
            *arguments: Arguments de l'étape suivante.

        Returns:
            Un nouveau constructeur pour l'étape suivante, qui partage
            le moteur de l'instance courante.
        """
        return CommandBuilder(
            executable, self._engine, upstream=self.build()
        ).with_arguments(*arguments)

    def __or__(self, other: "CommandBuilder") -> "CommandBuilder":
        if not isinstance(other, CommandBuilder):
            return NotImplemented
        upstream = self.build()
        if other._upstream is not None:
            upstream = upstream.pipe(other._upstream)
        composed = CommandBuilder(
            other._executable, self._engine, upstream=upstream
        )
        composed._arguments = list(other._arguments)
        composed._working_directory = other._working_directory
        composed._environment = dict(other._environment)
        composed._standard_input = other._standard_input
        composed._validation = other._validation
        return composed

    def to_command_string(self) -> str:
        """Rend la commande sous forme de ligne de commande shell."""
        return self.build().to_command_string()

    def __repr__(self) -> str:
        return f"CommandBuilder({self.to_command_string()!r})"

    # -- Opérations terminales --------------------------------------------

    async def run(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> int:
        """Exécute en recopiant stdout/stderr sur la console.

        Returns:
            Code retour de la dernière étape.
        """
        return await self._engine.execute(
            self.build(), ConsumptionMode.CONSOLE,
            cancel=cancel, timeout=timeout,
        )

    async def capture(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> CommandOutput:
        """Exécute en capturant silencieusement stdout et stderr.

        Args:
            cancel: Événement d'annulation optionnel.
            timeout: Timeout en secondes.

        Returns:
            Sortie capturée et code retour.

        Raises:
            SpawnError: Si le processus ne peut pas être créé.
            ExecutionFailedError: Si le code retour est non nul et
                que la validation est active.
            CommandCancelledError: Si l'exécution est annulée.
        """
        return await self._engine.execute(
            self.build(), ConsumptionMode.CAPTURE,
            cancel=cancel, timeout=timeout,
        )

    async def run_and_capture(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> CommandOutput:
        """Exécute en affichant et en capturant la sortie."""
        return await self._engine.execute(
            self.build(), ConsumptionMode.RUN_AND_CAPTURE,
            cancel=cancel, timeout=timeout,
        )

    async def passthrough(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """Exécute avec les flux standard hérités (éditeur, REPL).

        Returns:
            Code retour et durée d'exécution.
        """
        return await self._engine.execute(
            self.build(), ConsumptionMode.PASSTHROUGH,
            cancel=cancel, timeout=timeout,
        )

    async def select(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Exécute un sélecteur interactif (fzf) et retourne le choix.

        stdin et stderr restent attachés au terminal pour l'interface
        du sélecteur ; seule la sortie standard est capturée.

        Returns:
            Sortie standard sans retour à la ligne final.
        """
        return await self._engine.execute(
            self.build(), ConsumptionMode.SELECT,
            cancel=cancel, timeout=timeout,
        )

    async def stream_to_file(
        self,
        path: Union[str, os.PathLike],
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """Écrit la sortie standard dans un fichier au fil de l'eau.

        Args:
            path: Fichier de destination (écrasé s'il existe).
            cancel: Événement d'annulation optionnel.
            timeout: Timeout en secondes.

        Returns:
            Code retour et durée d'exécution.
        """
        return await self._engine.execute(
            self.build(), ConsumptionMode.FILE,
            cancel=cancel, timeout=timeout, file_path=path,
        )

    async def stream_stdout(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Produit les lignes de stdout au fur et à mesure."""
        async with aclosing(self._engine.stream(
            self.build(), StreamSource.STDOUT,
            cancel=cancel, timeout=timeout,
        )) as lines:
            async for line in lines:
                yield line.text

    async def stream_stderr(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Produit les lignes de stderr au fur et à mesure."""
        async with aclosing(self._engine.stream(
            self.build(), StreamSource.STDERR,
            cancel=cancel, timeout=timeout,
        )) as lines:
            async for line in lines:
                yield line.text

    async def stream_combined(
        self,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[OutputLine]:
        """Produit les lignes des deux flux, étiquetées par origine."""
        async with aclosing(self._engine.stream(
            self.build(), StreamSource.COMBINED,
            cancel=cancel, timeout=timeout,
        )) as lines:
            async for line in lines:
                yield line


def command(
    executable: str,
    *arguments: str,
    engine: Optional[ExecutionEngine] = None,
) -> CommandBuilder:
    """Raccourci pour CommandBuilder(executable).with_arguments(...).

    Args:
        executable: Nom ou chemin du programme.
        *arguments: Arguments initiaux.
        engine: Moteur d'exécution optionnel.

    Returns:
        Un constructeur prêt à être configuré ou exécuté.
    """
    return CommandBuilder(executable, engine).with_arguments(*arguments)
