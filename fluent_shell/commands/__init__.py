"""Module d'exécution de commandes système.

Ce module fournit des classes pour décrire, composer et exécuter
des commandes système de manière asynchrone.

Classes disponibles :
    OutputLine : Ligne de sortie étiquetée par son flux.
    CommandOutput : Sortie capturée et code retour.
    LaunchDescriptor : Description immuable d'une invocation.
    ExecutionResult : Code retour et durée (modes sans capture).
    Pipeline : Étapes reliées par des pipes.
    ExecutionEngine : Moteur d'exécution asynchrone.
    CommandBuilder : Constructeur fluent de commandes.
    CommandPathResolver : Substitution de chemins d'exécutables.
    CommandFormatter : Interface abstraite de formatage.
    PlainCommandFormatter : Formatage texte brut (logs fichier).
    AnsiCommandFormatter : Formatage ANSI coloré (console).
"""

from fluent_shell.commands.base import (
    ConsumptionMode,
    ExecutionResult,
    LaunchDescriptor,
    StreamSource,
    ValidationPolicy,
)
from fluent_shell.commands.output import CommandOutput, OutputLine
from fluent_shell.commands.pipeline import NOOP_COMMAND_STRING, Pipeline
from fluent_shell.commands.resolver import CommandPathResolver
from fluent_shell.commands.formatter import (
    CommandFormatter,
    PlainCommandFormatter,
    AnsiCommandFormatter,
)
from fluent_shell.commands.engine import ExecutionEngine
from fluent_shell.commands.builder import CommandBuilder, command

__all__ = [
    # Structures de données
    "OutputLine",
    "CommandOutput",
    "LaunchDescriptor",
    "ExecutionResult",
    "ValidationPolicy",
    "ConsumptionMode",
    "StreamSource",
    # Composition
    "Pipeline",
    "NOOP_COMMAND_STRING",
    # Résolution des chemins
    "CommandPathResolver",
    # Formateurs
    "CommandFormatter",
    "PlainCommandFormatter",
    "AnsiCommandFormatter",
    # Moteur
    "ExecutionEngine",
    # Constructeur
    "CommandBuilder",
    "command",
]
