"""Modèles de configuration du moteur d'exécution.

Les réglages sont des modèles Pydantic immuables. Ils peuvent être
construits directement ou chargés depuis un fichier TOML/JSON via
load_settings(), à la racine du fichier ou sous une section [shell].

Example:
    Fichier shell.toml :

        [shell]
        default_timeout = 30
        grace_period = 1.5

        [shell.command_paths]
        fzf = "/opt/mock/fzf"

        [shell.logging]
        level = "DEBUG"
"""

from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fluent_shell.config.loader import ConfigLoader, FileConfigLoader
from fluent_shell.errors.exceptions import FileConfigurationError

DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
SETTINGS_SECTION = "shell"


class LoggingSettings(BaseModel):
    """Section logging de la configuration.

    Attributes:
        level: Nom du niveau de log (INFO, DEBUG, ...).
        format: Format des enregistrements logging.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT


class ShellSettings(BaseModel):
    """Réglages du moteur d'exécution.

    Attributes:
        default_timeout: Timeout par défaut en secondes (None = aucun).
        grace_period: Délai entre le signal d'interruption et
            l'arrêt forcé, en secondes.
        encoding: Encodage des flux des processus enfants.
        stream_limit: Taille maximale d'une ligne lue, en octets.
        environment: Variables appliquées à toutes les étapes,
            avant celles propres à chaque étape.
        command_paths: Substitutions "commande -> chemin" initiales.
        logging: Section logging.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    default_timeout: Optional[float] = Field(default=None, gt=0)
    grace_period: float = Field(default=2.0, ge=0)
    encoding: str = "utf-8"
    stream_limit: int = Field(default=1024 * 1024, gt=0)
    environment: Dict[str, str] = Field(default_factory=dict)
    command_paths: Dict[str, str] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(
    config_path: Optional[Union[str, Path]] = None,
    config_loader: Optional[ConfigLoader] = None,
) -> ShellSettings:
    """Charge les réglages depuis un fichier TOML ou JSON.

    Args:
        config_path: Chemin du fichier. Si None, retourne les
            réglages par défaut.
        config_loader: ConfigLoader injectable (défaut:
            FileConfigLoader).

    Returns:
        Réglages validés.

    Raises:
        FileConfigurationError: Si le fichier est absent, dans un
            format non supporté ou invalide.
    """
    if config_path is None:
        return ShellSettings()

    loader = config_loader or FileConfigLoader()
    try:
        raw = loader.load(config_path, section=SETTINGS_SECTION)
        return ShellSettings.model_validate(raw)
    except (OSError, ValueError, ValidationError) as e:
        raise FileConfigurationError(
            f"Configuration invalide ({config_path}) : {e}"
        ) from e
