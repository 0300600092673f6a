"""Lecture des fichiers de réglages TOML et JSON.

Le format est choisi d'après l'extension du fichier. Un fichier peut
regrouper les réglages sous une section (ex: [shell]) ou les placer à
la racine : le paramètre section de load() accepte les deux.
"""

import json
import tomllib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel

RawConfig = Dict[str, Any]


def _read_toml(path: Path) -> RawConfig:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _read_json(path: Path) -> RawConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(
            f"La racine d'un fichier JSON doit être un objet : {path}"
        )
    return data


_READERS: Dict[str, Callable[[Path], RawConfig]] = {
    ".toml": _read_toml,
    ".json": _read_json,
}


class ConfigLoader(ABC):
    """Interface de chargement des réglages.

    Permet d'injecter un chargeur factice dans load_settings().
    """

    @abstractmethod
    def load(
        self,
        config_path: Union[str, Path],
        schema: type | None = None,
        section: Optional[str] = None,
    ) -> Union[RawConfig, Any]:
        """Charge un fichier de réglages.

        Args:
            config_path: Chemin du fichier.
            schema: Modèle Pydantic optionnel. Si fourni, retourne une
                instance validée du modèle, sinon un dict brut.
            section: Nom de la section à extraire. Si elle est absente
                du fichier, la racine est utilisée.

        Returns:
            Dictionnaire brut ou instance du schema.

        Raises:
            FileNotFoundError: Si le fichier n'existe pas.
            ValueError: Si le format n'est pas supporté ou mal formé.
            TypeError: Si schema n'est pas un BaseModel.
        """
        pass


class FileConfigLoader(ConfigLoader):
    """Chargeur de réglages depuis un fichier .toml ou .json."""

    def load(
        self,
        config_path: Union[str, Path],
        schema: type | None = None,
        section: Optional[str] = None,
    ) -> Union[RawConfig, Any]:
        """Charge un fichier TOML ou JSON.

        Raises:
            FileNotFoundError: Si le fichier n'existe pas.
            ValueError: Si l'extension n'est pas supportée ou si le
                contenu est mal formé.
            TypeError: Si schema n'est pas un BaseModel.
            pydantic.ValidationError: Si les données sont invalides.
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(
                f"Fichier de configuration non trouvé: {path}"
            )

        reader = _READERS.get(path.suffix.lower())
        if reader is None:
            raise ValueError(
                f"Extension non supportée: {path.suffix}. "
                f"Utilisez {' ou '.join(sorted(_READERS))}"
            )
        data = self._extract_section(reader(path), section)

        if schema is None:
            return data
        return self._validate_with_schema(data, schema)

    @staticmethod
    def _extract_section(data: RawConfig, section: Optional[str]) -> RawConfig:
        if section is None or section not in data:
            return data
        content = data[section]
        if not isinstance(content, dict):
            raise ValueError(
                f"La section [{section}] doit être une table."
            )
        return content

    @staticmethod
    def _validate_with_schema(data: RawConfig, schema: type) -> Any:
        if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
            raise TypeError(
                f"Le schema doit être une sous-classe de "
                f"pydantic.BaseModel, reçu: {schema}"
            )
        return schema.model_validate(data)
