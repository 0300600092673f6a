"""Tests pour le module config."""

import json
from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel, ValidationError

from fluent_shell.config import (
    ConfigLoader,
    FileConfigLoader,
    LoggingSettings,
    ShellSettings,
    load_settings,
)
from fluent_shell.errors import FileConfigurationError


class TestFileConfigLoader:
    """Tests pour FileConfigLoader."""

    def setup_method(self):
        """Initialise le loader avant chaque test."""
        self.loader = FileConfigLoader()

    def test_load_json(self, tmp_path):
        """Test du chargement d'un fichier JSON."""
        config_file = tmp_path / "config.json"
        config_data = {"key": "value", "nested": {"a": 1}}
        config_file.write_text(json.dumps(config_data))

        result = self.loader.load(config_file)

        assert result == config_data

    def test_load_toml(self, tmp_path):
        """Test du chargement d'un fichier TOML."""
        config_file = tmp_path / "config.toml"
        config_file.write_text('[section]\nkey = "value"\n')

        result = self.loader.load(config_file)

        assert result["section"]["key"] == "value"

    def test_file_not_found(self):
        """Test avec fichier inexistant."""
        with pytest.raises(FileNotFoundError):
            self.loader.load("/nonexistent/config.toml")

    def test_unsupported_extension(self, tmp_path):
        """Test avec extension non supportée."""
        config_file = tmp_path / "config.xml"
        config_file.write_text("<config></config>")

        with pytest.raises(ValueError, match="Extension non supportée"):
            self.loader.load(config_file)

    def test_section_extraite(self, tmp_path):
        """Le contenu de la section demandée est retourné."""
        config_file = tmp_path / "config.toml"
        config_file.write_text('[shell]\nencoding = "latin-1"\n')

        result = self.loader.load(config_file, section="shell")

        assert result == {"encoding": "latin-1"}

    def test_section_absente_retourne_la_racine(self, tmp_path):
        """Sans la section demandée, la racine est retournée."""
        config_file = tmp_path / "config.json"
        config_file.write_text('{"encoding": "latin-1"}')

        result = self.loader.load(config_file, section="shell")

        assert result == {"encoding": "latin-1"}

    def test_section_non_table(self, tmp_path):
        """Une section qui n'est pas une table lève ValueError."""
        config_file = tmp_path / "config.json"
        config_file.write_text('{"shell": 3}')

        with pytest.raises(ValueError, match="table"):
            self.loader.load(config_file, section="shell")

    def test_json_racine_non_objet(self, tmp_path):
        """Une liste JSON à la racine lève ValueError."""
        config_file = tmp_path / "config.json"
        config_file.write_text("[1, 2]")

        with pytest.raises(ValueError):
            self.loader.load(config_file)

    def test_load_avec_schema(self, tmp_path):
        """Avec un schema, retourne une instance validée."""
        config_file = tmp_path / "logging.toml"
        config_file.write_text('level = "DEBUG"\n')

        result = self.loader.load(config_file, schema=LoggingSettings)

        assert isinstance(result, LoggingSettings)
        assert result.level == "DEBUG"

    def test_schema_non_pydantic(self, tmp_path):
        """Un schema qui n'est pas un BaseModel lève TypeError."""
        config_file = tmp_path / "config.json"
        config_file.write_text("{}")

        with pytest.raises(TypeError):
            self.loader.load(config_file, schema=dict)

    def test_schema_donnees_invalides(self, tmp_path):
        """Des données invalides lèvent pydantic.ValidationError."""

        class Schema(BaseModel):
            count: int

        config_file = tmp_path / "config.json"
        config_file.write_text('{"count": "beaucoup"}')

        with pytest.raises(ValidationError):
            self.loader.load(config_file, schema=Schema)


class TestShellSettings:
    """Tests pour les modèles de réglages."""

    def test_valeurs_par_defaut(self):
        """Vérifie les valeurs par défaut."""
        settings = ShellSettings()
        assert settings.default_timeout is None
        assert settings.grace_period == 2.0
        assert settings.encoding == "utf-8"
        assert settings.stream_limit == 1024 * 1024
        assert settings.environment == {}
        assert settings.command_paths == {}
        assert settings.logging.level == "INFO"

    def test_cle_inconnue_refusee(self):
        """Une clé inconnue est rejetée."""
        with pytest.raises(ValidationError):
            ShellSettings(verbose=True)

    def test_timeout_negatif_refuse(self):
        """Un timeout nul ou négatif est rejeté."""
        with pytest.raises(ValidationError):
            ShellSettings(default_timeout=0)

    def test_immuable(self):
        """Les réglages ne sont pas modifiables."""
        settings = ShellSettings()
        with pytest.raises(ValidationError):
            settings.grace_period = 5


class TestLoadSettings:
    """Tests pour load_settings."""

    def test_sans_fichier(self):
        """Sans chemin, retourne les réglages par défaut."""
        assert load_settings() == ShellSettings()

    def test_section_shell_toml(self, tmp_path):
        """Les réglages sont lus sous la section [shell]."""
        config_file = tmp_path / "shell.toml"
        config_file.write_text(
            "[shell]\n"
            "default_timeout = 30\n"
            "grace_period = 0.5\n"
            "\n"
            "[shell.environment]\n"
            'LANG = "C"\n'
            "\n"
            "[shell.logging]\n"
            'level = "DEBUG"\n'
        )

        settings = load_settings(config_file)

        assert settings.default_timeout == 30
        assert settings.grace_period == 0.5
        assert settings.environment == {"LANG": "C"}
        assert settings.logging.level == "DEBUG"

    def test_reglages_a_la_racine_json(self, tmp_path):
        """Les réglages peuvent être à la racine du fichier."""
        config_file = tmp_path / "shell.json"
        config_file.write_text('{"encoding": "latin-1"}')

        settings = load_settings(config_file)

        assert settings.encoding == "latin-1"

    def test_fichier_absent(self, tmp_path):
        """Un fichier absent lève FileConfigurationError."""
        with pytest.raises(FileConfigurationError):
            load_settings(tmp_path / "absent.toml")

    def test_toml_invalide(self, tmp_path):
        """Un TOML mal formé lève FileConfigurationError."""
        config_file = tmp_path / "shell.toml"
        config_file.write_text("[shell\n")

        with pytest.raises(FileConfigurationError):
            load_settings(config_file)

    def test_valeur_invalide(self, tmp_path):
        """Une valeur hors bornes lève FileConfigurationError."""
        config_file = tmp_path / "shell.json"
        config_file.write_text('{"shell": {"grace_period": -1}}')

        with pytest.raises(FileConfigurationError) as exc_info:
            load_settings(config_file)
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_loader_injecte(self):
        """Le ConfigLoader injecté est utilisé."""
        loader = MagicMock(spec=ConfigLoader)
        loader.load.return_value = {"stream_limit": 4096}

        settings = load_settings("virtuel.toml", config_loader=loader)

        loader.load.assert_called_once_with("virtuel.toml", section="shell")
        assert settings.stream_limit == 4096
