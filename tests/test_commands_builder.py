"""Tests pour le constructeur fluent CommandBuilder."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fluent_shell.commands import (
    CommandBuilder,
    CommandOutput,
    ConsumptionMode,
    ExecutionEngine,
    NOOP_COMMAND_STRING,
    ValidationPolicy,
    command,
)


# --- Tests configuration ---


class TestCommandBuilderConfiguration:
    """Tests pour les méthodes with_*."""

    def test_build_programme_seul(self):
        """Test de build avec le programme seul."""
        pipeline = CommandBuilder("ls").build()
        assert len(pipeline) == 1
        assert pipeline.stages[0].executable == "ls"
        assert pipeline.stages[0].arguments == ()

    def test_with_arguments_ajoute(self):
        """with_arguments() ajoute sans remplacer."""
        descriptor = (
            CommandBuilder("rsync")
            .with_arguments("-av")
            .with_arguments("/src/", "/dest/")
            .build_descriptor()
        )
        assert descriptor.arguments == ("-av", "/src/", "/dest/")

    def test_with_arguments_convertit_en_chaine(self):
        """Les arguments non textuels sont convertis."""
        descriptor = CommandBuilder("seq").with_arguments(1, 3).build_descriptor()
        assert descriptor.arguments == ("1", "3")

    def test_with_environment_variable_ecrase(self):
        """Un second appel avec la même clé écrase la valeur."""
        descriptor = (
            CommandBuilder("env")
            .with_environment_variable("A", "1")
            .with_environment_variable("B", "2")
            .with_environment_variable("A", "3")
            .build_descriptor()
        )
        assert dict(descriptor.environment) == {"A": "3", "B": "2"}

    def test_with_environment_variable_none(self):
        """Une valeur None est conservée pour retirer la variable."""
        descriptor = (
            CommandBuilder("env")
            .with_environment_variable("HOME", None)
            .build_descriptor()
        )
        assert dict(descriptor.environment) == {"HOME": None}

    def test_with_environment_file(self, tmp_path):
        """Les variables d'un fichier .env s'accumulent."""
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# commentaire\n"
            "DB_HOST=localhost\n"
            'DB_NAME="app"\n'
            "SANS_VALEUR\n"
        )
        descriptor = (
            CommandBuilder("env")
            .with_environment_variable("DB_HOST", "remote")
            .with_environment_file(env_file)
            .build_descriptor()
        )
        assert dict(descriptor.environment) == {
            "DB_HOST": "localhost",
            "DB_NAME": "app",
        }

    def test_with_environment_file_absent(self, tmp_path):
        """Un fichier .env absent lève FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            CommandBuilder("env").with_environment_file(tmp_path / ".env")

    def test_with_working_directory(self, tmp_path):
        """Le répertoire est converti en chaîne."""
        descriptor = (
            CommandBuilder("ls")
            .with_working_directory(tmp_path)
            .build_descriptor()
        )
        assert descriptor.working_directory == str(tmp_path)

    def test_with_no_validation(self):
        """with_no_validation() passe la politique à TOLERATE."""
        builder = CommandBuilder("false")
        assert builder.build_descriptor().validation is ValidationPolicy.THROW
        builder.with_no_validation()
        assert (
            builder.build_descriptor().validation
            is ValidationPolicy.TOLERATE
        )

    def test_with_standard_input(self):
        """Le texte d'entrée est porté par le descripteur."""
        descriptor = (
            CommandBuilder("cat")
            .with_standard_input("texte")
            .build_descriptor()
        )
        assert descriptor.standard_input == "texte"

    def test_chainage_retourne_la_meme_instance(self):
        """Les méthodes with_* retournent l'instance courante."""
        builder = CommandBuilder("ls")
        assert builder.with_arguments("-l") is builder
        assert builder.with_no_validation() is builder
        assert builder.with_standard_input("") is builder

    @pytest.mark.parametrize("executable", ["", "   "])
    def test_programme_vide_ne_leve_pas(self, executable):
        """Un programme vide produit une commande nulle."""
        pipeline = CommandBuilder(executable).with_arguments("x").build()
        assert pipeline.is_noop is True
        assert CommandBuilder(executable).to_command_string() == (
            NOOP_COMMAND_STRING
        )


# --- Tests composition ---


class TestCommandBuilderPipe:
    """Tests pour pipe() et l'opérateur |."""

    def test_pipe_cree_une_nouvelle_etape(self):
        """pipe() retourne un constructeur pour l'étape suivante."""
        first = command("echo", "a")
        second = first.pipe("sort", "-r")
        assert second is not first
        assert second.to_command_string() == "echo a | sort -r"
        assert first.to_command_string() == "echo a"

    def test_pipe_partage_le_moteur(self):
        """L'étape suivante utilise le même moteur."""
        engine = ExecutionEngine()
        second = command("echo", engine=engine).pipe("cat")
        assert second.engine is engine

    def test_etape_suivante_configurable(self):
        """L'étape ajoutée se configure avec les méthodes with_*."""
        pipeline = (
            command("cat")
            .with_standard_input("x")
            .pipe("grep")
            .with_arguments("y")
            .with_no_validation()
            .build()
        )
        assert pipeline.stages[0].standard_input == "x"
        assert pipeline.stages[0].validation is ValidationPolicy.THROW
        assert pipeline.stages[1].arguments == ("y",)
        assert pipeline.stages[1].validation is ValidationPolicy.TOLERATE

    def test_operateur_or(self):
        """builder | builder compose les deux commandes."""
        composed = command("printf", "b\\na") | command("sort").with_arguments(
            "-r"
        )
        assert composed.to_command_string() == "printf 'b\\na' | sort -r"

    def test_operateur_or_avec_amont(self):
        """Les étapes amont du second constructeur sont conservées."""
        right = command("sort").pipe("uniq")
        composed = command("cat") | right
        assert composed.to_command_string() == "cat | sort | uniq"

    def test_operateur_or_type_invalide(self):
        """Composer avec autre chose qu'un constructeur lève TypeError."""
        with pytest.raises(TypeError):
            command("cat") | "sort"

    def test_pipe_depuis_une_commande_nulle(self):
        """Une étape ajoutée à une commande nulle reste nulle."""
        assert command("").pipe("sort").build().is_noop is True

    def test_repr(self):
        """Le repr montre la ligne de commande."""
        assert repr(command("ls", "-l")) == "CommandBuilder('ls -l')"


# --- Tests délégation au moteur ---


class TestCommandBuilderTerminals:
    """Tests pour la délégation des opérations terminales."""

    @pytest.fixture
    def engine(self):
        """Moteur factice enregistrant les appels."""
        engine = MagicMock(spec=ExecutionEngine)
        engine.execute = AsyncMock(return_value=CommandOutput.empty())
        return engine

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method, mode", [
        ("run", ConsumptionMode.CONSOLE),
        ("capture", ConsumptionMode.CAPTURE),
        ("run_and_capture", ConsumptionMode.RUN_AND_CAPTURE),
        ("passthrough", ConsumptionMode.PASSTHROUGH),
        ("select", ConsumptionMode.SELECT),
    ])
    async def test_mode_transmis(self, engine, method, mode):
        """Chaque opération terminale utilise son mode."""
        builder = command("ls", engine=engine)
        await getattr(builder, method)(timeout=3)
        engine.execute.assert_awaited_once_with(
            builder.build(), mode, cancel=None, timeout=3
        )

    @pytest.mark.asyncio
    async def test_stream_to_file(self, engine, tmp_path):
        """stream_to_file() transmet le chemin au moteur."""
        builder = command("ls", engine=engine)
        await builder.stream_to_file(tmp_path / "out.txt")
        engine.execute.assert_awaited_once_with(
            builder.build(),
            ConsumptionMode.FILE,
            cancel=None,
            timeout=None,
            file_path=tmp_path / "out.txt",
        )
