"""Tests pour LaunchDescriptor, ExecutionResult et Pipeline."""

from datetime import datetime, timedelta, timezone

import pytest

from fluent_shell.commands import (
    NOOP_COMMAND_STRING,
    ExecutionResult,
    LaunchDescriptor,
    Pipeline,
    ValidationPolicy,
)


# --- Tests LaunchDescriptor ---


class TestLaunchDescriptor:
    """Tests pour la dataclass LaunchDescriptor."""

    def test_valeurs_par_defaut(self):
        """Vérifie les valeurs par défaut."""
        descriptor = LaunchDescriptor("ls")
        assert descriptor.arguments == ()
        assert descriptor.working_directory is None
        assert dict(descriptor.environment) == {}
        assert descriptor.standard_input is None
        assert descriptor.validation is ValidationPolicy.THROW

    def test_frozen(self):
        """Test que la dataclass est immuable."""
        descriptor = LaunchDescriptor("ls")
        with pytest.raises(AttributeError):
            descriptor.executable = "rm"

    def test_environnement_non_modifiable(self):
        """L'environnement est figé à la construction."""
        env = {"A": "1"}
        descriptor = LaunchDescriptor("env", environment=env)
        env["B"] = "2"
        assert dict(descriptor.environment) == {"A": "1"}
        with pytest.raises(TypeError):
            descriptor.environment["C"] = "3"

    def test_arguments_convertis_en_tuple(self):
        """Une liste d'arguments devient un tuple."""
        descriptor = LaunchDescriptor("ls", ["-l", "/tmp"])
        assert descriptor.arguments == ("-l", "/tmp")

    @pytest.mark.parametrize("executable", ["", "   ", None])
    def test_executable_vide_est_nul(self, executable):
        """Un exécutable vide ou blanc est une commande nulle."""
        assert LaunchDescriptor(executable).is_noop is True

    def test_to_command_string_quote(self):
        """Les arguments contenant des espaces sont quotés."""
        descriptor = LaunchDescriptor("echo", ("Hello World",))
        assert descriptor.to_command_string() == "echo 'Hello World'"

    def test_to_command_string_sans_contexte(self):
        """Répertoire, environnement et politique n'apparaissent pas."""
        descriptor = LaunchDescriptor(
            "make",
            ("all",),
            working_directory="/src",
            environment={"CC": "clang"},
            validation=ValidationPolicy.TOLERATE,
        )
        assert descriptor.to_command_string() == "make all"


# --- Tests ExecutionResult ---


class TestExecutionResult:
    """Tests pour la dataclass ExecutionResult."""

    def test_run_time_et_success(self):
        """run_time est la différence entre fin et début."""
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        result = ExecutionResult("vim", 0, start, start + timedelta(seconds=2))
        assert result.run_time == timedelta(seconds=2)
        assert result.success is True

    def test_success_false_quand_code_non_zero(self):
        """Test success=False quand exit_code est non-zéro."""
        now = datetime.now(timezone.utc)
        assert ExecutionResult("false", 1, now, now).success is False


# --- Tests Pipeline ---


class TestPipeline:
    """Tests pour la composition de pipelines."""

    def test_compose(self):
        """compose() conserve l'ordre des étapes."""
        echo = LaunchDescriptor("echo", ("a",))
        sort = LaunchDescriptor("sort")
        pipeline = Pipeline.compose(echo, sort)
        assert pipeline.stages == (echo, sort)
        assert len(pipeline) == 2
        assert pipeline.is_noop is False

    def test_compose_sans_etape_est_nul(self):
        """Un pipeline sans étape est nul."""
        assert Pipeline.compose().is_noop is True

    def test_etape_nulle_rend_le_pipeline_nul(self):
        """Une étape nulle rend tout le pipeline nul."""
        pipeline = Pipeline.compose(
            LaunchDescriptor("echo"), LaunchDescriptor("  ")
        )
        assert pipeline.is_noop is True

    def test_pipe_et_operateur(self):
        """pipe() et | produisent le même pipeline."""
        first = Pipeline.of(LaunchDescriptor("echo", ("a",)))
        sort = LaunchDescriptor("sort")
        assert first.pipe(sort) == first | sort
        assert len(first | sort) == 2

    def test_pipe_pipeline(self):
        """Un pipeline peut être ajouté en aval d'un autre."""
        upstream = Pipeline.of(LaunchDescriptor("cat"))
        downstream = Pipeline.compose(
            LaunchDescriptor("sort"), LaunchDescriptor("uniq")
        )
        combined = upstream | downstream
        assert [s.executable for s in combined.stages] == [
            "cat", "sort", "uniq"
        ]

    def test_pipe_depuis_un_pipeline_nul(self):
        """Ajouter une étape à un pipeline nul reste nul."""
        assert Pipeline().pipe(LaunchDescriptor("sort")).is_noop is True

    def test_pipe_vers_un_pipeline_nul(self):
        """Ajouter un pipeline nul rend le résultat nul."""
        upstream = Pipeline.of(LaunchDescriptor("cat"))
        assert upstream.pipe(Pipeline()).is_noop is True

    def test_pipeline_immuable(self):
        """pipe() ne modifie pas le pipeline d'origine."""
        first = Pipeline.of(LaunchDescriptor("cat"))
        first.pipe(LaunchDescriptor("sort"))
        assert len(first) == 1

    def test_to_command_string(self):
        """Les étapes sont jointes par ' | '."""
        pipeline = Pipeline.compose(
            LaunchDescriptor("echo", ("zebra\napple",)),
            LaunchDescriptor("sort", ("-r",)),
        )
        assert pipeline.to_command_string() == (
            "echo 'zebra\napple' | sort -r"
        )
        assert str(pipeline) == pipeline.to_command_string()

    def test_to_command_string_nul(self):
        """Un pipeline nul a un rendu dédié."""
        assert Pipeline().to_command_string() == NOOP_COMMAND_STRING
