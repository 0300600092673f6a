"""Moteur d'exécution asynchrone des commandes système.

Ce module fournit ExecutionEngine, qui lance les étapes d'un
Pipeline via asyncio, câble leurs flux standard selon le mode de
consommation demandé et retourne le résultat propre à ce mode.

Les deux flux stdout et stderr sont lus par deux tâches concurrentes,
ligne par ligne. En mode capture, chaque ligne est ajoutée, sous un
verrou unique, à une séquence partagée au moment où sa lecture se
termine. L'ordre obtenu est l'ordre d'observation du moteur : les
pipes étant tamponnés indépendamment par le système, il approche
sans la garantir la chronologie réelle quand les deux flux écrivent
en même temps. Les vues stdout et stderr de CommandOutput conservent
en revanche exactement l'ordre de chaque flux.

Annulation : chaque opération accepte un asyncio.Event et un timeout
en secondes ; le premier des deux qui se déclenche annule
l'opération. Les processus reçoivent alors SIGINT (terminate() sous
Windows), puis sont tués s'ils ne se sont pas arrêtés après
grace_period secondes, et CommandCancelledError est levée.

Hors des modes interactifs (PASSTHROUGH, SELECT), chaque étape est
lancée dans sa propre session sous POSIX : les signaux d'arrêt visent
tout son groupe de processus, descendants compris. Un descendant qui
change lui-même de groupe n'est pas atteint.

Example :
    Capture d'un pipeline avec timeout :

        from fluent_shell.commands import (
            ConsumptionMode,
            ExecutionEngine,
            LaunchDescriptor,
            Pipeline,
        )

        engine = ExecutionEngine()
        pipeline = Pipeline.compose(
            LaunchDescriptor("echo", ("zebra\\napple",)),
            LaunchDescriptor("sort"),
        )
        output = await engine.execute(
            pipeline, ConsumptionMode.CAPTURE, timeout=5
        )
        print(output.get_stdout_lines())  # ['apple', 'zebra']
"""

import asyncio
import os
import signal
import sys
import time
from contextlib import suppress
from datetime import datetime, timezone
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    TextIO,
    Union,
)

from fluent_shell.commands.base import (
    ConsumptionMode,
    ExecutionResult,
    LaunchDescriptor,
    StreamSource,
    ValidationPolicy,
)
from fluent_shell.commands.formatter import (
    CommandFormatter,
    PlainCommandFormatter,
)
from fluent_shell.commands.output import CommandOutput, OutputLine
from fluent_shell.commands.pipeline import NOOP_COMMAND_STRING, Pipeline
from fluent_shell.commands.resolver import CommandPathResolver
from fluent_shell.config.settings import ShellSettings
from fluent_shell.errors.exceptions import (
    CommandCancelledError,
    CommandNotFoundError,
    ExecutionFailedError,
    SpawnError,
)
from fluent_shell.logging.base import Logger

LineSink = Callable[[OutputLine], Awaitable[None]]
EngineResult = Union[int, str, CommandOutput, ExecutionResult]

_END_OF_STREAM = object()
_DISCARD_CHUNK = 64 * 1024
_REAP_TIMEOUT = 1.0
_SIGPIPE = getattr(signal, "SIGPIPE", None)


def _strip_line_ending(text: str) -> str:
    if text.endswith("\n"):
        text = text[:-1]
    if text.endswith("\r"):
        text = text[:-1]
    return text


class _OutputCollector:
    """Séquence ordonnée partagée par les tâches de lecture."""

    def __init__(self) -> None:
        self._lines: List[OutputLine] = []
        self._lock = asyncio.Lock()

    async def append(self, line: OutputLine) -> None:
        async with self._lock:
            self._lines.append(line)

    @property
    def lines(self) -> List[OutputLine]:
        return list(self._lines)


class _RunningPipeline:
    """Processus lancés pour un pipeline et tâches qui les servent."""

    def __init__(self, command: str) -> None:
        self.command = command
        self.processes: List[asyncio.subprocess.Process] = []
        self.tasks: List["asyncio.Future[None]"] = []
        self.readers: List[asyncio.StreamReader] = []
        self.writers: List[asyncio.StreamWriter] = []
        self.isolated = False
        self.start_time = datetime.now(timezone.utc)
        self.exit_time = self.start_time
        self._started = time.monotonic()

    @property
    def running(self) -> bool:
        return any(p.returncode is None for p in self.processes)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    async def wait(self) -> List[int]:
        """Attend la fin des lectures puis celle de chaque processus."""
        await asyncio.gather(*self.tasks)
        exit_codes = [await p.wait() for p in self.processes]
        self.exit_time = datetime.now(timezone.utc)
        return exit_codes


class ExecutionEngine:
    """Moteur d'exécution des pipelines de commandes.

    Chaque appel possède ses propres processus, pipes et tampons :
    des appels concurrents sur une même instance sont indépendants.

    Attributes:
        _settings: Réglages (timeout par défaut, encodage, ...).
        _resolver: Résolution des chemins d'exécutables.
        _logger: Logger optionnel pour les annonces d'exécution.
        _plain: Formateur texte brut pour le logger.
        _console_formatter: Formateur optionnel pour la console.
    """

    def __init__(
        self,
        resolver: Optional[CommandPathResolver] = None,
        settings: Optional[ShellSettings] = None,
        logger: Optional[Logger] = None,
        console_formatter: Optional[CommandFormatter] = None,
    ) -> None:
        """Initialise le moteur.

        Args:
            resolver: Résolveur de chemins. Par défaut, un résolveur
                initialisé avec settings.command_paths.
            settings: Réglages (défaut: ShellSettings()).
            logger: Logger optionnel pour les annonces.
            console_formatter: Formateur optionnel ; si fourni, les
                annonces sont aussi affichées sur stderr.
        """
        self._settings = settings or ShellSettings()
        self._resolver = resolver or CommandPathResolver(
            self._settings.command_paths
        )
        self._logger = logger
        self._plain = PlainCommandFormatter()
        self._console_formatter = console_formatter

    @property
    def settings(self) -> ShellSettings:
        return self._settings

    @property
    def resolver(self) -> CommandPathResolver:
        return self._resolver

    # -- Point d'entrée des modes avec résultat ---------------------------

    async def execute(
        self,
        pipeline: Pipeline,
        mode: ConsumptionMode = ConsumptionMode.CAPTURE,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
        file_path: Optional[Union[str, os.PathLike]] = None,
    ) -> EngineResult:
        """Exécute un pipeline dans un mode de consommation donné.

        Args:
            pipeline: Étapes à exécuter.
            mode: Mode de consommation des flux.
            cancel: Événement d'annulation optionnel.
            timeout: Timeout en secondes (prioritaire sur
                settings.default_timeout).
            file_path: Fichier de destination (mode FILE uniquement).

        Returns:
            CONSOLE : code retour (int).
            CAPTURE, RUN_AND_CAPTURE : CommandOutput.
            PASSTHROUGH, FILE : ExecutionResult.
            SELECT : stdout sans retour à la ligne final (str).

        Raises:
            SpawnError: Si un processus ne peut pas être créé.
            ExecutionFailedError: Si une étape en politique THROW
                retourne un code non nul.
            CommandCancelledError: Si l'opération est annulée.
            ValueError: Si file_path manque en mode FILE.
        """
        if pipeline.is_noop:
            return self._noop_result(mode)
        if mode is ConsumptionMode.FILE and file_path is None:
            raise ValueError("file_path est requis en mode FILE.")

        command = pipeline.to_command_string()
        self._raise_if_cancelled(command, cancel)
        effective_timeout = self._resolve_timeout(timeout)
        self._announce_start(command, mode.value)

        if mode is ConsumptionMode.CONSOLE:
            return await self._execute_console(
                pipeline, command, cancel, effective_timeout
            )
        if mode is ConsumptionMode.CAPTURE:
            return await self._execute_capture(
                pipeline, command, cancel, effective_timeout, echo=False
            )
        if mode is ConsumptionMode.RUN_AND_CAPTURE:
            return await self._execute_capture(
                pipeline, command, cancel, effective_timeout, echo=True
            )
        if mode is ConsumptionMode.PASSTHROUGH:
            return await self._execute_passthrough(
                pipeline, command, cancel, effective_timeout
            )
        if mode is ConsumptionMode.SELECT:
            return await self._execute_select(
                pipeline, command, cancel, effective_timeout
            )
        return await self._execute_file(
            pipeline, command, cancel, effective_timeout, file_path
        )

    async def _execute_console(
        self,
        pipeline: Pipeline,
        command: str,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
    ) -> int:
        exit_codes, _ = await self._run(
            pipeline, command, self._echo, self._echo,
            cancel=cancel, timeout=timeout,
        )
        self._validate(pipeline, exit_codes, "")
        return exit_codes[-1]

    async def _execute_capture(
        self,
        pipeline: Pipeline,
        command: str,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
        echo: bool,
    ) -> CommandOutput:
        collector = _OutputCollector()
        sink: LineSink = collector.append
        if echo:
            async def sink(line: OutputLine) -> None:
                await collector.append(line)
                await self._echo(line)

        exit_codes, _ = await self._run(
            pipeline, command, sink, sink,
            cancel=cancel, timeout=timeout,
        )
        output = CommandOutput(collector.lines, exit_codes[-1])
        self._validate(pipeline, exit_codes, output.stderr)
        return output

    async def _execute_passthrough(
        self,
        pipeline: Pipeline,
        command: str,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
    ) -> ExecutionResult:
        exit_codes, running = await self._run(
            pipeline, command, None, None,
            inherit_stdin=True, cancel=cancel, timeout=timeout,
        )
        self._validate(pipeline, exit_codes, "")
        return ExecutionResult(
            command=command,
            exit_code=exit_codes[-1],
            start_time=running.start_time,
            exit_time=running.exit_time,
        )

    async def _execute_select(
        self,
        pipeline: Pipeline,
        command: str,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
    ) -> str:
        selected: List[str] = []

        async def keep(line: OutputLine) -> None:
            selected.append(line.text)

        exit_codes, _ = await self._run(
            pipeline, command, keep, None,
            inherit_stdin=True, cancel=cancel, timeout=timeout,
        )
        self._validate(pipeline, exit_codes, "")
        return "\n".join(selected).rstrip("\r\n")

    async def _execute_file(
        self,
        pipeline: Pipeline,
        command: str,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
        file_path: Union[str, os.PathLike],
    ) -> ExecutionResult:
        errors = _OutputCollector()
        handle: Optional[TextIO] = None

        async def write(line: OutputLine) -> None:
            handle.write(line.text + "\n")

        running = await self._start(pipeline, command, write, errors.append)
        # Le fichier n'est tronqué qu'une fois toutes les étapes lancées ;
        # aucune lecture n'a encore eu lieu à ce point.
        try:
            handle = open(
                file_path, "w", encoding=self._settings.encoding, newline=""
            )
        except BaseException:
            await self._abort(running)
            raise
        with handle:
            exit_codes = await self._complete(running, cancel, timeout)
        stderr = "\n".join(line.text for line in errors.lines)
        self._validate(pipeline, exit_codes, stderr)
        return ExecutionResult(
            command=command,
            exit_code=exit_codes[-1],
            start_time=running.start_time,
            exit_time=running.exit_time,
        )

    # -- Lecture ligne à ligne --------------------------------------------

    async def stream(
        self,
        pipeline: Pipeline,
        source: StreamSource = StreamSource.COMBINED,
        *,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[OutputLine]:
        """Produit les lignes d'un pipeline au fur et à mesure.

        La séquence est paresseuse et non redémarrable : le processus
        est lancé à la première itération, et une seule ligne est
        tamponnée d'avance. Fermer l'itérateur avant la fin (aclose(),
        contextlib.aclosing) arrête les processus.

        Le code retour n'est pas validé : aucune ExecutionFailedError
        n'est levée par ce mode.

        Args:
            pipeline: Étapes à exécuter.
            source: Flux relayé (stdout, stderr ou les deux).
            cancel: Événement d'annulation optionnel.
            timeout: Timeout en secondes pour la séquence entière.

        Yields:
            Lignes de sortie, dans l'ordre d'observation.

        Raises:
            SpawnError: Si un processus ne peut pas être créé.
            CommandCancelledError: Si l'opération est annulée.
        """
        if pipeline.is_noop:
            return

        command = pipeline.to_command_string()
        self._raise_if_cancelled(command, cancel)
        effective_timeout = self._resolve_timeout(timeout)
        deadline = None
        if effective_timeout is not None:
            deadline = asyncio.get_running_loop().time() + effective_timeout

        queue: "asyncio.Queue[object]" = asyncio.Queue(maxsize=1)

        async def enqueue(line: OutputLine) -> None:
            await queue.put(line)

        async def discard(line: OutputLine) -> None:
            return None

        stdout_sink = discard if source is StreamSource.STDERR else enqueue
        stderr_sink = discard if source is StreamSource.STDOUT else enqueue

        self._announce_start(command, f"stream:{source.value}")
        running = await self._start(pipeline, command, stdout_sink, stderr_sink)

        async def produce() -> List[int]:
            exit_codes = await running.wait()
            await queue.put(_END_OF_STREAM)
            return exit_codes

        producer = asyncio.ensure_future(produce())
        completed = False
        try:
            while True:
                item = await self._next_item(
                    running, queue, producer, cancel,
                    deadline, effective_timeout,
                )
                if item is _END_OF_STREAM:
                    break
                yield item
            exit_codes = await producer
            completed = True
            self._announce_finish(running, exit_codes[-1])
        finally:
            if not completed:
                await self._abort(running, producer)

    async def _next_item(
        self,
        running: _RunningPipeline,
        queue: "asyncio.Queue[object]",
        producer: "asyncio.Future[List[int]]",
        cancel: Optional[asyncio.Event],
        deadline: Optional[float],
        timeout: Optional[float],
    ) -> object:
        getter = asyncio.ensure_future(queue.get())
        waiters = {getter, producer}
        cancel_waiter = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)
        remaining = None
        if deadline is not None:
            remaining = max(0.0, deadline - asyncio.get_running_loop().time())
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=remaining,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            if not getter.done():
                getter.cancel()

        if getter in done:
            return getter.result()
        if producer in done:
            error = producer.exception()
            if error is not None:
                raise error
            return await queue.get()

        reason = "signal" if cancel is not None and cancel.is_set() else "timeout"
        self._announce_cancelled(running.command, reason)
        raise CommandCancelledError(
            running.command, reason, timeout if reason == "timeout" else None
        )

    # -- Lancement et supervision -----------------------------------------

    async def _run(
        self,
        pipeline: Pipeline,
        command: str,
        stdout_sink: Optional[LineSink],
        stderr_sink: Optional[LineSink],
        *,
        inherit_stdin: bool = False,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
    ) -> "tuple[List[int], _RunningPipeline]":
        """Lance le pipeline et attend sa fin ou son annulation.

        Un sink à None laisse le flux correspondant hérité du
        processus appelant.
        """
        running = await self._start(
            pipeline, command, stdout_sink, stderr_sink, inherit_stdin
        )
        return await self._complete(running, cancel, timeout), running

    async def _complete(
        self,
        running: _RunningPipeline,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
    ) -> List[int]:
        exit_codes = await self._supervise(running, cancel, timeout)
        self._announce_finish(running, exit_codes[-1])
        return exit_codes

    async def _start(
        self,
        pipeline: Pipeline,
        command: str,
        stdout_sink: Optional[LineSink],
        stderr_sink: Optional[LineSink],
        inherit_stdin: bool = False,
    ) -> _RunningPipeline:
        """Lance toutes les étapes, reliées par des pipes du système."""
        running = _RunningPipeline(command)
        # Les modes interactifs restent dans la session du terminal
        running.isolated = not inherit_stdin and sys.platform != "win32"
        stages = pipeline.stages
        upstream: Optional[int] = None
        try:
            for index, stage in enumerate(stages):
                is_last = index == len(stages) - 1
                next_upstream: Optional[int] = None
                downstream: Optional[int] = None
                if not is_last:
                    next_upstream, downstream = os.pipe()

                if index > 0:
                    stdin = upstream
                elif stage.standard_input is not None:
                    stdin = asyncio.subprocess.PIPE
                elif inherit_stdin:
                    stdin = None
                else:
                    stdin = asyncio.subprocess.DEVNULL

                if not is_last:
                    stdout = downstream
                elif stdout_sink is not None:
                    stdout = asyncio.subprocess.PIPE
                else:
                    stdout = None
                if stderr_sink is not None:
                    stderr = asyncio.subprocess.PIPE
                else:
                    stderr = None

                try:
                    process = await self._spawn(
                        stage, stdin, stdout, stderr, running.isolated
                    )
                except BaseException:
                    if next_upstream is not None:
                        os.close(next_upstream)
                    raise
                finally:
                    if upstream is not None:
                        os.close(upstream)
                        upstream = None
                    if downstream is not None:
                        os.close(downstream)
                running.processes.append(process)
                upstream = next_upstream

                if index == 0 and stage.standard_input is not None:
                    running.writers.append(process.stdin)
                    running.tasks.append(asyncio.ensure_future(
                        self._feed(process.stdin, stage.standard_input)
                    ))
                if stderr_sink is not None:
                    running.readers.append(process.stderr)
                    running.tasks.append(asyncio.ensure_future(
                        self._drain(process.stderr, True, stderr_sink)
                    ))
                if is_last and stdout_sink is not None:
                    running.readers.append(process.stdout)
                    running.tasks.append(asyncio.ensure_future(
                        self._drain(process.stdout, False, stdout_sink)
                    ))
        except BaseException:
            await self._abort(running)
            raise
        return running

    async def _spawn(
        self,
        stage: LaunchDescriptor,
        stdin: Optional[int],
        stdout: Optional[int],
        stderr: Optional[int],
        isolated: bool = False,
    ) -> asyncio.subprocess.Process:
        """Lance une étape.

        Avec isolated, l'étape ouvre une nouvelle session, sans terminal
        de contrôle, dont elle dirige le groupe de processus : l'arrêt
        atteint aussi ses descendants.
        """
        executable = self._resolver.resolve(stage.executable)
        options = {"start_new_session": True} if isolated else {}
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *stage.arguments,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                cwd=stage.working_directory,
                env=self._build_env(stage),
                limit=self._settings.stream_limit,
                **options,
            )
        except FileNotFoundError as e:
            if stage.working_directory and e.filename == stage.working_directory:
                message = (
                    f"Répertoire de travail introuvable : "
                    f"{stage.working_directory}"
                )
                self._log_error(message)
                raise SpawnError(message, stage.to_command_string()) from e
            message = f"Exécutable introuvable : {executable}"
            self._log_error(message)
            raise CommandNotFoundError(
                message, stage.to_command_string()
            ) from e
        except OSError as e:
            message = f"Impossible de lancer {executable} : {e}"
            self._log_error(message)
            raise SpawnError(message, stage.to_command_string()) from e
        if executable != stage.executable:
            self._log_debug(
                f"Substitution : {stage.executable} -> {executable}"
            )
        self._log_debug(f"pid {process.pid} : {stage.to_command_string()}")
        return process

    async def _feed(self, writer: asyncio.StreamWriter, text: str) -> None:
        """Écrit l'entrée standard puis la ferme.

        Un processus qui termine sans lire toute son entrée ferme le
        pipe : l'écriture restante est alors abandonnée.
        """
        with suppress(BrokenPipeError, ConnectionResetError):
            writer.write(text.encode(self._settings.encoding))
            await writer.drain()
        writer.close()
        with suppress(BrokenPipeError, ConnectionResetError):
            await writer.wait_closed()

    async def _drain(
        self,
        reader: asyncio.StreamReader,
        is_error: bool,
        sink: LineSink,
    ) -> None:
        encoding = self._settings.encoding
        while True:
            raw = await self._read_line(reader)
            if not raw:
                break
            text = _strip_line_ending(raw.decode(encoding, errors="replace"))
            await sink(OutputLine(text, is_error))

    @staticmethod
    async def _read_line(reader: asyncio.StreamReader) -> bytes:
        """Lit une ligne entière, même plus longue que stream_limit.

        stream_limit borne le tampon du lecteur, pas la longueur
        d'une ligne : les morceaux sont accumulés jusqu'au saut de
        ligne ou jusqu'à la fin du flux.

        Returns:
            La ligne avec son saut de ligne, la dernière ligne sans
            saut de ligne, ou b"" à la fin du flux.
        """
        parts: List[bytes] = []
        while True:
            try:
                parts.append(await reader.readuntil(b"\n"))
                break
            except asyncio.IncompleteReadError as e:
                parts.append(e.partial)
                break
            except asyncio.LimitOverrunError as e:
                parts.append(await reader.readexactly(e.consumed))
        return b"".join(parts)

    async def _supervise(
        self,
        running: _RunningPipeline,
        cancel: Optional[asyncio.Event],
        timeout: Optional[float],
    ) -> List[int]:
        """Attend la fin du pipeline, l'annulation ou le timeout."""
        work = asyncio.ensure_future(running.wait())
        waiters = {work}
        cancel_waiter = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            await self._abort(running, work)
            self._announce_cancelled(running.command, "signal")
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if work in done:
            if work.exception() is not None:
                await self._abort(running, work)
            return work.result()

        reason = "signal" if cancel is not None and cancel.is_set() else "timeout"
        await self._abort(running, work)
        self._announce_cancelled(running.command, reason)
        raise CommandCancelledError(
            running.command, reason, timeout if reason == "timeout" else None
        )

    async def _abort(
        self,
        running: _RunningPipeline,
        work: "Optional[asyncio.Future[List[int]]]" = None,
    ) -> None:
        """Arrête les tâches de lecture puis les processus."""
        pending = [task for task in running.tasks if not task.done()]
        if work is not None:
            pending.append(work)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        for writer in running.writers:
            writer.close()
        # wait() ne rend la main qu'une fois les pipes à EOF
        discards = [
            asyncio.ensure_future(self._discard(reader))
            for reader in running.readers
        ]
        try:
            await self._terminate(running)
        finally:
            for task in discards:
                task.cancel()
            await asyncio.gather(*discards, return_exceptions=True)

    async def _discard(self, reader: asyncio.StreamReader) -> None:
        while await reader.read(_DISCARD_CHUNK):
            pass

    async def _terminate(self, running: _RunningPipeline) -> None:
        """Interrompt les processus, puis les tue après grace_period.

        Pour un pipeline isolé, les signaux visent le groupe de chaque
        étape : les descendants qui gardent les pipes ouverts sont
        arrêtés avec elle.
        """
        processes = running.processes
        if not processes:
            return
        self._signal(running, force=False)

        waits = [asyncio.ensure_future(p.wait()) for p in processes]
        try:
            _, pending = await asyncio.wait(
                waits, timeout=self._settings.grace_period
            )
            survivors = [p for p in processes if p.returncode is None]
            if survivors:
                self._log_warning(
                    f"Arrêt forcé de {len(survivors)} processus après "
                    f"{self._settings.grace_period}s"
                )
            if pending:
                self._signal(running, force=True)
                _, pending = await asyncio.wait(
                    pending, timeout=_REAP_TIMEOUT
                )
            if pending:
                # Un descendant sorti du groupe garde les pipes ouverts
                self._log_warning(
                    f"{len(pending)} processus non attendus : pipes "
                    f"toujours ouverts après l'arrêt"
                )
        finally:
            for waiter in waits:
                waiter.cancel()
            await asyncio.gather(*waits, return_exceptions=True)

    def _signal(self, running: _RunningPipeline, force: bool) -> None:
        """Envoie SIGINT (ou SIGKILL si force) à chaque étape."""
        for process in running.processes:
            with suppress(ProcessLookupError, PermissionError):
                if running.isolated:
                    os.killpg(
                        process.pid,
                        signal.SIGKILL if force else signal.SIGINT,
                    )
                elif process.returncode is not None:
                    continue
                elif force:
                    process.kill()
                elif sys.platform == "win32":
                    process.terminate()
                else:
                    process.send_signal(signal.SIGINT)

    # -- Validation et utilitaires ----------------------------------------

    def _validate(
        self,
        pipeline: Pipeline,
        exit_codes: List[int],
        stderr: str,
    ) -> None:
        """Lève ExecutionFailedError pour la première étape en échec.

        Une étape intermédiaire tuée par SIGPIPE (son lecteur a fermé
        le pipe avant la fin) n'est pas considérée en échec.
        """
        last = len(exit_codes) - 1
        for index, (stage, code) in enumerate(
            zip(pipeline.stages, exit_codes)
        ):
            if code == 0 or stage.validation is ValidationPolicy.TOLERATE:
                continue
            if index < last and _SIGPIPE is not None and code == -_SIGPIPE:
                continue
            raise ExecutionFailedError(
                stage.to_command_string(), code, stderr, index
            )

    def _noop_result(self, mode: ConsumptionMode) -> EngineResult:
        if mode is ConsumptionMode.CONSOLE:
            return 0
        if mode in (ConsumptionMode.CAPTURE, ConsumptionMode.RUN_AND_CAPTURE):
            return CommandOutput.empty()
        if mode is ConsumptionMode.SELECT:
            return ""
        now = datetime.now(timezone.utc)
        return ExecutionResult(NOOP_COMMAND_STRING, 0, now, now)

    def _build_env(
        self, stage: LaunchDescriptor
    ) -> Optional[Dict[str, str]]:
        """Construit l'environnement d'une étape.

        Fusionne os.environ, settings.environment et l'environnement
        de l'étape (une valeur None retire la variable). Retourne None
        si aucun environnement personnalisé n'est défini.
        """
        if not self._settings.environment and not stage.environment:
            return None
        merged = os.environ.copy()
        merged.update(self._settings.environment)
        for key, value in stage.environment.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        return merged

    def _resolve_timeout(
        self, timeout: Optional[float] = None
    ) -> Optional[float]:
        if timeout is not None:
            return timeout
        return self._settings.default_timeout

    def _raise_if_cancelled(
        self, command: str, cancel: Optional[asyncio.Event]
    ) -> None:
        if cancel is not None and cancel.is_set():
            self._announce_cancelled(command, "signal")
            raise CommandCancelledError(command, "signal")

    async def _echo(self, line: OutputLine) -> None:
        """Recopie une ligne sur le flux console correspondant."""
        stream = sys.stderr if line.is_error else sys.stdout
        print(line.text, file=stream, flush=True)

    def _announce_start(self, command: str, mode: str) -> None:
        self._log(self._plain.format_start(command, mode))
        if self._console_formatter:
            self._console(self._console_formatter.format_start(command, mode))

    def _announce_finish(
        self, running: _RunningPipeline, exit_code: int
    ) -> None:
        duration = running.elapsed
        message = self._plain.format_finish(
            running.command, exit_code, duration
        )
        if exit_code == 0:
            self._log(message)
        else:
            self._log_error(message)
        if self._console_formatter:
            self._console(self._console_formatter.format_finish(
                running.command, exit_code, duration
            ))

    def _announce_cancelled(self, command: str, reason: str) -> None:
        self._log_warning(self._plain.format_cancelled(command, reason))
        if self._console_formatter:
            self._console(
                self._console_formatter.format_cancelled(command, reason)
            )

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.log_info(message)

    def _log_debug(self, message: str) -> None:
        if self._logger:
            self._logger.log_debug(message)

    def _log_warning(self, message: str) -> None:
        if self._logger:
            self._logger.log_warning(message)

    def _log_error(self, message: str) -> None:
        if self._logger:
            self._logger.log_error(message)

    def _console(self, message: str) -> None:
        print(message, file=sys.stderr)
