"""Run controller: spawns commands, tracks their status and drives side effects.

A run writes the interleaved stdout and stderr of its command straight
into a temporary log file (the child process owns the descriptor), so the
log poller sees partial output while the command is still running. When
the process exits, the controller records the status, notifies, and
opens or schedules hiding of the panel according to the run's config.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
import re
import shlex
import tempfile
from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from runpanel.buffer import DisplayBuffer
from runpanel.config import get_bool
from runpanel.config import get_float
from runpanel.config import get_int
from runpanel.config import resolve_run_config
from runpanel.constants import DEFAULT_AUTO_HIDE_DELAY
from runpanel.constants import DEFAULT_MAX_LINES
from runpanel.constants import LOG_FILE_PREFIX
from runpanel.constants import SPAWN_FAILURE_EXIT_CODE
from runpanel.exceptions import InvalidTransitionError
from runpanel.exceptions import SpawnError
from runpanel.models import RunHandle
from runpanel.models import RunRecord
from runpanel.models import RunSpec
from runpanel.models import RunStatus
from runpanel.models import StreamOptions
from runpanel.models import Target
from runpanel.notify import NotificationRouter
from runpanel.panel import PanelController
from runpanel.state.clock import Clock
from runpanel.state.panel_state import PanelState
from runpanel.types import Command
from runpanel.types import CommandLine
from runpanel.types import ConfigTree

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def describe_command(cmd: Command) -> str:
    """Return a short display form of a command."""
    if isinstance(cmd, str):
        return cmd
    if isinstance(cmd, Sequence):
        return shlex.join(str(part) for part in cmd)
    return getattr(cmd, "__name__", "command")


def resolve_command(cmd: Command) -> CommandLine:
    """
    Turn a command specification into something that can be spawned.

    Args:
        cmd: Shell string, argument list, or zero-argument function returning either.

    Returns:
        A shell string or a list of arguments.

    Raises:
        TypeError: If the command (or the function's result) has another type.
        ValueError: If the command is empty.
    """
    if callable(cmd) and not isinstance(cmd, str | Sequence):
        cmd = cmd()
    if isinstance(cmd, str):
        if not cmd.strip():
            raise ValueError("Empty command")
        return cmd
    if isinstance(cmd, Sequence):
        argv = [str(part) for part in cmd]
        if not argv:
            raise ValueError("Empty argument list")
        return argv
    raise TypeError(f"Unsupported command type: {type(cmd).__name__}")


def _log_prefix(target_id: str) -> str:
    slug = _UNSAFE_NAME_CHARS.sub("_", target_id).strip("_")[:40] or "run"
    return f"{LOG_FILE_PREFIX}{os.getpid()}-{slug}-"


def make_log_path(target_id: str) -> Path:
    """Create an empty, process-unique log file in the temp directory.

    Raises:
        OSError: If the temp directory is not writable.
    """
    fd, name = tempfile.mkstemp(prefix=_log_prefix(target_id), suffix=".log")
    os.close(fd)
    return Path(name)


def unavailable_log_path(target_id: str) -> Path:
    """Path used for a run whose log file could not be created; it may never exist."""
    return Path(tempfile.gettempdir()) / f"{_log_prefix(target_id)}unavailable.log"


async def spawn(
    command: CommandLine,
    log_path: Path,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> asyncio.subprocess.Process:
    """
    Start ``command`` with stdout and stderr appended to ``log_path``.

    A string is run through the shell, a list is executed directly.

    Raises:
        SpawnError: If the process could not be created.
    """
    environment = {**os.environ, **env} if env else None
    try:
        with log_path.open("ab", buffering=0) as log:
            if isinstance(command, str):
                return await asyncio.create_subprocess_shell(
                    command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=log,
                    stderr=asyncio.subprocess.STDOUT,
                    cwd=cwd,
                    env=environment,
                )
            return await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=log,
                stderr=asyncio.subprocess.STDOUT,
                cwd=cwd,
                env=environment,
            )
    except OSError as e:
        raise SpawnError(describe_command(command), cause=e) from e


def _append_note(log_path: Path, message: str) -> None:
    try:
        with log_path.open("a", encoding="utf-8") as log:
            log.write(f"{message}\n")
    except OSError as e:
        logger.debug("Cannot write to %s: %s", log_path, e)


class RunController:
    """
    Starts runs and streams, and applies their status transitions.

    Attributes:
        state: The session's panel state (targets, runs, configs).
        panel: Panel state machine to show, redraw and auto-hide.
        router: Notification router.
        clock: Time source for run timestamps.
    """

    def __init__(
        self,
        state: PanelState,
        panel: PanelController,
        router: NotificationRouter,
        clock: Clock,
        config_provider: Callable[[], Mapping[str, Any]],
    ) -> None:
        self.state = state
        self.panel = panel
        self.router = router
        self.clock = clock
        self._config_provider = config_provider
        self._tasks: set[asyncio.Task[None]] = set()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def _register(self, target_id: str, log_path: Path, config: ConfigTree, job: Any) -> RunRecord:
        max_lines = get_int(config, "max_lines", default=DEFAULT_MAX_LINES, minimum=1)
        target = Target(id=target_id, log_path=log_path, buffer=DisplayBuffer(max_lines), job=job)
        evicted = self.state.targets.add(
            target,
            protected=lambda tid: tid == self.state.active_target or self.state.is_running(tid),
        )
        for old in evicted:
            self.state.forget(old.id)
        self.state.configs[target_id] = config
        record = RunRecord(target_id=target_id, config=config, started_at=self.clock.now(), job=job)
        self.state.runs[target_id] = record
        return record

    def _spawn_task(self, coro: Any) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _should_open(self, requested: bool | None, config: ConfigTree) -> bool:
        if requested is not None:
            return requested
        return get_bool(config, "auto_open", "enabled", default=True)

    def _is_current(self, record: RunRecord) -> bool:
        return self.state.runs.get(record.target_id) is record

    # -------------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------------

    def _start(self, record: RunRecord) -> None:
        """Move ``record`` to running and announce it.

        Raises:
            InvalidTransitionError: If the record is not idle.
        """
        record.transition(RunStatus.RUNNING)
        message = record.messages.get("start")
        if message:
            self.router.info(message, config=record.config)
        self.panel.redraw(record.target_id)

    def _finish(self, record: RunRecord, status: RunStatus, exit_code: int) -> None:
        """Move ``record`` to its final status and apply the side effects.

        Raises:
            InvalidTransitionError: If the record is not running.
        """
        record.transition(status)
        record.exit_code = exit_code
        record.finished_at = self.clock.now()
        record.job = None
        current = self._is_current(record)
        if current:
            target = self.state.targets.get(record.target_id)
            if target is not None:
                target.job = None
        logger.debug("Run %s finished with %s (exit %d)", record.target_id, status.value, exit_code)

        config = record.config
        scope = record.target_id
        if status is RunStatus.SUCCESS:
            if current:
                self.router.dismiss(scope, config=config)
            message = record.messages.get("success") or f"{record.target_id}: succeeded"
            self.router.info(message, config=config)
        else:
            message = (
                record.messages.get("error") or f"{record.target_id}: failed (exit {exit_code})"
            )
            persist = get_bool(config, "notifications", "persist_failure", default=True)
            self.router.error(
                message, persist=persist, scope_key=scope if persist else None, config=config
            )

        if not current:
            return
        self.panel.redraw(record.target_id, poll=True)
        if status is RunStatus.FAILURE and get_bool(config, "open_on_error", default=True):
            self.panel.show(record.target_id)
        elif (
            status is RunStatus.SUCCESS
            and get_bool(config, "auto_hide", "enabled", default=False)
            and self.state.active_target == record.target_id
        ):
            delay = get_float(
                config, "auto_hide", "delay", default=DEFAULT_AUTO_HIDE_DELAY, minimum=0.0
            )
            self.panel.schedule_auto_hide(delay)

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run(self, spec: RunSpec) -> RunHandle:
        """
        Start a command and show its output.

        Must be called from a running event loop. Spawn problems never
        raise here; they end the run with ``failure`` instead.

        Args:
            spec: What to run and how to present it.

        Returns:
            A handle to observe or await the run.
        """
        config = resolve_run_config(self._config_provider(), spec.profile, spec.config)
        command: CommandLine | None = None
        error: SpawnError | None = None
        try:
            command = resolve_command(spec.cmd)
        except Exception as e:
            error = SpawnError(describe_command(spec.cmd), cause=e)

        target_id = spec.name or describe_command(command if command is not None else spec.cmd)
        try:
            log_path = make_log_path(target_id)
        except OSError as e:
            logger.debug("Cannot create log file for %s: %s", target_id, e)
            log_path = unavailable_log_path(target_id)
            if error is None:
                error = SpawnError(describe_command(spec.cmd), "Cannot create log file", cause=e)
        record = self._register(target_id, log_path, config, job=None)
        record.messages = {
            key: text
            for key, text in (
                ("start", spec.start),
                ("success", spec.success),
                ("error", spec.error),
            )
            if text
        }
        self._start(record)
        if self._should_open(spec.open, config):
            self.panel.show(target_id)
        task = self._spawn_task(self._supervise(record, command, log_path, spec, error))
        return RunHandle(record, log_path, task)

    async def _supervise(
        self,
        record: RunRecord,
        command: CommandLine | None,
        log_path: Path,
        spec: RunSpec,
        error: SpawnError | None,
    ) -> None:
        process: asyncio.subprocess.Process | None = None
        if error is None and command is not None:
            try:
                process = await spawn(command, log_path, cwd=spec.cwd, env=spec.env)
            except SpawnError as e:
                error = e

        if process is None:
            message = error.message if error is not None else "Nothing to run"
            logger.debug("Run %s could not start: %s", record.target_id, message)
            _append_note(log_path, message)
            self._finish(record, RunStatus.FAILURE, SPAWN_FAILURE_EXIT_CODE)
            return

        record.job = process
        target = self.state.targets.get(record.target_id)
        if target is not None and self._is_current(record):
            target.job = process
        try:
            exit_code = await process.wait()
        except asyncio.CancelledError:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    logger.debug("Process for %s already exited", record.target_id)
            raise
        self._finish_from_exit(record, exit_code)

    def stream(self, options: StreamOptions) -> RunHandle:
        """
        Display a log file written by a job this controller does not own.

        If ``options.job`` has an awaitable ``wait()``, its result is used
        as the exit code; otherwise status is driven by ``push_status``.

        Args:
            options: Log path, optional job handle and presentation options.

        Returns:
            A handle for the registered record.
        """
        config = resolve_run_config(self._config_provider(), options.profile, options.config)
        log_path = Path(options.log_path)
        target_id = options.target_id or log_path.name
        record = self._register(target_id, log_path, config, job=options.job)
        record.messages = {
            key: text
            for key, text in (
                ("start", options.start),
                ("success", options.success),
                ("error", options.error),
            )
            if text
        }
        if options.job is not None:
            self._start(record)
        if self._should_open(options.open, config):
            self.panel.show(target_id)

        task = None
        if options.job is not None and callable(getattr(options.job, "wait", None)):
            task = self._spawn_task(self._watch(record, options.job))
        return RunHandle(record, log_path, task)

    async def _watch(self, record: RunRecord, job: Any) -> None:
        try:
            if inspect.iscoroutinefunction(job.wait):
                result = await job.wait()
            else:
                # Blocking wait(), e.g. subprocess.Popen
                result = await asyncio.to_thread(job.wait)
                if inspect.isawaitable(result):
                    result = await result
        except Exception as e:
            logger.debug("Waiting on job for %s failed: %s", record.target_id, e)
            result = None
        exit_code = result if isinstance(result, int) and not isinstance(result, bool) else -1
        self._finish_from_exit(record, exit_code)

    def _finish_from_exit(self, record: RunRecord, exit_code: int) -> None:
        if record.status is not RunStatus.RUNNING:
            logger.debug("Run %s already finished, ignoring exit %d", record.target_id, exit_code)
            return
        self._finish(
            record, RunStatus.SUCCESS if exit_code == 0 else RunStatus.FAILURE, exit_code
        )

    def push_status(
        self,
        target_id: str,
        status: RunStatus | str,
        exit_code: int | None = None,
    ) -> bool:
        """
        Apply a status update sent by an adapter.

        Invalid updates (unknown target, unknown status, skipped or
        reversed transitions) are logged at debug level and ignored.

        Returns:
            True if the update was applied.
        """
        record = self.state.runs.get(target_id)
        if record is None:
            logger.debug("Status update for unknown target %s", target_id)
            return False
        try:
            new_status = RunStatus(status)
        except ValueError:
            logger.debug("Unknown status %r for target %s", status, target_id)
            return False
        try:
            if new_status is RunStatus.RUNNING:
                self._start(record)
            elif new_status.is_finished:
                if exit_code is None:
                    exit_code = 0 if new_status is RunStatus.SUCCESS else 1
                self._finish(record, new_status, exit_code)
            else:
                raise InvalidTransitionError(record.status.value, new_status.value)
        except InvalidTransitionError as e:
            logger.debug("Ignoring status update for %s: %s", target_id, e)
            return False
        return True
