"""Data models for targets and runs."""

from __future__ import annotations

import asyncio
import codecs
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path
from typing import Any

from runpanel.buffer import DisplayBuffer
from runpanel.exceptions import InvalidTransitionError
from runpanel.types import Command
from runpanel.types import ConfigTree


class RunStatus(Enum):
    """Lifecycle status of a run."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def is_finished(self) -> bool:
        return self in (RunStatus.SUCCESS, RunStatus.FAILURE)


# Allowed status changes: idle -> running -> {success, failure}
_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.IDLE: frozenset({RunStatus.RUNNING}),
    RunStatus.RUNNING: frozenset({RunStatus.SUCCESS, RunStatus.FAILURE}),
    RunStatus.SUCCESS: frozenset(),
    RunStatus.FAILURE: frozenset(),
}


def _make_decoder() -> codecs.IncrementalDecoder:
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


@dataclass
class Target:
    """
    One monitored output stream: a backing log file and its display buffer.

    Attributes:
        id: Target identifier (run name, command text or adapter-chosen id).
        log_path: File the output is read from.
        buffer: Lines shown on the display surface.
        offset: Number of bytes of ``log_path`` already consumed.
        job: Process handle while a job is attached, if any.
        last_polled: Monotonic time of the last non-throttled poll.
    """

    id: str
    log_path: Path
    buffer: DisplayBuffer = field(default_factory=DisplayBuffer)
    offset: int = 0
    job: Any = None
    last_polled: float | None = None
    decoder: codecs.IncrementalDecoder = field(default_factory=_make_decoder, repr=False)

    def rewind(self) -> None:
        """Start reading the log file from the beginning again."""
        self.offset = 0
        self.decoder.reset()


@dataclass
class RunRecord:
    """
    One in-flight or completed command.

    Attributes:
        target_id: Target the run writes to.
        config: Merged configuration snapshot for this run.
        started_at: Unix timestamp when the run was registered.
        status: Current lifecycle status.
        job: Process handle, owned by the run controller while running.
        exit_code: Exit code once finished.
        finished_at: Unix timestamp when the run finished.
        messages: Notification texts keyed by "start", "success" and "error".
    """

    target_id: str
    config: ConfigTree
    started_at: float
    status: RunStatus = RunStatus.IDLE
    job: Any = None
    exit_code: int | None = None
    finished_at: float | None = None
    messages: dict[str, str] = field(default_factory=dict)

    def transition(self, status: RunStatus) -> None:
        """Move to ``status``.

        Raises:
            InvalidTransitionError: If the change would skip or reverse a state.
        """
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, status.value)
        self.status = status


@dataclass
class RunSpec:
    """
    What to run and how to present it.

    Attributes:
        cmd: Argument list, shell string, or a zero-argument function returning either.
        name: Target id to use; defaults to the command text.
        profile: Named profile applied over the session configuration.
        config: Per-call overrides, applied over the profile.
        start: Notification text sent when the command starts.
        success: Notification text sent when it exits with 0.
        error: Notification text sent when it fails.
        open: Show the panel for this run; None defers to ``auto_open.enabled``.
        cwd: Working directory for the command.
        env: Extra environment variables for the command.
    """

    cmd: Command
    name: str | None = None
    profile: str | None = None
    config: ConfigTree | None = None
    start: str | None = None
    success: str | None = None
    error: str | None = None
    open: bool | None = None
    cwd: Path | None = None
    env: dict[str, str] | None = None


@dataclass
class StreamOptions:
    """
    An externally managed job whose log file should be displayed.

    Attributes:
        log_path: File the job writes its output to.
        target_id: Target id; defaults to the log file name.
        job: Optional handle. If it has an awaitable ``wait()``, its result
            is used as exit code to finish the run.
        profile: Named profile applied over the session configuration.
        config: Per-call overrides.
        start: Notification text sent when the stream is registered with a job.
        success: Notification text sent on success.
        error: Notification text sent on failure.
        open: Show the panel for this stream; None defers to ``auto_open.enabled``.
    """

    log_path: Path
    target_id: str | None = None
    job: Any = None
    profile: str | None = None
    config: ConfigTree | None = None
    start: str | None = None
    success: str | None = None
    error: str | None = None
    open: bool | None = None


class RunHandle:
    """Caller-facing handle for a run started by ``Session.run``."""

    def __init__(self, record: RunRecord, log_path: Path, task: asyncio.Task[None] | None) -> None:
        self.record = record
        self.log_path = log_path
        self._task = task

    def __repr__(self) -> str:
        return f"RunHandle(target_id={self.target_id!r}, status={self.status.value})"

    @property
    def target_id(self) -> str:
        return self.record.target_id

    @property
    def status(self) -> RunStatus:
        return self.record.status

    @property
    def exit_code(self) -> int | None:
        return self.record.exit_code

    @property
    def done(self) -> bool:
        return self.record.status.is_finished

    async def wait(self) -> RunStatus:
        """Wait for the run to finish and return its final status."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.record.status
