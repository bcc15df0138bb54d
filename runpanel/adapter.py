"""The surface exposed to adapters.

Adapters (editor build hooks, task runner integrations, ...) observe jobs
that runpanel does not start itself. They may register a log file as a
target, report status changes and send notifications; nothing else.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from runpanel.models import RunStatus
from runpanel.models import StreamOptions
from runpanel.notify import NotificationRouter
from runpanel.runner import RunController
from runpanel.types import ConfigTree
from runpanel.types import NotifyLevel


class AdapterAPI:
    """
    Adapter-facing operations of a session.

    By default an adapter's targets use the profile named after the
    adapter, so ``profiles.<name>`` configures everything it shows.

    Attributes:
        name: Adapter name (and default profile name).
    """

    def __init__(self, name: str, runner: RunController, router: NotificationRouter) -> None:
        self.name = name
        self._runner = runner
        self._router = router

    def register_target(
        self,
        log_path: Path | str,
        *,
        target_id: str | None = None,
        job: Any = None,
        open: bool | None = None,
        config: ConfigTree | None = None,
        profile: str | None = None,
        start: str | None = None,
        success: str | None = None,
        error: str | None = None,
    ) -> str:
        """
        Register ``log_path`` as a target and start displaying it.

        Args:
            log_path: File the adapter's job writes to.
            target_id: Target id; defaults to the log file name.
            job: Optional job handle; an awaitable ``wait()`` finishes the run.
            open: Show the panel; None defers to ``auto_open.enabled``.
            config: Per-call overrides.
            profile: Profile to apply; defaults to the adapter name.
            start: Notification text when the job starts.
            success: Notification text on success.
            error: Notification text on failure.

        Returns:
            The target id.
        """
        handle = self._runner.stream(
            StreamOptions(
                log_path=Path(log_path),
                target_id=target_id,
                job=job,
                profile=profile if profile is not None else self.name,
                config=config,
                start=start,
                success=success,
                error=error,
                open=open,
            )
        )
        return handle.target_id

    def push_status(
        self,
        target_id: str,
        status: RunStatus | str,
        exit_code: int | None = None,
    ) -> bool:
        """Report a status change; returns False if it was ignored."""
        return self._runner.push_status(target_id, status, exit_code)

    def notify(
        self,
        level: NotifyLevel,
        message: str,
        *,
        title: str | None = None,
        persist: bool = False,
        scope_key: str | None = None,
    ) -> Any:
        return self._router.notify(
            level, message, title=title, persist=persist, scope_key=scope_key
        )
