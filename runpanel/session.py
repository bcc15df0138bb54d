"""Session: the application object that owns a panel state and its components.

Everything public lives here. A session holds exactly one ``PanelState``;
independent sessions (e.g. in tests) share nothing.

Example:
    async def main() -> None:
        session = Session()
        session.setup({"auto_hide": {"enabled": True, "delay": 1.0}})
        handle = session.run("make -j8", name="build")
        await handle.wait()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from rich.console import Console

from runpanel.adapter import AdapterAPI
from runpanel.config import DEFAULT_CONFIG
from runpanel.config import adapter_enabled
from runpanel.config import deep_merge
from runpanel.exceptions import ConfigurationError
from runpanel.models import RunHandle
from runpanel.models import RunSpec
from runpanel.models import RunStatus
from runpanel.models import StreamOptions
from runpanel.notify import NotificationRouter
from runpanel.notify import RichNotifier
from runpanel.panel import PanelController
from runpanel.poller import LogPoller
from runpanel.runner import RunController
from runpanel.state.clock import Clock
from runpanel.state.clock import SystemClock
from runpanel.state.panel_state import PanelMode
from runpanel.state.panel_state import PanelState
from runpanel.surface import RichSurfaceHost
from runpanel.surface import SurfaceHost
from runpanel.types import Command
from runpanel.types import ConfigTree
from runpanel.types import NotifyLevel

logger = logging.getLogger(__name__)


class Session:
    """
    Supervises command runs and the panel that displays their output.

    ``run`` and ``stream`` must be called while an asyncio event loop is
    running; the panel operations can be called from anywhere on that
    loop's thread.

    Attributes:
        state: The session's panel state.
        console: Rich console used by the default host and notifier.
        host: Display surface host.
        poller: Log poller.
        panel: Panel state machine.
        router: Notification router.
        runner: Run controller.
    """

    def __init__(
        self,
        host: SurfaceHost | None = None,
        console: Console | None = None,
        clock: Clock | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Initialize a session.

        Args:
            host: Display surface host. Defaults to a ``RichSurfaceHost``.
            console: Rich console for the default host and the Rich notifier.
            clock: Time source. Defaults to the system clock.
            config: Initial overrides, as if passed to ``setup``.
        """
        self.console = console if console is not None else Console()
        self.host: SurfaceHost = host if host is not None else RichSurfaceHost(self.console)
        self.clock: Clock = clock if clock is not None else SystemClock()
        self.state = PanelState()
        self._config: ConfigTree = deep_merge(DEFAULT_CONFIG, None)

        self.poller = LogPoller(self.state, self.clock)
        self.panel = PanelController(self.state, self.host, self.poller, self.get_config)
        self.router = NotificationRouter(
            self.state, self.get_config, rich=RichNotifier(self.console)
        )
        self.runner = RunController(
            self.state, self.panel, self.router, self.clock, self.get_config
        )
        if config:
            self.setup(config)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def get_config(self) -> ConfigTree:
        """Return the session configuration (defaults plus every ``setup`` call)."""
        return self._config

    def setup(self, config: Mapping[str, Any] | None = None) -> ConfigTree:
        """
        Merge ``config`` over the current session configuration.

        Repeated calls accumulate: explicit values of the latest call win,
        keys it does not mention keep their previously merged values.
        Pending surface creation retries are abandoned and an open panel
        is redrawn with the new configuration.

        Raises:
            ConfigurationError: If ``config`` is not a mapping.
        """
        if config is not None and not isinstance(config, Mapping):
            raise ConfigurationError("setup", f"Expected a mapping, got {type(config).__name__}")
        self._config = deep_merge(self._config, config)
        self.state.render_retry.mint()
        self.panel.redraw()
        return self._config

    def adapter_enabled(self, name: str) -> bool:
        """True if profile ``name`` exists and its ``enabled`` flag is not False."""
        return adapter_enabled(self._config, name)

    # -------------------------------------------------------------------------
    # Runs
    # -------------------------------------------------------------------------

    def run(
        self,
        cmd: Command | None = None,
        *,
        spec: RunSpec | None = None,
        **kwargs: Any,
    ) -> RunHandle:
        """
        Run a command and show its output.

        Args:
            cmd: Argument list, shell string or zero-argument function.
            spec: A complete ``RunSpec``; used instead of ``cmd``/``kwargs``.
            **kwargs: Other ``RunSpec`` fields (name, profile, config, start,
                success, error, open, cwd, env).

        Returns:
            A handle to observe or await the run.
        """
        if spec is None:
            if cmd is None:
                raise ValueError("Either cmd or spec is required")
            spec = RunSpec(cmd=cmd, **kwargs)
        return self.runner.run(spec)

    def stream(
        self,
        log_path: Path | str | None = None,
        *,
        options: StreamOptions | None = None,
        **kwargs: Any,
    ) -> RunHandle:
        """Display a log file written by a job started elsewhere.

        Args:
            log_path: File to display.
            options: A complete ``StreamOptions``; used instead of ``log_path``/``kwargs``.
            **kwargs: Other ``StreamOptions`` fields.
        """
        if options is None:
            if log_path is None:
                raise ValueError("Either log_path or options is required")
            options = StreamOptions(log_path=Path(log_path), **kwargs)
        return self.runner.stream(options)

    def adapter(self, name: str) -> AdapterAPI:
        """Return the adapter-facing API for adapter ``name``."""
        return AdapterAPI(name, self.runner, self.router)

    def status(self, target_id: str | None = None) -> RunStatus | None:
        """Status of the current run of ``target_id`` (default: the active target)."""
        if target_id is None:
            target_id = self.state.active_target
        record = self.state.runs.get(target_id) if target_id is not None else None
        return record.status if record is not None else None

    def notify(self, level: NotifyLevel, message: str, **kwargs: Any) -> Any:
        return self.router.notify(level, message, **kwargs)

    # -------------------------------------------------------------------------
    # Panel
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    @property
    def mode(self) -> PanelMode:
        return self.state.mode

    def show(self) -> bool:
        return self.panel.show()

    def hide(self) -> bool:
        return self.panel.hide()

    def toggle(self) -> bool:
        return self.panel.toggle()

    def toggle_focus(self) -> PanelMode:
        return self.panel.toggle_focus()

    def scroll(self, delta: int) -> None:
        self.panel.scroll(delta)

    def toggle_follow(self) -> bool:
        return self.panel.toggle_follow()
