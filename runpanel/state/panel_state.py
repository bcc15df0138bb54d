"""Process-wide panel state and the generation stamps that guard delayed actions.

There is exactly one ``PanelState`` per ``Session``. It is only ever
touched from the session's event loop, so it carries no locks; every
transition that mutates it runs to completion inside one callback.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import TYPE_CHECKING
from typing import Any

from runpanel.state.targets import TargetRegistry

if TYPE_CHECKING:
    from runpanel.models import RunRecord
    from runpanel.surface import SurfaceHandle
    from runpanel.types import ConfigTree


class PanelMode(Enum):
    """Geometry presets for the display surface."""

    MINI = "mini"
    FOCUS = "focus"


class Generation:
    """Monotonic stamp for one class of cancellable delayed action.

    A delayed callback captures the value returned by ``mint()`` when it is
    scheduled and checks ``is_current()`` when it fires. Minting again
    supersedes every stamp handed out before, which is the only way an
    outstanding action is cancelled.

    Example:
        >>> gen = Generation()
        >>> first = gen.mint()
        >>> second = gen.mint()
        >>> gen.is_current(first), gen.is_current(second)
        (False, True)
    """

    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value = 0

    @property
    def value(self) -> int:
        return self._value

    def mint(self) -> int:
        """Invalidate all outstanding stamps and return a fresh one."""
        self._value += 1
        return self._value

    def is_current(self, stamp: int) -> bool:
        return stamp == self._value


@dataclass
class PanelState:
    """Everything the panel state machine owns.

    Attributes:
        active_target: Id of the target the panel shows (or would show).
        surface: Handle of the open surface, None when closed.
        mode: Current geometry preset.
        follow: Whether polling keeps the view on the last line.
        view_height: Number of content rows of the surface last drawn.
        auto_hide: Stamp source for pending auto-hide timers.
        render_retry: Stamp source for pending surface creation retries.
        polling: Stamp source for the recurring poll tick.
        notifications: Scope key -> handle of the last persistent notification.
        configs: Target id -> merged config snapshot used for that target.
        targets: Registry of known targets, most recently used last.
        runs: Target id -> the current run record for that target.
    """

    active_target: str | None = None
    surface: SurfaceHandle | None = None
    mode: PanelMode = PanelMode.MINI
    follow: bool = True
    view_height: int = 0
    auto_hide: Generation = field(default_factory=Generation)
    render_retry: Generation = field(default_factory=Generation)
    polling: Generation = field(default_factory=Generation)
    notifications: dict[str, Any] = field(default_factory=dict)
    configs: dict[str, ConfigTree] = field(default_factory=dict)
    targets: TargetRegistry = field(default_factory=TargetRegistry)
    runs: dict[str, RunRecord] = field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        return self.surface is not None

    def is_running(self, target_id: str) -> bool:
        """Return True if the current run of ``target_id`` has not finished."""
        from runpanel.models import RunStatus

        record = self.runs.get(target_id)
        return record is not None and record.status is RunStatus.RUNNING

    def forget(self, target_id: str) -> None:
        """Drop the config and run of an evicted target.

        Scoped notification handles are kept: the notice may still be
        visible, and a later failure of the same id must replace it.
        """
        self.configs.pop(target_id, None)
        self.runs.pop(target_id, None)
