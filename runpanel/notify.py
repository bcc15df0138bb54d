"""Notification routing with backend fallback.

Backends are tried in order at call time and the first that succeeds wins:

1. the user-supplied ``notifier`` from the configuration, if it exposes
   the requested level;
2. the Rich console backend, if the session has a terminal console;
3. the logging backend, which is always present.

A backend that raises is skipped silently (debug trace only) so a broken
notifier never blocks a run.
"""

from __future__ import annotations

import functools
import itertools
import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Callable
from collections.abc import Iterator
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from rich.console import Console
from rich.text import Text

from runpanel.config import get_bool
from runpanel.config import get_option
from runpanel.constants import DEFAULT_TITLE
from runpanel.constants import FAILURE_COLOR
from runpanel.constants import RUNNING_COLOR
from runpanel.types import NotifyLevel

if TYPE_CHECKING:
    from runpanel.state.panel_state import PanelState

logger = logging.getLogger(__name__)

# Notifications sent through the fallback backend go to this logger
notify_logger = logging.getLogger("runpanel.notify.messages")

LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

LEVEL_STYLES: dict[str, str] = {
    "info": f"bold {RUNNING_COLOR}",
    "warn": "bold yellow",
    "error": f"bold {FAILURE_COLOR}",
}


@dataclass
class Notice:
    """A notification shown by a built-in backend."""

    id: int
    level: str
    message: str
    title: str
    persist: bool


class NoticeBoard(ABC):
    """
    Base class for the built-in backends.

    Keeps persistent notices in ``visible`` until they are replaced or
    dismissed; transient notices are emitted and forgotten.
    """

    def __init__(self) -> None:
        self.visible: dict[int, Notice] = {}
        self._ids = itertools.count(1)

    def notify(
        self,
        level: str,
        message: str,
        *,
        title: str = DEFAULT_TITLE,
        persist: bool = False,
        replace: Any = None,
    ) -> Notice:
        """Emit a notice, removing ``replace`` first if it is one of ours."""
        replaced = self.dismiss(replace)
        notice = Notice(
            id=next(self._ids), level=level, message=message, title=title, persist=persist
        )
        if persist:
            self.visible[notice.id] = notice
        self._emit(notice, replaced)
        return notice

    def dismiss(self, handle: Any) -> bool:
        """Remove a persistent notice. Returns True if it was visible."""
        if isinstance(handle, Notice):
            return self.visible.pop(handle.id, None) is not None
        return False

    @abstractmethod
    def _emit(self, notice: Notice, replaced: bool) -> None:
        """Present the notice."""


class LoggingNotifier(NoticeBoard):
    """Fallback backend writing notices to the ``runpanel.notify.messages`` logger."""

    def _emit(self, notice: Notice, replaced: bool) -> None:
        level = LEVELS.get(notice.level, logging.INFO)
        notify_logger.log(level, "[%s] %s", notice.title, notice.message)


class RichNotifier(NoticeBoard):
    """Backend printing styled notice lines to a Rich console."""

    def __init__(self, console: Console) -> None:
        super().__init__()
        self.console = console

    @property
    def available(self) -> bool:
        return bool(self.console.is_terminal)

    def _emit(self, notice: Notice, replaced: bool) -> None:
        line = Text.assemble(
            (f" {notice.title} ", LEVEL_STYLES.get(notice.level, "bold")),
            " ",
            notice.message,
        )
        if replaced:
            line.append(" (updated)", style="dim")
        self.console.print(line)


def _user_level_fn(notifier: Any, level: str) -> Callable[..., Any] | None:
    """Return the notifier's callable for ``level``, if it has one."""
    if notifier is None:
        return None
    fn = notifier.get(level) if isinstance(notifier, Mapping) else getattr(notifier, level, None)
    return fn if callable(fn) else None


class NotificationRouter:
    """
    Chooses a notification backend per call and deduplicates scoped notices.

    Attributes:
        state: Panel state holding the scope key -> handle map.
        rich: Optional Rich backend.
        fallback: Logging backend used when everything else fails.
    """

    def __init__(
        self,
        state: PanelState,
        config_provider: Callable[[], Mapping[str, Any]],
        rich: RichNotifier | None = None,
        fallback: LoggingNotifier | None = None,
    ) -> None:
        self.state = state
        self._config_provider = config_provider
        self.rich = rich
        self.fallback = fallback if fallback is not None else LoggingNotifier()

    def _tiers(
        self, level: str, config: Mapping[str, Any]
    ) -> Iterator[tuple[str, Callable[..., Any]]]:
        user_fn = _user_level_fn(get_option(config, "notifier"), level)
        if user_fn is not None:
            yield "user", user_fn
        if self.rich is not None and self.rich.available:
            yield "rich", functools.partial(self.rich.notify, level)
        yield "fallback", functools.partial(self.fallback.notify, level)

    def notify(
        self,
        level: NotifyLevel,
        message: str,
        *,
        title: str | None = None,
        persist: bool = False,
        scope_key: str | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> Any:
        """
        Send a notification through the first working backend.

        Args:
            level: "info", "warn" or "error".
            message: Notification text.
            title: Title; defaults to ``notifications.title``.
            persist: Keep the notice until replaced or dismissed.
            scope_key: With ``persist``, the next persistent notice with the
                same key replaces this one instead of stacking.
            config: Configuration to read backend and title from; defaults to
                the session configuration.

        Returns:
            The backend's handle, or None if notifications are disabled or
            every backend failed.
        """
        if config is None:
            config = self._config_provider()
        if not get_bool(config, "notifications", "enabled", default=True):
            return None
        if title is None:
            title = str(get_option(config, "notifications", "title", default=DEFAULT_TITLE))

        # Transient notices never replace or track a scoped persistent one
        previous = None
        if persist and scope_key is not None:
            previous = self.state.notifications.get(scope_key)
        handle = None
        for name, send in self._tiers(level, config):
            try:
                handle = send(message, title=title, persist=persist, replace=previous)
            except Exception as e:
                logger.debug("Notifier backend %s failed, falling back: %s", name, e)
                continue
            break
        else:
            logger.debug("No notifier backend delivered %r", message)
            return None

        if persist and scope_key is not None:
            if previous is not None:
                # The prior notice may have come from another tier
                self._dismiss_everywhere(previous, config, include_user=name != "user")
            self.state.notifications[scope_key] = handle
        return handle

    def info(self, message: str, **kwargs: Any) -> Any:
        return self.notify("info", message, **kwargs)

    def warn(self, message: str, **kwargs: Any) -> Any:
        return self.notify("warn", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> Any:
        return self.notify("error", message, **kwargs)

    def dismiss(self, scope_key: str, config: Mapping[str, Any] | None = None) -> bool:
        """Dismiss the persistent notice stored under ``scope_key``, if any."""
        handle = self.state.notifications.pop(scope_key, None)
        if handle is None:
            return False
        self._dismiss_everywhere(handle, config if config is not None else self._config_provider())
        return True

    def _dismiss_everywhere(
        self, handle: Any, config: Mapping[str, Any], include_user: bool = True
    ) -> None:
        user_dismiss = None
        if include_user:
            user_dismiss = _user_level_fn(get_option(config, "notifier"), "dismiss")
        backends: list[Callable[[Any], Any]] = [self.fallback.dismiss]
        if self.rich is not None:
            backends.append(self.rich.dismiss)
        if user_dismiss is not None:
            backends.append(user_dismiss)
        for dismiss in backends:
            try:
                dismiss(handle)
            except Exception as e:
                logger.debug("Notifier dismiss failed: %s", e)
