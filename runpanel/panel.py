"""Panel state machine: closed, open-mini and open-focus.

All transitions run synchronously on the event loop. Anything delayed
(auto-hide, surface creation retries, poll ticks) captures a generation
stamp when scheduled and does nothing when it fires after being
superseded; minting a new stamp is the only way to cancel it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from collections.abc import Mapping
from typing import Any

from runpanel import geometry
from runpanel.config import DEFAULT_CONFIG
from runpanel.config import get_float
from runpanel.config import get_int
from runpanel.config import get_option
from runpanel.constants import DEFAULT_OPEN_RETRIES
from runpanel.constants import DEFAULT_OPEN_RETRY_DELAY
from runpanel.constants import DEFAULT_SCROLLOFF_MARGIN
from runpanel.exceptions import HostError
from runpanel.models import RunStatus
from runpanel.models import Target
from runpanel.poller import LogPoller
from runpanel.state.panel_state import PanelMode
from runpanel.state.panel_state import PanelState
from runpanel.surface import SurfaceHost
from runpanel.surface import SurfaceView
from runpanel.surface import content_height
from runpanel.types import Bounds

logger = logging.getLogger(__name__)


class PanelController:
    """
    Owns the display surface and every timer attached to it.

    Attributes:
        state: The session's panel state.
        host: Surface host used to create, move and destroy the surface.
        poller: Log poller scheduled while the panel is open.
    """

    def __init__(
        self,
        state: PanelState,
        host: SurfaceHost,
        poller: LogPoller,
        config_provider: Callable[[], Mapping[str, Any]],
    ) -> None:
        self.state = state
        self.host = host
        self.poller = poller
        self._config_provider = config_provider
        self._tasks: set[asyncio.Task[None]] = set()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _config(self, target_id: str | None) -> Mapping[str, Any]:
        if target_id is not None and target_id in self.state.configs:
            return self.state.configs[target_id]
        return self._config_provider()

    def _active(self) -> Target | None:
        if self.state.active_target is None:
            return None
        return self.state.targets.get(self.state.active_target)

    def _call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; dropping delayed %s", callback.__name__)
            return False
        if delay <= 0:
            loop.call_soon(callback, *args)
        else:
            loop.call_later(delay, callback, *args)
        return True

    def _view(self, target: Target, config: Mapping[str, Any], bounds: Bounds) -> SurfaceView:
        record = self.state.runs.get(target.id)
        status = record.status if record is not None else RunStatus.IDLE
        border = get_option(
            config,
            "border_highlight",
            status.value,
            default=DEFAULT_CONFIG["border_highlight"][status.value],
        )
        height = content_height(bounds)
        return SurfaceView(
            title=f" {target.id} [{status.value}] ",
            lines=tuple(target.buffer.window(height, self.state.follow)),
            border_style=str(border),
            mode=self.state.mode,
            follow=self.state.follow,
        )

    def _draw(self, target: Target, force_poll: bool = False) -> None:
        """Compute bounds and open or update the surface.

        Raises:
            HostError: If the host cannot provide a viewport or surface.
        """
        config = self._config(target.id)
        rows, cols = self.host.viewport()
        bounds = geometry.resolve(self.state.mode, config, rows, cols)
        self.state.view_height = content_height(bounds)
        if force_poll:
            self.poller.poll(target, force=True)
        if self.state.follow:
            target.buffer.scroll_to_end(self.state.view_height)
        view = self._view(target, config, bounds)
        if self.state.surface is None:
            self.state.surface = self.host.open(bounds, view)
            return
        try:
            self.host.update(self.state.surface, bounds, view)
        except HostError:
            self.state.surface = None
            raise

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    def show(self, target_id: str | None = None) -> bool:
        """
        Open the panel on ``target_id`` (default: the active target).

        Creates the surface if none exists, otherwise retargets and
        repositions the open one. If the host is not ready, creation is
        retried ``auto_open.retries`` times, ``auto_open.delay`` apart.

        Returns:
            True if the surface is open after this call, False if it is
            closed or a retry is pending.
        """
        if target_id is None:
            target_id = self.state.active_target
        if target_id is None or target_id not in self.state.targets:
            logger.debug("Nothing to show for target %r", target_id)
            return False
        self.state.active_target = target_id
        self.state.targets.touch(target_id)
        # A pending auto-hide must not close a panel that was just (re)shown
        self.state.auto_hide.mint()
        return self._attempt_render(self.state.render_retry.mint(), 0)

    def _attempt_render(self, stamp: int, attempt: int) -> bool:
        if not self.state.render_retry.is_current(stamp):
            return False
        target = self._active()
        if target is None:
            return False
        try:
            self._draw(target, force_poll=True)
        except HostError as e:
            config = self._config(target.id)
            retries = get_int(
                config, "auto_open", "retries", default=DEFAULT_OPEN_RETRIES, minimum=0
            )
            if attempt >= retries:
                logger.debug("Giving up opening panel after %d retries: %s", attempt, e)
                return False
            delay = get_float(
                config, "auto_open", "delay", default=DEFAULT_OPEN_RETRY_DELAY, minimum=0.0
            )
            logger.debug("Panel not ready (%s), retry %d in %.2fs", e, attempt + 1, delay)
            self._call_later(delay, self._attempt_render, stamp, attempt + 1)
            return False
        self._start_polling()
        return True

    def hide(self) -> bool:
        """Close the panel and cancel auto-hide, pending retries and polling.

        Returns:
            True if a surface was closed.
        """
        self.state.auto_hide.mint()
        self.state.render_retry.mint()
        self.state.polling.mint()
        surface = self.state.surface
        if surface is None:
            return False
        self.state.surface = None
        try:
            self.host.close(surface)
        except HostError as e:
            logger.debug("Host failed to close surface: %s", e)
        return True

    def toggle(self) -> bool:
        """Hide if open, show otherwise. Returns whether the panel is now open."""
        if self.state.is_open:
            self.hide()
            return False
        return self.show()

    def toggle_focus(self) -> PanelMode:
        """Swap between mini and focus geometry, redrawing in place when open."""
        self.state.mode = PanelMode.FOCUS if self.state.mode is PanelMode.MINI else PanelMode.MINI
        self.redraw()
        return self.state.mode

    def redraw(self, target_id: str | None = None, poll: bool = False) -> None:
        """Redraw the open surface, optionally only if it shows ``target_id``.

        With ``poll``, new log output is read first regardless of the poll interval.
        """
        if not self.state.is_open:
            return
        if target_id is not None and target_id != self.state.active_target:
            return
        target = self._active()
        if target is None:
            return
        try:
            self._draw(target, force_poll=poll)
        except HostError as e:
            logger.debug("Redraw failed, closing panel: %s", e)
            self.hide()

    def schedule_auto_hide(self, delay: float) -> int:
        """
        Hide the panel after ``delay`` seconds unless superseded first.

        Any earlier auto-hide is invalidated, as is this one by a later
        ``show``, ``hide`` or ``schedule_auto_hide``.

        Returns:
            The stamp guarding this auto-hide.
        """
        stamp = self.state.auto_hide.mint()
        self._call_later(max(0.0, delay), self._fire_auto_hide, stamp)
        return stamp

    def _fire_auto_hide(self, stamp: int) -> None:
        if self.state.auto_hide.is_current(stamp):
            self.hide()

    # -------------------------------------------------------------------------
    # Scrolling
    # -------------------------------------------------------------------------

    def scroll(self, delta: int) -> None:
        """
        Move the view by ``delta`` lines (negative is up).

        Scrolling up leaves follow mode; scrolling down to within
        ``scrolloff_margin`` lines of the end re-enters it.
        """
        target = self._active()
        if target is None or delta == 0:
            return
        height = self.state.view_height
        buffer = target.buffer
        if self.state.follow:
            buffer.scroll_to_end(height)
        buffer.scroll(delta, height)
        margin = get_int(
            self._config(target.id), "scrolloff_margin", default=DEFAULT_SCROLLOFF_MARGIN, minimum=0
        )
        if delta < 0 and buffer.distance_from_end(height) > 0:
            self.state.follow = False
        elif buffer.distance_from_end(height) <= margin:
            self.state.follow = True
            buffer.scroll_to_end(height)
        self.redraw()

    def toggle_follow(self) -> bool:
        """Flip follow mode; turning it on jumps to the last line."""
        self.state.follow = not self.state.follow
        target = self._active()
        if self.state.follow and target is not None:
            target.buffer.scroll_to_end(self.state.view_height)
        self.redraw()
        return self.state.follow

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    def _start_polling(self) -> None:
        self._schedule_tick(self.state.polling.mint())

    def _schedule_tick(self, stamp: int) -> None:
        target = self._active()
        if target is None:
            return
        self._call_later(self.poller.interval(target), self._tick, stamp)

    def _tick(self, stamp: int) -> None:
        if not self.state.polling.is_current(stamp) or not self.state.is_open:
            return
        task = asyncio.get_running_loop().create_task(self._tick_async(stamp))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _tick_async(self, stamp: int) -> None:
        target = self._active()
        if target is None:
            return
        offset = target.offset
        await self.poller.poll_async(target)
        # The panel may have closed or moved on while the read was in flight
        if not self.state.polling.is_current(stamp) or not self.state.is_open:
            return
        if target.offset != offset:
            self.redraw()
        self._schedule_tick(stamp)
