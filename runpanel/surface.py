"""Display surface hosts.

The panel state machine only talks to a ``SurfaceHost``: it asks for the
viewport size, opens one surface, repositions or redraws it, and closes
it. ``RichSurfaceHost`` implements this on a Rich ``Live`` display.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Protocol

from rich.console import Console
from rich.errors import LiveError
from rich.live import Live
from rich.padding import Padding
from rich.panel import Panel
from rich.text import Text

from runpanel.exceptions import HostError
from runpanel.exceptions import HostNotReadyError
from runpanel.state.panel_state import PanelMode
from runpanel.types import Bounds

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


@dataclass(frozen=True)
class SurfaceView:
    """
    What a surface should show.

    Attributes:
        title: Title line (target id, status and follow indicator).
        lines: Visible content lines, top to bottom.
        border_style: Rich style for the border.
        mode: Geometry preset the bounds were computed for.
        follow: Whether the view is following new output.
    """

    title: str
    lines: tuple[str, ...]
    border_style: str
    mode: PanelMode
    follow: bool


@dataclass
class SurfaceHandle:
    """Identifies an open surface and the bounds it was last placed at."""

    id: int
    bounds: Bounds

    @classmethod
    def create(cls, bounds: Bounds) -> SurfaceHandle:
        return cls(id=next(_handle_ids), bounds=bounds)


class SurfaceHost(Protocol):
    """Host capabilities needed to present a floating display region."""

    def viewport(self) -> tuple[int, int]:
        """Return ``(rows, cols)`` of the host viewport.

        Raises:
            HostNotReadyError: If there is no usable viewport yet.
        """
        ...

    def open(self, bounds: Bounds, view: SurfaceView) -> SurfaceHandle:
        """Create a surface.

        Raises:
            HostNotReadyError: If the surface cannot be created yet.
        """
        ...

    def update(self, handle: SurfaceHandle, bounds: Bounds, view: SurfaceView) -> None:
        """Reposition and redraw an open surface."""
        ...

    def close(self, handle: SurfaceHandle) -> None:
        """Destroy a surface."""
        ...


def content_height(bounds: Bounds) -> int:
    """Rows available for text inside a bordered surface."""
    return max(0, bounds.height - 2)


class RichSurfaceHost:
    """
    Surface host drawing a bordered Rich panel in a ``Live`` display.

    The panel is drawn inline below the cursor, so only the column,
    width and height of the bounds are honoured; the row is ignored.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console if console is not None else Console()
        self._live: Live | None = None
        self._handle: SurfaceHandle | None = None

    def viewport(self) -> tuple[int, int]:
        if not self.console.is_terminal:
            raise HostNotReadyError("Console is not a terminal")
        width, height = self.console.size
        if width <= 0 or height <= 0:
            raise HostNotReadyError(f"Console has no usable size ({width}x{height})")
        return height, width

    def _render(self, bounds: Bounds, view: SurfaceView) -> Padding:
        body = Text("\n".join(view.lines), no_wrap=True, overflow="ellipsis")
        panel = Panel(
            body,
            title=view.title,
            title_align="left",
            subtitle="[dim]follow[/dim]" if view.follow else "[dim]paused[/dim]",
            subtitle_align="right",
            border_style=view.border_style,
            width=bounds.width,
            height=bounds.height,
        )
        return Padding(panel, (0, 0, 0, bounds.col))

    def open(self, bounds: Bounds, view: SurfaceView) -> SurfaceHandle:
        if self._live is not None:
            raise HostError("A surface is already open")
        live = Live(
            self._render(bounds, view),
            console=self.console,
            auto_refresh=False,
            transient=True,
        )
        try:
            live.start(refresh=True)
        except OSError as e:
            raise HostNotReadyError("Cannot start live display", cause=e) from e
        except LiveError as e:
            raise HostError("Console already has a live display", cause=e) from e
        self._live = live
        self._handle = SurfaceHandle.create(bounds)
        return self._handle

    def update(self, handle: SurfaceHandle, bounds: Bounds, view: SurfaceView) -> None:
        if self._live is None or handle is not self._handle:
            raise HostError(f"Surface {handle.id} is not open")
        handle.bounds = bounds
        self._live.update(self._render(bounds, view), refresh=True)

    def close(self, handle: SurfaceHandle) -> None:
        if self._live is None or handle is not self._handle:
            logger.debug("Ignoring close of unknown surface %s", handle.id)
            return
        self._live.stop()
        self._live = None
        self._handle = None
