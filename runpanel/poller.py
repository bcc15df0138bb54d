"""Incremental log file reader feeding the display buffers.

Each poll reads a target's log file from the last consumed offset to the
current end of file and appends the new text to the target's buffer.
A missing or unreadable file simply yields no data; the next tick tries
again, which covers commands that have not flushed any output yet.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any

from runpanel.config import DEFAULT_CONFIG
from runpanel.config import get_float
from runpanel.constants import DEFAULT_POLL_INTERVAL
from runpanel.constants import MIN_POLL_INTERVAL
from runpanel.utils import read_from_offset
from runpanel.utils import safe_file_size

if TYPE_CHECKING:
    from runpanel.models import Target
    from runpanel.state.clock import Clock
    from runpanel.state.panel_state import PanelState

logger = logging.getLogger(__name__)

Reader = Callable[[Path, int], bytes | None]


class LogPoller:
    """
    Reads new log output for targets.

    The byte offset of a target only moves forward, except when the file
    shrinks (truncated or rotated): then the offset goes back to 0, the
    buffer is cleared and the file is read again from the start.

    Attributes:
        state: Panel state (follow flag, view height and per-target configs).
        clock: Time source for the poll interval throttle.
    """

    def __init__(
        self,
        state: PanelState,
        clock: Clock,
        reader: Reader = read_from_offset,
    ) -> None:
        self.state = state
        self.clock = clock
        self._reader = reader

    def _config(self, target: Target) -> Mapping[str, Any]:
        return self.state.configs.get(target.id, DEFAULT_CONFIG)

    def interval(self, target: Target) -> float:
        """Polling interval configured for the target, in seconds."""
        return get_float(
            self._config(target),
            "poll",
            "interval",
            default=DEFAULT_POLL_INTERVAL,
            minimum=MIN_POLL_INTERVAL,
        )

    def _throttled(self, target: Target, force: bool) -> bool:
        now = self.clock.monotonic()
        if not force and target.last_polled is not None:
            if now - target.last_polled < self.interval(target):
                return True
        target.last_polled = now
        return False

    def _start_offset(self, target: Target) -> int | None:
        size = safe_file_size(target.log_path)
        if size is None:
            return None
        if size < target.offset:
            logger.debug(
                "Log %s shrank from %d to %d bytes, rereading", target.log_path, target.offset, size
            )
            target.rewind()
            target.buffer.clear()
        if size == target.offset:
            return None
        return target.offset

    def _apply(self, target: Target, start: int, data: bytes | None) -> int:
        if not data:
            return 0
        if target.offset != start:
            # Another poll consumed these bytes while this read was in flight
            logger.debug("Discarding stale read of %s at offset %d", target.log_path, start)
            return 0
        target.offset = start + len(data)
        added = target.buffer.append_text(target.decoder.decode(data))
        if self.state.follow:
            target.buffer.scroll_to_end(self.state.view_height)
        return added

    def poll(self, target: Target, force: bool = False) -> int:
        """
        Read new output of ``target`` synchronously.

        Args:
            target: Target to poll.
            force: Ignore the ``poll.interval`` throttle.

        Returns:
            Number of lines appended to the target's buffer.
        """
        if self._throttled(target, force):
            return 0
        start = self._start_offset(target)
        if start is None:
            return 0
        return self._apply(target, start, self._reader(target.log_path, start))

    async def poll_async(self, target: Target, force: bool = False) -> int:
        """Like ``poll`` but performs the file read in a worker thread."""
        if self._throttled(target, force):
            return 0
        start = self._start_offset(target)
        if start is None:
            return 0
        data = await asyncio.to_thread(self._reader, target.log_path, start)
        return self._apply(target, start, data)
