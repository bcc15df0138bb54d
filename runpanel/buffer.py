"""Bounded line buffer backing one target's display."""

from __future__ import annotations

from collections import deque

from runpanel.constants import DEFAULT_MAX_LINES


class DisplayBuffer:
    """
    Ring buffer of display lines with a view position.

    Lines are appended at the end and the oldest are dropped once
    ``max_lines`` is exceeded. Output that did not end with a newline
    leaves the last line open, and the next append continues it.

    Attributes:
        max_lines: Number of lines kept.
        top: Index of the first line in view when not following.
    """

    def __init__(self, max_lines: int = DEFAULT_MAX_LINES) -> None:
        self.max_lines = max(1, max_lines)
        self._lines: deque[str] = deque(maxlen=self.max_lines)
        self._open = False
        self.top = 0

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def clear(self) -> None:
        self._lines.clear()
        self._open = False
        self.top = 0

    def append_text(self, text: str) -> int:
        """
        Append decoded output, split on line boundaries.

        Args:
            text: Decoded text, possibly starting mid-line and ending without newline.

        Returns:
            Number of lines added (a continued open line does not count).
        """
        if not text:
            return 0
        parts = text.split("\n")
        ends_open = parts[-1] != ""
        if not ends_open:
            parts.pop()

        if self._open and self._lines:
            self._lines[-1] = self._lines[-1] + parts.pop(0).rstrip("\r")
        before = len(self._lines)
        incoming = [part.rstrip("\r") for part in parts]
        dropped = max(0, before + len(incoming) - self.max_lines)
        self._lines.extend(incoming)
        self._open = ends_open
        self.top = max(0, self.top - dropped)
        return len(incoming)

    def last_top(self, height: int) -> int:
        """Return the view index that shows the last ``height`` lines."""
        return max(0, len(self._lines) - max(0, height))

    def scroll_to_end(self, height: int) -> None:
        self.top = self.last_top(height)

    def scroll(self, delta: int, height: int) -> None:
        """Move the view by ``delta`` lines, clamped to the buffer."""
        self.top = min(max(0, self.top + delta), self.last_top(height))

    def distance_from_end(self, height: int) -> int:
        """Number of lines between the view's last line and the buffer's last line."""
        return max(0, self.last_top(height) - self.top)

    def window(self, height: int, follow: bool) -> list[str]:
        """Return the lines visible in a view ``height`` lines tall."""
        start = self.last_top(height) if follow else min(self.top, self.last_top(height))
        end = start + max(0, height)
        return [self._lines[i] for i in range(start, min(end, len(self._lines)))]
