"""Injectable clock for run timestamps and poll throttling.

The session hands one clock to every component that needs the time, so
tests can drive the poll throttle and run start times deterministically.

Example usage:
    clock = FrozenClock(1700000000.0)
    session = Session(host=host, clock=clock)

    clock.advance(0.5)  # next non-forced poll is no longer throttled
"""

import time as _time
from typing import Protocol


class Clock(Protocol):
    """Protocol for injectable time sources."""

    def now(self) -> float:
        """Return current time as Unix timestamp (seconds since epoch)."""
        ...

    def monotonic(self) -> float:
        """Return monotonic clock value for measuring intervals."""
        ...


class SystemClock:
    """Default clock delegating to the standard library's time module."""

    def now(self) -> float:
        return _time.time()

    def monotonic(self) -> float:
        return _time.monotonic()


class FrozenClock:
    """Clock that only moves when told to.

    Attributes:
        frozen_time: The frozen Unix timestamp.
        frozen_monotonic: The frozen monotonic value.
    """

    def __init__(
        self,
        frozen_time: float | None = None,
        frozen_monotonic: float | None = None,
    ) -> None:
        """Initialize with specific frozen times.

        Args:
            frozen_time: Unix timestamp to freeze at. Defaults to current time.
            frozen_monotonic: Monotonic value to freeze at. Defaults to 0.0.
        """
        self._time = frozen_time if frozen_time is not None else _time.time()
        self._monotonic = frozen_monotonic if frozen_monotonic is not None else 0.0

    def now(self) -> float:
        return self._time

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, seconds: float) -> None:
        """Advance both wall and monotonic time by the given number of seconds."""
        self._time += seconds
        self._monotonic += seconds
