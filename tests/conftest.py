"""Shared test fixtures for runpanel tests."""

import io
from pathlib import Path

import pytest
from rich.console import Console

from runpanel.exceptions import HostNotReadyError
from runpanel.session import Session
from runpanel.state.clock import FrozenClock
from runpanel.surface import SurfaceHandle
from runpanel.surface import SurfaceView
from runpanel.types import Bounds


class FakeHost:
    """In-memory surface host recording every call."""

    def __init__(self, rows: int = 40, cols: int = 120, not_ready: int = 0) -> None:
        self.rows = rows
        self.cols = cols
        self.not_ready = not_ready
        self.viewport_calls = 0
        self.opened: list[SurfaceHandle] = []
        self.closed: list[SurfaceHandle] = []
        self.updated: list[Bounds] = []
        self.views: list[SurfaceView] = []
        self.current: SurfaceHandle | None = None

    def viewport(self) -> tuple[int, int]:
        self.viewport_calls += 1
        if self.not_ready > 0:
            self.not_ready -= 1
            raise HostNotReadyError("viewport not ready")
        return self.rows, self.cols

    def open(self, bounds: Bounds, view: SurfaceView) -> SurfaceHandle:
        handle = SurfaceHandle.create(bounds)
        self.current = handle
        self.opened.append(handle)
        self.views.append(view)
        return handle

    def update(self, handle: SurfaceHandle, bounds: Bounds, view: SurfaceView) -> None:
        handle.bounds = bounds
        self.updated.append(bounds)
        self.views.append(view)

    def close(self, handle: SurfaceHandle) -> None:
        self.closed.append(handle)
        self.current = None

    @property
    def last_view(self) -> SurfaceView:
        return self.views[-1]


@pytest.fixture
def host() -> FakeHost:
    """A ready fake host with a 40x120 viewport."""
    return FakeHost()


@pytest.fixture
def quiet_console() -> Console:
    """A non-terminal console, so the Rich notifier is not used."""
    return Console(file=io.StringIO())


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(frozen_time=1700000000.0, frozen_monotonic=100.0)


@pytest.fixture
def session(host: FakeHost, quiet_console: Console) -> Session:
    """A session with a fake host and fast polling."""
    return Session(host=host, console=quiet_console, config={"poll": {"interval": 0.01}})


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    """An empty log file."""
    path = tmp_path / "output.log"
    path.write_bytes(b"")
    return path
