"""Tests for the log poller."""

from pathlib import Path

import pytest

from runpanel.buffer import DisplayBuffer
from runpanel.models import Target
from runpanel.poller import LogPoller
from runpanel.state.clock import FrozenClock
from runpanel.state.panel_state import PanelState
from runpanel.utils import read_from_offset


class RecordingReader:
    """Reader that remembers the offsets it was asked for."""

    def __init__(self, limit: int | None = None) -> None:
        self.offsets: list[int] = []
        self.limit = limit

    def __call__(self, path: Path, offset: int) -> bytes | None:
        self.offsets.append(offset)
        if self.limit is None:
            return read_from_offset(path, offset)
        return read_from_offset(path, offset, limit=self.limit)


@pytest.fixture
def state() -> PanelState:
    return PanelState()


@pytest.fixture
def reader() -> RecordingReader:
    return RecordingReader()


@pytest.fixture
def poller(state: PanelState, frozen_clock: FrozenClock, reader: RecordingReader) -> LogPoller:
    return LogPoller(state, frozen_clock, reader=reader)


def _append(path: Path, data: bytes) -> None:
    with path.open("ab") as f:
        f.write(data)


class TestOffsets:
    """Tests for offset tracking."""

    def test_growing_file_never_rereads(
        self, poller: LogPoller, reader: RecordingReader, log_file: Path
    ) -> None:
        """Test each poll starts where the previous one stopped."""
        target = Target(id="t", log_path=log_file)
        _append(log_file, b"first\n")
        assert poller.poll(target, force=True) == 1
        _append(log_file, b"second\nthird\n")
        assert poller.poll(target, force=True) == 2
        assert reader.offsets == [0, 6]
        assert target.offset == log_file.stat().st_size
        assert target.buffer.lines == ["first", "second", "third"]

    def test_no_new_data_skips_read(
        self, poller: LogPoller, reader: RecordingReader, log_file: Path
    ) -> None:
        """Test polling an unchanged file does not read it."""
        target = Target(id="t", log_path=log_file)
        _append(log_file, b"x\n")
        poller.poll(target, force=True)
        assert poller.poll(target, force=True) == 0
        assert reader.offsets == [0]

    def test_shrunk_file_rereads_from_start(
        self, poller: LogPoller, reader: RecordingReader, log_file: Path
    ) -> None:
        """Test truncation rewinds the offset to 0 and replaces the buffer."""
        target = Target(id="t", log_path=log_file)
        _append(log_file, b"old line one\nold line two\n")
        poller.poll(target, force=True)
        log_file.write_bytes(b"new\n")
        assert poller.poll(target, force=True) == 1
        assert reader.offsets[-1] == 0
        assert target.offset == 4
        assert target.buffer.lines == ["new"]

    def test_missing_file_is_no_data(self, poller: LogPoller, tmp_path: Path) -> None:
        """Test a log file that does not exist yet is picked up once it appears."""
        path = tmp_path / "later.log"
        target = Target(id="t", log_path=path)
        assert poller.poll(target, force=True) == 0
        path.write_bytes(b"appeared\n")
        assert poller.poll(target, force=True) == 1
        assert target.buffer.lines == ["appeared"]

    def test_stale_read_discarded(self, poller: LogPoller, log_file: Path) -> None:
        """Test bytes read from an offset that has since moved are not applied."""
        target = Target(id="t", log_path=log_file)
        target.offset = 5
        assert poller._apply(target, 0, b"dup\n") == 0
        assert target.offset == 5
        assert len(target.buffer) == 0


class TestThrottle:
    """Tests for the poll interval throttle."""

    def test_throttled_until_interval_elapses(
        self,
        poller: LogPoller,
        state: PanelState,
        frozen_clock: FrozenClock,
        log_file: Path,
    ) -> None:
        """Test non-forced polls within the interval are skipped."""
        target = Target(id="t", log_path=log_file)
        state.configs["t"] = {"poll": {"interval": 0.5}}
        _append(log_file, b"a\n")
        assert poller.poll(target) == 1
        _append(log_file, b"b\n")
        assert poller.poll(target) == 0
        frozen_clock.advance(0.5)
        assert poller.poll(target) == 1

    def test_force_bypasses_throttle(self, poller: LogPoller, log_file: Path) -> None:
        """Test force=True always reads."""
        target = Target(id="t", log_path=log_file)
        _append(log_file, b"a\n")
        poller.poll(target)
        _append(log_file, b"b\n")
        assert poller.poll(target, force=True) == 1

    def test_interval_has_lower_bound(self, poller: LogPoller, state: PanelState) -> None:
        """Test a zero interval is raised to the minimum."""
        target = Target(id="t", log_path=Path("unused"))
        state.configs["t"] = {"poll": {"interval": 0}}
        assert poller.interval(target) > 0


class TestBufferUpdates:
    """Tests for what the poller does to the buffer."""

    def test_trims_to_max_lines(self, poller: LogPoller, log_file: Path) -> None:
        """Test only the most recent max_lines lines are kept."""
        target = Target(id="t", log_path=log_file, buffer=DisplayBuffer(max_lines=3))
        for i in range(10):
            _append(log_file, f"line {i}\n".encode())
            poller.poll(target, force=True)
        assert target.buffer.lines == ["line 7", "line 8", "line 9"]

    def test_follow_tails_view(self, poller: LogPoller, state: PanelState, log_file: Path) -> None:
        """Test follow mode moves the view to the last lines."""
        state.follow = True
        state.view_height = 2
        target = Target(id="t", log_path=log_file)
        _append(log_file, b"1\n2\n3\n4\n5\n")
        poller.poll(target, force=True)
        assert target.buffer.top == 3

    def test_view_untouched_without_follow(
        self, poller: LogPoller, state: PanelState, log_file: Path
    ) -> None:
        """Test the view stays put when follow is off."""
        state.follow = False
        state.view_height = 2
        target = Target(id="t", log_path=log_file)
        _append(log_file, b"1\n2\n3\n4\n5\n")
        poller.poll(target, force=True)
        assert target.buffer.top == 0

    def test_multibyte_split_across_reads(
        self, state: PanelState, frozen_clock: FrozenClock, log_file: Path
    ) -> None:
        """Test a UTF-8 sequence split between two reads is decoded intact."""
        poller = LogPoller(state, frozen_clock, reader=RecordingReader(limit=1))
        target = Target(id="t", log_path=log_file)
        _append(log_file, "é\n".encode())
        for _ in range(3):
            poller.poll(target, force=True)
        assert target.buffer.lines == ["é"]


@pytest.mark.asyncio
async def test_poll_async_reads_in_thread(poller: LogPoller, log_file: Path) -> None:
    """Test the async variant appends the same data."""
    target = Target(id="t", log_path=log_file)
    _append(log_file, b"async\n")
    assert await poller.poll_async(target, force=True) == 1
    assert target.buffer.lines == ["async"]
