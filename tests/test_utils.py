"""Tests for utility functions."""

import json
from pathlib import Path

from runpanel.utils import read_from_offset
from runpanel.utils import safe_file_size
from runpanel.utils import safe_read_json


class TestSafeFileSize:
    """Tests for safe_file_size function."""

    def test_existing_file(self, tmp_path: Path) -> None:
        """Test size of an existing file."""
        test_file = tmp_path / "test.log"
        test_file.write_bytes(b"12345")
        assert safe_file_size(test_file) == 5

    def test_nonexistent_file(self, tmp_path: Path) -> None:
        """Test size of a missing file is None."""
        assert safe_file_size(tmp_path / "missing.log") is None


class TestSafeReadJson:
    """Tests for safe_read_json function."""

    def test_valid_json(self, tmp_path: Path) -> None:
        """Test reading a valid JSON object."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"max_lines": 10}))
        assert safe_read_json(path) == {"max_lines": 10}

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Test invalid JSON returns the default."""
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert safe_read_json(path) is None
        assert safe_read_json(path, default={}) == {}

    def test_nonexistent_file(self, tmp_path: Path) -> None:
        """Test a missing file returns the default."""
        assert safe_read_json(tmp_path / "missing.json", default={"a": 1}) == {"a": 1}


class TestReadFromOffset:
    """Tests for read_from_offset function."""

    def test_reads_from_offset(self, tmp_path: Path) -> None:
        """Test bytes before the offset are skipped."""
        path = tmp_path / "out.log"
        path.write_bytes(b"hello world")
        assert read_from_offset(path, 6) == b"world"

    def test_offset_at_end(self, tmp_path: Path) -> None:
        """Test reading at the end of file returns no bytes."""
        path = tmp_path / "out.log"
        path.write_bytes(b"abc")
        assert read_from_offset(path, 3) == b""

    def test_limit(self, tmp_path: Path) -> None:
        """Test the read is capped at limit bytes."""
        path = tmp_path / "out.log"
        path.write_bytes(b"abcdef")
        assert read_from_offset(path, 1, limit=2) == b"bc"

    def test_nonexistent_file(self, tmp_path: Path) -> None:
        """Test a missing file returns None."""
        assert read_from_offset(tmp_path / "missing.log", 0) is None
