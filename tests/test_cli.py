"""Tests for the command line entry point."""

import json
import logging
from pathlib import Path

import pytest

from runpanel.cli import _exit_status
from runpanel.cli import build_parser
from runpanel.cli import main


class TestParser:
    """Tests for argument parsing."""

    def test_command_after_options(self) -> None:
        """Test everything after the options is the command."""
        args = build_parser().parse_args(["-n", "build", "--focus", "make", "-j8"])
        assert args.name == "build"
        assert args.focus is True
        assert args.command == ["make", "-j8"]

    def test_defaults(self) -> None:
        """Test option defaults."""
        args = build_parser().parse_args(["true"])
        assert args.profile is None
        assert args.config is None
        assert args.hold == 0.0
        assert args.no_open is False
        assert args.verbose == 0


class TestExitStatus:
    """Tests for mapping run exit codes to the process exit status."""

    @pytest.mark.parametrize(
        "exit_code,expected",
        [(0, 0), (3, 3), (127, 127), (-9, 137), (None, 1)],
    )
    def test_mapping(self, exit_code: int | None, expected: int) -> None:
        """Test signals map to 128 + signal number."""
        assert _exit_status(exit_code) == expected


class TestMain:
    """Tests for main()."""

    def test_no_command(self) -> None:
        """Test a missing command is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_success(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a successful command exits 0 and its output is printed off-terminal."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"auto_open": {"retries": 0}}))
        assert main(["-c", str(config), "--", "echo", "hello"]) == 0
        assert "hello" in capsys.readouterr().out

    def test_failure_code(self, tmp_path: Path) -> None:
        """Test the command's exit code is returned."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"auto_open": {"retries": 0}}))
        assert main(["-c", str(config), "sh", "-c", "exit 3"]) == 3

    def test_single_argument_uses_shell(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test a single argument is run as a shell command line."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"auto_open": {"retries": 0}}))
        assert main(["-c", str(config), "echo a && echo b"]) == 0
        assert capsys.readouterr().out.split() == ["a", "b"]

    def test_bad_config_warns(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a config file that is not an object is ignored with a warning."""
        config = tmp_path / "config.json"
        config.write_text("[1, 2]")
        with caplog.at_level(logging.WARNING, logger="runpanel.cli"):
            assert main(["-c", str(config), "true"]) == 0
        assert "not a JSON object" in caplog.text
