"""Command line entry point: run one command under a Rich panel."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console

from runpanel.config import load_config_file
from runpanel.exceptions import ConfigurationError
from runpanel.session import Session
from runpanel.state.panel_state import PanelMode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runpanel",
        description="Run a command and follow its output in a floating panel.",
    )
    parser.add_argument("-p", "--profile", help="configuration profile to apply")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="JSON configuration file (default: ~/.config/runpanel/config.json)",
    )
    parser.add_argument("-n", "--name", help="target name shown in the panel title")
    parser.add_argument("--focus", action="store_true", help="start in focus mode")
    parser.add_argument("--no-open", action="store_true", help="only open the panel on failure")
    parser.add_argument(
        "--hold",
        type=float,
        default=0.0,
        metavar="SECONDS",
        help="keep the panel open this long after the command exits",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="more logging")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="command to run (after --)")
    return parser


def _exit_status(exit_code: int | None) -> int:
    if exit_code is None:
        return 1
    if exit_code < 0:
        # Killed by a signal
        return 128 - exit_code
    return exit_code


async def _run(session: Session, args: argparse.Namespace, command: list[str]) -> int:
    if args.focus and session.mode is PanelMode.MINI:
        session.toggle_focus()
    cmd: str | list[str] = command[0] if len(command) == 1 else command
    handle = session.run(
        cmd,
        name=args.name,
        profile=args.profile,
        open=False if args.no_open else None,
    )
    await handle.wait()
    if session.is_open and args.hold > 0:
        await asyncio.sleep(args.hold)
    if not session.console.is_terminal:
        sys.stdout.write(handle.log_path.read_text(errors="replace"))
    session.hide()
    return _exit_status(handle.exit_code)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.error("no command given")

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config_file(args.config)
    except ConfigurationError as e:
        logger.warning("%s; using defaults", e.message)
        config = {}

    session = Session(console=Console(), config=config)
    try:
        return asyncio.run(_run(session, args, command))
    except KeyboardInterrupt:
        session.hide()
        return 130


if __name__ == "__main__":
    sys.exit(main())
