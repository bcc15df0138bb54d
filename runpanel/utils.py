"""Shared utility functions for runpanel.

This module consolidates the file helpers used by the poller and the
configuration loader. All of them absorb the usual races (a file deleted
or replaced between two calls) instead of raising.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from runpanel.constants import MAX_READ_CHUNK

logger = logging.getLogger(__name__)


def safe_file_size(path: Path) -> int | None:
    """Safely get file size in bytes.

    Args:
        path: Path to the file.

    Returns:
        File size in bytes, or None if the file doesn't exist or can't be accessed.
    """
    try:
        return path.stat().st_size
    except (FileNotFoundError, OSError):
        return None


def safe_read_json(path: Path, default: dict[str, Any] | None = None) -> dict[str, Any] | None:
    """Safely read and parse JSON from a file.

    Handles file access errors and JSON parse errors gracefully.

    Args:
        path: Path to the JSON file.
        default: Value to return if file cannot be read or parsed.

    Returns:
        Parsed JSON, or default if reading/parsing fails.
    """
    try:
        content = path.read_text()
        result: dict[str, Any] = json.loads(content)
        return result
    except (FileNotFoundError, OSError, PermissionError, json.JSONDecodeError):
        return default


def read_from_offset(path: Path, offset: int, limit: int = MAX_READ_CHUNK) -> bytes | None:
    """Read the bytes of a file from ``offset`` up to the current end of file.

    Args:
        path: Path to the file.
        offset: Byte offset to start reading at.
        limit: Maximum number of bytes to return.

    Returns:
        The bytes read (possibly empty), or None if the file doesn't exist
        or can't be read.
    """
    try:
        with path.open("rb") as f:
            f.seek(offset)
            return f.read(limit)
    except (FileNotFoundError, OSError) as e:
        logger.debug("Cannot read %s at offset %d: %s", path, offset, e)
        return None
