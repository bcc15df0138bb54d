"""Layered configuration: defaults, session overrides, profiles and per-call values.

Configuration is a plain nested dict. Layers are combined with
``deep_merge``, which never mutates its inputs: every run receives its own
snapshot, so two runs under different profiles cannot interfere.

Precedence (lowest first):
    DEFAULT_CONFIG <- Session.setup() calls <- profiles[name] <- per-call config
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from runpanel.constants import DEFAULT_AUTO_HIDE_DELAY
from runpanel.constants import DEFAULT_MAX_LINES
from runpanel.constants import DEFAULT_OPEN_RETRIES
from runpanel.constants import DEFAULT_OPEN_RETRY_DELAY
from runpanel.constants import DEFAULT_POLL_INTERVAL
from runpanel.constants import DEFAULT_SCROLLOFF_MARGIN
from runpanel.constants import DEFAULT_TITLE
from runpanel.constants import FAILURE_COLOR
from runpanel.constants import RUNNING_COLOR
from runpanel.constants import SUCCESS_COLOR
from runpanel.exceptions import ConfigurationError
from runpanel.types import ConfigTree
from runpanel.utils import safe_read_json

logger = logging.getLogger(__name__)

#: User configuration file read by the command line tool
DEFAULT_CONFIG_PATH: Path = Path.home() / ".config" / "runpanel" / "config.json"

DEFAULT_CONFIG: ConfigTree = {
    "mini": {
        "width_scale": 0.4,
        "width_min": 40,
        "width_max": 100,
        "height_ratio": 0.25,
        "height_min": 6,
        "height_max": 15,
        "row_anchor": "bottom",
        "row_offset": 1,
        "horizontal_align": 1.0,
        "col_offset": 0,
    },
    "focus": {
        "width_scale": 0.8,
        "width_min": 60,
        "width_max": 0,
        "height_ratio": 0.8,
        "height_min": 10,
        "height_max": 0,
        "row_anchor": "center",
        "row_offset": 0,
        "horizontal_align": 0.5,
        "col_offset": 0,
    },
    "auto_open": {
        "enabled": True,
        "retries": DEFAULT_OPEN_RETRIES,
        "delay": DEFAULT_OPEN_RETRY_DELAY,
    },
    "auto_hide": {
        "enabled": False,
        "delay": DEFAULT_AUTO_HIDE_DELAY,
    },
    "notifications": {
        "enabled": True,
        "title": DEFAULT_TITLE,
        "persist_failure": True,
    },
    "notifier": None,
    "poll": {
        "interval": DEFAULT_POLL_INTERVAL,
    },
    "max_lines": DEFAULT_MAX_LINES,
    "open_on_error": True,
    "scrolloff_margin": DEFAULT_SCROLLOFF_MARGIN,
    "border_highlight": {
        "idle": "dim",
        "running": RUNNING_COLOR,
        "success": SUCCESS_COLOR,
        "failure": FAILURE_COLOR,
    },
    "profiles": {},
}


def _detach(value: Any) -> Any:
    """Copy mappings and lists so a merged tree shares no containers with its inputs.

    Other values (including notifier objects) are shared as-is.
    """
    if isinstance(value, Mapping):
        return {key: _detach(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_detach(item) for item in value]
    return value


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any] | None) -> ConfigTree:
    """Merge ``override`` over ``base`` and return a new tree.

    Nested mappings merge key-wise; any other value in ``override``
    replaces the value in ``base``.

    Args:
        base: Lower-precedence configuration.
        override: Higher-precedence configuration. None is treated as empty.

    Returns:
        A new configuration tree. Neither input is modified.
    """
    merged: ConfigTree = _detach(base)
    if not override:
        return merged
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = _detach(value)
    return merged


def profile_config(config: Mapping[str, Any], name: str | None) -> ConfigTree:
    """Return the partial config stored under ``profiles[name]``, or an empty tree."""
    if name is None:
        return {}
    profiles = config.get("profiles")
    profile = profiles.get(name) if isinstance(profiles, Mapping) else None
    if not isinstance(profile, Mapping):
        logger.debug("Unknown profile %r, using base configuration", name)
        return {}
    return {key: value for key, value in profile.items() if key != "enabled"}


def resolve_run_config(
    base: Mapping[str, Any],
    profile: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ConfigTree:
    """Build the config snapshot for one run.

    Args:
        base: The session configuration (defaults already merged in).
        profile: Optional profile name looked up in ``base["profiles"]``.
        overrides: Per-call values; these win over the profile.

    Returns:
        A fresh merged configuration tree.
    """
    return deep_merge(deep_merge(base, profile_config(base, profile)), overrides)


def adapter_enabled(config: Mapping[str, Any], name: str) -> bool:
    """Return True if profile ``name`` exists and is not explicitly disabled."""
    profiles = config.get("profiles")
    if not isinstance(profiles, Mapping):
        return False
    profile = profiles.get(name)
    if not isinstance(profile, Mapping):
        return False
    return profile.get("enabled", True) is not False


def get_option(config: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Walk nested sections and return the value at ``keys`` (or ``default``)."""
    node: Any = config
    for key in keys:
        if not isinstance(node, Mapping) or key not in node:
            return default
        node = node[key]
    return default if node is None else node


def get_float(
    config: Mapping[str, Any],
    *keys: str,
    default: float,
    minimum: float | None = None,
) -> float:
    """Read a numeric option, falling back to ``default`` for non-numbers."""
    value = get_option(config, *keys)
    if isinstance(value, bool) or not isinstance(value, int | float) or not math.isfinite(value):
        return default
    if minimum is not None and value < minimum:
        return minimum
    return float(value)


def get_int(
    config: Mapping[str, Any],
    *keys: str,
    default: int,
    minimum: int | None = None,
) -> int:
    """Read an integer option; floats are rounded, other types fall back to ``default``."""
    value = get_float(config, *keys, default=float(default))
    result = int(round(value))
    if minimum is not None and result < minimum:
        return minimum
    return result


def get_bool(config: Mapping[str, Any], *keys: str, default: bool) -> bool:
    """Read a boolean option; anything that is not a bool falls back to ``default``."""
    value = get_option(config, *keys)
    return value if isinstance(value, bool) else default


def load_config_file(path: Path | None = None) -> ConfigTree:
    """Load user overrides from a JSON file.

    Args:
        path: Path to the file. Defaults to DEFAULT_CONFIG_PATH.

    Returns:
        The parsed overrides, or an empty tree if the file does not exist.

    Raises:
        ConfigurationError: If the file exists but is not a JSON object.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    data = safe_read_json(path)
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), f"Config file {path} is not a JSON object")
    return data
