"""Type aliases for common callback and data patterns.

This module provides centralized type definitions for the command forms
accepted by a run and the small value types passed between components.
"""

from collections.abc import Callable
from collections.abc import Sequence
from typing import Any
from typing import Literal
from typing import NamedTuple

# A command is a literal argument list or a single shell string.
CommandLine = Sequence[str] | str

# A command may also be produced lazily by a zero-argument function.
Command = CommandLine | Callable[[], CommandLine]

# Notification levels understood by every backend.
NotifyLevel = Literal["info", "warn", "error"]

# Nested configuration tree (sections are dicts, leaves are scalars or objects).
ConfigTree = dict[str, Any]


class Bounds(NamedTuple):
    """Position and size of the display surface, in character cells.

    Attributes:
        row: Zero-based top row.
        col: Zero-based left column.
        width: Width in columns.
        height: Height in rows.
    """

    row: int
    col: int
    width: int
    height: int
