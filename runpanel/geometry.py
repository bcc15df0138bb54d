"""Display surface geometry for the mini and focus presets.

``resolve`` is a pure function: given a geometry section and the host
viewport it always returns bounds that fit on screen. Malformed values
fall back to the built-in preset instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from runpanel.config import DEFAULT_CONFIG
from runpanel.config import get_float
from runpanel.config import get_option
from runpanel.state.panel_state import PanelMode
from runpanel.types import Bounds

ROW_ANCHORS = ("top", "center", "bottom")


def _round(value: float) -> int:
    """Round half away from zero (``round()`` rounds half to even)."""
    return int(math.floor(value + 0.5)) if value >= 0 else -int(math.floor(-value + 0.5))


def _clamp_size(value: int, minimum: float, maximum: float) -> int:
    size = value
    # A maximum of zero (or less) means unbounded
    if maximum > 0:
        size = min(size, _round(maximum))
    # The minimum wins over the maximum; the viewport clamp comes later
    return max(size, _round(minimum))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def resolve(
    mode: PanelMode | str,
    config: Mapping[str, Any],
    viewport_rows: int,
    viewport_cols: int,
) -> Bounds:
    """
    Compute the surface bounds for a geometry preset.

    Width is ``viewport_cols * width_scale`` clamped to
    ``[width_min, width_max]`` and height is ``viewport_rows * height_ratio``
    clamped to ``[height_min, height_max]``; a maximum of 0 leaves that
    side unbounded. The row follows ``row_anchor`` plus ``row_offset`` and
    the column is ``(viewport_cols - width) * horizontal_align + col_offset``.
    Finally the size is clamped to the viewport and the position to
    ``[0, viewport - size]``.

    Args:
        mode: Geometry preset (``PanelMode`` or its value, "mini"/"focus").
        config: Full configuration tree; the section named by ``mode`` is used.
        viewport_rows: Host viewport height in rows.
        viewport_cols: Host viewport width in columns.

    Returns:
        Bounds that always satisfy ``row + height <= viewport_rows`` and
        ``col + width <= viewport_cols`` with all values non-negative.
    """
    name = mode.value if isinstance(mode, PanelMode) else str(mode)
    if name not in (PanelMode.MINI.value, PanelMode.FOCUS.value):
        name = PanelMode.MINI.value
    defaults = DEFAULT_CONFIG[name]
    section = get_option(config, name, default={})
    if not isinstance(section, Mapping):
        section = {}

    def number(key: str) -> float:
        return get_float(section, key, default=float(defaults[key]))

    rows = max(0, int(viewport_rows))
    cols = max(0, int(viewport_cols))

    width = _clamp_size(
        _round(cols * number("width_scale")), number("width_min"), number("width_max")
    )
    height = _clamp_size(
        _round(rows * number("height_ratio")), number("height_min"), number("height_max")
    )
    width = _clamp(width, 0, cols)
    height = _clamp(height, 0, rows)

    anchor = section.get("row_anchor", defaults["row_anchor"])
    if anchor not in ROW_ANCHORS:
        anchor = defaults["row_anchor"]
    row_offset = _round(number("row_offset"))
    if anchor == "top":
        row = row_offset
    elif anchor == "bottom":
        row = rows - height - row_offset
    else:
        row = _round((rows - height) / 2) + row_offset

    align = min(max(number("horizontal_align"), 0.0), 1.0)
    col = _round((cols - width) * align) + _round(number("col_offset"))

    return Bounds(
        row=_clamp(row, 0, rows - height),
        col=_clamp(col, 0, cols - width),
        width=width,
        height=height,
    )
