"""Keyboard moves over a rows x fields grid."""

from __future__ import annotations

from typing import Optional, Tuple

ARROWS = {
    "ArrowUp": (-1, 0),
    "ArrowDown": (1, 0),
    "ArrowLeft": (0, -1),
    "ArrowRight": (0, 1),
}
NAVIGATION_KEYS = frozenset(ARROWS) | {"Tab"}


def _clamp(value: int, upper: int) -> int:
    return max(0, min(value, upper))


def next_position(
    key: str, row: int, col: int, rows: int, cols: int, shift: bool = False
) -> Optional[Tuple[int, int]]:
    """
    Destination of ``key`` pressed at ``(row, col)``, or None if nothing moves.

    Arrow keys step one cell and stop at the grid edge. Tab steps one column
    and wraps onto the next row (Shift+Tab onto the previous one); it stops at
    the last cell and at the first one.
    """
    if rows <= 0 or cols <= 0:
        return None

    if key in ARROWS:
        d_row, d_col = ARROWS[key]
        target = (_clamp(row + d_row, rows - 1), _clamp(col + d_col, cols - 1))
    elif key == "Tab":
        flat = row * cols + col + (-1 if shift else 1)
        if flat < 0 or flat >= rows * cols:
            return None
        target = divmod(flat, cols)
    else:
        return None

    return None if target == (row, col) else target
