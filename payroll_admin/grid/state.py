"""Which cell of an editable grid, if any, is open for editing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CellPointer:
    employee_id: int
    record_id: int
    field: str
    row: int
    col: int

    @property
    def position(self) -> tuple[int, int]:
        return self.row, self.col


class GridState:
    """Holds at most one open cell."""

    def __init__(self) -> None:
        self.open_cell: Optional[CellPointer] = None

    def open(self, pointer: CellPointer) -> None:
        self.open_cell = pointer

    def close(self) -> None:
        self.open_cell = None

    def is_open(self, row: int, col: int) -> bool:
        return self.open_cell is not None and self.open_cell.position == (row, col)
