"""Turn a spreadsheet clipboard block into per-cell field updates."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..models import Record
from .cells import parse_amount

_LINE_BREAK = re.compile(r"\r\n|\n|\r")


def is_multi_cell(text: str) -> bool:
    return "\t" in text or "\n" in text or "\r" in text


def parse_clipboard(text: str) -> List[List[str]]:
    return [line.split("\t") for line in _LINE_BREAK.split(text) if line.strip()]


@dataclass(frozen=True)
class CellUpdate:
    record_id: int
    field: str
    value: float
    row: int
    col: int


@dataclass
class PastePlan:
    updates: List[CellUpdate] = field(default_factory=list)
    skipped: List[tuple[int, int]] = field(default_factory=list)


def plan_paste(
    block: Sequence[Sequence[str]],
    origin_row: int,
    origin_col: int,
    rows: Sequence[Optional[Record]],
    fields: Sequence[str],
) -> PastePlan:
    """
    Map ``block`` onto the grid anchored at ``(origin_row, origin_col)``.

    ``rows`` holds the record of each grid row (None where the employee has no
    record yet). Out-of-bounds cells, rows without a record, posted records
    and values that are not finite numbers are skipped; missing records are
    never created here.
    """
    plan = PastePlan()
    for i, values in enumerate(block):
        row = origin_row + i
        for j, raw in enumerate(values):
            col = origin_col + j
            if not (0 <= row < len(rows) and 0 <= col < len(fields)):
                plan.skipped.append((row, col))
                continue
            record = rows[row]
            if record is None or record.is_posted:
                plan.skipped.append((row, col))
                continue
            # blank pasted cells are not zeros
            value = parse_amount(raw) if raw.strip() else None
            if value is None:
                plan.skipped.append((row, col))
                continue
            plan.updates.append(CellUpdate(record.id, fields[col], value, row, col))
    return plan
