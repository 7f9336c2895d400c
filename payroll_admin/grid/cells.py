"""
Amount formatting and per-cell render state.

A cell is drawn in exactly one of three shapes:

- ``ReadOnly``: the formatted amount; clicking it opens the editor, or
  creates the backing record first when ``record_exists`` is false
- ``Editable``: an input holding the user's draft
- ``Locked``: the formatted amount of a posted record; never editable
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from ..models import Record


def format_amount(value: Any) -> str:
    """Two decimals; blank, unparseable or NaN values render as ``0.00``."""
    if value is None or value == "":
        return "0.00"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return "0.00"
    if not math.isfinite(number):
        return "0.00"
    return f"{number:.2f}"


def parse_amount(text: Any) -> Optional[float]:
    """Parse user input. Empty input is zero; garbage and infinities are None."""
    if text is None:
        return 0.0
    if isinstance(text, (int, float)):
        number = float(text)
        return number if math.isfinite(number) else None
    cleaned = str(text).strip().replace(",", "")
    if cleaned == "":
        return 0.0
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class ReadOnly:
    text: str
    record_exists: bool


@dataclass(frozen=True)
class Editable:
    draft: str


@dataclass(frozen=True)
class Locked:
    text: str


CellRender = Union[ReadOnly, Editable, Locked]


def render_state(
    record: Optional[Record], field: str, is_editing: bool = False, draft: Optional[str] = None
) -> CellRender:
    if record is None:
        return ReadOnly(format_amount(None), record_exists=False)
    text = format_amount(record.amount(field))
    if record.is_posted:
        return Locked(text)
    if is_editing:
        return Editable(text if draft is None else draft)
    return ReadOnly(text, record_exists=True)


SaveCallback = Callable[[str], Awaitable[Any]]


class CellEditor:
    """
    Local draft for the open cell.

    Typing only touches the draft; ``Enter`` or losing focus hands the draft
    to ``on_save``. Other keys never save.
    """

    def __init__(self, value: Any, on_save: SaveCallback) -> None:
        self.draft = format_amount(value)
        self._on_save = on_save

    def type(self, text: str) -> None:
        self.draft = text

    async def key(self, key: str) -> bool:
        if key in ("Enter", "Return"):
            await self._on_save(self.draft)
            return True
        return False

    async def blur(self) -> None:
        await self._on_save(self.draft)
