"""Selected record ids for bulk post / set-default / export."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, Set, TypeVar

from ..models import Record

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BULK_TIMEOUT = 30.0


class SelectionBusy(RuntimeError):
    """A bulk action is already running."""


class EmptySelection(ValueError):
    """A bulk action was requested with nothing selected."""


class BulkSelectionTracker:
    """
    Posted records can never be selected. The submitted ids leave the
    selection only after a bulk action succeeds, so a failed one can be
    retried as is.
    """

    def __init__(self) -> None:
        self.selected: Set[int] = set()
        self.busy = False

    def __len__(self) -> int:
        return len(self.selected)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self.selected

    def toggle(self, record: Optional[Record]) -> bool:
        """Flip a record's membership; returns whether it is now selected."""
        if record is None or record.is_posted:
            return False
        if record.id in self.selected:
            self.selected.discard(record.id)
            return False
        self.selected.add(record.id)
        return True

    def select_all(self, records: Iterable[Optional[Record]]) -> None:
        self.selected = {r.id for r in records if r is not None and not r.is_posted}

    def clear(self) -> None:
        self.selected.clear()

    def prune(self, records: Iterable[Optional[Record]]) -> None:
        """Drop ids whose record disappeared or has been posted since."""
        alive = {r.id for r in records if r is not None and not r.is_posted}
        self.selected &= alive

    async def run(
        self,
        action: Callable[[list[int]], Awaitable[T]],
        timeout: float = DEFAULT_BULK_TIMEOUT,
    ) -> T:
        if self.busy:
            raise SelectionBusy("A bulk action is already in progress.")
        if not self.selected:
            raise EmptySelection("No records selected.")

        ids = sorted(self.selected)
        self.busy = True
        try:
            result = await asyncio.wait_for(action(ids), timeout=timeout)
        except Exception:
            logger.warning("Bulk action on %s records failed; selection kept", len(ids))
            raise
        finally:
            self.busy = False
        # ids ticked while the action ran stay selected
        self.selected -= set(ids)
        return result
