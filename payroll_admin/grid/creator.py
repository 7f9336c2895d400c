"""
Create the backing record of an empty cell, then open that cell.

The create call returns the new record directly, so the cell can be opened as
soon as the call resolves. The callback learns which cell asked for the
record, so the caller can place it without guessing. A create that fails or
exceeds its timeout clears the pending entry and raises
``RecordCreationFailed``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from ..models import Record
from .state import CellPointer

logger = logging.getLogger(__name__)

CreateRecord = Callable[[int], Awaitable[Record]]
RecordCallback = Callable[[Record, "PendingCell"], None]

DEFAULT_CREATE_TIMEOUT = 15.0


class RecordCreationFailed(Exception):
    def __init__(self, employee_id: int, cause: BaseException) -> None:
        super().__init__(f"Could not create a record for employee {employee_id}: {cause}")
        self.employee_id = employee_id
        self.cause = cause


@dataclass(frozen=True)
class PendingCell:
    employee_id: int
    field: str
    row: int
    col: int


class LazyRecordCreator:
    def __init__(
        self,
        create: CreateRecord,
        timeout: float = DEFAULT_CREATE_TIMEOUT,
        on_created: Optional[RecordCallback] = None,
    ) -> None:
        self._create = create
        self.timeout = timeout
        self._on_created = on_created
        self.pending: Dict[int, PendingCell] = {}

    def is_pending(self, employee_id: int) -> bool:
        return employee_id in self.pending

    def invalidate(self) -> None:
        """Forget in-flight creates; their results will not open any cell."""
        if self.pending:
            logger.debug("Dropping %s pending creates", len(self.pending))
        self.pending.clear()

    async def open_after_create(
        self, employee_id: int, field: str, row: int, col: int
    ) -> Optional[CellPointer]:
        """
        Create the record for ``employee_id`` and return the pointer to open.

        Returns None without calling the backend when a create for the same
        employee is already in flight, and None after the call when the
        pending entry was invalidated meanwhile.
        """
        if employee_id in self.pending:
            logger.debug("Create for employee %s already pending", employee_id)
            return None

        cell = PendingCell(employee_id, field, row, col)
        self.pending[employee_id] = cell
        try:
            record = await asyncio.wait_for(self._create(employee_id), timeout=self.timeout)
        except Exception as exc:
            logger.warning("Creating a record for employee %s failed: %s", employee_id, exc)
            raise RecordCreationFailed(employee_id, exc) from exc
        finally:
            current = self.pending.get(employee_id) is cell
            if current:
                del self.pending[employee_id]

        if not current:
            logger.info("Record %s created for a grid that has since reloaded", record.id)
            return None
        if self._on_created is not None:
            self._on_created(record, cell)
        return CellPointer(employee_id, record.id, field, row, col)
