"""
Editable grid controller: employees down, amount fields across.

The controller owns the open-cell state, the bulk selection and the lazy
record creator. Every save goes through a ``RecordGateway`` and the returned
record is patched into the row it belongs to, so the grid always shows what
the server last answered (last response wins; there is no version check).

Navigation saves the open cell and waits for the answer before the next
cell opens. Failed or malformed responses never escape the public
coroutines: they are logged and turned into a banner on the ``Notifier``.
"""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..core.notifications import Banner, Notifier
from ..models import FIELD_LABELS, Employee, Record
from ..services.api_client import APIError
from ..services.gateways import RecordGateway
from .cells import CellEditor, CellRender, format_amount, parse_amount, render_state
from .creator import DEFAULT_CREATE_TIMEOUT, LazyRecordCreator, PendingCell, RecordCreationFailed
from .navigator import NAVIGATION_KEYS, next_position
from .paste import CellUpdate, is_multi_cell, parse_clipboard, plan_paste
from .selection import DEFAULT_BULK_TIMEOUT, BulkSelectionTracker, EmptySelection, SelectionBusy
from .state import CellPointer, GridState

logger = logging.getLogger(__name__)

DEFAULT_SAVE_TIMEOUT = 15.0

# a malformed record in a response surfaces as a pydantic ValidationError
REQUEST_ERRORS = (APIError, asyncio.TimeoutError, ValidationError)

Position = Tuple[int, int]


@dataclass
class GridRow:
    employee: Employee
    record: Optional[Record] = None


@dataclass(frozen=True)
class RowView:
    employee_id: int
    idno: str
    name: str
    department: str
    cells: Tuple[CellRender, ...]
    total: str
    selected: bool
    posted: bool
    is_default: bool


@dataclass(frozen=True)
class GridSnapshot:
    headers: Tuple[str, ...]
    rows: Tuple[RowView, ...]
    open_cell: Optional[Position]
    selected_count: int
    busy: bool
    banner: Optional[Banner]


@dataclass
class PasteReport:
    applied: int = 0
    failed: List[Position] = field(default_factory=list)
    skipped: List[Position] = field(default_factory=list)


class GridController:
    def __init__(
        self,
        gateway: RecordGateway,
        rows: Iterable[GridRow] = (),
        notifier: Optional[Notifier] = None,
        save_timeout: float = DEFAULT_SAVE_TIMEOUT,
        create_timeout: float = DEFAULT_CREATE_TIMEOUT,
        bulk_timeout: float = DEFAULT_BULK_TIMEOUT,
    ) -> None:
        self.gateway = gateway
        self.fields: Tuple[str, ...] = tuple(gateway.fields)
        self.rows: List[GridRow] = list(rows)
        self.notifier = notifier or Notifier()
        self.save_timeout = save_timeout
        self.bulk_timeout = bulk_timeout
        self.state = GridState()
        self.selection = BulkSelectionTracker()
        self.creator = LazyRecordCreator(
            gateway.create_record, timeout=create_timeout, on_created=self._place_created
        )
        self.editor: Optional[CellEditor] = None

    # ---------- reading ----------

    @property
    def records(self) -> List[Optional[Record]]:
        return [row.record for row in self.rows]

    @property
    def open_position(self) -> Optional[Position]:
        return self.state.open_cell.position if self.state.open_cell else None

    def _in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < len(self.rows) and 0 <= col < len(self.fields)

    def cell(self, row: int, col: int) -> CellRender:
        editing = self.state.is_open(row, col)
        draft = self.editor.draft if editing and self.editor else None
        return render_state(self.rows[row].record, self.fields[col], editing, draft)

    def snapshot(self) -> GridSnapshot:
        views = []
        for r, row in enumerate(self.rows):
            record = row.record
            views.append(
                RowView(
                    employee_id=row.employee.id,
                    idno=row.employee.idno,
                    name=row.employee.display_name,
                    department=row.employee.department,
                    cells=tuple(self.cell(r, c) for c in range(len(self.fields))),
                    total=format_amount(sum(record.amount(f) for f in self.fields) if record else 0),
                    selected=record is not None and record.id in self.selection,
                    posted=bool(record and record.is_posted),
                    is_default=bool(record and record.is_default),
                )
            )
        return GridSnapshot(
            headers=tuple(FIELD_LABELS.get(f, f) for f in self.fields),
            rows=tuple(views),
            open_cell=self.open_position,
            selected_count=len(self.selection),
            busy=self.selection.busy,
            banner=self.notifier.current(),
        )

    # ---------- row list ----------

    def replace_rows(self, rows: Iterable[GridRow]) -> None:
        """Swap in a freshly loaded page of rows."""
        self.rows = list(rows)
        self.creator.invalidate()
        self.selection.prune(self.records)
        pointer = self.state.open_cell
        if pointer is not None:
            still_there = (
                self._in_bounds(pointer.row, pointer.col)
                and self.rows[pointer.row].record is not None
                and self.rows[pointer.row].record.id == pointer.record_id
                and not self.rows[pointer.row].record.is_posted
            )
            if not still_there:
                self._close()

    def apply_record(self, record: Record) -> bool:
        """Patch the row already holding ``record.id``; other rows are never touched."""
        target = next((row for row in self.rows if row.record is not None and row.record.id == record.id), None)
        if target is None:
            logger.debug("Record %s belongs to no visible row", record.id)
            return False
        target.record = record
        if record.is_posted:
            self.selection.prune(self.records)
        return True

    def _place_created(self, record: Record, cell: PendingCell) -> None:
        # the empty row that asked for the record, if it is still that row
        if 0 <= cell.row < len(self.rows):
            row = self.rows[cell.row]
            if row.employee.id == record.employee_id and row.record is None:
                row.record = record
                return
        self.apply_record(record)

    # ---------- editing ----------

    def _open(self, row: int, col: int) -> CellPointer:
        record = self.rows[row].record
        pointer = CellPointer(self.rows[row].employee.id, record.id, self.fields[col], row, col)
        self.state.open(pointer)
        self.editor = CellEditor(record.amount(self.fields[col]), self._save_draft)
        return pointer

    def _close(self) -> None:
        self.state.close()
        self.editor = None

    async def _create_and_open(self, row: int, col: int) -> Optional[CellPointer]:
        employee = self.rows[row].employee
        try:
            pointer = await self.creator.open_after_create(employee.id, self.fields[col], row, col)
        except RecordCreationFailed as exc:
            self.notifier.error(exc.cause)
            return None
        if pointer is None:
            return None
        record = self.rows[row].record
        # create-from-default hands back an existing record if there is one
        if record is None or record.id != pointer.record_id or record.is_posted:
            return None
        return self._open(row, col)

    async def click(self, row: int, col: int) -> Optional[CellPointer]:
        """Open a cell for editing, creating its record first when missing."""
        if not self._in_bounds(row, col) or self.state.is_open(row, col):
            return self.state.open_cell
        if self.state.open_cell is not None and not await self.commit():
            return self.state.open_cell

        record = self.rows[row].record
        if record is None:
            return await self._create_and_open(row, col)
        if record.is_posted:
            return None
        return self._open(row, col)

    async def _save_draft(self, text: str) -> None:
        await self.commit(text)

    async def commit(self, text: Optional[str] = None) -> bool:
        """
        Save the open cell and close the editor.

        Returns False, leaving the editor open, when the input is not a
        number or the save fails.
        """
        pointer = self.state.open_cell
        if pointer is None:
            return True
        if text is None:
            text = self.editor.draft if self.editor else ""
        value = parse_amount(text)
        if value is None:
            self.notifier.show("Please enter a valid amount.", "error")
            return False

        current = self.rows[pointer.row].record if self._in_bounds(pointer.row, pointer.col) else None
        if current is not None and current.id == pointer.record_id and current.amount(pointer.field) == value:
            self._close()
            return True

        try:
            record = await asyncio.wait_for(
                self.gateway.update_field(pointer.record_id, pointer.field, value),
                timeout=self.save_timeout,
            )
        except REQUEST_ERRORS as exc:
            logger.warning("Saving %s on record %s failed: %s", pointer.field, pointer.record_id, exc)
            self.notifier.error(exc)
            return False

        self.apply_record(record)
        if self.state.open_cell == pointer:
            self._close()
        return True

    def cancel(self) -> None:
        """Drop the draft without saving."""
        self._close()

    async def handle_key(self, key: str, shift: bool = False, draft: Optional[str] = None) -> Optional[Position]:
        """
        React to a key pressed inside the open editor.

        Returns the position of the cell that is open afterwards, or None when
        no cell is open.
        """
        pointer = self.state.open_cell
        if pointer is None or self.editor is None:
            return None
        if draft is not None:
            self.editor.type(draft)

        if key in ("Enter", "Return"):
            await self.editor.key("Enter")
            return self.open_position
        if key == "Escape":
            self.cancel()
            return None
        if key not in NAVIGATION_KEYS:
            return self.open_position

        target = next_position(key, pointer.row, pointer.col, len(self.rows), len(self.fields), shift)
        if target is None:
            return self.open_position
        if not await self.commit():
            return self.open_position

        row, col = target
        record = self.rows[row].record
        if record is None:
            await self._create_and_open(row, col)
        elif record.is_posted:
            # posted rows are skipped over; keep editing where we were
            origin = self.rows[pointer.row].record
            if origin is not None and not origin.is_posted:
                self._open(pointer.row, pointer.col)
        else:
            self._open(row, col)
        return self.open_position

    # ---------- paste ----------

    async def _apply_update(self, update: CellUpdate) -> Record:
        return await asyncio.wait_for(
            self.gateway.update_field(update.record_id, update.field, update.value),
            timeout=self.save_timeout,
        )

    async def paste(self, text: str, row: int, col: int) -> Optional[PasteReport]:
        """
        Spread a tab/newline separated block from ``(row, col)``.

        Single values are left to the editor and return None.
        """
        if not is_multi_cell(text):
            return None
        self._close()

        plan = plan_paste(parse_clipboard(text), row, col, self.records, self.fields)
        report = PasteReport(skipped=list(plan.skipped))
        results = await asyncio.gather(
            *(self._apply_update(u) for u in plan.updates), return_exceptions=True
        )
        for update, result in zip(plan.updates, results):
            if isinstance(result, REQUEST_ERRORS):
                logger.warning("Pasting into (%s, %s) failed: %s", update.row, update.col, result)
                report.failed.append((update.row, update.col))
            elif isinstance(result, BaseException):
                raise result
            else:
                self.apply_record(result)
                report.applied += 1

        if report.failed:
            self.notifier.show(
                f"Pasted {report.applied} cells; {len(report.failed)} could not be saved.", "error"
            )
        elif report.applied:
            self.notifier.show(f"Pasted {report.applied} cells.")
        return report

    # ---------- selection / bulk ----------

    def toggle_select(self, row: int) -> bool:
        return self.selection.toggle(self.rows[row].record)

    def select_all(self) -> None:
        self.selection.select_all(self.records)

    def clear_selection(self) -> None:
        self.selection.clear()

    def _mark(self, ids: Sequence[int], **changes: Any) -> None:
        wanted = set(ids)
        for row in self.rows:
            if row.record is not None and row.record.id in wanted:
                row.record = row.record.model_copy(update=changes)

    async def _bulk(self, action, changes: dict, label: str) -> bool:
        ids = sorted(self.selection.selected)
        try:
            result = await self.selection.run(action, timeout=self.bulk_timeout)
        except (SelectionBusy, EmptySelection) as exc:
            self.notifier.show(str(exc), "error")
            return False
        except REQUEST_ERRORS as exc:
            logger.warning("Bulk %s failed: %s", label, exc)
            self.notifier.error(exc)
            return False
        self._mark(ids, **changes)
        message = result.get("message") if isinstance(result, dict) else None
        self.notifier.show(message or f"{len(ids)} records updated.")
        return True

    async def bulk_post(self) -> bool:
        return await self._bulk(self.gateway.bulk_post, {"is_posted": True}, "post")

    async def bulk_set_default(self) -> bool:
        return await self._bulk(self.gateway.bulk_set_default, {"is_default": True}, "set-default")

    def export_selected(self) -> Optional[str]:
        """CSV of the selected rows in grid order; clears the selection."""
        if not self.selection.selected:
            self.notifier.show("No records selected.", "error")
            return None
        out = io.StringIO()
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow(
            ["Employee ID", "Employee Name", "Department", *(FIELD_LABELS.get(f, f) for f in self.fields), "Total"]
        )
        for row in self.rows:
            record = row.record
            if record is None or record.id not in self.selection:
                continue
            amounts = [format_amount(record.amount(f)) for f in self.fields]
            total = format_amount(sum(record.amount(f) for f in self.fields))
            writer.writerow([row.employee.idno, row.employee.display_name, row.employee.department, *amounts, total])
        self.notifier.show(f"Exported {len(self.selection)} records.")
        self.selection.clear()
        return out.getvalue()
