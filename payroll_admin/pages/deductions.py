"""Deductions screen: one editable row per active employee for a cutoff."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Awaitable, Dict, Optional, Tuple, Union

from ..core.notifications import IMPORT_SECONDS, Notifier
from ..grid.controller import GridController, GridRow
from ..models import DeductionRecord, EmployeeDeductions
from ..services.api_client import APIClient
from ..services.gateways import DeductionGateway
from .base import PageModel, message_of

logger = logging.getLogger(__name__)


def sheet_format(source: Union[str, Path, bytes]) -> str:
    """``xlsx`` for Excel workbooks (by suffix, or zip signature for raw bytes), else ``csv``."""
    if isinstance(source, bytes):
        return "xlsx" if source.startswith(b"PK\x03\x04") else "csv"
    return "xlsx" if Path(source).suffix.lower() == ".xlsx" else "csv"


def cutoff_range(cutoff: str, month: int, year: int) -> Tuple[date, date]:
    """1st cutoff covers the 1st to the 15th; 2nd runs to month end."""
    if cutoff == "1st":
        return date(year, month, 1), date(year, month, 15)
    return date(year, month, 16), date(year, month, calendar.monthrange(year, month)[1])


def cutoff_record_date(cutoff: str, month: int, year: int) -> date:
    """Date stamped on records created for a cutoff (15th or 28th)."""
    return date(year, month, 15 if cutoff == "1st" else 28)


@dataclass
class StatusCounts:
    all_count: int = 0
    posted_count: int = 0
    pending_count: int = 0


class DeductionsPage(PageModel):
    def __init__(
        self,
        client: APIClient,
        notifier: Optional[Notifier] = None,
        today: Optional[date] = None,
    ) -> None:
        super().__init__(client, notifier)
        today = today or date.today()
        self.cutoff = "1st"
        self.month = today.month
        self.year = today.year
        self.search = ""
        self.page = 1
        self.last_page = 1
        self.total = 0
        self.status = StatusCounts()
        self.gateway = DeductionGateway(client, self.cutoff, self.record_date)
        self.grid = GridController(self.gateway, notifier=self.notifier)

    # ---------- filters ----------

    @property
    def date_range(self) -> Tuple[date, date]:
        return cutoff_range(self.cutoff, self.month, self.year)

    @property
    def record_date(self) -> date:
        return cutoff_record_date(self.cutoff, self.month, self.year)

    def set_filters(self, **changes: Any) -> None:
        """Update cutoff/month/year/search; any change goes back to page 1."""
        changed = False
        for name in ("cutoff", "month", "year", "search"):
            if name in changes and changes[name] is not None and changes[name] != getattr(self, name):
                setattr(self, name, changes[name])
                changed = True
        if changed:
            self.page = 1
        self.gateway.cutoff = self.cutoff
        self.gateway.record_date = self.record_date

    # ---------- loading ----------

    async def load(self, page: Optional[int] = None) -> bool:
        if page is not None:
            self.page = max(1, page)
        result = await self._call(
            lambda: self.client.list_deductions(
                cutoff=self.cutoff, month=self.month, year=self.year, search=self.search, page=self.page
            )
        )
        if result is None:
            return False

        rows = []
        for item in result.data:
            employee = EmployeeDeductions.model_validate(item)
            rows.append(GridRow(employee, employee.current_deduction))
        self.grid.replace_rows(rows)
        self.page = result.current_page
        self.last_page = result.last_page
        self.total = result.total
        counts: Dict[str, Any] = result.extra.get("status") or {}
        self.status = StatusCounts(
            all_count=int(counts.get("all_count", 0)),
            posted_count=int(counts.get("posted_count", 0)),
            pending_count=int(counts.get("pending_count", 0)),
        )
        return True

    async def next_page(self) -> bool:
        if self.page >= self.last_page:
            return False
        return await self.load(self.page + 1)

    async def previous_page(self) -> bool:
        if self.page <= 1:
            return False
        return await self.load(self.page - 1)

    # ---------- single record ----------

    async def post(self, row: int) -> bool:
        record = self.grid.rows[row].record
        if record is None or record.is_posted:
            return False
        result = await self._call(
            lambda: self._apply(self.client.post_deduction(record.id)),
            "Deduction posted successfully.",
        )
        return result is not None

    async def set_default(self, row: int) -> bool:
        record = self.grid.rows[row].record
        if record is None:
            return False
        result = await self._call(
            lambda: self._apply(self.client.set_default_deduction(record.id)),
            "Deduction set as default.",
        )
        return result is not None

    async def _apply(self, pending: Awaitable[Dict[str, Any]]) -> DeductionRecord:
        record = DeductionRecord.model_validate(await pending)
        self.grid.apply_record(record)
        return record

    # ---------- whole cutoff ----------

    async def _range_action(self, call, reload: bool = True) -> Optional[Dict[str, Any]]:
        start, end = self.date_range
        result = await self._call(lambda: call(self.cutoff, start, end), message_of)
        if result is not None and reload:
            await self.load()
        return result

    async def post_all(self) -> Optional[Dict[str, Any]]:
        return await self._range_action(self.client.post_all_deductions)

    async def delete_all_not_posted(self) -> Optional[Dict[str, Any]]:
        return await self._range_action(self.client.delete_all_not_posted)

    async def bulk_create(self) -> Optional[Dict[str, Any]]:
        result = await self._call(
            lambda: self.client.bulk_create_deductions(self.cutoff, self.record_date), message_of
        )
        if result is not None:
            await self.load()
        return result

    async def bulk_post(self) -> bool:
        return await self.grid.bulk_post()

    async def bulk_set_default(self) -> bool:
        return await self.grid.bulk_set_default()

    # ---------- files ----------

    async def import_file(self, source: Union[str, Path, bytes]) -> Optional[Dict[str, Any]]:
        """Upload a CSV or xlsx file (path or raw bytes) into the current cutoff."""
        if isinstance(source, bytes):
            content = source
        else:
            try:
                content = Path(source).read_bytes()
            except OSError as exc:
                logger.warning("Cannot read import file %s: %s", source, exc)
                self.notifier.show(f"Cannot read {source}: {exc.strerror}", "error", IMPORT_SECONDS)
                return None

        def summary(result: Dict[str, Any]) -> str:
            message = result.get("message", "Import finished.")
            errors = result.get("errors") or []
            if errors:
                message += f" {len(errors)} rows had errors: " + "; ".join(errors[:3])
            return message

        result = await self._call(
            lambda: self.client.import_deductions(content, self.cutoff, self.record_date, sheet_format(content)),
            summary,
            seconds=IMPORT_SECONDS,
        )
        if result is not None:
            await self.load()
        return result

    async def export(self, target: Optional[Union[str, Path]] = None) -> Optional[bytes]:
        content = await self._call(
            lambda: self.client.export_deductions(
                cutoff=self.cutoff,
                month=self.month,
                year=self.year,
                search=self.search,
                fmt=sheet_format(target) if target is not None else "csv",
            )
        )
        if content is not None and target is not None:
            Path(target).write_bytes(content)
            self.notifier.show(f"Exported deductions to {target}.")
        return content

    async def download_template(self, target: Optional[Union[str, Path]] = None) -> Optional[bytes]:
        fmt = sheet_format(target) if target is not None else "csv"
        content = await self._call(lambda: self.client.download_deduction_template(fmt))
        if content is not None and target is not None:
            Path(target).write_bytes(content)
            self.notifier.show(f"Template saved to {target}.")
        return content
