"""Shared fixtures for the desktop client tests."""
import asyncio
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from payroll_admin.config import ClientConfig
from payroll_admin.core.notifications import Notifier
from payroll_admin.grid.controller import GridController, GridRow
from payroll_admin.models import DeductionRecord, Employee
from payroll_admin.services.api_client import APIClient, ServerError


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """In-memory stand-in for the deductions endpoints."""

    fields = ("advance", "meals")

    def __init__(self) -> None:
        self.records: Dict[int, DeductionRecord] = {}
        self.calls: List[tuple] = []
        self.fail_ids: set = set()
        self.malformed_ids: set = set()
        self.next_id = 100
        self.create_error: Optional[Exception] = None
        self.create_gate: Optional[asyncio.Event] = None
        self.bulk_error: Optional[Exception] = None

    async def update_field(self, record_id, field, value):
        self.calls.append(("update", record_id, field, value))
        if record_id in self.fail_ids:
            raise ServerError("boom", 500)
        if record_id in self.malformed_ids:
            return DeductionRecord.model_validate({"id": "not-a-number"})
        record = self.records[record_id].model_copy(update={field: value})
        self.records[record_id] = record
        return record

    async def create_record(self, employee_id):
        self.calls.append(("create", employee_id))
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        record = DeductionRecord(id=self.next_id, employee_id=employee_id, cutoff="1st")
        self.next_id += 1
        self.records[record.id] = record
        return record

    async def bulk_post(self, record_ids):
        self.calls.append(("bulk_post", list(record_ids)))
        if self.bulk_error is not None:
            raise self.bulk_error
        return {"message": f"{len(record_ids)} deductions have been successfully posted.", "posted_count": len(record_ids)}

    async def bulk_set_default(self, record_ids):
        self.calls.append(("bulk_set_default", list(record_ids)))
        if self.bulk_error is not None:
            raise self.bulk_error
        return {"message": f"{len(record_ids)} deductions have been set as default.", "updated_count": len(record_ids)}


def make_employee(n: int) -> Employee:
    return Employee(id=n, idno=f"E{n:03d}", first_name=f"First{n}", last_name=f"Last{n}", department="Sewing")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier(clock) -> Notifier:
    return Notifier(clock=clock)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def build_grid(gateway, notifier) -> Callable[..., GridController]:
    """Grid of ``n`` employees; ``missing`` rows have no record, ``posted`` rows are locked."""

    def _build(n: int, missing=(), posted=()) -> GridController:
        rows = []
        for i in range(n):
            record = None
            if i not in missing:
                record = DeductionRecord(id=i + 1, employee_id=i + 1, is_posted=i in posted)
                gateway.records[record.id] = record
            rows.append(GridRow(make_employee(i + 1), record))
        return GridController(gateway, rows, notifier=notifier)

    return _build


@pytest.fixture
def make_client() -> Callable[..., APIClient]:
    """APIClient wired to an ``httpx.MockTransport`` handler."""

    def _make(handler, **config) -> APIClient:
        settings = {"base_url": "http://payroll.test", "access_token": "tok", "csrf_token": "csrf", **config}
        return APIClient(ClientConfig(**settings), transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def qt_app(monkeypatch):
    """A QApplication on the offscreen platform; skips when PySide6 is missing."""
    monkeypatch.setenv("QT_QPA_PLATFORM", "offscreen")
    widgets = pytest.importorskip("PySide6.QtWidgets")
    return widgets.QApplication.instance() or widgets.QApplication([])


@pytest.fixture
def bridge(qt_app):
    from payroll_admin.ui.async_bridge import AsyncBridge

    b = AsyncBridge()
    b.start()
    yield b
    b.stop()
