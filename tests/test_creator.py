import asyncio

import pytest

from payroll_admin.grid.creator import LazyRecordCreator, PendingCell, RecordCreationFailed
from payroll_admin.grid.state import CellPointer
from payroll_admin.models import DeductionRecord


@pytest.mark.asyncio
async def test_create_returns_pointer_and_reports_record():
    created = []

    async def create(employee_id):
        return DeductionRecord(id=55, employee_id=employee_id)

    creator = LazyRecordCreator(create, on_created=lambda record, cell: created.append((record.id, cell)))
    pointer = await creator.open_after_create(7, "meals", 3, 1)

    assert pointer == CellPointer(7, 55, "meals", 3, 1)
    assert created == [(55, PendingCell(7, "meals", 3, 1))]
    assert not creator.is_pending(7)


@pytest.mark.asyncio
async def test_duplicate_create_is_ignored_while_pending():
    gate = asyncio.Event()
    calls = []

    async def create(employee_id):
        calls.append(employee_id)
        await gate.wait()
        return DeductionRecord(id=1, employee_id=employee_id)

    creator = LazyRecordCreator(create)
    first = asyncio.create_task(creator.open_after_create(7, "advance", 0, 0))
    await asyncio.sleep(0)

    assert creator.is_pending(7)
    assert await creator.open_after_create(7, "meals", 0, 1) is None

    gate.set()
    assert (await first).record_id == 1
    assert calls == [7]
    assert not creator.pending


@pytest.mark.asyncio
async def test_failed_create_clears_pending():
    async def create(employee_id):
        raise RuntimeError("database locked")

    creator = LazyRecordCreator(create)
    with pytest.raises(RecordCreationFailed) as info:
        await creator.open_after_create(7, "advance", 0, 0)

    assert isinstance(info.value.cause, RuntimeError)
    assert info.value.employee_id == 7
    assert not creator.is_pending(7)


@pytest.mark.asyncio
async def test_slow_create_times_out():
    async def create(employee_id):
        await asyncio.sleep(10)

    creator = LazyRecordCreator(create, timeout=0.01)
    with pytest.raises(RecordCreationFailed) as info:
        await creator.open_after_create(7, "advance", 0, 0)

    assert isinstance(info.value.cause, asyncio.TimeoutError)
    assert not creator.pending


@pytest.mark.asyncio
async def test_invalidated_create_reports_nothing():
    gate = asyncio.Event()
    created = []

    async def create(employee_id):
        await gate.wait()
        return DeductionRecord(id=9, employee_id=employee_id)

    creator = LazyRecordCreator(create, on_created=lambda record, cell: created.append(record))
    task = asyncio.create_task(creator.open_after_create(7, "advance", 0, 0))
    await asyncio.sleep(0)

    creator.invalidate()
    assert not creator.is_pending(7)
    gate.set()

    assert await task is None
    assert created == []
