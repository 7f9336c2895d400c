import asyncio

import pytest

from payroll_admin.grid.cells import Editable, Locked, ReadOnly
from payroll_admin.grid.controller import GridRow
from payroll_admin.models import DeductionRecord
from payroll_admin.services.api_client import ServerError


@pytest.mark.asyncio
async def test_blank_amount_edit_and_blur_saves(build_grid, gateway):
    grid = build_grid(2)
    gateway.records[1] = grid.rows[0].record = DeductionRecord(id=1, employee_id=1, advance=None)
    assert grid.cell(0, 0) == ReadOnly("0.00", record_exists=True)

    await grid.click(0, 0)
    assert grid.cell(0, 0) == Editable("0.00")

    grid.editor.type("12.5")
    assert gateway.calls == []
    await grid.editor.blur()

    assert gateway.calls == [("update", 1, "advance", 12.5)]
    assert grid.open_position is None
    assert grid.cell(0, 0) == ReadOnly("12.50", record_exists=True)


@pytest.mark.asyncio
async def test_tab_three_times_walks_the_grid(build_grid, gateway):
    grid = build_grid(3)
    await grid.click(0, 0)

    visited = [await grid.handle_key("Tab") for _ in range(3)]

    assert visited == [(0, 1), (1, 0), (1, 1)]
    assert [c for c in gateway.calls if c[0] == "update"] == []


@pytest.mark.asyncio
async def test_navigation_saves_before_moving(build_grid, gateway):
    grid = build_grid(3)
    await grid.click(0, 0)

    assert await grid.handle_key("ArrowDown", draft="5") == (1, 0)
    assert gateway.calls == [("update", 1, "advance", 5.0)]
    assert grid.rows[0].record.advance == 5.0


@pytest.mark.asyncio
async def test_failed_save_keeps_editor_open(build_grid, gateway, notifier):
    grid = build_grid(3)
    gateway.fail_ids = {1}
    await grid.click(0, 0)

    assert await grid.handle_key("ArrowDown", draft="5") == (0, 0)
    assert grid.editor.draft == "5"
    banner = notifier.current()
    assert banner.level == "error"
    assert banner.message == "Server error. Please try again later."


@pytest.mark.asyncio
async def test_invalid_amount_is_refused(build_grid, gateway, notifier):
    grid = build_grid(2)
    await grid.click(0, 1)

    assert await grid.commit("twelve") is False
    assert grid.open_position == (0, 1)
    assert gateway.calls == []
    assert notifier.current().message == "Please enter a valid amount."


@pytest.mark.asyncio
async def test_unchanged_value_makes_no_request(build_grid, gateway):
    grid = build_grid(2)
    await grid.click(0, 0)
    assert await grid.commit("0.00") is True
    assert grid.open_position is None
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_escape_discards_draft(build_grid, gateway):
    grid = build_grid(2)
    await grid.click(1, 1)
    assert await grid.handle_key("Escape", draft="99") is None
    assert gateway.calls == []
    assert grid.cell(1, 1) == ReadOnly("0.00", record_exists=True)


@pytest.mark.asyncio
async def test_moving_into_missing_record_creates_it(build_grid, gateway):
    grid = build_grid(3, missing={1})
    await grid.click(0, 0)

    assert await grid.handle_key("ArrowDown") == (1, 0)
    assert ("create", 2) in gateway.calls
    assert grid.rows[1].record.id == 100
    assert grid.open_position == (1, 0)


@pytest.mark.asyncio
async def test_clicking_missing_record_creates_then_opens(build_grid, gateway):
    grid = build_grid(2, missing={0})
    pointer = await grid.click(0, 1)
    assert pointer.record_id == 100
    assert pointer.field == "meals"
    assert grid.cell(0, 1) == Editable("0.00")


@pytest.mark.asyncio
async def test_failed_create_shows_banner_and_opens_nothing(build_grid, gateway, notifier):
    grid = build_grid(2, missing={0})
    gateway.create_error = ServerError("nope", 500)

    assert await grid.click(0, 0) is None
    assert grid.open_position is None
    assert grid.rows[0].record is None
    assert not grid.creator.pending
    assert notifier.current().level == "error"


@pytest.mark.asyncio
async def test_posted_cells_cannot_be_opened(build_grid):
    grid = build_grid(3, posted={1})
    assert await grid.click(1, 0) is None
    assert isinstance(grid.cell(1, 0), Locked)


@pytest.mark.asyncio
async def test_moving_into_posted_row_stays_put(build_grid, gateway):
    grid = build_grid(3, posted={1})
    await grid.click(0, 0)
    assert await grid.handle_key("ArrowDown", draft="3") == (0, 0)
    assert gateway.calls == [("update", 1, "advance", 3.0)]


@pytest.mark.asyncio
async def test_paste_block_skips_row_without_record(build_grid, gateway, notifier):
    grid = build_grid(5, missing={1})

    report = await grid.paste("1\t2\n3\t4", 0, 0)

    assert report.applied == 2
    assert report.failed == []
    assert report.skipped == [(1, 0), (1, 1)]
    assert grid.rows[0].record.advance == 1.0
    assert grid.rows[0].record.meals == 2.0
    assert grid.rows[1].record is None
    assert not [c for c in gateway.calls if c[0] == "create"]
    assert notifier.current().message == "Pasted 2 cells."


@pytest.mark.asyncio
async def test_paste_reports_partial_failure(build_grid, gateway, notifier):
    grid = build_grid(3)
    gateway.fail_ids = {2}

    report = await grid.paste("1\t2\n3\t4", 0, 0)

    assert report.applied == 2
    assert sorted(report.failed) == [(1, 0), (1, 1)]
    assert grid.rows[1].record.advance == 0.0
    banner = notifier.current()
    assert banner.level == "error"
    assert banner.message == "Pasted 2 cells; 2 could not be saved."


@pytest.mark.asyncio
async def test_single_value_paste_is_left_to_the_editor(build_grid, gateway):
    grid = build_grid(2)
    assert await grid.paste("12.5", 0, 0) is None
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_bulk_post_marks_rows_and_clears_selection(build_grid, gateway, notifier):
    grid = build_grid(3, posted={2})
    grid.select_all()
    assert grid.selection.selected == {1, 2}

    assert await grid.bulk_post() is True

    assert gateway.calls == [("bulk_post", [1, 2])]
    assert all(row.record.is_posted for row in grid.rows)
    assert len(grid.selection) == 0
    assert notifier.current().message == "2 deductions have been successfully posted."


@pytest.mark.asyncio
async def test_failed_bulk_keeps_selection(build_grid, gateway, notifier):
    grid = build_grid(2)
    grid.toggle_select(0)
    gateway.bulk_error = ServerError("down", 503)

    assert await grid.bulk_set_default() is False
    assert grid.selection.selected == {1}
    assert grid.selection.busy is False
    assert not grid.rows[0].record.is_default
    assert notifier.current().level == "error"


@pytest.mark.asyncio
async def test_bulk_with_empty_selection(build_grid, gateway, notifier):
    grid = build_grid(2)
    assert await grid.bulk_post() is False
    assert gateway.calls == []
    assert notifier.current().message == "No records selected."


def test_export_selected_rows(build_grid, notifier):
    grid = build_grid(3)
    grid.rows[2].record = grid.rows[2].record.model_copy(update={"advance": 10.0, "meals": 2.5})
    grid.toggle_select(2)

    exported = grid.export_selected()

    assert exported.splitlines() == [
        "Employee ID,Employee Name,Department,Advance,Meals,Total",
        'E003,"Last3, First3",Sewing,10.00,2.50,12.50',
    ]
    assert len(grid.selection) == 0
    assert notifier.current().message == "Exported 1 records."


def test_export_with_nothing_selected(build_grid):
    grid = build_grid(2)
    assert grid.export_selected() is None


@pytest.mark.asyncio
async def test_reload_prunes_selection_and_closes_stale_editor(build_grid):
    grid = build_grid(2)
    grid.select_all()
    await grid.click(0, 0)

    posted = grid.rows[0].record.model_copy(update={"is_posted": True})
    grid.replace_rows([GridRow(grid.rows[0].employee, posted), grid.rows[1]])

    assert grid.selection.selected == {2}
    assert grid.open_position is None


def test_last_applied_response_wins(build_grid):
    grid = build_grid(1)
    newer = DeductionRecord(id=1, employee_id=1, meals=20)
    older = DeductionRecord(id=1, employee_id=1, meals=10)
    grid.apply_record(newer)
    grid.apply_record(older)
    assert grid.rows[0].record.meals == 10


def test_response_for_another_record_never_replaces_a_row(build_grid):
    grid = build_grid(1)
    second_cutoff = DeductionRecord(id=50, employee_id=1, cutoff="2nd", meals=5)
    grid.replace_rows([GridRow(grid.rows[0].employee, second_cutoff)])

    late = DeductionRecord(id=1, employee_id=1, cutoff="1st", advance=99)
    assert grid.apply_record(late) is False

    record = grid.rows[0].record
    assert (record.id, record.cutoff, record.advance) == (50, "2nd", 0.0)


@pytest.mark.asyncio
async def test_create_finishing_after_reload_opens_nothing(build_grid, gateway):
    grid = build_grid(2, missing={0})
    gateway.create_gate = asyncio.Event()
    opening = asyncio.create_task(grid.click(0, 0))
    await asyncio.sleep(0)
    assert grid.creator.is_pending(1)

    grid.replace_rows([GridRow(row.employee, None) for row in grid.rows])
    gateway.create_gate.set()

    assert await opening is None
    assert grid.rows[0].record is None
    assert grid.open_position is None


def test_snapshot_shape(build_grid, notifier):
    grid = build_grid(2, missing={1})
    grid.toggle_select(0)
    notifier.show("hello")

    snap = grid.snapshot()

    assert snap.headers == ("Advance", "Meals")
    assert snap.rows[0].selected is True
    assert snap.rows[0].name == "Last1, First1"
    assert snap.rows[1].cells == (ReadOnly("0.00", False), ReadOnly("0.00", False))
    assert snap.selected_count == 1
    assert snap.banner.message == "hello"


@pytest.mark.asyncio
async def test_slow_save_times_out(build_grid, gateway, notifier):
    grid = build_grid(2)
    grid.save_timeout = 0.01

    async def hang(record_id, field, value):
        await asyncio.sleep(10)

    gateway.update_field = hang
    await grid.click(0, 0)

    assert await grid.commit("4") is False
    assert grid.open_position == (0, 0)
    assert notifier.current().level == "error"


@pytest.mark.asyncio
async def test_malformed_response_is_reported_not_raised(build_grid, gateway, notifier):
    grid = build_grid(3)
    gateway.malformed_ids = {2}

    await grid.click(1, 0)
    grid.editor.type("4")
    assert await grid.commit() is False
    assert grid.open_position == (1, 0)
    assert notifier.current().level == "error"

    grid.cancel()
    report = await grid.paste("1\t2\n3\t4", 0, 0)
    assert report.applied == 2
    assert sorted(report.failed) == [(1, 0), (1, 1)]
