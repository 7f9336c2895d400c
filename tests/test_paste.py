from payroll_admin.grid.paste import CellUpdate, is_multi_cell, parse_clipboard, plan_paste
from payroll_admin.models import DeductionRecord

FIELDS = ("advance", "meals")


def grid_records(n, missing=(), posted=()):
    return [
        None if i in missing else DeductionRecord(id=i + 1, employee_id=i + 1, is_posted=i in posted)
        for i in range(n)
    ]


def test_multi_cell_detection():
    assert is_multi_cell("1\t2")
    assert is_multi_cell("1\n2")
    assert is_multi_cell("1\r2")
    assert not is_multi_cell("12.50")


def test_parse_clipboard_splits_rows_and_drops_blank_lines():
    assert parse_clipboard("1\t2\r\n3\t4\n\n") == [["1", "2"], ["3", "4"]]
    assert parse_clipboard("5\r6") == [["5"], ["6"]]


def test_block_over_row_without_record():
    plan = plan_paste(parse_clipboard("1\t2\n3\t4"), 0, 0, grid_records(5, missing={1}), FIELDS)
    assert plan.updates == [
        CellUpdate(1, "advance", 1.0, 0, 0),
        CellUpdate(1, "meals", 2.0, 0, 1),
    ]
    assert plan.skipped == [(1, 0), (1, 1)]


def test_out_of_bounds_cells_are_skipped():
    plan = plan_paste([["1", "2", "3"], ["4", "5", "6"]], 4, 1, grid_records(5), FIELDS)
    assert [(u.row, u.col) for u in plan.updates] == [(4, 1)]
    assert set(plan.skipped) == {(4, 2), (4, 3), (5, 1), (5, 2), (5, 3)}


def test_posted_rows_and_non_numbers_are_skipped():
    block = [["abc", "inf"], ["", "7"], ["1,000", "2"]]
    plan = plan_paste(block, 0, 0, grid_records(3, posted={2}), FIELDS)
    assert plan.updates == [CellUpdate(2, "meals", 7.0, 1, 1)]
    assert set(plan.skipped) == {(0, 0), (0, 1), (1, 0), (2, 0), (2, 1)}


def test_updates_only_touch_in_bounds_unposted_records():
    records = grid_records(4, missing={0}, posted={3})
    block = [["1", "2"], ["3", "4"], ["5", "6"], ["7", "8"], ["9", "10"]]
    plan = plan_paste(block, 0, 0, records, FIELDS)
    for update in plan.updates:
        record = records[update.row]
        assert 0 <= update.row < 4 and 0 <= update.col < 2
        assert record is not None and not record.is_posted
        assert update.record_id == record.id
    assert len(plan.updates) + len(plan.skipped) == 10
