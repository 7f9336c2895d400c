import pytest

from payroll_admin.grid.cells import (
    CellEditor, Editable, Locked, ReadOnly, format_amount, parse_amount, render_state
)
from payroll_admin.models import DeductionRecord


@pytest.mark.parametrize("value", [None, "", "abc", float("nan"), float("inf")])
def test_blank_and_garbage_render_as_zero(value):
    assert format_amount(value) == "0.00"


def test_format_amount_uses_two_decimals():
    assert format_amount(12.5) == "12.50"
    assert format_amount("7") == "7.00"
    assert format_amount(1234.567) == "1234.57"


def test_parse_amount():
    assert parse_amount("") == 0.0
    assert parse_amount("  12.5 ") == 12.5
    assert parse_amount("1,250.75") == 1250.75
    assert parse_amount(3) == 3.0
    assert parse_amount("abc") is None
    assert parse_amount("inf") is None
    assert parse_amount("nan") is None


def test_render_state_variants():
    open_record = DeductionRecord(id=1, employee_id=1, meals=45)
    posted = DeductionRecord(id=2, employee_id=2, meals=10, is_posted=True)

    assert render_state(None, "meals") == ReadOnly("0.00", record_exists=False)
    assert render_state(open_record, "meals") == ReadOnly("45.00", record_exists=True)
    assert render_state(open_record, "meals", is_editing=True) == Editable("45.00")
    assert render_state(open_record, "meals", is_editing=True, draft="4") == Editable("4")
    assert render_state(posted, "meals", is_editing=True) == Locked("10.00")


@pytest.mark.asyncio
async def test_editor_saves_on_enter_and_blur_only():
    saved = []

    async def on_save(text):
        saved.append(text)

    editor = CellEditor("", on_save)
    assert editor.draft == "0.00"

    editor.type("12.5")
    assert await editor.key("a") is False
    assert await editor.key("Tab") is False
    assert saved == []

    await editor.blur()
    assert saved == ["12.5"]
    assert await editor.key("Enter") is True
    assert saved == ["12.5", "12.5"]
