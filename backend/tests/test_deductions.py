"""Integration tests for the deductions grid API."""
import csv
import io
from datetime import date

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook
from sqlalchemy import select

from payroll_api.database import AsyncSessionLocal
from payroll_api.models import Deduction, PayrollSummary
from payroll_api.services import spreadsheets

MAY_15 = date(2024, 5, 15)


def deduction(employee, **values) -> Deduction:
    values.setdefault("cutoff", "1st")
    values.setdefault("date", MAY_15)
    return Deduction(employee_id=employee.id, **values)


async def fetch(model, record_id):
    async with AsyncSessionLocal() as session:
        return await session.get(model, record_id)


@pytest.mark.asyncio
async def test_listing_pairs_employees_with_latest_record_and_counts(
    client: AsyncClient, headers, employees, add_rows
) -> None:
    reyes, cruz, diaz, _ = employees
    await add_rows(
        deduction(reyes, date=date(2024, 5, 1), advance=1.0),
        deduction(reyes, advance=2.0, is_posted=True),
        deduction(cruz, cutoff="2nd", date=date(2024, 5, 28), meals=5.0),
    )

    response = await client.get(
        "/deductions", params={"cutoff": "1st", "month": 5, "year": 2024}, headers=headers
    )
    assert response.status_code == 200
    body = response.json()
    rows = {row["idno"]: row for row in body["data"]}
    assert rows["E001"]["current_deduction"]["advance"] == 2.0
    assert rows["E002"]["current_deduction"] is None
    assert body["status"] == {"all_count": 2, "posted_count": 1, "pending_count": 1}
    assert body["date_range"] == {"start": "2024-05-01", "end": "2024-05-15"}

    second = await client.get(
        "/deductions", params={"cutoff": "2nd", "month": 2, "year": 2024}, headers=headers
    )
    assert second.json()["date_range"]["end"] == "2024-02-29"


@pytest.mark.asyncio
async def test_update_field_rules(client: AsyncClient, headers, employees, add_rows) -> None:
    open_row, posted_row = await add_rows(
        deduction(employees[0], meals=3.0),
        deduction(employees[1], is_posted=True),
    )

    ok = await client.patch(
        f"/deductions/{open_row.id}/field", json={"field": "advance", "value": "12.5"}, headers=headers
    )
    assert ok.status_code == 200
    assert ok.json()["advance"] == 12.5
    assert ok.json()["total"] == 15.5

    cleared = await client.patch(
        f"/deductions/{open_row.id}/field", json={"field": "meals", "value": None}, headers=headers
    )
    assert cleared.json()["meals"] == 0.0

    bad_field = await client.patch(
        f"/deductions/{open_row.id}/field", json={"field": "net_pay", "value": 1}, headers=headers
    )
    assert bad_field.status_code == 422
    assert bad_field.json()["errors"] == {"field": ["Invalid field specified."]}

    negative = await client.patch(
        f"/deductions/{open_row.id}/field", json={"field": "advance", "value": -1}, headers=headers
    )
    assert negative.status_code == 422
    assert "value" in negative.json()["errors"]

    posted = await client.patch(
        f"/deductions/{posted_row.id}/field", json={"field": "advance", "value": 1}, headers=headers
    )
    assert posted.status_code == 422
    assert "posted" in posted.json()["message"]

    missing = await client.patch(
        "/deductions/9999/field", json={"field": "advance", "value": 1}, headers=headers
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_create_from_default_copies_template_and_reuses_existing(
    client: AsyncClient, headers, employees, add_rows
) -> None:
    reyes, cruz = employees[0], employees[1]
    await add_rows(deduction(reyes, date=date(2024, 4, 15), is_default=True, charge_store=250.0))

    payload = {"employee_id": reyes.id, "cutoff": "1st", "date": "2024-05-15"}
    first = await client.post("/deductions/create-from-default", json=payload, headers=headers)
    assert first.status_code == 200
    created = first.json()
    assert created["charge_store"] == 250.0
    assert created["is_default"] is False
    assert created["is_posted"] is False

    again = await client.post("/deductions/create-from-default", json=payload, headers=headers)
    assert again.json()["id"] == created["id"]

    blank = await client.post(
        "/deductions/create-from-default",
        json={"employee_id": cruz.id, "cutoff": "2nd", "date": "2024-05-28"},
        headers=headers,
    )
    assert blank.json()["total"] == 0.0

    unknown = await client.post(
        "/deductions/create-from-default",
        json={"employee_id": 999, "cutoff": "1st", "date": "2024-05-15"},
        headers=headers,
    )
    assert unknown.status_code == 422
    assert "employee_id" in unknown.json()["errors"]


@pytest.mark.asyncio
async def test_post_and_set_default(client: AsyncClient, headers, employees, add_rows) -> None:
    old_default, current = await add_rows(
        deduction(employees[0], date=date(2024, 4, 15), is_default=True),
        deduction(employees[0], advance=5.0),
    )

    made_default = await client.post(f"/deductions/{current.id}/set-default", headers=headers)
    assert made_default.json()["is_default"] is True
    assert (await fetch(Deduction, old_default.id)).is_default is False

    posted = await client.post(f"/deductions/{current.id}/post", headers=headers)
    assert posted.status_code == 200
    assert posted.json()["is_posted"] is True
    assert posted.json()["date_posted"] == date.today().isoformat()

    twice = await client.post(f"/deductions/{current.id}/post", headers=headers)
    assert twice.status_code == 422


@pytest.mark.asyncio
async def test_posting_refreshes_open_payroll_summary(
    client: AsyncClient, headers, employees, add_rows
) -> None:
    reyes = employees[0]
    summary, record = await add_rows(
        PayrollSummary(employee_id=reyes.id, year=2024, month=5, period_type="1st_half", net_pay=900.0),
        deduction(reyes, advance=100.0, meals=20.0),
    )

    response = await client.post(
        "/deductions/bulk-post", json={"deduction_ids": [record.id]}, headers=headers
    )
    assert response.json()["posted_count"] == 1
    assert "1 payroll summaries updated" in response.json()["message"]
    assert (await fetch(PayrollSummary, summary.id)).total_deductions == 120.0


@pytest.mark.asyncio
async def test_bulk_operations(client: AsyncClient, headers, employees, add_rows) -> None:
    reyes, cruz, diaz, _ = employees
    a, b, c, done = await add_rows(
        deduction(reyes),
        deduction(reyes, date=date(2024, 5, 2)),
        deduction(cruz),
        deduction(diaz, is_posted=True),
    )

    empty = await client.post("/deductions/bulk-post", json={"deduction_ids": []}, headers=headers)
    assert empty.status_code == 422
    assert empty.json()["message"] == "No deductions selected for posting."

    defaults = await client.post(
        "/deductions/bulk-set-default", json={"deduction_ids": [a.id, b.id, c.id]}, headers=headers
    )
    assert defaults.json()["updated_count"] == 2
    assert (await fetch(Deduction, a.id)).is_default is False
    assert (await fetch(Deduction, b.id)).is_default is True

    posted = await client.post(
        "/deductions/bulk-post", json={"deduction_ids": [a.id, done.id]}, headers=headers
    )
    assert posted.json()["posted_count"] == 1

    no_range = await client.post("/deductions/post-all", json={"cutoff": "1st"}, headers=headers)
    assert no_range.status_code == 422
    assert no_range.json()["errors"] == {"date": ["Start date and end date are required."]}

    window = {"cutoff": "1st", "start_date": "2024-05-01", "end_date": "2024-05-15"}
    deleted = await client.post("/deductions/delete-all-not-posted", json=window, headers=headers)
    assert deleted.json()["deleted_count"] == 2

    all_posted = await client.post("/deductions/post-all", json=window, headers=headers)
    assert all_posted.json()["updated_count"] == 0


@pytest.mark.asyncio
async def test_bulk_create_covers_active_employees_once(
    client: AsyncClient, headers, employees, add_rows
) -> None:
    await add_rows(deduction(employees[0]))
    payload = {"cutoff": "1st", "date": "2024-05-15"}

    first = await client.post("/deductions/bulk-create", json=payload, headers=headers)
    assert first.json()["created_count"] == 2
    second = await client.post("/deductions/bulk-create", json=payload, headers=headers)
    assert second.json()["created_count"] == 0


@pytest.mark.asyncio
async def test_import_upserts_and_reports_row_errors(
    client: AsyncClient, headers, employees, add_rows
) -> None:
    await add_rows(deduction(employees[2], is_posted=True))
    sheet = "\n".join(
        [
            "Employee ID,Employee Name,Department,Advance,Charge Store,Charge,Meals,Miscellaneous,Other Deductions",
            "E001,Reyes,Sewing,100,0,0,25.50,0,0",
            "E404,Ghost,None,1,1,1,1,1,1",
            "E003,Diaz,Sewing,5,0,0,0,0,0",
            ",,,,,,,,",
            "E002,Cruz,Cutting,abc,0,0,0,0,0",
        ]
    )

    response = await client.post(
        "/deductions/import",
        params={"cutoff": "1st", "date": "2024-05-15"},
        content=sheet.encode(),
        headers={**headers, "Content-Type": "text/csv"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["imported_count"] == 1
    assert len(body["errors"]) == 3
    assert any("E404" in e for e in body["errors"])
    assert any("already posted" in e for e in body["errors"])

    async with AsyncSessionLocal() as session:
        imported = (
            await session.execute(select(Deduction).where(Deduction.employee_id == employees[0].id))
        ).scalar_one()
    assert imported.meals == 25.5


@pytest.mark.asyncio
async def test_export_and_template(client: AsyncClient, headers, employees, add_rows) -> None:
    await add_rows(deduction(employees[0], advance=10.0, is_default=True))

    export = await client.get(
        "/deductions/export", params={"cutoff": "1st", "month": 5, "year": 2024}, headers=headers
    )
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(export.text)))
    assert rows[0][-2:] == ["Status", "Is Default"]
    by_id = {row[0]: row for row in rows[1:]}
    assert by_id["E001"][3] == "10.00"
    assert by_id["E001"][-2:] == ["Pending", "Yes"]
    assert by_id["E002"][-2] == "No Data"

    template = await client.get("/deductions/template/download", headers=headers)
    lines = list(csv.reader(io.StringIO(template.text)))
    assert lines[0][0] == "Employee ID"
    assert len(lines) == 4


@pytest.mark.asyncio
async def test_xlsx_template_round_trips_through_import(client: AsyncClient, headers, employees) -> None:
    template = await client.get("/deductions/template/download", params={"format": "xlsx"}, headers=headers)
    assert template.status_code == 200
    assert template.headers["content-type"] == spreadsheets.MEDIA_TYPES["xlsx"]
    assert 'filename="deductions_import_template.xlsx"' in template.headers["content-disposition"]

    wb = load_workbook(io.BytesIO(template.content))
    ws = wb["Deductions"]
    assert ws["A1"].value == "Employee ID"
    assert ws.max_row == 4
    ws["D2"] = 250
    ws["G2"] = 12.5
    filled = io.BytesIO()
    wb.save(filled)

    response = await client.post(
        "/deductions/import",
        params={"cutoff": "1st", "date": "2024-05-15"},
        content=filled.getvalue(),
        headers={**headers, "Content-Type": spreadsheets.MEDIA_TYPES["xlsx"]},
    )
    assert response.status_code == 200
    assert response.json()["imported_count"] == 3

    async with AsyncSessionLocal() as session:
        row = (
            await session.execute(select(Deduction).where(Deduction.employee_id == employees[0].id))
        ).scalar_one()
    assert (row.advance, row.meals) == (250.0, 12.5)


@pytest.mark.asyncio
async def test_xlsx_export_keeps_amounts_numeric(client: AsyncClient, headers, employees, add_rows) -> None:
    await add_rows(deduction(employees[0], advance=10.0))

    export = await client.get(
        "/deductions/export",
        params={"cutoff": "1st", "month": 5, "year": 2024, "format": "xlsx"},
        headers=headers,
    )
    assert export.status_code == 200
    ws = load_workbook(io.BytesIO(export.content))["Deductions"]
    by_id = {row[0]: row for row in ws.iter_rows(min_row=2, values_only=True)}
    assert by_id["E001"][3] == 10.0
    assert by_id["E001"][-2] == "Pending"


@pytest.mark.asyncio
async def test_broken_workbook_is_rejected(client: AsyncClient, headers, employees) -> None:
    response = await client.post(
        "/deductions/import",
        params={"cutoff": "1st", "date": "2024-05-15"},
        content=b"PK\x03\x04not really a workbook",
        headers=headers,
    )
    assert response.status_code == 422
    assert "file" in response.json()["errors"]
