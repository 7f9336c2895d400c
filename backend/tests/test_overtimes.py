"""Integration tests for the overtime approval flow."""
import pytest
from httpx import AsyncClient


async def file_overtime(client, headers, employee_id, start="2024-05-10T17:00:00", end="2024-05-10T20:30:00"):
    response = await client.post(
        "/overtimes",
        json={
            "employee_id": employee_id,
            "date": start[:10],
            "start_time": start,
            "end_time": end,
            "reason": "Inventory",
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_two_level_approval(client: AsyncClient, login, employees) -> None:
    sewing_mgr = await login("sewing", role="department_manager", department="Sewing")
    cutting_mgr = await login("cutting", role="department_manager", department="Cutting")
    hrd = await login("hrd", role="hrd_manager")

    ot = await file_overtime(client, sewing_mgr, employees[0].id)
    assert ot["status"] == "pending"
    assert ot["total_hours"] == 3.5

    wrong_dept = await client.post(
        f"/overtimes/{ot['id']}/status", json={"status": "manager_approved"}, headers=cutting_mgr
    )
    assert wrong_dept.status_code == 403

    hrd_too_early = await client.post(
        f"/overtimes/{ot['id']}/status", json={"status": "approved"}, headers=hrd
    )
    assert hrd_too_early.status_code == 403

    level_one = await client.post(
        f"/overtimes/{ot['id']}/status",
        json={"status": "manager_approved", "remarks": "ok"},
        headers=sewing_mgr,
    )
    assert level_one.status_code == 200
    assert level_one.json()["status"] == "manager_approved"
    assert level_one.json()["dept_remarks"] == "ok"

    remarks_only = await client.post(
        "/overtimes/updateStatus",
        json={"id": ot["id"], "status": "manager_approved", "remarks": "checked"},
        headers=hrd,
    )
    assert remarks_only.json()["status"] == "manager_approved"
    assert remarks_only.json()["hrd_remarks"] == "checked"

    level_two = await client.post(
        f"/overtimes/{ot['id']}/status", json={"status": "approved"}, headers=hrd
    )
    assert level_two.json()["status"] == "approved"
    assert level_two.json()["hrd_approved_by"] is not None


@pytest.mark.asyncio
async def test_force_approval_is_superadmin_only(client: AsyncClient, login, employees) -> None:
    admin = await login("root", role="superadmin")
    hrd = await login("hrd", role="hrd_manager")
    ot = await file_overtime(client, admin, employees[1].id)

    refused = await client.post(
        f"/overtimes/{ot['id']}/status", json={"status": "force_approved"}, headers=hrd
    )
    assert refused.status_code == 403

    forced = await client.post(
        f"/overtimes/{ot['id']}/status", json={"status": "force_approved"}, headers=admin
    )
    body = forced.json()
    assert body["status"] == "approved"
    assert body["dept_approved_by"] == body["hrd_approved_by"]
    assert body["hrd_remarks"].startswith("Administrative override: ")


@pytest.mark.asyncio
async def test_bulk_update_reports_failures(client: AsyncClient, login, employees) -> None:
    sewing_mgr = await login("sewing", role="department_manager", department="Sewing")
    admin = await login("root", role="superadmin")
    mine = await file_overtime(client, admin, employees[0].id)
    other = await file_overtime(client, admin, employees[1].id)

    response = await client.post(
        "/overtimes/bulkUpdateStatus",
        json={"overtime_ids": [mine["id"], other["id"], 999], "status": "rejected"},
        headers=sewing_mgr,
    )
    body = response.json()
    assert body["success_count"] == 1
    assert set(body["failed"]) == {str(other["id"]), "999"}

    listing = await client.get("/overtimes", params={"status": "rejected"}, headers=admin)
    assert [row["id"] for row in listing.json()["data"]] == [mine["id"]]


@pytest.mark.asyncio
async def test_end_before_start_is_rejected(client: AsyncClient, headers, employees) -> None:
    response = await client.post(
        "/overtimes",
        json={
            "employee_id": employees[0].id,
            "date": "2024-05-10",
            "start_time": "2024-05-10T20:00:00",
            "end_time": "2024-05-10T18:00:00",
        },
        headers=headers,
    )
    assert response.status_code == 422
    assert "end_time" in response.json()["errors"]
