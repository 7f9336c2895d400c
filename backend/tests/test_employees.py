"""Integration tests for auth and the employee API."""
from datetime import date

import pytest
from httpx import AsyncClient

from payroll_api.models import Benefit


@pytest.mark.asyncio
async def test_register_login_and_employee_flow(client: AsyncClient) -> None:
    """A user can register, log in, create an employee, and list employees."""

    register_payload = {
        "username": "owner",
        "password": "secret123",
        "email": "owner@example.com",
        "role": "hrd_manager",
    }
    response = await client.post("/auth/register", json=register_payload)
    assert response.status_code == 201
    assert response.json()["role"] == "hrd_manager"

    login_response = await client.post(
        "/auth/login", json={"username": "owner", "password": "secret123"}
    )
    assert login_response.status_code == 200
    body = login_response.json()
    headers = {
        "Authorization": f"Bearer {body['access_token']}",
        "X-CSRF-TOKEN": body["csrf_token"],
    }

    employee_payload = {
        "idno": "E-001",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "department": "R&D",
    }
    create_response = await client.post("/employees/", json=employee_payload, headers=headers)
    assert create_response.status_code == 201
    assert create_response.json()["display_name"] == "Lovelace, Ada"

    duplicate = await client.post("/employees/", json=employee_payload, headers=headers)
    assert duplicate.status_code == 409

    list_response = await client.get("/employees/", headers=headers)
    assert list_response.status_code == 200
    employees = list_response.json()
    assert [e["idno"] for e in employees] == ["E-001"]


@pytest.mark.asyncio
async def test_bad_password_is_rejected(client: AsyncClient, login) -> None:
    await login("clerk", role="employee")
    response = await client.post("/auth/login", json={"username": "clerk", "password": "nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_mutations_require_csrf_token(client: AsyncClient, headers) -> None:
    payload = {"idno": "E-9", "first_name": "No", "last_name": "Token"}
    bearer_only = {"Authorization": headers["Authorization"]}

    missing = await client.post("/employees/", json=payload, headers=bearer_only)
    assert missing.status_code == 403

    wrong = await client.post(
        "/employees/", json=payload, headers={**bearer_only, "X-CSRF-TOKEN": "forged"}
    )
    assert wrong.status_code == 403

    anonymous = await client.get("/employees/")
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_employee_defaults_lists_active_employees_with_default_benefit(
    client: AsyncClient, headers, employees, add_rows
) -> None:
    reyes = employees[0]
    await add_rows(
        Benefit(employee_id=reyes.id, cutoff="1st", date=date(2024, 4, 15), is_default=True, sss_prem=450.0),
        Benefit(employee_id=reyes.id, cutoff="1st", date=date(2024, 5, 15), is_default=False, sss_prem=10.0),
    )

    response = await client.get("/api/employee-defaults", headers=headers)
    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 3
    assert page["current_page"] == 1
    rows = {row["idno"]: row for row in page["data"]}
    assert "E004" not in rows
    assert rows["E001"]["current_benefit"]["sss_prem"] == 450.0
    assert rows["E002"]["current_benefit"] is None

    searched = await client.get(
        "/api/employee-defaults", params={"search": "cutting"}, headers=headers
    )
    assert [row["idno"] for row in searched.json()["data"]] == ["E002"]


@pytest.mark.asyncio
async def test_pagination_envelope(client: AsyncClient, headers, employees) -> None:
    response = await client.get(
        "/api/employee-defaults", params={"per_page": 2, "page": 2}, headers=headers
    )
    page = response.json()
    assert page["per_page"] == 2
    assert page["last_page"] == 2
    assert len(page["data"]) == 1
