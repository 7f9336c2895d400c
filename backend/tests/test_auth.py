"""Sign-in, token claims and account rules."""
import jwt
import pytest
from httpx import AsyncClient
from sqlalchemy import update

from payroll_api.config import get_settings
from payroll_api.database import AsyncSessionLocal
from payroll_api.models import User


async def _register(client: AsyncClient, **payload) -> dict:
    body = {"username": "mgr", "password": "secret123", **payload}
    response = await client.post("/auth/register", json=body)
    return {"status": response.status_code, "body": response.json()}


@pytest.mark.asyncio
async def test_login_returns_profile_and_signed_claims(client: AsyncClient) -> None:
    created = await _register(client, role="department_manager", department=" Sewing ")
    assert created["status"] == 201
    assert created["body"]["department"] == "Sewing"

    response = await client.post("/auth/login", json={"username": "mgr", "password": "secret123"})
    assert response.status_code == 200
    body = response.json()
    assert body["user"] == {
        "id": created["body"]["id"],
        "username": "mgr",
        "role": "department_manager",
        "department": "Sewing",
        "email": "",
    }

    claims = jwt.decode(body["access_token"], get_settings().secret_key, algorithms=["HS256"])
    assert claims["sub"] == str(created["body"]["id"])
    assert claims["role"] == "department_manager"
    assert claims["exp"] > claims["iat"]


@pytest.mark.asyncio
async def test_department_manager_needs_a_department(client: AsyncClient) -> None:
    created = await _register(client, role="department_manager", department="  ")
    assert created["status"] == 422
    assert "department" in created["body"]["errors"]


@pytest.mark.asyncio
async def test_duplicate_username_is_rejected(client: AsyncClient) -> None:
    assert (await _register(client))["status"] == 201
    assert (await _register(client))["status"] == 400


@pytest.mark.asyncio
async def test_deactivated_account_loses_access(client: AsyncClient, login) -> None:
    headers = await login("temp", role="employee")
    assert (await client.get("/employees/", headers=headers)).status_code == 200

    async with AsyncSessionLocal() as session:
        await session.execute(update(User).where(User.username == "temp").values(is_active=False))
        await session.commit()

    assert (await client.get("/employees/", headers=headers)).status_code == 401
    refused = await client.post("/auth/login", json={"username": "temp", "password": "secret123"})
    assert refused.status_code == 403


@pytest.mark.asyncio
async def test_token_signed_with_another_key_is_rejected(client: AsyncClient, login) -> None:
    headers = await login()
    token = headers["Authorization"].split()[1]
    claims = jwt.decode(token, get_settings().secret_key, algorithms=["HS256"])
    forged = jwt.encode(claims, "not-the-server-key", algorithm="HS256")
    response = await client.get("/employees/", headers={**headers, "Authorization": f"Bearer {forged}"})
    assert response.status_code == 401
