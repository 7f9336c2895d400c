"""Test fixtures for the backend."""
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

test_db_path = Path(tempfile.gettempdir()) / "payroll_api_test.db"
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{test_db_path}")
os.environ.setdefault("SECRET_KEY", "test-secret")

from payroll_api import models  # noqa: E402
from payroll_api.database import AsyncSessionLocal, engine  # noqa: E402
from payroll_api.main import app  # noqa: E402

Login = Callable[..., Awaitable[dict[str, str]]]


@pytest_asyncio.fixture
async def database() -> None:
    """Create the schema for one test and drop it afterwards."""

    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.drop_all)
    await engine.dispose()
    if test_db_path.exists():
        test_db_path.unlink()


@pytest_asyncio.fixture
async def client(database) -> AsyncClient:
    """Provide an HTTP client for integration tests."""

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def login(client: AsyncClient) -> Login:
    """Register a user and return bearer + CSRF headers for it."""

    async def _login(username: str = "admin", role: str = "superadmin", department: str = "") -> dict[str, str]:
        payload = {"username": username, "password": "secret123", "role": role, "department": department}
        response = await client.post("/auth/register", json=payload)
        assert response.status_code == 201, response.text
        response = await client.post(
            "/auth/login", json={"username": username, "password": "secret123"}
        )
        assert response.status_code == 200, response.text
        body = response.json()
        return {
            "Authorization": f"Bearer {body['access_token']}",
            "X-CSRF-TOKEN": body["csrf_token"],
        }

    return _login


@pytest_asyncio.fixture
async def headers(login: Login) -> dict[str, str]:
    return await login()


@pytest_asyncio.fixture
async def employees(database) -> list[models.Employee]:
    """Three active employees and one resigned one."""

    rows = [
        models.Employee(idno="E001", first_name="Ana", last_name="Reyes", department="Sewing"),
        models.Employee(idno="E002", first_name="Ben", last_name="Cruz", department="Cutting"),
        models.Employee(idno="E003", first_name="Cara", last_name="Diaz", department="Sewing"),
        models.Employee(
            idno="E004", first_name="Dan", last_name="Lopez", department="Sewing", job_status="Resigned"
        ),
    ]
    async with AsyncSessionLocal() as session:
        session.add_all(rows)
        await session.commit()
    return rows


@pytest.fixture
def add_rows(database) -> Callable[..., Awaitable[list]]:
    """Insert arbitrary ORM rows directly, bypassing the API."""

    async def _add(*rows):
        async with AsyncSessionLocal() as session:
            session.add_all(rows)
            await session.commit()
        return list(rows)

    return _add
