import datetime as dt
import json

import httpx
import pytest

from payroll_admin.services.api_client import (
    APIError,
    AuthError,
    NetworkError,
    NotFoundError,
    PermissionDenied,
    RequestTimeout,
    ServerError,
    ValidationFailed,
    describe_error,
    parse_page,
)


def test_parse_page_envelope_keeps_extra_keys():
    page = parse_page({
        "data": [{"id": 1}],
        "current_page": 2,
        "last_page": 4,
        "per_page": 50,
        "total": 151,
        "status": {"posted": 3, "pending": 7},
    })
    assert page.data == [{"id": 1}]
    assert (page.current_page, page.last_page, page.total) == (2, 4, 151)
    assert page.extra == {"status": {"posted": 3, "pending": 7}}


def test_parse_page_bare_list_and_garbage():
    assert parse_page([1, 2, 3]).total == 3
    with pytest.raises(APIError):
        parse_page({"items": []})


@pytest.mark.asyncio
async def test_csrf_header_only_on_mutating_requests(make_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": [], "current_page": 1, "last_page": 1, "total": 0})

    async with make_client(handler) as client:
        await client.list_deductions(cutoff="2nd", month=5, year=2024)
        await client.bulk_post_deductions([3, 1])

    get, post = seen
    assert get.headers["Authorization"] == "Bearer tok"
    assert "X-CSRF-TOKEN" not in get.headers
    assert get.url.params["cutoff"] == "2nd"
    assert "search" not in get.url.params
    assert post.headers["X-CSRF-TOKEN"] == "csrf"
    assert json.loads(post.content) == {"deduction_ids": [3, 1]}


@pytest.mark.asyncio
async def test_login_keeps_issued_tokens(make_client):
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.path == "/auth/login":
            return httpx.Response(200, json={
                "access_token": "abc", "csrf_token": "xyz", "token_type": "bearer",
                "user": {"id": 1, "username": "admin", "role": "hrd_manager"},
            })
        return httpx.Response(200, json={"id": 1})

    async with make_client(handler, access_token=None, csrf_token=None) as client:
        config = await client.login("admin", "secret")
        await client.post_deduction(1)

    assert "Authorization" not in seen[0].headers
    assert config.access_token == "abc"
    assert config.is_authenticated
    assert client.profile["role"] == "hrd_manager"
    assert seen[1].headers["Authorization"] == "Bearer abc"
    assert seen[1].headers["X-CSRF-TOKEN"] == "xyz"


@pytest.mark.asyncio
async def test_login_without_token_is_an_error(make_client):
    async with make_client(lambda request: httpx.Response(200, json={})) as client:
        with pytest.raises(APIError):
            await client.login("admin", "secret")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,body,error",
    [
        (401, {"detail": "Not authenticated"}, AuthError),
        (403, {"detail": "Forbidden"}, PermissionDenied),
        (404, {"message": "Deduction not found"}, NotFoundError),
        (500, {"message": "Internal Server Error"}, ServerError),
        (409, {"message": "Cannot edit posted deduction"}, APIError),
    ],
)
async def test_status_codes_map_to_error_types(make_client, status, body, error):
    async with make_client(lambda request: httpx.Response(status, json=body)) as client:
        with pytest.raises(error) as info:
            await client.post_deduction(1)
    assert info.value.status_code == status


@pytest.mark.asyncio
async def test_validation_envelope(make_client):
    body = {"message": "Validation failed", "errors": {"name": ["The name field is required."]}}
    async with make_client(lambda request: httpx.Response(422, json=body)) as client:
        with pytest.raises(ValidationFailed) as info:
            await client.create_org_unit("departments", {"code": "D1"})

    exc = info.value
    assert exc.first_error("name") == "The name field is required."
    assert exc.first_error("code") is None
    assert describe_error(exc) == "The name field is required."


@pytest.mark.asyncio
async def test_transport_failures(make_client):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    def stall(request):
        raise httpx.ReadTimeout("too slow", request=request)

    async with make_client(refuse) as client:
        with pytest.raises(NetworkError) as info:
            await client.health()
    assert not isinstance(info.value, RequestTimeout)
    assert describe_error(info.value) == "No response from server. Please check your connection."

    async with make_client(stall) as client:
        with pytest.raises(RequestTimeout) as info:
            await client.health()
    assert describe_error(info.value) == "The server took too long to respond. Please try again."


def test_describe_error_fallbacks():
    assert describe_error(APIError("Cannot edit posted deduction", 409)) == "Cannot edit posted deduction"
    assert describe_error(TimeoutError()) == "The request took too long and was cancelled. Please try again."
    assert describe_error(KeyError("x")) == "An unexpected error occurred. Please try again."


@pytest.mark.asyncio
async def test_import_sends_raw_csv(make_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"imported": 2, "failed": 0, "errors": []})

    async with make_client(handler) as client:
        result = await client.import_deductions(b"Employee ID,Advance\nE001,10\n", "1st", dt.date(2024, 5, 15))

    request = seen[0]
    assert result["imported"] == 2
    assert request.url.path == "/deductions/import"
    assert request.url.params["date"] == "2024-05-15"
    assert request.headers["Content-Type"] == "text/csv"
    assert request.content.startswith(b"Employee ID")


@pytest.mark.asyncio
async def test_unknown_org_kind_is_refused(make_client):
    async with make_client(lambda request: httpx.Response(200, json=[])) as client:
        with pytest.raises(ValueError):
            await client.list_org_units("teams")


@pytest.mark.asyncio
async def test_breakdown_unwraps_data(make_client):
    body = {"success": True, "data": {"gross_pay": 1000.0}}
    async with make_client(lambda request: httpx.Response(200, json=body)) as client:
        assert await client.calculation_breakdown(4) == {"gross_pay": 1000.0}
