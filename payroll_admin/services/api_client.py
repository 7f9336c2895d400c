"""
HTTP API client for talking to the payroll backend.

Usage pattern:

    from payroll_admin.config import load_config
    from payroll_admin.services.api_client import APIClient

    client = APIClient(load_config())
    await client.login("admin", "secret")
    page = await client.list_deductions(cutoff="1st", month=5, year=2024)

Every failure is raised as one of the `APIError` subclasses below so callers
can turn it into a banner with `describe_error()`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import ClientConfig

logger = logging.getLogger(__name__)

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
ORG_KINDS = ("departments", "lines", "sections")
SHEET_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


# -----------------------------
# Error types
# -----------------------------


class APIError(Exception):
    """Generic API error."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(APIError):
    """The request never got a response."""


class RequestTimeout(NetworkError):
    """The request got no response within the configured timeout."""


class AuthError(APIError):
    """Authentication error (HTTP 401)."""


class PermissionDenied(APIError):
    """HTTP 403."""


class NotFoundError(APIError):
    """HTTP 404."""


class ValidationFailed(APIError):
    """HTTP 422 with a per-field error map."""

    def __init__(
        self,
        message: str,
        errors: Optional[Dict[str, List[str]]] = None,
        status_code: int = 422,
    ) -> None:
        super().__init__(message, status_code)
        self.errors = errors or {}

    def first_error(self, name: str) -> Optional[str]:
        messages = self.errors.get(name) or []
        return messages[0] if messages else None


class ServerError(APIError):
    """HTTP 5xx."""


DEFAULT_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

_MESSAGES = (
    (RequestTimeout, "The server took too long to respond. Please try again."),
    (NetworkError, "No response from server. Please check your connection."),
    (AuthError, "Your session has expired. Please sign in again."),
    (PermissionDenied, "You do not have permission to perform this action."),
    (NotFoundError, "The requested record was not found."),
    (ServerError, "Server error. Please try again later."),
    (TimeoutError, "The request took too long and was cancelled. Please try again."),
)


def describe_error(exc: BaseException) -> str:
    """Map an exception to the message shown to the user."""

    for kind, message in _MESSAGES:
        if isinstance(exc, kind):
            return message
    if isinstance(exc, ValidationFailed) and exc.message in ("", "Validation failed"):
        # the generic envelope message says nothing; show the first field error
        for messages in exc.errors.values():
            if messages:
                return messages[0]
    if isinstance(exc, APIError) and exc.message:
        return exc.message
    return DEFAULT_ERROR_MESSAGE


# -----------------------------
# Pagination
# -----------------------------


@dataclass
class Page:
    data: List[Any]
    current_page: int = 1
    last_page: int = 1
    total: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)


def parse_page(payload: Any) -> Page:
    """Read the `{data, current_page, last_page, total}` envelope or a bare list."""

    if isinstance(payload, list):
        return Page(data=payload, total=len(payload))
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        data = payload["data"]
        extra = {
            k: v
            for k, v in payload.items()
            if k not in ("data", "current_page", "last_page", "total", "per_page")
        }
        return Page(
            data=data,
            current_page=int(payload.get("current_page") or 1),
            last_page=int(payload.get("last_page") or 1),
            total=int(payload.get("total", len(data)) or 0),
            extra=extra,
        )
    raise APIError("Unexpected list payload from server")


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, date) else value


def _clean(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _iso(v) for k, v in params.items() if v is not None and v != ""}


# -----------------------------
# Main API client
# -----------------------------


class APIClient:
    """Async HTTP client bound to one `ClientConfig`."""

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self.profile: Dict[str, Any] = {}
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ---------- Internal helpers ----------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    def _headers(self, method: str) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        if method in MUTATING_METHODS and self.config.csrf_token:
            headers["X-CSRF-TOKEN"] = self.config.csrf_token
        return headers

    @staticmethod
    def _error_for(resp: httpx.Response) -> APIError:
        try:
            body = resp.json()
        except ValueError:
            body = None

        message = ""
        errors: Dict[str, List[str]] = {}
        if isinstance(body, dict):
            message = body.get("message") or ""
            detail = body.get("detail")
            if not message and isinstance(detail, str):
                message = detail
            if isinstance(body.get("errors"), dict):
                errors = {k: list(v) if isinstance(v, list) else [str(v)] for k, v in body["errors"].items()}
        if not message:
            message = resp.text or resp.reason_phrase

        code = resp.status_code
        if code == 401:
            return AuthError(message, code)
        if code == 403:
            return PermissionDenied(message, code)
        if code == 404:
            return NotFoundError(message, code)
        if code == 422:
            return ValidationFailed(message, errors)
        if code >= 500:
            return ServerError(message, code)
        return APIError(message, code)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        request_headers = self._headers(method)
        if headers:
            request_headers.update(headers)
        try:
            resp = await client.request(
                method,
                path,
                params=_clean(params or {}),
                json=json,
                content=content,
                headers=request_headers,
            )
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out after %ss", method, path, self.config.timeout)
            raise RequestTimeout(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed without a response: %s", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if resp.is_error:
            error = self._error_for(resp)
            logger.warning("%s %s failed with %s: %s", method, path, resp.status_code, error.message)
            raise error
        return resp

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._request(method, path, **kwargs)
        try:
            return resp.json()
        except ValueError as exc:
            raise APIError(f"{method} {path} returned invalid JSON", resp.status_code) from exc

    async def _page(self, path: str, **params: Any) -> Page:
        return parse_page(await self._json("GET", path, params=params))

    async def _list(self, path: str, **params: Any) -> List[Dict[str, Any]]:
        return parse_page(await self._json("GET", path, params=params)).data

    # ---------- Public methods ----------

    async def close(self) -> None:
        """Close underlying HTTP connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def health(self) -> Dict[str, Any]:
        return await self._json("GET", "/health")

    # ---- Authentication ----

    async def login(self, username: str, password: str) -> ClientConfig:
        """
        Call /auth/login and keep the issued bearer and CSRF tokens.

        Returns the updated configuration so the caller can persist it.
        """
        data = await self._json("POST", "/auth/login", json={"username": username, "password": password})
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise APIError("Login did not return access_token")
        self.config = self.config.with_session(token, data.get("csrf_token"))
        self.profile = data.get("user") or {}
        logger.info("Signed in as %s", username)
        return self.config

    # ---- Employees ----

    async def list_employees(self) -> List[Dict[str, Any]]:
        return await self._list("/employees/")

    async def list_employee_defaults(self, search: str = "", page: int = 1) -> Page:
        """GET /api/employee-defaults: employees with their current benefit."""
        return await self._page("/api/employee-defaults", search=search, page=page)

    # ---- Benefits ----

    async def store_benefit(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("POST", "/benefits", json={k: _iso(v) for k, v in payload.items()})

    async def update_benefit_field(self, benefit_id: int, field_name: str, value: Optional[float]) -> Dict[str, Any]:
        return await self._json(
            "PATCH", f"/benefits/{benefit_id}/field", json={"field": field_name, "value": value}
        )

    async def post_benefit(self, benefit_id: int) -> Dict[str, Any]:
        return await self._json("POST", f"/benefits/{benefit_id}/post")

    async def set_default_benefit(self, benefit_id: int) -> Dict[str, Any]:
        return await self._json("POST", f"/benefits/{benefit_id}/set-default")

    async def bulk_post_benefits(self, benefit_ids: Iterable[int]) -> Dict[str, Any]:
        return await self._json("POST", "/benefits/bulk-post", json={"benefit_ids": list(benefit_ids)})

    async def bulk_set_default_benefits(self, benefit_ids: Iterable[int]) -> Dict[str, Any]:
        return await self._json("POST", "/benefits/bulk-set-default", json={"benefit_ids": list(benefit_ids)})

    # ---- Deductions ----

    async def list_deductions(
        self,
        cutoff: str = "1st",
        month: Optional[int] = None,
        year: Optional[int] = None,
        search: str = "",
        page: int = 1,
    ) -> Page:
        return await self._page(
            "/deductions", cutoff=cutoff, month=month, year=year, search=search, page=page
        )

    async def update_deduction_field(
        self, deduction_id: int, field_name: str, value: Optional[float]
    ) -> Dict[str, Any]:
        return await self._json(
            "PATCH", f"/deductions/{deduction_id}/field", json={"field": field_name, "value": value}
        )

    async def create_deduction_from_default(
        self, employee_id: int, cutoff: str, record_date: date
    ) -> Dict[str, Any]:
        return await self._json(
            "POST",
            "/deductions/create-from-default",
            json={"employee_id": employee_id, "cutoff": cutoff, "date": _iso(record_date)},
        )

    async def post_deduction(self, deduction_id: int) -> Dict[str, Any]:
        return await self._json("POST", f"/deductions/{deduction_id}/post")

    async def set_default_deduction(self, deduction_id: int) -> Dict[str, Any]:
        return await self._json("POST", f"/deductions/{deduction_id}/set-default")

    async def bulk_post_deductions(self, deduction_ids: Iterable[int]) -> Dict[str, Any]:
        return await self._json("POST", "/deductions/bulk-post", json={"deduction_ids": list(deduction_ids)})

    async def bulk_set_default_deductions(self, deduction_ids: Iterable[int]) -> Dict[str, Any]:
        return await self._json(
            "POST", "/deductions/bulk-set-default", json={"deduction_ids": list(deduction_ids)}
        )

    async def post_all_deductions(self, cutoff: str, start_date: date, end_date: date) -> Dict[str, Any]:
        return await self._json(
            "POST",
            "/deductions/post-all",
            json={"cutoff": cutoff, "start_date": _iso(start_date), "end_date": _iso(end_date)},
        )

    async def delete_all_not_posted(self, cutoff: str, start_date: date, end_date: date) -> Dict[str, Any]:
        return await self._json(
            "POST",
            "/deductions/delete-all-not-posted",
            json={"cutoff": cutoff, "start_date": _iso(start_date), "end_date": _iso(end_date)},
        )

    async def bulk_create_deductions(self, cutoff: str, record_date: date) -> Dict[str, Any]:
        return await self._json(
            "POST", "/deductions/bulk-create", json={"cutoff": cutoff, "date": _iso(record_date)}
        )

    async def import_deductions(
        self, content: bytes, cutoff: str, record_date: date, fmt: str = "csv"
    ) -> Dict[str, Any]:
        """POST the raw CSV or xlsx file to /deductions/import."""
        return await self._json(
            "POST",
            "/deductions/import",
            params={"cutoff": cutoff, "date": record_date},
            content=content,
            headers={"Content-Type": SHEET_TYPES[fmt]},
        )

    async def export_deductions(
        self,
        cutoff: str = "1st",
        month: Optional[int] = None,
        year: Optional[int] = None,
        search: str = "",
        fmt: str = "csv",
    ) -> bytes:
        resp = await self._request(
            "GET",
            "/deductions/export",
            params={"cutoff": cutoff, "month": month, "year": year, "search": search, "format": fmt},
        )
        return resp.content

    async def download_deduction_template(self, fmt: str = "csv") -> bytes:
        resp = await self._request("GET", "/deductions/template/download", params={"format": fmt})
        return resp.content

    # ---- Org chart ----

    @staticmethod
    def _org_path(kind: str) -> str:
        if kind not in ORG_KINDS:
            raise ValueError(f"Unknown org chart entity: {kind}")
        return f"/{kind}"

    async def list_org_units(self, kind: str, **filters: Any) -> List[Dict[str, Any]]:
        return await self._list(self._org_path(kind), **filters)

    async def create_org_unit(self, kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("POST", self._org_path(kind), json=payload)

    async def update_org_unit(self, kind: str, unit_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("PUT", f"{self._org_path(kind)}/{unit_id}", json=payload)

    async def delete_org_unit(self, kind: str, unit_id: int) -> Dict[str, Any]:
        return await self._json("DELETE", f"{self._org_path(kind)}/{unit_id}")

    async def toggle_org_unit(self, kind: str, unit_id: int) -> Dict[str, Any]:
        return await self._json("PATCH", f"{self._org_path(kind)}/{unit_id}/toggle-active")

    # ---- Overtime ----

    async def list_overtimes(self, page: int = 1, **filters: Any) -> Page:
        return await self._page("/overtimes", page=page, **filters)

    async def create_overtime(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("POST", "/overtimes", json={k: _iso(v) for k, v in payload.items()})

    async def update_overtime_status(
        self, overtime_id: int, status: str, remarks: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._json(
            "POST", f"/overtimes/{overtime_id}/status", json={"status": status, "remarks": remarks}
        )

    async def update_status(self, overtime_id: int, status: str, remarks: Optional[str] = None) -> Dict[str, Any]:
        """POST /overtimes/updateStatus, the id-in-body form used by dashboards."""
        return await self._json(
            "POST", "/overtimes/updateStatus", json={"id": overtime_id, "status": status, "remarks": remarks}
        )

    async def bulk_update_overtime_status(
        self, overtime_ids: Iterable[int], status: str, remarks: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self._json(
            "POST",
            "/overtimes/bulkUpdateStatus",
            json={"overtime_ids": list(overtime_ids), "status": status, "remarks": remarks},
        )

    # ---- Payroll summaries ----

    async def list_payroll_summaries(self, page: int = 1, **filters: Any) -> Page:
        return await self._page("/api/comprehensive-payroll-summaries/list", page=page, **filters)

    async def summaries_available_for_final(self, **filters: Any) -> List[Dict[str, Any]]:
        return await self._list("/api/comprehensive-payroll-summaries/available-for-final-payroll", **filters)

    async def update_payroll_summary(self, summary_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("PUT", f"/api/comprehensive-payroll-summaries/{summary_id}", json=payload)

    async def summary_benefits_details(self, summary_id: int) -> List[Dict[str, Any]]:
        return await self._list(f"/api/comprehensive-payroll-summaries/{summary_id}/benefits-details")

    async def summary_deductions_details(self, summary_id: int) -> List[Dict[str, Any]]:
        return await self._list(f"/api/comprehensive-payroll-summaries/{summary_id}/deductions-details")

    # ---- Final payrolls ----

    async def list_final_payrolls(self, page: int = 1, **filters: Any) -> Page:
        return await self._page("/final-payrolls", page=page, **filters)

    async def get_final_payroll(self, final_id: int) -> Dict[str, Any]:
        return await self._json("GET", f"/final-payrolls/{final_id}")

    async def calculation_breakdown(self, final_id: int) -> Dict[str, Any]:
        body = await self._json("GET", f"/final-payrolls/{final_id}/calculation-breakdown")
        return body.get("data", body) if isinstance(body, dict) else body

    async def available_summaries(self, **filters: Any) -> List[Dict[str, Any]]:
        return await self._list("/final-payrolls/available-summaries", **filters)

    async def generate_from_summaries(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("POST", "/final-payrolls/generate-from-summaries", json=payload)

    async def approve_final_payroll(self, final_id: int, remarks: Optional[str] = None) -> Dict[str, Any]:
        return await self._json(
            "POST", f"/final-payrolls/{final_id}/approve", json={"approval_remarks": remarks}
        )

    async def reject_final_payroll(self, final_id: int, remarks: str) -> Dict[str, Any]:
        return await self._json(
            "POST", f"/final-payrolls/{final_id}/reject", json={"approval_remarks": remarks}
        )

    async def finalize_final_payroll(self, final_id: int) -> Dict[str, Any]:
        return await self._json("POST", f"/final-payrolls/{final_id}/finalize")

    async def mark_final_payroll_paid(self, final_id: int) -> Dict[str, Any]:
        return await self._json("POST", f"/final-payrolls/{final_id}/mark-paid")

    async def delete_final_payroll(self, final_id: int) -> Dict[str, Any]:
        return await self._json("DELETE", f"/final-payrolls/{final_id}")
