"""Departments, lines and sections."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..core.notifications import Notifier
from ..models import Department, Line, Section
from ..services.api_client import APIClient, APIError, ValidationFailed
from .base import PageModel, message_of

logger = logging.getLogger(__name__)

_LABELS = {"departments": "Department", "lines": "Line", "sections": "Section"}
_MODELS = {"departments": Department, "lines": Line, "sections": Section}


class OrgChartPage(PageModel):
    """
    Listing and forms for the org chart.

    A line may only be filed under an active department and a section under an
    active line. That is checked here before submitting; the backend makes the
    final call and its 422 field errors land in ``form_errors``.
    """

    def __init__(self, client: APIClient, notifier: Optional[Notifier] = None) -> None:
        super().__init__(client, notifier)
        self.departments: List[Department] = []
        self.lines: List[Line] = []
        self.sections: List[Section] = []
        self.form_errors: Dict[str, List[str]] = {}

    async def load(self) -> bool:
        async def fetch() -> Dict[str, list]:
            return {kind: await self.client.list_org_units(kind) for kind in _MODELS}

        result = await self._call(fetch)
        if result is None:
            return False
        self.departments = [Department.model_validate(d) for d in result["departments"]]
        self.lines = [Line.model_validate(d) for d in result["lines"]]
        self.sections = [Section.model_validate(d) for d in result["sections"]]
        return True

    def lines_for(self, department_id: int) -> List[Line]:
        return [line for line in self.lines if line.department_id == department_id]

    def active_departments(self) -> List[Department]:
        return [d for d in self.departments if d.is_active]

    def active_lines(self) -> List[Line]:
        return [line for line in self.lines if line.is_active]

    def validate(self, kind: str, payload: Dict[str, Any]) -> Dict[str, List[str]]:
        errors: Dict[str, List[str]] = {}
        for name in ("name", "code"):
            if not str(payload.get(name) or "").strip():
                errors[name] = [f"The {name} field is required."]
        if kind == "lines":
            active = {d.id for d in self.active_departments()}
            if payload.get("department_id") not in active:
                errors["department_id"] = ["Please select an active department."]
        elif kind == "sections":
            active = {line.id for line in self.active_lines()}
            if payload.get("line_id") not in active:
                errors["line_id"] = ["Please select an active line."]
        return errors

    async def save(self, kind: str, payload: Dict[str, Any], unit_id: Optional[int] = None) -> Optional[Any]:
        """Create (no ``unit_id``) or update an org unit."""
        self.form_errors = self.validate(kind, payload)
        if self.form_errors:
            return None

        label = _LABELS[kind]
        self.loading = True
        try:
            if unit_id is None:
                data = await self.client.create_org_unit(kind, payload)
            else:
                data = await self.client.update_org_unit(kind, unit_id, payload)
        except ValidationFailed as exc:
            self.form_errors = exc.errors
            self.notifier.error(exc)
            return None
        except APIError as exc:
            logger.warning("Saving %s failed: %s", label.lower(), exc)
            self.notifier.error(exc)
            return None
        finally:
            self.loading = False

        action = "created" if unit_id is None else "updated"
        self.notifier.show(f"{label} {action} successfully")
        await self.load()
        return _MODELS[kind].model_validate(data)

    async def delete(self, kind: str, unit_id: int) -> bool:
        result = await self._call(lambda: self.client.delete_org_unit(kind, unit_id), message_of)
        if result is None:
            return False
        await self.load()
        return True

    async def toggle_active(self, kind: str, unit_id: int) -> Optional[bool]:
        result = await self._call(lambda: self.client.toggle_org_unit(kind, unit_id), message_of)
        if result is None:
            return None
        await self.load()
        return bool(result.get("is_active"))
