"""Overtime approval dashboard."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from ..core.notifications import Notifier
from ..models import Overtime
from ..services.api_client import APIClient
from .base import PageModel, message_of

STATUS_LABELS = {
    "pending": "Pending",
    "manager_approved": "Manager Approved",
    "approved": "Approved",
    "rejected": "Rejected",
}


def allowed_transitions(status: str, role: str, own_department: bool = True) -> Tuple[str, ...]:
    """
    Status changes to offer for a request in ``status``.

    Level one (pending) belongs to the department manager of the employee's
    department, level two (manager_approved) to HRD. A superadmin acts at both
    levels and may force-approve anything not yet approved. The backend
    enforces the same rules.
    """
    options: List[str] = []
    if status == "pending" and (role == "superadmin" or (role == "department_manager" and own_department)):
        options += ["manager_approved", "rejected"]
    elif status == "manager_approved" and role in ("hrd_manager", "superadmin"):
        options += ["approved", "rejected"]
    if role == "superadmin" and status != "approved":
        options.append("force_approved")
    return tuple(options)


class OvertimeApprovals(PageModel):
    def __init__(
        self,
        client: APIClient,
        role: str,
        notifier: Optional[Notifier] = None,
    ) -> None:
        super().__init__(client, notifier)
        self.role = role
        self.status_filter: Optional[str] = None
        self.page = 1
        self.last_page = 1
        self.overtimes: List[Overtime] = []
        self.selected: Set[int] = set()

    def transitions_for(self, overtime: Overtime) -> Tuple[str, ...]:
        # department managers are only ever sent their own department's requests
        return allowed_transitions(overtime.status, self.role)

    async def load(self, page: Optional[int] = None) -> bool:
        if page is not None:
            self.page = max(1, page)
        result = await self._call(
            lambda: self.client.list_overtimes(page=self.page, status=self.status_filter)
        )
        if result is None:
            return False
        self.overtimes = [Overtime.model_validate(o) for o in result.data]
        self.page = result.current_page
        self.last_page = result.last_page
        visible = {o.id for o in self.overtimes}
        self.selected &= visible
        return True

    def toggle(self, overtime_id: int) -> None:
        self.selected ^= {overtime_id}

    def _replace(self, data: Dict[str, Any]) -> Overtime:
        updated = Overtime.model_validate(data)
        self.overtimes = [updated if o.id == updated.id else o for o in self.overtimes]
        return updated

    async def update_status(
        self, overtime_id: int, status: str, remarks: Optional[str] = None
    ) -> Optional[Overtime]:
        label = STATUS_LABELS.get(status, "Approved")
        data = await self._call(
            lambda: self.client.update_overtime_status(overtime_id, status, remarks),
            f"Overtime status updated to {label}.",
        )
        return None if data is None else self._replace(data)

    async def bulk_update_status(self, status: str, remarks: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Apply ``status`` to every selected request; only refused ids stay selected."""
        if not self.selected:
            self.notifier.show("No overtime requests selected.", "error")
            return None
        ids = sorted(self.selected)
        result = await self._call(
            lambda: self.client.bulk_update_overtime_status(ids, status, remarks), message_of
        )
        if result is None:
            return None
        self.selected = {int(k) for k in (result.get("failed") or {})}
        await self.load()
        return result
