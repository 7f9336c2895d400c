"""Benefit defaults screen: the template each employee's benefits start from."""

from __future__ import annotations

from typing import Optional

from ..core.notifications import Notifier
from ..grid.controller import GridController, GridRow
from ..models import EmployeeBenefits
from ..services.api_client import APIClient
from ..services.gateways import BenefitDefaultsGateway
from .base import PageModel


class EmployeeDefaultsPage(PageModel):
    def __init__(self, client: APIClient, notifier: Optional[Notifier] = None) -> None:
        super().__init__(client, notifier)
        self.search = ""
        self.page = 1
        self.last_page = 1
        self.total = 0
        self.gateway = BenefitDefaultsGateway(client)
        self.grid = GridController(self.gateway, notifier=self.notifier)

    def set_search(self, search: str) -> None:
        if search != self.search:
            self.search = search
            self.page = 1

    async def load(self, page: Optional[int] = None) -> bool:
        if page is not None:
            self.page = max(1, page)
        result = await self._call(lambda: self.client.list_employee_defaults(self.search, self.page))
        if result is None:
            return False
        rows = []
        for item in result.data:
            employee = EmployeeBenefits.model_validate(item)
            rows.append(GridRow(employee, employee.current_benefit))
        self.grid.replace_rows(rows)
        self.page = result.current_page
        self.last_page = result.last_page
        self.total = result.total
        return True

    async def next_page(self) -> bool:
        if self.page >= self.last_page:
            return False
        return await self.load(self.page + 1)

    async def previous_page(self) -> bool:
        if self.page <= 1:
            return False
        return await self.load(self.page - 1)
