"""Payroll summaries and final payrolls."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.notifications import Notifier
from ..models import BenefitRecord, DeductionRecord, FinalPayroll, PayrollSummary
from ..services.api_client import APIClient
from .base import PageModel, message_of


def is_read_only(entity: Union[PayrollSummary, FinalPayroll]) -> bool:
    """Locked summaries and finalized or paid payrolls can no longer change."""
    return entity.is_locked


class PayrollPages(PageModel):
    def __init__(self, client: APIClient, notifier: Optional[Notifier] = None) -> None:
        super().__init__(client, notifier)
        self.filters: Dict[str, Any] = {}
        self.summaries: List[PayrollSummary] = []
        self.summary_page = 1
        self.summary_last_page = 1
        self.finals: List[FinalPayroll] = []
        self.final_page = 1
        self.final_last_page = 1
        self.available: List[PayrollSummary] = []
        self.detail: Optional[FinalPayroll] = None
        self.breakdown: Dict[str, Any] = {}

    def set_filters(self, **filters: Any) -> None:
        """year, month, period_type, department, status, approval_status, search."""
        self.filters = {k: v for k, v in {**self.filters, **filters}.items() if v not in (None, "")}
        self.summary_page = self.final_page = 1

    async def load(self) -> bool:
        """Refresh summaries, final payrolls and the summaries still open for generation."""
        summaries = await self.load_summaries()
        finals = await self.load_finals()
        available = await self.load_available()
        return summaries and finals and available

    # ---------- summaries ----------

    async def load_summaries(self, page: Optional[int] = None) -> bool:
        if page is not None:
            self.summary_page = max(1, page)
        filters = {k: v for k, v in self.filters.items() if k != "approval_status"}
        result = await self._call(
            lambda: self.client.list_payroll_summaries(page=self.summary_page, **filters)
        )
        if result is None:
            return False
        self.summaries = [PayrollSummary.model_validate(s) for s in result.data]
        self.summary_page, self.summary_last_page = result.current_page, result.last_page
        return True

    async def update_summary(self, summary: PayrollSummary, changes: Dict[str, Any]) -> Optional[PayrollSummary]:
        if is_read_only(summary):
            self.notifier.show("This payroll summary is locked and cannot be edited.", "error")
            return None
        data = await self._call(
            lambda: self.client.update_payroll_summary(summary.id, changes),
            "Payroll summary updated successfully.",
        )
        if data is None:
            return None
        updated = PayrollSummary.model_validate(data)
        self.summaries = [updated if s.id == updated.id else s for s in self.summaries]
        return updated

    async def summary_details(self, summary_id: int) -> Optional[Dict[str, list]]:
        async def fetch() -> Dict[str, list]:
            benefits = await self.client.summary_benefits_details(summary_id)
            deductions = await self.client.summary_deductions_details(summary_id)
            return {
                "benefits": [BenefitRecord.model_validate(b) for b in benefits],
                "deductions": [DeductionRecord.model_validate(d) for d in deductions],
            }

        return await self._call(fetch)

    # ---------- final payrolls ----------

    async def load_finals(self, page: Optional[int] = None) -> bool:
        if page is not None:
            self.final_page = max(1, page)
        result = await self._call(
            lambda: self.client.list_final_payrolls(page=self.final_page, **self.filters)
        )
        if result is None:
            return False
        self.finals = [FinalPayroll.model_validate(f) for f in result.data]
        self.final_page, self.final_last_page = result.current_page, result.last_page
        return True

    async def load_available(self) -> bool:
        filters = {k: self.filters[k] for k in ("year", "month", "period_type", "department") if k in self.filters}
        result = await self._call(lambda: self.client.available_summaries(**filters))
        if result is None:
            return False
        self.available = [PayrollSummary.model_validate(s) for s in result]
        return True

    async def show_final(self, final_id: int) -> Optional[FinalPayroll]:
        async def fetch() -> tuple:
            final = await self.client.get_final_payroll(final_id)
            breakdown = await self.client.calculation_breakdown(final_id)
            return final, breakdown

        result = await self._call(fetch)
        if result is None:
            return None
        self.detail = FinalPayroll.model_validate(result[0])
        self.breakdown = result[1] or {}
        return self.detail

    async def generate(
        self,
        summary_ids: Iterable[int],
        year: int,
        month: int,
        force_regenerate: bool = False,
        auto_approve: bool = False,
        **options: Any,
    ) -> Optional[Dict[str, Any]]:
        ids = list(summary_ids)
        if not ids:
            self.notifier.show("Select at least one payroll summary.", "error")
            return None
        payload = {
            "summary_ids": ids,
            "year": year,
            "month": month,
            "force_regenerate": force_regenerate,
            "auto_approve": auto_approve,
            **options,
        }
        result = await self._call(lambda: self.client.generate_from_summaries(payload), message_of)
        if result is not None:
            await self.load_available()
            await self.load_finals()
        return result

    async def _transition(self, call, message: str) -> Optional[FinalPayroll]:
        data = await self._call(call, message)
        if data is None:
            return None
        updated = FinalPayroll.model_validate(data)
        self.finals = [updated if f.id == updated.id else f for f in self.finals]
        if self.detail is not None and self.detail.id == updated.id:
            self.detail = updated
        return updated

    async def approve(self, final: FinalPayroll, remarks: Optional[str] = None) -> Optional[FinalPayroll]:
        return await self._transition(
            lambda: self.client.approve_final_payroll(final.id, remarks), "Payroll approved successfully"
        )

    async def reject(self, final: FinalPayroll, remarks: str) -> Optional[FinalPayroll]:
        if not (remarks or "").strip():
            self.notifier.show("Remarks are required when rejecting a payroll.", "error")
            return None
        return await self._transition(
            lambda: self.client.reject_final_payroll(final.id, remarks), "Payroll rejected successfully"
        )

    async def finalize(self, final: FinalPayroll) -> Optional[FinalPayroll]:
        return await self._transition(
            lambda: self.client.finalize_final_payroll(final.id), "Payroll finalized successfully"
        )

    async def mark_paid(self, final: FinalPayroll) -> Optional[FinalPayroll]:
        return await self._transition(
            lambda: self.client.mark_final_payroll_paid(final.id), "Payroll marked as paid successfully"
        )

    async def delete(self, final: FinalPayroll) -> bool:
        if final.status != "draft":
            self.notifier.show("Only draft payrolls can be deleted", "error")
            return False
        result = await self._call(lambda: self.client.delete_final_payroll(final.id), message_of)
        if result is None:
            return False
        self.finals = [f for f in self.finals if f.id != final.id]
        return True
