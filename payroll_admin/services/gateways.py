"""
The backend calls a grid needs, one implementation per record type.

A grid controller only talks to a ``RecordGateway``; which endpoints sit
behind it is decided here.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

from ..models import BENEFIT_FIELDS, DEDUCTION_FIELDS, BenefitRecord, DeductionRecord, Record
from .api_client import APIClient


class RecordGateway(Protocol):
    fields: Tuple[str, ...]

    async def update_field(self, record_id: int, field: str, value: Optional[float]) -> Record:
        ...

    async def create_record(self, employee_id: int) -> Record:
        ...

    async def bulk_post(self, record_ids: Iterable[int]) -> Dict[str, Any]:
        ...

    async def bulk_set_default(self, record_ids: Iterable[int]) -> Dict[str, Any]:
        ...


class DeductionGateway:
    """Deductions for one cutoff; new records are copied from the default template."""

    fields = DEDUCTION_FIELDS

    def __init__(self, client: APIClient, cutoff: str, record_date: date) -> None:
        self.client = client
        self.cutoff = cutoff
        self.record_date = record_date

    async def update_field(self, record_id: int, field: str, value: Optional[float]) -> DeductionRecord:
        data = await self.client.update_deduction_field(record_id, field, value)
        return DeductionRecord.model_validate(data)

    async def create_record(self, employee_id: int) -> DeductionRecord:
        data = await self.client.create_deduction_from_default(employee_id, self.cutoff, self.record_date)
        return DeductionRecord.model_validate(data)

    async def bulk_post(self, record_ids: Iterable[int]) -> Dict[str, Any]:
        return await self.client.bulk_post_deductions(record_ids)

    async def bulk_set_default(self, record_ids: Iterable[int]) -> Dict[str, Any]:
        return await self.client.bulk_set_default_deductions(record_ids)


class BenefitDefaultsGateway:
    """Default benefit templates; created empty as a 1st cutoff default."""

    fields = BENEFIT_FIELDS

    def __init__(self, client: APIClient, record_date: Optional[date] = None) -> None:
        self.client = client
        self.record_date = record_date or date.today()

    async def update_field(self, record_id: int, field: str, value: Optional[float]) -> BenefitRecord:
        data = await self.client.update_benefit_field(record_id, field, value)
        return BenefitRecord.model_validate(data)

    async def create_record(self, employee_id: int) -> BenefitRecord:
        payload = {
            "employee_id": employee_id,
            "cutoff": "1st",
            "date": self.record_date,
            "is_default": True,
            **{name: 0 for name in self.fields},
        }
        return BenefitRecord.model_validate(await self.client.store_benefit(payload))

    async def bulk_post(self, record_ids: Iterable[int]) -> Dict[str, Any]:
        return await self.client.bulk_post_benefits(record_ids)

    async def bulk_set_default(self, record_ids: Iterable[int]) -> Dict[str, Any]:
        return await self.client.bulk_set_default_benefits(record_ids)
