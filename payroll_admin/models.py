"""View models for the payloads the backend returns."""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

DEDUCTION_FIELDS: Tuple[str, ...] = (
    "advance",
    "charge_store",
    "charge",
    "meals",
    "miscellaneous",
    "other_deductions",
)
BENEFIT_FIELDS: Tuple[str, ...] = (
    "allowances",
    "mf_shares",
    "mf_loan",
    "sss_loan",
    "sss_prem",
    "hmdf_loan",
    "hmdf_prem",
    "philhealth",
)

FIELD_LABELS: Dict[str, str] = {
    "advance": "Advance",
    "charge_store": "Charge Store",
    "charge": "Charge",
    "meals": "Meals",
    "miscellaneous": "Miscellaneous",
    "other_deductions": "Other Deductions",
    "allowances": "Allowances",
    "mf_shares": "MF Shares",
    "mf_loan": "MF Loan",
    "sss_loan": "SSS Loan",
    "sss_prem": "SSS Premium",
    "hmdf_loan": "HMDF Loan",
    "hmdf_prem": "HMDF Premium",
    "philhealth": "PhilHealth",
}


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Record(_Model):
    """A deduction or benefit row. Posted records are immutable."""

    id: int
    employee_id: int
    cutoff: str = "1st"
    date: Optional[dt.date] = None
    date_posted: Optional[dt.date] = None
    is_posted: bool = False
    is_default: bool = False
    total: float = 0.0

    def amount(self, field: str) -> float:
        return float(getattr(self, field, 0.0) or 0.0)


class DeductionRecord(Record):
    advance: float = 0.0
    charge_store: float = 0.0
    charge: float = 0.0
    meals: float = 0.0
    miscellaneous: float = 0.0
    other_deductions: float = 0.0

    @field_validator(*DEDUCTION_FIELDS, mode="before")
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class BenefitRecord(Record):
    allowances: float = 0.0
    mf_shares: float = 0.0
    mf_loan: float = 0.0
    sss_loan: float = 0.0
    sss_prem: float = 0.0
    hmdf_loan: float = 0.0
    hmdf_prem: float = 0.0
    philhealth: float = 0.0

    @field_validator(*BENEFIT_FIELDS, mode="before")
    @classmethod
    def _none_is_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value


class Employee(_Model):
    id: int
    idno: str = ""
    first_name: str = ""
    last_name: str = ""
    middle_name: str = ""
    department: str = ""
    job_status: str = "Active"
    display_name: str = ""

    @field_validator("idno", "first_name", "last_name", "middle_name", "department", mode="before")
    @classmethod
    def _none_is_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="before")
    @classmethod
    def _fill_display_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("display_name"):
            parts = [data.get(key) or "" for key in ("last_name", "first_name", "middle_name")]
            name = f"{parts[0]}, {parts[1]} {parts[2]}"
            data = {**data, "display_name": name.strip(" ,")}
        return data


def _first_of_legacy_list(data: Any, current: str, legacy: str) -> Any:
    # older payloads ship the active record as element 0 of a list
    if isinstance(data, dict) and current not in data and isinstance(data.get(legacy), list):
        data = dict(data)
        items = data.pop(legacy)
        data[current] = items[0] if items else None
    return data


class EmployeeDeductions(Employee):
    current_deduction: Optional[DeductionRecord] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_deductions(cls, data: Any) -> Any:
        return _first_of_legacy_list(data, "current_deduction", "deductions")


class EmployeeBenefits(Employee):
    current_benefit: Optional[BenefitRecord] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_benefits(cls, data: Any) -> Any:
        return _first_of_legacy_list(data, "current_benefit", "benefits")


# ---------- org chart ----------


class Department(_Model):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    is_active: bool = True


class Line(Department):
    department_id: int
    department_name: Optional[str] = None


class Section(Department):
    line_id: int
    line_name: Optional[str] = None
    department_id: Optional[int] = None


# ---------- overtime ----------


class Overtime(_Model):
    id: int
    employee_id: int
    date: dt.date
    start_time: dt.datetime
    end_time: dt.datetime
    total_hours: float = 0.0
    rate: float = 1.25
    reason: str = ""
    status: str = "pending"
    dept_approved_by: Optional[int] = None
    dept_remarks: Optional[str] = None
    hrd_approved_by: Optional[int] = None
    hrd_remarks: Optional[str] = None


# ---------- payroll ----------


class PayrollSummary(_Model):
    id: int
    employee_id: int
    employee_no: str = ""
    employee_name: str = ""
    department: str = ""
    year: int
    month: int
    period_type: str
    status: str = "draft"
    basic_pay: float = 0.0
    overtime_pay: float = 0.0
    allowances: float = 0.0
    total_benefits: float = 0.0
    total_deductions: float = 0.0
    gross_pay: float = 0.0
    net_pay: float = 0.0
    notes: Optional[str] = None

    @property
    def is_locked(self) -> bool:
        return self.status == "locked"


class FinalPayroll(PayrollSummary):
    payroll_summary_id: Optional[int] = None
    approval_status: str = "pending"
    approval_remarks: Optional[str] = None
    approved_at: Optional[dt.datetime] = None
    finalized_at: Optional[dt.datetime] = None
    paid_at: Optional[dt.datetime] = None

    @property
    def is_locked(self) -> bool:
        return self.status in ("finalized", "paid")
