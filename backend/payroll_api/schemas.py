"""Pydantic schemas used across the backend API."""
from datetime import date, datetime
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, EmailStr, Field

T = TypeVar("T")

Cutoff = Literal["1st", "2nd"]
PeriodType = Literal["1st_half", "2nd_half"]
Amount = Optional[float]

ORM = {"from_attributes": True}


class Page(BaseModel, Generic[T]):
    """Pagination envelope shared by every list endpoint."""

    data: List[T]
    current_page: int
    last_page: int
    per_page: int
    total: int


# ---------- auth ----------


class UserLogin(BaseModel):
    """Credentials supplied during login."""

    username: str
    password: str


class UserCreate(UserLogin):
    """Payload for user registration."""

    email: EmailStr | None = None
    role: Literal["superadmin", "hrd_manager", "department_manager", "employee"] = "employee"
    department: str = ""


class UserRead(BaseModel):
    """Public representation of a user."""

    id: int
    username: str
    role: str
    department: str
    email: str = ""

    model_config = ORM


class Token(BaseModel):
    """Login response; `csrf_token` must accompany mutating requests."""

    access_token: str
    token_type: str = "bearer"
    csrf_token: str
    expires_at: datetime
    user: UserRead


class TokenData(BaseModel):
    sub: str
    username: str
    role: str = "employee"
    department: str = ""


# ---------- employees ----------


class EmployeeBase(BaseModel):
    """Shared properties for employee operations."""

    idno: str
    first_name: str
    last_name: str
    middle_name: str = ""
    suffix: str = ""
    department: str = ""
    job_status: str = "Active"


class EmployeeCreate(EmployeeBase):
    """Employee payload for creation."""


class EmployeeRead(EmployeeBase):
    """Employee representation returned by the API."""

    id: int
    display_name: str

    model_config = ORM


# ---------- deductions / benefits ----------


class RecordRead(BaseModel):
    id: int
    employee_id: int
    cutoff: str
    date: date
    date_posted: date | None = None
    is_posted: bool
    is_default: bool
    total: float

    model_config = ORM


class DeductionRead(RecordRead):
    advance: float
    charge_store: float
    charge: float
    meals: float
    miscellaneous: float
    other_deductions: float


class BenefitRead(RecordRead):
    allowances: float
    mf_shares: float
    mf_loan: float
    sss_loan: float
    sss_prem: float
    hmdf_loan: float
    hmdf_prem: float
    philhealth: float


class EmployeeDeductionRow(EmployeeRead):
    """Grid row: an employee plus the record the grid edits, if any."""

    current_deduction: DeductionRead | None = None


class EmployeeBenefitRow(EmployeeRead):
    current_benefit: BenefitRead | None = None


class StatusCounts(BaseModel):
    all_count: int
    posted_count: int
    pending_count: int


class DeductionGrid(Page[EmployeeDeductionRow]):
    status: StatusCounts
    date_range: dict[str, date]


class FieldUpdate(BaseModel):
    """Single-cell edit; a null value stores zero."""

    field: str
    value: float | None = Field(default=None, ge=0)


class CreateFromDefault(BaseModel):
    employee_id: int
    cutoff: Cutoff
    date: date


class DeductionIds(BaseModel):
    deduction_ids: List[int] = Field(default_factory=list)


class BenefitIds(BaseModel):
    benefit_ids: List[int] = Field(default_factory=list)


class CutoffRange(BaseModel):
    cutoff: Cutoff = "1st"
    start_date: date | None = None
    end_date: date | None = None


class BulkCreate(BaseModel):
    cutoff: Cutoff
    date: date


class BenefitCreate(BaseModel):
    id: int | None = None
    employee_id: int
    cutoff: Cutoff
    date: date
    is_default: bool = False
    allowances: Amount = Field(default=None, ge=0)
    mf_shares: Amount = Field(default=None, ge=0)
    mf_loan: Amount = Field(default=None, ge=0)
    sss_loan: Amount = Field(default=None, ge=0)
    sss_prem: Amount = Field(default=None, ge=0)
    hmdf_loan: Amount = Field(default=None, ge=0)
    hmdf_prem: Amount = Field(default=None, ge=0)
    philhealth: Amount = Field(default=None, ge=0)


class ImportResult(BaseModel):
    message: str
    imported_count: int
    errors: List[str]


# ---------- org chart ----------


class DepartmentWrite(BaseModel):
    name: str = Field(max_length=100)
    code: str = Field(max_length=20)
    description: str | None = None


class DepartmentRead(BaseModel):
    id: int
    code: str
    name: str
    description: str | None = None
    is_active: bool

    model_config = ORM


class LineWrite(DepartmentWrite):
    department_id: int


class LineRead(DepartmentRead):
    department_id: int
    department_name: str | None = None


class SectionWrite(DepartmentWrite):
    line_id: int


class SectionRead(DepartmentRead):
    line_id: int
    line_name: str | None = None
    department_id: int | None = None


class ToggleResult(BaseModel):
    message: str
    is_active: bool


class ListEnvelope(BaseModel, Generic[T]):
    data: List[T]


# ---------- overtime ----------


OvertimeStatus = Literal["manager_approved", "approved", "rejected", "force_approved"]


class OvertimeCreate(BaseModel):
    employee_id: int
    date: date
    start_time: datetime
    end_time: datetime
    rate: float = Field(default=1.25, gt=0)
    reason: str = ""


class OvertimeRead(BaseModel):
    id: int
    employee_id: int
    date: date
    start_time: datetime
    end_time: datetime
    total_hours: float
    rate: float
    reason: str
    status: str
    dept_approved_by: int | None = None
    dept_approved_at: datetime | None = None
    dept_remarks: str | None = None
    hrd_approved_by: int | None = None
    hrd_approved_at: datetime | None = None
    hrd_remarks: str | None = None

    model_config = ORM


class StatusUpdate(BaseModel):
    status: OvertimeStatus
    remarks: str | None = Field(default=None, max_length=500)


class StatusUpdateById(StatusUpdate):
    id: int


class BulkStatusUpdate(StatusUpdate):
    overtime_ids: List[int] = Field(min_length=1)


class BulkStatusResult(BaseModel):
    message: str
    success_count: int
    failed: dict[int, str]


# ---------- payroll ----------


class PayrollTotals(BaseModel):
    basic_pay: float = 0.0
    overtime_pay: float = 0.0
    allowances: float = 0.0
    total_benefits: float = 0.0
    total_deductions: float = 0.0
    gross_pay: float = 0.0
    net_pay: float = 0.0


class PayrollSummaryCreate(PayrollTotals):
    employee_id: int
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)
    period_type: PeriodType
    status: Literal["draft", "posted", "locked"] = "draft"
    notes: str | None = None


class PayrollSummaryUpdate(BaseModel):
    basic_pay: float | None = None
    overtime_pay: float | None = None
    allowances: float | None = None
    total_benefits: float | None = None
    total_deductions: float | None = None
    gross_pay: float | None = None
    net_pay: float | None = None
    status: Literal["draft", "posted", "locked"] | None = None
    notes: str | None = None


class PayrollSummaryRead(PayrollTotals):
    id: int
    employee_id: int
    employee_no: str
    employee_name: str
    department: str
    year: int
    month: int
    period_type: str
    status: str
    notes: str | None = None

    model_config = ORM


class FinalPayrollRead(PayrollSummaryRead):
    payroll_summary_id: int | None = None
    approval_status: str
    approved_by: int | None = None
    approved_at: datetime | None = None
    approval_remarks: str | None = None
    finalized_at: datetime | None = None
    paid_at: datetime | None = None


class GenerateFromSummaries(BaseModel):
    summary_ids: List[int] = Field(min_length=1)
    year: int = Field(ge=2020, le=2100)
    month: int = Field(ge=1, le=12)
    period_type: PeriodType | None = None
    department: str | None = None
    include_benefits: bool = True
    include_deductions: bool = True
    force_regenerate: bool = False
    auto_approve: bool = False


class GenerateResult(BaseModel):
    message: str
    generated: int
    skipped: int
    errors: List[str]


class ApprovalAction(BaseModel):
    approval_remarks: str | None = Field(default=None, max_length=500)
