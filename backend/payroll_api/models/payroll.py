"""Payroll summaries and the final payroll rows generated from them.

Totals are stored as delivered; this service never computes pay itself.
"""
import datetime as dt

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

PERIOD_TYPES = ("1st_half", "2nd_half")
SUMMARY_STATUSES = ("draft", "posted", "locked")
FINAL_STATUSES = ("draft", "finalized", "paid")
APPROVAL_STATUSES = ("pending", "approved", "rejected")

TOTAL_FIELDS = (
    "basic_pay",
    "overtime_pay",
    "allowances",
    "total_benefits",
    "total_deductions",
    "gross_pay",
    "net_pay",
)


class PayrollTotalsMixin(TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_no: Mapped[str] = mapped_column(String, default="")
    employee_name: Mapped[str] = mapped_column(String, default="")
    department: Mapped[str] = mapped_column(String, default="", index=True)
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)
    period_type: Mapped[str] = mapped_column(String)

    basic_pay: Mapped[float] = mapped_column(Float, default=0.0)
    overtime_pay: Mapped[float] = mapped_column(Float, default=0.0)
    allowances: Mapped[float] = mapped_column(Float, default=0.0)
    total_benefits: Mapped[float] = mapped_column(Float, default=0.0)
    total_deductions: Mapped[float] = mapped_column(Float, default=0.0)
    gross_pay: Mapped[float] = mapped_column(Float, default=0.0)
    net_pay: Mapped[float] = mapped_column(Float, default=0.0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def totals(self) -> dict[str, float]:
        return {f: float(getattr(self, f) or 0) for f in TOTAL_FIELDS}


class PayrollSummary(PayrollTotalsMixin, Base):
    """Per employee, per half-month aggregate; `locked` rows are read-only."""

    __tablename__ = "payroll_summaries"

    employee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[str] = mapped_column(String, default="draft", index=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "year", "month", "period_type", name="uq_summary_period"),
        Index("ix_summary_period", "year", "month", "period_type"),
    )

    @property
    def is_locked(self) -> bool:
        return self.status == "locked"


class FinalPayroll(PayrollTotalsMixin, Base):
    """Finalisation record; `finalized` and `paid` rows are read-only."""

    __tablename__ = "final_payrolls"

    employee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), index=True
    )
    payroll_summary_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("payroll_summaries.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String, default="draft", index=True)
    approval_status: Mapped[str] = mapped_column(String, default="pending")
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    approval_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    finalized_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    paid_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_final_period", "year", "month", "period_type"),
    )

    @property
    def is_editable(self) -> bool:
        return self.status == "draft"
