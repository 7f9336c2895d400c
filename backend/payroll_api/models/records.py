"""Per-cutoff deduction and benefit records.

Both tables share the same lifecycle: a record belongs to one employee and one
cutoff date, holds a fixed set of amount columns, can be marked as the
employee's default template, and becomes immutable once posted.
"""
import datetime as dt
from typing import ClassVar, Tuple

from sqlalchemy import Boolean, Date, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from .base import Base, TimestampMixin

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

CUTOFFS = ("1st", "2nd")


class PayrollRecordMixin(TimestampMixin):
    """Columns common to deductions and benefits."""

    AMOUNT_FIELDS: ClassVar[Tuple[str, ...]] = ()

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cutoff: Mapped[str] = mapped_column(String)
    date: Mapped[dt.date] = mapped_column(Date)
    date_posted: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    is_posted: Mapped[bool] = mapped_column(Boolean, default=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)

    @declared_attr
    def employee_id(cls) -> Mapped[int]:
        return mapped_column(
            Integer, ForeignKey("employees.id", ondelete="CASCADE"), index=True
        )

    @property
    def total(self) -> float:
        return round(sum(float(getattr(self, f) or 0) for f in self.AMOUNT_FIELDS), 2)

    def amounts(self) -> dict[str, float]:
        return {f: float(getattr(self, f) or 0) for f in self.AMOUNT_FIELDS}


class Deduction(PayrollRecordMixin, Base):
    """Cash advances, store charges and other per-cutoff deductions."""

    __tablename__ = "deductions"
    AMOUNT_FIELDS = DEDUCTION_FIELDS

    advance: Mapped[float] = mapped_column(Float, default=0.0)
    charge_store: Mapped[float] = mapped_column(Float, default=0.0)
    charge: Mapped[float] = mapped_column(Float, default=0.0)
    meals: Mapped[float] = mapped_column(Float, default=0.0)
    miscellaneous: Mapped[float] = mapped_column(Float, default=0.0)
    other_deductions: Mapped[float] = mapped_column(Float, default=0.0)

    __table_args__ = (
        Index("ix_deductions_employee_cutoff_date", "employee_id", "cutoff", "date"),
        Index("ix_deductions_cutoff_date", "cutoff", "date"),
    )


class Benefit(PayrollRecordMixin, Base):
    """Allowances, loans and statutory premiums per cutoff."""

    __tablename__ = "benefits"
    AMOUNT_FIELDS = BENEFIT_FIELDS

    allowances: Mapped[float] = mapped_column(Float, default=0.0)
    mf_shares: Mapped[float] = mapped_column(Float, default=0.0)
    mf_loan: Mapped[float] = mapped_column(Float, default=0.0)
    sss_loan: Mapped[float] = mapped_column(Float, default=0.0)
    sss_prem: Mapped[float] = mapped_column(Float, default=0.0)
    hmdf_loan: Mapped[float] = mapped_column(Float, default=0.0)
    hmdf_prem: Mapped[float] = mapped_column(Float, default=0.0)
    philhealth: Mapped[float] = mapped_column(Float, default=0.0)

    __table_args__ = (
        Index("ix_benefits_employee_cutoff_date", "employee_id", "cutoff", "date"),
        Index("ix_benefits_cutoff_date", "cutoff", "date"),
    )
