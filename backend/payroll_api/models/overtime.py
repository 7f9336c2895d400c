"""Overtime requests and their two-level approval trail."""
import datetime as dt

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

OVERTIME_STATUSES = ("pending", "manager_approved", "approved", "rejected")


class Overtime(TimestampMixin, Base):
    """An overtime filing; department manager approves first, then HRD."""

    __tablename__ = "overtimes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), index=True
    )
    date: Mapped[dt.date] = mapped_column(Date)
    start_time: Mapped[dt.datetime] = mapped_column(DateTime)
    end_time: Mapped[dt.datetime] = mapped_column(DateTime)
    total_hours: Mapped[float] = mapped_column(Float, default=0.0)
    rate: Mapped[float] = mapped_column(Float, default=1.25)
    reason: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[str] = mapped_column(String, default="pending", index=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)

    dept_approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    dept_approved_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    dept_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    hrd_approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hrd_approved_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)
    hrd_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
