"""Employee master record."""
from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class Employee(TimestampMixin, Base):
    """The subset of employee data the payroll screens display."""

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    idno: Mapped[str] = mapped_column(String, unique=True, index=True)
    first_name: Mapped[str] = mapped_column(String)
    last_name: Mapped[str] = mapped_column(String, index=True)
    middle_name: Mapped[str] = mapped_column(String, default="")
    suffix: Mapped[str] = mapped_column(String, default="")
    department: Mapped[str] = mapped_column(String, default="")
    job_status: Mapped[str] = mapped_column(String, default="Active")

    __table_args__ = (
        Index("ix_emp_status_lastname", "job_status", "last_name"),
    )

    @property
    def display_name(self) -> str:
        return f"{self.last_name}, {self.first_name} {self.middle_name or ''}".strip()
