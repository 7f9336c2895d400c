"""SQLAlchemy models exposed by the backend."""
from .base import Base
from .employee import Employee
from .org import Department, Line, Section
from .overtime import Overtime
from .payroll import FinalPayroll, PayrollSummary
from .records import Benefit, Deduction
from .user import User

__all__ = [
    "Base",
    "Benefit",
    "Deduction",
    "Department",
    "Employee",
    "FinalPayroll",
    "Line",
    "Overtime",
    "PayrollSummary",
    "Section",
    "User",
]
