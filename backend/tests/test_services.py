"""Unit tests for the service helpers that need no database."""
from datetime import date

import pytest
from fastapi import HTTPException

from payroll_api.models import Overtime, User
from payroll_api.services import approvals, periods, spreadsheets


def test_cutoff_ranges() -> None:
    assert periods.cutoff_range("1st", 2, 2024) == (date(2024, 2, 1), date(2024, 2, 15))
    assert periods.cutoff_range("2nd", 2, 2023) == (date(2023, 2, 16), date(2023, 2, 28))
    assert periods.cutoff_range("2nd", 12, 2024)[1] == date(2024, 12, 31)
    assert periods.cutoff_date("1st", 5, 2024) == date(2024, 5, 15)
    assert periods.cutoff_date("2nd", 5, 2024) == date(2024, 5, 28)
    assert periods.period_for("2nd", date(2024, 5, 28)) == (2024, 5, "2nd_half")


def test_parse_import_handles_semicolons_and_bom() -> None:
    raw = "\ufeffEmployee ID;Name;Dept;Advance;Charge Store;Charge;Meals;Misc;Other\nE1;A;B;1,5;;;2;;\n".encode()
    parsed = spreadsheets.parse_import(raw)
    assert parsed.errors == []
    (row,) = parsed.rows
    assert row.idno == "E1"
    assert row.row_number == 2
    assert row.amounts["advance"] == 15.0
    assert row.amounts["meals"] == 2.0
    assert row.amounts["charge"] == 0.0


def test_parse_import_rejects_negative_amounts() -> None:
    parsed = spreadsheets.parse_import(b"h1,h2,h3,h4\nE1,A,B,-4\n")
    assert parsed.rows == []
    assert parsed.errors == ["Row 2: amounts cannot be negative."]


def make_user(role: str, department: str = "", user_id: int = 1) -> User:
    return User(id=user_id, username=role, role=role, department=department, password_hash="x")


def make_overtime(status: str = "pending") -> Overtime:
    return Overtime(id=7, employee_id=1, status=status)


@pytest.mark.parametrize(
    "role,department,current,target,allowed",
    [
        ("department_manager", "Sewing", "pending", "manager_approved", True),
        ("department_manager", "Cutting", "pending", "manager_approved", False),
        ("department_manager", "Sewing", "manager_approved", "approved", False),
        ("hrd_manager", "", "pending", "manager_approved", False),
        ("hrd_manager", "", "manager_approved", "rejected", True),
        ("superadmin", "", "pending", "rejected", True),
        ("superadmin", "", "approved", "rejected", False),
        ("hrd_manager", "", "pending", "force_approved", False),
        ("superadmin", "", "rejected", "force_approved", True),
    ],
)
def test_transition_permissions(role, department, current, target, allowed) -> None:
    user = make_user(role, department)
    assert approvals.can_transition(user, make_overtime(current), "Sewing", target) is allowed


def test_refused_transition_raises_forbidden() -> None:
    overtime = make_overtime()
    with pytest.raises(HTTPException) as info:
        approvals.apply_status(overtime, make_user("employee"), "Sewing", "manager_approved", None)
    assert info.value.status_code == 403
    assert overtime.status == "pending"


def test_force_approval_keeps_existing_manager_approval() -> None:
    overtime = make_overtime("manager_approved")
    overtime.dept_approved_by = 42
    overtime.dept_remarks = "ok by manager"

    approvals.apply_status(overtime, make_user("superadmin", user_id=1), "Sewing", "force_approved", "rush")

    assert overtime.status == "approved"
    assert overtime.dept_approved_by == 42
    assert overtime.dept_remarks == "ok by manager"
    assert overtime.hrd_approved_by == 1
    assert overtime.hrd_remarks == "Administrative override: rush"
