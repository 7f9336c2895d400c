"""Two-level overtime approval rules.

A department manager (for their own department) moves a pending request to
`manager_approved` or `rejected`; an HRD manager then moves it to `approved`
or `rejected`. A superadmin can act at either level and can force-approve,
which fills in both levels at once.
"""
import logging
from datetime import datetime

from fastapi import HTTPException, status

from ..models import Overtime, User

logger = logging.getLogger(__name__)

OVERRIDE_PREFIX = "Administrative override: "


def is_superadmin(user: User) -> bool:
    return user.role == "superadmin"


def is_hrd_manager(user: User) -> bool:
    return user.role == "hrd_manager"


def is_department_manager_for(user: User, department: str) -> bool:
    return user.role == "department_manager" and bool(user.department) and user.department == department


def can_transition(user: User, overtime: Overtime, department: str, target: str) -> bool:
    if target == "force_approved":
        return is_superadmin(user)
    level_one = overtime.status == "pending" and target in ("manager_approved", "rejected")
    level_two = overtime.status == "manager_approved" and target in ("approved", "rejected")
    if level_one:
        return is_department_manager_for(user, department) or is_superadmin(user)
    if level_two:
        return is_hrd_manager(user) or is_superadmin(user)
    return False


def apply_status(
    overtime: Overtime,
    user: User,
    department: str,
    target: str,
    remarks: str | None,
    now: datetime | None = None,
) -> None:
    """Mutate `overtime` for the requested status or raise 403.

    Asking for the status the request already has only updates the remarks of
    the current approval level.
    """

    now = now or datetime.utcnow()
    if overtime.status == target:
        if remarks:
            if overtime.status == "pending":
                overtime.dept_remarks = remarks
            elif overtime.status == "manager_approved":
                overtime.hrd_remarks = remarks
        return

    if not can_transition(user, overtime, department, target):
        logger.warning(
            "User %s may not move overtime %s from %s to %s",
            user.username,
            overtime.id,
            overtime.status,
            target,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not authorized to update this overtime request status.",
        )

    if overtime.status == "pending":
        overtime.dept_approved_by = user.id
        overtime.dept_approved_at = now
        overtime.dept_remarks = remarks
    elif overtime.status == "manager_approved":
        overtime.hrd_approved_by = user.id
        overtime.hrd_approved_at = now
        overtime.hrd_remarks = remarks

    if target == "force_approved":
        note = OVERRIDE_PREFIX + (remarks or "Force approved by admin")
        if not overtime.dept_approved_by:
            overtime.dept_approved_by = user.id
            overtime.dept_approved_at = now
            overtime.dept_remarks = note
        overtime.hrd_approved_by = user.id
        overtime.hrd_approved_at = now
        overtime.hrd_remarks = note
        target = "approved"

    logger.info("Overtime %s: %s -> %s by %s", overtime.id, overtime.status, target, user.username)
    overtime.status = target
