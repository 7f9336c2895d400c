"""Overtime filing and approval endpoints."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_csrf_user, get_current_user, get_db_session
from ..errors import field_error
from ..models import Employee, Overtime, User
from ..schemas import (
    BulkStatusResult,
    BulkStatusUpdate,
    OvertimeCreate,
    OvertimeRead,
    Page,
    StatusUpdate,
    StatusUpdateById,
)
from ..services import approvals
from ..services.pagination import PageParams, page_params, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/overtimes", tags=["overtime"])


async def _load(session: AsyncSession, overtime_id: int) -> tuple[Overtime, str]:
    """Overtime row plus the department of the employee who filed it."""

    row = (
        await session.execute(
            select(Overtime, Employee.department)
            .join(Employee, Employee.id == Overtime.employee_id)
            .where(Overtime.id == overtime_id)
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Overtime not found")
    return row[0], row[1] or ""


async def _update_one(
    session: AsyncSession, overtime_id: int, payload: StatusUpdate, user: User
) -> Overtime:
    overtime, department = await _load(session, overtime_id)
    approvals.apply_status(overtime, user, department, payload.status, payload.remarks)
    await session.commit()
    await session.refresh(overtime)
    return overtime


@router.get("", response_model=Page[OvertimeRead])
async def list_overtimes(
    status_filter: str | None = Query(default=None, alias="status"),
    department: str | None = Query(default=None),
    employee_id: int | None = Query(default=None),
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    stmt = select(Overtime).join(Employee, Employee.id == Overtime.employee_id)
    if status_filter:
        stmt = stmt.where(Overtime.status == status_filter)
    if department:
        stmt = stmt.where(Employee.department == department)
    if employee_id is not None:
        stmt = stmt.where(Overtime.employee_id == employee_id)
    if current_user.role == "department_manager":
        stmt = stmt.where(Employee.department == current_user.department)
    stmt = stmt.order_by(Overtime.date.desc(), Overtime.id.desc())
    return await paginate(session, stmt, params)


@router.post("", response_model=OvertimeRead, status_code=status.HTTP_201_CREATED)
async def create_overtime(
    payload: OvertimeCreate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Overtime:
    if await session.get(Employee, payload.employee_id) is None:
        raise field_error("employee_id", "The selected employee id is invalid.")
    if payload.end_time <= payload.start_time:
        raise field_error("end_time", "The end time must be after the start time.")

    hours = (payload.end_time - payload.start_time).total_seconds() / 3600
    overtime = Overtime(
        **payload.model_dump(),
        total_hours=round(hours, 2),
        status="pending",
        created_by=current_user.id,
    )
    session.add(overtime)
    await session.commit()
    await session.refresh(overtime)
    logger.info("Overtime %s filed for employee %s", overtime.id, overtime.employee_id)
    return overtime


@router.post("/updateStatus", response_model=OvertimeRead)
async def update_status_by_body(
    payload: StatusUpdateById,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Overtime:
    return await _update_one(session, payload.id, payload, current_user)


@router.post("/bulkUpdateStatus", response_model=BulkStatusResult)
async def bulk_update_status(
    payload: BulkStatusUpdate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    """Apply one status to many requests; refusals are reported per id."""

    success = 0
    failed: dict[int, str] = {}
    for overtime_id in payload.overtime_ids:
        try:
            overtime, department = await _load(session, overtime_id)
            approvals.apply_status(overtime, current_user, department, payload.status, payload.remarks)
        except HTTPException as exc:
            failed[overtime_id] = str(exc.detail)
            continue
        success += 1
    await session.commit()
    message = f"Updated {success} overtime requests"
    if failed:
        message += f", {len(failed)} failed"
    return {"message": message, "success_count": success, "failed": failed}


@router.post("/{overtime_id}/status", response_model=OvertimeRead)
async def update_status(
    overtime_id: int,
    payload: StatusUpdate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Overtime:
    return await _update_one(session, overtime_id, payload, current_user)
