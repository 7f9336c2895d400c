"""Payroll summary and final payroll endpoints."""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_csrf_user, get_current_user, get_db_session
from ..errors import UnprocessableError, field_error
from ..models import Benefit, Deduction, Employee, FinalPayroll, PayrollSummary, User
from ..schemas import (
    ApprovalAction,
    BenefitRead,
    DeductionRead,
    FinalPayrollRead,
    GenerateFromSummaries,
    ListEnvelope,
    Page,
    PayrollSummaryCreate,
    PayrollSummaryRead,
    PayrollSummaryUpdate,
)
from ..services import payroll
from ..services.pagination import PageParams, page_params, paginate

logger = logging.getLogger(__name__)

summaries_router = APIRouter(
    prefix="/api/comprehensive-payroll-summaries", tags=["payroll summaries"]
)
finals_router = APIRouter(prefix="/final-payrolls", tags=["final payrolls"])


def _filtered(
    stmt: Select,
    model: type,
    year: int | None,
    month: int | None,
    period_type: str | None,
    department: str | None,
    search: str | None,
) -> Select:
    if year is not None:
        stmt = stmt.where(model.year == year)
    if month is not None:
        stmt = stmt.where(model.month == month)
    if period_type:
        stmt = stmt.where(model.period_type == period_type)
    if department:
        stmt = stmt.where(model.department == department)
    if search:
        like = f"%{search}%"
        stmt = stmt.where(or_(model.employee_name.ilike(like), model.employee_no.ilike(like)))
    return stmt


async def _summary(session: AsyncSession, summary_id: int) -> PayrollSummary:
    summary = await session.get(PayrollSummary, summary_id)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payroll summary not found")
    return summary


async def _final(session: AsyncSession, final_id: int) -> FinalPayroll:
    final = await session.get(FinalPayroll, final_id)
    if final is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Final payroll not found")
    return final


# ---------- payroll summaries ----------


@summaries_router.get("/list", response_model=Page[PayrollSummaryRead])
async def list_summaries(
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
    period_type: str | None = Query(default=None),
    department: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None),
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    stmt = _filtered(
        select(PayrollSummary), PayrollSummary, year, month, period_type, department, search
    )
    if status_filter:
        stmt = stmt.where(PayrollSummary.status == status_filter)
    stmt = stmt.order_by(PayrollSummary.department, PayrollSummary.employee_name, PayrollSummary.id)
    return await paginate(session, stmt, params)


@summaries_router.get(
    "/available-for-final-payroll", response_model=ListEnvelope[PayrollSummaryRead]
)
async def summaries_available_for_final(
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
    period_type: str | None = Query(default=None),
    department: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    rows = await payroll.available_summaries(session, year, month, period_type, department)
    return {"data": list(rows)}


@summaries_router.post("", response_model=PayrollSummaryRead, status_code=status.HTTP_201_CREATED)
async def create_summary(
    payload: PayrollSummaryCreate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> PayrollSummary:
    """Store a summary with the totals supplied by the caller."""

    employee = await session.get(Employee, payload.employee_id)
    if employee is None:
        raise field_error("employee_id", "The selected employee id is invalid.")
    duplicate = await session.execute(
        select(PayrollSummary.id).where(
            PayrollSummary.employee_id == payload.employee_id,
            PayrollSummary.year == payload.year,
            PayrollSummary.month == payload.month,
            PayrollSummary.period_type == payload.period_type,
        )
    )
    if duplicate.first() is not None:
        raise UnprocessableError("A payroll summary already exists for this employee and period.")

    summary = PayrollSummary(
        **payload.model_dump(),
        employee_no=employee.idno,
        employee_name=employee.display_name,
        department=employee.department or "",
    )
    session.add(summary)
    await session.commit()
    logger.info("Stored payroll summary %s for %s", summary.id, summary.employee_no)
    return summary


@summaries_router.put("/{summary_id}", response_model=PayrollSummaryRead)
async def update_summary(
    summary_id: int,
    payload: PayrollSummaryUpdate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> PayrollSummary:
    summary = await _summary(session, summary_id)
    if summary.is_locked:
        logger.warning("Refused edit of locked payroll summary %s", summary_id)
        raise UnprocessableError("Locked payroll summaries cannot be edited.")
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(summary, key, value)
    await session.commit()
    return summary


@summaries_router.get("/{summary_id}/benefits-details", response_model=ListEnvelope[BenefitRead])
async def summary_benefits(
    summary_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    s = await _summary(session, summary_id)
    rows = await payroll.posted_records(session, Benefit, s.employee_id, s.year, s.month, s.period_type)
    return {"data": list(rows)}


@summaries_router.get(
    "/{summary_id}/deductions-details", response_model=ListEnvelope[DeductionRead]
)
async def summary_deductions(
    summary_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    s = await _summary(session, summary_id)
    rows = await payroll.posted_records(session, Deduction, s.employee_id, s.year, s.month, s.period_type)
    return {"data": list(rows)}


# ---------- final payrolls ----------


@finals_router.get("", response_model=Page[FinalPayrollRead])
async def list_finals(
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
    period_type: str | None = Query(default=None),
    department: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    approval_status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    stmt = _filtered(select(FinalPayroll), FinalPayroll, year, month, period_type, department, search)
    if status_filter:
        stmt = stmt.where(FinalPayroll.status == status_filter)
    if approval_status:
        stmt = stmt.where(FinalPayroll.approval_status == approval_status)
    stmt = stmt.order_by(FinalPayroll.department, FinalPayroll.employee_name, FinalPayroll.id)
    return await paginate(session, stmt, params)


@finals_router.get("/available-summaries", response_model=ListEnvelope[PayrollSummaryRead])
async def available_summaries(
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
    period_type: str | None = Query(default=None),
    department: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    rows = await payroll.available_summaries(session, year, month, period_type, department)
    return {"data": list(rows)}


@finals_router.post("/generate-from-summaries")
async def generate_from_summaries(
    payload: GenerateFromSummaries,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    generated, skipped, errors = await payroll.generate_from_summaries(
        session,
        payload.summary_ids,
        current_user,
        force_regenerate=payload.force_regenerate,
        auto_approve=payload.auto_approve,
    )
    return {
        "success": True,
        "message": f"Generated {generated} final payrolls, skipped {skipped} existing records",
        "data": {"generated": generated, "skipped": skipped, "errors": errors},
    }


@finals_router.get("/{final_id}", response_model=FinalPayrollRead)
async def show_final(
    final_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> FinalPayroll:
    return await _final(session, final_id)


@finals_router.get("/{final_id}/calculation-breakdown")
async def final_breakdown(
    final_id: int,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    final = await _final(session, final_id)
    return {"success": True, "data": await payroll.calculation_breakdown(session, final)}


def _refuse(final: FinalPayroll, action: str) -> UnprocessableError:
    logger.warning(
        "Refused to %s final payroll %s (status=%s, approval=%s)",
        action,
        final.id,
        final.status,
        final.approval_status,
    )
    return UnprocessableError(f"This payroll cannot be {action} in its current status")


@finals_router.post("/{final_id}/approve", response_model=FinalPayrollRead)
async def approve_final(
    final_id: int,
    payload: ApprovalAction,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> FinalPayroll:
    final = await _final(session, final_id)
    if not (final.status == "draft" and final.approval_status == "pending"):
        raise _refuse(final, "approved")
    payroll.approve(final, current_user, payload.approval_remarks)
    await session.commit()
    logger.info("Final payroll %s approved by %s", final.id, current_user.username)
    return final


@finals_router.post("/{final_id}/reject", response_model=FinalPayrollRead)
async def reject_final(
    final_id: int,
    payload: ApprovalAction,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> FinalPayroll:
    if not payload.approval_remarks:
        raise field_error("approval_remarks", "Remarks are required when rejecting a payroll.")
    final = await _final(session, final_id)
    if not (final.status == "draft" and final.approval_status == "pending"):
        raise _refuse(final, "rejected")
    payroll.approve(final, current_user, payload.approval_remarks, reject=True)
    await session.commit()
    logger.info("Final payroll %s rejected by %s", final.id, current_user.username)
    return final


@finals_router.post("/{final_id}/finalize", response_model=FinalPayrollRead)
async def finalize_final(
    final_id: int,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> FinalPayroll:
    final = await _final(session, final_id)
    if not (final.status == "draft" and final.approval_status == "approved"):
        raise _refuse(final, "finalized")
    final.status = "finalized"
    final.finalized_at = datetime.utcnow()
    await session.commit()
    logger.info("Final payroll %s finalized", final.id)
    return final


@finals_router.post("/{final_id}/mark-paid", response_model=FinalPayrollRead)
async def mark_paid(
    final_id: int,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> FinalPayroll:
    final = await _final(session, final_id)
    if final.status != "finalized":
        raise _refuse(final, "marked as paid")
    final.status = "paid"
    final.paid_at = datetime.utcnow()
    await session.commit()
    logger.info("Final payroll %s marked as paid", final.id)
    return final


@finals_router.delete("/{final_id}")
async def delete_final(
    final_id: int,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    final = await _final(session, final_id)
    if not final.is_editable:
        raise UnprocessableError("Only draft payrolls can be deleted")
    await session.delete(final)
    await session.commit()
    return {"success": True, "message": "Final payroll deleted successfully"}
