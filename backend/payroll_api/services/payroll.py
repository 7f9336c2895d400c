"""Payroll summary queries and final payroll generation."""
import logging
from datetime import datetime
from typing import List, Sequence, Tuple, Type

from sqlalchemy import and_, delete, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Benefit, Deduction, FinalPayroll, PayrollSummary, User
from ..models.payroll import TOTAL_FIELDS
from .periods import PERIOD_CUTOFF, period_range

logger = logging.getLogger(__name__)


def _same_period(final=FinalPayroll, summary=PayrollSummary):
    return and_(
        final.employee_id == summary.employee_id,
        final.year == summary.year,
        final.month == summary.month,
        final.period_type == summary.period_type,
    )


async def available_summaries(
    session: AsyncSession,
    year: int | None = None,
    month: int | None = None,
    period_type: str | None = None,
    department: str | None = None,
) -> Sequence[PayrollSummary]:
    """Posted summaries that have no final payroll for their period yet."""

    stmt = select(PayrollSummary).where(
        PayrollSummary.status == "posted",
        ~exists().where(_same_period()),
    )
    if year is not None:
        stmt = stmt.where(PayrollSummary.year == year)
    if month is not None:
        stmt = stmt.where(PayrollSummary.month == month)
    if period_type:
        stmt = stmt.where(PayrollSummary.period_type == period_type)
    if department:
        stmt = stmt.where(PayrollSummary.department == department)
    stmt = stmt.order_by(PayrollSummary.department, PayrollSummary.employee_name)
    return (await session.execute(stmt)).scalars().all()


async def posted_records(
    session: AsyncSession,
    model: Type[Benefit] | Type[Deduction],
    employee_id: int,
    year: int,
    month: int,
    period_type: str,
) -> Sequence[Benefit] | Sequence[Deduction]:
    start, end = period_range(period_type, month, year)
    result = await session.execute(
        select(model)
        .where(
            model.employee_id == employee_id,
            model.cutoff == PERIOD_CUTOFF[period_type],
            model.date.between(start, end),
            model.is_posted.is_(True),
        )
        .order_by(model.date_posted.desc(), model.id.desc())
    )
    return result.scalars().all()


def final_from_summary(summary: PayrollSummary, user: User) -> FinalPayroll:
    return FinalPayroll(
        employee_id=summary.employee_id,
        payroll_summary_id=summary.id,
        employee_no=summary.employee_no,
        employee_name=summary.employee_name,
        department=summary.department,
        year=summary.year,
        month=summary.month,
        period_type=summary.period_type,
        notes=summary.notes,
        status="draft",
        approval_status="pending",
        approved_by=None,
        approved_at=None,
        approval_remarks=None,
        finalized_at=None,
        paid_at=None,
        created_by=user.id,
        **summary.totals(),
    )


def approve(final: FinalPayroll, user: User, remarks: str | None, *, reject: bool = False) -> None:
    final.approval_status = "rejected" if reject else "approved"
    final.approved_by = user.id
    final.approved_at = datetime.utcnow()
    final.approval_remarks = remarks


async def generate_from_summaries(
    session: AsyncSession,
    summary_ids: Sequence[int],
    user: User,
    *,
    force_regenerate: bool = False,
    auto_approve: bool = False,
) -> Tuple[int, int, List[str]]:
    """Create draft final payrolls from summaries; returns (generated, skipped, errors).

    A period that already has a final payroll is skipped unless
    `force_regenerate` is set, and even then only a draft is replaced.
    """

    generated = skipped = 0
    errors: List[str] = []
    for summary_id in summary_ids:
        summary = await session.get(PayrollSummary, summary_id)
        if summary is None:
            errors.append(f"Payroll summary {summary_id} not found")
            continue
        existing = (
            await session.execute(select(FinalPayroll).where(_same_period(summary=summary)))
        ).scalars().first()
        if existing is not None:
            if not force_regenerate:
                skipped += 1
                continue
            if existing.status != "draft":
                errors.append(f"Cannot regenerate finalized payroll for {summary.employee_name}")
                continue
            await session.execute(delete(FinalPayroll).where(FinalPayroll.id == existing.id))

        final = final_from_summary(summary, user)
        if auto_approve:
            approve(final, user, "Auto-approved during bulk generation")
        session.add(final)
        generated += 1

    await session.commit()
    logger.info(
        "Generated %s final payrolls, skipped %s, %s errors", generated, skipped, len(errors)
    )
    return generated, skipped, errors


async def calculation_breakdown(session: AsyncSession, final: FinalPayroll) -> dict:
    """Stored totals alongside the posted records they came from."""

    benefits = await posted_records(
        session, Benefit, final.employee_id, final.year, final.month, final.period_type
    )
    deductions = await posted_records(
        session, Deduction, final.employee_id, final.year, final.month, final.period_type
    )
    return {
        "totals": {f: float(getattr(final, f) or 0) for f in TOTAL_FIELDS},
        "benefits": [{"id": b.id, "date": b.date, **b.amounts(), "total": b.total} for b in benefits],
        "deductions": [{"id": d.id, "date": d.date, **d.amounts(), "total": d.total} for d in deductions],
        "benefits_total": round(sum(b.total for b in benefits), 2),
        "deductions_total": round(sum(d.total for d in deductions), 2),
    }
