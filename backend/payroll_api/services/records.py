"""Lifecycle rules shared by deduction and benefit records.

A record is editable until it is posted. At most one record per employee is
flagged as the default template; new records for a cutoff copy the amounts of
that template. Posting a record refreshes the matching payroll summary when
one exists and is not locked.
"""
import logging
from datetime import date
from typing import Iterable, Sequence, Tuple, Type, TypeVar

from fastapi import HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import UnprocessableError, field_error
from ..models import Benefit, Deduction, Employee, PayrollSummary
from .periods import period_for

logger = logging.getLogger(__name__)

Record = TypeVar("Record", Deduction, Benefit)


def label(model: type) -> str:
    return model.__tablename__[:-1]


async def get_record(session: AsyncSession, model: Type[Record], record_id: int) -> Record:
    record = await session.get(model, record_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label(model).capitalize()} not found",
        )
    return record


def ensure_editable(record: Deduction | Benefit) -> None:
    if record.is_posted:
        raise UnprocessableError(
            f"This {label(type(record))} has been posted and cannot be updated."
        )


async def ensure_employee(session: AsyncSession, employee_id: int) -> Employee:
    employee = await session.get(Employee, employee_id)
    if employee is None:
        raise field_error("employee_id", "The selected employee id is invalid.")
    return employee


async def update_field(
    session: AsyncSession, record: Record, field: str, value: float | None
) -> Record:
    """Set one amount column; a missing value is stored as zero."""

    ensure_editable(record)
    if field not in record.AMOUNT_FIELDS:
        raise field_error("field", "Invalid field specified.")
    setattr(record, field, value if value is not None else 0.0)
    await session.commit()
    return record


async def latest_default(
    session: AsyncSession, model: Type[Record], employee_id: int
) -> Record | None:
    result = await session.execute(
        select(model)
        .where(model.employee_id == employee_id, model.is_default.is_(True))
        .order_by(model.updated_at.desc(), model.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_for_cutoff(
    session: AsyncSession, model: Type[Record], employee_id: int, cutoff: str, on: date
) -> Record | None:
    result = await session.execute(
        select(model)
        .where(model.employee_id == employee_id, model.cutoff == cutoff, model.date == on)
        .order_by(model.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_from_default(
    session: AsyncSession, model: Type[Record], employee_id: int, cutoff: str, on: date
) -> Tuple[Record, bool]:
    """Return the record for (employee, cutoff, date), creating it if needed.

    The second element tells whether a new row was added. New rows copy the
    employee's default template, or start at zero when there is none.
    """

    existing = await find_for_cutoff(session, model, employee_id, cutoff, on)
    if existing is not None:
        return existing, False

    template = await latest_default(session, model, employee_id)
    amounts = template.amounts() if template else {f: 0.0 for f in model.AMOUNT_FIELDS}
    record = model(
        employee_id=employee_id,
        cutoff=cutoff,
        date=on,
        is_posted=False,
        date_posted=None,
        is_default=False,
        **amounts,
    )
    session.add(record)
    await session.flush()
    return record, True


async def bulk_create(
    session: AsyncSession, model: Type[Record], cutoff: str, on: date
) -> int:
    """Create records from defaults for every active employee lacking one."""

    result = await session.execute(
        select(Employee.id).where(Employee.job_status == "Active").order_by(Employee.id)
    )
    created = 0
    for employee_id in result.scalars().all():
        _, was_created = await create_from_default(session, model, employee_id, cutoff, on)
        created += int(was_created)
    await session.commit()
    logger.info("Created %s %s records for %s cutoff on %s", created, label(model), cutoff, on)
    return created


async def clear_defaults(
    session: AsyncSession, model: Type[Record], employee_id: int, keep_id: int
) -> None:
    await session.execute(
        update(model)
        .where(
            model.employee_id == employee_id,
            model.is_default.is_(True),
            model.id != keep_id,
        )
        .values(is_default=False)
    )


async def set_default(session: AsyncSession, record: Record) -> Record:
    """Flag `record` as its employee's template and unflag the others."""

    await clear_defaults(session, type(record), record.employee_id, record.id)
    record.is_default = True
    await session.commit()
    logger.info("%s %s is now the default for employee %s", label(type(record)), record.id, record.employee_id)
    return record


async def bulk_set_default(
    session: AsyncSession, model: Type[Record], ids: Sequence[int]
) -> int:
    """Set defaults from a selection; one record per employee, the last one wins."""

    result = await session.execute(select(model).where(model.id.in_(ids)).order_by(model.id))
    per_employee: dict[int, Record] = {}
    for record in result.scalars().all():
        per_employee[record.employee_id] = record
    for record in per_employee.values():
        await clear_defaults(session, model, record.employee_id, record.id)
        record.is_default = True
    await session.commit()
    logger.info("Set %s %s defaults", len(per_employee), label(model))
    return len(per_employee)


async def sync_summary(session: AsyncSession, record: Deduction | Benefit) -> bool:
    """Copy a posted record's totals onto its payroll summary, if one is open."""

    year, month, period_type = period_for(record.cutoff, record.date)
    result = await session.execute(
        select(PayrollSummary).where(
            PayrollSummary.employee_id == record.employee_id,
            PayrollSummary.year == year,
            PayrollSummary.month == month,
            PayrollSummary.period_type == period_type,
        )
    )
    summary = result.scalar_one_or_none()
    if summary is None or summary.is_locked:
        return False
    if isinstance(record, Deduction):
        summary.total_deductions = record.total
    else:
        summary.total_benefits = record.total
        summary.allowances = record.allowances
    return True


async def _post(session: AsyncSession, records: Iterable[Record]) -> Tuple[int, int]:
    posted = synced = 0
    today = date.today()
    for record in records:
        record.is_posted = True
        record.date_posted = today
        await session.flush()
        posted += 1
        synced += int(await sync_summary(session, record))
    await session.commit()
    return posted, synced


async def post_record(session: AsyncSession, record: Record) -> Record:
    if record.is_posted:
        raise UnprocessableError(f"This {label(type(record))} is already posted.")
    await _post(session, [record])
    logger.info("Posted %s %s", label(type(record)), record.id)
    return record


async def bulk_post(
    session: AsyncSession, model: Type[Record], ids: Sequence[int]
) -> Tuple[int, int]:
    """Post the unposted records among `ids`; returns (posted, summaries synced)."""

    result = await session.execute(
        select(model).where(model.id.in_(ids), model.is_posted.is_(False))
    )
    posted, synced = await _post(session, result.scalars().all())
    logger.info("Bulk posted %s %s records", posted, label(model))
    return posted, synced


def require_range(start: date | None, end: date | None) -> Tuple[date, date]:
    if start is None or end is None:
        raise field_error("date", "Start date and end date are required.")
    return start, end


async def post_all(
    session: AsyncSession, model: Type[Record], cutoff: str, start: date, end: date
) -> Tuple[int, int]:
    result = await session.execute(
        select(model).where(
            model.cutoff == cutoff,
            model.date.between(start, end),
            model.is_posted.is_(False),
        )
    )
    posted, synced = await _post(session, result.scalars().all())
    logger.info("Posted all %s %s records between %s and %s", posted, label(model), start, end)
    return posted, synced


async def delete_unposted(
    session: AsyncSession, model: Type[Record], cutoff: str, start: date, end: date
) -> int:
    result = await session.execute(
        delete(model).where(
            model.cutoff == cutoff,
            model.date.between(start, end),
            model.is_posted.is_(False),
        )
    )
    await session.commit()
    logger.info("Deleted %s unposted %s records", result.rowcount, label(model))
    return result.rowcount


async def latest_in_range(
    session: AsyncSession,
    model: Type[Record],
    employee_ids: Sequence[int],
    cutoff: str,
    start: date,
    end: date,
) -> dict[int, Record]:
    """Most recent record per employee inside a cutoff window."""

    if not employee_ids:
        return {}
    result = await session.execute(
        select(model)
        .where(
            model.employee_id.in_(employee_ids),
            model.cutoff == cutoff,
            model.date.between(start, end),
        )
        .order_by(model.date.desc(), model.id.desc())
    )
    latest: dict[int, Record] = {}
    for record in result.scalars().all():
        latest.setdefault(record.employee_id, record)
    return latest


async def defaults_for(
    session: AsyncSession, model: Type[Record], employee_ids: Sequence[int]
) -> dict[int, Record]:
    if not employee_ids:
        return {}
    result = await session.execute(
        select(model)
        .where(model.employee_id.in_(employee_ids), model.is_default.is_(True))
        .order_by(model.updated_at.desc(), model.id.desc())
    )
    defaults: dict[int, Record] = {}
    for record in result.scalars().all():
        defaults.setdefault(record.employee_id, record)
    return defaults
