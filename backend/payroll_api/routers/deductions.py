"""Deduction grid endpoints: listing, cell edits, posting, defaults and CSV."""
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_csrf_user, get_current_user, get_db_session
from ..errors import UnprocessableError
from ..models import Deduction, Employee, User
from ..schemas import (
    BulkCreate,
    CreateFromDefault,
    CutoffRange,
    Cutoff,
    DeductionGrid,
    DeductionIds,
    DeductionRead,
    EmployeeRead,
    FieldUpdate,
    ImportResult,
)
from ..services import records, spreadsheets
from ..services.pagination import PageParams, page_params, paginate
from ..services.periods import cutoff_range
from .employees import active_employees

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deductions", tags=["deductions"])


def _today() -> date:
    return date.today()


def _sheet_response(rows: list, fmt: spreadsheets.SheetFormat, stem: str) -> Response:
    return Response(
        content=spreadsheets.write_rows(rows, fmt),
        media_type=spreadsheets.MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{stem}.{fmt}"'},
    )


@router.get("", response_model=DeductionGrid)
async def list_deductions(
    cutoff: Cutoff = Query(default="1st"),
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=2000, le=2100),
    search: str = Query(default=""),
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    """Active employees paired with their latest deduction in the cutoff window."""

    today = _today()
    start, end = cutoff_range(cutoff, month or today.month, year or today.year)
    page = await paginate(session, active_employees(search), params)
    latest = await records.latest_in_range(
        session, Deduction, [e.id for e in page["data"]], cutoff, start, end
    )
    page["data"] = [
        {
            **EmployeeRead.model_validate(emp).model_dump(),
            "current_deduction": latest.get(emp.id),
        }
        for emp in page["data"]
    ]

    in_window = (Deduction.cutoff == cutoff, Deduction.date.between(start, end))
    all_count = (
        await session.execute(select(func.count(Deduction.id)).where(*in_window))
    ).scalar_one()
    posted_count = (
        await session.execute(
            select(func.count(Deduction.id)).where(*in_window, Deduction.is_posted.is_(True))
        )
    ).scalar_one()
    page["status"] = {
        "all_count": all_count,
        "posted_count": posted_count,
        "pending_count": all_count - posted_count,
    }
    page["date_range"] = {"start": start, "end": end}
    return page


@router.patch("/{deduction_id}/field", response_model=DeductionRead)
async def update_field(
    deduction_id: int,
    payload: FieldUpdate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Deduction:
    record = await records.get_record(session, Deduction, deduction_id)
    return await records.update_field(session, record, payload.field, payload.value)


@router.post("/create-from-default", response_model=DeductionRead)
async def create_from_default(
    payload: CreateFromDefault,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Deduction:
    """Return the employee's record for the cutoff, creating it from defaults."""

    await records.ensure_employee(session, payload.employee_id)
    record, created = await records.create_from_default(
        session, Deduction, payload.employee_id, payload.cutoff, payload.date
    )
    await session.commit()
    if created:
        logger.info("Created deduction %s for employee %s", record.id, record.employee_id)
    return record


@router.post("/{deduction_id}/post", response_model=DeductionRead)
async def post_deduction(
    deduction_id: int,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Deduction:
    record = await records.get_record(session, Deduction, deduction_id)
    return await records.post_record(session, record)


@router.post("/{deduction_id}/set-default", response_model=DeductionRead)
async def set_default(
    deduction_id: int,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Deduction:
    record = await records.get_record(session, Deduction, deduction_id)
    return await records.set_default(session, record)


@router.post("/bulk-post")
async def bulk_post(
    payload: DeductionIds,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    if not payload.deduction_ids:
        raise UnprocessableError(
            "No deductions selected for posting.",
            {"deduction_ids": ["No deductions selected for posting."]},
        )
    posted, synced = await records.bulk_post(session, Deduction, payload.deduction_ids)
    return {
        "message": f"{posted} deductions have been successfully posted and {synced} payroll summaries updated.",
        "posted_count": posted,
    }


@router.post("/bulk-set-default")
async def bulk_set_default(
    payload: DeductionIds,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    if not payload.deduction_ids:
        raise UnprocessableError(
            "No deductions selected.", {"deduction_ids": ["No deductions selected."]}
        )
    updated = await records.bulk_set_default(session, Deduction, payload.deduction_ids)
    return {"message": f"{updated} deductions have been set as default.", "updated_count": updated}


@router.post("/post-all")
async def post_all(
    payload: CutoffRange,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    start, end = records.require_range(payload.start_date, payload.end_date)
    posted, synced = await records.post_all(session, Deduction, payload.cutoff, start, end)
    return {
        "message": f"{posted} deductions have been successfully posted and {synced} payroll summaries updated.",
        "updated_count": posted,
    }


@router.post("/delete-all-not-posted")
async def delete_all_not_posted(
    payload: CutoffRange,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    start, end = records.require_range(payload.start_date, payload.end_date)
    deleted = await records.delete_unposted(session, Deduction, payload.cutoff, start, end)
    return {
        "message": f"{deleted} not posted deductions have been successfully deleted.",
        "deleted_count": deleted,
    }


@router.post("/bulk-create")
async def bulk_create(
    payload: BulkCreate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    created = await records.bulk_create(session, Deduction, payload.cutoff, payload.date)
    return {"message": f"Created {created} new deduction entries.", "created_count": created}


@router.post("/import", response_model=ImportResult)
async def import_deductions(
    request: Request,
    cutoff: Cutoff = Query(...),
    on: date = Query(..., alias="date"),
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    """Upsert unposted deductions from a CSV or xlsx request body."""

    raw = await request.body()
    if not raw.strip():
        raise UnprocessableError("The import file is empty.", {"file": ["The import file is empty."]})
    try:
        parsed = spreadsheets.parse_import(raw)
    except spreadsheets.UnreadableSheet as exc:
        raise UnprocessableError(str(exc), {"file": [str(exc)]}) from exc
    errors = list(parsed.errors)
    imported = 0
    for row in parsed.rows:
        employee = (
            await session.execute(select(Employee).where(Employee.idno == row.idno))
        ).scalar_one_or_none()
        if employee is None:
            errors.append(f"Row {row.row_number}: Employee with ID '{row.idno}' not found.")
            continue
        existing = await records.find_for_cutoff(session, Deduction, employee.id, cutoff, on)
        if existing is not None and existing.is_posted:
            errors.append(
                f"Row {row.row_number}: Deduction for employee '{row.idno}' is already posted and cannot be updated."
            )
            continue
        if existing is None:
            existing = Deduction(employee_id=employee.id, cutoff=cutoff, date=on)
            session.add(existing)
        for field, value in row.amounts.items():
            setattr(existing, field, value)
        existing.is_posted = False
        existing.is_default = False
        imported += 1
    await session.commit()
    logger.info("Imported %s deductions with %s errors", imported, len(errors))
    return {
        "message": f"Successfully imported {imported} deductions.",
        "imported_count": imported,
        "errors": errors,
    }


@router.get("/export")
async def export_deductions(
    cutoff: Cutoff = Query(default="1st"),
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=2000, le=2100),
    search: str = Query(default=""),
    fmt: spreadsheets.SheetFormat = Query(default="csv", alias="format"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    today = _today()
    month, year = month or today.month, year or today.year
    start, end = cutoff_range(cutoff, month, year)
    employees = list((await session.execute(active_employees(search))).scalars().all())
    latest = await records.latest_in_range(
        session, Deduction, [e.id for e in employees], cutoff, start, end
    )
    rows = spreadsheets.export_rows(((e, latest.get(e.id)) for e in employees), cutoff)
    return _sheet_response(rows, fmt, f"deductions_export_{cutoff}_{month}_{year}_{today.isoformat()}")


@router.get("/template/download")
async def download_template(
    fmt: spreadsheets.SheetFormat = Query(default="csv", alias="format"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    employees = (await session.execute(active_employees())).scalars().all()
    rows = spreadsheets.template_rows(employees, "1st", _today().isoformat())
    return _sheet_response(rows, fmt, "deductions_import_template")
