"""Benefit endpoints used by the employee defaults screen."""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_csrf_user, get_db_session
from ..models import Benefit, User
from ..models.records import BENEFIT_FIELDS
from ..errors import UnprocessableError
from ..schemas import BenefitCreate, BenefitIds, BenefitRead, FieldUpdate
from ..services import records

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/benefits", tags=["benefits"])


@router.post("", response_model=BenefitRead)
async def store_benefit(
    payload: BenefitCreate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Benefit:
    """Create a benefit, or update the one named by `id` while it is unposted.

    New 1st-cutoff benefits take any amount left blank from the employee's
    default template.
    """

    await records.ensure_employee(session, payload.employee_id)
    values = payload.model_dump(exclude={"id"})

    if payload.id is not None:
        benefit = await records.get_record(session, Benefit, payload.id)
        records.ensure_editable(benefit)
        for field in BENEFIT_FIELDS:
            values[field] = values[field] or 0.0
        for key, value in values.items():
            setattr(benefit, key, value)
        if benefit.is_default:
            await records.clear_defaults(session, Benefit, benefit.employee_id, benefit.id)
        await session.commit()
        return benefit

    if payload.cutoff == "1st":
        template = await records.latest_default(session, Benefit, payload.employee_id)
        if template is not None:
            for field, amount in template.amounts().items():
                if values[field] is None:
                    values[field] = amount
    for field in BENEFIT_FIELDS:
        values[field] = values[field] or 0.0

    benefit = Benefit(**values, is_posted=False, date_posted=None)
    session.add(benefit)
    await session.flush()
    if benefit.is_default:
        await records.clear_defaults(session, Benefit, benefit.employee_id, benefit.id)
    await session.commit()
    logger.info("Created benefit %s for employee %s", benefit.id, benefit.employee_id)
    return benefit


@router.patch("/{benefit_id}/field", response_model=BenefitRead)
async def update_field(
    benefit_id: int,
    payload: FieldUpdate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Benefit:
    record = await records.get_record(session, Benefit, benefit_id)
    return await records.update_field(session, record, payload.field, payload.value)


@router.post("/{benefit_id}/post", response_model=BenefitRead)
async def post_benefit(
    benefit_id: int,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Benefit:
    record = await records.get_record(session, Benefit, benefit_id)
    return await records.post_record(session, record)


@router.post("/{benefit_id}/set-default", response_model=BenefitRead)
async def set_default(
    benefit_id: int,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Benefit:
    record = await records.get_record(session, Benefit, benefit_id)
    return await records.set_default(session, record)


def _require_selection(payload: BenefitIds) -> list[int]:
    if not payload.benefit_ids:
        raise UnprocessableError("No benefits selected.", {"benefit_ids": ["No benefits selected."]})
    return payload.benefit_ids


@router.post("/bulk-post")
async def bulk_post(
    payload: BenefitIds,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    """Post the selection in one transaction; ids already posted are skipped."""

    posted, synced = await records.bulk_post(session, Benefit, _require_selection(payload))
    return {
        "message": f"{posted} benefits have been successfully posted and {synced} payroll summaries updated.",
        "posted_count": posted,
    }


@router.post("/bulk-set-default")
async def bulk_set_default(
    payload: BenefitIds,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    updated = await records.bulk_set_default(session, Benefit, _require_selection(payload))
    return {"message": f"{updated} benefits have been set as default.", "updated_count": updated}
