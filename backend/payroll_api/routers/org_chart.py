"""Department, line and section maintenance."""
import logging
from typing import Any, Type

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_current_user, get_db_session, require_role
from ..errors import UnprocessableError, field_error
from ..models import Department, Line, Section, User
from ..schemas import (
    DepartmentRead,
    DepartmentWrite,
    LineRead,
    LineWrite,
    ListEnvelope,
    SectionRead,
    SectionWrite,
    ToggleResult,
)

logger = logging.getLogger(__name__)

departments_router = APIRouter(prefix="/departments", tags=["org chart"])
lines_router = APIRouter(prefix="/lines", tags=["org chart"])
sections_router = APIRouter(prefix="/sections", tags=["org chart"])

OrgUnit = Department | Line | Section

org_editor = require_role("superadmin", "hrd_manager")


async def _get(session: AsyncSession, model: Type[OrgUnit], unit_id: int) -> Any:
    unit = await session.get(model, unit_id)
    if unit is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{model.__name__} not found",
        )
    return unit


async def _reload(session: AsyncSession, model: Type[OrgUnit], unit_id: int) -> Any:
    """Fetch again so the joined parent reflects the committed row."""

    return await session.get(model, unit_id, populate_existing=True)


async def _ensure_unique_code(
    session: AsyncSession, model: Type[OrgUnit], code: str, exclude_id: int | None = None
) -> None:
    stmt = select(model.id).where(model.code == code)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        raise field_error("code", "The code has already been taken.")


async def _active_parent(
    session: AsyncSession, model: Type[OrgUnit], parent_id: int, field: str, message: str
) -> Any:
    parent = await session.get(model, parent_id)
    if parent is None:
        raise field_error(field, f"The selected {field.replace('_', ' ')} is invalid.")
    if not parent.is_active:
        raise UnprocessableError(message, {field: [message]})
    return parent


async def _child_count(session: AsyncSession, model: Type[OrgUnit], column: Any, parent_id: int) -> int:
    return (
        await session.execute(select(func.count(model.id)).where(column == parent_id))
    ).scalar_one()


async def _toggle(session: AsyncSession, unit: OrgUnit, user: User) -> dict[str, Any]:
    unit.is_active = not unit.is_active
    unit.updated_by = user.id
    await session.commit()
    noun = type(unit).__name__
    logger.info("%s %s active=%s", noun, unit.id, unit.is_active)
    return {"message": f"{noun} status updated successfully", "is_active": unit.is_active}


def line_view(line: Line) -> dict[str, Any]:
    return {
        **LineRead.model_validate(line, from_attributes=True).model_dump(exclude={"department_name"}),
        "department_name": line.department.name if line.department else None,
    }


def section_view(section: Section) -> dict[str, Any]:
    line = section.line
    return {
        **SectionRead.model_validate(section, from_attributes=True).model_dump(
            exclude={"line_name", "department_id"}
        ),
        "line_name": line.name if line else None,
        "department_id": line.department_id if line else None,
    }


# ---------- departments ----------


@departments_router.get("", response_model=ListEnvelope[DepartmentRead])
async def list_departments(
    active_only: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    stmt = select(Department).order_by(Department.name)
    if active_only:
        stmt = stmt.where(Department.is_active.is_(True))
    return {"data": list((await session.execute(stmt)).scalars().all())}


@departments_router.post("", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentWrite,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> Department:
    await _ensure_unique_code(session, Department, payload.code)
    department = Department(
        **payload.model_dump(), is_active=True, created_by=current_user.id, updated_by=current_user.id
    )
    session.add(department)
    await session.commit()
    logger.info("Created department %s", department.code)
    return department


@departments_router.put("/{department_id}", response_model=DepartmentRead)
async def update_department(
    department_id: int,
    payload: DepartmentWrite,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> Department:
    department = await _get(session, Department, department_id)
    await _ensure_unique_code(session, Department, payload.code, exclude_id=department_id)
    for key, value in payload.model_dump().items():
        setattr(department, key, value)
    department.updated_by = current_user.id
    await session.commit()
    return department


@departments_router.delete("/{department_id}")
async def delete_department(
    department_id: int,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    department = await _get(session, Department, department_id)
    if await _child_count(session, Line, Line.department_id, department_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot delete department with associated lines. Delete lines first.",
        )
    await session.execute(delete(Department).where(Department.id == department.id))
    await session.commit()
    return {"message": "Department deleted successfully"}


@departments_router.patch("/{department_id}/toggle-active", response_model=ToggleResult)
async def toggle_department(
    department_id: int,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    return await _toggle(session, await _get(session, Department, department_id), current_user)


# ---------- lines ----------


@lines_router.get("", response_model=ListEnvelope[LineRead])
async def list_lines(
    department_id: int | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    stmt = select(Line).order_by(Line.name)
    if department_id is not None:
        stmt = stmt.where(Line.department_id == department_id)
    lines = (await session.execute(stmt)).unique().scalars().all()
    return {"data": [line_view(line) for line in lines]}


@lines_router.post("", response_model=LineRead, status_code=status.HTTP_201_CREATED)
async def create_line(
    payload: LineWrite,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    await _ensure_unique_code(session, Line, payload.code)
    await _active_parent(
        session, Department, payload.department_id, "department_id",
        "Cannot create line in an inactive department",
    )
    line = Line(**payload.model_dump(), is_active=True, created_by=current_user.id, updated_by=current_user.id)
    session.add(line)
    await session.commit()
    logger.info("Created line %s", line.code)
    return line_view(await _reload(session, Line, line.id))


@lines_router.put("/{line_id}", response_model=LineRead)
async def update_line(
    line_id: int,
    payload: LineWrite,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    line = await _get(session, Line, line_id)
    await _ensure_unique_code(session, Line, payload.code, exclude_id=line_id)
    await _active_parent(
        session, Department, payload.department_id, "department_id",
        "Cannot move line to an inactive department",
    )
    for key, value in payload.model_dump().items():
        setattr(line, key, value)
    line.updated_by = current_user.id
    await session.commit()
    return line_view(await _reload(session, Line, line.id))


@lines_router.delete("/{line_id}")
async def delete_line(
    line_id: int,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    line = await _get(session, Line, line_id)
    if await _child_count(session, Section, Section.line_id, line_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot delete line with associated sections. Delete sections first.",
        )
    await session.execute(delete(Line).where(Line.id == line.id))
    await session.commit()
    return {"message": "Line deleted successfully"}


@lines_router.patch("/{line_id}/toggle-active", response_model=ToggleResult)
async def toggle_line(
    line_id: int,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    return await _toggle(session, await _get(session, Line, line_id), current_user)


# ---------- sections ----------


@sections_router.get("", response_model=ListEnvelope[SectionRead])
async def list_sections(
    line_id: int | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    stmt = select(Section).order_by(Section.name)
    if line_id is not None:
        stmt = stmt.where(Section.line_id == line_id)
    sections = (await session.execute(stmt)).unique().scalars().all()
    return {"data": [section_view(section) for section in sections]}


@sections_router.post("", response_model=SectionRead, status_code=status.HTTP_201_CREATED)
async def create_section(
    payload: SectionWrite,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    await _ensure_unique_code(session, Section, payload.code)
    await _active_parent(
        session, Line, payload.line_id, "line_id", "Cannot create section in an inactive line"
    )
    section = Section(
        **payload.model_dump(), is_active=True, created_by=current_user.id, updated_by=current_user.id
    )
    session.add(section)
    await session.commit()
    logger.info("Created section %s", section.code)
    return section_view(await _reload(session, Section, section.id))


@sections_router.put("/{section_id}", response_model=SectionRead)
async def update_section(
    section_id: int,
    payload: SectionWrite,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    section = await _get(session, Section, section_id)
    await _ensure_unique_code(session, Section, payload.code, exclude_id=section_id)
    await _active_parent(
        session, Line, payload.line_id, "line_id", "Cannot move section to an inactive line"
    )
    for key, value in payload.model_dump().items():
        setattr(section, key, value)
    section.updated_by = current_user.id
    await session.commit()
    return section_view(await _reload(session, Section, section.id))


@sections_router.delete("/{section_id}")
async def delete_section(
    section_id: int,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, str]:
    section = await _get(session, Section, section_id)
    await session.execute(delete(Section).where(Section.id == section.id))
    await session.commit()
    return {"message": "Section deleted successfully"}


@sections_router.patch("/{section_id}/toggle-active", response_model=ToggleResult)
async def toggle_section(
    section_id: int,
    current_user: User = Depends(org_editor),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    return await _toggle(session, await _get(session, Section, section_id), current_user)
