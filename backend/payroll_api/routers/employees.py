"""Employee endpoints for the FastAPI backend."""
from typing import Any, Sequence

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_csrf_user, get_current_user, get_db_session
from ..models import Benefit, Employee, User
from ..schemas import EmployeeBenefitRow, EmployeeCreate, EmployeeRead, Page
from ..services import records
from ..services.pagination import PageParams, page_params, paginate

router = APIRouter(prefix="/employees", tags=["employees"])
defaults_router = APIRouter(prefix="/api/employee-defaults", tags=["benefits"])


def active_employees(search: str = "") -> Select:
    """Active employees ordered by name, optionally filtered by a search term."""

    stmt = select(Employee).where(Employee.job_status == "Active")
    if search:
        like = f"%{search}%"
        stmt = stmt.where(
            or_(
                Employee.last_name.ilike(like),
                Employee.first_name.ilike(like),
                Employee.idno.ilike(like),
                Employee.department.ilike(like),
            )
        )
    return stmt.order_by(Employee.last_name, Employee.first_name, Employee.id)


@router.get("/", response_model=list[EmployeeRead])
async def list_employees(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> Sequence[Employee]:
    """Return all employees ordered by name."""

    result = await session.execute(
        select(Employee).order_by(Employee.last_name, Employee.first_name)
    )
    return list(result.scalars().all())


@router.post("/", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate,
    current_user: User = Depends(get_csrf_user),
    session: AsyncSession = Depends(get_db_session),
) -> Employee:
    """Create an employee; the ID number must be unique."""

    duplicate = await session.execute(select(Employee).where(Employee.idno == payload.idno))
    if duplicate.scalar_one_or_none() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Employee ID already exists")

    employee = Employee(**payload.model_dump())
    session.add(employee)
    await session.commit()
    await session.refresh(employee)
    return employee


@defaults_router.get("", response_model=Page[EmployeeBenefitRow])
async def employee_defaults(
    search: str = Query(default=""),
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, Any]:
    """Active employees with their default benefit template, if any."""

    page = await paginate(session, active_employees(search), params)
    defaults = await records.defaults_for(session, Benefit, [e.id for e in page["data"]])
    page["data"] = [
        {**EmployeeRead.model_validate(emp).model_dump(), "current_benefit": defaults.get(emp.id)}
        for emp in page["data"]
    ]
    return page
