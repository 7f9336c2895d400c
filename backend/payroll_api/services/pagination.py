"""Offset pagination shared by the list endpoints."""
import math
from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings


@dataclass
class PageParams:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def page_params(
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None, ge=1),
) -> PageParams:
    """Query-string dependency; `per_page` is clamped to the configured maximum."""

    settings = get_settings()
    size = min(per_page or settings.default_page_size, settings.max_page_size)
    return PageParams(page=page, per_page=size)


async def paginate(
    session: AsyncSession, stmt: Select, params: PageParams, *, unique: bool = False
) -> dict[str, Any]:
    """Run `stmt` for one page and wrap the rows in the pagination envelope."""

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()
    result = await session.execute(stmt.limit(params.per_page).offset(params.offset))
    scalars = result.unique().scalars() if unique else result.scalars()
    return {
        "data": list(scalars.all()),
        "current_page": params.page,
        "last_page": max(1, math.ceil(total / params.per_page)),
        "per_page": params.per_page,
        "total": total,
    }
