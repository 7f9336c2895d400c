"""Department → Line → Section organisation chart."""
from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class OrgUnitMixin(TimestampMixin):
    """Columns shared by every level of the org chart."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Department(OrgUnitMixin, Base):
    __tablename__ = "departments"

    lines: Mapped[list["Line"]] = relationship(back_populates="department", lazy="raise")


class Line(OrgUnitMixin, Base):
    __tablename__ = "lines"

    department_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("departments.id"), index=True
    )
    department: Mapped[Department] = relationship(back_populates="lines", lazy="joined")
    sections: Mapped[list["Section"]] = relationship(back_populates="line", lazy="raise")


class Section(OrgUnitMixin, Base):
    __tablename__ = "sections"

    line_id: Mapped[int] = mapped_column(Integer, ForeignKey("lines.id"), index=True)
    line: Mapped[Line] = relationship(back_populates="sections", lazy="joined")
