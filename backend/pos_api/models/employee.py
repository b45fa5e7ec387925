"""
Staff Models: Employee, Timesheet.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, TimestampMixin


class Employee(TimestampMixin, Base):
    """A staff member. PINs are stored as bcrypt hashes only."""

    __tablename__ = "employee"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    last_name: Mapped[str] = mapped_column(Text, default="", nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    pin_hash: Mapped[Optional[str]] = mapped_column(Text)
    hourly_rate_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    timesheets: Mapped[list["Timesheet"]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, name='{self.full_name}', role='{self.role}')>"


class Timesheet(Base):
    """One clocked shift. An open shift has no clock_out."""

    __tablename__ = "timesheet"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("employee.id"), nullable=False, index=True
    )
    clock_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    clock_out: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    declared_tips_cents: Mapped[Optional[int]] = mapped_column(Integer)
    cash_drop_cents: Mapped[Optional[int]] = mapped_column(Integer)

    employee: Mapped["Employee"] = relationship(back_populates="timesheets")

    __table_args__ = (
        Index("ix_timesheet_employee_clock_out", "employee_id", "clock_out"),
    )

    def __repr__(self) -> str:
        return f"<Timesheet(id={self.id}, employee_id={self.employee_id}, clock_in={self.clock_in})>"
