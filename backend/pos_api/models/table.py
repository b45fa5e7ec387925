"""
Floor Models: RestaurantTable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import TableStatus
from .base import Base, BigIntPK, TimestampMixin


class RestaurantTable(TimestampMixin, Base):
    """
    A physical table on the floor.

    Status flow: available -> occupied -> billed -> cleaning -> available.
    """

    __tablename__ = "restaurant_table"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TableStatus.AVAILABLE, nullable=False, index=True
    )
    seated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint(
            "status IN ('available', 'occupied', 'billed', 'cleaning')",
            name="chk_restaurant_table_status",
        ),
        CheckConstraint("capacity > 0", name="chk_restaurant_table_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<RestaurantTable(id={self.id}, code='{self.code}', status='{self.status}')>"
